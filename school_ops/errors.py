from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code = 400
    default_code = 'BAD_REQUEST'

    def __init__(self, message: str, *, code: str | None = None, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class ValidationFailed(ServiceError):
    status_code = 400
    default_code = 'VALIDATION_ERROR'


class NotFoundError(ServiceError):
    status_code = 404
    default_code = 'NOT_FOUND'


class ConflictError(ServiceError):
    status_code = 409
    default_code = 'CONFLICT'


class WebhookError(ServiceError):
    status_code = 502
    default_code = 'WEBHOOK_FAILED'


def error_body(message: str, *, code: str | None = None, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {'success': False, 'error': message}
    if code:
        body['code'] = code
    if details is not None:
        body['details'] = details
    return body


def _validation_details(exc: RequestValidationError) -> list[dict[str, str]]:
    details = []
    for issue in exc.errors():
        loc = [str(part) for part in issue.get('loc', ()) if part not in ('body', 'query', 'path')]
        details.append({'field': '.'.join(loc), 'message': issue.get('msg', 'invalid value')})
    return details


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, code=exc.code, details=exc.details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=error_body('Validation error', code='VALIDATION_ERROR', details=_validation_details(exc)),
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception('unhandled_error path=%s method=%s', request.url.path, request.method)
        return JSONResponse(status_code=500, content=error_body('Internal server error'))

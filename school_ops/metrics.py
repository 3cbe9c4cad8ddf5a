from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request

from school_ops.config import settings


logger = logging.getLogger('school_ops.metrics')


async def log_slow_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms >= settings.metrics_slow_ms:
        logger.info(
            'slow_request method=%s path=%s status=%s duration_ms=%.2f',
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
    return response


def run_timed_job(label: str, fn: Callable[[], object]) -> object:
    start = time.perf_counter()
    logger.info('job_start name=%s', label)
    status = 'ok'
    try:
        return fn()
    except Exception:
        status = 'failed'
        duration_ms = (time.perf_counter() - start) * 1000.0
        logger.exception('job_failed name=%s duration_ms=%.2f', label, duration_ms)
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000.0
        logger.info('job_end name=%s status=%s duration_ms=%.2f', label, status, duration_ms)

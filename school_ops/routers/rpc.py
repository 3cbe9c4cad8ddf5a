from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from school_ops.route_logging import EndpointNameRoute


router = APIRouter(prefix='/trpc', tags=['RPC'], route_class=EndpointNameRoute)

_PROCEDURES = {
    'healthCheck': lambda: 'OK',
}


@router.get('/{procedure}')
def api_rpc_query(procedure: str):
    handler = _PROCEDURES.get(procedure)
    if handler is None:
        return JSONResponse(
            status_code=404,
            content={
                'error': {
                    'message': f'No "query"-procedure on path "{procedure}"',
                    'code': 'NOT_FOUND',
                    'data': {'httpStatus': 404, 'path': procedure},
                }
            },
        )
    return {'result': {'data': handler()}}

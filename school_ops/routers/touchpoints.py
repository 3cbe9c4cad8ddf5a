from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from school_ops.db import get_db
from school_ops.route_logging import EndpointNameRoute
from school_ops.schemas import TouchpointCreateRequest
from school_ops.services.touchpoint_service import list_student_touchpoints, log_touchpoint, serialize_touchpoint


router = APIRouter(prefix='/api/touchpoints', tags=['Touchpoints'], route_class=EndpointNameRoute)


@router.post('', status_code=201)
def api_log_touchpoint(payload: TouchpointCreateRequest, db: Session = Depends(get_db)):
    touchpoint = log_touchpoint(db, **payload.model_dump())
    return {'success': True, 'data': serialize_touchpoint(touchpoint)}


@router.get('/student/{student_id}')
def api_student_touchpoints(student_id: uuid.UUID, db: Session = Depends(get_db)):
    rows = [serialize_touchpoint(row) for row in list_student_touchpoints(db, student_id)]
    return {'success': True, 'data': rows, 'count': len(rows)}

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from school_ops.db import get_db
from school_ops.route_logging import EndpointNameRoute
from school_ops.schemas import PrivateClassAvailabilityRequest
from school_ops.services.teacher_service import (
    find_available_teachers,
    get_teacher_workload,
    list_teachers,
    serialize_teacher,
)


router = APIRouter(prefix='/api/teachers', tags=['Teachers'], route_class=EndpointNameRoute)


@router.get('')
def api_list_teachers(onboarding_status: str | None = Query(default=None), db: Session = Depends(get_db)):
    rows = [serialize_teacher(teacher) for teacher in list_teachers(db, onboarding_status=onboarding_status)]
    return {'success': True, 'data': rows, 'count': len(rows)}


@router.post('/available-for-private-classes')
def api_available_for_private_classes(payload: PrivateClassAvailabilityRequest, db: Session = Depends(get_db)):
    teachers = find_available_teachers(
        db,
        format=payload.format,
        duration_minutes=payload.duration_minutes,
        day_of_week=payload.day_of_week,
        student_id=payload.student_id,
        session_structure=payload.session_structure,
    )
    return {'success': True, 'data': teachers, 'count': len(teachers)}


@router.get('/{teacher_id}/workload')
def api_teacher_workload(teacher_id: uuid.UUID, db: Session = Depends(get_db)):
    return {'success': True, 'data': get_teacher_workload(db, teacher_id)}

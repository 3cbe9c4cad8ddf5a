from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from school_ops.db import get_db
from school_ops.route_logging import EndpointNameRoute
from school_ops.schemas import AttendanceUpdateRequest, DailyAttendanceRequest
from school_ops.services.attendance_service import (
    list_class_attendance,
    mark_attendance,
    record_daily_attendance,
    serialize_attendance,
)


router = APIRouter(prefix='/api/attendance', tags=['Attendance'], route_class=EndpointNameRoute)


@router.get('/classes/{class_id}')
def api_class_attendance(class_id: uuid.UUID, db: Session = Depends(get_db)):
    rows = [serialize_attendance(record) for record in list_class_attendance(db, class_id)]
    return {'success': True, 'data': rows, 'count': len(rows)}


@router.post('/daily', status_code=201)
def api_daily_attendance(payload: DailyAttendanceRequest, db: Session = Depends(get_db)):
    record = record_daily_attendance(
        db,
        student_id=payload.student_id,
        cohort_id=payload.cohort_id,
        status=payload.status,
        marked_by=payload.marked_by,
        notes=payload.notes,
    )
    return {'success': True, 'data': serialize_attendance(record)}


@router.patch('/{record_id}')
def api_mark_attendance(record_id: uuid.UUID, payload: AttendanceUpdateRequest, db: Session = Depends(get_db)):
    record = mark_attendance(
        db,
        record_id,
        status=payload.status,
        marked_by=payload.marked_by,
        notes=payload.notes,
        homework_completed=payload.homework_completed,
    )
    return {'success': True, 'data': serialize_attendance(record)}

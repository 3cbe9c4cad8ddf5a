from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from school_ops.db import get_db
from school_ops.route_logging import EndpointNameRoute
from school_ops.schemas import EnrollmentCreateRequest, EnrollmentStatusUpdateRequest
from school_ops.services.enrollment_service import (
    create_enrollment,
    list_enrollments,
    serialize_enrollment,
    update_status,
)


router = APIRouter(prefix='/api/enrollments', tags=['Enrollments'], route_class=EndpointNameRoute)


@router.get('')
def api_list_enrollments(
    cohort_id: uuid.UUID | None = Query(default=None),
    student_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
):
    rows = [serialize_enrollment(row) for row in list_enrollments(db, cohort_id=cohort_id, student_id=student_id)]
    return {'success': True, 'data': rows, 'count': len(rows)}


@router.post('', status_code=201)
def api_create_enrollment(payload: EnrollmentCreateRequest, db: Session = Depends(get_db)):
    enrollment = create_enrollment(db, payload.student_id, payload.cohort_id, payload.status)
    return {'success': True, 'data': serialize_enrollment(enrollment)}


@router.patch('/{enrollment_id}/status')
def api_update_enrollment_status(
    enrollment_id: uuid.UUID,
    payload: EnrollmentStatusUpdateRequest,
    db: Session = Depends(get_db),
):
    return {'success': True, 'data': serialize_enrollment(update_status(db, enrollment_id, payload.status))}

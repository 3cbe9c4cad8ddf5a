from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from school_ops.db import get_db
from school_ops.route_logging import EndpointNameRoute
from school_ops.schemas import StudentCreateRequest, StudentUpdateRequest, StudentUpsertRequest
from school_ops.services.student_service import (
    create_student,
    delete_student,
    get_by_tally_id,
    get_student,
    list_students,
    search_by_email,
    serialize_student,
    update_student,
    upsert_student,
)


router = APIRouter(prefix='/api/students', tags=['Students'], route_class=EndpointNameRoute)


@router.get('')
def api_list_students(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    rows = [serialize_student(student) for student in list_students(db, limit=limit, offset=offset)]
    return {'success': True, 'data': rows, 'count': len(rows)}


@router.get('/search')
def api_search_students(q: str = Query(default=''), db: Session = Depends(get_db)):
    rows = [serialize_student(student) for student in search_by_email(db, q)]
    return {'success': True, 'data': rows, 'count': len(rows)}


@router.get('/by-tally-id/{tally_id}')
def api_student_by_tally_id(tally_id: str, db: Session = Depends(get_db)):
    return {'success': True, 'data': serialize_student(get_by_tally_id(db, tally_id))}


@router.post('/upsert')
def api_upsert_student(payload: StudentUpsertRequest, db: Session = Depends(get_db)):
    student, action = upsert_student(db, payload.email, payload.data.model_dump(exclude_none=True))
    return {'success': True, 'action': action, 'data': serialize_student(student)}


@router.get('/{student_id}')
def api_get_student(student_id: uuid.UUID, db: Session = Depends(get_db)):
    return {'success': True, 'data': serialize_student(get_student(db, student_id))}


@router.post('', status_code=201)
def api_create_student(payload: StudentCreateRequest, db: Session = Depends(get_db)):
    student = create_student(db, payload.model_dump(exclude_none=True))
    return {'success': True, 'data': serialize_student(student)}


@router.patch('/{student_id}')
def api_update_student(student_id: uuid.UUID, payload: StudentUpdateRequest, db: Session = Depends(get_db)):
    student = update_student(db, student_id, payload.model_dump(exclude_none=True))
    return {'success': True, 'data': serialize_student(student)}


@router.delete('/{student_id}')
def api_delete_student(student_id: uuid.UUID, db: Session = Depends(get_db)):
    delete_student(db, student_id)
    return {'success': True}

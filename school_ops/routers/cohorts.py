from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from school_ops.db import get_db
from school_ops.route_logging import EndpointNameRoute
from school_ops.schemas import CreateClassesFromEventsRequest, FinalizeSetupRequest
from school_ops.services.class_creation_service import create_classes_for_tomorrow, create_classes_from_events
from school_ops.services.cohort_service import (
    finalize_setup,
    get_attendee_emails,
    get_cohort,
    list_cohorts,
    serialize_cohort,
)


router = APIRouter(prefix='/api/cohorts', tags=['Cohorts'], route_class=EndpointNameRoute)


@router.get('')
def api_list_cohorts(status: str | None = Query(default=None), db: Session = Depends(get_db)):
    rows = [serialize_cohort(cohort) for cohort in list_cohorts(db, status=status)]
    return {'success': True, 'data': rows, 'count': len(rows)}


@router.post('/finalize-setup')
def api_finalize_setup(payload: FinalizeSetupRequest, db: Session = Depends(get_db)):
    result = finalize_setup(db, payload.cohort_id)
    return {'success': True, 'message': 'Cohort setup finalized successfully', 'data': result}


@router.get('/create-tomorrow-classes')
def api_create_tomorrow_classes(db: Session = Depends(get_db)):
    result = create_classes_for_tomorrow(db)
    return {
        'success': True,
        'message': f'Successfully created {result.classes_created} classes for tomorrow',
        **result.as_dict(),
    }


@router.post('/create-classes-from-events')
def api_create_classes_from_events(payload: CreateClassesFromEventsRequest, db: Session = Depends(get_db)):
    result = create_classes_from_events(db, payload.events)
    return {
        'success': True,
        'message': f'Successfully created {result.classes_created} classes from calendar events',
        **result.as_dict(),
    }


@router.get('/{cohort_id}/attendees')
def api_cohort_attendees(cohort_id: uuid.UUID, db: Session = Depends(get_db)):
    cohort = get_cohort(db, cohort_id)
    attendees = get_attendee_emails(db, cohort)
    return {'success': True, 'data': attendees, 'count': len(attendees)}


@router.get('/{cohort_id}')
def api_get_cohort(cohort_id: uuid.UUID, db: Session = Depends(get_db)):
    return {'success': True, 'data': serialize_cohort(get_cohort(db, cohort_id), include_sessions=True)}

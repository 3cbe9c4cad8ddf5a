from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from school_ops.db import get_db
from school_ops.route_logging import EndpointNameRoute
from school_ops.schemas import CheckoutUrlRequest
from school_ops.services.class_booking_service import build_checkout_url, get_available_cohorts


router = APIRouter(prefix='/api/class-booking', tags=['Class Booking'], route_class=EndpointNameRoute)


@router.get('/available-beginner-cohorts')
def api_available_beginner_cohorts(level: str | None = Query(default=None), db: Session = Depends(get_db)):
    cohorts = get_available_cohorts(db, level)
    return {'success': True, 'data': cohorts, 'count': len(cohorts)}


@router.post('/checkout-url')
def api_checkout_url(payload: CheckoutUrlRequest, db: Session = Depends(get_db)):
    return {'success': True, 'data': build_checkout_url(db, payload.student_id, payload.cohort_id)}

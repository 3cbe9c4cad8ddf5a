from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from school_ops.db import get_db
from school_ops.route_logging import EndpointNameRoute
from school_ops.schemas import (
    AdvanceFollowUpRequest,
    CheckRecentEngagementsRequest,
    SetFollowUpRequest,
    StopFollowUpRequest,
    TriggerNextMessagesRequest,
)
from school_ops.services.follow_up_service import (
    advance_follow_up,
    check_recent_engagements,
    list_sequences,
    list_student_follow_ups,
    serialize_follow_up,
    serialize_sequence,
    set_follow_up,
    stop_follow_ups,
    trigger_next_messages,
)


router = APIRouter(prefix='/api/follow-ups', tags=['Follow Ups'], route_class=EndpointNameRoute)


@router.post('/set', status_code=201)
def api_set_follow_up(payload: SetFollowUpRequest, db: Session = Depends(get_db)):
    follow_up = set_follow_up(db, payload.student_id, payload.sequence_backend_name)
    return {
        'success': True,
        'data': {
            'follow_up_id': str(follow_up.id),
            'student_id': str(follow_up.student_id),
            'sequence_id': str(follow_up.sequence_id),
            'status': follow_up.status,
            'current_step': follow_up.current_step,
            'started_at': follow_up.started_at.isoformat(),
        },
    }


@router.get('/sequences')
def api_list_sequences(db: Session = Depends(get_db)):
    rows = [serialize_sequence(sequence) for sequence in list_sequences(db)]
    return {'success': True, 'data': rows, 'count': len(rows)}


@router.get('/student/{student_id}')
def api_student_follow_ups(student_id: uuid.UUID, db: Session = Depends(get_db)):
    rows = [serialize_follow_up(row, include_sequence=True) for row in list_student_follow_ups(db, student_id)]
    return {'success': True, 'data': rows, 'count': len(rows)}


@router.post('/advance')
def api_advance_follow_up(payload: AdvanceFollowUpRequest, db: Session = Depends(get_db)):
    return {'success': True, 'data': advance_follow_up(db, payload.follow_up_id)}


@router.post('/stop')
def api_stop_follow_ups(payload: StopFollowUpRequest, db: Session = Depends(get_db)):
    stopped = stop_follow_ups(db, payload.student_id)
    message = 'No active follow-ups to stop' if stopped == 0 else f'Stopped {stopped} follow-up(s)'
    return {'success': True, 'message': message, 'stopped_count': stopped}


@router.post('/trigger-next-messages')
def api_trigger_next_messages(payload: TriggerNextMessagesRequest | None = None, db: Session = Depends(get_db)):
    webhook_url = payload.webhook_url if payload else None
    return {'success': True, 'data': trigger_next_messages(db, webhook_url=webhook_url)}


@router.post('/check-recent-engagements-to-stop')
def api_check_recent_engagements(payload: CheckRecentEngagementsRequest | None = None, db: Session = Depends(get_db)):
    hours_back = payload.hours_back if payload else 1
    return {'success': True, 'data': check_recent_engagements(db, hours_back=hours_back)}

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

from school_ops.airtable.stats import ImportStats


# Exact Airtable option -> database value. Values missing here are never guessed.
ENUM_MAPPINGS: dict[str, dict[str, str]] = {
    'onboarding_status': {
        '-1 - No Longer with FLS': 'offboarded',
        '0 - New': 'new',
        '10 - Training in Progress': 'training_in_progress',
        '100 - Onboarded': 'onboarded',
    },
    'contract_type': {
        'Freelancer': 'freelancer',
        'Full-Time': 'full_time',
    },
    'group_class_bonus_terms': {
        'Per Student Per Hour up to $50/hr': 'per_student_per_hour',
        'Per Hour': 'per_hour',
    },
    'communication_channel': {
        'SMS & Email': 'sms_email',
        'Email': 'email',
        'SMS': 'sms',
    },
    'initial_channel': {
        'Form': 'form',
        'Quiz': 'quiz',
        'Call': 'call',
        'Message': 'message',
        'Email': 'email',
        'Paid Assessment': 'assessment',
    },
    'enrollment_status': {
        '-2 - Declined Contract': 'declined_contract',
        '-1 - Dropped Out': 'dropped_out',
        '0 - Interested': 'interested',
        '10 - Enrollment Form for Beginners Filled': 'beginner_form_filled',
        '19 - Contract Abandoned': 'contract_abandoned',
        '20 - Contract Signed': 'contract_signed',
        '49 - Payment Abandoned': 'payment_abandoned',
        '100 - Paid': 'paid',
        '200 - Welcome Package Sent': 'welcome_package_sent',
    },
    'product_format': {
        'Group': 'group',
        'Private': 'private',
    },
    'product_location': {
        'Online': 'online',
        'In-Person': 'in_person',
    },
    'touchpoint_type': {
        'Inbound': 'inbound',
        'Outbound': 'outbound',
    },
    'touchpoint_channel': {
        'SMS': 'sms',
        'Call': 'call',
        'WhatsApp': 'whatsapp',
        'Email': 'email',
    },
    'automated_follow_up_status': {
        '00 - Activated': 'activated',
        '50 - Follow Up Ongoing': 'ongoing',
        '-2 - Answer Received': 'answer_received',
        '-1 - Disabled Manually': 'disabled',
        '100 - Completed': 'completed',
    },
    'follow_up_message_status': {
        'Active': 'active',
        'Disabled': 'disabled',
    },
    'cohort_status': {
        '0 - Open for Enrollment': 'enrollment_open',
        '50 - Closed for Enrollment': 'enrollment_closed',
        '100 - Class Ended': 'class_ended',
    },
    'room_type': {
        '1 (1:1 Class)': 'for_one_to_one',
        '5 (Medium Room)': 'medium',
        '6 (Medium +)': 'medium_plus',
        '10 (Large Room)': 'large',
    },
    'day_of_week': {
        'Monday': 'monday',
        'Tuesday': 'tuesday',
        'Wednesday': 'wednesday',
        'Thursday': 'thursday',
        'Friday': 'friday',
        'Saturday': 'saturday',
        'Sunday': 'sunday',
    },
    'team_roles': {
        'Teacher': 'Teacher',
        'Evaluator': 'Evaluator',
        'Marketing/Admin': 'Marketing/Admin',
        'Exec': 'Exec',
    },
}

_EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
_TWELVE_HOUR_RE = re.compile(r'(\d{1,2}):(\d{2})\s*(AM|PM)', re.IGNORECASE)
_HH_MM_RE = re.compile(r'^\d{1,2}:\d{2}$')
_HH_MM_SS_RE = re.compile(r'^\d{1,2}:\d{2}:\d{2}$')


class EnumMapper:
    def __init__(self, stats: ImportStats, mappings: dict[str, dict[str, str]] | None = None):
        self.stats = stats
        self.mappings = mappings if mappings is not None else ENUM_MAPPINGS

    def map(self, value: Any, enum_type: str) -> str | None:
        if not value:
            return None
        mapping = self.mappings.get(enum_type)
        if mapping is None:
            self.stats.warn(f'No mapping defined for enum type: {enum_type}', value=value, enum_type=enum_type)
            return None
        mapped = mapping.get(value) if isinstance(value, str) else None
        if mapped is None:
            self.stats.warn(f'No exact mapping for {enum_type}.{value} - skipping', value=value, enum_type=enum_type)
        return mapped

    def map_many(self, values: Any, enum_type: str) -> list[str] | None:
        if not values or not isinstance(values, list):
            return None
        mapped = [self.map(value, enum_type) for value in values]
        mapped = [value for value in mapped if value]
        return mapped or None


def yes_no(value: Any) -> bool | None:
    if value == 'Yes':
        return True
    if value == 'No':
        return False
    return None


def checkbox(value: Any) -> bool | None:
    if value is True or value is False:
        return value
    return None


def first_link(value: Any) -> str | None:
    """Linked-record fields arrive as lists of record ids; only the first is used."""
    if isinstance(value, list) and value:
        return str(value[0])
    return None


def parse_datetime(value: Any, stats: ImportStats) -> datetime | None:
    if not value:
        return None
    raw = str(value).strip()
    if raw.endswith('Z'):
        raw = raw[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        stats.warn(f'Invalid date format: {value}', date=value)
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date(value: Any, stats: ImportStats) -> date | None:
    parsed = parse_datetime(value, stats)
    return parsed.date() if parsed else None


def validate_email(value: Any, stats: ImportStats) -> str | None:
    if not value:
        return None
    email = str(value).strip()
    if not _EMAIL_RE.match(email):
        stats.warn(f'Invalid email format: {email}', email=email)
        return None
    return email


def seconds_to_wall_clock(value: Any) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    total = int(value)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f'{hours:02d}:{minutes:02d}:{seconds:02d}'


def normalize_end_time(value: Any) -> str | None:
    """`3:30 PM`, `15:30` and `15:30:00` all become `HH:MM:SS`; anything else is None."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if 'AM' in text.upper() or 'PM' in text.upper():
        match = _TWELVE_HOUR_RE.search(text)
        if not match:
            return None
        hours = int(match.group(1))
        meridiem = match.group(3).upper()
        if meridiem == 'PM' and hours != 12:
            hours += 12
        if meridiem == 'AM' and hours == 12:
            hours = 0
        return f'{hours:02d}:{match.group(2)}:00'
    if _HH_MM_RE.match(text):
        hours, minutes = text.split(':')
        return f'{int(hours):02d}:{minutes}:00'
    if _HH_MM_SS_RE.match(text):
        hours, rest = text.split(':', 1)
        return f'{int(hours):02d}:{rest}'
    return None

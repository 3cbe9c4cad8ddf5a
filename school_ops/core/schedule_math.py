from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo


DAYS_OF_WEEK = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

_DAY_ALIASES = {day[:3]: day for day in DAYS_OF_WEEK}
_DAY_ALIASES.update({day: day for day in DAYS_OF_WEEK})

_RRULE_ABBREVIATIONS = {
    'monday': 'MO',
    'tuesday': 'TU',
    'wednesday': 'WE',
    'thursday': 'TH',
    'friday': 'FR',
    'saturday': 'SA',
    'sunday': 'SU',
}


def normalize_day_of_week(value: str | None) -> str | None:
    """Accepts `Mon`, `monday`, `MONDAY`...; returns the canonical lower-case name or None."""
    return _DAY_ALIASES.get((value or '').strip().lower())


def day_of_week_for(day: date) -> str:
    return DAYS_OF_WEEK[day.weekday()]


def rrule_day_abbreviation(day_of_week: str) -> str:
    return _RRULE_ABBREVIATIONS.get((day_of_week or '').lower(), '')


def parse_wall_clock(value: str) -> time:
    parts = (value or '').strip().split(':')
    if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
        raise ValueError(f'Invalid wall-clock time: {value!r}')
    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError(f'Invalid wall-clock time: {value!r}')
    return time(hour=hour, minute=minute, second=second)


def minutes_between(start_time: str, end_time: str) -> int:
    start = parse_wall_clock(start_time)
    end = parse_wall_clock(end_time)
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def hours_between(start_time: str, end_time: str) -> float:
    return minutes_between(start_time, end_time) / 60


def next_weekday_on_or_after(start: date, day_of_week: str) -> date:
    target = normalize_day_of_week(day_of_week)
    if target is None:
        raise ValueError(f'Invalid day: {day_of_week}')
    offset = (DAYS_OF_WEEK.index(target) - start.weekday()) % 7
    return start + timedelta(days=offset)


def combine_local(day: date, wall_clock: str, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, parse_wall_clock(wall_clock), tzinfo=tz)


def format_duration(start_time: str, end_time: str) -> tuple[str, str]:
    """Returns (`h:mm`, human string) for a session, e.g. ('1:30', '1h 30min')."""
    total = minutes_between(start_time, end_time)
    hours, minutes = divmod(total, 60)
    if hours > 0 and minutes > 0:
        human = f'{hours}h {minutes}min'
    elif hours > 0:
        human = '1 hour' if hours == 1 else f'{hours} hours'
    else:
        human = f'{minutes}min'
    return f'{hours}:{minutes:02d}', human

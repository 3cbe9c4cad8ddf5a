import logging
import sys
from typing import Literal

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'School Ops'
    app_env: Literal['development', 'production', 'test'] = 'development'
    app_timezone: str = 'UTC'
    port: int = 3000
    database_url: str = 'sqlite:///./school_ops.db'
    cors_origin: str = 'http://localhost:3001'
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200

    enable_scheduler: bool = False
    create_classes_time: str = '18:00'
    follow_up_trigger_interval_minutes: int = 60

    make_webhook_cohort_setup: str = ''
    make_webhook_follow_up: str = ''
    make_webhook_enrollment_abandoned: str = ''
    webhook_timeout_seconds: float = 10.0

    booking_min_lead_days: int = 14
    booking_default_level_code: str = 'a0'

    supabase_url: str = ''
    supabase_service_role_key: str = ''

    @field_validator('database_url')
    @classmethod
    def _database_url_required(cls, value: str) -> str:
        if not (value or '').strip():
            raise ValueError('DATABASE_URL is required')
        return value.strip()

    @field_validator('create_classes_time')
    @classmethod
    def _hhmm(cls, value: str) -> str:
        hh, _, mm = (value or '').partition(':')
        if not (hh.isdigit() and mm.isdigit() and 0 <= int(hh) <= 23 and 0 <= int(mm) <= 59):
            raise ValueError('must be HH:MM')
        return value

    @field_validator('follow_up_trigger_interval_minutes', 'booking_min_lead_days')
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError('must not be negative')
        return value


def exit_on_invalid(exc: ValidationError) -> None:
    logger.error('invalid_environment_variables')
    for issue in exc.errors():
        field = '.'.join(str(part) for part in issue.get('loc', ())) or '<root>'
        logger.error('  - %s: %s', field, issue.get('msg', 'invalid value'))
    sys.exit(1)


def load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        exit_on_invalid(exc)
        raise


settings = load_settings()

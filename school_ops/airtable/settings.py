from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from school_ops.config import exit_on_invalid


class AirtableSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    airtable_api_key: str
    airtable_base_id: str

    @field_validator('airtable_api_key', 'airtable_base_id')
    @classmethod
    def _required(cls, value: str) -> str:
        if not (value or '').strip():
            raise ValueError('must not be empty')
        return value.strip()


def load_airtable_settings() -> AirtableSettings:
    try:
        return AirtableSettings()
    except ValidationError as exc:
        exit_on_invalid(exc)
        raise

from __future__ import annotations

import logging
from typing import Any

import httpx


logger = logging.getLogger(__name__)

AIRTABLE_API_BASE = 'https://api.airtable.com/v0'

TABLE_IDS = {
    'Teachers/Team': 'tblVkXhmy8qX3FHm4',
    'Students/Leads': 'tblDuD2OQoYgLA2r8',
    'Products': 'tblpmFWT5CzTloQam',
    'Language Levels': 'tblmTTItwW0GACuEo',
    'Follow Up Sequences - Templates': 'tbl1mK5HDNXlnbVlx',
    'Follow Up Sequence - Template Messages': 'tbl6qmw0Mk4i80Qf1',
    'French Programs/Cohorts': 'tblQYVsRWi8jzt4jh',
    'Student Enrollments': 'tblxPJbUJ2UqE7sqF',
    'Student Assessments': 'tbl8qPVvfrZfqFd7d',
    'Automated Follow Ups': 'tbluQwBKY1hpsOvaE',
    'CRM Touchpoints/Follow Ups': 'tblYsUNtdiYXz2XPd',
    'Cohort Weekly Session': 'tbl42r90BBxZsI1ak',
    'Events/Classes': 'tbldeW8SeBkDIlywc',
}


class AirtableError(RuntimeError):
    pass


class AirtableClient:
    def __init__(self, api_key: str, base_id: str, *, transport: httpx.BaseTransport | None = None, timeout: float = 30.0):
        self.base_id = base_id
        self._client = httpx.Client(
            base_url=AIRTABLE_API_BASE,
            headers={'Authorization': f'Bearer {api_key}'},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> 'AirtableClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def fetch_records(self, table_name: str) -> list[dict[str, Any]]:
        table_id = TABLE_IDS.get(table_name)
        if not table_id:
            raise AirtableError(f'No table ID found for {table_name}')

        records: list[dict[str, Any]] = []
        offset: str | None = None
        while True:
            params = {'offset': offset} if offset else None
            try:
                response = self._client.get(f'/{self.base_id}/{table_id}', params=params)
            except httpx.HTTPError as exc:
                raise AirtableError(f'Failed to fetch {table_name}: {exc}') from exc
            if response.status_code != 200:
                raise AirtableError(f'Failed to fetch {table_name}: HTTP {response.status_code}')
            payload = response.json()
            records.extend(payload.get('records') or [])
            offset = payload.get('offset')
            if not offset:
                break

        logger.info('airtable_fetched table=%s records=%s', table_name, len(records))
        return records

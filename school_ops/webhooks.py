from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from school_ops.config import settings


logger = logging.getLogger(__name__)

COHORT_SETUP = 'cohort_setup'
FOLLOW_UP_TRIGGERED = 'follow_up_triggered'
ENROLLMENT_ABANDONED = 'enrollment_abandoned'

_PLACEHOLDER_MARKERS = ('YOUR_', '_HERE')


@dataclass
class WebhookResult:
    success: bool
    status_code: int | None = None
    error: str | None = None


def webhook_url(name: str) -> str:
    urls = {
        COHORT_SETUP: settings.make_webhook_cohort_setup,
        FOLLOW_UP_TRIGGERED: settings.make_webhook_follow_up,
        ENROLLMENT_ABANDONED: settings.make_webhook_enrollment_abandoned,
    }
    if name not in urls:
        raise KeyError(f'Unknown webhook: {name}')
    return (urls[name] or '').strip()


def is_webhook_configured(url: str | None) -> bool:
    value = (url or '').strip()
    if not value:
        return False
    return not any(marker in value for marker in _PLACEHOLDER_MARKERS)


def trigger_webhook(name: str, payload: dict[str, Any], url: str | None = None) -> WebhookResult:
    target = (url or '').strip() or webhook_url(name)
    if not is_webhook_configured(target):
        logger.warning('webhook_not_configured name=%s', name)
        return WebhookResult(success=False, error=f'Webhook {name} is not configured')

    try:
        response = httpx.post(target, json=payload, timeout=settings.webhook_timeout_seconds)
    except httpx.HTTPError as exc:
        logger.error('webhook_request_failed name=%s error=%s', name, exc)
        return WebhookResult(success=False, error=str(exc) or exc.__class__.__name__)

    if 200 <= response.status_code < 300:
        logger.info('webhook_sent name=%s status=%s', name, response.status_code)
        return WebhookResult(success=True, status_code=response.status_code)

    body = (response.text or '')[:500]
    logger.error('webhook_rejected name=%s status=%s body=%s', name, response.status_code, body)
    error = f'HTTP {response.status_code}: {body}' if body else f'HTTP {response.status_code}'
    return WebhookResult(success=False, status_code=response.status_code, error=error)

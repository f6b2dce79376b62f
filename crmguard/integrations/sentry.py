# =============================================================================
# Sentry Error Tracking Integration
# =============================================================================
#
# Setup:
#   1. Create a Python project at sentry.io
#   2. Copy DSN to .env: SENTRY_DSN=https://...@sentry.io/...
#
# Usage:
#   Call init_sentry() at app startup (in crmguard/api/app.py)
#
# Denials are expected outcomes, not errors: they are filtered out here and
# go to the audit log instead.
#
# =============================================================================

import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from crmguard.config import get_settings

logger = logging.getLogger(__name__)


def init_sentry() -> bool:
    """
    Initialize Sentry error tracking.

    Returns True if initialized, False if skipped.
    """
    settings = get_settings()

    if not settings.sentry_dsn:
        logger.info("SENTRY_DSN not set - error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR,
            ),
        ],
        # Actor ids are enough; don't send PII
        send_default_pii=False,
        before_send=_filter_events,
    )

    logger.info(f"Sentry initialized for {settings.environment}")
    return True


def _filter_events(event: dict, hint: dict) -> dict | None:
    """Drop expected authorization outcomes and scrub credentials."""
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]

        from crmguard.auth.errors import AuthorizationError
        if isinstance(exc_value, AuthorizationError):
            return None

        from fastapi import HTTPException
        if isinstance(exc_value, HTTPException):
            if exc_value.status_code in (401, 403, 404, 422):
                return None

    if "request" in event:
        headers = event["request"].get("headers") or {}
        for key in list(headers.keys()):
            if key.lower() in ("authorization", "cookie", "x-api-key"):
                headers[key] = "[Filtered]"

    return event


def _enabled() -> bool:
    return sentry_sdk.get_client().is_active()


def capture_exception(error: BaseException, **context) -> str | None:
    """
    Capture an exception to Sentry.

    Returns the event ID if captured, None otherwise.
    """
    if not _enabled():
        logger.debug(f"Sentry disabled, not reporting {type(error).__name__}: {error}")
        return None

    with sentry_sdk.new_scope() as scope:
        for key, value in context.items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(error)


def set_user(actor_id: str, **extra) -> None:
    """Set the current actor for error reports."""
    if _enabled():
        sentry_sdk.set_user({"id": actor_id, **extra})


def set_tag(key: str, value: str) -> None:
    """Add a tag for filtering in Sentry."""
    if _enabled():
        sentry_sdk.set_tag(key, value)

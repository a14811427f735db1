from __future__ import annotations

import logging

import sentry_sdk

from .config import Settings
from .logging_context import current_request_id

logger = logging.getLogger(__name__)


def init_sentry(source: Settings) -> bool:
    """Initialise the Sentry SDK when a DSN is configured."""
    if not source.sentry_dsn:
        logger.info("Sentry disabled (no DSN configured)")
        return False
    sentry_sdk.init(
        dsn=source.sentry_dsn,
        traces_sample_rate=source.sentry_traces_sample_rate,
        environment=source.sentry_environment,
        send_default_pii=False,
    )
    return True


def _sentry_enabled() -> bool:
    return sentry_sdk.get_client().is_active()


def report_exception(exc: BaseException, *, kind: str, status_code: int | None = None) -> None:
    if not _sentry_enabled():
        return
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("checkout.error_kind", kind)
        if status_code is not None:
            scope.set_tag("http.status_code", str(status_code))
        request_id = current_request_id()
        if request_id:
            scope.set_tag("request_id", request_id)
        sentry_sdk.capture_exception(exc)


__all__ = ["init_sentry", "report_exception"]

"""Caller-level entry point: log in and fetch the timetable in one call.

PortalSession never retries a step. fetch_timetable re-runs the whole
pipeline with a brand-new session when a transient (transport) failure
occurs, up to config.retry_attempts attempts in total. Permanent failures
propagate immediately.
"""

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from src.timetable.config import PortalConfig, get_config
from src.timetable.errors import TransientError
from src.timetable.logging import bind_portal, get_logger
from src.timetable.models import ScheduleEntry
from src.timetable.session import PortalSession

logger = get_logger(__name__)


def run_pipeline(config: PortalConfig, username: str, password: str) -> list[ScheduleEntry]:
    """One login-and-fetch pass on a fresh session."""
    session = PortalSession(config)
    session.login(username, password)
    return session.fetch_timetable()


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "pipeline_retry",
        attempt=retry_state.attempt_number,
        error=str(error),
    )


def fetch_timetable(
    config: PortalConfig | None = None,
    username: str | None = None,
    password: str | None = None,
    wait_seconds: float = 5.0,
) -> list[ScheduleEntry]:
    """Log in and download the timetable, re-running the pipeline on TransientError.

    Args:
        config: Portal settings; defaults to the environment-backed singleton.
        username: Overrides config.portal_user.
        password: Overrides config.portal_password.
        wait_seconds: Pause between whole-pipeline attempts.

    Returns:
        Schedule entries in feed order.

    Raises:
        TransientError: If the last attempt still failed in transport.
        PermanentError: On the first non-transient failure.
    """
    config = config or get_config()
    username = username if username is not None else config.portal_user
    password = password if password is not None else config.portal_password

    retrying = Retrying(
        stop=stop_after_attempt(config.retry_attempts),
        wait=wait_fixed(wait_seconds),
        retry=retry_if_exception_type(TransientError),
        before_sleep=_log_retry,
        reraise=True,
    )
    with bind_portal(config):
        return retrying(run_pipeline, config, username, password)

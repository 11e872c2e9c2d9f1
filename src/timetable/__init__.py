"""Campus portal timetable client.

Logs into the HISinOne campus portal, discovers the personal calendar export
of the individual timetable module and parses it into ScheduleEntry models.
"""

from src.timetable.config import PortalConfig, get_config
from src.timetable.errors import (
    AuthenticationError,
    DiscoveryError,
    EmptyFeedError,
    PermanentError,
    SessionStateError,
    TimetableError,
    TransientError,
    TransportError,
)
from src.timetable.feed import parse_feed, recurrence_from_rule
from src.timetable.models import Frequency, Recurrence, ScheduleEntry, format_entries
from src.timetable.runner import fetch_timetable
from src.timetable.session import PortalSession, SessionState

__all__ = [
    "PortalConfig",
    "get_config",
    "PortalSession",
    "SessionState",
    "fetch_timetable",
    "parse_feed",
    "recurrence_from_rule",
    "ScheduleEntry",
    "Recurrence",
    "Frequency",
    "format_entries",
    "TimetableError",
    "TransientError",
    "TransportError",
    "PermanentError",
    "AuthenticationError",
    "DiscoveryError",
    "EmptyFeedError",
    "SessionStateError",
]

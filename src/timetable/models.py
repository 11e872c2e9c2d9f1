"""Pydantic models for timetable data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
"""

from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, model_validator


class Frequency(str, Enum):
    """Recurrence frequencies understood by the timetable model."""

    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"
    CUSTOM = "Custom"


_KNOWN_FREQUENCIES: dict[str, Frequency] = {
    "DAILY": Frequency.DAILY,
    "WEEKLY": Frequency.WEEKLY,
    "MONTHLY": Frequency.MONTHLY,
    "YEARLY": Frequency.YEARLY,
}


class Recurrence(BaseModel):
    """How often an event repeats, derived from an RRULE FREQ value.

    One of the closed set Daily/Weekly/Monthly/Yearly, or CUSTOM carrying any
    other frequency token verbatim in `value` (e.g. "BIWEEKLY").
    """

    model_config = ConfigDict(frozen=True)

    frequency: Frequency
    value: str | None = None

    @model_validator(mode="after")
    def _check_custom_value(self) -> "Recurrence":
        if self.frequency is Frequency.CUSTOM and not self.value:
            raise ValueError("custom recurrence needs a non-empty frequency token")
        if self.frequency is not Frequency.CUSTOM and self.value is not None:
            raise ValueError("only custom recurrences carry a value")
        return self

    @classmethod
    def from_freq(cls, freq: str) -> "Recurrence | None":
        """Map a FREQ token to a Recurrence; an empty token means no recurrence."""
        token = freq.strip()
        if not token:
            return None
        known = _KNOWN_FREQUENCIES.get(token.upper())
        if known is not None:
            return cls(frequency=known)
        return cls(frequency=Frequency.CUSTOM, value=token)

    def __str__(self) -> str:
        if self.frequency is Frequency.CUSTOM:
            return self.value or ""
        return self.frequency.value


class ScheduleEntry(BaseModel):
    """One occurrence of a timetabled event from the portal's calendar export.

    Fields are display text; empty strings mean "unknown". The feed parser
    never emits an entry whose date and title are both empty.
    """

    date: str = ""  # "2024-10-01"
    time: str = ""  # "08:00 - 09:30", "08:00" or ""
    title: str = ""  # SUMMARY, falling back to DESCRIPTION
    location: str = ""
    recurrence: Recurrence | None = None

    def __str__(self) -> str:
        line = " ".join(part for part in (self.date, self.time, self.title) if part)
        if self.location:
            line = f"{line} @ {self.location}" if line else self.location
        if self.recurrence is not None:
            rule = str(self.recurrence)
            line = f"{line} • {rule}" if line else rule
        return line


class CandidateLink(NamedTuple):
    """A scored navigation link considered while looking for the timetable menu."""

    url: str
    score: int


def format_entries(entries: list[ScheduleEntry]) -> str:
    """Render entries one per line for display."""
    if not entries:
        return "No timetable entries found."
    return "\n".join(str(entry) for entry in entries)

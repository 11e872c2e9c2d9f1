"""Calendar feed parser - turns the portal's iCalendar export into ScheduleEntry models.

The feed is read with icalendar's content-line parser (unfolding, name /
parameter / value splitting, text unescaping) rather than its component
decoder, so that values keep their raw wire form: the portal's TZID
parameters are ignored and a naive value is always read as local time.

Each BEGIN:VCALENDAR ... END:VCALENDAR block is parsed on its own; a block
that fails to parse is skipped and the others are still returned.
"""

import re
from datetime import datetime, tzinfo

from dateutil import tz
from dateutil.parser import isoparse
from icalendar.parser import Contentline, Contentlines
from icalendar.prop import vText

from src.timetable.logging import get_logger
from src.timetable.models import Recurrence, ScheduleEntry

log = get_logger(__name__)

EVENT_PROPERTIES: tuple[str, ...] = (
    "SUMMARY",
    "DESCRIPTION",
    "LOCATION",
    "DTSTART",
    "DTEND",
    "RRULE",
)
TEXT_PROPERTIES = frozenset({"SUMMARY", "DESCRIPTION", "LOCATION"})

# Keyed by length once an optional trailing "Z" has been removed;
# strptime would otherwise read "T0815" as 08:01:05
COMPACT_FORMATS: dict[int, str] = {
    8: "%Y%m%d",
    13: "%Y%m%dT%H%M",
    15: "%Y%m%dT%H%M%S",
}
_COMPACT_RE = re.compile(r"\d{8}(?:T\d{4}(?:\d{2})?)?")
# Extended form only, so digit runs like "2024111" are not read as ISO ordinals
_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}")

# "DTSTART;TZID=Europe/Berlin:", "TZID=Europe/Berlin:", "VALUE=DATE:" ...
# Quoted parameter values may contain colons: TZID="urn:x"
_PARAM_VALUE = r'(?:"[^"]*"|[^:;"])*'
_PARAMETER_PREFIX_RE = re.compile(
    rf"^(?:[A-Za-z][A-Za-z0-9-]*(?:;{_PARAM_VALUE})*"
    rf"|[A-Za-z-]+={_PARAM_VALUE}(?:;{_PARAM_VALUE})*):"
)


# ---------------------------------------------------------------------------
# Date/time values
# ---------------------------------------------------------------------------


def resolve_local_time(naive: datetime, zone: tzinfo) -> datetime:
    """Attach `zone` to a wall-clock time, settling daylight-saving edge cases.

    An ambiguous time (repeated during the autumn fallback) resolves to the
    earlier of its two instants. A nonexistent time (skipped by the spring
    gap) is reinterpreted as UTC.
    """
    if not tz.datetime_exists(naive, tz=zone):
        return naive.replace(tzinfo=tz.UTC).astimezone(zone)
    aware = naive.replace(tzinfo=zone)
    if tz.datetime_ambiguous(aware):
        candidates = (tz.enfold(aware, fold=0), tz.enfold(aware, fold=1))
        return min(candidates, key=lambda dt: dt.astimezone(tz.UTC))
    return aware


def strip_parameters(raw: str) -> str:
    """Drop a property/parameter prefix such as "DTSTART;TZID=Europe/Berlin:"."""
    return _PARAMETER_PREFIX_RE.sub("", raw.strip(), count=1).strip()


def parse_ics_datetime(raw: str, zone: tzinfo | None = None) -> datetime | None:
    """Parse a DTSTART/DTEND value into an aware datetime in `zone`.

    `zone` defaults to the process's local time zone. Returns None when no
    known format matches.
    """
    zone = zone or tz.tzlocal()
    value = strip_parameters(raw)
    if not value:
        return None

    is_utc = value.endswith(("Z", "z"))
    compact = value[:-1] if is_utc else value
    if _COMPACT_RE.fullmatch(compact):
        try:
            naive = datetime.strptime(compact, COMPACT_FORMATS[len(compact)])
        except ValueError:
            return None
        if is_utc:
            return naive.replace(tzinfo=tz.UTC).astimezone(zone)
        return resolve_local_time(naive, zone)

    if not _TIMESTAMP_RE.match(value):
        return None
    try:
        parsed = isoparse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        return resolve_local_time(parsed, zone)
    return parsed.astimezone(zone)


def format_time_range(start: datetime | None, end: datetime | None) -> str:
    if start is None:
        return ""
    if end is None:
        return start.strftime("%H:%M")
    return f"{start.strftime('%H:%M')} - {end.strftime('%H:%M')}"


# ---------------------------------------------------------------------------
# Recurrence
# ---------------------------------------------------------------------------


def recurrence_from_rule(rule: str) -> Recurrence | None:
    """Recurrence named by the FREQ part of an RRULE value, if any."""
    for part in rule.split(";"):
        key, _, value = part.partition("=")
        if key.strip().upper() == "FREQ":
            return Recurrence.from_freq(value)
    return None


# ---------------------------------------------------------------------------
# Feed structure
# ---------------------------------------------------------------------------


def _split_calendars(lines: list[Contentline]) -> list[list[Contentline]]:
    """Group content lines into VCALENDAR blocks; lines outside blocks are dropped."""
    blocks: list[list[Contentline]] = []
    current: list[Contentline] | None = None
    for line in lines:
        marker = line.strip().upper()
        if marker == "BEGIN:VCALENDAR":
            if current is not None:
                # unterminated block, keep it so it gets reported as malformed
                blocks.append(current)
            current = [line]
        elif current is not None:
            current.append(line)
            if marker == "END:VCALENDAR":
                blocks.append(current)
                current = None
    if current is not None:
        blocks.append(current)
    return blocks


def _read_events(block: list[Contentline]) -> list[dict[str, str]]:
    """Raw property values of every VEVENT in one calendar block.

    Raises ValueError if the block is malformed.
    """
    events: list[dict[str, str]] = []
    stack: list[str] = []
    properties: dict[str, str] = {}

    for line in block:
        name, _params, value = line.parts()
        name = name.upper()
        if name == "BEGIN":
            stack.append(value.strip().upper())
            if stack[-1] == "VEVENT":
                properties = {}
        elif name == "END":
            component = value.strip().upper()
            if not stack or stack[-1] != component:
                raise ValueError(f"unbalanced END:{component}")
            stack.pop()
            if component == "VEVENT":
                events.append(properties)
        elif stack and stack[-1] == "VEVENT" and name in EVENT_PROPERTIES:
            # first occurrence wins
            properties.setdefault(name, str(value))

    if stack:
        raise ValueError(f"unterminated {stack[-1]}")
    return events


def _text(properties: dict[str, str], name: str) -> str | None:
    value = properties.get(name)
    if value is None:
        return None
    return str(vText.from_ical(value)).strip()


def _entry_from_event(properties: dict[str, str], zone: tzinfo) -> ScheduleEntry | None:
    start = parse_ics_datetime(properties.get("DTSTART", ""), zone)
    end = parse_ics_datetime(properties.get("DTEND", ""), zone)

    summary = _text(properties, "SUMMARY")
    title = summary if summary is not None else _text(properties, "DESCRIPTION") or ""
    date_text = start.strftime("%Y-%m-%d") if start else ""

    if not date_text and not title:
        return None

    rule = properties.get("RRULE")
    return ScheduleEntry(
        date=date_text,
        time=format_time_range(start, end),
        title=title,
        location=_text(properties, "LOCATION") or "",
        recurrence=recurrence_from_rule(rule) if rule else None,
    )


def parse_feed(text: str, zone: tzinfo | None = None) -> list[ScheduleEntry]:
    """Parse a calendar feed into schedule entries in feed order.

    Empty input yields an empty list. Malformed calendar blocks are skipped;
    unparseable dates leave the affected fields empty.

    Args:
        text: Raw feed text (BEGIN:VCALENDAR / BEGIN:VEVENT blocks).
        zone: Display time zone; defaults to the process's local zone.
    """
    if not text or not text.strip():
        return []

    zone = zone or tz.tzlocal()
    try:
        lines = [line for line in Contentlines.from_ical(text.lstrip("\ufeff")) if line.strip()]
    except ValueError as exc:
        log.warning("feed_unreadable", error=str(exc))
        return []

    entries: list[ScheduleEntry] = []
    for index, block in enumerate(_split_calendars(lines)):
        try:
            events = _read_events(block)
        except ValueError as exc:
            log.warning("feed_block_skipped", block=index, error=str(exc))
            continue
        for properties in events:
            entry = _entry_from_event(properties, zone)
            if entry is None:
                log.debug("feed_event_skipped", reason="no_date_or_title")
                continue
            entries.append(entry)

    log.debug("feed_parsed", entries=len(entries))
    return entries

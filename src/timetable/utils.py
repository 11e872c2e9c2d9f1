"""Shared helpers for text normalisation, URL resolution and flow-key handling."""

import html
import re
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

FLOW_KEY_PARAM = "_flowExecutionKey"
FLOW_ID_PARAM = "_flowId"

# Substrings that mark a string as pointing at a calendar export.
CALENDAR_HINTS: tuple[str, ...] = (
    "calendarexport",
    "calendar",
    "individualtimetablecalendarexport",
    "timetablecalendar",
    ".ics",
    "ical",
)

FLOW_KEY_RE = re.compile(re.escape(FLOW_KEY_PARAM) + r"=([A-Za-z0-9]+)")
_WHITESPACE_RE = re.compile(r"\s")


def normalize_text(value: str) -> str:
    """Decode entities, turn non-breaking spaces into spaces and collapse whitespace."""
    return " ".join(html.unescape(value).replace("\xa0", " ").split())


def contains_calendar_hint(value: str) -> bool:
    """True if `value` looks like it refers to a calendar export resource."""
    lower = value.lower()
    return any(hint in lower for hint in CALENDAR_HINTS)


def _is_http(url: str) -> bool:
    parts = urlsplit(url)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def resolve_url(candidate: str, base: str) -> str | None:
    """Resolve `candidate` to an absolute http(s) URL, or None.

    Absolute http(s) URLs are taken as-is; anything else is joined onto
    `base`. Strings containing whitespace are prose, not URLs.
    """
    candidate = candidate.strip()
    if not candidate or _WHITESPACE_RE.search(candidate):
        return None
    if _is_http(candidate):
        return candidate
    joined = urljoin(base, candidate)
    if _is_http(joined):
        return joined
    return None


def flow_key_from_url(url: str) -> str | None:
    """Read the flow execution key from a URL's query string."""
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if key == FLOW_KEY_PARAM and value:
            return value
    return None


def flow_key_from_str(value: str) -> str | None:
    """Extract a flow execution key from a URL or URL-ish fragment."""
    key = flow_key_from_url(value)
    if key:
        return key
    match = FLOW_KEY_RE.search(value)
    return match.group(1) if match else None


def build_timetable_url(timetable_url: str, flow_id: str, flow_key: str | None = None) -> str:
    """Build the timetable module URL for a flow, optionally continuing `flow_key`.

    Any query already present on `timetable_url` is replaced.
    """
    params = [(FLOW_ID_PARAM, flow_id)]
    if flow_key:
        params.append((FLOW_KEY_PARAM, flow_key))
    parts = urlsplit(timetable_url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), ""))

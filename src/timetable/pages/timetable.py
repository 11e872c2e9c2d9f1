"""Calendar URL locator for the rendered individual timetable page.

The portal shows its personal calendar export link in different element
shapes depending on page version (a permalink textarea, an input, a plain
anchor, or only inside inline script). find_ics_url walks those shapes from
most to least specific and returns the first hint-bearing value that
resolves to an absolute URL.
"""

import html
import re
from collections.abc import Iterable, Iterator

from bs4 import Tag

from src.timetable.logging import get_logger
from src.timetable.pages.document import Document
from src.timetable.utils import contains_calendar_hint, resolve_url

log = get_logger(__name__)

# Textareas most likely to hold the export permalink
TEXTAREA_SELECTORS: tuple[str, ...] = (
    "textarea[id*='cal_add']",
    "textarea[id*='ical']",
    "textarea[id*='calendar']",
    "textarea[data-page-permalink]",
    "textarea[data-url]",
)

# Attributes the permalink widgets store the URL in
URL_ATTRIBUTES: tuple[str, ...] = (
    "data-page-permalink",
    "data-page-permalink-title",
    "data-url",
    "value",
)

RAW_URL_RE = re.compile(r"https?://[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=%]+")


def _first_calendar_url(values: Iterable[str], base: str) -> str | None:
    for value in values:
        if not value or not contains_calendar_hint(value):
            continue
        url = resolve_url(value, base)
        if url is not None:
            return url
    return None


def _element_values(element: Tag) -> list[str]:
    values = []
    text = Document.text(element)
    if text:
        values.append(text)
    values.extend(Document.attrs(element, URL_ATTRIBUTES))
    return values


def _anchor_values(element: Tag) -> list[str]:
    values = Document.attrs(element, ("href",))
    text = Document.text(element)
    if text:
        values.append(text)
    return values


def _scan(elements: Iterable[Tag], reader, base: str) -> str | None:
    for element in elements:
        url = _first_calendar_url(reader(element), base)
        if url is not None:
            return url
    return None


def from_hinted_textareas(document: Document, base: str) -> str | None:
    for selector in TEXTAREA_SELECTORS:
        url = _scan(document.select(selector), _element_values, base)
        if url is not None:
            return url
    return None


def from_any_textarea(document: Document, base: str) -> str | None:
    return _scan(document.select("textarea"), _element_values, base)


def from_inputs(document: Document, base: str) -> str | None:
    return _scan(document.select("input"), _element_values, base)


def from_anchors(document: Document, base: str) -> str | None:
    return _scan(document.select("a[href]"), _anchor_values, base)


def _raw_urls(markup: str) -> Iterator[str]:
    for match in RAW_URL_RE.finditer(markup):
        # quotes and brackets are legal URL characters but usually belong to
        # the surrounding script literal
        yield html.unescape(match.group(0)).strip().rstrip("'\"();,")


def from_raw_text(document: Document, base: str) -> str | None:
    for candidate in _raw_urls(document.markup):
        if contains_calendar_hint(candidate):
            url = resolve_url(candidate, base)
            if url is not None:
                return url
    return None


STRATEGIES = (
    from_hinted_textareas,
    from_any_textarea,
    from_inputs,
    from_anchors,
    from_raw_text,
)


def find_ics_url(html_text: str | Document, base: str) -> str | None:
    """Calendar export URL advertised by a timetable page, or None."""
    document = html_text if isinstance(html_text, Document) else Document(html_text)
    for strategy in STRATEGIES:
        url = strategy(document, base)
        if url is not None:
            log.debug("ics_url_candidate", strategy=strategy.__name__, url=url)
            return url
    return None

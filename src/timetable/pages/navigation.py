"""Landing page and timetable entry page readers.

find_menu_link scores every anchor on the landing page to find the entry
point of the timetable module. extract_flow_key then reads the flow
execution key the entry page hands out, trying each strategy in
STRATEGIES until one answers.
"""

from collections.abc import Callable, Iterator

from src.timetable.logging import get_logger
from src.timetable.models import CandidateLink
from src.timetable.pages.document import Document
from src.timetable.utils import (
    FLOW_ID_PARAM,
    FLOW_KEY_PARAM,
    FLOW_KEY_RE,
    flow_key_from_str,
    resolve_url,
)

log = get_logger(__name__)

# Substring of every href belonging to the timetable module
MODULE_IDENTIFIER = "individualtimetable"

# Menu captions in German and English
MENU_KEYWORDS: tuple[str, ...] = ("stundenplan", "timetable")

SCORE_FLOW_ID = 3
SCORE_MODULE = 2
SCORE_KEYWORD = 1


def score_link(href: str, text: str, flow_id: str) -> int:
    """Relevance of one anchor for the timetable menu; 0 means unrelated."""
    href_lower = href.lower()
    if f"{FLOW_ID_PARAM.lower()}={flow_id.lower()}" in href_lower:
        return SCORE_FLOW_ID
    if MODULE_IDENTIFIER in href_lower:
        return SCORE_MODULE
    text_lower = text.lower()
    if any(keyword in text_lower for keyword in MENU_KEYWORDS):
        return SCORE_KEYWORD
    return 0


def iter_candidate_links(document: Document, base: str, flow_id: str) -> Iterator[CandidateLink]:
    """Scored, resolvable anchors in document order."""
    for anchor in document.select("a[href]"):
        href = Document.attr(anchor, "href")
        if not href:
            continue
        score = score_link(href, Document.text(anchor), flow_id)
        if score == 0:
            continue
        url = resolve_url(href, base)
        if url is None:
            continue
        yield CandidateLink(url=url, score=score)


def find_menu_link(document: Document, base: str, flow_id: str) -> str | None:
    """URL of the best-scoring timetable menu link, or None.

    The first candidate with the highest score wins.
    """
    best: CandidateLink | None = None
    for candidate in iter_candidate_links(document, base, flow_id):
        if best is None or candidate.score > best.score:
            best = candidate

    if best is None:
        log.debug("menu_link_not_found")
        return None

    log.debug("menu_link_found", url=best.url, score=best.score)
    return best.url


# ---------------------------------------------------------------------------
# Flow execution key strategies, most reliable first
# ---------------------------------------------------------------------------


def key_from_form_field(document: Document) -> str | None:
    for selector in (f"input[name='{FLOW_KEY_PARAM}']", f"input#{FLOW_KEY_PARAM}"):
        value = document.input_value(selector)
        if value:
            return value
    return None


def key_from_anchor(document: Document) -> str | None:
    href = document.input_value(f"a[href*='{FLOW_KEY_PARAM}=']", "href")
    if not href:
        return None
    return flow_key_from_str(href)


def key_from_meta_refresh(document: Document) -> str | None:
    for meta in document.select("meta[http-equiv]"):
        if (Document.attr(meta, "http-equiv") or "").lower() != "refresh":
            continue
        content = Document.attr(meta, "content") or ""
        idx = content.lower().find("url=")
        if idx == -1:
            continue
        key = flow_key_from_str(content[idx + len("url="):])
        if key:
            return key
    return None


def key_from_raw_text(document: Document) -> str | None:
    match = FLOW_KEY_RE.search(document.markup)
    return match.group(1) if match else None


STRATEGIES: tuple[Callable[[Document], str | None], ...] = (
    key_from_form_field,
    key_from_anchor,
    key_from_meta_refresh,
    key_from_raw_text,
)


def extract_flow_key(html: str | Document) -> str | None:
    """Flow execution key exposed by a timetable page, or None."""
    document = html if isinstance(html, Document) else Document(html)
    for strategy in STRATEGIES:
        key = strategy(document)
        if key:
            log.debug("flow_key_found", strategy=strategy.__name__)
            return key
    return None

"""Campus portal session - login and timetable download over plain HTTP.

PortalSession owns one requests.Session (the cookie jar) and walks the
portal's navigation strictly in order:

    UNAUTHENTICATED -> LOGIN_SUBMITTED -> LANDING_LOADED -> ENTRY_LOADED
        -> FULL_TIMETABLE_LOADED -> CALENDAR_DOWNLOADED

Every request carries the headers a browser would send for a same-origin
navigation, since the portal rejects sessions that don't look "warm".
Nothing is retried here; see runner.fetch_timetable for whole-pipeline
re-invocation.
"""

import time
from enum import Enum
from pathlib import Path
from typing import NamedTuple

import requests

from src.timetable.config import PortalConfig, get_config
from src.timetable.errors import (
    AuthenticationError,
    DiscoveryError,
    EmptyFeedError,
    SessionStateError,
    TransportError,
)
from src.timetable.feed import parse_feed
from src.timetable.logging import get_logger
from src.timetable.models import ScheduleEntry
from src.timetable.pages.document import Document
from src.timetable.pages.login import TOKEN_FIELD, find_credential_fields, find_token
from src.timetable.pages.navigation import extract_flow_key, find_menu_link
from src.timetable.pages.timetable import find_ics_url
from src.timetable.utils import FLOW_KEY_PARAM, build_timetable_url, flow_key_from_url

logger = get_logger(__name__)

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Connection": "keep-alive",
}

NAVIGATION_HEADERS: dict[str, str] = {
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "same-origin",
}

FORM_HEADERS: dict[str, str] = {
    "Sec-Fetch-User": "?1",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
}


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    LOGIN_SUBMITTED = "login_submitted"
    LANDING_LOADED = "landing_loaded"
    ENTRY_LOADED = "entry_loaded"
    FULL_TIMETABLE_LOADED = "full_timetable_loaded"
    CALENDAR_DOWNLOADED = "calendar_downloaded"


# fetch_timetable may run again from any of these, e.g. after a failed discovery
LOGGED_IN_STATES = tuple(s for s in SessionState if s is not SessionState.UNAUTHENTICATED)


class PageResult(NamedTuple):
    body: str
    final_url: str
    status: int


class PortalSession:
    """Authenticated browsing state against the campus portal.

    Holds the cookie jar, the base origin, the timetable flow id and the
    most recently seen flow execution key. One instance serves one caller;
    create a new instance for an independent session.
    """

    def __init__(
        self,
        config: PortalConfig | None = None,
        http: requests.Session | None = None,
    ) -> None:
        """Initialize PortalSession.

        Args:
            config: Portal settings; defaults to the environment-backed singleton.
            http: Pre-built requests.Session (e.g. with a test adapter mounted).
        """
        self.config = config or get_config()
        self.http = http or requests.Session()
        self.http.headers.update(DEFAULT_HEADERS)
        self.http.headers["User-Agent"] = self.config.user_agent
        self.http.headers["Accept-Language"] = self.config.accept_language

        self.state = SessionState.UNAUTHENTICATED
        self.flow_id = self.config.flow_id
        self.flow_key: str | None = None

    # -----------------------------------------------------------------------
    # HTTP primitives
    # -----------------------------------------------------------------------

    def _get(self, step: str, url: str, referer: str | None) -> PageResult:
        headers = dict(NAVIGATION_HEADERS)
        if referer:
            headers["Referer"] = referer
        try:
            response = self.http.get(
                url,
                headers=headers,
                timeout=self.config.request_timeout,
                allow_redirects=True,
            )
            body = response.text
        except requests.RequestException as e:
            logger.warning("request_failed", step=step, url=url, error=str(e))
            raise TransportError(step, f"GET {url} failed: {e}") from e

        if not response.ok:
            # Discovery on the body decides whether the step was usable
            logger.warning("unexpected_status", step=step, url=url, status=response.status_code)
        logger.debug("page_loaded", step=step, url=response.url, status=response.status_code)
        return PageResult(body=body, final_url=response.url, status=response.status_code)

    def _post_form(
        self, step: str, url: str, referer: str | None, form: list[tuple[str, str]]
    ) -> PageResult:
        headers = dict(NAVIGATION_HEADERS)
        headers.update(FORM_HEADERS)
        headers["Origin"] = self.config.origin
        if referer:
            headers["Referer"] = referer
        try:
            response = self.http.post(
                url,
                data=form,
                headers=headers,
                timeout=self.config.request_timeout,
                allow_redirects=True,
            )
            body = response.text
        except requests.RequestException as e:
            logger.warning("request_failed", step=step, url=url, error=str(e))
            raise TransportError(step, f"POST {url} failed: {e}") from e

        return PageResult(body=body, final_url=response.url, status=response.status_code)

    def _set_cookie(self, name: str, value: str) -> None:
        self.http.cookies.set(name, value, domain=self.config.cookie_domain, path="/")

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            raise SessionStateError(
                f"operation not allowed in state {self.state.value!r}"
            )

    # -----------------------------------------------------------------------
    # Navigation steps
    # -----------------------------------------------------------------------

    def login(self, username: str, password: str) -> None:
        """Submit credentials through the portal's login form.

        Raises:
            TransportError: If a request fails.
            DiscoveryError: If the token or the credential fields cannot be found.
            AuthenticationError: If the portal answers the POST with a non-success status.
        """
        self._require(SessionState.UNAUTHENTICATED)
        start_url = self.config.start_url
        logger.info("login_started", url=start_url)

        start = self._get("start_page", start_url, referer=start_url)
        document = Document(start.body)

        token = find_token(document)
        if token is None:
            raise DiscoveryError(TOKEN_FIELD, f"{TOKEN_FIELD} not found on login form")

        fields = find_credential_fields(document)
        if not fields.inferred and self.config.require_credential_fields:
            raise DiscoveryError(
                "credential fields",
                "login form exposes no username/password inputs",
            )

        self._set_cookie("_clickedButtonId", "undefined")

        form = [
            ("userInfo", ""),
            (TOKEN_FIELD, token),
            (fields.username, username),
            (fields.password, password),
            ("submit", ""),
        ]
        result = self._post_form("login", self.config.login_url, start_url, form)
        if not 200 <= result.status < 300:
            logger.error("login_rejected", status=result.status)
            raise AuthenticationError(result.status)

        self.state = SessionState.LOGIN_SUBMITTED
        self._set_cookie("lastRefresh", str(int(time.time() * 1000)))
        self._set_cookie("sessionRefresh", "0")
        logger.info("login_succeeded", cookies=sorted(self.http.cookies.keys()))

    def fetch_timetable(self) -> list[ScheduleEntry]:
        """Navigate to the personal timetable and download its calendar feed.

        May be called again on the same logged-in session; each call walks
        the portal from the landing page and picks up a fresh flow key.

        Returns:
            Schedule entries in feed order (never empty).

        Raises:
            SessionStateError: If called before a successful login.
            TransportError: If a request fails.
            DiscoveryError: If the flow key or the calendar URL cannot be found.
            EmptyFeedError: If the downloaded feed holds no entries.
        """
        self._require(*LOGGED_IN_STATES)
        start_url = self.config.start_url
        base = self.config.portal_url

        landing = self._get("landing_page", start_url, referer=start_url)
        self.state = SessionState.LANDING_LOADED

        entry_url = find_menu_link(Document(landing.body), base, self.flow_id)
        if entry_url is None:
            entry_url = build_timetable_url(self.config.timetable_url, self.flow_id)
            logger.info("menu_link_defaulted", url=entry_url)

        entry = self._get("entry_page", entry_url, referer=start_url)
        self.state = SessionState.ENTRY_LOADED

        flow_key = (
            extract_flow_key(entry.body)
            or flow_key_from_url(entry.final_url)
            or flow_key_from_url(entry_url)
        )
        if not flow_key:
            raise DiscoveryError(
                FLOW_KEY_PARAM, f"could not determine {FLOW_KEY_PARAM} for timetable"
            )
        self.flow_key = flow_key
        logger.info("flow_key_found", flow_id=self.flow_id)

        full_url = build_timetable_url(self.config.timetable_url, self.flow_id, flow_key)
        full = self._get("full_timetable", full_url, referer=start_url)
        self.state = SessionState.FULL_TIMETABLE_LOADED

        ics_url = find_ics_url(full.body, base) or find_ics_url(entry.body, base)
        if ics_url is None:
            self._dump_pages(full=full.body, initial=entry.body)
            raise DiscoveryError("calendar URL", "could not locate ICS URL in timetable pages")
        logger.info("ics_url_found", url=ics_url)

        feed = self._get("calendar_download", ics_url, referer=full_url)
        self.state = SessionState.CALENDAR_DOWNLOADED

        entries = parse_feed(feed.body)
        if not entries:
            raise EmptyFeedError("no events were parsed from the ICS response")

        logger.info("timetable_fetched", entries=len(entries))
        return entries

    def _dump_pages(self, **pages: str) -> None:
        """Write timetable pages to debug_dump_dir for offline inspection."""
        if not self.config.debug_dump_dir:
            return
        dump_dir = Path(self.config.debug_dump_dir)
        try:
            dump_dir.mkdir(parents=True, exist_ok=True)
            for name, body in pages.items():
                path = dump_dir / f"debug_timetable_{name}.html"
                path.write_text(body, encoding="utf-8")
                logger.info("page_dumped", path=str(path))
        except OSError as e:
            logger.warning("page_dump_failed", dir=str(dump_dir), error=str(e))

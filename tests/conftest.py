"""Shared fixtures: a canned campus portal served through a requests transport adapter."""

from collections.abc import Callable

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from src.timetable.config import PortalConfig

from .portal_pages import (
    ENTRY_PAGE,
    FEED,
    FLOW_ID,
    FULL_TIMETABLE_PAGE,
    ICS_URL,
    LANDING_PAGE,
    LOGIN_PAGE,
    LOGIN_URL,
    PORTAL,
    START_URL,
    TIMETABLE_URL,
)


Responder = tuple[int, str] | Exception | Callable[[requests.PreparedRequest], tuple[int, str]]


def canonical(url: str) -> str:
    return requests.Request("GET", url).prepare().url


class FakePortal(BaseAdapter):
    """Transport adapter serving canned responses keyed by (method, URL).

    A route may hold a list, consumed one response per request, so the same
    URL can answer differently over time (login form, then landing page).
    """

    def __init__(self) -> None:
        super().__init__()
        self.routes: dict[tuple[str, str], list[Responder]] = {}
        self.requests: list[requests.PreparedRequest] = []

    def add(self, method: str, url: str, *responders: Responder) -> None:
        self.routes.setdefault((method, canonical(url)), []).extend(responders)

    def set(self, method: str, url: str, *responders: Responder) -> None:
        self.routes[(method, canonical(url))] = list(responders)

    def requests_to(self, url: str) -> list[requests.PreparedRequest]:
        return [r for r in self.requests if r.url == canonical(url)]

    def send(self, request, **kwargs):
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url))
        if not queue:
            return self._response(request, 404, "not found")
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(responder, Exception):
            raise responder
        if callable(responder):
            status, body = responder(request)
        else:
            status, body = responder
        return self._response(request, status, body)

    @staticmethod
    def _response(request, status: int, body: str) -> requests.Response:
        response = requests.Response()
        response.status_code = status
        response._content = body.encode("utf-8")
        response.encoding = "utf-8"
        response.headers = CaseInsensitiveDict({"Content-Type": "text/html; charset=utf-8"})
        response.url = request.url
        response.request = request
        return response

    def close(self) -> None:
        pass


@pytest.fixture
def config(tmp_path) -> PortalConfig:
    return PortalConfig(
        _env_file=None,
        portal_url=PORTAL,
        portal_user="alice",
        portal_password="secret",
        debug_dump_dir=str(tmp_path / "dumps"),
    )


@pytest.fixture
def portal() -> FakePortal:
    return FakePortal()


@pytest.fixture
def http(portal) -> requests.Session:
    session = requests.Session()
    session.mount("https://", portal)
    session.mount("http://", portal)
    return session


@pytest.fixture
def happy_portal(portal) -> FakePortal:
    """A portal where every navigation step succeeds."""
    portal.add("GET", START_URL, (200, LOGIN_PAGE), (200, LANDING_PAGE))
    portal.add("POST", LOGIN_URL, (200, "<html>welcome</html>"))
    portal.add(
        "GET",
        f"{TIMETABLE_URL}?_flowId={FLOW_ID}&navigationPosition=hisinoneMeinStudium",
        (200, ENTRY_PAGE),
    )
    portal.add(
        "GET",
        f"{TIMETABLE_URL}?_flowId={FLOW_ID}&_flowExecutionKey=e1s1",
        (200, FULL_TIMETABLE_PAGE),
    )
    portal.add("GET", ICS_URL, (200, FEED))
    return portal

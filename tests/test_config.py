from src.timetable.config import PortalConfig


def test_defaults_and_derived_urls():
    config = PortalConfig(_env_file=None)
    assert config.start_url == (
        "https://campusportal.ur.de/qisserver/pages/cs/sys/portal/hisinoneStartPage.faces"
    )
    assert config.login_url == (
        "https://campusportal.ur.de/qisserver/rds?state=user&type=1&category=auth.login"
    )
    assert config.timetable_url == (
        "https://campusportal.ur.de/qisserver/pages/plan/individualTimetable.xhtml"
    )
    assert config.flow_id == "individualTimetableSchedule-flow"
    assert config.origin == "https://campusportal.ur.de"
    assert config.cookie_domain == "campusportal.ur.de"
    assert config.require_credential_fields is True


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PORTAL_URL", "https://portal.example.edu:8443/base")
    monkeypatch.setenv("PORTAL_USER", "carol")
    monkeypatch.setenv("REQUEST_TIMEOUT", "15")
    config = PortalConfig(_env_file=None)
    assert config.portal_user == "carol"
    assert config.request_timeout == 15.0
    assert config.origin == "https://portal.example.edu:8443"
    assert config.cookie_domain == "portal.example.edu"

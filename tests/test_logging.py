import json
import logging

import pytest
import structlog

from src.timetable.config import PortalConfig
from src.timetable.logging import bind_portal, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers = handlers
    root.setLevel(level)


def test_json_output(capsys):
    setup_logging(json_output=True, log_level="DEBUG")
    get_logger("src.timetable.session").info("flow_key_found", flow_id="plan-flow")
    line = capsys.readouterr().err.strip().splitlines()[-1]

    record = json.loads(line)
    assert record["event"] == "flow_key_found"
    assert record["flow_id"] == "plan-flow"
    assert record["level"] == "info"
    assert "timestamp" in record


def test_level_filtering(capsys):
    setup_logging(json_output=True, log_level="WARNING")
    get_logger(__name__).info("hidden")
    get_logger(__name__).warning("shown")
    err = capsys.readouterr().err

    assert "hidden" not in err
    assert "shown" in err


def test_defaults_come_from_config(monkeypatch, capsys):
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    monkeypatch.setenv("LOG_JSON", "true")
    setup_logging(config=PortalConfig(_env_file=None))
    get_logger(__name__).warning("hidden")
    get_logger(__name__).error("login_rejected", status=401)
    lines = capsys.readouterr().err.strip().splitlines()

    assert len(lines) == 1
    assert json.loads(lines[0])["event"] == "login_rejected"
    assert logging.getLogger().level == logging.ERROR


def test_explicit_arguments_override_config(monkeypatch, capsys):
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    setup_logging(json_output=True, log_level="INFO", config=PortalConfig(_env_file=None))
    get_logger(__name__).info("shown")

    assert "shown" in capsys.readouterr().err


def test_bind_portal_adds_context(capsys):
    setup_logging(json_output=True, log_level="INFO")
    config = PortalConfig(_env_file=None)
    with bind_portal(config):
        get_logger(__name__).info("login_started")
    get_logger(__name__).info("done")
    inside, outside = (json.loads(line) for line in capsys.readouterr().err.strip().splitlines())

    assert inside["portal"] == "campusportal.ur.de"
    assert inside["flow_id"] == "individualTimetableSchedule-flow"
    assert "portal" not in outside

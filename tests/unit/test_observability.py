"""Unit tests for the structured logging helpers in ``observability``."""

from __future__ import annotations

import logging

import pytest

from cvtsudoers import configure_logging, get_logger
from cvtsudoers.observability import log_info, log_warning, make_event


@pytest.fixture(autouse=True)
def _silence_after_test():
    """Detach the stderr handler so later tests start silent."""

    yield
    configure_logging(None)
    get_logger().setLevel(logging.NOTSET)


def test_null_handler_present() -> None:
    """The package logger ships with a ``NullHandler``."""

    logger = get_logger()
    assert any(isinstance(handler, logging.NullHandler) for handler in logger.handlers)


def test_structured_context_in_log(caplog: pytest.LogCaptureFixture) -> None:
    """Structured fields travel on the record's ``context`` attribute."""

    caplog.set_level(logging.INFO, logger="cvtsudoers")
    log_info("defaults_loaded", **make_event("defaults", {"entries": 3}))
    record = caplog.records[-1]
    assert record.getMessage() == "defaults_loaded"
    assert getattr(record, "context") == {"stage": "defaults", "entries": 3}


def test_make_event_without_payload() -> None:
    """An event without payload carries only its stage."""

    assert make_event("host") == {"stage": "host"}


def test_configure_logging_attaches_single_stderr_handler(capsys: pytest.CaptureFixture[str]) -> None:
    """Reconfiguring replaces the stderr handler instead of stacking it."""

    configure_logging("warning")
    configure_logging("WARNING")
    named = [handler for handler in get_logger().handlers if handler.get_name() == "cvtsudoers-stderr"]
    assert len(named) == 1
    log_warning("hostname_fallback", stage="host")
    err = capsys.readouterr().err
    assert "hostname_fallback" in err
    assert "stage='host'" in err


def test_configure_logging_none_removes_handler() -> None:
    """``None`` removes the stderr handler again."""

    configure_logging("debug")
    assert configure_logging(None) is None
    assert not [handler for handler in get_logger().handlers if handler.get_name() == "cvtsudoers-stderr"]


def test_configure_logging_rejects_unknown_level() -> None:
    """Unknown level names raise ``ValueError``."""

    with pytest.raises(ValueError):
        configure_logging("chatty")

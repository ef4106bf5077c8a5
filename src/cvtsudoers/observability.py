"""Structured logging helpers for the conversion pipeline.

Purpose
    Keep every diagnostic emitted while synthesizing the execution context and
    running the exporter predictable and contextual, while leaving the tool
    silent unless the operator asks for logs.

Contents
    - ``get_logger``: returns the shared package logger (quiet by default).
    - ``configure_logging``: attaches a stderr handler at the requested level.
    - ``log_debug`` / ``log_info`` / ``log_warning`` / ``log_error``: emit
      structured entries via a single private emitter.
    - ``make_event``: convenience builder for structured event payloads.

System Integration
    Used by the context synthesizer, the exporter invoker, and adapters. The
    CLI calls :func:`configure_logging` with ``CVTSUDOERS_LOG_LEVEL``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Final, Mapping

_LOGGER: Final[logging.Logger] = logging.getLogger("cvtsudoers")
_LOGGER.addHandler(logging.NullHandler())

_HANDLER_NAME: Final[str] = "cvtsudoers-stderr"


class _ContextFormatter(logging.Formatter):
    """Append the structured ``context`` mapping as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = getattr(record, "context", None)
        if not context:
            return base
        rendered = " ".join(f"{key}={value!r}" for key, value in context.items())
        return f"{base} {rendered}"


def get_logger() -> logging.Logger:
    """Expose the package logger so host applications may attach handlers."""

    return _LOGGER


def configure_logging(level: str | None) -> logging.Handler | None:
    """Attach a stderr handler at *level*; ``None`` or empty keeps the logger silent.

    Calling it again replaces the previously attached handler, so repeated CLI
    invocations in one interpreter do not duplicate output.

    Examples
    --------
    >>> configure_logging(None) is None
    True
    """

    for handler in list(_LOGGER.handlers):
        if handler.get_name() == _HANDLER_NAME:
            _LOGGER.removeHandler(handler)
    if not level:
        return None
    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level {level!r}")
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(_ContextFormatter("%(name)s: %(levelname)s %(message)s"))
    _LOGGER.addHandler(handler)
    _LOGGER.setLevel(numeric)
    return handler


def log_debug(message: str, **fields: Any) -> None:
    """Emit a structured debug log entry."""

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Emit a structured info log entry."""

    _emit(logging.INFO, message, fields)


def log_warning(message: str, **fields: Any) -> None:
    """Emit a structured warning log entry."""

    _emit(logging.WARNING, message, fields)


def log_error(message: str, **fields: Any) -> None:
    """Emit a structured error log entry."""

    _emit(logging.ERROR, message, fields)


def make_event(stage: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Build a structured logging payload for a pipeline stage.

    Examples
    --------
    >>> make_event('identity', {'source': 'uid'})
    {'stage': 'identity', 'source': 'uid'}
    """

    event: dict[str, Any] = {"stage": stage}
    if payload:
        event |= dict(payload)
    return event


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Send a log entry through the shared logger with contextual metadata."""

    _LOGGER.log(level, message, extra={"context": dict(fields)})

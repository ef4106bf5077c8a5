"""Domain-level exception hierarchy.

Purpose
-------
Expose the error taxonomy shared by the context synthesizer, the exporter
invoker, and the CLI. The hierarchy lives in the domain layer so adapters and
the composition root can raise it without importing outer layers.

Contents
--------
* :class:`CvtSudoersError` – umbrella base class.
* :class:`UsageError` – malformed invocation (unsupported format, extra
  positional arguments) detected outside of click.
* :class:`FatalConfigurationError` – the execution context cannot be built.
* :class:`ConversionFailure` – the exporter could not convert the policy.

System Role
-----------
The CLI maps :class:`UsageError` and :class:`FatalConfigurationError` to exit
status ``1``. Hostname lookup failures never surface as errors; they are
recovered with the ``localhost`` fallback.
"""

from __future__ import annotations


class CvtSudoersError(Exception):
    """Base type for all exceptions emitted by ``cvtsudoers``."""


class UsageError(CvtSudoersError):
    """Raised when an invocation cannot be interpreted.

    Why
    ----
    Programmatic callers build :class:`~cvtsudoers.domain.model.InvocationConfig`
    without click, so they need the same rejection click gives on the command
    line.
    """


class FatalConfigurationError(CvtSudoersError):
    """Raised when the execution context cannot be synthesized.

    Typical Sources
    ---------------
    No passwd record for the invoking user, a broken built-in defaults table,
    or a policy host that refuses to initialise its environment tables.
    """


class ConversionFailure(CvtSudoersError):
    """Signals that a policy file could not be converted.

    Carries the offending line number (when known) so exporters can print a
    ``file:line: message`` diagnostic.
    """

    def __init__(self, message: str, *, lineno: int | None = None) -> None:
        super().__init__(message)
        self.lineno = lineno

"""Environment variable adapter for runtime settings.

Purpose
-------
Translate ``CVTSUDOERS_*`` environment variables into a :class:`Settings`
value. The CLI surface is fixed by the sudoers tooling conventions, so
operator knobs such as log verbosity live in the environment instead.

Key behaviours
--------------
* Only keys carrying the prefix from :func:`default_env_prefix` are read.
* Light type coercion for common scalars (bools, ints, floats,
  ``null``/``none``).
* Unknown keys are ignored; a value of the wrong type is a
  :class:`~cvtsudoers.domain.errors.FatalConfigurationError`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final, Mapping

from ...domain.errors import FatalConfigurationError
from ...observability import log_debug

ENV_SLUG: Final[str] = "cvtsudoers"
DEFAULT_INDENT: Final[int] = 4


def default_env_prefix(slug: str) -> str:
    """Return the canonical environment prefix for *slug*.

    Examples
    --------
    >>> default_env_prefix('cvtsudoers')
    'CVTSUDOERS'
    """

    return slug.replace("-", "_").upper()


@dataclass(frozen=True, slots=True)
class Settings:
    """Operator settings for one run.

    Attributes
    ----------
    log_level:
        Level name for the stderr log handler; ``None`` keeps logging silent.
    traceback:
        Show full Python tracebacks for unexpected errors.
    indent:
        Indentation of the emitted JSON document.
    """

    log_level: str | None = None
    traceback: bool = False
    indent: int = DEFAULT_INDENT


class EnvSettingsLoader:
    """Build :class:`Settings` from an environment mapping."""

    def __init__(self, *, environ: Mapping[str, str] | None = None, prefix: str | None = None) -> None:
        self._environ = os.environ if environ is None else environ
        self._prefix = (prefix or default_env_prefix(ENV_SLUG)) + "_"

    def load(self) -> Settings:
        """Return settings derived from prefixed variables.

        Examples
        --------
        >>> EnvSettingsLoader(environ={'CVTSUDOERS_INDENT': '2'}).load().indent
        2
        >>> EnvSettingsLoader(environ={}).load()
        Settings(log_level=None, traceback=False, indent=4)
        """

        collected: dict[str, object] = {}
        for key, value in self._environ.items():
            if not key.startswith(self._prefix):
                continue
            stripped = key[len(self._prefix) :].lower()
            if stripped:
                collected[stripped] = _coerce(value)
        log_debug("env_settings_loaded", stage="settings", keys=sorted(collected))

        log_level = collected.get("log_level")
        traceback = collected.get("traceback", False)
        indent = collected.get("indent", DEFAULT_INDENT)
        if log_level is not None and not isinstance(log_level, str):
            raise FatalConfigurationError(f"{self._prefix}LOG_LEVEL must be a level name, got {log_level!r}")
        if not isinstance(traceback, bool):
            raise FatalConfigurationError(f"{self._prefix}TRACEBACK must be true or false, got {traceback!r}")
        if isinstance(indent, bool) or not isinstance(indent, int) or indent < 0:
            raise FatalConfigurationError(f"{self._prefix}INDENT must be a non-negative integer, got {indent!r}")
        return Settings(log_level=log_level or None, traceback=traceback, indent=indent)


def _coerce(value: str) -> object:
    """Coerce textual environment values to Python primitives where possible.

    Examples
    --------
    >>> _coerce('true'), _coerce('10'), _coerce('3.5'), _coerce('debug')
    (True, 10, 3.5, 'debug')
    """

    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    try:
        if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
            return int(value)
        return float(value)
    except ValueError:
        return value

"""Environment settings adapter: prefix filtering and scalar coercion.

Only ``CVTSUDOERS_`` variables are read; each test passes an explicit mapping
so the real process environment never leaks in.
"""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from cvtsudoers.adapters.env.default import EnvSettingsLoader, Settings, default_env_prefix
from cvtsudoers.domain.errors import FatalConfigurationError


def test_default_env_prefix() -> None:
    """The slug should become the upper-case ``CVTSUDOERS`` prefix."""

    assert default_env_prefix("cvt-sudoers") == "CVT_SUDOERS"


def test_defaults_when_nothing_is_set() -> None:
    """An empty environment yields the built-in settings."""

    assert EnvSettingsLoader(environ={"PATH": "/bin"}).load() == Settings()


def test_prefixed_values_are_coerced() -> None:
    """Prefixed variables are coerced to bool, int, and str settings."""

    environ = {
        "CVTSUDOERS_LOG_LEVEL": "debug",
        "CVTSUDOERS_TRACEBACK": "TRUE",
        "CVTSUDOERS_INDENT": "2",
        "CVTSUDOERS_UNKNOWN": "ignored",
        "SUDO_USER": "alice",
    }
    assert EnvSettingsLoader(environ=environ).load() == Settings(log_level="debug", traceback=True, indent=2)


def test_null_log_level_keeps_logging_silent() -> None:
    """A ``null`` log level behaves as if the variable were unset."""

    assert EnvSettingsLoader(environ={"CVTSUDOERS_LOG_LEVEL": "none"}).load().log_level is None


@pytest.mark.parametrize(
    "key, value",
    [
        ("CVTSUDOERS_INDENT", "wide"),
        ("CVTSUDOERS_INDENT", "-1"),
        ("CVTSUDOERS_INDENT", "true"),
        ("CVTSUDOERS_TRACEBACK", "sometimes"),
        ("CVTSUDOERS_LOG_LEVEL", "10"),
    ],
)
def test_malformed_values_are_fatal(key: str, value: str) -> None:
    """Values of the wrong type name the offending variable in the error."""

    with pytest.raises(FatalConfigurationError, match=key):
        EnvSettingsLoader(environ={key: value}).load()


@given(st.integers(min_value=0, max_value=16))
def test_indent_round_trips_through_environment(indent: int) -> None:
    """Any non-negative indent written to the environment is read back unchanged."""

    assert EnvSettingsLoader(environ={"CVTSUDOERS_INDENT": str(indent)}).load().indent == indent

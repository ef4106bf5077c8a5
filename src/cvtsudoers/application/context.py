"""Execution context synthesis.

Purpose
-------
Establish everything the policy evaluator assumes about its surroundings
before a single line of policy is read: the user the policy is evaluated for,
the local host names, and the grammar's built-in Defaults.

Contents
--------
* :data:`ACTING_USER_VARIABLE` – environment variable naming the acting user.
* :func:`prefers_env_user` – decides whether that variable is trusted.
* :func:`resolve_identity` – passwd record for the policy subject.
* :func:`resolve_host` – :class:`HostInfo` with ``localhost`` fallback.
* :func:`init_defaults` – validated, all-or-nothing :class:`PolicyDefaults`.
* :func:`synthesize_context` – composes the three into an
  :class:`ExecutionContext`.

System Role
-----------
Called by :func:`cvtsudoers.core.convert` ahead of the exporter. All OS access
goes through the ports in :mod:`cvtsudoers.application.ports`.
"""

from __future__ import annotations

from typing import Any, Final, Mapping

from ..domain.errors import FatalConfigurationError
from ..domain.model import (
    DEFAULT_KINDS,
    DefaultOption,
    ExecutionContext,
    HostInfo,
    Identity,
    PolicyDefaults,
)
from ..observability import log_debug, log_info, make_event
from .ports import DefaultsSource, HostnameSource, PasswdDatabase, PolicyHost, ProcessCredentials

ACTING_USER_VARIABLE: Final[str] = "SUDO_USER"
ROOT_UID: Final[int] = 0


def prefers_env_user(credentials: ProcessCredentials) -> bool:
    """Return ``True`` when the acting-user variable may be trusted.

    Only a process running with root effective privileges can have been started
    through sudo on behalf of someone else; otherwise ``SUDO_USER`` is just a
    string any user can set.
    """

    return credentials.effective_uid() == ROOT_UID


def resolve_identity(
    passwd: PasswdDatabase,
    credentials: ProcessCredentials,
    environ: Mapping[str, str],
) -> Identity:
    """Return the passwd record the policy is evaluated for.

    The acting user from ``SUDO_USER`` wins when the process is elevated and
    the variable is non-empty and resolvable; otherwise the real uid is used.

    Raises
    ------
    FatalConfigurationError
        Neither lookup produced a record.
    """

    if prefers_env_user(credentials):
        # TODO: an empty SUDO_USER is treated as unset; decide whether it should be rejected instead.
        acting_user = environ.get(ACTING_USER_VARIABLE) or ""
        if acting_user:
            identity = passwd.by_name(acting_user)
            if identity is not None:
                log_debug("identity_resolved", **make_event("identity", {"source": "env", "user": identity.name}))
                return identity
            log_debug("env_user_ignored", **make_event("identity", {"user": acting_user, "reason": "unknown"}))

    real_uid = credentials.real_uid()
    identity = passwd.by_uid(real_uid)
    if identity is None:
        raise FatalConfigurationError("you do not exist in the passwd database")
    log_debug("identity_resolved", **make_event("identity", {"source": "uid", "user": identity.name}))
    return identity


def resolve_host(source: HostnameSource) -> HostInfo:
    """Return host names for policy evaluation, never failing.

    Examples
    --------
    >>> class _Fixed:
    ...     def hostname(self):
    ...         return "db1.example.org"
    >>> resolve_host(_Fixed()).short_host
    'db1'
    """

    hostname = source.hostname()
    if not hostname:
        log_debug("hostname_fallback", **make_event("host", {"full_host": "localhost"}))
        return HostInfo.localhost()
    host = HostInfo.from_hostname(hostname)
    log_debug("host_resolved", **make_event("host", {"full_host": host.full_host, "short_host": host.short_host}))
    return host


def init_defaults(source: DefaultsSource) -> PolicyDefaults:
    """Load and validate the built-in Defaults.

    Every entry is checked before the table is built; one bad entry discards
    the whole table.

    Raises
    ------
    FatalConfigurationError
        The source failed or an entry is malformed.
    """

    raw = source.load()
    options: dict[str, DefaultOption] = {}
    for name, entry in raw.items():
        try:
            options[name] = _build_option(name, entry)
        except (TypeError, ValueError) as exc:
            raise FatalConfigurationError(f"unable to initialize sudoers default values: {name}: {exc}") from exc
    defaults = PolicyDefaults(options)
    log_info("defaults_loaded", **make_event("defaults", {"entries": len(defaults)}))
    return defaults


def synthesize_context(
    *,
    passwd: PasswdDatabase,
    credentials: ProcessCredentials,
    hostname_source: HostnameSource,
    defaults_source: DefaultsSource,
    policy_host: PolicyHost,
    environ: Mapping[str, str],
) -> ExecutionContext:
    """Compose identity, host, and defaults into one :class:`ExecutionContext`."""

    identity = resolve_identity(passwd, credentials, environ)
    host = resolve_host(hostname_source)
    defaults = init_defaults(defaults_source)
    if not policy_host.init_envtables():
        raise FatalConfigurationError("unable to initialize environment tables")
    return ExecutionContext(identity=identity, host=host, defaults=defaults, capabilities=policy_host)


def _build_option(name: str, entry: Mapping[str, Any]) -> DefaultOption:
    """Validate a raw table entry and convert its value to the kind's Python type."""

    if not isinstance(entry, Mapping):
        raise TypeError("entry must be a table")
    kind = entry.get("kind")
    if kind not in DEFAULT_KINDS:
        raise ValueError(f"unknown kind {kind!r}")
    choices = tuple(entry.get("choices", ()))
    value = entry.get("value")
    if value is not None:
        value = _typed_value(kind, value, choices)
    elif kind == "tuple":
        raise ValueError("tuple options need a default value")
    return DefaultOption(name=name, kind=kind, value=value, choices=choices)


def _typed_value(kind: str, value: Any, choices: tuple[str, ...]) -> Any:
    if kind == "flag":
        if not isinstance(value, bool):
            raise TypeError("flag value must be a boolean")
        return value
    if kind == "integer":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError("integer value must be an integer")
        return value
    if kind == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError("float value must be a number")
        return float(value)
    if kind == "mode":
        return int(str(value), 8)
    if kind == "tuple":
        if value not in choices:
            raise ValueError(f"{value!r} is not one of {', '.join(choices)}")
        return value
    if kind == "list":
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise TypeError("list value must be an array of strings")
        return tuple(value)
    if not isinstance(value, str):
        raise TypeError("string value must be a string")
    return value

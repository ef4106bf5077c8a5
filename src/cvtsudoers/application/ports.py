"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts the context synthesizer and exporter invoker
depend on, so the operating system, the defaults table, and the exporter can
be swapped for fakes in tests or for a fuller privilege-evaluation host.

Contents
--------
* :class:`PasswdDatabase` – passwd lookups by name and uid.
* :class:`ProcessCredentials` – real/effective uid of the running process.
* :class:`HostnameSource` – local hostname lookup.
* :class:`DefaultsSource` – raw built-in Defaults table.
* :class:`PolicyHost` – capability functions a policy evaluator expects from
  its host (environment tables, exemption, shadow file, group plugin,
  interfaces).
* :class:`Exporter` – converts a policy file into a structured document.

System Role
-----------
These protocols keep :mod:`cvtsudoers.application.context` free of ``pwd``,
``socket``, and filesystem calls.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from ..domain.model import ExecutionContext, Identity


@runtime_checkable
class PasswdDatabase(Protocol):
    """Resolve passwd records; both methods return ``None`` when absent."""

    def by_name(self, name: str) -> Identity | None:
        """Return the record for login *name*."""

    def by_uid(self, uid: int) -> Identity | None:
        """Return the record for numeric *uid*."""


@runtime_checkable
class ProcessCredentials(Protocol):
    """Expose the credentials of the running process."""

    def real_uid(self) -> int:
        """Return the real user id."""

    def effective_uid(self) -> int:
        """Return the effective user id."""


@runtime_checkable
class HostnameSource(Protocol):
    """Report the local hostname or ``None`` when it cannot be determined."""

    def hostname(self) -> str | None:
        """Return the OS hostname."""


@runtime_checkable
class DefaultsSource(Protocol):
    """Provide the raw built-in Defaults table (name -> entry mapping)."""

    def load(self) -> Mapping[str, Mapping[str, Any]]:
        """Return the table or raise ``FatalConfigurationError``."""


@runtime_checkable
class PolicyHost(Protocol):
    """Capabilities a policy evaluator requests from the program hosting it.

    A converter never authorises anything, so its implementation is a set of
    no-ops; a full privilege-evaluation host supplies real behaviour.
    """

    def init_envtables(self) -> bool:
        """Prepare environment-variable tables; ``False`` aborts the run."""

    def user_is_exempt(self) -> bool:
        """Report whether the user is exempt from authentication."""

    def setspent(self) -> None:
        """Open the shadow password database."""

    def endspent(self) -> None:
        """Close the shadow password database."""

    def group_plugin_query(self, user: str, group: str, identity: Identity | None) -> bool:
        """Ask an external group plugin whether *user* belongs to *group*."""

    def get_interfaces(self) -> Sequence[str]:
        """Return the local network interfaces as ``addr/netmask`` strings."""


@runtime_checkable
class Exporter(Protocol):
    """Convert *input_path* into a structured document at *output_path*."""

    def export(self, input_path: str, output_path: str, context: ExecutionContext) -> bool:
        """Return ``True`` on success; report diagnostics and return ``False`` otherwise."""

"""Shared fakes for the context synthesizer, exporter invoker, and CLI tests.

Each fake implements one port from ``cvtsudoers.application.ports`` and
records how it was called so tests can assert on ordering (for example that
no exporter runs when the identity cannot be resolved).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from cvtsudoers.adapters.capabilities.null import NullPolicyHost
from cvtsudoers.adapters.defaults.builtin import TOMLDefaultsSource
from cvtsudoers.core import Collaborators
from cvtsudoers.domain.errors import FatalConfigurationError
from cvtsudoers.domain.model import ExecutionContext, Identity

ALICE = Identity(name="alice", uid=1000, gid=1000, home="/home/alice", shell="/bin/bash", gecos="Alice")
BOB = Identity(name="bob", uid=1001, gid=1001, home="/home/bob", shell="/bin/zsh", gecos="Bob")
ROOT = Identity(name="root", uid=0, gid=0, home="/root", shell="/bin/sh", gecos="root")


class FakePasswd:
    """In-memory passwd database."""

    def __init__(self, records: Iterable[Identity] = (ALICE, BOB, ROOT)) -> None:
        self._records = list(records)
        self.name_lookups: list[str] = []
        self.uid_lookups: list[int] = []

    def by_name(self, name: str) -> Identity | None:
        self.name_lookups.append(name)
        return next((record for record in self._records if record.name == name), None)

    def by_uid(self, uid: int) -> Identity | None:
        self.uid_lookups.append(uid)
        return next((record for record in self._records if record.uid == uid), None)


@dataclass
class FakeCredentials:
    real: int = ALICE.uid
    effective: int = ALICE.uid

    def real_uid(self) -> int:
        return self.real

    def effective_uid(self) -> int:
        return self.effective


@dataclass
class FixedHostname:
    name: str | None = "build01.example.com"
    lookups: int = 0

    def hostname(self) -> str | None:
        self.lookups += 1
        return self.name


class BrokenDefaults:
    """Defaults source whose table cannot be read."""

    def load(self) -> Mapping[str, Mapping[str, Any]]:
        raise FatalConfigurationError("unable to initialize sudoers default values")


@dataclass
class StaticDefaults:
    table: Mapping[str, Mapping[str, Any]]

    def load(self) -> Mapping[str, Mapping[str, Any]]:
        return self.table


class RecordingPolicyHost(NullPolicyHost):
    """Null policy host that records shadow database bracketing."""

    def __init__(self, *, envtables_ok: bool = True) -> None:
        self.envtables_ok = envtables_ok
        self.events: list[str] = []

    def init_envtables(self) -> bool:
        self.events.append("init_envtables")
        return self.envtables_ok

    def setspent(self) -> None:
        self.events.append("setspent")

    def endspent(self) -> None:
        self.events.append("endspent")


@dataclass
class RecordingExporter:
    """Exporter that records its calls and returns a fixed result."""

    result: bool = True
    calls: list[tuple[str, str, ExecutionContext]] = field(default_factory=list)

    def export(self, input_path: str, output_path: str, context: ExecutionContext) -> bool:
        self.calls.append((input_path, output_path, context))
        return self.result


def make_collaborators(**overrides: Any) -> Collaborators:
    """Return collaborators backed by fakes; keyword arguments replace single members."""

    values: dict[str, Any] = {
        "passwd": FakePasswd(),
        "credentials": FakeCredentials(),
        "hostname_source": FixedHostname(),
        "defaults_source": TOMLDefaultsSource(),
        "policy_host": RecordingPolicyHost(),
        "environ": {},
    }
    values.update(overrides)
    return Collaborators(**values)

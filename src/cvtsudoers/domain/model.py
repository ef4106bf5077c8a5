"""Domain value objects for a single conversion run.

Purpose
-------
Hold the immutable records that flow from argument parsing through context
synthesis into the exporter. The module performs no I/O.

Contents
--------
* :data:`STDIO_SENTINEL` – path meaning "standard input/output".
* :class:`OutputFormat` – supported structured output formats.
* :class:`InvocationConfig` – interpreted command line.
* :class:`Identity` – passwd record the policy is evaluated for.
* :class:`HostInfo` – canonical, short, and run host names.
* :class:`DefaultOption` / :class:`PolicyDefaults` – built-in option values.
* :class:`ExecutionContext` – aggregate handed to the exporter.

System Role
-----------
Built once per process by :mod:`cvtsudoers.application.context` and never
mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final, Iterator, Mapping

from .errors import UsageError

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..application.ports import PolicyHost

STDIO_SENTINEL: Final[str] = "-"
LOCALHOST: Final[str] = "localhost"

#: Kinds understood by the Defaults evaluator.
DEFAULT_KINDS: Final[frozenset[str]] = frozenset({"flag", "integer", "float", "mode", "string", "tuple", "list"})


class OutputFormat(str, Enum):
    """Structured output formats the exporter contract accepts."""

    JSON = "json"

    @classmethod
    def parse(cls, text: str) -> "OutputFormat":
        """Return the format matching *text* case-insensitively.

        Examples
        --------
        >>> OutputFormat.parse("JSON")
        <OutputFormat.JSON: 'json'>
        """

        lowered = text.strip().lower()
        for member in cls:
            if member.value == lowered:
                return member
        raise UsageError(f"unsupported output format {text}")


@dataclass(frozen=True, slots=True)
class InvocationConfig:
    """Interpreted command line for one run.

    ``"-"`` stands for standard input (``input_path``) or standard output
    (``output_path``).
    """

    input_path: str = STDIO_SENTINEL
    output_path: str = STDIO_SENTINEL
    output_format: OutputFormat = OutputFormat.JSON


@dataclass(frozen=True, slots=True)
class Identity:
    """Effective user record used as the subject of policy evaluation."""

    name: str
    uid: int
    gid: int
    home: str
    shell: str
    gecos: str = ""


@dataclass(frozen=True, slots=True)
class HostInfo:
    """Host names used while evaluating the policy.

    ``run_host``/``run_short_host`` mirror the host the command would run on;
    for a converter they always equal the local host.

    Examples
    --------
    >>> HostInfo.from_hostname("foo.example.com").short_host
    'foo'
    """

    full_host: str
    short_host: str
    run_host: str
    run_short_host: str

    @classmethod
    def from_hostname(cls, hostname: str) -> "HostInfo":
        short = hostname.split(".", 1)[0]
        return cls(full_host=hostname, short_host=short, run_host=hostname, run_short_host=short)

    @classmethod
    def localhost(cls) -> "HostInfo":
        return cls(full_host=LOCALHOST, short_host=LOCALHOST, run_host=LOCALHOST, run_short_host=LOCALHOST)


@dataclass(frozen=True, slots=True)
class DefaultOption:
    """One built-in Defaults entry.

    ``value`` is ``None`` when the option exists but is unset by default.
    ``choices`` lists the permitted words for ``tuple`` options.
    """

    name: str
    kind: str
    value: Any = None
    choices: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PolicyDefaults(MappingABC[str, DefaultOption]):
    """Immutable table of built-in Defaults keyed by option name.

    Examples
    --------
    >>> table = PolicyDefaults({"env_reset": DefaultOption("env_reset", "flag", True)})
    >>> table["env_reset"].value
    True
    >>> "lecture" in table
    False
    """

    _options: Mapping[str, DefaultOption] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_options", MappingProxyType(dict(self._options)))

    def __getitem__(self, key: str) -> DefaultOption:
        return self._options[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Identity, host, and defaults established before the policy is parsed."""

    identity: Identity
    host: HostInfo
    defaults: PolicyDefaults
    capabilities: "PolicyHost"


__all__ = [
    "STDIO_SENTINEL",
    "LOCALHOST",
    "DEFAULT_KINDS",
    "OutputFormat",
    "InvocationConfig",
    "Identity",
    "HostInfo",
    "DefaultOption",
    "PolicyDefaults",
    "ExecutionContext",
]

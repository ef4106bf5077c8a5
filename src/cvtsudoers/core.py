"""Composition root for ``cvtsudoers``.

Purpose
-------
Wire the OS adapters, the built-in Defaults table, the policy host, and the
exporter together, then run exactly one conversion.

Contents
--------
* :data:`GRAMMAR_VERSION` – sudoers grammar compatibility level.
* :data:`EXIT_SUCCESS` / :data:`EXIT_FAILURE` – process exit statuses.
* :class:`Collaborators` – everything the pipeline talks to.
* :func:`default_collaborators` – production wiring.
* :func:`select_exporter` – format dispatch.
* :func:`convert` – synthesize the context and invoke the exporter.

System Role
-----------
Called by :mod:`cvtsudoers.cli` once arguments are interpreted. Raises
:class:`~cvtsudoers.domain.errors.FatalConfigurationError` before any input is
opened when the context cannot be synthesized; otherwise returns the exit
status mirroring the exporter's result.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Final, Mapping

from .adapters.capabilities.null import NullPolicyHost
from .adapters.defaults.builtin import TOMLDefaultsSource
from .adapters.env.default import EnvSettingsLoader, Settings
from .adapters.exporters.json_exporter import JSONExporter
from .adapters.system.default import OsCredentials, PwdPasswdDatabase, SocketHostnameSource
from .application.context import synthesize_context
from .application.ports import (
    DefaultsSource,
    Exporter,
    HostnameSource,
    PasswdDatabase,
    PolicyHost,
    ProcessCredentials,
)
from .domain.errors import ConversionFailure, CvtSudoersError, FatalConfigurationError, UsageError
from .domain.model import ExecutionContext, InvocationConfig, OutputFormat
from .observability import log_debug, log_info, make_event

GRAMMAR_VERSION: Final[int] = 46
EXIT_SUCCESS: Final[int] = 0
EXIT_FAILURE: Final[int] = 1

# Exporter factories keyed by output format; each receives the run settings.
_EXPORTERS: dict[OutputFormat, Callable[[Settings], Exporter]] = {
    OutputFormat.JSON: lambda settings: JSONExporter(indent=settings.indent),
}


@dataclass(frozen=True, slots=True)
class Collaborators:
    """Adapters used for one run; swap any of them to embed or test the pipeline."""

    passwd: PasswdDatabase
    credentials: ProcessCredentials
    hostname_source: HostnameSource
    defaults_source: DefaultsSource
    policy_host: PolicyHost
    environ: Mapping[str, str]


def default_collaborators() -> Collaborators:
    """Return the production wiring backed by the running process."""

    return Collaborators(
        passwd=PwdPasswdDatabase(),
        credentials=OsCredentials(),
        hostname_source=SocketHostnameSource(),
        defaults_source=TOMLDefaultsSource(),
        policy_host=NullPolicyHost(),
        environ=os.environ,
    )


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read ``CVTSUDOERS_*`` settings from *environ* (default: ``os.environ``)."""

    return EnvSettingsLoader(environ=environ).load()


def select_exporter(output_format: OutputFormat, settings: Settings) -> Exporter:
    """Return the exporter registered for *output_format*."""

    try:
        factory = _EXPORTERS[output_format]
    except KeyError as exc:
        raise UsageError(f"unsupported output format {output_format.value}") from exc
    exporter = factory(settings)
    log_debug("exporter_selected", **make_event("dispatch", {"format": output_format.value}))
    return exporter


def build_context(collaborators: Collaborators) -> ExecutionContext:
    """Synthesize the execution context from *collaborators*."""

    return synthesize_context(
        passwd=collaborators.passwd,
        credentials=collaborators.credentials,
        hostname_source=collaborators.hostname_source,
        defaults_source=collaborators.defaults_source,
        policy_host=collaborators.policy_host,
        environ=collaborators.environ,
    )


def convert(
    invocation: InvocationConfig,
    *,
    settings: Settings | None = None,
    collaborators: Collaborators | None = None,
    exporter: Exporter | None = None,
) -> int:
    """Run one conversion and return the process exit status.

    Parameters
    ----------
    invocation:
        Interpreted command line.
    settings:
        Operator settings; read from the environment when omitted.
    collaborators:
        Adapter wiring; :func:`default_collaborators` when omitted.
    exporter:
        Explicit exporter overriding the format registry.

    Raises
    ------
    FatalConfigurationError
        Identity, defaults, or environment tables could not be established.
        Raised before the input is opened.
    """

    settings = settings if settings is not None else load_settings()
    collaborators = collaborators if collaborators is not None else default_collaborators()
    context = build_context(collaborators)
    exporter = exporter if exporter is not None else select_exporter(invocation.output_format, settings)

    host = context.capabilities
    host.setspent()
    try:
        succeeded = exporter.export(invocation.input_path, invocation.output_path, context)
    finally:
        host.endspent()

    status = EXIT_SUCCESS if succeeded else EXIT_FAILURE
    log_info(
        "conversion_finished",
        **make_event(
            "export",
            {"input": invocation.input_path, "output": invocation.output_path, "status": status},
        ),
    )
    return status


__all__ = [
    "GRAMMAR_VERSION",
    "EXIT_SUCCESS",
    "EXIT_FAILURE",
    "Collaborators",
    "ConversionFailure",
    "CvtSudoersError",
    "FatalConfigurationError",
    "UsageError",
    "default_collaborators",
    "load_settings",
    "select_exporter",
    "build_context",
    "convert",
]

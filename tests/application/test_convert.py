"""Exporter invocation: dispatch, exit status mapping, and ordering guarantees.

A recording exporter stands in for the JSON exporter so the invoker can be
checked without touching the filesystem.
"""

from __future__ import annotations

import pytest

from cvtsudoers import core
from cvtsudoers.adapters.env.default import Settings
from cvtsudoers.adapters.exporters.json_exporter import JSONExporter
from cvtsudoers.domain.errors import FatalConfigurationError
from cvtsudoers.domain.model import InvocationConfig, OutputFormat
from tests.support import ALICE, FakePasswd, RecordingExporter, RecordingPolicyHost, make_collaborators


@pytest.mark.parametrize("result, status", [(True, core.EXIT_SUCCESS), (False, core.EXIT_FAILURE)])
def test_exit_status_mirrors_exporter(result: bool, status: int) -> None:
    """The exporter's boolean maps to exit status 0 or 1."""

    exporter = RecordingExporter(result=result)
    code = core.convert(
        InvocationConfig(),
        settings=Settings(),
        collaborators=make_collaborators(),
        exporter=exporter,
    )
    assert code == status
    assert len(exporter.calls) == 1


def test_exporter_receives_paths_and_context() -> None:
    """The exporter gets both paths and the synthesized context exactly once."""

    exporter = RecordingExporter()
    core.convert(
        InvocationConfig(input_path="/etc/sudoers", output_path="out.json"),
        settings=Settings(),
        collaborators=make_collaborators(),
        exporter=exporter,
    )
    input_path, output_path, context = exporter.calls[0]
    assert (input_path, output_path) == ("/etc/sudoers", "out.json")
    assert context.identity == ALICE
    assert context.host.full_host == "build01.example.com"


def test_shadow_database_brackets_export() -> None:
    """The shadow database is opened before and closed after the export."""

    policy_host = RecordingPolicyHost()

    class _Exploding:
        def export(self, input_path, output_path, context):
            policy_host.events.append("export")
            raise RuntimeError("exporter crashed")

    with pytest.raises(RuntimeError):
        core.convert(
            InvocationConfig(),
            settings=Settings(),
            collaborators=make_collaborators(policy_host=policy_host),
            exporter=_Exploding(),
        )
    assert policy_host.events == ["init_envtables", "setspent", "export", "endspent"]


def test_missing_identity_prevents_export() -> None:
    """No exporter runs when the identity cannot be resolved."""

    exporter = RecordingExporter()
    with pytest.raises(FatalConfigurationError):
        core.convert(
            InvocationConfig(input_path="/nonexistent/sudoers"),
            settings=Settings(),
            collaborators=make_collaborators(passwd=FakePasswd(records=())),
            exporter=exporter,
        )
    assert exporter.calls == []


def test_registry_is_used_without_explicit_exporter(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without an explicit exporter the format registry supplies one."""

    exporter = RecordingExporter()
    monkeypatch.setitem(core._EXPORTERS, OutputFormat.JSON, lambda settings: exporter)
    code = core.convert(InvocationConfig(), settings=Settings(), collaborators=make_collaborators())
    assert code == core.EXIT_SUCCESS
    assert exporter.calls[0][:2] == ("-", "-")


def test_select_exporter_returns_json_exporter() -> None:
    """JSON dispatches to the built-in exporter with the configured indent."""

    exporter = core.select_exporter(OutputFormat.JSON, Settings(indent=2))
    assert isinstance(exporter, JSONExporter)


def test_load_settings_reads_given_environment() -> None:
    """Settings are read from the mapping passed in."""

    settings = core.load_settings({"CVTSUDOERS_INDENT": "0", "CVTSUDOERS_TRACEBACK": "true"})
    assert settings == Settings(log_level=None, traceback=True, indent=0)


def test_default_collaborators_use_system_adapters() -> None:
    """Production wiring uses the OS adapters and the null policy host."""

    collaborators = core.default_collaborators()
    assert collaborators.environ is core.os.environ
    assert collaborators.policy_host.user_is_exempt() is False

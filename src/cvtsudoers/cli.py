"""CLI adapter for ``cvtsudoers`` built on ``rich_click`` and ``lib_cli_exit_tools``.

Purpose
-------
Interpret ``cvtsudoers [-hV] [-f format] [-o output_file] [sudoers_file]``
into an :class:`~cvtsudoers.domain.model.InvocationConfig`, hand it to the
composition root, and turn the outcome into a process exit status.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :class:`PolicyCommand` – rich command whose usage errors exit with ``1``.
* :func:`cli` – the single command.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
Outermost layer. Help, version, and usage errors end the run here; fatal
configuration errors raised by :func:`cvtsudoers.core.convert` are reported as
``Error: <message>`` with status ``1``.
"""

from __future__ import annotations

import sys
from importlib import metadata
from typing import Any, Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from . import core
from .domain.errors import FatalConfigurationError
from .domain.model import STDIO_SENTINEL, InvocationConfig, OutputFormat
from .observability import configure_logging, log_error

PROG_NAME: Final[str] = "cvtsudoers"
CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
FORMAT_CHOICES: Final[tuple[str, ...]] = tuple(member.value for member in OutputFormat)
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` for source checkouts."""

    try:
        return metadata.version("cvtsudoers")
    except metadata.PackageNotFoundError:
        return "0.0.0"


class PolicyCommand(click.RichCommand):
    """Rich command that reports every usage error with exit status ``1``.

    Click defaults to ``2`` for usage errors; sudoers tools use ``1`` for all
    failures.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            exc.exit_code = core.EXIT_FAILURE
            raise


@click.command(
    name=PROG_NAME,
    cls=PolicyCommand,
    context_settings=CLICK_CONTEXT_SETTINGS,
)
@click.version_option(
    _resolve_version(),
    "-V",
    "--version",
    prog_name=PROG_NAME,
    message=f"%(prog)s version %(version)s\n%(prog)s grammar version {core.GRAMMAR_VERSION}",
    help="Display version information and exit",
)
@click.option(
    "-f",
    "--format",
    "output_format",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default=OutputFormat.JSON.value,
    is_eager=True,  # validated in argv order alongside -h and -V
    show_default=True,
    metavar="FORMAT",
    help="Specify output format (only JSON is supported)",
)
@click.option(
    "-o",
    "--output",
    "output_file",
    type=click.Path(dir_okay=False, allow_dash=True),
    default=STDIO_SENTINEL,
    metavar="OUTPUT_FILE",
    help="Write the converted sudoers to OUTPUT_FILE ('-' for standard output)",
)
@click.argument(
    "sudoers_file",
    required=False,
    default=STDIO_SENTINEL,
    type=click.Path(dir_okay=False, allow_dash=True),
)
@click.pass_context
def cli(ctx: click.Context, output_format: str, output_file: str, sudoers_file: str) -> None:
    """Convert between sudoers file formats.

    Reads SUDOERS_FILE (standard input when omitted or '-') and writes the
    policy as JSON. Identity, host names, and built-in Defaults are resolved
    the same way sudo would before the file is parsed.
    """

    invocation = InvocationConfig(
        input_path=sudoers_file,
        output_path=output_file,
        output_format=OutputFormat.parse(output_format),
    )
    try:
        settings = core.load_settings()
        _apply_settings(settings)
        status = core.convert(invocation, settings=settings)
    except FatalConfigurationError as exc:
        log_error("fatal_configuration", stage="setup", error=str(exc))
        raise click.ClickException(str(exc)) from exc
    ctx.exit(status)


def _apply_settings(settings: core.Settings) -> None:
    """Attach logging and traceback preferences from *settings*."""

    try:
        configure_logging(settings.log_level)
    except ValueError as exc:
        raise FatalConfigurationError(str(exc)) from exc
    lib_cli_exit_tools.config.traceback = settings.traceback
    lib_cli_exit_tools.config.traceback_force_color = settings.traceback


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI and return the exit code.

    Click runs in non-standalone mode so the status chosen by the command
    (``ctx.exit``) is returned rather than raised; unexpected exceptions are
    funnelled through ``lib_cli_exit_tools`` for printing and exit-code mapping.
    """

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            result: Any = cli.main(
                args=list(argv) if argv is not None else None,
                prog_name=PROG_NAME,
                standalone_mode=False,
            )
            return result if isinstance(result, int) else core.EXIT_SUCCESS
        except click.ClickException as exc:
            exc.show()
            return exc.exit_code
        except click.Abort:
            click.echo("Aborted!", err=True)
            return core.EXIT_FAILURE
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))

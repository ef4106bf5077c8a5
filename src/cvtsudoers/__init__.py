"""Public package surface for the sudoers-to-JSON converter.

``import cvtsudoers`` exposes the composition root so the pipeline can be
embedded without going through the command line; ``python -m cvtsudoers``
runs the CLI.
"""

from __future__ import annotations

from .core import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    GRAMMAR_VERSION,
    Collaborators,
    build_context,
    convert,
    default_collaborators,
    select_exporter,
)
from .domain.errors import ConversionFailure, CvtSudoersError, FatalConfigurationError, UsageError
from .domain.model import ExecutionContext, HostInfo, Identity, InvocationConfig, OutputFormat, PolicyDefaults
from .observability import configure_logging, get_logger

__all__ = [
    "EXIT_FAILURE",
    "EXIT_SUCCESS",
    "GRAMMAR_VERSION",
    "Collaborators",
    "ConversionFailure",
    "CvtSudoersError",
    "ExecutionContext",
    "FatalConfigurationError",
    "HostInfo",
    "Identity",
    "InvocationConfig",
    "OutputFormat",
    "PolicyDefaults",
    "UsageError",
    "build_context",
    "configure_logging",
    "convert",
    "default_collaborators",
    "get_logger",
    "select_exporter",
]

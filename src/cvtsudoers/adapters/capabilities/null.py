"""No-op policy host used when the evaluator runs inside the converter.

A converter only reads policy, so every capability answers with the most
restrictive neutral value: environment tables initialise trivially, nobody is
exempt, group plugins never match, and no network interfaces exist.
"""

from __future__ import annotations

from typing import Sequence

from ...domain.model import Identity


class NullPolicyHost:
    """Stub implementation of :class:`~cvtsudoers.application.ports.PolicyHost`."""

    def init_envtables(self) -> bool:
        return True

    def user_is_exempt(self) -> bool:
        return False

    def setspent(self) -> None:
        return None

    def endspent(self) -> None:
        return None

    def group_plugin_query(self, user: str, group: str, identity: Identity | None) -> bool:
        return False

    def get_interfaces(self) -> Sequence[str]:
        return ()

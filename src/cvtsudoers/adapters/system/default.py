"""Operating-system adapters for identity and hostname lookups.

Purpose
-------
Implement :class:`~cvtsudoers.application.ports.PasswdDatabase`,
:class:`~cvtsudoers.application.ports.ProcessCredentials`, and
:class:`~cvtsudoers.application.ports.HostnameSource` on top of :mod:`pwd`,
:mod:`os`, and :mod:`socket`. These are the only places the pipeline touches
the OS user and host databases.
"""

from __future__ import annotations

import os
import pwd
import socket

from ...domain.model import Identity
from ...observability import log_debug


def _identity_from_struct(entry: pwd.struct_passwd) -> Identity:
    return Identity(
        name=entry.pw_name,
        uid=entry.pw_uid,
        gid=entry.pw_gid,
        home=entry.pw_dir,
        shell=entry.pw_shell,
        gecos=entry.pw_gecos,
    )


class PwdPasswdDatabase:
    """Look up passwd records through the C library (NSS aware)."""

    def by_name(self, name: str) -> Identity | None:
        try:
            return _identity_from_struct(pwd.getpwnam(name))
        except KeyError:
            log_debug("passwd_miss", stage="identity", name=name)
            return None

    def by_uid(self, uid: int) -> Identity | None:
        try:
            return _identity_from_struct(pwd.getpwuid(uid))
        except KeyError:
            log_debug("passwd_miss", stage="identity", uid=uid)
            return None


class OsCredentials:
    """Report the running process's real and effective uid."""

    def real_uid(self) -> int:
        return os.getuid()

    def effective_uid(self) -> int:
        return os.geteuid()


class SocketHostnameSource:
    """Query :func:`socket.gethostname`, mapping failures to ``None``."""

    def hostname(self) -> str | None:
        try:
            name = socket.gethostname()
        except OSError as exc:
            log_debug("hostname_lookup_failed", stage="host", error=str(exc))
            return None
        return name or None

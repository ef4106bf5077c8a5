"""Built-in Defaults table loader.

Purpose
-------
Read the sudoers grammar's compiled-in Defaults from the TOML table shipped
inside the package (``defaults.toml``) or from an explicit path. Parsing lives
here; validating and typing the entries is the job of
:func:`cvtsudoers.application.context.init_defaults`.

Contents
--------
* :data:`DEFAULTS_RESOURCE` – file name of the packaged table.
* :class:`TOMLDefaultsSource` – implements
  :class:`~cvtsudoers.application.ports.DefaultsSource`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Final, Mapping

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

from ...domain.errors import FatalConfigurationError
from ...observability import log_debug, log_error

DEFAULTS_RESOURCE: Final[str] = "defaults.toml"
_PACKAGED_TABLE: Final[Path] = Path(__file__).with_name(DEFAULTS_RESOURCE)


class TOMLDefaultsSource:
    """Load the ``[defaults.<name>]`` tables from TOML.

    Examples
    --------
    >>> table = TOMLDefaultsSource().load()
    >>> table["env_reset"]["kind"]
    'flag'
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else None

    @property
    def origin(self) -> str:
        if self._path is not None:
            return str(self._path)
        return str(_PACKAGED_TABLE)

    def _read(self) -> bytes:
        if self._path is not None:
            return self._path.read_bytes()
        return _PACKAGED_TABLE.read_bytes()

    def load(self) -> Mapping[str, Mapping[str, Any]]:
        """Return the raw ``name -> entry`` mapping or raise ``FatalConfigurationError``."""

        try:
            payload = self._read()
            data = tomllib.loads(payload.decode("utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
            log_error("defaults_table_invalid", stage="defaults", path=self.origin, error=str(exc))
            raise FatalConfigurationError(f"unable to initialize sudoers default values: {exc}") from exc
        table = data.get("defaults")
        if not isinstance(table, Mapping) or not table:
            log_error("defaults_table_invalid", stage="defaults", path=self.origin, error="missing [defaults]")
            raise FatalConfigurationError("unable to initialize sudoers default values: no [defaults] table")
        log_debug("defaults_table_read", stage="defaults", path=self.origin, entries=len(table))
        return table

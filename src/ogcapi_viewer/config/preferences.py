# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
Persisted user preferences.

Two logical keys survive between sessions: the chosen server URL and the
chosen locale. `TomlPreferenceStore` keeps them in `preferences.toml` in the
user configuration directory; `MemoryPreferenceStore` keeps them in memory.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Final, Protocol

import platformdirs
import structlog
import tomli_w

from ogcapi_viewer.__about__ import __app_name__
from ogcapi_viewer.exceptions import PreferencesWriteError

log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)

SERVER_URL_KEY: Final[str] = "server_url"
LOCALE_KEY: Final[str] = "locale"
PREFERENCES_FILE_NAME: Final[str] = "preferences.toml"
_SECTION: Final[str] = "preferences"


class PreferenceStore(Protocol):
    """Key/value contract for persisted preferences."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryPreferenceStore:
    """Preference store that lives for the process only."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)


class TomlPreferenceStore:
    """
    Preference store backed by a TOML file.

    The file is read lazily on first access and written through on every
    `set`. A missing file means no preferences; a malformed one is reported in
    `internal_errors` and treated as empty so startup can continue.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or Path(platformdirs.user_config_dir(__app_name__, appauthor=False)) / PREFERENCES_FILE_NAME
        self._values: dict[str, str] | None = None
        self._internal_errors: list[str] = []

    @property
    def internal_errors(self) -> list[str]:
        return self._internal_errors

    def _load(self) -> dict[str, str]:
        if self._values is not None:
            return self._values

        self._values = {}
        if not self.path.exists():
            log.debug("No preferences file found", path=str(self.path))
            return self._values

        try:
            with self.path.open("rb") as f:
                document = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            self._internal_errors.append(f"Malformed preferences file '{self.path!s}': {e}")
            log.exception("Preferences file is malformed; ignoring it.", path=str(self.path), exc_info=e)
            return self._values
        except OSError as e:
            self._internal_errors.append(f"Could not read preferences file '{self.path!s}': {e}")
            log.exception("Could not read preferences file; ignoring it.", path=str(self.path), exc_info=e)
            return self._values

        section = document.get(_SECTION, {})
        if isinstance(section, dict):
            self._values = {k: v for k, v in section.items() if isinstance(v, str)}
        return self._values

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        """
        Store `value` under `key` and write the file.

        Raises:
            PreferencesWriteError: If the file cannot be written.
        """
        values = self._load()
        values[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("wb") as f:
                tomli_w.dump({_SECTION: values}, f)
        except OSError as e:
            self._internal_errors.append(f"Failed to write preferences to '{self.path!s}': {e}")
            log.exception("Failed to write preferences.", path=str(self.path), exc_info=e)
            msg = f"Could not write preferences file: {self.path!s}"
            raise PreferencesWriteError(msg) from e
        log.debug("Preference saved", key=key, path=str(self.path))

# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
SettingsManager module.

Loads the static configuration document of ogcapi-viewer.

The document names the default server, the supported locales (with their
query strings and text direction) and the logging setup. It is looked up in:
- an explicit location (a TOML path, or an http(s) URL serving JSON),
- `./config.toml`,
- the user and site configuration directories (platformdirs),
- the default shipped inside the package.

The document is loaded once and cached; `reload()` loads it again. Failing to
find or parse it raises `ConfigUnavailable`.
"""

from __future__ import annotations

import copy
import tomllib
from dataclasses import dataclass
from importlib.resources import files
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar, cast

import httpx
import platformdirs
import structlog

from ogcapi_viewer.__about__ import __app_config_name__, __app_name__
from ogcapi_viewer.core.models import LocaleSpec
from ogcapi_viewer.exceptions import ConfigUnavailable

if TYPE_CHECKING:
    from collections.abc import Mapping
    from importlib.resources.abc import Traversable

log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class StaticConfig:
    """The viewer-relevant part of the static configuration document."""

    server_url: str | None
    default_locale: str | None
    fallback_locale: str | None
    supported_locales: tuple[LocaleSpec, ...]


def _pick(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    return None


def parse_static_config(document: Mapping[str, Any]) -> StaticConfig:
    """
    Extract server and i18n settings from a configuration document.

    Both snake_case (TOML) and camelCase (JSON) keys are accepted.

    Raises:
        ConfigUnavailable: If a section has the wrong shape.
    """
    server = document.get("server") or {}
    i18n = document.get("i18n") or {}
    if not isinstance(server, dict) or not isinstance(i18n, dict):
        msg = "Configuration sections 'server' and 'i18n' must be tables"
        raise ConfigUnavailable(msg)

    raw_locales = _pick(i18n, "supported_locales", "supportedLocales") or []
    if not isinstance(raw_locales, list):
        msg = "'i18n.supported_locales' must be a list"
        raise ConfigUnavailable(msg)

    try:
        supported = tuple(LocaleSpec.from_dict(entry) for entry in raw_locales)
    except (AttributeError, TypeError, ValueError) as e:
        msg = f"Invalid entry in 'i18n.supported_locales': {e}"
        raise ConfigUnavailable(msg) from e

    return StaticConfig(
        server_url=server.get("url"),
        default_locale=_pick(i18n, "default_locale", "defaultLocale"),
        fallback_locale=_pick(i18n, "fallback_locale", "fallbackLocale"),
        supported_locales=supported,
    )


class SettingsManager:
    """
    Load and give access to the static configuration document.

    Attributes
    ----------
    DEFAULT_SETTINGS_LOCATIONS (ClassVar[list[Path]]):
        Ordered list of file paths checked when no explicit location is given.
    """

    APP_NAME: ClassVar[str] = __app_name__.lower()
    CONF_NAME: ClassVar[str] = __app_config_name__.lower()

    DEFAULT_SETTINGS_LOCATIONS: ClassVar[list[Path]] = [
        Path("config.toml"),
        Path(platformdirs.user_config_dir(APP_NAME, appauthor=False)) / CONF_NAME,
        Path(platformdirs.site_config_dir(APP_NAME, appauthor=False)) / CONF_NAME,
        Path(str(cast("Traversable", files(APP_NAME)).joinpath(CONF_NAME))),
    ]

    def __init__(self, location: str | Path | None = None, timeout: float = 10.0) -> None:
        """
        Initialize the manager; nothing is loaded until `load()` is awaited.

        Args:
            location: Explicit document location, a path or an http(s) URL.
            timeout: Timeout in seconds for fetching a remote document.
        """
        self.location = location
        self.timeout = timeout
        self._settings: dict[str, Any] | None = None
        self._loaded_from: str | None = None
        self._internal_errors: list[str] = []

    @property
    def loaded_from(self) -> str | None:
        """Return where the document was loaded from, if it was."""
        return self._loaded_from

    @property
    def internal_errors(self) -> list[str]:
        return self._internal_errors

    @property
    def is_loaded(self) -> bool:
        return self._settings is not None

    async def load(self) -> dict[str, Any]:
        """
        Return the configuration document, loading it on first use.

        Raises:
            ConfigUnavailable: If no document can be loaded.
        """
        if self._settings is None:
            self._internal_errors = []
            self._settings = await self._load_document()
        return copy.deepcopy(self._settings)

    async def reload(self) -> dict[str, Any]:
        log.debug("Reloading configuration document")
        self._settings = None
        self._loaded_from = None
        return await self.load()

    async def static_config(self) -> StaticConfig:
        """Load the document if needed and return its viewer settings."""
        return parse_static_config(await self.load())

    async def _load_document(self) -> dict[str, Any]:
        location = self.location
        if location is not None:
            location_str = str(location)
            if location_str.startswith(("http://", "https://")):
                return await self._fetch_remote(location_str)

            path = Path(location_str)
            if not path.exists():
                msg = f"Configuration file not found: {path!s}"
                self._internal_errors.append(msg)
                log.error("Specified configuration file does not exist.", path=str(path))
                raise ConfigUnavailable(msg)
            return self._load_from_file(path)

        log.info(
            "Searching for configuration file in predefined locations",
            locations=[str(p) for p in self.DEFAULT_SETTINGS_LOCATIONS],
        )
        for path_candidate in self.DEFAULT_SETTINGS_LOCATIONS:
            path = Path(path_candidate)
            if path.exists():
                return self._load_from_file(path)
            log.debug("Predefined config location does not exist", path=str(path))

        msg = "No configuration file found in any predefined location."
        self._internal_errors.append(msg)
        log.error(msg)
        raise ConfigUnavailable(msg)

    def _load_from_file(self, path: Path) -> dict[str, Any]:
        """
        Load the document from a TOML file.

        Raises: ConfigUnavailable
        """
        log.info("Loading configuration from file", path=str(path))
        try:
            with path.open("rb") as f:
                config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"TOML decoding failed for configuration file: {path!s}"
            self._internal_errors.append(msg)
            log.exception("TOML decoding failed for configuration file", path=str(path), exc_info=e)
            raise ConfigUnavailable(msg) from e
        except OSError as e:
            msg = f"Could not access file: {path!s}"
            self._internal_errors.append(f"OS error accessing config file '{path!s}': {e}")
            log.exception("Operating system error accessing configuration file", path=str(path), exc_info=e)
            raise ConfigUnavailable(msg) from e

        self._loaded_from = str(path)
        return config

    async def _fetch_remote(self, url: str) -> dict[str, Any]:
        """
        Fetch a JSON configuration document.

        Raises: ConfigUnavailable
        """
        log.info("Fetching configuration document", url=url)
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), follow_redirects=True) as client:
                response = await client.get(url)
                response.raise_for_status()
                document = response.json()
        except httpx.HTTPError as e:
            msg = f"Could not fetch configuration document: {url}"
            self._internal_errors.append(f"{msg}: {e}")
            log.exception("Fetching configuration document failed", url=url, exc_info=e)
            raise ConfigUnavailable(msg) from e
        except ValueError as e:
            msg = f"Configuration document is not valid JSON: {url}"
            self._internal_errors.append(msg)
            log.exception("Configuration document is not valid JSON", url=url, exc_info=e)
            raise ConfigUnavailable(msg) from e

        if not isinstance(document, dict):
            msg = f"Configuration document is not an object: {url}"
            self._internal_errors.append(msg)
            raise ConfigUnavailable(msg)

        self._loaded_from = url
        return document

    def get(self, section: str, key: str, default: T | None = None) -> T | Any:
        """
        Retrieve a value from the loaded document with optional default.

        Args:
        ----
            section (str): Section name in the configuration.
            key (str): Key within the section.
            default (Any, optional): Value to return if key is not found.
        """
        value = self.get_section(section).get(key)
        if value is not None:
            return value
        return default

    def get_section(self, section: str) -> dict[str, Any]:
        """Return a copy of `section`, or an empty dict if absent or not loaded."""
        if self._settings is None:
            return {}
        value = self._settings.get(section, {})
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    def as_dict(self) -> dict[str, Any]:
        """Return the full document."""
        return copy.deepcopy(self._settings or {})

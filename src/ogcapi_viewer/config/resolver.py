# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
Resolve the effective server URL and locale.

Server URL precedence: environment override, persisted preference, static
configuration default, `DEFAULT_SERVER_URL`.
Locale precedence: persisted preference (only when supported), static
configuration default, `FALLBACK_LOCALE`.

The precedence rules live in plain functions; `ConfigResolver` feeds them
from the environment, the preference store and the settings manager.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Literal
from urllib.parse import urlsplit

import structlog

from ogcapi_viewer.config.preferences import LOCALE_KEY, SERVER_URL_KEY
from ogcapi_viewer.core.models import EffectiveConfig, LocaleSpec
from ogcapi_viewer.exceptions import InvalidInput

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ogcapi_viewer.config.preferences import PreferenceStore
    from ogcapi_viewer.config.settings_manager import SettingsManager

log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)

SERVER_URL_ENV_VAR: Final[str] = "OGCAPI_VIEWER_SERVER_URL"
DEFAULT_SERVER_URL: Final[str] = "https://demo.pygeoapi.io/master"
FALLBACK_LOCALE: Final[str] = "en"
DEFAULT_SUPPORTED_LOCALES: Final[tuple[LocaleSpec, ...]] = (LocaleSpec(code=FALLBACK_LOCALE, query_param="lang=en"),)

PersistField = Literal["server_url", "locale"]


def canonical_server_url(url: str | None) -> str:
    """
    Return `url` without surrounding blanks and trailing slashes.

    Raises:
        InvalidInput: If the URL is empty or not an absolute http(s) URL.
    """
    candidate = (url or "").strip().rstrip("/")
    if not candidate:
        msg = "Server URL must not be empty"
        raise InvalidInput(msg)
    parts = urlsplit(candidate)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        msg = f"Server URL must be an absolute http(s) URL: {url!r}"
        raise InvalidInput(msg)
    return candidate


@dataclass(frozen=True)
class _Candidate:
    source: str
    value: str | None


def resolve_server_url(env_value: str | None, persisted_value: str | None, static_default: str | None) -> str:
    """Return the first usable server URL in precedence order."""
    candidates = (
        _Candidate("environment", env_value),
        _Candidate("persisted", persisted_value),
        _Candidate("static config", static_default),
    )
    for candidate in candidates:
        if not candidate.value or not candidate.value.strip():
            continue
        try:
            url = canonical_server_url(candidate.value)
        except InvalidInput as e:
            log.warning("Ignoring invalid server URL", source=candidate.source, error=str(e))
            continue
        log.debug("Server URL resolved", source=candidate.source, url=url)
        return url
    return DEFAULT_SERVER_URL


def resolve_locale(persisted_value: str | None, static_default: str | None, supported_codes: Iterable[str]) -> str:
    """Return the persisted locale if supported, else the static default, else `FALLBACK_LOCALE`."""
    if persisted_value and persisted_value in set(supported_codes):
        return persisted_value
    if persisted_value:
        log.warning("Ignoring unsupported persisted locale", locale=persisted_value)
    return static_default or FALLBACK_LOCALE


class ConfigResolver:
    """Build the `EffectiveConfig` at startup and persist later changes."""

    def __init__(
        self,
        settings: SettingsManager,
        preferences: PreferenceStore,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.settings = settings
        self.preferences = preferences
        self._environ = os.environ if environ is None else environ

    async def resolve(self) -> EffectiveConfig:
        """
        Resolve server URL and locale.

        Raises:
            ConfigUnavailable: If the static configuration document cannot be loaded.
        """
        static = await self.settings.static_config()
        supported = static.supported_locales or DEFAULT_SUPPORTED_LOCALES

        server_url = resolve_server_url(
            self._environ.get(SERVER_URL_ENV_VAR),
            self.preferences.get(SERVER_URL_KEY),
            static.server_url,
        )
        locale = resolve_locale(
            self.preferences.get(LOCALE_KEY),
            static.default_locale,
            (spec.code for spec in supported),
        )
        config = EffectiveConfig(
            server_url=server_url,
            locale=locale,
            supported_locales=supported,
            default_locale=static.default_locale or FALLBACK_LOCALE,
            fallback_locale=static.fallback_locale or FALLBACK_LOCALE,
        )
        log.info("Configuration resolved", server_url=config.server_url, locale=config.locale)
        return config

    def persist(self, field: PersistField, value: str) -> str:
        """
        Write `value` through to the preference store and return what was stored.

        Server URLs are stored in canonical form.

        Raises:
            InvalidInput: For an unknown field or an invalid server URL.
            PreferencesWriteError: If the store cannot be written.
        """
        if field == SERVER_URL_KEY:
            value = canonical_server_url(value)
        elif field != LOCALE_KEY:
            msg = f"Unknown preference field: {field!r}"
            raise InvalidInput(msg)
        self.preferences.set(field, value)
        log.debug("Preference persisted", field=field, value=value)
        return value

# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
translation_manager.py: LocaleManager for internationalization.

This module provides the LocaleManager class, which loads and caches message
catalogs per locale, tracks the active locale and its text direction, and
persists the chosen locale.

Catalogs are JSON objects mapping an English message to its translation. They
are loaded asynchronously through a catalog loader, at most once per locale
for the lifetime of the manager. Concurrent activations of a locale that is
still loading share the same load.

Loading and switching are separate steps: `ensure_loaded()` fills the cache,
`commit()` changes the active locale. `activate()` does both.

Typical usage:
--------------
>>> lm = LocaleManager(preferences=MemoryPreferenceStore())
>>> lm.configure(supported_locales, fallback_locale="en")
>>> await lm.activate("ar")
>>> lm.direction
<Direction.RTL: 'rtl'>
>>> lm.gettext("Collections")
'المجموعات'
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Mapping
from importlib.resources import files
from typing import TYPE_CHECKING, Final

import structlog

from ogcapi_viewer.__about__ import __app_name__
from ogcapi_viewer.config.preferences import LOCALE_KEY
from ogcapi_viewer.core.models import Direction, LocaleState
from ogcapi_viewer.exceptions import LocaleLoadFailed, PreferencesWriteError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ogcapi_viewer.config.preferences import PreferenceStore
    from ogcapi_viewer.core.models import LocaleSpec

log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)

CatalogLoader = Callable[[str], Awaitable[Mapping[str, str]]]

LOCALES_DIR_NAME: Final[str] = "locales"


def _read_package_catalog(locale: str) -> dict[str, str]:
    resource = files(__app_name__).joinpath(LOCALES_DIR_NAME, f"{locale}.json")
    try:
        data = json.loads(resource.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise LocaleLoadFailed(locale, "no catalog shipped for this locale") from e
    except (OSError, ValueError) as e:
        raise LocaleLoadFailed(locale, str(e)) from e
    if not isinstance(data, dict):
        raise LocaleLoadFailed(locale, "catalog is not a JSON object")
    return data


async def load_package_catalog(locale: str) -> dict[str, str]:
    """Read `locales/<locale>.json` shipped with the package, off the event loop."""
    return await asyncio.to_thread(_read_package_catalog, locale)


class LocaleManager:
    """
    Manage message catalogs and the active locale.

    Attributes
    ----------
    active_locale : str | None
        The locale currently in use, `None` before the first activation.
    direction : Direction
        Text direction of the active locale.
    """

    def __init__(
        self,
        loader: CatalogLoader | None = None,
        preferences: PreferenceStore | None = None,
    ) -> None:
        """
        Initialize LocaleManager attributes.

        Does NOT load any catalog yet.
        Call .configure() and then await .activate().
        """
        self._loader: CatalogLoader = loader or load_package_catalog
        self._preferences = preferences
        self._supported: dict[str, LocaleSpec] = {}
        self.fallback_locale: str | None = None
        self._catalogs: dict[str, dict[str, str]] = {}
        self._inflight: dict[str, asyncio.Task[dict[str, str]]] = {}
        self._active_locale: str | None = None
        self._direction: Direction = Direction.LTR
        self._internal_errors: list[str] = []

    @property
    def internal_errors(self) -> list[str]:
        """Return the list of internal errors."""
        return self._internal_errors

    @property
    def active_locale(self) -> str | None:
        return self._active_locale

    @property
    def direction(self) -> Direction:
        return self._direction

    @property
    def loaded_locales(self) -> frozenset[str]:
        return frozenset(self._catalogs)

    @property
    def state(self) -> LocaleState:
        return LocaleState(
            active_locale=self._active_locale,
            loaded_locales=self.loaded_locales,
            direction=self._direction,
        )

    def configure(self, supported_locales: Iterable[LocaleSpec], fallback_locale: str | None = None) -> None:
        """Install the supported-locale metadata used for text direction."""
        self._supported = {spec.code: spec for spec in supported_locales}
        self.fallback_locale = fallback_locale
        if self._active_locale is not None:
            self._direction = self.direction_of(self._active_locale)

    def is_loaded(self, locale: str) -> bool:
        return locale in self._catalogs

    def direction_of(self, locale: str) -> Direction:
        """Return the direction of `locale`; unknown locales are left-to-right."""
        spec = self._supported.get(locale)
        return spec.direction if spec else Direction.LTR

    async def activate(self, locale: str) -> None:
        """
        Make `locale` the active locale, loading its catalog if needed.

        Raises:
            LocaleLoadFailed: If the catalog cannot be loaded. The active
                locale is left unchanged.
        """
        await self.ensure_loaded(locale)
        self.commit(locale)

    def commit(self, locale: str) -> None:
        """
        Switch the active locale to an already loaded `locale` and persist it.

        Callers that may be superseded while a catalog loads await
        `ensure_loaded()` first and commit only if their result still counts.

        Raises:
            LocaleLoadFailed: If the catalog of `locale` is not loaded.
        """
        if not self.is_loaded(locale):
            raise LocaleLoadFailed(locale, "catalog is not loaded")
        previous = self._active_locale
        self._active_locale = locale
        self._direction = self.direction_of(locale)
        log.info("Locale activated", locale=locale, previous=previous, direction=str(self._direction))
        self._persist(locale)

    async def ensure_loaded(self, locale: str) -> dict[str, str]:
        """
        Load the catalog of `locale` unless it is cached.

        The active locale is not changed.

        Raises:
            LocaleLoadFailed: If the catalog cannot be loaded.
        """
        if self.is_loaded(locale):
            return self._catalogs[locale]
        task = self._inflight.get(locale)
        if task is None:
            task = asyncio.ensure_future(self._load(locale))
            self._inflight[locale] = task
        else:
            log.debug("Joining in-flight catalog load", locale=locale)
        # Shielded so a cancelled caller does not abort a load others wait on.
        return await asyncio.shield(task)

    async def _load(self, locale: str) -> dict[str, str]:
        log.debug("Loading message catalog", locale=locale)
        try:
            catalog = await self._loader(locale)
        except LocaleLoadFailed as e:
            self._handle_load_error(e, locale)
            raise
        except (OSError, ValueError) as e:
            self._handle_load_error(e, locale)
            raise LocaleLoadFailed(locale, str(e)) from e
        finally:
            self._inflight.pop(locale, None)

        if not isinstance(catalog, Mapping):
            error = LocaleLoadFailed(locale, "catalog is not a mapping")
            self._handle_load_error(error, locale)
            raise error

        self._catalogs.setdefault(locale, {str(k): str(v) for k, v in catalog.items()})
        log.info("Message catalog loaded", locale=locale, messages=len(self._catalogs[locale]))
        return self._catalogs[locale]

    def _handle_load_error(self, error: Exception, locale: str) -> None:
        msg = f"Failed to load catalog for '{locale}': {error}"
        self._internal_errors.append(msg)
        log.error("Failed to load message catalog.", locale=locale, error=str(error))

    def _persist(self, locale: str) -> None:
        if self._preferences is None:
            return
        try:
            self._preferences.set(LOCALE_KEY, locale)
        except PreferencesWriteError as e:
            self._internal_errors.append(f"Could not persist locale '{locale}': {e}")
            log.warning("Could not persist chosen locale.", locale=locale, error=str(e))

    def gettext(self, message: str) -> str:
        """Translate a single message using the active, then the fallback catalog."""
        for code in (self._active_locale, self.fallback_locale):
            if code is None:
                continue
            translated = self._catalogs.get(code, {}).get(message)
            if translated:
                return translated
        return message

    def translate(self, text: str) -> str:
        """Translate a given string."""
        return self.gettext(text)

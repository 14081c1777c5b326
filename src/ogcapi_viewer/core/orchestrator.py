# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
AppOrchestrator: owner of the viewer state.

The orchestrator owns the effective configuration, the collection list, the
active set and the color assignments, and drives the request sequence:

    start():             resolve config -> load and commit locale -> fetch collections
    change_locale():     load locale -> commit -> invalidate -> refetch
    update_server_url(): validate -> apply -> invalidate -> refetch
                         (rolls back to the last good server URL on failure)

States: uninitialized -> initializing -> ready | error. A reconfigure moves
back to initializing. Errors are caught at each operation boundary and turned
into the error state; they never reach the view layer.

Every attempt takes a new generation number. When an awaited step finishes,
its result is applied only if no newer attempt has started since. A catalog
that finishes loading for a superseded attempt is cached but not committed
as the active locale.
"""

from __future__ import annotations

import dataclasses
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Self

import structlog

from ogcapi_viewer.config.logging_bootstrap import bind_session_context
from ogcapi_viewer.config.preferences import SERVER_URL_KEY
from ogcapi_viewer.config.resolver import canonical_server_url
from ogcapi_viewer.core.active_set import ActiveSetManager
from ogcapi_viewer.core.classifier import classify
from ogcapi_viewer.core.colors import ColorAssigner
from ogcapi_viewer.core.models import (
    ClassifiedCollection,
    Collection,
    OrchestratorState,
    ViewState,
)
from ogcapi_viewer.exceptions import (
    ConfigUnavailable,
    InvalidInput,
    LocaleLoadFailed,
    PreferencesWriteError,
    ViewerError,
)

if TYPE_CHECKING:
    from types import TracebackType

    from ogcapi_viewer.config.resolver import ConfigResolver
    from ogcapi_viewer.config.translation_manager import LocaleManager
    from ogcapi_viewer.core.api_client import PygeoapiClient
    from ogcapi_viewer.core.models import EffectiveConfig

log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)


class AppOrchestrator:
    """
    Coordinate configuration, locale, collections, active set and colors.

    Use as an async context manager, or call `aclose()` when done:

        async with AppOrchestrator(resolver, locale_manager, client) as app:
            await app.start()
            app.toggle_collection("obs")
            view = app.snapshot()
    """

    def __init__(
        self,
        resolver: ConfigResolver,
        locale_manager: LocaleManager,
        client: PygeoapiClient,
        colors: ColorAssigner | None = None,
    ) -> None:
        self.resolver = resolver
        self.locale_manager = locale_manager
        self.client = client
        self.colors = colors or ColorAssigner()
        self.active_set = ActiveSetManager(self.colors)

        self._state = OrchestratorState.UNINITIALIZED
        self._config: EffectiveConfig | None = None
        self._last_good_server_url: str | None = None
        self._collections: tuple[Collection, ...] = ()
        self._loading = False
        self._error: str | None = None
        self._generation = 0

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the HTTP client; pending results are discarded."""
        self._generation += 1
        self._loading = False
        await self.client.close()

    # --- Read model ---

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def config(self) -> EffectiveConfig | None:
        return self._config

    @property
    def collections(self) -> tuple[Collection, ...]:
        return self._collections

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        return self._error

    def snapshot(self) -> ViewState:
        """Return a read-only view of the current state."""
        return ViewState(
            state=self._state,
            config=self._config,
            locale=self.locale_manager.state,
            collections=tuple(ClassifiedCollection(c, classify(c)) for c in self._collections),
            active_ids=self.active_set.ids,
            colors=MappingProxyType(self.colors.assignments),
            loading=self._loading,
            error=self._error,
        )

    # --- Lifecycle and mutators ---

    async def start(self) -> ViewState:
        """Resolve configuration, activate the locale and fetch collections."""
        if self._config is not None or self._loading:
            log.warning("Orchestrator already started; ignoring start request.", state=str(self._state))
            return self.snapshot()

        generation = self._begin_attempt()
        try:
            config = await self.resolver.resolve()
            if not self._is_current(generation):
                return self.snapshot()
            self.locale_manager.configure(config.supported_locales, config.fallback_locale)
            config = await self._load_with_fallback(config)
            if not self._is_current(generation):
                return self.snapshot()
            self.locale_manager.commit(config.locale)
            self._set_config(config)
            self._last_good_server_url = config.server_url
            collections = await self._fetch(config)
        except ViewerError as e:
            if self._is_current(generation):
                self._fail(e)
            return self.snapshot()

        if self._is_current(generation):
            self._apply(collections)
        return self.snapshot()

    async def change_locale(self, locale: str) -> ViewState:
        """
        Switch to `locale` and refetch collections for it.

        A catalog load failure leaves the previous locale active. A fetch
        failure after the switch keeps the new locale. A server change still
        in flight is superseded: the refetch goes to the last good server.
        """
        if self._config is None:
            self._fail(ConfigUnavailable("Configuration has not been resolved"))
            return self.snapshot()
        code = (locale or "").strip()
        if not code:
            self._fail(InvalidInput("Locale must not be empty"))
            return self.snapshot()

        generation = self._begin_attempt()
        self._drop_unconfirmed_server()
        try:
            await self.locale_manager.ensure_loaded(code)
        except LocaleLoadFailed as e:
            if self._is_current(generation):
                self._fail(e)
            return self.snapshot()
        if not self._is_current(generation):
            return self.snapshot()

        self.locale_manager.commit(code)
        self._set_config(dataclasses.replace(self._config, locale=code))
        self._invalidate()
        config = self._config
        try:
            collections = await self._fetch(config)
        except ViewerError as e:
            if self._is_current(generation):
                self._fail(e)
            return self.snapshot()

        if self._is_current(generation):
            self._apply(collections)
        return self.snapshot()

    async def update_server_url(self, url: str) -> ViewState:
        """
        Point the viewer at another server and refetch collections.

        Invalid input is rejected before any state changes. If the new server
        cannot be fetched, the server URL rolls back to the last one that
        served a successful fetch.
        """
        if self._config is None:
            self._fail(ConfigUnavailable("Configuration has not been resolved"))
            return self.snapshot()
        try:
            server_url = canonical_server_url(url)
        except InvalidInput as e:
            self._fail(e)
            return self.snapshot()

        generation = self._begin_attempt()
        rollback_url = self._last_good_server_url or self._config.server_url
        self._set_config(dataclasses.replace(self._config, server_url=server_url))
        self._invalidate()
        config = self._config
        try:
            collections = await self._fetch(config)
        except ViewerError as e:
            if self._is_current(generation):
                log.warning("Rolling back server URL", failed=server_url, restored=rollback_url)
                self._set_config(dataclasses.replace(self._config, server_url=rollback_url))
                self._fail(e)
            return self.snapshot()

        if self._is_current(generation):
            self._last_good_server_url = server_url
            self._persist_server_url(server_url)
            self._apply(collections)
        return self.snapshot()

    def toggle_collection(self, collection_id: str) -> ViewState:
        """Toggle `collection_id`; ids not in the current list are ignored."""
        if collection_id not in {c.id for c in self._collections}:
            log.warning("Ignoring toggle of unknown collection", collection_id=collection_id)
            return self.snapshot()
        self.active_set.toggle(collection_id)
        return self.snapshot()

    # --- Pass-through reads against the current server ---

    def _server_url(self) -> str:
        if self._config is None:
            msg = "Configuration has not been resolved"
            raise ConfigUnavailable(msg)
        return self._config.server_url

    async def collection_details(self, collection_id: str) -> dict[str, Any]:
        config = self._config
        query = config.query_for(config.locale) if config else None
        return await self.client.fetch_collection(collection_id, query, base_url=self._server_url())

    async def features(self, collection_id: str, **params: Any) -> dict[str, Any]:
        return await self.client.fetch_items(collection_id, base_url=self._server_url(), **params)

    async def queryables(self, collection_id: str) -> dict[str, Any]:
        return await self.client.fetch_queryables(collection_id, base_url=self._server_url())

    async def tileset(self, collection_id: str) -> dict[str, Any]:
        return await self.client.fetch_tileset(collection_id, base_url=self._server_url())

    def wms_url(self, collection_id: str) -> str:
        return self.client.wms_url(collection_id, base_url=self._server_url())

    def tile_url(self, collection_id: str, tile_format: str = "mvt") -> str:
        return self.client.tile_url(collection_id, tile_format, base_url=self._server_url())

    # --- Internals ---

    def _begin_attempt(self) -> int:
        self._generation += 1
        self._state = OrchestratorState.INITIALIZING
        self._loading = True
        self._error = None
        return self._generation

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            log.debug("Discarding stale result", generation=generation, current=self._generation)
            return False
        return True

    def _set_config(self, config: EffectiveConfig) -> None:
        self._config = config
        bind_session_context(server_url=config.server_url, locale=config.locale)

    def _invalidate(self) -> None:
        self.active_set.reset()
        self.colors.reset()
        self._collections = ()

    def _drop_unconfirmed_server(self) -> None:
        confirmed = self._last_good_server_url
        if confirmed and self._config.server_url != confirmed:
            log.info("Superseding pending server change", pending=self._config.server_url, restored=confirmed)
            self._set_config(dataclasses.replace(self._config, server_url=confirmed))

    async def _load_with_fallback(self, config: EffectiveConfig) -> EffectiveConfig:
        try:
            await self.locale_manager.ensure_loaded(config.locale)
        except LocaleLoadFailed:
            fallback = config.fallback_locale
            if fallback == config.locale:
                raise
            log.warning("Falling back to fallback locale", locale=config.locale, fallback=fallback)
            await self.locale_manager.ensure_loaded(fallback)
            return dataclasses.replace(config, locale=fallback)
        return config

    async def _fetch(self, config: EffectiveConfig) -> tuple[Collection, ...]:
        raw = await self.client.fetch_collections(config.query_for(config.locale), base_url=config.server_url)
        return tuple(Collection.from_dict(item) for item in raw)

    def _apply(self, collections: tuple[Collection, ...]) -> None:
        self._collections = collections
        known = {c.id for c in collections}
        # Keep the active set within the fetched list.
        for collection_id in self.active_set.ids:
            if collection_id not in known:
                self.active_set.toggle(collection_id)
        self._state = OrchestratorState.READY
        self._loading = False
        self._error = None
        log.info("Collections loaded", count=len(collections))

    def _fail(self, error: ViewerError) -> None:
        self._state = OrchestratorState.ERROR
        self._loading = False
        self._error = str(error)
        log.error("Viewer operation failed", error_type=type(error).__name__, error=str(error))

    def _persist_server_url(self, server_url: str) -> None:
        try:
            self.resolver.persist(SERVER_URL_KEY, server_url)
        except PreferencesWriteError as e:
            log.warning("Could not persist server URL.", server_url=server_url, error=str(e))

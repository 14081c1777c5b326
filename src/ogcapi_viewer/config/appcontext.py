# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
ogcapi-viewer Application Context Module.

The `AppContext` bundles the long-lived collaborators of one viewer session:
the settings manager (static configuration document), the preference store,
the locale manager and the HTTP client. It builds the `AppOrchestrator` from
them, and gives components a uniform way to get loggers and translations.

Nothing here is a module-level singleton: each CLI invocation creates its
own context.

Usage Example:
--------------
```python
context = AppContext.create(config_location="viewer.toml")
async with context.create_orchestrator() as orchestrator:
    view = await orchestrator.start()
    logger = context.get_module_logger(__name__)
    logger.info(context.gettext("Collections"), count=len(view.collections))
```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from ogcapi_viewer.config.preferences import PreferenceStore, TomlPreferenceStore
from ogcapi_viewer.config.resolver import DEFAULT_SERVER_URL, ConfigResolver
from ogcapi_viewer.config.settings_manager import SettingsManager
from ogcapi_viewer.config.translation_manager import LocaleManager
from ogcapi_viewer.core.api_client import PygeoapiClient
from ogcapi_viewer.core.orchestrator import AppOrchestrator

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    import httpx
    from structlog.stdlib import BoundLogger


@dataclass
class AppContext:
    """
    Shared collaborators of one viewer session.

    Attributes
    ----------
    settings : SettingsManager
        Loader of the static configuration document.
    preferences : PreferenceStore
        Persisted server URL and locale.
    translator : LocaleManager
        Message catalogs and the active locale.
    client : PygeoapiClient
        HTTP client for the OGC API server.
    environ : Mapping[str, str] | None
        Environment used for the server URL override; `None` means `os.environ`.
    """

    settings: SettingsManager
    preferences: PreferenceStore
    translator: LocaleManager
    client: PygeoapiClient
    environ: Mapping[str, str] | None = field(default=None)

    def get_module_logger(self, name: str) -> BoundLogger:
        """Return a `structlog` logger for module `name`."""
        return structlog.get_logger(name)

    def gettext(self, message: str) -> str:
        """Translate `message` with the active locale."""
        return self.translator.gettext(message)

    def create_orchestrator(self) -> AppOrchestrator:
        """Build an orchestrator wired to this context's collaborators."""
        resolver = ConfigResolver(self.settings, self.preferences, environ=self.environ)
        return AppOrchestrator(resolver, self.translator, self.client)

    @classmethod
    def create(
        cls,
        *,
        config_location: str | Path | None = None,
        preferences: PreferenceStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> AppContext:
        """
        Create a context with the default collaborators.

        Parameters
        ----------
        config_location : str | Path | None
            Explicit configuration document (path or URL).
        preferences : PreferenceStore | None
            Preference store; defaults to the TOML file in the user config dir.
        transport : httpx.AsyncBaseTransport | None
            Optional httpx transport for the API client.
        environ : Mapping[str, str] | None
            Environment for the server URL override.
        """
        preferences = preferences if preferences is not None else TomlPreferenceStore()
        return cls(
            settings=SettingsManager(config_location),
            preferences=preferences,
            translator=LocaleManager(preferences=preferences),
            client=PygeoapiClient(DEFAULT_SERVER_URL, transport=transport),
            environ=environ,
        )

# conftest.py
# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import pytest
import structlog
import tomli_w

from ogcapi_viewer.config.preferences import MemoryPreferenceStore
from ogcapi_viewer.config.resolver import ConfigResolver
from ogcapi_viewer.config.settings_manager import SettingsManager
from ogcapi_viewer.config.translation_manager import LocaleManager
from ogcapi_viewer.core.api_client import PygeoapiClient
from ogcapi_viewer.core.orchestrator import AppOrchestrator
from ogcapi_viewer.exceptions import LocaleLoadFailed

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from pytest_mock import MockerFixture
    from structlog.typing import EventDict


DEMO_SERVER = "https://demo.example/master"

CATALOGS: dict[str, dict[str, str]] = {
    "en": {"Collections": "Collections"},
    "ar": {"Collections": "المجموعات"},
    "fr": {"Collections": "Collections (fr)"},
}


# --- Core Logging Setup Fixture ---
# Runs before application code gets its first logger so that
# `structlog.get_logger()` returns a concrete BoundLogger.
@pytest.fixture(autouse=True)
def structlog_base_config() -> Generator[None, None, None]:
    """Set up and tear down a structlog configuration for each test function."""
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.NOTSET)

    test_handler = logging.StreamHandler(sys.stdout)
    test_handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    root_logger.addHandler(test_handler)
    root_logger.setLevel(logging.DEBUG)

    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    yield

    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.NOTSET)


# --- Logging Assertion Fixtures ---
@pytest.fixture
def caplog_structlog() -> Generator[list[EventDict], None, None]:
    """Capture `structlog` events for the duration of a test."""
    with structlog.testing.capture_logs() as captured_events:
        yield captured_events


@pytest.fixture
def assert_log_contains() -> Callable[..., None]:
    """Return a helper asserting that captured events contain a message."""

    def _assert(log: list[EventDict], text: str, level: str | None = None) -> None:
        matches = [
            entry
            for entry in log
            if text in entry["event"] and (level is None or entry["log_level"].lower() == level.lower())
        ]
        assert matches, f"No log entry found with text '{text}' and level '{level}'"

    return _assert


# --- Environment Isolation Fixture ---
@pytest.fixture
def isolated_test_env(mocker: MockerFixture, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """
    Isolate configuration lookups in `tmp_path`.

    - platformdirs user/site config dirs point below `tmp_path`.
    - The working directory is an empty directory, so no `config.toml` is found there.
    - `SettingsManager.DEFAULT_SETTINGS_LOCATIONS` only lists these temporary paths.
    """
    test_cwd = tmp_path / "test_run_cwd"
    test_cwd.mkdir()
    monkeypatch.chdir(test_cwd)

    user_config = tmp_path / "mock_user_config" / "ogcapi_viewer"
    site_config = tmp_path / "mock_site_config" / "ogcapi_viewer"
    user_config.mkdir(parents=True)
    mocker.patch("platformdirs.user_config_dir", return_value=str(user_config))
    mocker.patch("platformdirs.site_config_dir", return_value=str(site_config))
    monkeypatch.setattr(
        SettingsManager,
        "DEFAULT_SETTINGS_LOCATIONS",
        [
            Path("config.toml"),
            user_config / SettingsManager.CONF_NAME,
            site_config / SettingsManager.CONF_NAME,
        ],
    )
    return {"user_config_dir": user_config, "site_config_dir": site_config, "current_working_dir": test_cwd}


# --- Configuration documents ---
def make_document(server_url: str | None = DEMO_SERVER, **i18n: Any) -> dict[str, Any]:
    document: dict[str, Any] = {
        "i18n": {
            "default_locale": "en",
            "fallback_locale": "en",
            "supported_locales": [
                {"code": "en", "query_param": "lang=en", "direction": "ltr"},
                {"code": "ar", "query_param": "lang=ar", "direction": "rtl"},
                {"code": "fr", "query_param": "lang=fr", "direction": "ltr"},
            ],
            **i18n,
        },
        "logger": {"level": "INFO"},
    }
    if server_url is not None:
        document["server"] = {"url": server_url}
    return document


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """A valid configuration document on disk."""
    path = tmp_path / "viewer.toml"
    with path.open("wb") as f:
        tomli_w.dump(make_document(), f)
    return path


# --- Catalog loading ---
class FakeCatalogLoader:
    """Async catalog loader that counts calls and can be held open."""

    def __init__(self, catalogs: dict[str, dict[str, str]] | None = None) -> None:
        self.catalogs = catalogs if catalogs is not None else dict(CATALOGS)
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None
        self.gates: dict[str, asyncio.Event] = {}

    def hold(self, locale: str) -> asyncio.Event:
        """Hold loads of `locale` until the returned event is set."""
        gate = asyncio.Event()
        self.gates[locale] = gate
        return gate

    async def __call__(self, locale: str) -> dict[str, str]:
        self.calls.append(locale)
        gate = self.gates.get(locale, self.gate)
        if gate is not None:
            await gate.wait()
        if locale not in self.catalogs:
            raise LocaleLoadFailed(locale, "no such catalog")
        return self.catalogs[locale]


@pytest.fixture
def catalog_loader() -> FakeCatalogLoader:
    return FakeCatalogLoader()


# --- Fake OGC API server ---
def collection_doc(collection_id: str, **extra: Any) -> dict[str, Any]:
    links = extra.pop(
        "links",
        [{"rel": "items", "type": "application/geo+json", "href": f"/collections/{collection_id}/items"}],
    )
    return {"id": collection_id, "title": collection_id.upper(), "links": links, **extra}


class FakeServer:
    """
    In-process pygeoapi stand-in served through `httpx.MockTransport`.

    Collections are registered per host. A host can be made to fail, or be
    held by an `asyncio.Event` gate so tests control when responses arrive.
    """

    def __init__(self) -> None:
        self.collections: dict[str, list[dict[str, Any]]] = {}
        self.failing: set[str] = set()
        self.unreachable: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self.requests: list[httpx.Request] = []

    def add(self, host: str, *collection_ids: str) -> None:
        self.collections[host] = [collection_doc(cid) for cid in collection_ids]

    def hold(self, host: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[host] = gate
        return gate

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        gate = self.gates.get(host)
        if gate is not None:
            await gate.wait()
        if host in self.unreachable:
            msg = f"Name or service not known: {host}"
            raise httpx.ConnectError(msg, request=request)
        if host in self.failing:
            return httpx.Response(503, json={"description": "unavailable"})

        path = request.url.path
        if path.endswith("/collections"):
            return httpx.Response(200, json={"collections": self.collections.get(host, []), "links": []})
        if path.endswith("/items"):
            return httpx.Response(200, json={"type": "FeatureCollection", "features": [], "numberMatched": 0})
        return httpx.Response(404, json={"description": "not found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_server() -> FakeServer:
    server = FakeServer()
    server.add("demo.example", "lakes", "obs", "dem")
    return server


@pytest.fixture
def memory_preferences() -> MemoryPreferenceStore:
    return MemoryPreferenceStore()


@pytest.fixture
def make_orchestrator(
    config_file: Path,
    fake_server: FakeServer,
    catalog_loader: FakeCatalogLoader,
    memory_preferences: MemoryPreferenceStore,
) -> Callable[..., AppOrchestrator]:
    """Build an orchestrator wired to the fake server and catalog loader."""

    def _make(environ: dict[str, str] | None = None, location: Path | str | None = None) -> AppOrchestrator:
        resolver = ConfigResolver(
            SettingsManager(location or config_file), memory_preferences, environ=environ or {}
        )
        locale_manager = LocaleManager(loader=catalog_loader, preferences=memory_preferences)
        client = PygeoapiClient(DEMO_SERVER, transport=fake_server.transport())
        return AppOrchestrator(resolver, locale_manager, client)

    return _make


@pytest.fixture
def document_factory() -> Callable[..., dict[str, Any]]:
    return make_document


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Return a helper that writes a document to a TOML file."""

    def _write(document: dict[str, Any], name: str = "custom.toml") -> Path:
        path = tmp_path / name
        with path.open("wb") as f:
            tomli_w.dump(document, f)
        return path

    return _write

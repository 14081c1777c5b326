# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""Tests for server URL and locale resolution."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from ogcapi_viewer.config.preferences import LOCALE_KEY, SERVER_URL_KEY, MemoryPreferenceStore
from ogcapi_viewer.config.resolver import (
    DEFAULT_SERVER_URL,
    DEFAULT_SUPPORTED_LOCALES,
    FALLBACK_LOCALE,
    SERVER_URL_ENV_VAR,
    ConfigResolver,
    canonical_server_url,
    resolve_locale,
    resolve_server_url,
)
from ogcapi_viewer.config.settings_manager import SettingsManager
from ogcapi_viewer.exceptions import ConfigUnavailable, InvalidInput
from tests.unit.conftest import DEMO_SERVER

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path
    from typing import Any


class TestCanonicalServerUrl:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("https://demo.example/master", "https://demo.example/master"),
            ("  https://demo.example/master/  ", "https://demo.example/master"),
            ("http://localhost:5000//", "http://localhost:5000"),
        ],
    )
    def test_canonical_form(self, raw: str, expected: str) -> None:
        assert canonical_server_url(raw) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [None, "", "   ", "demo.example", "ftp://demo.example", "https://"])
    def test_invalid_urls(self, raw: str | None) -> None:
        with pytest.raises(InvalidInput):
            canonical_server_url(raw)


class TestResolveServerUrl:
    @pytest.mark.unit
    def test_environment_wins(self) -> None:
        assert resolve_server_url("https://env.example", "https://p.example", "https://s.example") == "https://env.example"

    @pytest.mark.unit
    def test_persisted_before_static(self) -> None:
        assert resolve_server_url(None, "https://p.example/", "https://s.example") == "https://p.example"

    @pytest.mark.unit
    def test_blank_values_are_skipped(self) -> None:
        assert resolve_server_url("  ", "", "https://s.example") == "https://s.example"

    @pytest.mark.unit
    def test_invalid_values_are_skipped(self) -> None:
        assert resolve_server_url("not-a-url", None, "https://s.example") == "https://s.example"

    @pytest.mark.unit
    def test_default_when_nothing_is_set(self) -> None:
        assert resolve_server_url(None, None, None) == DEFAULT_SERVER_URL


class TestResolveLocale:
    @pytest.mark.unit
    def test_supported_persisted_locale_wins(self) -> None:
        assert resolve_locale("ar", "en", ["en", "ar"]) == "ar"

    @pytest.mark.unit
    def test_unsupported_persisted_locale_is_ignored(self) -> None:
        assert resolve_locale("de", "ar", ["en", "ar"]) == "ar"

    @pytest.mark.unit
    def test_fallback_when_nothing_is_set(self) -> None:
        assert resolve_locale(None, None, []) == FALLBACK_LOCALE


class TestConfigResolver:
    @pytest.mark.unit
    def test_resolve_from_document(self, config_file: Path) -> None:
        resolver = ConfigResolver(SettingsManager(config_file), MemoryPreferenceStore(), environ={})
        config = asyncio.run(resolver.resolve())
        assert config.server_url == DEMO_SERVER
        assert config.locale == "en"
        assert config.query_for("ar") == "lang=ar"
        assert config.query_for("xx") == ""

    @pytest.mark.unit
    def test_resolve_with_environment_and_preferences(self, config_file: Path) -> None:
        preferences = MemoryPreferenceStore({SERVER_URL_KEY: "https://p.example", LOCALE_KEY: "fr"})
        resolver = ConfigResolver(
            SettingsManager(config_file), preferences, environ={SERVER_URL_ENV_VAR: "https://env.example/"}
        )
        config = asyncio.run(resolver.resolve())
        assert config.server_url == "https://env.example"
        assert config.locale == "fr"

    @pytest.mark.unit
    def test_document_without_locales_uses_defaults(
        self, write_config: Callable[..., Path], document_factory: Callable[..., dict[str, Any]]
    ) -> None:
        document = document_factory(server_url=None, supported_locales=[], default_locale="", fallback_locale="")
        resolver = ConfigResolver(SettingsManager(write_config(document)), MemoryPreferenceStore(), environ={})
        config = asyncio.run(resolver.resolve())
        assert config.server_url == DEFAULT_SERVER_URL
        assert config.supported_locales == DEFAULT_SUPPORTED_LOCALES
        assert config.locale == FALLBACK_LOCALE
        assert config.fallback_locale == FALLBACK_LOCALE

    @pytest.mark.unit
    def test_unavailable_document_raises(self, tmp_path: Path) -> None:
        resolver = ConfigResolver(SettingsManager(tmp_path / "absent.toml"), MemoryPreferenceStore(), environ={})
        with pytest.raises(ConfigUnavailable):
            asyncio.run(resolver.resolve())

    @pytest.mark.unit
    def test_persist_stores_canonical_server_url(self, config_file: Path) -> None:
        preferences = MemoryPreferenceStore()
        resolver = ConfigResolver(SettingsManager(config_file), preferences, environ={})
        assert resolver.persist(SERVER_URL_KEY, "https://p.example/ ") == "https://p.example"
        assert resolver.persist(LOCALE_KEY, "ar") == "ar"
        assert preferences.as_dict() == {SERVER_URL_KEY: "https://p.example", LOCALE_KEY: "ar"}

    @pytest.mark.unit
    def test_persist_rejects_bad_input(self, config_file: Path) -> None:
        preferences = MemoryPreferenceStore()
        resolver = ConfigResolver(SettingsManager(config_file), preferences, environ={})
        with pytest.raises(InvalidInput):
            resolver.persist("theme", "dark")  # type: ignore[arg-type]
        with pytest.raises(InvalidInput):
            resolver.persist(SERVER_URL_KEY, "ftp://x")
        assert preferences.as_dict() == {}

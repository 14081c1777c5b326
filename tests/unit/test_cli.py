# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""Tests for the command line interface."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from ogcapi_viewer import cli
from ogcapi_viewer.__about__ import __version__
from ogcapi_viewer.config.appcontext import AppContext
from ogcapi_viewer.config.preferences import MemoryPreferenceStore
from ogcapi_viewer.exceptions import LogDirectoryError, LogHandlerError
from tests.unit.conftest import DEMO_SERVER

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture

    from tests.unit.conftest import FakeServer


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def wired_context(mocker: MockerFixture, config_file: Path, fake_server: FakeServer) -> None:
    """Point the CLI at the fake server and keep the test logging setup in place."""

    def _build(config_location: str | None) -> AppContext:
        return AppContext.create(
            config_location=config_location or config_file,
            preferences=MemoryPreferenceStore(),
            transport=fake_server.transport(),
            environ={},
        )

    mocker.patch.object(cli, "build_context", side_effect=_build)
    mocker.patch.object(cli, "_configure_logging")


class TestShow:
    @pytest.mark.unit
    def test_lists_collections(self, runner: CliRunner) -> None:
        result = runner.invoke(cli.app, ["show"])
        assert result.exit_code == 0, result.output
        assert DEMO_SERVER in result.output
        for collection_id in ("lakes", "obs", "dem"):
            assert collection_id in result.output
        assert "feature" in result.output

    @pytest.mark.unit
    def test_toggle_shows_color(self, runner: CliRunner) -> None:
        result = runner.invoke(cli.app, ["show", "--toggle", "lakes", "-t", "obs"])
        assert result.exit_code == 0, result.output
        assert "#e6194b" in result.output
        assert "#3cb44b" in result.output

    @pytest.mark.unit
    def test_locale_switch(self, runner: CliRunner, fake_server: FakeServer) -> None:
        result = runner.invoke(cli.app, ["show", "--locale", "ar"])
        assert result.exit_code == 0, result.output
        assert "rtl" in result.output
        assert "المجموعات" in result.output
        assert fake_server.requests[-1].url.query == b"lang=ar"

    @pytest.mark.unit
    def test_server_switch(self, runner: CliRunner, fake_server: FakeServer) -> None:
        fake_server.add("b.example", "roads")
        result = runner.invoke(cli.app, ["show", "--server", "https://b.example"])
        assert result.exit_code == 0, result.output
        assert "roads" in result.output
        assert "https://b.example" in result.output

    @pytest.mark.unit
    def test_failed_server_switch_exits_with_error(self, runner: CliRunner, fake_server: FakeServer) -> None:
        fake_server.unreachable.add("bad-host")
        result = runner.invoke(cli.app, ["show", "--server", "https://bad-host"])
        assert result.exit_code == 1
        assert DEMO_SERVER in result.output
        assert "Error" in result.output

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "error",
        [
            LogDirectoryError("Log directory not specified in settings for file handler."),
            LogHandlerError("Failed to open log file /var/log/viewer.log."),
        ],
    )
    def test_logging_setup_failure_exits_with_error(
        self, runner: CliRunner, mocker: MockerFixture, error: Exception
    ) -> None:
        mocker.patch.object(cli, "_configure_logging", side_effect=error)
        result = runner.invoke(cli.app, ["show"])
        assert result.exit_code == 1
        assert "Error" in result.output
        assert str(error) in result.output
        assert not isinstance(result.exception, (LogDirectoryError, LogHandlerError))

    @pytest.mark.unit
    def test_missing_config_exits_with_error(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli.app, ["show", "--config", str(tmp_path / "absent.toml")])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestLocales:
    @pytest.mark.unit
    def test_lists_supported_locales(self, runner: CliRunner) -> None:
        result = runner.invoke(cli.app, ["locales"])
        assert result.exit_code == 0, result.output
        assert "en (default)" in result.output
        assert "lang=ar" in result.output
        assert "rtl" in result.output

    @pytest.mark.unit
    def test_missing_config(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli.app, ["locales", "-c", str(tmp_path / "absent.toml")])
        assert result.exit_code == 1


class TestItems:
    @pytest.mark.unit
    def test_prints_feature_count(self, runner: CliRunner, fake_server: FakeServer) -> None:
        result = runner.invoke(cli.app, ["items", "lakes", "--limit", "5", "--bbox", "0,0,10,10"])
        assert result.exit_code == 0, result.output
        assert "Features: 0 / 0" in result.output
        params = fake_server.requests[-1].url.params
        assert params["limit"] == "5"
        assert params["bbox"] == "0.0,0.0,10.0,10.0"

    @pytest.mark.unit
    def test_invalid_bbox(self, runner: CliRunner) -> None:
        result = runner.invoke(cli.app, ["items", "lakes", "--bbox", "a,b"])
        assert result.exit_code == 2

    @pytest.mark.unit
    def test_server_error(self, runner: CliRunner, fake_server: FakeServer) -> None:
        fake_server.failing.add("demo.example")
        result = runner.invoke(cli.app, ["items", "lakes"])
        assert result.exit_code == 1
        assert "Error" in result.output


@pytest.mark.unit
def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli.app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output

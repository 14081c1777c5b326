# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
Command line view of ogcapi-viewer.

    ogcapi-viewer show [--config PATH|URL] [--server URL] [--locale CODE] [--toggle ID]... [-v]
    ogcapi-viewer locales [--config PATH|URL]
    ogcapi-viewer items COLLECTION [--limit N] [--bbox minx,miny,maxx,maxy]

`show` drives the orchestrator (startup, optional locale and server change,
toggles) and prints the resulting read model as a table.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Annotated

import structlog
import typer
from rich.console import Console
from rich.table import Table

from ogcapi_viewer.__about__ import __app_name__, __version__
from ogcapi_viewer.config.appcontext import AppContext
from ogcapi_viewer.config.logging_bootstrap import bootstrap_logging
from ogcapi_viewer.config.logging_manager import LoggingManager, logging_config_from_settings, verbosity_to_level
from ogcapi_viewer.core.models import OrchestratorState
from ogcapi_viewer.exceptions import ApiRequestError, ConfigUnavailable, LogDirectoryError, LogHandlerError

if TYPE_CHECKING:
    from ogcapi_viewer.core.models import ViewState

log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)

console = Console()
error_console = Console(stderr=True)

app = typer.Typer(name=__app_name__, help="Browse the collections of an OGC API server.", no_args_is_help=True)

ConfigOption = Annotated[
    str | None, typer.Option("--config", "-c", help="Configuration file path or http(s) URL.")
]
VerboseOption = Annotated[int, typer.Option("--verbose", "-v", count=True, help="Increase log verbosity.")]


def build_context(config_location: str | None) -> AppContext:
    """Create the session context; tests replace this to inject transports."""
    return AppContext.create(config_location=config_location)


def _configure_logging(context: AppContext, verbose: int) -> LoggingManager:
    manager = LoggingManager()
    manager.apply_configuration(
        cli_log_level=verbosity_to_level(verbose),
        enable_console_logging=verbose > 0,
        log_config=logging_config_from_settings(context.settings),
    )
    return manager


def _render(context: AppContext, view: ViewState) -> None:
    _ = context.gettext
    if view.config is not None:
        console.print(f"[bold]{_('Server')}:[/bold] {view.config.server_url}")
    console.print(
        f"[bold]{_('Locale')}:[/bold] {view.locale.active_locale or '-'}  "
        f"[bold]{_('Direction')}:[/bold] {view.locale.direction}"
    )
    if view.error:
        error_console.print(f"[bold red]{_('Error')}:[/bold red] {view.error}")
    if not view.collections:
        console.print(_("No collections available"))
        return

    table = Table(title=_("Collections"))
    table.add_column("id")
    table.add_column(_("Title"))
    table.add_column(_("Render type"))
    table.add_column(_("Active"))
    table.add_column(_("Color"))
    for item in view.collections:
        color = view.colors.get(item.id)
        active = item.id in view.active_ids
        table.add_row(
            item.id,
            item.collection.title or "",
            str(item.render_type),
            "x" if active else "",
            f"[{color}]■[/] {color}" if color and active else "",
        )
    console.print(table)


async def _show(
    context: AppContext, server: str | None, locale: str | None, toggles: list[str], verbose: int
) -> ViewState:
    async with context.create_orchestrator() as orchestrator:
        view = await orchestrator.start()
        if context.settings.is_loaded:
            _configure_logging(context, verbose)
        if view.state is OrchestratorState.READY and locale:
            view = await orchestrator.change_locale(locale)
        if view.state is OrchestratorState.READY and server:
            view = await orchestrator.update_server_url(server)
        for collection_id in toggles:
            view = orchestrator.toggle_collection(collection_id)
        return view


@app.command()
def show(
    config: ConfigOption = None,
    server: Annotated[str | None, typer.Option("--server", "-s", help="Switch to this server URL.")] = None,
    locale: Annotated[str | None, typer.Option("--locale", "-l", help="Switch to this locale.")] = None,
    toggle: Annotated[list[str] | None, typer.Option("--toggle", "-t", help="Activate a collection.")] = None,
    verbose: VerboseOption = 0,
) -> None:
    """Load the collections of the configured server and print them."""
    bootstrap_logging(verbosity_to_level(verbose) or logging.WARNING)
    context = build_context(config)
    try:
        view = asyncio.run(_show(context, server, locale, toggle or [], verbose))
    except (LogDirectoryError, LogHandlerError) as e:
        error_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    _render(context, view)
    if view.degraded:
        raise typer.Exit(code=1)


@app.command()
def locales(config: ConfigOption = None) -> None:
    """List the locales supported by the configuration."""
    bootstrap_logging()
    context = build_context(config)
    try:
        static = asyncio.run(context.settings.static_config())
    except ConfigUnavailable as e:
        error_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title="Locales")
    table.add_column("code")
    table.add_column("query")
    table.add_column("direction")
    for spec in static.supported_locales:
        marker = " (default)" if spec.code == static.default_locale else ""
        table.add_row(f"{spec.code}{marker}", spec.query_param, str(spec.direction))
    console.print(table)


async def _items(context: AppContext, collection_id: str, limit: int, bbox: list[float] | None) -> dict:
    async with context.create_orchestrator() as orchestrator:
        view = await orchestrator.start()
        if view.config is None:
            raise ConfigUnavailable(view.error or "Configuration has not been resolved")
        return await orchestrator.features(collection_id, limit=limit, bbox=bbox)


@app.command()
def items(
    collection_id: Annotated[str, typer.Argument(help="Collection identifier.")],
    config: ConfigOption = None,
    limit: Annotated[int, typer.Option("--limit", help="Maximum number of features.")] = 10,
    bbox: Annotated[str | None, typer.Option("--bbox", help="minx,miny,maxx,maxy")] = None,
) -> None:
    """Fetch features of a collection and print how many were returned."""
    bootstrap_logging()
    context = build_context(config)
    try:
        box = [float(v) for v in bbox.split(",")] if bbox else None
    except ValueError as e:
        error_console.print(f"[bold red]Error:[/bold red] invalid bbox {bbox!r}")
        raise typer.Exit(code=2) from e

    try:
        data = asyncio.run(_items(context, collection_id, limit, box))
    except (ApiRequestError, ConfigUnavailable) as e:
        error_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    features = data.get("features") or []
    matched = data.get("numberMatched")
    console.print(f"{context.gettext('Features')}: {len(features)}" + (f" / {matched}" if matched is not None else ""))


@app.command()
def version() -> None:
    """Print the version."""
    console.print(f"{__app_name__} {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

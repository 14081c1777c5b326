# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
Data model shared by the state layer.

Collections are immutable snapshots of what the upstream OGC API returned.
Render types are derived from them on demand and never stored. The
`ViewState` snapshot is what the view layer reads.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Direction(StrEnum):
    """Text direction of a locale."""

    LTR = "ltr"
    RTL = "rtl"


class RenderType(StrEnum):
    """How a collection should be presented."""

    FEATURE = "feature"
    COVERAGE = "coverage"
    TILE = "tile"
    RECORD = "record"
    UNKNOWN = "unknown"


class OrchestratorState(StrEnum):
    """Lifecycle states of the orchestrator."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class LocaleSpec:
    """A supported locale and the query string the server expects for it."""

    code: str
    query_param: str = ""
    direction: Direction = Direction.LTR

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LocaleSpec:
        code = str(data.get("code") or "").strip()
        if not code:
            msg = "Locale entry without a code"
            raise ValueError(msg)
        query_param = data.get("query_param", data.get("queryParam")) or ""
        direction = str(data.get("direction") or Direction.LTR).lower()
        return cls(code=code, query_param=str(query_param), direction=Direction(direction))


@dataclass(frozen=True)
class EffectiveConfig:
    """The configuration in effect; `server_url` never ends with a slash."""

    server_url: str
    locale: str
    supported_locales: tuple[LocaleSpec, ...]
    default_locale: str
    fallback_locale: str

    def locale_spec(self, code: str) -> LocaleSpec | None:
        for spec in self.supported_locales:
            if spec.code == code:
                return spec
        return None

    def query_for(self, code: str) -> str:
        """Return the locale query string for `code`, or an empty string."""
        spec = self.locale_spec(code)
        return spec.query_param if spec else ""


@dataclass(frozen=True)
class Link:
    rel: str | None = None
    type: str | None = None
    href: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Link:
        return cls(rel=data.get("rel"), type=data.get("type"), href=data.get("href"))


@dataclass(frozen=True)
class Collection:
    """A collection as returned by `GET /collections`."""

    id: str
    item_type: str | None = None
    links: tuple[Link, ...] = ()
    title: str | None = None
    description: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Collection:
        links = tuple(Link.from_dict(link) for link in data.get("links") or () if isinstance(link, Mapping))
        return cls(
            id=str(data["id"]),
            item_type=data.get("itemType"),
            links=links,
            title=data.get("title"),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class LocaleState:
    active_locale: str | None
    loaded_locales: frozenset[str]
    direction: Direction


@dataclass(frozen=True)
class ClassifiedCollection:
    collection: Collection
    render_type: RenderType

    @property
    def id(self) -> str:
        return self.collection.id


@dataclass(frozen=True)
class ViewState:
    """Read-only snapshot handed to the view layer."""

    state: OrchestratorState
    config: EffectiveConfig | None
    locale: LocaleState
    collections: tuple[ClassifiedCollection, ...] = ()
    active_ids: tuple[str, ...] = ()
    colors: Mapping[str, str] = field(default_factory=dict)
    loading: bool = False
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.state is OrchestratorState.ERROR

# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
Map collection metadata to a render type.

The checks run in a fixed order and the first match wins: coverage, tile,
record, feature, unknown. A collection advertising both tiles and items is
therefore rendered as tiles.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from ogcapi_viewer.core.models import RenderType

if TYPE_CHECKING:
    from ogcapi_viewer.core.models import Collection, Link

COVERAGE_RELS: Final[frozenset[str]] = frozenset({"coverage", "wms"})
TILE_RELS: Final[frozenset[str]] = frozenset({"tiles"})
TILE_TYPE_MARKERS: Final[tuple[str, ...]] = ("vector-tile", "mvt", "tilejson")
FEATURE_MEDIA_TYPES: Final[frozenset[str]] = frozenset({"application/geo+json", "application/json"})


def _media_type(link: Link) -> str:
    # Drop parameters such as "; charset=utf-8"
    return (link.type or "").split(";", 1)[0].strip().lower()


def _is_coverage(collection: Collection) -> bool:
    if collection.item_type == "coverage":
        return True
    return any(link.rel in COVERAGE_RELS or "coverage" in _media_type(link) for link in collection.links)


def _is_tile(collection: Collection) -> bool:
    return any(
        link.rel in TILE_RELS or any(marker in _media_type(link) for marker in TILE_TYPE_MARKERS)
        for link in collection.links
    )


def _is_feature(collection: Collection) -> bool:
    if collection.item_type == "feature":
        return True
    return any(link.rel == "items" and _media_type(link) in FEATURE_MEDIA_TYPES for link in collection.links)


def classify(collection: Collection | None) -> RenderType:
    """Return the render type of `collection`; `None` is `UNKNOWN`."""
    if collection is None:
        return RenderType.UNKNOWN
    if _is_coverage(collection):
        return RenderType.COVERAGE
    if _is_tile(collection):
        return RenderType.TILE
    if collection.item_type == "record":
        return RenderType.RECORD
    if _is_feature(collection):
        return RenderType.FEATURE
    return RenderType.UNKNOWN

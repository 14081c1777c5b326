# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
Display colors for active collections.

`pick_color` is the pure selection rule; `ColorAssigner` keeps the
assignments for the session. A collection keeps its color when it is
deactivated, so activating it again shows the same color.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)

PALETTE: Final[tuple[str, ...]] = (
    "#e6194b",
    "#3cb44b",
    "#4363d8",
    "#f58231",
    "#911eb4",
    "#42d4f4",
    "#f032e6",
    "#bfef45",
    "#469990",
    "#9a6324",
    "#800000",
    "#000075",
)


def pick_color(
    collection_id: str,
    assignments: Mapping[str, str],
    active_ids: Iterable[str] = (),
    palette: Sequence[str] = PALETTE,
) -> str:
    """
    Choose a color for `collection_id`.

    An existing assignment is returned unchanged. Otherwise the first palette
    entry nobody holds wins, then the first entry no other active collection
    shows. Once every entry is in use by active collections the palette is
    reused round-robin.
    """
    if collection_id in assignments:
        return assignments[collection_id]
    if not palette:
        msg = "Color palette is empty"
        raise ValueError(msg)

    assigned = set(assignments.values())
    for color in palette:
        if color not in assigned:
            return color

    in_use = {assignments[i] for i in active_ids if i != collection_id and i in assignments}
    for color in palette:
        if color not in in_use:
            return color

    return palette[len(assignments) % len(palette)]


class ColorAssigner:
    """Keep the id → color mapping for the current session."""

    def __init__(self, palette: Sequence[str] = PALETTE) -> None:
        self._palette = tuple(palette)
        self._assignments: dict[str, str] = {}

    @property
    def assignments(self) -> dict[str, str]:
        """Return a copy of the current assignments."""
        return dict(self._assignments)

    def color_for(self, collection_id: str, active_ids: Iterable[str] = ()) -> str:
        """Return the color of `collection_id`, assigning one if needed."""
        color = pick_color(collection_id, self._assignments, active_ids, self._palette)
        if collection_id not in self._assignments:
            self._assignments[collection_id] = color
            log.debug("Assigned collection color", collection_id=collection_id, color=color)
        return color

    def reset(self) -> None:
        self._assignments.clear()

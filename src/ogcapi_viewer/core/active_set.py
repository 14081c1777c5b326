# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""Set of collections currently selected for display."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from ogcapi_viewer.core.colors import ColorAssigner

log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)


class ActiveSetManager:
    """
    Track which collections are active.

    Membership is what matters; ids are kept in toggle order so the view can
    list them consistently. `toggle` is the only mutator besides `reset`.
    """

    def __init__(self, colors: ColorAssigner) -> None:
        self._colors = colors
        self._active: dict[str, None] = {}

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(self._active)

    def is_active(self, collection_id: str) -> bool:
        return collection_id in self._active

    def toggle(self, collection_id: str) -> tuple[str, ...]:
        """Flip `collection_id` in or out of the set and return the new set."""
        if collection_id in self._active:
            del self._active[collection_id]
            log.debug("Collection deactivated", collection_id=collection_id, active=list(self._active))
        else:
            self._active[collection_id] = None
            self._colors.color_for(collection_id, self._active)
            log.debug("Collection activated", collection_id=collection_id, active=list(self._active))
        return self.ids

    def reset(self) -> tuple[str, ...]:
        self._active.clear()
        return self.ids

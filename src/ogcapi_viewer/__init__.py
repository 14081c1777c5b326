# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
ogcapi-viewer.

Client-side state layer for browsing the collections of an OGC API
(pygeoapi) server: configuration resolution, locale catalogs, collection
classification, active-set and color management, and the orchestrator that
ties them together.
"""

from ogcapi_viewer.__about__ import __version__

__all__ = ["__version__"]

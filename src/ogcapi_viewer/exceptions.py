# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
Exception hierarchy for ogcapi-viewer.

Every error the state layer reports derives from `ViewerError`, so the
orchestrator can catch one base class at its operation boundary and turn it
into the error state.
"""

from __future__ import annotations


class ViewerError(Exception):
    """Base class for all ogcapi-viewer errors."""


class ConfigUnavailable(ViewerError):
    """The static configuration document is unreachable or malformed."""


class LocaleLoadFailed(ViewerError):
    """A message catalog could not be loaded; the locale switch was aborted."""

    def __init__(self, locale: str, reason: str | None = None) -> None:
        self.locale = locale
        self.reason = reason
        msg = f"Could not load message catalog for '{locale}'"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class InvalidInput(ViewerError):
    """User-supplied input was rejected before any state mutation."""


class ApiRequestError(ViewerError):
    """A request to the OGC API server failed."""

    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class CollectionFetchFailed(ApiRequestError):
    """The collection list could not be fetched."""


class PreferencesWriteError(ViewerError):
    """The persisted preferences could not be written."""


class LogDirectoryError(ViewerError):
    """The log directory is missing or cannot be created."""


class LogHandlerError(ViewerError):
    """A logging handler could not be set up."""

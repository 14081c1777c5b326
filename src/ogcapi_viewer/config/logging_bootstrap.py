# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
First-stage logging for ogcapi-viewer.

`bootstrap_logging()` runs before the configuration document is known; the
`LoggingManager` replaces it once the document's logging sections are loaded.
Both share the processor chain and console formatter defined here.

The server URL and locale in effect are bound as structlog context variables,
so every log line of a session names the server and locale it belongs to.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.dev import ConsoleRenderer
from structlog.stdlib import ProcessorFormatter

SESSION_KEYS = ("server_url", "locale")

SHARED_PROCESSORS = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
)


def console_formatter() -> ProcessorFormatter:
    """Human-readable formatter for stderr, colored when stderr is a terminal."""
    return ProcessorFormatter(
        processor=ConsoleRenderer(colors=sys.stderr.isatty()),
        foreign_pre_chain=[*SHARED_PROCESSORS, structlog.stdlib.PositionalArgumentsFormatter()],
    )


def bind_session_context(*, server_url: str | None, locale: str | None) -> None:
    """Tag subsequent log lines with the server URL and locale in effect."""
    structlog.contextvars.unbind_contextvars(*SESSION_KEYS)
    values = {"server_url": server_url, "locale": locale}
    structlog.contextvars.bind_contextvars(**{k: v for k, v in values.items() if v})


def bootstrap_logging(level: int = logging.WARNING) -> None:
    """
    Install a minimal stderr pipeline at `level`.

    Does nothing if structlog is already configured.
    """
    if structlog.is_configured():
        return

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # Not cached: loggers used now must pick up the LoggingManager pipeline later.
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(console_formatter())
    handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
The LoggingManager.

Second-stage logging for ogcapi-viewer, built from the configuration document
once it is loaded. The document carries four logging sections:

- `logger`: global `level` and the `log_directory` used by file handlers.
- `console_handler`: `enabled` flag for colorized console output on stderr.
- `file_handler`: `enabled` flag and `file_name` of a JSON log file.
- `limited_file_handler`: `enabled`, `file_name`, `max_bytes` and
  `backup_count` of a size-rotated JSON log file.

CLI verbosity can only make logging more verbose than the configured level.

Example Usage:
--------------
```python
with LoggingManager() as manager:
    manager.apply_configuration(
        cli_log_level=verbosity_to_level(verbose),
        enable_console_logging=verbose > 0,
        log_config=logging_config_from_settings(settings),
    )
    manager.get_logger(__name__).info("Viewer started")
```
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, Self

import structlog
from rich.console import Console
from structlog.stdlib import ProcessorFormatter

from ogcapi_viewer.__about__ import __app_name__
from ogcapi_viewer.config.logging_bootstrap import SHARED_PROCESSORS, console_formatter
from ogcapi_viewer.exceptions import LogDirectoryError, LogHandlerError

if TYPE_CHECKING:
    from types import TracebackType

    from ogcapi_viewer.config.settings_manager import SettingsManager


# Console for errors raised while logging itself is being torn down
_error_console = Console(file=sys.stderr)

APP_NAME: Final[str] = __app_name__.lower()
DEFAULT_LOG_FILENAME: Final[str] = f"{APP_NAME}.log"
DEFAULT_LIMITED_LOG_FILENAME: Final[str] = f"limited_{APP_NAME}.log"
DEFAULT_MAX_BYTES: Final[int] = 5 * 1024 * 1024
DEFAULT_BACKUP_COUNT: Final[int] = 3
LOGGING_SECTIONS: Final[tuple[str, ...]] = ("logger", "console_handler", "file_handler", "limited_file_handler")

VERBOSITY_LEVELS: dict[int, int] = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def verbosity_to_level(verbosity: int) -> int | None:
    """Map a `-v` count to a log level; 0 means "use the configured level"."""
    if verbosity <= 0:
        return None
    return VERBOSITY_LEVELS.get(verbosity, logging.DEBUG)


def logging_config_from_settings(settings: SettingsManager) -> dict[str, dict[str, Any]]:
    """Collect the logging sections of the loaded configuration document."""
    return {section: settings.get_section(section) for section in LOGGING_SECTIONS}


def _json_formatter() -> ProcessorFormatter:
    return ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=[*SHARED_PROCESSORS, structlog.stdlib.PositionalArgumentsFormatter()],
    )


class LoggingManager:
    """
    Build and tear down the configured logging pipeline.

    Non-fatal problems (an unknown level name) are collected in
    `internal_errors`; handler and directory failures raise.
    """

    effective_log_level: int

    def __init__(self) -> None:
        self._internal_errors: list[str] = []
        self.cli_log_level: int | None = None
        self.enable_console_logging: bool = False
        self.log_config: dict[str, Any] = {}
        self.effective_log_level = logging.NOTSET
        self._configured = False
        self._logger: structlog.stdlib.BoundLogger = structlog.get_logger("LoggingManagerInit")

    @property
    def internal_errors(self) -> list[str]:
        return self._internal_errors

    @property
    def is_configured(self) -> bool:
        return self._configured

    def apply_configuration(
        self,
        *,
        cli_log_level: int | None = None,
        enable_console_logging: bool,
        log_config: dict[str, Any],
    ) -> None:
        """
        Replace the current pipeline with the configured one.

        Args:
            cli_log_level (int | None): Level requested on the command line.
            enable_console_logging (bool): Log to stderr even if the
                                           `console_handler` section is disabled.
            log_config (dict[str, Any]): The logging sections of the document.

        Raises:
            LogDirectoryError: A file handler is enabled but the log directory
                               is missing or cannot be created.
            LogHandlerError: A log file cannot be opened.
        """
        self._internal_errors.clear()
        self.cli_log_level = cli_log_level
        self.enable_console_logging = enable_console_logging
        self.log_config = log_config

        logger_section = log_config.get("logger", {})
        self.effective_log_level = self._resolve_level(logger_section)
        try:
            handlers = self._build_handlers(logger_section)
        except (LogDirectoryError, LogHandlerError) as e:
            self._internal_errors.append(f"Critical error during logging configuration: {e}")
            self._logger.exception("Critical error during logging configuration", exc_info=e)
            raise

        self._install(handlers)
        self._configured = True
        self._logger = structlog.get_logger("LoggingManager")
        self._logger.debug(
            "Logging pipeline configured",
            level=logging.getLevelName(self.effective_log_level),
            handlers=[type(h).__name__ for h in handlers],
        )

    def shutdown(self) -> None:
        """Close and detach all root logger handlers."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            try:
                handler.close()
                root_logger.removeHandler(handler)
            except (OSError, ValueError) as e:
                _error_console.print(
                    f"[bold red]Error[/bold red]: Failed to close log handler {handler.__class__.__name__}: {e}"
                )
        self._configured = False

    def get_logger(self, name: str | None = None) -> structlog.stdlib.BoundLogger:
        """Return a `structlog` logger, named after the app by default."""
        return structlog.get_logger(name or APP_NAME)

    # --- Pipeline construction ---

    def _resolve_level(self, logger_section: dict[str, Any]) -> int:
        name = str(logger_section.get("level", "INFO")).upper()
        level = logging.getLevelNamesMapping().get(name)
        if level is None:
            msg = f"Invalid log level '{name}' in config. Falling back to INFO."
            self._internal_errors.append(msg)
            self._logger.warning(msg, level_from_config=name)
            level = logging.INFO
        if self.cli_log_level is not None:
            # Lower number means more verbose.
            level = min(level, self.cli_log_level)
        return level

    def _build_handlers(self, logger_section: dict[str, Any]) -> list[logging.Handler]:
        handlers: list[logging.Handler] = []
        if self.enable_console_logging or self.log_config.get("console_handler", {}).get("enabled"):
            console = logging.StreamHandler(sys.stderr)
            console.setFormatter(console_formatter())
            handlers.append(console)

        file_section = self.log_config.get("file_handler", {})
        if file_section.get("enabled"):
            path = self._log_directory(logger_section) / file_section.get("file_name", DEFAULT_LOG_FILENAME)
            handlers.append(self._open(logging.FileHandler, path, mode="a"))

        limited_section = self.log_config.get("limited_file_handler", {})
        if limited_section.get("enabled"):
            path = self._log_directory(logger_section) / limited_section.get(
                "file_name", DEFAULT_LIMITED_LOG_FILENAME
            )
            handlers.append(
                self._open(
                    logging.handlers.RotatingFileHandler,
                    path,
                    maxBytes=limited_section.get("max_bytes", DEFAULT_MAX_BYTES),
                    backupCount=limited_section.get("backup_count", DEFAULT_BACKUP_COUNT),
                )
            )

        for handler in handlers:
            handler.setLevel(self.effective_log_level)
        return handlers

    def _open(self, handler_cls: type[logging.FileHandler], path: Path, **kwargs: Any) -> logging.FileHandler:
        try:
            handler = handler_cls(path, encoding="utf-8", **kwargs)
        except OSError as e:
            msg = f"Failed to open log file {path!s}."
            self._internal_errors.append(f"{msg} {e}")
            raise LogHandlerError(msg) from e
        handler.setFormatter(_json_formatter())
        return handler

    @staticmethod
    def _log_directory(logger_section: dict[str, Any]) -> Path:
        log_dir_str = logger_section.get("log_directory")
        if not log_dir_str:
            msg = "Log directory not specified in settings for file handler."
            raise LogDirectoryError(msg)
        log_dir = Path(log_dir_str).expanduser()
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Could not create log directory: {log_dir!s}"
            raise LogDirectoryError(msg) from e
        return log_dir

    def _install(self, handlers: list[logging.Handler]) -> None:
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        for handler in handlers:
            root_logger.addHandler(handler)
        root_logger.setLevel(self.effective_log_level)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *SHARED_PROCESSORS,
                ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown()

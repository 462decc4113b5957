# src/vibeforge/logging_config.py
"""
Logging configuration for VibeForge.

Library modules only ever call ``logging.getLogger(__name__)``; nothing is
configured on import. Host applications call :func:`configure_logging` once
at startup, usually with the ``logging`` table of the loaded
:class:`~vibeforge.config.VibeForgeConfig`.

Key concepts:

    **Display filter**: When ``console_enabled=False`` (the default), the
    console handler still exists but only passes records that carry
    ``extra={"display": True}``. Budget alerts and availability changes use
    this so they reach the operator in quiet mode while routing chatter stays
    in the log file.

    **File modes**: ``file_mode="single"`` (default) writes one file through a
    ``RotatingFileHandler``. ``file_mode="per_run"`` creates a new timestamped
    file each time logging is configured.

Usage:
    from vibeforge.logging_config import configure_logging, log_display

    configure_logging(config={"file_directory": "/var/log/vibeforge"})

    logger = logging.getLogger("vibeforge.app")
    log_display(logger, logging.INFO, "Router ready with %d models", count)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": True,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/vibeforge/logs",
    "file_mode": "single",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-40s - %(message)s",
    "rotation_max_bytes": 5 * 1024 * 1024,  # 5 MB
    "rotation_backup_count": 3,
    "display_min_level": "INFO",
    "components": {
        "vibeforge": "INFO",
        "vibeforge.model_router.router": "INFO",
        "vibeforge.model_router.cost_tracker": "INFO",
    },
}


def _resolve_level(level: str | int | None, default: int) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, int):
            return resolved
    return default


# ---------------------------------------------------------------------------
# DisplayFilter
# ---------------------------------------------------------------------------


class DisplayFilter(logging.Filter):
    """Gate for the console handler.

    With the console globally enabled every record passes and the handler's
    own level decides. Otherwise only records flagged ``display=True`` at or
    above ``display_min_level`` get through.
    """

    def __init__(
        self,
        console_globally_enabled: bool = False,
        display_min_level: int = logging.INFO,
    ) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


# ---------------------------------------------------------------------------
# Handler state
# ---------------------------------------------------------------------------


class _LoggingState:
    """Handlers installed by the last successful :func:`configure_logging` call."""

    configured: bool = False
    log_file_path: Path | None = None
    console_handler: logging.Handler | None = None
    file_handler: logging.Handler | None = None
    display_filter: DisplayFilter | None = None

    @classmethod
    def clear(cls) -> None:
        root = logging.getLogger()
        for handler in (cls.console_handler, cls.file_handler):
            if handler is not None:
                root.removeHandler(handler)
                handler.close()
        cls.configured = False
        cls.log_file_path = None
        cls.console_handler = None
        cls.file_handler = None
        cls.display_filter = None


def _build_console_handler(config: dict[str, Any]) -> logging.Handler:
    console_enabled = bool(config.get("console_enabled", False))
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(config["console_format"]))
    if console_enabled:
        handler.setLevel(_resolve_level(config.get("console_level"), logging.WARNING))
    else:
        # The filter is the only gate in quiet mode.
        handler.setLevel(logging.DEBUG)

    display_filter = DisplayFilter(
        console_globally_enabled=console_enabled,
        display_min_level=_resolve_level(config.get("display_min_level"), logging.INFO),
    )
    handler.addFilter(display_filter)
    _LoggingState.display_filter = display_filter
    return handler


def _build_file_handler(
    config: dict[str, Any], app_name: str
) -> tuple[logging.Handler | None, Path | None]:
    log_dir = Path(os.path.expanduser(config["file_directory"]))
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
        return None, None

    try:
        if config.get("file_mode") == "per_run":
            pattern = config["file_name_pattern"]
            log_file_path = log_dir / pattern.format(app=app_name, timestamp=datetime.now())
            handler: logging.Handler = logging.FileHandler(log_file_path, encoding="utf-8")
        else:
            log_file_path = log_dir / config["file_single_name"].format(app=app_name)
            handler = RotatingFileHandler(
                log_file_path,
                maxBytes=config["rotation_max_bytes"],
                backupCount=config["rotation_backup_count"],
                encoding="utf-8",
            )
    except OSError as e:
        sys.stderr.write(f"Warning: Cannot create log file in {log_dir}: {e}\n")
        return None, None

    handler.setLevel(_resolve_level(config.get("file_level"), logging.DEBUG))
    handler.setFormatter(logging.Formatter(config["file_format"]))
    return handler, log_file_path


# ---------------------------------------------------------------------------
# Public functions
# ---------------------------------------------------------------------------


def configure_logging(
    app_name: str = "vibeforge",
    config: dict[str, Any] | None = None,
    force_reconfigure: bool = False,
) -> Path | None:
    """
    Install VibeForge's console and file handlers on the root logger.

    Only handlers installed by a previous call are replaced; handlers the host
    application added itself are left alone.

    Args:
        app_name: Used in the log file name.
        config: Overrides merged over :data:`DEFAULT_LOGGING_CONFIG`. The
            ``components`` mapping is merged key by key.
        force_reconfigure: Reconfigure even if logging is already configured.

    Returns:
        Path of the log file, or None when file logging is disabled or failed.
    """
    if _LoggingState.configured and not force_reconfigure:
        return _LoggingState.log_file_path

    config = config or {}
    log_config = {**DEFAULT_LOGGING_CONFIG, **config}
    log_config["components"] = {
        **DEFAULT_LOGGING_CONFIG["components"],
        **config.get("components", {}),
    }

    _LoggingState.clear()
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    console_handler = _build_console_handler(log_config)
    root.addHandler(console_handler)
    _LoggingState.console_handler = console_handler

    if log_config.get("file_enabled", True):
        file_handler, log_file_path = _build_file_handler(log_config, app_name)
        if file_handler is not None:
            root.addHandler(file_handler)
        _LoggingState.file_handler = file_handler
        _LoggingState.log_file_path = log_file_path

    for component, level in log_config["components"].items():
        logging.getLogger(component).setLevel(_resolve_level(level, logging.INFO))

    _LoggingState.configured = True
    logging.getLogger(__name__).debug(
        f"Logging configured for {app_name}. Log file: {_LoggingState.log_file_path}"
    )
    return _LoggingState.log_file_path


def log_display(
    logger: logging.Logger,
    level: int,
    msg: str,
    *args: Any,
    **kwargs: Any,
) -> None:
    """Log a message that also reaches the console in quiet mode.

    Wraps ``logger.log()`` and merges ``{"display": True}`` into ``extra``.
    ``display_min_level`` still applies.
    """
    extra = dict(kwargs.pop("extra", None) or {})
    extra["display"] = True
    logger.log(level, msg, *args, extra=extra, **kwargs)


def is_configured() -> bool:
    return _LoggingState.configured


def get_log_file_path() -> Path | None:
    """Get the current log file path."""
    return _LoggingState.log_file_path


def set_console_level(level: str | int) -> None:
    """Change the console handler's level and open the display gate."""
    handler = _LoggingState.console_handler
    if handler is None:
        return
    handler.setLevel(_resolve_level(level, logging.WARNING))
    if _LoggingState.display_filter is not None:
        _LoggingState.display_filter.console_globally_enabled = True


def set_file_level(level: str | int) -> None:
    """Change the file handler's level at runtime."""
    if _LoggingState.file_handler is not None:
        _LoggingState.file_handler.setLevel(_resolve_level(level, logging.DEBUG))


def set_component_level(component: str, level: str | int) -> None:
    """Change a specific logger's level at runtime."""
    logging.getLogger(component).setLevel(_resolve_level(level, logging.INFO))


def reset_logging() -> None:
    """Remove the handlers installed by :func:`configure_logging`."""
    _LoggingState.clear()


__all__ = [
    "DEFAULT_LOGGING_CONFIG",
    "DisplayFilter",
    "configure_logging",
    "get_log_file_path",
    "is_configured",
    "log_display",
    "reset_logging",
    "set_component_level",
    "set_console_level",
    "set_file_level",
]

"""Logging setup for the calculation core and its tools.

Configuration comes from a YAML file (or built-in defaults) and sets up a
console handler, a combined log file, and optional per-component levels or
dedicated files under the ``components`` section.

Platform-specific log locations:
    - macOS: ~/Library/Logs/PerfCalc/perfcalc.log
    - Linux: ~/.perfcalc/logs/perfcalc.log
    - Windows: %AppData%/PerfCalc/Logs/perfcalc.log

Each start rotates the combined log, keeping the last 5 runs.

Library modules only call get_logger(). Handlers are installed by the
application entry point through initialize_logging(), so importing the
calculation core leaves the host process's logging untouched.

Typical usage example:
    from perfcalc.core.logging_system import get_logger, initialize_logging

    initialize_logging("config/logging.yaml", use_platform_dir=False)
    logger = get_logger(__name__)
    logger.info("Loaded data pack %s", version)
"""

import logging
import logging.handlers
import os
import platform
import time
from pathlib import Path
from typing import Any

import yaml

_logging_config: dict[str, Any] = {}
_component_loggers: dict[str, logging.Logger] = {}
_initialized = False


class LoggingError(Exception):
    """Raised when logging system operations fail."""


def get_platform_log_dir() -> Path:
    """Get platform-specific log directory.

    Returns:
        Path to the platform-appropriate log directory:
        - macOS: ~/Library/Logs/PerfCalc
        - Linux: ~/.perfcalc/logs
        - Windows: %AppData%/PerfCalc/Logs
    """
    system = platform.system()

    if system == "Darwin":
        return Path.home() / "Library" / "Logs" / "PerfCalc"
    elif system == "Windows":
        appdata = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return appdata / "PerfCalc" / "Logs"
    else:
        return Path.home() / ".perfcalc" / "logs"


def rotate_logs(log_dir: Path, log_filename: str = "perfcalc.log", keep_count: int = 5) -> None:
    """Rotate logs on startup, keeping the last N runs.

    perfcalc.log becomes perfcalc.log.1, older numbered logs shift up by
    one, and anything beyond keep_count is deleted.

    Args:
        log_dir: Directory containing log files.
        log_filename: Base name of the log file.
        keep_count: Number of old logs to keep.
    """
    log_file = log_dir / log_filename

    if not log_file.exists():
        return

    oldest_log = log_dir / f"{log_filename}.{keep_count}"
    if oldest_log.exists():
        oldest_log.unlink()

    for i in range(keep_count - 1, 0, -1):
        old_log = log_dir / f"{log_filename}.{i}"
        if old_log.exists():
            old_log.rename(log_dir / f"{log_filename}.{i + 1}")

    log_file.rename(log_dir / f"{log_filename}.1")


def initialize_logging(
    config_path: str | Path | None = None, use_platform_dir: bool = True
) -> None:
    """Initialize the logging system from YAML configuration.

    Called by the application entry point, never at import time. Replaces
    the root logger's handlers. Values in the YAML file override the
    built-in defaults key by key.

    Args:
        config_path: Path to logging configuration YAML file.
            If None, uses default configuration.
        use_platform_dir: If True, use the platform-specific log directory.
            If False, use the directory from the config (development/testing).

    Raises:
        LoggingError: If initialization fails.

    Examples:
        >>> initialize_logging("config/logging.yaml", use_platform_dir=False)
        >>> get_logger("perfcalc.cli").info("Logging initialized")
    """
    global _logging_config, _initialized

    _logging_config = _get_default_config()

    if config_path:
        config_path = Path(config_path)
        if not config_path.exists():
            raise LoggingError(f"Logging config file not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise LoggingError(f"Failed to load logging config: {e}") from e

        for key, value in loaded.items():
            if isinstance(value, dict) and isinstance(_logging_config.get(key), dict):
                _logging_config[key] = {**_logging_config[key], **value}
            else:
                _logging_config[key] = value

    if use_platform_dir:
        _logging_config["log_dir"] = str(get_platform_log_dir())

    log_dir = Path(_logging_config.get("log_dir", "logs"))
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LoggingError(f"Cannot create log directory {log_dir}: {e}") from e

    combined = _logging_config.get("combined_log", {})
    rotate_logs(log_dir, combined.get("filename", "perfcalc.log"), combined.get("backup_count", 5))

    _configure_root_logger()
    _configure_components()
    _initialized = True


def _get_default_config() -> dict[str, Any]:
    """Get default logging configuration.

    Returns:
        Default logging configuration dictionary.
    """
    return {
        "version": 1,
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "date_format": "%Y-%m-%d %H:%M:%S",
        "log_dir": "logs",
        "combined_log": {
            "enabled": True,
            "filename": "perfcalc.log",
            "backup_count": 5,
        },
        "console": {
            "enabled": True,
            "level": "WARNING",
        },
        "components": {},
    }


def _configure_root_logger() -> None:
    """Configure the root logger with console and combined-file handlers."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console = _logging_config.get("console", {})
    if console.get("enabled", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, console.get("level", "WARNING")))
        console_handler.setFormatter(_get_formatter())
        root_logger.addHandler(console_handler)

    combined = _logging_config.get("combined_log", {})
    if combined.get("enabled", True):
        log_file = Path(_logging_config.get("log_dir", "logs")) / combined.get(
            "filename", "perfcalc.log"
        )
        # Rotation happens on startup, so the file is truncated here.
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_get_formatter())
        root_logger.addHandler(file_handler)


class MillisecondFormatter(logging.Formatter):
    """Formatter that appends milliseconds with a dot separator."""

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        s = time.strftime(datefmt or "%Y-%m-%d %H:%M:%S", ct)
        return f"{s}.{int(record.msecs):03d}"


def _get_formatter() -> logging.Formatter:
    fmt = _logging_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    datefmt = _logging_config.get("date_format", "%Y-%m-%d %H:%M:%S")
    return MillisecondFormatter(fmt, datefmt)


def _configure_components() -> None:
    """Apply the ``components`` section to the named loggers."""
    _reset_components()

    for name, component in (_logging_config.get("components") or {}).items():
        logger = logging.getLogger(name)
        _component_loggers[name] = logger

        if not component.get("enabled", True):
            logger.disabled = True
            continue

        if "level" in component:
            logger.setLevel(getattr(logging, component["level"]))

        if component.get("dedicated_file", False):
            log_file = Path(_logging_config.get("log_dir", "logs")) / f"{name}.log"
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=component.get("max_bytes", 10485760),
                backupCount=component.get("backup_count", 5),
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(_get_formatter())
            logger.addHandler(file_handler)


def _close_component_handlers() -> None:
    for logger in _component_loggers.values():
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def _reset_components() -> None:
    _close_component_handlers()
    for logger in _component_loggers.values():
        logger.setLevel(logging.NOTSET)
        logger.disabled = False
    _component_loggers.clear()


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a component.

    Never configures anything: until the application calls
    initialize_logging(), records go wherever the host process sends them.
    Levels, dedicated files and disabling come from the ``components``
    section and are applied by initialize_logging().

    Args:
        name: Logger name (typically the module ``__name__``).

    Returns:
        Logger instance.

    Note:
        Use lazy formatting (%) instead of f-strings.
    """
    return logging.getLogger(name)


def is_initialized() -> bool:
    """Whether initialize_logging() has configured the root logger."""
    return _initialized


def shutdown_logging() -> None:
    """Flush and close all handlers.

    The root logger is left without configuration until the next
    initialize_logging() call.
    """
    global _initialized

    logging.shutdown()
    _close_component_handlers()
    _initialized = False

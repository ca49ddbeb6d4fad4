"""
Logging Configuration for the recipe engine.

Provides centralized logger setup. Every module logger created with
``configure_logger_for_debug_trace(__name__)`` shares the same handlers:

- a stderr handler (level from RECIPEKIT_LOG_LEVEL, default WARNING)
- a file handler writing engine.log, only when RECIPEKIT_DEBUG_LOG is set

The recipekit.json keys log_dir, debug_log and log_level reach these handlers
through configure_engine_logging(), called when the configuration is loaded.
"""

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILENAME = "engine.log"


# Log directory priority:
# 1. log_dir from configure_engine_logging() or RECIPEKIT_LOG_DIR (explicit)
# 2. RECIPEKIT_PROJECT_ROOT/.recipekit (if set)
# 3. CWD/.recipekit (fallback)
def _get_log_directory() -> Path:
    """Get the log directory path."""
    log_dir = _log_dir or os.getenv("RECIPEKIT_LOG_DIR")
    if not log_dir:
        project_root = os.getenv("RECIPEKIT_PROJECT_ROOT")
        if project_root:
            log_dir = str(Path(project_root) / ".recipekit")
        else:
            log_dir = str(Path.cwd() / ".recipekit")
    return Path(log_dir)


def _ensure_log_directory() -> Path:
    """Ensure log directory exists and return its path."""
    log_dir = _get_log_directory()
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


# File logging is opt-in: set RECIPEKIT_DEBUG_LOG to any non-empty value.
_debug_log_env = os.getenv("RECIPEKIT_DEBUG_LOG")
DEBUG_LOG_ENABLED = bool(_debug_log_env)

# Settings applied by configure_engine_logging(); None falls back to the env.
_log_dir: Optional[str] = None
_log_level: Optional[str] = None
_debug_log = DEBUG_LOG_ENABLED

_configured_loggers: List[logging.Logger] = []


def _stderr_level() -> int:
    name = (_log_level or os.getenv("RECIPEKIT_LOG_LEVEL") or "WARNING").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def _create_file_handler(log_filename: str) -> Optional[logging.FileHandler]:
    """
    Create a file handler for the specified log file.

    Args:
        log_filename: Name of the log file (e.g., 'engine.log')

    Returns:
        Configured FileHandler, or None if file logging is disabled
    """
    if not _debug_log:
        return None

    try:
        log_dir = _ensure_log_directory()
    except OSError:
        return None
    handler = logging.FileHandler(log_dir / log_filename, mode='a', encoding='utf-8')
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


class FlushingStreamHandler(logging.StreamHandler):
    """StreamHandler that flushes after every emit.

    ::: This is-in-layer Infrastructure-Layer.
    ::: This is a handler.
    ::: This is stateless.
    """
    def emit(self, record):
        super().emit(record)
        self.flush()


def _create_stderr_handler() -> logging.StreamHandler:
    """Create a stderr handler for console output with auto-flush."""
    handler = FlushingStreamHandler(sys.stderr)
    handler.setLevel(_stderr_level())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def get_engine_logger() -> logging.Logger:
    """
    Get the shared engine logger.

    Its handlers are the ones attached to every module logger.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("recipekit.engine")

    # Only configure once
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)
        logger.propagate = False  # Don't propagate to root logger

        file_handler = _create_file_handler(LOG_FILENAME)
        if file_handler:
            logger.addHandler(file_handler)

        logger.addHandler(_create_stderr_handler())

    return logger


# Pre-create logger for import convenience
engine_logger = get_engine_logger()

_stderr_suppressed = False


def configure_logger_for_debug_trace(logger_name: str) -> logging.Logger:
    """
    Configure a logger to write through the shared engine handlers.

    Args:
        logger_name: Name of the logger to configure (e.g., __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)  # Enable all log levels
    for handler in engine_logger.handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    if logger not in _configured_loggers:
        _configured_loggers.append(logger)
    return logger


def configure_engine_logging(
    log_dir: Optional[str] = None,
    debug_log: Optional[bool] = None,
    log_level: Optional[str] = None,
) -> logging.Logger:
    """
    Re-apply logging settings to the shared engine handlers.

    The stderr level is updated in place. The engine.log file handler is
    replaced (or removed) on the engine logger and on every module logger
    configured so far.

    Args:
        log_dir: Directory for engine.log; None falls back to RECIPEKIT_LOG_DIR
        debug_log: Write engine.log; None falls back to RECIPEKIT_DEBUG_LOG
        log_level: stderr level name; None falls back to RECIPEKIT_LOG_LEVEL

    Returns:
        The engine logger
    """
    global _log_dir, _debug_log, _log_level
    _log_dir = log_dir
    _debug_log = bool(os.getenv("RECIPEKIT_DEBUG_LOG")) if debug_log is None else debug_log
    _log_level = log_level

    for handler in list(engine_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            for logger in [engine_logger] + _configured_loggers:
                logger.removeHandler(handler)
            handler.close()
        elif not _stderr_suppressed:
            handler.setLevel(_stderr_level())

    file_handler = _create_file_handler(LOG_FILENAME)
    if file_handler:
        for logger in [engine_logger] + _configured_loggers:
            logger.addHandler(file_handler)
    return engine_logger


def is_stderr_suppressed() -> bool:
    """True while console logging is switched off."""
    return _stderr_suppressed


def suppress_stderr_logging():
    """
    Suppress stderr logging for the engine loggers.

    File logging continues to work normally.
    """
    global _stderr_suppressed
    _stderr_suppressed = True
    for handler in engine_logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(logging.CRITICAL + 1)  # Effectively disable


def restore_stderr_logging():
    """Restore stderr logging for the engine loggers."""
    global _stderr_suppressed
    _stderr_suppressed = False
    for handler in engine_logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(_stderr_level())

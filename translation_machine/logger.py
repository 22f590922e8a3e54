import logging
import os
from pathlib import Path
from typing import Optional

LOG_DIR = Path(__file__).parent.parent / "logs"
LOG_FILE = LOG_DIR / "app.log"

LOG_MODE_ENV = "TRANSLATION_MACHINE_LOG_MODE"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Set from stored configuration by config.initialize_app()
_configured_log_mode = None


def _get_log_mode() -> str:
    """Get log mode: environment override first, then stored configuration."""
    env_mode = os.environ.get(LOG_MODE_ENV)
    if env_mode:
        return env_mode.lower()
    return _configured_log_mode or 'off'


def _levels_for(log_mode: str):
    if log_mode == 'debug':
        return logging.DEBUG
    if log_mode == 'off':
        # Higher than CRITICAL disables everything
        return logging.CRITICAL + 1
    return logging.INFO


def _configure(logger: logging.Logger, log_mode: str) -> None:
    level = _levels_for(log_mode)
    logger.setLevel(level)
    log_format = logging.Formatter(LOG_FORMAT)

    has_file_handler = any(isinstance(h, logging.FileHandler) for h in logger.handlers)
    has_console_handler = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in logger.handlers
    )

    if log_mode != 'off' and not has_file_handler:
        LOG_DIR.mkdir(exist_ok=True)
        f_handler = logging.FileHandler(LOG_FILE)
        f_handler.setLevel(logging.DEBUG)
        f_handler.setFormatter(log_format)
        logger.addHandler(f_handler)
    elif log_mode == 'off' and has_file_handler:
        for handler in [h for h in logger.handlers if isinstance(h, logging.FileHandler)]:
            handler.close()
            logger.removeHandler(handler)

    if log_mode != 'off' and not has_console_handler:
        c_handler = logging.StreamHandler()
        c_handler.setFormatter(log_format)
        logger.addHandler(c_handler)

    # Update console handlers
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)


def refresh_log_mode(log_mode: Optional[str] = None):
    """Store a new log mode and re-apply it to every logger created by get_logger."""
    global _configured_log_mode
    if log_mode is not None:
        _configured_log_mode = log_mode
    current = _get_log_mode()

    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        if not logger_name.startswith('translation_machine'):
            continue
        _configure(logging.getLogger(logger_name), current)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    _configure(logger, _get_log_mode())
    return logger

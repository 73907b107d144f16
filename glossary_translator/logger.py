import logging
import os
from pathlib import Path

LOG_DIR = Path(os.getenv("GLOSSARY_TRANSLATOR_LOG_DIR", Path(__file__).parent.parent / "logs"))
LOG_FILE = LOG_DIR / "app.log"

LOG_MODES = ("off", "info", "debug")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Cache for log mode to avoid repeated config reads
_log_mode_cache = None

# Names of loggers handed out by get_logger
_managed_loggers = set()


def _get_log_mode():
    """Get log mode from the LOG_MODE environment variable or configuration."""
    global _log_mode_cache
    if _log_mode_cache is not None:
        return _log_mode_cache

    env_mode = os.getenv("LOG_MODE", "").strip().lower()
    if env_mode in LOG_MODES:
        _log_mode_cache = env_mode
        return env_mode

    try:
        from glossary_translator.config import load_config
        log_mode = load_config().get('log_mode', 'off')
    except Exception:
        # Config not importable yet (first import of config itself) or unreadable
        return 'off'

    if log_mode not in LOG_MODES:
        log_mode = 'off'
    _log_mode_cache = log_mode
    return log_mode


def _levels_for(log_mode):
    """Return (logger level, console level) for a log mode."""
    if log_mode == 'debug':
        return logging.DEBUG, logging.DEBUG
    if log_mode == 'off':
        # Higher than CRITICAL disables everything
        return logging.CRITICAL + 1, logging.CRITICAL + 1
    return logging.INFO, logging.INFO


def _configure(logger, log_mode):
    level, console_level = _levels_for(log_mode)
    logger.setLevel(level)
    log_format = logging.Formatter(LOG_FORMAT)

    has_file_handler = any(isinstance(h, logging.FileHandler) for h in logger.handlers)
    has_console_handler = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in logger.handlers
    )

    if log_mode != 'off' and not has_file_handler:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        f_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
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

    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(console_level)


def refresh_log_mode():
    """Clear the log mode cache and update all existing loggers (call this when config is updated)."""
    global _log_mode_cache
    _log_mode_cache = None

    log_mode = _get_log_mode()
    for name in list(_managed_loggers):
        _configure(logging.getLogger(name), log_mode)
    return log_mode


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    _managed_loggers.add(name)
    _configure(logger, _get_log_mode())
    return logger

"""
Logging Setup

Configures the ``playsession`` logger hierarchy with a rich console handler and
an optional log file, and provides an adapter that stamps session context onto
every record.
"""

import logging
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional, Tuple

from rich.logging import RichHandler

ROOT_LOGGER_NAME = "playsession"

# There is no separate fatal level in the logging module; critical plays that role.
FATAL = logging.CRITICAL

_LEVELS = {
    'fatal': logging.CRITICAL,
    'critical': logging.CRITICAL,
    'error': logging.ERROR,
    'warning': logging.WARNING,
    'warn': logging.WARNING,
    'info': logging.INFO,
    'debug': logging.DEBUG,
}


def resolve_level(level: Any) -> int:
    """Translate a level name (``'fatal'``, ``'info'``...) or number into a logging level."""
    if isinstance(level, int):
        return level
    try:
        return _LEVELS[str(level).lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}") from None


def setup_logging(level: Any = "info", log_file: Optional[str] = None,
                  console: bool = True) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Minimum level name or number
        log_file: Optional path of a plain-text log file
        console: Attach a rich console handler

    Returns:
        The configured ``playsession`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(resolve_level(level))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = RichHandler(rich_tracebacks=True, show_path=False)
        console_handler.setFormatter(logging.Formatter('%(name)s - %(message)s'))
        logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )
        logger.addHandler(file_handler)

    logger.propagate = not logger.handlers
    return logger


def setup_logging_from_config(config) -> logging.Logger:
    """Configure logging from the ``logging`` section of a config provider."""
    log_file = None
    if config.get("logging.file", False):
        log_file = str(Path(config.get("logging.path", "logs")) / "playsession.log")
    return setup_logging(
        level=config.get("logging.level", "info"),
        log_file=log_file,
        console=config.get("logging.console", True),
    )


class SessionLoggerAdapter(logging.LoggerAdapter):
    """
    Prefixes messages with the session id and exposes context as record extras.

    Extra fields passed per call are merged over the adapter's own context.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra: Dict[str, Any] = dict(self.extra or {})
        extra.update(kwargs.get('extra') or {})
        kwargs['extra'] = extra
        session_id = extra.get('session_id')
        if session_id:
            msg = f"[{session_id}] {msg}"
        return msg, kwargs

    def fatal(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(FATAL, msg, *args, **kwargs)


def get_session_logger(name: str, session_id: str, **fields: Any) -> SessionLoggerAdapter:
    """Return a logger adapter bound to ``session_id`` and any extra context fields."""
    context = {'session_id': session_id}
    context.update(fields)
    return SessionLoggerAdapter(logging.getLogger(name), context)

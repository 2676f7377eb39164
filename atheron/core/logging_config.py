"""
Logging setup for the Atheron API and the turn pipeline.

The API process writes to stdout and to one file per day under logs/
(atheron_YYYYMMDD.log). The console shows the configured level; the file
keeps DEBUG so a session's turns can be traced after the fact: detector
state changes, quiet-window holds, provider fallbacks and background write
failures all log at DEBUG or WARNING under their module name.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

# Provider SDKs and HTTP stacks log every request at DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "openai", "groq")

_logging_configured = False


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Attach the console and daily-file handlers to the root logger.

    Called once when atheron.api.main is imported, with the LOG_LEVEL
    setting. Later calls return the root logger unchanged.

    Args:
        log_level: Console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the daily files. Defaults to 'logs/' next to
            the atheron package.

    Returns:
        The root logger

    Example:
        >>> from atheron.core.logging_config import setup_logging
        >>> setup_logging(get_settings().log_level)
        >>> logging.getLogger("atheron.api").info("Atheron API ready")
    """
    global _logging_configured

    if _logging_configured:
        return logging.getLogger()

    if log_dir is None:
        log_dir = Path(__file__).parent.parent.parent / "logs"
    log_dir.mkdir(exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(getattr(logging, log_level.upper()))

    log_file = log_dir / f"atheron_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.DEBUG)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logging_configured = True

    root_logger.debug(f"Logging configured: level={log_level}, file={log_file}")

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Module logger for atheron code; pass __name__.

    Example:
        >>> logger = get_logger(__name__)  # in atheron/services/turn_writer.py
        >>> logger.error(f"Failed to save assistant turn (session={session_id}): {e.message}")
        2026-03-02 21:14:07 | ERROR    | atheron.services.turn_writer:57 | Failed to save assistant turn (session=3f2b...): database is locked
    """
    return logging.getLogger(name)

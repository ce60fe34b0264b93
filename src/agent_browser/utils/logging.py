"""
Logging utilities for Agent Browser.

setup_logging() owns the handlers it installs (tagged with
``_agent_browser``) and replaces only those on a second call, so handlers
added by a host application or a test harness survive reconfiguration.
"""

import json
import logging
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler

# Chatty below WARNING: every provider REST call, every CDP event loop tick
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log files consumed by other tools."""
    
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        session = getattr(record, "session", None)
        if session:
            payload["session"] = session
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _owned(handler: logging.Handler) -> bool:
    return getattr(handler, "_agent_browser", False)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure logging for the application.
    
    Console output goes to stderr so that stdout stays free for
    command results (tab tables, JSON).
    
    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        json_format: Use JSON format for the log file
        quiet: Loggers held at WARNING unless level is DEBUG
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in [h for h in root_logger.handlers if _owned(h)]:
        root_logger.removeHandler(handler)
        handler.close()
    
    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
    ]
    
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            JsonFormatter() if json_format
            else logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        handlers.append(file_handler)
    
    for handler in handlers:
        handler.setLevel(log_level)
        handler._agent_browser = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)
    
    for name in quiet:
        logging.getLogger(name).setLevel(logging.NOTSET if log_level <= logging.DEBUG else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; identical to logging.getLogger(name)."""
    return logging.getLogger(name)

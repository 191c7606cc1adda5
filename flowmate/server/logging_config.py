"""
Logging setup shared by the API server and the worker.
"""

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from typing import Optional

from flowmate.server.utils import sanitize_error_message

# TRACE level = 5 (below DEBUG = 10)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

CHATTY_LOGGERS = (
    "sse_starlette",
    "sse_starlette.sse",
    "pymongo",
    "pymongo.topology",
    "pymongo.connection",
    "pymongo.serverSelection",
    "httpx",
    "openai",
    "anthropic",
)


def sanitize_base64(message: str, max_base64_len: int = 50) -> str:
    """Truncate base64 strings in messages to prevent huge outputs."""
    pattern = r'(data:[^;]+;base64,)?([A-Za-z0-9+/=]{100,})'

    def truncate(match):
        prefix = match.group(1) or ''
        data = match.group(2)
        if len(data) > max_base64_len:
            return f"{prefix}[base64 data, {len(data)} chars truncated]"
        return match.group(0)

    return re.sub(pattern, truncate, message)


class SecretRedactingFilter(logging.Filter):
    """Redacts API keys and tokens, and truncates base64 blobs, in every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = sanitize_base64(sanitize_error_message(str(record.msg)))
        if record.args:
            record.args = tuple(
                sanitize_base64(sanitize_error_message(arg)) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


def configure_logging(verbose: bool = False, trace: bool = False, log_dir: Optional[str] = None) -> str:
    """
    Console at WARNING (DEBUG with verbose, TRACE with trace), plus a rotating
    INFO file for the flowmate loggers. Returns the log file path.
    """
    log_dir = log_dir or os.environ.get("LOG_DIR", os.path.join(os.getcwd(), "logs"))
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, "server.log")

    if trace:
        console_level = TRACE
    elif verbose:
        console_level = logging.DEBUG
    else:
        console_level = logging.WARNING

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    file_handler.addFilter(SecretRedactingFilter())

    logging.basicConfig(level=console_level)
    for handler in logging.getLogger().handlers:
        handler.addFilter(SecretRedactingFilter())

    flowmate_logger = logging.getLogger("flowmate")
    flowmate_logger.setLevel(min(console_level, logging.INFO))
    flowmate_logger.addHandler(file_handler)

    # Third-party loggers only come through with --trace
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if trace else logging.WARNING)

    return log_file

"""
Logging Module
==============
Console and file logging for the swap bot.

- Rich console output with timestamps
- Daily log file for the process, one rotating file per lane
- SecureLogger wrapper that redacts key material and RPC URLs
"""

import os
import re
import logging
import logging.handlers
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Set

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "swap_bot"

FILE_FORMAT = "[%(asctime)s] %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Global console for Rich output
console = Console()


# Loaded wallet secrets; redacted verbatim from every message
_registered_secrets: Set[str] = set()
_secrets_lock = threading.Lock()


def register_secrets(secrets: Iterable[str]):
    """Register key material that must never reach a log sink."""
    with _secrets_lock:
        for secret in secrets:
            secret = secret.strip()
            if not secret:
                continue
            bare = secret[2:] if secret.lower().startswith("0x") else secret
            _registered_secrets.add(bare.lower())


class SecureLogger:
    """
    Logger that sanitizes sensitive data from log messages.

    Registered private keys are removed wherever they appear. Key material
    has the same shape as a transaction hash, so it is matched by value
    rather than by pattern. RPC URLs often embed API keys and are replaced
    as well.
    """

    SENSITIVE_PATTERNS = [
        (r'https?://[^\s]+', '[URL_REDACTED]'),
        (r'password["\']?\s*[:=]\s*\S+', 'password=[REDACTED]'),
    ]

    def __init__(self, logger: logging.Logger, prefix: str = ""):
        self._logger = logger
        self.prefix = prefix

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def handlers(self):
        return self._logger.handlers

    def _sanitize(self, msg) -> str:
        """Remove sensitive data from log message."""
        if not isinstance(msg, str):
            msg = str(msg)

        sanitized = msg
        with _secrets_lock:
            secrets = list(_registered_secrets)
        for secret in secrets:
            sanitized = re.sub(
                rf'(0x)?{re.escape(secret)}', '[PRIVATE_KEY_REDACTED]', sanitized, flags=re.IGNORECASE
            )
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)
        return f"{self.prefix}{sanitized}"

    def debug(self, msg, *args, **kwargs):
        self._logger.debug(self._sanitize(msg), *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        self._logger.info(self._sanitize(msg), *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self._logger.warning(self._sanitize(msg), *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        self._logger.error(self._sanitize(msg), *args, **kwargs)

    def exception(self, msg, *args, **kwargs):
        self._logger.exception(self._sanitize(msg), *args, **kwargs)

    def critical(self, msg, *args, **kwargs):
        self._logger.critical(self._sanitize(msg), *args, **kwargs)


def _daily_log_path(log_dir: str, stem: str) -> Path:
    return Path(log_dir) / f"{stem}_{datetime.now().strftime('%Y-%m-%d')}.log"


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = "logs") -> SecureLogger:
    """
    Setup console and file logging for the process.

    Console output goes through Rich; the file sink is
    ``<log_dir>/swap_<date>.log``. Pass ``log_dir=None`` to skip the file.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.propagate = False

    # Remove existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        log_time_format="[%Y-%m-%d %H:%M:%S]",
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(rich_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(_daily_log_path(log_dir, "swap"))
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return SecureLogger(logger)


def get_logger(name: Optional[str] = None) -> SecureLogger:
    """Secure wrapper around the bot logger or one of its children."""
    full_name = f"{ROOT_LOGGER_NAME}.{name}" if name else ROOT_LOGGER_NAME
    return SecureLogger(logging.getLogger(full_name))


def get_lane_logger(
    lane_id: int,
    log_dir: Optional[str] = "logs",
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> SecureLogger:
    """
    Logger for one execution lane.

    Records propagate to the process logger (console and main file) with a
    ``[Lane N]`` prefix and are also written to the lane's own rotating file.
    """
    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.lane{lane_id}")

    if log_dir and not logger.handlers:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            _daily_log_path(log_dir, f"lane{lane_id}"),
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    return SecureLogger(logger, prefix=f"[Lane {lane_id}] ")


# Module-level logger; replaced with configured handlers by setup_logging()
logger = get_logger()

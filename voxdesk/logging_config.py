"""Logging configuration using Loguru.

Provides structured logging with:
- Console output for development
- Daily-rotated files for production
- The current call id on every record emitted while a call is being handled
- No caller PII in logs (phone numbers, e-mails, names, transcripts)
"""

import sys
from contextlib import AbstractContextManager
from pathlib import Path

from loguru import logger

NO_CALL = "-"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[call_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "call={extra[call_id]} | "
    "{name}:{function}:{line} | "
    "{message}"
)


def setup_logging(
    level: str = "INFO",
    log_dir: str = "logs",
    enable_file: bool = True,
) -> None:
    """Configure application logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files
        enable_file: Whether to enable file logging
    """
    logger.remove()
    logger.configure(extra={"call_id": NO_CALL})

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=True,  # Variable values in tracebacks; console only
    )

    if enable_file:
        log_path = Path(log_dir)
        log_path.mkdir(exist_ok=True)

        logger.add(
            log_path / "voxdesk_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT,
            level=level,
            rotation="00:00",
            retention="30 days",
            compression="gz",
            backtrace=True,
            diagnose=False,
        )

        # Error-only log for quick debugging of failed calls
        logger.add(
            log_path / "errors_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT + "\n{exception}",
            level="ERROR",
            rotation="00:00",
            retention="90 days",
            compression="gz",
            backtrace=True,
            diagnose=False,
        )

    logger.info(f"Logging initialized at {level} level")


def get_logger(name: str) -> "logger":
    """Get a logger instance with the given name.

    Usage:
        from voxdesk.logging_config import get_logger
        logger = get_logger(__name__)
        logger.info("Message")
    """
    return logger.bind(name=name)


def call_context(call_id: str) -> AbstractContextManager[None]:
    """Tag every record logged inside the block (and tasks it spawns) with ``call_id``."""
    return logger.contextualize(call_id=call_id)


# PII filtering utilities
def mask_phone(phone: str) -> str:
    """Mask phone number for logging: +33123456789 -> +3XXXX6789.

    Use this before logging any phone number.
    """
    if not phone or len(phone) < 6:
        return "XXXX"
    return f"{phone[:2]}XXXX{phone[-4:]}"


def mask_email(email: str) -> str:
    """Mask e-mail address for logging: jane.doe@firm.com -> j***@firm.com."""
    if not email or "@" not in email:
        return "[REDACTED]"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


def sanitize_for_log(data: dict) -> dict:
    """Remove or mask caller PII in a dict before logging.

    Removes: transcript, client name
    Masks: any field containing 'phone' or 'email'
    """
    sensitive_fields = {"transcript", "client_name", "clientName"}
    result = {}

    for key, value in data.items():
        lowered = key.lower()
        if key in sensitive_fields:
            result[key] = "[REDACTED]"
        elif "phone" in lowered and isinstance(value, str):
            result[key] = mask_phone(value)
        elif "email" in lowered and isinstance(value, str):
            result[key] = mask_email(value)
        elif isinstance(value, dict):
            result[key] = sanitize_for_log(value)
        else:
            result[key] = value

    return result

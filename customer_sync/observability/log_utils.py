"""
Logging utilities for safe structured logging.

Helpers that keep secrets and large payloads out of log records.

Dependencies: logging (stdlib)
System role: Logging helper functions
"""

import logging
from typing import Any

SENSITIVE_KEYS = frozenset({"token", "password", "default_password", "password_hash", "senha"})
REDACTED = "***"


def safe_log_value(value: Any, max_length: int = 500) -> str:
    """
    Safely convert any value to a string for logging.

    Collections are summarized by size instead of dumped.

    Args:
        value: Value to convert
        max_length: Maximum length before truncating

    Returns:
        str: Safe string representation
    """
    if value is None:
        return "None"
    if isinstance(value, str):
        val_str = value
    elif isinstance(value, (list, tuple)):
        val_str = f"{type(value).__name__}({len(value)} items)"
    elif isinstance(value, dict):
        val_str = f"dict({len(value)} keys)"
    else:
        val_str = str(value)

    if len(val_str) > max_length:
        return val_str[:max_length] + f"... (truncated, {len(val_str)} total)"
    return val_str


def redact(data: dict[str, Any]) -> dict[str, Any]:
    """
    Return a shallow copy of data with credential values masked.

    Nested dicts are redacted recursively.

    Args:
        data: Mapping that may contain tokens or passwords

    Returns:
        dict: Copy safe to log or return to API callers
    """
    clean: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in SENSITIVE_KEYS:
            clean[key] = REDACTED
        elif isinstance(value, dict):
            clean[key] = redact(value)
        else:
            clean[key] = value
    return clean


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context: Any,
) -> None:
    """
    Log an exception with traceback and safely converted context.

    Args:
        logger: Logger instance
        message: Log message
        exc: Exception instance
        **context: Additional context, credential keys are masked
    """
    safe_context = {key: safe_log_value(val) for key, val in redact(context).items()}
    safe_context.update({
        "error_type": type(exc).__name__,
        "error_msg": safe_log_value(getattr(exc, "message", None) or str(exc)),
    })
    logger.error(message, exc_info=exc, extra=safe_context)

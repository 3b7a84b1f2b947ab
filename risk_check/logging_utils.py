"""
Risk Check - Logging Utilities.

Structured logging setup and header masking for provider HTTP calls.
API keys (x-apikey, X-API-Key) must never reach the logs.
"""

import json
import logging
import sys
from typing import Optional, TextIO


SENSITIVE_HEADERS = {
    "authorization",
    "x-apikey",
    "x-api-key",
    "api-key",
}


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    correlation_id: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Set up structured logging.

    Args:
        level: Log level
        log_format: Output format (json or text)
        correlation_id: Correlation ID for tracing
        stream: Output stream (default: stdout)

    Returns:
        Configured package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
                "correlation_id": correlation_id or "",
            })
        )
    else:
        formatter = logging.Formatter(
            f"%(asctime)s | %(levelname)-8s | %(name)s | {correlation_id or ''} | %(message)s"
        )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("risk_check")


def mask_value(value: str, visible: int = 4) -> str:
    """Mask a secret, keeping only a short prefix."""
    if not value:
        return ""
    if len(value) <= visible * 2:
        return "****"
    return value[:visible] + "****"


def mask_headers(headers: Optional[dict[str, str]]) -> dict[str, str]:
    """Return a copy of headers with credentials masked."""
    if not headers:
        return {}
    return {
        key: mask_value(value) if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }

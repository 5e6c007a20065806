"""Structured log lines for dispatch events.

Every line reads ``message | request_id=.. | action=.. | user_id=.. | k=v``.
Fields that are None are left out, and values are scrubbed of GitHub
credentials before they are written.
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Any

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Every prefix GitHub issues tokens under
_GITHUB_TOKEN = re.compile(r"\b(ghp|ghs|gho|ghu|ghr|github_pat)_[A-Za-z0-9_]+")
_AUTH_VALUE = re.compile(
    r"(Authorization[:\s]+(?:(?:Bearer|token)\s+)?)([^\s,;]+)", re.IGNORECASE
)

# Rendered ahead of any other fields, in this order
_LEADING_FIELDS = ("action", "user_id")


def redact_secrets(text: Any) -> str:
    """Mask GitHub tokens and Authorization header values."""
    if text is None:
        return ""
    text = _GITHUB_TOKEN.sub(r"\1_***REDACTED***", str(text))
    return _AUTH_VALUE.sub(r"\1***REDACTED***", text)


def set_request_id(request_id: str | None = None) -> str:
    """Bind a request ID to the current context, generating one if needed."""
    request_id = request_id or uuid.uuid4().hex
    _request_id_var.set(request_id)
    return request_id


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def format_event(message: str, **fields: Any) -> str:
    parts = [message]

    request_id = get_request_id()
    if request_id:
        parts.append(f"request_id={request_id}")

    ordered = [k for k in _LEADING_FIELDS if k in fields]
    ordered += [k for k in fields if k not in _LEADING_FIELDS]
    for key in ordered:
        value = fields[key]
        if value is None:
            continue
        parts.append(f"{key}={redact_secrets(value)}")

    return " | ".join(parts)


def log_info(logger: logging.Logger, message: str, **fields: Any) -> None:
    if logger.isEnabledFor(logging.INFO):
        logger.info(format_event(message, **fields))


def log_error(logger: logging.Logger, message: str, **fields: Any) -> None:
    logger.error(format_event(message, **fields))

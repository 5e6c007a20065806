"""Action dispatch and confirmation engine.

This module implements:
- The handler registry and built-in action handlers
- The confidence-aware confirmation policy
- The per-user pending confirmation store with expiry
- The dispatcher tying them together
"""

from .confirmations import (
    ConfirmationStore,
    ConfirmationStoreError,
    ConfirmationSweeper,
    RedisConfirmationStore,
)
from .dispatcher import ActionDispatcher, create_dispatcher
from .handlers import BuiltinActions, format_status_message, parse_todo
from .policy import ConfirmationPolicy
from .registry import HandlerRegistrationError, HandlerRegistry
from .types import ActionContext, ActionResult, ErrorInfo, PendingConfirmation

__all__ = [
    "ActionContext",
    "ActionDispatcher",
    "ActionResult",
    "BuiltinActions",
    "ConfirmationPolicy",
    "ConfirmationStore",
    "ConfirmationStoreError",
    "ConfirmationSweeper",
    "ErrorInfo",
    "HandlerRegistrationError",
    "HandlerRegistry",
    "PendingConfirmation",
    "RedisConfirmationStore",
    "create_dispatcher",
    "format_status_message",
    "parse_todo",
]

"""Registry mapping action names to handlers."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .types import ActionContext, ActionResult

logger = logging.getLogger(__name__)

ActionHandler = Callable[[dict[str, Any], ActionContext], Awaitable[ActionResult]]


class HandlerRegistrationError(TypeError):
    """Raised when a handler cannot be registered."""


class HandlerRegistry:
    """Map action names to async handlers, preserving registration order."""

    def __init__(self) -> None:
        self._handlers: dict[str, ActionHandler] = {}

    def register(self, action_name: str, handler: ActionHandler) -> None:
        """Register a handler for an action.

        Re-registering a name replaces the previous handler (last write wins).

        Raises:
            HandlerRegistrationError: If the handler is not callable
        """
        if not callable(handler):
            raise HandlerRegistrationError(f"Handler for {action_name} must be a function")
        self._handlers[action_name] = handler
        logger.debug("Registered handler: %s", action_name)

    def lookup(self, action_name: str) -> ActionHandler | None:
        return self._handlers.get(action_name)

    def list_actions(self) -> list[str]:
        """Registered action names in registration order."""
        return list(self._handlers)

    def __contains__(self, action_name: object) -> bool:
        return action_name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

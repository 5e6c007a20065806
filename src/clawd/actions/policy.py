"""Confirmation policy for side-effecting actions."""

from collections.abc import Iterable
from dataclasses import dataclass

from ..config import DEFAULT_BYPASS_THRESHOLD
from .types import ActionContext

DEFAULT_CONFIRMATION_ACTIONS = frozenset(
    {"deploy", "create-page", "create-feature", "create-task", "code-task"}
)
DEFAULT_CRITICAL_ACTIONS = frozenset({"deploy"})


@dataclass(frozen=True)
class ConfirmationPolicy:
    """Decide whether an action must wait for user confirmation.

    High-confidence classifications skip confirmation for non-critical
    actions. Critical actions are never exempted.
    """

    requiring: frozenset[str] = DEFAULT_CONFIRMATION_ACTIONS
    critical: frozenset[str] = DEFAULT_CRITICAL_ACTIONS
    bypass_threshold: float = DEFAULT_BYPASS_THRESHOLD

    @classmethod
    def build(
        cls,
        requiring: Iterable[str] | None = None,
        critical: Iterable[str] | None = None,
        bypass_threshold: float = DEFAULT_BYPASS_THRESHOLD,
    ) -> "ConfirmationPolicy":
        if not 0.0 <= bypass_threshold <= 1.0:
            raise ValueError(f"bypass_threshold must be within [0, 1], got {bypass_threshold}")
        return cls(
            requiring=frozenset(requiring) if requiring is not None else DEFAULT_CONFIRMATION_ACTIONS,
            critical=frozenset(critical) if critical is not None else DEFAULT_CRITICAL_ACTIONS,
            bypass_threshold=bypass_threshold,
        )

    def needs_confirmation(self, action: str, context: ActionContext | None = None) -> bool:
        confidence = context.confidence if context else None
        if confidence and confidence >= self.bypass_threshold and action not in self.critical:
            return False
        return action in self.requiring


# Used by BuiltinActions when no policy is injected
DEFAULT_POLICY = ConfirmationPolicy()

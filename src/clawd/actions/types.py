"""Core data types for action dispatch and confirmation."""

from dataclasses import dataclass, field, fields, replace
from datetime import UTC, datetime, timedelta
from typing import Any


@dataclass
class ActionContext:
    """Caller-supplied context for an action invocation."""

    user_id: str | None = None
    project_id: str | None = None
    project_details: dict[str, Any] | None = None
    project_repo: str | None = None
    company: str | None = None
    confidence: float | None = None
    media_url: str | None = None
    media_type: str | None = None
    # Only set internally when re-running a previously confirmed action
    confirmed: bool = False

    @property
    def stack(self) -> list[Any]:
        """Project stack from the project details, or an empty list."""
        if not self.project_details:
            return []
        return list(self.project_details.get("stack") or [])

    def with_confirmation(self) -> "ActionContext":
        """Return a copy marked as confirmed with full confidence."""
        return replace(self, confirmed=True, confidence=1.0)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ActionContext":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class ErrorInfo:
    """Auxiliary error data attached to a failed result."""

    type: str
    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        return cls(type=type(exc).__name__, message=str(exc))

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "message": self.message}


@dataclass
class ActionResult:
    """Uniform result of every handler and of the dispatcher itself.

    A failed result never asks for confirmation: ``needs_confirmation`` is
    forced to False whenever ``success`` is False.
    """

    success: bool
    action: str
    message: str
    data: dict[str, Any] | None = None
    needs_confirmation: bool = False
    confirmation_prompt: str | None = None
    confirmed: bool = False
    error: ErrorInfo | None = None

    def __post_init__(self) -> None:
        if not self.success:
            self.needs_confirmation = False

    @classmethod
    def failure(
        cls,
        action: str,
        message: str,
        error: BaseException | ErrorInfo | None = None,
    ) -> "ActionResult":
        """Build the standard failure result."""
        if isinstance(error, BaseException):
            error = ErrorInfo.from_exception(error)
        return cls(success=False, action=action, message=message, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses and storage."""
        return {
            "success": self.success,
            "action": self.action,
            "message": self.message,
            "data": self.data,
            "needs_confirmation": self.needs_confirmation,
            "confirmation_prompt": self.confirmation_prompt,
            "confirmed": self.confirmed,
            "error": self.error.to_dict() if self.error else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionResult":
        error = data.get("error")
        if isinstance(error, dict):
            error = ErrorInfo(type=error.get("type", "Error"), message=error.get("message", ""))
        return cls(
            success=bool(data["success"]),
            action=data["action"],
            message=data.get("message", ""),
            data=data.get("data"),
            needs_confirmation=bool(data.get("needs_confirmation", False)),
            confirmation_prompt=data.get("confirmation_prompt"),
            confirmed=bool(data.get("confirmed", False)),
            error=error,
        )


@dataclass
class PendingConfirmation:
    """An action awaiting explicit user confirmation."""

    action: str
    params: dict[str, Any]
    context: ActionContext
    result: ActionResult
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def age(self, now: datetime) -> timedelta:
        return now - self.created_at

    def is_expired(self, now: datetime, expiry_seconds: float) -> bool:
        """Check if this entry is older than the expiry window."""
        return self.age(now) > timedelta(seconds=expiry_seconds)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "params": self.params,
            "context": self.context.to_dict(),
            "result": self.result.to_dict(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingConfirmation":
        return cls(
            action=data["action"],
            params=data.get("params") or {},
            context=ActionContext.from_dict(data.get("context")),
            result=ActionResult.from_dict(data["result"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )

"""Pydantic models for the action dispatch HTTP API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from .actions.types import ActionContext, ActionResult, PendingConfirmation


class ProjectDetails(BaseModel):
    """Project metadata from the project registry."""

    stack: list[str] = Field(default_factory=list)
    type: str | None = Field(default=None, examples=["web-app"])


class ActionContextModel(BaseModel):
    """Context assembled by the upstream classifier."""

    user_id: str | None = None
    project_id: str | None = None
    project_details: ProjectDetails | None = None
    project_repo: str | None = Field(default=None, examples=["giquina/aws-clawd-bot"])
    company: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    media_url: str | None = None
    media_type: str | None = None

    def to_context(self) -> ActionContext:
        # ``confirmed`` is internal and never accepted from callers
        return ActionContext.from_dict(self.model_dump())


class ExecuteRequest(BaseModel):
    """Execute action request."""

    action: str = Field(..., examples=["create-page"])
    params: dict[str, Any] = Field(default_factory=dict)
    context: ActionContextModel = Field(default_factory=ActionContextModel)


class UserRequest(BaseModel):
    """Confirm or reject request."""

    user_id: str = Field(..., min_length=1)


class ErrorInfoModel(BaseModel):
    type: str
    message: str


class ActionResultResponse(BaseModel):
    """Uniform action result."""

    success: bool
    action: str
    message: str
    data: dict[str, Any] | None = None
    needs_confirmation: bool = False
    confirmation_prompt: str | None = None
    confirmed: bool = False
    error: ErrorInfoModel | None = None

    @classmethod
    def from_result(cls, result: ActionResult) -> "ActionResultResponse":
        return cls.model_validate(result.to_dict())


class PendingConfirmationResponse(BaseModel):
    """A user's pending confirmation, if any."""

    pending: bool
    action: str | None = None
    confirmation_prompt: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_pending(cls, pending: PendingConfirmation | None) -> "PendingConfirmationResponse":
        if pending is None:
            return cls(pending=False)
        return cls(
            pending=True,
            action=pending.action,
            confirmation_prompt=pending.result.confirmation_prompt,
            created_at=pending.created_at,
        )


class ActionsListResponse(BaseModel):
    actions: list[str]


class StatusResponse(BaseModel):
    """Service status."""

    status: Literal["ok", "degraded"]
    version: str
    timestamp: datetime
    actions: int
    pending_confirmations: int

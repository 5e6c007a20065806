"""FastAPI surface for the action dispatcher.

The app owns one dispatcher for the process and runs the confirmation
sweeper for its lifetime.
"""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request

from clawd.actions import ActionDispatcher, ConfirmationSweeper, create_dispatcher
from clawd.config import DispatchSettings
from clawd.logging_utils import clear_request_id, set_request_id
from clawd.models import (
    ActionResultResponse,
    ActionsListResponse,
    ExecuteRequest,
    PendingConfirmationResponse,
    StatusResponse,
    UserRequest,
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def create_app(
    dispatcher: ActionDispatcher | None = None,
    settings: DispatchSettings | None = None,
) -> FastAPI:
    """Build the API app around a dispatcher.

    Args:
        dispatcher: Dispatcher to serve (default: built from settings)
        settings: Runtime settings (default: from environment)
    """
    settings = settings or DispatchSettings.from_env()
    if dispatcher is None:
        dispatcher = create_dispatcher(settings)
    sweeper = ConfirmationSweeper(dispatcher.store, settings.sweep_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()

    app = FastAPI(
        title="Clawd Action Dispatch API",
        version=API_VERSION,
        description="Validate, confirm and execute classified assistant actions",
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher
    app.state.sweeper = sweeper

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = set_request_id(request.headers.get("X-Request-Id"))
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers["X-Request-Id"] = request_id
        return response

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/v1/status", response_model=StatusResponse)
    def get_status():
        """Service status with registered action and pending confirmation counts."""
        return StatusResponse(
            status="ok" if sweeper.running else "degraded",
            version=app.version,
            timestamp=datetime.now(UTC),
            actions=len(dispatcher.registry),
            pending_confirmations=len(dispatcher.store),
        )

    @app.get("/v1/actions", response_model=ActionsListResponse)
    def list_actions():
        return ActionsListResponse(actions=dispatcher.get_available_actions())

    @app.post("/v1/actions/execute", response_model=ActionResultResponse)
    async def execute_action(request: ExecuteRequest):
        """Execute an action.

        Validation failures and unknown actions are reported in the body with
        ``success=false``; only malformed requests get a 422.
        """
        result = await dispatcher.execute(
            request.action, request.params, request.context.to_context()
        )
        return ActionResultResponse.from_result(result)

    @app.post("/v1/actions/confirm", response_model=ActionResultResponse)
    async def confirm_action(request: UserRequest):
        result = await dispatcher.confirm_pending_action(request.user_id)
        return ActionResultResponse.from_result(result)

    @app.post("/v1/actions/reject", response_model=ActionResultResponse)
    async def reject_action(request: UserRequest):
        result = await dispatcher.reject_pending_action(request.user_id)
        return ActionResultResponse.from_result(result)

    @app.get("/v1/actions/pending/{user_id}", response_model=PendingConfirmationResponse)
    def get_pending(user_id: str):
        return PendingConfirmationResponse.from_pending(
            dispatcher.get_pending_confirmation(user_id)
        )

    return app


logging.basicConfig(level=logging.INFO)
app = create_app()

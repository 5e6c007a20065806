"""Action dispatcher: handler invocation plus the confirmation flow."""

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from ..config import DispatchSettings
from ..github import GitHubContentsClient, with_ttl_cache
from ..logging_utils import log_error, log_info
from ..projects import ProjectResolver, ProjectWhitelist, load_known_projects
from ..redis_client import get_redis_client
from .confirmations import ConfirmationStore, ConfirmationStoreError, RedisConfirmationStore
from .handlers import BuiltinActions, FetchDocument
from .policy import ConfirmationPolicy
from .registry import ActionHandler, HandlerRegistry
from .types import ActionContext, ActionResult, PendingConfirmation

logger = logging.getLogger(__name__)


class ActionDispatcher:
    """Single entry point for executing actions.

    Owns the handler registry and the per-user confirmation store. The
    dispatcher never raises: unknown actions and handler exceptions come back
    as failure results.
    """

    def __init__(
        self,
        registry: HandlerRegistry | None = None,
        store: ConfirmationStore | RedisConfirmationStore | None = None,
        policy: ConfirmationPolicy | None = None,
    ) -> None:
        self.registry = registry if registry is not None else HandlerRegistry()
        self.store = store if store is not None else ConfirmationStore()
        self.policy = policy if policy is not None else ConfirmationPolicy()

    def register_handler(self, action_name: str, handler: ActionHandler) -> None:
        """Register or replace a handler.

        Raises:
            HandlerRegistrationError: If the handler is not callable
        """
        self.registry.register(action_name, handler)

    def get_available_actions(self) -> list[str]:
        return self.registry.list_actions()

    def needs_confirmation(self, action: str, context: ActionContext | None = None) -> bool:
        return self.policy.needs_confirmation(action, context)

    def _unknown_action(self, action: str) -> ActionResult:
        available = ", ".join(self.registry.list_actions())
        return ActionResult.failure(
            action, f"Unknown action: {action}. Available actions: {available}"
        )

    async def _invoke(
        self, action: str, params: dict[str, Any], context: ActionContext
    ) -> ActionResult | None:
        """Run the handler for an action, converting exceptions to failures.

        Returns None if no handler is registered.
        """
        handler = self.registry.lookup(action)
        if handler is None:
            return None

        try:
            result = await handler(params, context)
            if isinstance(result, Mapping):
                result = ActionResult.from_dict(dict(result))
            if not isinstance(result, ActionResult):
                raise TypeError(
                    f"Handler for {action} returned {type(result).__name__}, expected ActionResult"
                )
            return result
        except Exception as e:
            logger.exception("Handler error for %s", action)
            return ActionResult.failure(action, f"Action failed: {e}", e)

    async def execute(
        self,
        action: str,
        params: dict[str, Any] | None = None,
        context: ActionContext | None = None,
    ) -> ActionResult:
        """Execute an action, storing a pending confirmation when required."""
        params = params or {}
        context = context or ActionContext()
        log_info(logger, "Executing action", action=action, user_id=context.user_id)

        result = await self._invoke(action, params, context)
        if result is None:
            log_info(logger, "No handler for action", action=action)
            return self._unknown_action(action)

        if result.needs_confirmation and context.user_id:
            # Overwrites any earlier pending entry for this user
            try:
                self.store.put(
                    context.user_id,
                    PendingConfirmation(
                        action=action,
                        params=params,
                        context=context,
                        result=result,
                        created_at=self.store.now(),
                    ),
                )
            except ConfirmationStoreError as e:
                log_error(
                    logger,
                    "Could not store pending confirmation",
                    action=action,
                    user_id=context.user_id,
                    error=str(e),
                )
                return ActionResult.failure(
                    action, f"Could not store pending confirmation: {e}", e
                )
            log_info(
                logger, "Stored pending confirmation", action=action, user_id=context.user_id
            )

        return result

    async def execute_confirmed(
        self,
        action: str,
        params: dict[str, Any],
        context: ActionContext,
    ) -> ActionResult:
        """Run an already-approved action without re-applying confirmation."""
        result = await self._invoke(action, params, context)
        if result is None:
            return self._unknown_action(action)
        return replace(result, needs_confirmation=False, confirmed=True)

    async def confirm_pending_action(self, user_id: str) -> ActionResult:
        # Consume first: a concurrent confirm or reject leaves nothing to run
        pending = self.store.pop(user_id)
        if pending is None:
            return ActionResult.failure("confirm", "No pending action to confirm")

        if self.store.is_expired(pending):
            log_info(logger, "Pending action expired", action=pending.action, user_id=user_id)
            return ActionResult.failure("confirm", "Pending action expired. Please try again.")

        log_info(logger, "Executing confirmed action", action=pending.action, user_id=user_id)

        return await self.execute_confirmed(
            pending.action, pending.params, pending.context.with_confirmation()
        )

    async def reject_pending_action(self, user_id: str) -> ActionResult:
        pending = self.store.pop(user_id)
        if pending is None:
            return ActionResult.failure("reject", "No pending action to reject")

        log_info(logger, "Rejected pending action", action=pending.action, user_id=user_id)
        return ActionResult(
            success=True,
            action="reject",
            message=f"Cancelled pending {pending.action} action",
            data={"cancelledAction": pending.action},
        )

    def get_pending_confirmation(self, user_id: str) -> PendingConfirmation | None:
        return self.store.peek(user_id)

    def cleanup_expired_confirmations(self) -> int:
        """Delete every pending confirmation older than the expiry window."""
        return self.store.sweep()


def create_dispatcher(
    settings: DispatchSettings | None = None,
    project_resolver: ProjectResolver | None = None,
    fetch_document: FetchDocument | None = None,
) -> ActionDispatcher:
    """Build the production dispatcher with the built-in actions registered.

    Args:
        settings: Runtime settings (default: from environment)
        project_resolver: Deployment whitelist (default: loaded from YAML config)
        fetch_document: Async document fetch capability (default: cached GitHub client)
    """
    settings = settings or DispatchSettings.from_env()

    if settings.confirmation_backend == "redis":
        store: ConfirmationStore | RedisConfirmationStore = RedisConfirmationStore(
            redis_client=get_redis_client(),
            expiry_seconds=settings.confirmation_expiry_seconds,
        )
    else:
        store = ConfirmationStore(expiry_seconds=settings.confirmation_expiry_seconds)

    policy = ConfirmationPolicy.build(bypass_threshold=settings.confidence_bypass_threshold)

    if project_resolver is None:
        project_resolver = ProjectWhitelist(load_known_projects(settings.projects_config))

    if fetch_document is None:
        client = GitHubContentsClient(token=settings.github_token)
        fetch_document = with_ttl_cache(client.fetch_file, settings.document_cache_ttl_seconds)

    dispatcher = ActionDispatcher(store=store, policy=policy)
    BuiltinActions(
        project_resolver=project_resolver,
        fetch_document=fetch_document,
        policy=policy,
        default_owner=settings.github_owner,
    ).register(dispatcher.registry)

    logger.info("Action dispatcher ready with %d actions", len(dispatcher.registry))
    return dispatcher

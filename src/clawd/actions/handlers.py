"""Built-in action handlers.

Each handler validates its inputs and derives the task descriptor a
downstream executor acts on. Missing inputs produce failure results, never
exceptions.
"""

import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

from ..github import GitHubAPIError
from ..logging_utils import log_error
from ..projects import ProjectResolver
from .policy import DEFAULT_POLICY, ConfirmationPolicy
from .registry import HandlerRegistry
from .types import ActionContext, ActionResult

logger = logging.getLogger(__name__)

FetchDocument = Callable[[str, str, str], Awaitable[str | None]]

PAGE_PROJECT_TYPES = ("web-app", "mobile-app")
DEPLOY_COMMANDS = ("git pull", "npm ci", "pm2 restart")
STATUS_ITEM_LIMIT = 5

_UNCHECKED_BOX = re.compile(r"^[-*]\s*\[\s*\]")
_CHECKED_BOX = re.compile(r"^[-*]\s*\[x\]", re.IGNORECASE)
INCOMPLETE_GLYPHS = ("⬜", "🟡")
COMPLETE_GLYPH = "✅"


def parse_todo(content: str) -> dict[str, Any]:
    """Count complete and incomplete items in a TODO document.

    Returns:
        Dict with incomplete/complete/total counts and up to five incomplete
        item texts with their markers stripped.
    """
    lines = content.split("\n")
    incomplete = [
        line
        for line in lines
        if _UNCHECKED_BOX.match(line) or any(glyph in line for glyph in INCOMPLETE_GLYPHS)
    ]
    complete = [line for line in lines if _CHECKED_BOX.match(line) or COMPLETE_GLYPH in line]

    items = []
    for line in incomplete[:STATUS_ITEM_LIMIT]:
        text = _UNCHECKED_BOX.sub("", line, count=1)
        for glyph in INCOMPLETE_GLYPHS:
            text = text.replace(glyph, "", 1)
        items.append(text.strip())

    return {
        "incomplete": len(incomplete),
        "complete": len(complete),
        "total": len(incomplete) + len(complete),
        "items": items,
    }


def format_status_message(status: dict[str, Any]) -> str:
    """Render a check-status result for chat."""
    msg = f"*{status['project']}* Status\n"
    msg += f"Repository: {status['repo']}\n\n"

    tasks = status.get("tasks")
    if not tasks:
        return msg + "No TODO.md found in repository.\n"

    msg += f"Tasks: {tasks['complete']}/{tasks['total']} complete\n"
    if tasks["incomplete"] > 0:
        msg += f"\n*Remaining ({tasks['incomplete']}):*\n"
        for item in tasks["items"]:
            msg += f"- {item}\n"
        if tasks["incomplete"] > STATUS_ITEM_LIMIT:
            msg += f"... and {tasks['incomplete'] - STATUS_ITEM_LIMIT} more\n"
    else:
        msg += "\nAll tasks complete!\n"

    return msg


class BuiltinActions:
    """The default action set and the collaborators it needs."""

    def __init__(
        self,
        project_resolver: ProjectResolver,
        fetch_document: FetchDocument,
        policy: ConfirmationPolicy = DEFAULT_POLICY,
        default_owner: str = "giquina",
    ) -> None:
        """Initialize the action set.

        Args:
            project_resolver: Resolves deployment targets against the whitelist
            fetch_document: Async ``(owner, repo, path) -> content | None``
            policy: Confirmation policy for confirmation-eligible actions
            default_owner: Repository owner used when only a project name is known
        """
        self.project_resolver = project_resolver
        self.fetch_document = fetch_document
        self.policy = policy
        self.default_owner = default_owner

    def handlers(self) -> dict[str, Callable[..., Awaitable[ActionResult]]]:
        """Action name to handler, in registration order."""
        return {
            "create-page": self.create_page,
            "create-feature": self.create_feature,
            "process-receipt": self.process_receipt,
            "deploy": self.deploy,
            "check-status": self.check_status,
            "create-task": self.create_task,
            "code-task": self.code_task,
        }

    def register(self, registry: HandlerRegistry) -> None:
        for name, handler in self.handlers().items():
            registry.register(name, handler)
        logger.info("Registered %d default handlers", len(registry))

    @staticmethod
    def _target(context: ActionContext) -> str | None:
        return context.project_id or context.project_repo

    async def create_page(self, params: dict[str, Any], context: ActionContext) -> ActionResult:
        page_name = params.get("pageName")
        page_type = params.get("pageType") or "page"

        if not page_name:
            return ActionResult.failure("create-page", "Page name is required")
        if not context.project_repo:
            return ActionResult.failure("create-page", "No project specified for page creation")

        project_type = (context.project_details or {}).get("type")
        if project_type and project_type not in PAGE_PROJECT_TYPES:
            return ActionResult.failure(
                "create-page", f'Project type "{project_type}" does not support page creation'
            )

        route = params.get("route") or f"/{page_name.lower()}"
        task = {
            "type": "create-page",
            "pageName": page_name,
            "pageType": page_type,
            "route": route,
            "projectRepo": context.project_repo,
            "stack": context.stack,
        }

        return ActionResult(
            success=True,
            action="create-page",
            message=f'Ready to create {page_type} "{page_name}" at route {route}',
            data=task,
            needs_confirmation=self.policy.needs_confirmation("create-page", context),
            confirmation_prompt=(
                f'Create a new {page_type} called "{page_name}" in {self._target(context)}?'
            ),
        )

    async def create_feature(self, params: dict[str, Any], context: ActionContext) -> ActionResult:
        feature_name = params.get("featureName")
        description = params.get("description")

        if not feature_name:
            return ActionResult.failure("create-feature", "Feature name is required")
        if not context.project_repo:
            return ActionResult.failure(
                "create-feature", "No project specified for feature creation"
            )

        task = {
            "type": "create-feature",
            "featureName": feature_name,
            "description": description or f"Implement {feature_name} feature",
            "projectRepo": context.project_repo,
            "stack": context.stack,
        }

        return ActionResult(
            success=True,
            action="create-feature",
            message=f'Ready to create feature "{feature_name}"',
            data=task,
            needs_confirmation=self.policy.needs_confirmation("create-feature", context),
            confirmation_prompt=(
                f'Create feature "{feature_name}" in {self._target(context)}?\n\n{description or ""}'
            ),
        )

    async def process_receipt(self, params: dict[str, Any], context: ActionContext) -> ActionResult:
        image_url = params.get("imageUrl") or context.media_url
        if not image_url:
            return ActionResult.failure("process-receipt", "No receipt image provided")

        # The receipts skill owns its own confirmation flow
        return ActionResult(
            success=True,
            action="process-receipt",
            message="Receipt ready for processing",
            data={
                "imageUrl": image_url,
                "company": params.get("company") or context.company,
                "suggestedSkill": "receipts",
            },
            needs_confirmation=False,
        )

    async def deploy(self, params: dict[str, Any], context: ActionContext) -> ActionResult:
        environment = params.get("environment") or "production"
        target = params.get("projectName") or context.project_id

        if not target:
            return ActionResult.failure("deploy", "No project specified for deployment")

        resolved = self.project_resolver.get_project_path(target)
        if not resolved.valid:
            known = ", ".join(resolved.known_projects)
            return ActionResult.failure(
                "deploy", f"Unknown deployment target: {target}. Known projects: {known}"
            )

        project = resolved.matched or target
        task = {
            "type": "deploy",
            "project": project,
            "path": resolved.path,
            "environment": environment,
            "commands": list(DEPLOY_COMMANDS),
        }

        # Deployments are always confirmed, whatever the confidence
        return ActionResult(
            success=True,
            action="deploy",
            message=f"Ready to deploy {project} to {environment}",
            data=task,
            needs_confirmation=True,
            confirmation_prompt=(
                f"Deploy {project} to {environment}?\n\n"
                "This will:\n1. Pull latest code\n2. Install dependencies\n3. Restart the service"
            ),
        )

    async def check_status(self, params: dict[str, Any], context: ActionContext) -> ActionResult:
        target = params.get("projectName") or context.project_id

        if not target and not context.project_repo:
            return ActionResult.failure("check-status", "No project specified")

        repo_path = context.project_repo or f"{self.default_owner}/{target}"
        owner, _, repo = repo_path.partition("/")

        try:
            content = await self.fetch_document(owner, repo, "TODO.md")
        except GitHubAPIError as e:
            log_error(logger, "check-status failed", repo=repo_path, error=str(e))
            return ActionResult.failure("check-status", f"Failed to check status: {e}", e)

        status: dict[str, Any] = {
            "project": target or repo,
            "repo": repo_path,
            "hasTodo": bool(content),
        }
        if content:
            status["tasks"] = parse_todo(content)

        return ActionResult(
            success=True,
            action="check-status",
            message=format_status_message(status),
            data=status,
            needs_confirmation=False,
        )

    async def create_task(self, params: dict[str, Any], context: ActionContext) -> ActionResult:
        title = params.get("title")
        body = params.get("body") or ""
        labels = params.get("labels") or []

        if not title:
            return ActionResult.failure("create-task", "Task title is required")
        if not context.project_repo:
            return ActionResult.failure("create-task", "No project specified for task creation")

        prompt = f"Create GitHub issue in {context.project_repo}?\n\nTitle: {title}\n"
        if body:
            prompt += f"\nDescription: {body[:100]}..."

        return ActionResult(
            success=True,
            action="create-task",
            message=f'Ready to create GitHub issue: "{title}"',
            data={
                "type": "github-issue",
                "title": title,
                "body": body,
                "labels": list(labels),
                "repo": context.project_repo,
            },
            needs_confirmation=self.policy.needs_confirmation("create-task", context),
            confirmation_prompt=prompt,
        )

    async def code_task(self, params: dict[str, Any], context: ActionContext) -> ActionResult:
        task = params.get("task")

        if not task:
            return ActionResult.failure("code-task", "Task description is required")
        if not context.project_repo:
            return ActionResult.failure("code-task", "No project specified")

        return ActionResult(
            success=True,
            action="code-task",
            message=f'Ready to execute code task: "{task}"',
            data={
                "type": "code-task",
                "task": task,
                "description": params.get("description") or task,
                "files": list(params.get("files") or []),
                "projectRepo": context.project_repo,
                "stack": context.stack,
            },
            needs_confirmation=self.policy.needs_confirmation("code-task", context),
            confirmation_prompt=f"Execute coding task in {self._target(context)}?\n\nTask: {task}",
        )

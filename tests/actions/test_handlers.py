"""Tests for the built-in action handlers."""

import pytest

from clawd.actions import ActionContext, BuiltinActions, format_status_message, parse_todo
from clawd.github import GitHubRateLimitError

REPO_CONTEXT = ActionContext(
    user_id="u1",
    project_id="giquina-website",
    project_repo="giquina/giquina-website",
    project_details={"stack": ["nextjs", "tailwind"], "type": "web-app"},
    confidence=0.5,
)


class TestCreatePage:
    """Test the create-page handler."""

    @pytest.mark.asyncio
    async def test_derives_route_and_descriptor(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.create_page({"pageName": "Pricing"}, REPO_CONTEXT)

        assert result.success is True
        assert result.action == "create-page"
        assert result.data == {
            "type": "create-page",
            "pageName": "Pricing",
            "pageType": "page",
            "route": "/pricing",
            "projectRepo": "giquina/giquina-website",
            "stack": ["nextjs", "tailwind"],
        }
        assert result.needs_confirmation is True
        assert 'called "Pricing" in giquina-website' in result.confirmation_prompt

    @pytest.mark.asyncio
    async def test_explicit_route_and_type(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.create_page(
            {"pageName": "About", "pageType": "component", "route": "/company/about"},
            REPO_CONTEXT,
        )

        assert result.data["route"] == "/company/about"
        assert result.data["pageType"] == "component"
        assert result.message == 'Ready to create component "About" at route /company/about'

    @pytest.mark.asyncio
    async def test_missing_page_name(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.create_page({}, REPO_CONTEXT)

        assert result.success is False
        assert result.needs_confirmation is False
        assert "Page name" in result.message

    @pytest.mark.asyncio
    async def test_missing_project_repo(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.create_page({"pageName": "Pricing"}, ActionContext())

        assert result.success is False
        assert "No project specified" in result.message

    @pytest.mark.asyncio
    async def test_unsupported_project_type(self, builtin_actions: BuiltinActions) -> None:
        context = ActionContext(project_repo="giquina/api", project_details={"type": "api"})

        result = await builtin_actions.create_page({"pageName": "Pricing"}, context)

        assert result.success is False
        assert 'Project type "api" does not support page creation' == result.message

    @pytest.mark.asyncio
    async def test_without_project_details_uses_empty_stack(
        self, builtin_actions: BuiltinActions
    ) -> None:
        context = ActionContext(project_repo="org/site")

        result = await builtin_actions.create_page({"pageName": "Blog"}, context)

        assert result.success is True
        assert result.data["stack"] == []
        assert "in org/site?" in result.confirmation_prompt


class TestCreateFeature:
    """Test the create-feature handler."""

    @pytest.mark.asyncio
    async def test_default_description(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.create_feature({"featureName": "Dark mode"}, REPO_CONTEXT)

        assert result.success is True
        assert result.data["description"] == "Implement Dark mode feature"
        assert result.data["projectRepo"] == "giquina/giquina-website"
        assert result.needs_confirmation is True

    @pytest.mark.asyncio
    async def test_missing_feature_name(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.create_feature({}, REPO_CONTEXT)

        assert result.success is False
        assert "Feature name" in result.message

    @pytest.mark.asyncio
    async def test_high_confidence_skips_confirmation(
        self, builtin_actions: BuiltinActions
    ) -> None:
        context = ActionContext(project_repo="org/site", confidence=0.95)

        result = await builtin_actions.create_feature({"featureName": "Search"}, context)

        assert result.needs_confirmation is False


class TestProcessReceipt:
    """Test the process-receipt handler."""

    @pytest.mark.asyncio
    async def test_uses_param_image(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.process_receipt(
            {"imageUrl": "https://img/r.jpg", "company": "GQCARS"}, ActionContext()
        )

        assert result.success is True
        assert result.data == {
            "imageUrl": "https://img/r.jpg",
            "company": "GQCARS",
            "suggestedSkill": "receipts",
        }
        assert result.needs_confirmation is False

    @pytest.mark.asyncio
    async def test_falls_back_to_context_media(self, builtin_actions: BuiltinActions) -> None:
        context = ActionContext(media_url="https://media/1.png", company="GMH")

        result = await builtin_actions.process_receipt({}, context)

        assert result.data["imageUrl"] == "https://media/1.png"
        assert result.data["company"] == "GMH"

    @pytest.mark.asyncio
    async def test_missing_image(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.process_receipt({}, ActionContext())

        assert result.success is False
        assert result.message == "No receipt image provided"


class TestDeploy:
    """Test the deploy handler."""

    @pytest.mark.asyncio
    async def test_resolves_exact_project(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.deploy({"projectName": "judo"}, ActionContext())

        assert result.success is True
        assert result.data == {
            "type": "deploy",
            "project": "judo",
            "path": "/opt/projects/JUDO",
            "environment": "production",
            "commands": ["git pull", "npm ci", "pm2 restart"],
        }
        assert result.needs_confirmation is True
        assert "1. Pull latest code" in result.confirmation_prompt

    @pytest.mark.asyncio
    async def test_partial_match_uses_matched_name(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.deploy(
            {"projectName": "clawd", "environment": "staging"}, ActionContext()
        )

        assert result.success is True
        assert result.data["project"] == "aws-clawd-bot"
        assert result.data["environment"] == "staging"
        assert result.message == "Ready to deploy aws-clawd-bot to staging"

    @pytest.mark.asyncio
    async def test_uses_context_project_id(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.deploy({}, ActionContext(project_id="JUDO"))

        assert result.success is True
        assert result.data["path"] == "/opt/projects/JUDO"

    @pytest.mark.asyncio
    async def test_always_confirms_even_at_full_confidence(
        self, builtin_actions: BuiltinActions
    ) -> None:
        result = await builtin_actions.deploy(
            {"projectName": "judo"}, ActionContext(confidence=1.0)
        )

        assert result.needs_confirmation is True

    @pytest.mark.asyncio
    async def test_no_project(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.deploy({}, ActionContext(user_id="u2"))

        assert result.success is False
        assert "No project specified" in result.message

    @pytest.mark.asyncio
    async def test_unknown_project_lists_known(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.deploy({"projectName": "zzz-unknown"}, ActionContext())

        assert result.success is False
        assert result.message == (
            "Unknown deployment target: zzz-unknown. "
            "Known projects: aws-clawd-bot, judo, giquina-website"
        )


class TestCheckStatus:
    """Test the check-status handler."""

    @pytest.mark.asyncio
    async def test_parses_todo(self, builtin_actions: BuiltinActions, documents) -> None:
        result = await builtin_actions.check_status({"projectName": "judo"}, ActionContext())

        assert result.success is True
        assert result.needs_confirmation is False
        assert documents.calls == [("giquina", "judo", "TODO.md")]
        assert result.data["project"] == "judo"
        assert result.data["repo"] == "giquina/judo"
        assert result.data["hasTodo"] is True
        assert result.data["tasks"] == {
            "incomplete": 7,
            "complete": 3,
            "total": 10,
            "items": [
                "Checkout flow",
                "Email receipts",
                "Admin dashboard",
                "Mobile layout",
                "Analytics (in progress)",
            ],
        }
        assert "Tasks: 3/10 complete" in result.message
        assert "... and 2 more" in result.message

    @pytest.mark.asyncio
    async def test_project_repo_takes_precedence(
        self, builtin_actions: BuiltinActions, documents
    ) -> None:
        context = ActionContext(project_repo="someone/else")

        result = await builtin_actions.check_status({}, context)

        assert result.success is True
        assert documents.calls == [("someone", "else", "TODO.md")]
        assert result.data == {"project": "else", "repo": "someone/else", "hasTodo": False}
        assert "No TODO.md found in repository." in result.message

    @pytest.mark.asyncio
    async def test_no_project(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.check_status({}, ActionContext())

        assert result.success is False
        assert result.message == "No project specified"

    @pytest.mark.asyncio
    async def test_fetch_failure_becomes_failure_result(
        self, builtin_actions: BuiltinActions, documents
    ) -> None:
        documents.error = GitHubRateLimitError("GitHub API rate limit exceeded.", 403)

        result = await builtin_actions.check_status({"projectName": "judo"}, ActionContext())

        assert result.success is False
        assert result.message.startswith("Failed to check status:")
        assert result.error is not None
        assert result.error.type == "GitHubRateLimitError"


class TestCreateTask:
    """Test the create-task handler."""

    @pytest.mark.asyncio
    async def test_descriptor_defaults(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.create_task({"title": "Fix login"}, REPO_CONTEXT)

        assert result.success is True
        assert result.data == {
            "type": "github-issue",
            "title": "Fix login",
            "body": "",
            "labels": [],
            "repo": "giquina/giquina-website",
        }
        assert result.needs_confirmation is True
        assert "Description" not in result.confirmation_prompt

    @pytest.mark.asyncio
    async def test_body_in_prompt(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.create_task(
            {"title": "Fix login", "body": "Users see a 500", "labels": ["bug"]}, REPO_CONTEXT
        )

        assert result.data["labels"] == ["bug"]
        assert "Description: Users see a 500..." in result.confirmation_prompt

    @pytest.mark.asyncio
    async def test_missing_title(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.create_task({}, REPO_CONTEXT)

        assert result.success is False
        assert "title" in result.message


class TestCodeTask:
    """Test the code-task handler."""

    @pytest.mark.asyncio
    async def test_description_defaults_to_task(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.code_task({"task": "Add rate limiting"}, REPO_CONTEXT)

        assert result.success is True
        assert result.data["description"] == "Add rate limiting"
        assert result.data["files"] == []
        assert result.data["stack"] == ["nextjs", "tailwind"]
        assert result.needs_confirmation is True

    @pytest.mark.asyncio
    async def test_missing_project(self, builtin_actions: BuiltinActions) -> None:
        result = await builtin_actions.code_task({"task": "Refactor"}, ActionContext())

        assert result.success is False
        assert result.message == "No project specified"


class TestTodoParsing:
    """Test TODO parsing and status rendering."""

    def test_parse_mixed_markers(self) -> None:
        tasks = parse_todo("- [ ] one\n- [x] two\n⬜ three\n✅ four\nplain line\n")

        assert tasks == {
            "incomplete": 2,
            "complete": 2,
            "total": 4,
            "items": ["one", "three"],
        }

    def test_indented_checkbox_not_counted(self) -> None:
        tasks = parse_todo("  - [ ] nested\n")

        assert tasks["incomplete"] == 0

    def test_all_complete_message(self) -> None:
        status = {
            "project": "judo",
            "repo": "giquina/judo",
            "tasks": parse_todo("- [x] done\n"),
        }

        message = format_status_message(status)

        assert message.startswith("*judo* Status\nRepository: giquina/judo\n\n")
        assert "Tasks: 1/1 complete" in message
        assert "All tasks complete!" in message

    def test_remaining_items_listed(self) -> None:
        status = {"project": "p", "repo": "o/p", "tasks": parse_todo("- [ ] a\n- [ ] b\n")}

        message = format_status_message(status)

        assert "*Remaining (2):*\n- a\n- b\n" in message
        assert "more" not in message

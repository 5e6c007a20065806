"""pytest configuration for clawd tests."""

import os
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add src directory to path so tests can import clawd
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Keep the module-level app on in-memory storage and away from the network
os.environ.setdefault("CLAWD_CONFIRMATION_BACKEND", "memory")
os.environ.setdefault("REDIS_ENABLED", "false")

from clawd.actions import (  # noqa: E402
    ActionDispatcher,
    BuiltinActions,
    ConfirmationPolicy,
    ConfirmationStore,
)
from clawd.projects import ProjectWhitelist  # noqa: E402

TODO_FIXTURE = """# TODO

## Launch
- [x] Landing page
- [X] Pricing table
- [ ] Checkout flow
- [ ] Email receipts
* [ ] Admin dashboard
⬜ Mobile layout
🟡 Analytics (in progress)
✅ Domain setup
- [ ] Referral program
- [ ] Blog
"""


class FakeClock:
    """Controllable wall clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeDocuments:
    """In-memory document fetch capability."""

    def __init__(self, documents: dict[str, str] | None = None) -> None:
        self.documents = documents or {}
        self.calls: list[tuple[str, str, str]] = []
        self.error: Exception | None = None

    async def __call__(self, owner: str, repo: str, path: str) -> str | None:
        self.calls.append((owner, repo, path))
        if self.error is not None:
            raise self.error
        return self.documents.get(f"{owner}/{repo}/{path}")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def documents() -> FakeDocuments:
    return FakeDocuments({"giquina/judo/TODO.md": TODO_FIXTURE})


@pytest.fixture
def whitelist() -> ProjectWhitelist:
    return ProjectWhitelist(
        {
            "aws-clawd-bot": "/opt/clawd-bot",
            "judo": "/opt/projects/JUDO",
            "giquina-website": "/opt/projects/giquina-website",
        }
    )


@pytest.fixture
def builtin_actions(whitelist: ProjectWhitelist, documents: FakeDocuments) -> BuiltinActions:
    return BuiltinActions(project_resolver=whitelist, fetch_document=documents)


@pytest.fixture
def store(clock: FakeClock) -> ConfirmationStore:
    return ConfirmationStore(expiry_seconds=600, clock=clock)


@pytest.fixture
def dispatcher(store: ConfirmationStore, builtin_actions: BuiltinActions) -> ActionDispatcher:
    """Fresh dispatcher with the built-in actions and a controllable clock."""
    dispatcher = ActionDispatcher(store=store, policy=ConfirmationPolicy())
    builtin_actions.register(dispatcher.registry)
    return dispatcher

"""Project whitelist for deployment targets.

Resolves project names to repository paths on the host. Known projects are
loaded from a YAML file with built-in defaults.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_KNOWN_PROJECTS: dict[str, str] = {
    "aws-clawd-bot": "/opt/clawd-bot",
    "clawd-bot": "/opt/clawd-bot",
    "judo": "/opt/projects/JUDO",
    "lusotown": "/opt/projects/LusoTown",
    "armora": "/opt/projects/armora",
    "gqcars-manager": "/opt/projects/gqcars-manager",
    "gq-cars-driver-app": "/opt/projects/gq-cars-driver-app",
    "giquina-accountancy-direct-filing": "/opt/projects/giquina-accountancy-direct-filing",
    "giquina-accountancy": "/opt/projects/giquina-accountancy-direct-filing",
    "giquina-website": "/opt/projects/giquina-website",
    "gq-cars": "/opt/projects/gq-cars",
    "giquina-portal": "/opt/projects/giquina-portal",
    "moltbook": "/opt/projects/moltbook",
}


@dataclass
class ProjectPath:
    """Result of resolving a project name."""

    valid: bool
    path: str | None = None
    matched: str | None = None
    known_projects: list[str] = field(default_factory=list)
    error: str | None = None


class ProjectResolver(ABC):
    """Resolve a project name to a deployable path."""

    @abstractmethod
    def get_project_path(self, name: str) -> ProjectPath:
        pass


class ProjectWhitelist(ProjectResolver):
    """Whitelist of known projects with exact and partial name matching."""

    def __init__(self, projects: dict[str, str] | None = None) -> None:
        source = DEFAULT_KNOWN_PROJECTS if projects is None else projects
        self._projects = {name.lower(): path for name, path in source.items()}

    @property
    def names(self) -> list[str]:
        return list(self._projects)

    def get_project_path(self, name: str) -> ProjectPath:
        normalized = name.lower().strip()

        if normalized in self._projects:
            return ProjectPath(valid=True, path=self._projects[normalized])

        # Partial match in either direction
        if normalized:
            for known, path in self._projects.items():
                if normalized in known or known in normalized:
                    return ProjectPath(valid=True, path=path, matched=known)

        return ProjectPath(
            valid=False,
            error=f"Unknown project: {name}",
            known_projects=self.names,
        )

    def add_project(self, name: str, path: str) -> None:
        """Add a project at runtime."""
        self._projects[name.lower()] = path
        logger.info("Added project %s -> %s", name, path)


def load_known_projects(config_path: str | None = None) -> dict[str, str]:
    """Load the project whitelist from a YAML file.

    The file holds a ``projects`` mapping of name to path.

    Args:
        config_path: Path to the YAML file. If None, uses config/projects.yaml
                    at the project root.

    Returns:
        Mapping of project name to path. Built-in defaults if the file is missing.

    Raises:
        ValueError: If the file exists but is malformed.
    """
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent
        config_path = os.path.join(project_root, "config", "projects.yaml")

    if not os.path.exists(config_path):
        logger.info("No project config at %s, using built-in defaults", config_path)
        return dict(DEFAULT_KNOWN_PROJECTS)

    with open(config_path) as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or not isinstance(data.get("projects"), dict):
        raise ValueError("Project config must contain a 'projects' dictionary")

    projects: dict[str, str] = {}
    for name, path in data["projects"].items():
        if not isinstance(name, str) or not isinstance(path, str):
            raise ValueError(f"Project entries must map names to paths: {name!r}")
        projects[name] = path

    return projects

"""Runtime settings loaded from environment variables."""

import os
from dataclasses import dataclass

DEFAULT_EXPIRY_SECONDS = 10 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60
DEFAULT_BYPASS_THRESHOLD = 0.9
CONFIRMATION_BACKENDS = ("memory", "redis")


def _env_float(name: str, default: float, positive: bool = False) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {raw!r}")
    if positive and value == 0:
        raise ValueError(f"{name} must be greater than zero, got {raw!r}")
    return value


@dataclass
class DispatchSettings:
    """Settings for the action dispatcher and its collaborators."""

    confirmation_expiry_seconds: float = DEFAULT_EXPIRY_SECONDS
    sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS
    confidence_bypass_threshold: float = DEFAULT_BYPASS_THRESHOLD
    confirmation_backend: str = "memory"
    github_owner: str = "giquina"
    github_token: str | None = None
    projects_config: str | None = None
    document_cache_ttl_seconds: float = 60 * 60

    @classmethod
    def from_env(cls) -> "DispatchSettings":
        """Build settings from the environment.

        Raises:
            ValueError: If a numeric variable or the backend name is invalid
        """
        backend = os.environ.get("CLAWD_CONFIRMATION_BACKEND", "memory").strip().lower()
        if backend not in CONFIRMATION_BACKENDS:
            raise ValueError(
                f"CLAWD_CONFIRMATION_BACKEND must be one of {', '.join(CONFIRMATION_BACKENDS)}"
            )

        threshold = _env_float("CLAWD_CONFIDENCE_BYPASS_THRESHOLD", DEFAULT_BYPASS_THRESHOLD)
        if threshold > 1.0:
            raise ValueError("CLAWD_CONFIDENCE_BYPASS_THRESHOLD must be within [0, 1]")

        return cls(
            confirmation_expiry_seconds=_env_float(
                "CLAWD_CONFIRMATION_EXPIRY_SECONDS", DEFAULT_EXPIRY_SECONDS, positive=True
            ),
            sweep_interval_seconds=_env_float(
                "CLAWD_SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS, positive=True
            ),
            confidence_bypass_threshold=threshold,
            confirmation_backend=backend,
            github_owner=os.environ.get("CLAWD_GITHUB_OWNER", "giquina"),
            github_token=os.environ.get("GITHUB_TOKEN") or None,
            projects_config=os.environ.get("CLAWD_PROJECTS_CONFIG") or None,
            document_cache_ttl_seconds=_env_float("CLAWD_DOCUMENT_CACHE_TTL_SECONDS", 60 * 60),
        )

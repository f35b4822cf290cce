"""Global configuration — kubeconfig location, API deadlines, retry and pool sizes."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _default_kubeconfig() -> Path:
    env = os.environ.get("KUBECONFIG")
    if env:
        # Like kubectl, only the first entry of a path list is used here.
        return Path(env.split(os.pathsep)[0])
    return Path.home() / ".kube" / "config"


@dataclass
class PodReachConfig:
    """Application-wide configuration."""

    kubeconfig: Path = field(default_factory=_default_kubeconfig)
    context: str | None = None
    in_cluster: bool = False
    request_timeout: float = 10.0
    max_retries: int = 3
    backoff_base: float = 0.5
    max_workers: int = 8
    verbose: bool = False

    @classmethod
    def load(cls) -> PodReachConfig:
        """Load config from environment variables over the defaults."""
        config = cls()

        env_context = os.environ.get("PODREACH_CONTEXT")
        if env_context:
            config.context = env_context

        env_timeout = os.environ.get("PODREACH_REQUEST_TIMEOUT")
        if env_timeout:
            config.request_timeout = float(env_timeout)

        env_retries = os.environ.get("PODREACH_MAX_RETRIES")
        if env_retries:
            config.max_retries = max(1, int(env_retries))

        env_backoff = os.environ.get("PODREACH_BACKOFF_BASE")
        if env_backoff:
            config.backoff_base = float(env_backoff)

        env_workers = os.environ.get("PODREACH_MAX_WORKERS")
        if env_workers:
            config.max_workers = max(1, int(env_workers))

        return config

"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from podreach.provider.snapshot import SnapshotProvider


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def cluster_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "cluster.yaml"


@pytest.fixture
def cluster_provider(cluster_path: Path) -> SnapshotProvider:
    return SnapshotProvider.from_files([cluster_path])

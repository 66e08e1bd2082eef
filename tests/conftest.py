"""Pytest configuration and fixtures."""

import os

import pytest

from flagplane.config import Settings
from flagplane.store import InMemoryFeatureStore


@pytest.fixture(autouse=True)
def config_dir(tmp_path, monkeypatch):
    """Point the config file at a temp dir and drop stray FLAGPLANE_* variables."""
    for name in list(os.environ):
        if name.startswith("FLAGPLANE_"):
            monkeypatch.delenv(name)
    directory = tmp_path / "etc" / "flagplane"
    monkeypatch.setenv("FLAGPLANE_CONFIG_DIR", str(directory))
    return directory


@pytest.fixture
def settings():
    """Settings with version control disabled."""
    return Settings(namespace="test", username="tester")


@pytest.fixture
def git_settings():
    """Settings with commits enabled and pushing disabled."""
    return Settings(namespace="test", username="tester", git={"enabled": True})


@pytest.fixture
def push_settings():
    """Settings with commits and pushes enabled."""
    return Settings(
        namespace="test",
        username="tester",
        git={"enabled": True, "push": True, "repo_url": "git@example.com:flags.git"},
    )


@pytest.fixture
def store():
    """Empty in-memory store for the ``test`` namespace."""
    return InMemoryFeatureStore(namespace="test")

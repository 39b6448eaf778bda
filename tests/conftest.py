"""
Pytest configuration and fixtures.
"""

import os
from pathlib import Path

import pytest

import revenant.config
from fakes import FakeFilesystem, FakeVcs


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the tool config dir at a temp dir and drop REVENANT_* env vars."""
    for key in list(os.environ):
        if key.startswith("REVENANT_"):
            monkeypatch.delenv(key)
    config_dir = tmp_path / "revenant-config"
    monkeypatch.setenv("REVENANT_CONFIG_DIR", str(config_dir))
    monkeypatch.setattr(revenant.config, "_settings", None)
    return config_dir


@pytest.fixture
def fs() -> FakeFilesystem:
    return FakeFilesystem()


@pytest.fixture
def vcs(fs: FakeFilesystem) -> FakeVcs:
    return FakeVcs(fs)


@pytest.fixture
def install_dir(tmp_path: Path) -> str:
    return str(tmp_path / "plugins")

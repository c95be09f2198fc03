"""Shared pytest fixtures for gitsyncbackup tests."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gitsyncbackup.core.aliases import AliasTable
from gitsyncbackup.core.config import Config, Item, SyncConfig
from gitsyncbackup.core.device import current_device_id
from gitsyncbackup.repository import GitRepository
from gitsyncbackup.sync.operations import Workspace

DEVICE_A = "a1b2c3d4e5f60718293a4b5c6d7e8f90"
DEVICE_B = "ffeeddccbbaa99887766554433221100"


@pytest.fixture(autouse=True)
def _reset_process_state() -> Iterator[None]:
    """Clear the cached device id and CLI log handlers around each test."""
    current_device_id.cache_clear()
    yield
    current_device_id.cache_clear()
    package_logger = logging.getLogger("gitsyncbackup")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """Create an empty repository work tree directory."""
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def local_root(tmp_path: Path) -> Path:
    """Create a directory standing in for the device's filesystem."""
    root = tmp_path / "local"
    root.mkdir()
    return root


@pytest.fixture
def mock_repository(repo_root: Path) -> MagicMock:
    """Create a git repository double with a real lock."""
    repository = MagicMock(spec=GitRepository)
    repository.path = repo_root
    repository.lock = threading.RLock()
    repository.commit_all.return_value = True
    return repository


@pytest.fixture
def make_workspace(
    repo_root: Path, mock_repository: MagicMock
) -> Callable[..., Workspace]:
    """Build a Workspace from items without touching git or the config file."""

    def _make(
        items: list[Item],
        device: str | None = DEVICE_A,
        aliases: dict[str, str] | None = None,
        sync: SyncConfig | None = None,
    ) -> Workspace:
        config = Config(
            sync=sync or SyncConfig(),
            aliases=AliasTable(aliases),
            items=tuple(items),
        )
        return Workspace(
            repo_root=repo_root,
            config=config,
            repository=mock_repository,
            device=device,
        )

    return _make

"""
Pytest configuration and shared fixtures for TeamSync tests.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Generator

# Add src to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from teamsync.models import Snapshot
from teamsync.sync import SyncCoordinator
from teamsync.utils.config import SyncConfig
from tests.fixtures.workspace_fixtures import FakeTransport, WorkspaceFixtures


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def workspace() -> Snapshot:
    """Sample organisation with alice logged in."""
    return WorkspaceFixtures.snapshot()


@pytest.fixture
def transport(workspace: Snapshot) -> FakeTransport:
    """In-memory transport whose local replica is the sample workspace."""
    return FakeTransport(local=workspace)


@pytest.fixture
def sync_config() -> SyncConfig:
    """Fast intervals for loop tests."""
    return SyncConfig(poll_interval=0.05, data_updated_display=0.1)


@pytest.fixture
def coordinator(transport: FakeTransport, sync_config: SyncConfig) -> SyncCoordinator:
    return SyncCoordinator(transport, sync_config)

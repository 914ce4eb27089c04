"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides isolated settings, storage, tracker and orchestrator instances.
"""

import os
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="seedmap_test_"))
os.environ.setdefault("SEEDMAP_ENVIRONMENT", "testing")
os.environ.setdefault("SEEDMAP_LOG_LEVEL", "DEBUG")
os.environ.setdefault("SEEDMAP_STORAGE_PATH", str(_TEST_ROOT / "generated-maps"))
os.environ.setdefault("SEEDMAP_LOG_PATH", str(_TEST_ROOT / "logs"))

import pytest

from seedmap.config.settings import Settings
from seedmap.core.queue.job_tracker import JobTracker
from seedmap.core.queue.orchestrator import GenerationOrchestrator
from seedmap.core.rendering.image_processor import MapImageProcessor
from seedmap.core.storage.manager import FileStorageManager

from tests.utils.mocks import FakeSessionFactory


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings with no UI delays and a small admission ceiling."""
    return Settings(
        environment="testing",
        storage_path=tmp_path / "generated-maps",
        log_path=tmp_path / "logs",
        base_url="http://testserver",
        max_concurrent_jobs=2,
        settle_delay=0,
        ui_short_delay=0,
        ui_panel_delay=0,
        navigation_timeout=1000,
        ui_action_timeout=100,
    )


@pytest.fixture
def storage(test_settings: Settings) -> FileStorageManager:
    return FileStorageManager(test_settings.storage_path, test_settings.public_base_url)


@pytest.fixture
def tracker(test_settings: Settings) -> JobTracker:
    return JobTracker(test_settings.max_concurrent_jobs)


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def orchestrator(
    tracker: JobTracker,
    storage: FileStorageManager,
    session_factory: FakeSessionFactory,
    test_settings: Settings,
) -> GenerationOrchestrator:
    return GenerationOrchestrator(
        tracker,
        storage,
        image_processor=MapImageProcessor(),
        session_factory=session_factory,
        settings=test_settings,
    )

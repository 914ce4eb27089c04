"""
End-to-End Pipeline Tests
=========================

Submission through render, crop, storage and terminal status, with the
browser either faked at the session boundary or mocked at the Playwright level.
"""

from unittest.mock import patch

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from seedmap.core.errors import AdmissionRejected, InvalidInput
from seedmap.core.geometry import compute_crop
from seedmap.core.queue.orchestrator import GenerationOrchestrator
from seedmap.core.rendering.image_processor import MapImageProcessor
from seedmap.models.schemas import JobStatus

from tests.utils.helpers import make_capture, png_pixel, png_size
from tests.utils.mocks import FakeSessionFactory, build_playwright_mocks

pytestmark = pytest.mark.integration

RED = (220, 20, 20)


@pytest.mark.asyncio
async def test_successful_generation(tracker, storage, test_settings):
    crop = compute_crop("overworld", 8)
    factory = FakeSessionFactory(png_data=make_capture(crop, fill=RED))
    orchestrator = GenerationOrchestrator(
        tracker, storage, MapImageProcessor(), factory, settings=test_settings
    )

    job_id = await orchestrator.submit("12345", "overworld", 8)
    await orchestrator.wait_for_idle()

    job = tracker.get(job_id)
    assert job.status is JobStatus.READY
    assert job.artifact_location is not None
    assert job.metadata["output_size"] == 1000
    assert job.completed_at is not None

    image = storage.get_path(job.filename).read_bytes()
    assert png_size(image) == (1000, 1000)
    assert png_pixel(image, (0, 0)) == RED
    assert png_pixel(image, (999, 999)) == RED


@pytest.mark.asyncio
async def test_out_of_range_size_creates_no_job(orchestrator, tracker):
    with pytest.raises(InvalidInput):
        await orchestrator.submit("12345", "overworld", 17)

    assert len(tracker) == 0
    assert tracker.counts().total_ever_seen == 0


@pytest.mark.asyncio
async def test_rejected_when_ceiling_reached(orchestrator, tracker):
    assert tracker.admit()
    assert tracker.admit()

    with pytest.raises(AdmissionRejected):
        await orchestrator.submit("12345")

    assert tracker.in_flight == 2
    assert len(tracker) == 0


@pytest.mark.asyncio
async def test_navigation_timeout_fails_job(tracker, storage, test_settings):
    mocks = build_playwright_mocks()
    mocks.page.goto.side_effect = PlaywrightTimeoutError("Timeout 1000ms exceeded")
    orchestrator = GenerationOrchestrator(tracker, storage, settings=test_settings)

    with patch("seedmap.core.rendering.browser_session.async_playwright", mocks.factory):
        job_id = await orchestrator.submit("12345", "nether", 8)
        assert tracker.in_flight == 1
        await orchestrator.wait_for_idle()

    job = tracker.get(job_id)
    assert job.status is JobStatus.FAILED
    assert job.error_code == "RENDER_FAILED"
    assert job.retryable is True
    assert "timed out" in job.failure_reason
    assert tracker.in_flight == 0
    mocks.browser.close.assert_awaited_once()
    assert mocks.page.goto.await_args.args[0].endswith("/12345/nether")


@pytest.mark.asyncio
async def test_full_session_with_mocked_browser(tracker, storage, test_settings):
    crop = compute_crop("end", 4)
    mocks = build_playwright_mocks(screenshot=make_capture(crop, fill=RED))
    mocks.page.evaluate.return_value = False
    orchestrator = GenerationOrchestrator(tracker, storage, settings=test_settings)

    with patch("seedmap.core.rendering.browser_session.async_playwright", mocks.factory):
        job_id = await orchestrator.submit("-99", "end", 4)
        await orchestrator.wait_for_idle()

    job = tracker.get(job_id)
    assert job.status is JobStatus.READY
    assert job.metadata["skipped_stages"] == ["markers"]
    assert job.metadata["dimensions"] == "500x500"
    image = storage.get_path(job.filename).read_bytes()
    assert png_pixel(image, (250, 250)) == RED

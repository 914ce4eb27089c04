"""
Render Session
==============

Playwright-driven capture of a seed map from mcseedmap.net.

Each session owns one browser for a single job. Launch, navigation and the
screenshot are mandatory; dismissing the consent banner, hiding the sidebar
and enabling village markers are best-effort because the external page
changes without notice and the map is usable without them. The browser is
always released, whatever happened before.
"""

from typing import Optional, Any, Awaitable, Callable, List
from urllib.parse import quote
import asyncio
import time

from playwright.async_api import (
    async_playwright,
    Browser,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
)

from seedmap.config.logging import get_logger
from seedmap.config.settings import get_settings, Settings
from seedmap.core.errors import RenderFailure
from seedmap.models.schemas import Dimension, RenderCapture, StageOutcome

logger = get_logger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]

# External page selectors
MANAGE_OPTIONS_BUTTON = "button.fc-cta-manage-options"
CONFIRM_CHOICES_BUTTON = "button.fc-confirm-choices"
TOGGLE_SIDEBAR_BUTTON = 'button[title="Toggle sidebar"]'
MARKERS_TAB_BUTTON = 'button[title="Markers"]'
MARKER_CATEGORY = "Village"

CLICK_BUTTON_BY_TEXT_JS = """
(label) => {
    const buttons = Array.from(document.querySelectorAll('button'));
    const match = buttons.find(btn => btn.textContent.includes(label));
    if (match) {
        match.click();
        return true;
    }
    return false;
}
"""

# Zoom level fragment for size-parameterized captures; the nether page ignores it.
OVERWORLD_ZOOM_FRAGMENT = "#l=-3"

StageAction = Callable[[Page], Awaitable[Optional[str]]]


class MapRenderSession:
    """Single-use browser session producing one full-page capture."""

    def __init__(
        self,
        seed: str,
        dimension: Dimension,
        job_id: str,
        settings: Optional[Settings] = None,
    ):
        self.seed = seed
        self.dimension = Dimension(dimension)
        self.job_id = job_id
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="render_session", job_id=job_id)

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    def build_url(self) -> str:
        """Seed map page for this session's seed and dimension."""
        base = self.settings.seedmap_base_url.rstrip("/")
        url = f"{base}/{self.settings.game_version}/{quote(self.seed, safe='-')}/{self.dimension.value}"
        if self.dimension is not Dimension.NETHER:
            url += OVERWORLD_ZOOM_FRAGMENT
        return url

    async def run(self) -> RenderCapture:
        """
        Run all stages and return the raw capture.

        Returns:
            RenderCapture with the full-page PNG and best-effort stage outcomes

        Raises:
            RenderFailure: If launch, navigation or capture fails
        """
        url = self.build_url()
        started = time.monotonic()
        stages: List[StageOutcome] = []

        self.logger.info(
            "Starting render session", seed=self.seed, dimension=self.dimension.value, url=url
        )

        try:
            browser = await self._launch()
            page = await self._navigate(browser, url)

            stages.append(await self._best_effort("cookie_banner", self._dismiss_cookie_banner, page))
            stages.append(await self._best_effort("sidebar", self._toggle_sidebar, page))
            stages.append(await self._best_effort("markers", self._configure_markers, page))

            await self._settle()
            png_data = await self._capture(page)
        finally:
            await self._teardown()

        duration = time.monotonic() - started
        self.logger.info(
            "Render session completed",
            duration=round(duration, 2),
            capture_size=len(png_data),
            skipped_stages=[stage.stage for stage in stages if not stage.ok],
        )
        return RenderCapture(png_data=png_data, url=url, stages=stages, duration=duration)

    async def _launch(self) -> Browser:
        self.logger.info("Launching browser")
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.settings.playwright_headless, args=BROWSER_ARGS
            )
        except Exception as e:
            self.logger.error("Browser launch failed", error=str(e))
            raise RenderFailure(f"Browser launch failed: {e}", job_id=self.job_id)
        return self._browser

    async def _navigate(self, browser: Browser, url: str) -> Page:
        timeout = self.settings.navigation_timeout
        self.logger.info("Navigating to seed map", url=url, timeout_ms=timeout)
        try:
            context = await browser.new_context(
                viewport={
                    "width": self.settings.viewport_width,
                    "height": self.settings.viewport_height,
                }
            )
            page = await context.new_page()
            await page.goto(url, wait_until="networkidle", timeout=timeout)
        except PlaywrightTimeoutError as e:
            self.logger.error("Navigation timed out", url=url, error=str(e))
            raise RenderFailure(f"Navigation timed out after {timeout}ms: {e}", job_id=self.job_id)
        except Exception as e:
            self.logger.error("Navigation failed", url=url, error=str(e))
            raise RenderFailure(f"Navigation failed: {e}", job_id=self.job_id)
        return page

    async def _best_effort(self, stage: str, action: StageAction, page: Page) -> StageOutcome:
        """Run an optional UI stage; any failure is logged and reported as skipped."""
        try:
            reason = await action(page)
        except Exception as e:
            reason = str(e) or type(e).__name__

        if reason is None:
            return StageOutcome.success(stage)

        self.logger.warning("Optional stage skipped", stage=stage, reason=reason)
        return StageOutcome.skipped(stage, reason)

    async def _dismiss_cookie_banner(self, page: Page) -> Optional[str]:
        self.logger.info("Checking for cookie banner")
        await page.click(MANAGE_OPTIONS_BUTTON, timeout=self.settings.ui_action_timeout)
        await asyncio.sleep(self.settings.ui_panel_delay)

        await page.click(CONFIRM_CHOICES_BUTTON, timeout=self.settings.ui_action_timeout)
        await asyncio.sleep(self.settings.ui_short_delay)
        self.logger.info("Cookie banner dismissed")
        return None

    async def _toggle_sidebar(self, page: Page) -> Optional[str]:
        await page.click(TOGGLE_SIDEBAR_BUTTON, timeout=self.settings.ui_action_timeout)
        await asyncio.sleep(self.settings.ui_short_delay)
        self.logger.info("Sidebar hidden")
        return None

    async def _configure_markers(self, page: Page) -> Optional[str]:
        await page.click(MARKERS_TAB_BUTTON, timeout=self.settings.ui_action_timeout)
        await asyncio.sleep(self.settings.ui_panel_delay)

        clicked = await page.evaluate(CLICK_BUTTON_BY_TEXT_JS, MARKER_CATEGORY)
        if not clicked:
            return f"{MARKER_CATEGORY} marker button not found"

        await asyncio.sleep(self.settings.ui_panel_delay)
        self.logger.info("Markers enabled", category=MARKER_CATEGORY)
        return None

    async def _settle(self) -> None:
        # No render-complete signal is exposed by the page.
        self.logger.info("Waiting for map to load", delay=self.settings.settle_delay)
        await asyncio.sleep(self.settings.settle_delay)

    async def _capture(self, page: Page) -> bytes:
        timeout = self.settings.capture_timeout
        self.logger.info("Taking screenshot", timeout_ms=timeout)
        try:
            return await page.screenshot(full_page=True, type="png", timeout=timeout)
        except Exception as e:
            self.logger.error("Screenshot failed", error=str(e))
            raise RenderFailure(f"Screenshot failed: {e}", job_id=self.job_id)

    async def _teardown(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
                self.logger.info("Browser closed")
            except Exception as e:
                self.logger.warning("Error closing browser", error=str(e))
            finally:
                self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                self.logger.warning("Error stopping playwright", error=str(e))
            finally:
                self._playwright = None

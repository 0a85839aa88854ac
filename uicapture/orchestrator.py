"""Capture run — drives every (page, theme, component) capture on one browser page."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path

from playwright.async_api import Page, async_playwright

from uicapture.capture.engine import RegionCaptureEngine
from uicapture.capture.theme import ThemeController
from uicapture.models.capture_result import CaptureOutcome, RunSummary
from uicapture.models.component import ComponentSpec, group_by_page
from uicapture.models.config import CaptureConfig
from uicapture.models.page_state import PageVisualState
from uicapture.reporter.diff import DiffResult, compare_capture, diff_image_path
from uicapture.reporter.json_report import generate_json_report
from uicapture.storage.screenshot_store import ScreenshotStore, make_timestamp
from uicapture.utils.browser import attach_page_logging, create_capture_context, launch_browser
from uicapture.utils.retry import RetryExhausted, retry

logger = logging.getLogger(__name__)

BROWSER_LAUNCH_RETRIES = 3
BROWSER_LAUNCH_DELAY_MS = 1000

_LOADING_INDICATOR_SCRIPT = """() => !!document.querySelector(
    '[aria-busy="true"], .loading, .spinner, [class*="skeleton"]'
)"""


class CaptureRun:
    """Captures each component in each configured theme.

    Owns the single page and its PageVisualState for the whole run. Only a
    browser that cannot be launched stops the run; everything else is
    recorded in the summary and the run moves on.
    """

    def __init__(
        self,
        config: CaptureConfig,
        components: list[ComponentSpec],
        baseline: bool = False,
        engine: RegionCaptureEngine | None = None,
        theme_controller: ThemeController | None = None,
        compare: bool = False,
    ):
        self.config = config
        self.components = components
        self.baseline = baseline
        # Compare each new capture with its baseline (ignored for baseline runs)
        self.compare = compare and not baseline
        self.diffs: list[DiffResult] = []
        self.engine = engine or RegionCaptureEngine(config)
        self.theme_controller = theme_controller or ThemeController(config.theme)
        self.run_id = f"run_{uuid.uuid4().hex[:8]}"

    def run(self) -> RunSummary:
        """Execute the run and write its JSON report."""
        return asyncio.run(self.execute())

    async def execute(self) -> RunSummary:
        start = time.time()
        summary = RunSummary(
            run_id=self.run_id,
            started_at=datetime.now(timezone.utc).isoformat(),
            base_url=self.config.base_url,
        )
        store = ScreenshotStore(
            self.config.output_dir, timestamp=None if self.baseline else make_timestamp(),
        )
        logger.info("=== Capturing %d components in %s ===",
                    len(self.components), ", ".join(self.config.themes))

        async with async_playwright() as p:
            browser = await retry(
                lambda: launch_browser(p, headless=self.config.headless),
                retries=BROWSER_LAUNCH_RETRIES,
                delay_ms=BROWSER_LAUNCH_DELAY_MS,
                exponential_backoff=True,
                name="Browser launch",
            )
            try:
                context = await create_capture_context(browser, self.config)
                page = await context.new_page()
                attach_page_logging(page)
                await self.capture_pages(page, store, summary)
            finally:
                await browser.close()

        summary.completed_at = datetime.now(timezone.utc).isoformat()
        summary.duration_seconds = round(time.time() - start, 2)
        self._write_report(summary)
        logger.info("=== Capture complete: %d successful, %d failed, %d skipped in %.1fs ===",
                    summary.successful, summary.failed, summary.skipped, summary.duration_seconds)
        return summary

    async def capture_pages(self, page: Page, store: ScreenshotStore, summary: RunSummary) -> None:
        """Visit each page once and capture its components in every theme."""
        state = PageVisualState()
        for page_path, components in group_by_page(self.components).items():
            url = self.config.page_url(page_path)
            logger.info("--- Page %s (%d components) ---", url, len(components))
            try:
                await self._navigate(page, url)
            except RetryExhausted as e:
                logger.error("Skipping %s: %s", url, e)
                self._skip_page(components, summary, str(e.last_error))
                continue

            state.reset()
            for theme in self.config.themes:
                try:
                    await self.theme_controller.set_theme(page, theme, state)
                    await page.wait_for_timeout(self.config.timing.theme_settle_ms)
                except Exception as e:
                    logger.error("Could not switch %s to %s theme: %s", url, theme, e)
                for component in components:
                    for outcome in await self._capture_one(page, component, theme, store, state):
                        if self.compare:
                            self._compare_with_baseline(outcome, component, store)
                        summary.record(outcome)

    async def _navigate(self, page: Page, url: str) -> None:
        timing = self.config.timing
        await retry(
            lambda: page.goto(url, wait_until="networkidle", timeout=timing.navigation_timeout_ms),
            retries=self.config.navigation_retries,
            delay_ms=self.config.retry.delay_ms,
            exponential_backoff=True,
            name=f"Navigation to {url}",
        )
        await page.wait_for_timeout(timing.page_settle_ms)

    def _skip_page(self, components: list[ComponentSpec], summary: RunSummary, reason: str) -> None:
        for component in components:
            for theme in self.config.themes:
                summary.record(CaptureOutcome(
                    component_name=component.name,
                    theme=theme,
                    status="skipped",
                    message=f"Navigation failed: {reason}",
                ))

    async def _capture_one(
        self,
        page: Page,
        component: ComponentSpec,
        theme: str,
        store: ScreenshotStore,
        state: PageVisualState,
    ) -> list[CaptureOutcome]:
        """Capture one component in one theme: one outcome, or one per tab."""
        logger.info("Capturing %s in %s mode...", component.name, theme)
        try:
            # Re-asserts the theme in case an earlier component's interaction changed it.
            await self.theme_controller.set_theme(page, theme, state, component)
            await self._wait_until_ready(page, component)
            if component.tab_config and component.tab_config.per_tab:
                outcomes = await self.engine.capture_tabs(page, component, theme, store, state)
            else:
                outcomes = [await self.engine.capture_component(page, component, theme, store, state)]
        except Exception as e:
            logger.error("Unexpected error capturing %s (%s): %s", component.name, theme, e)
            outcomes = [CaptureOutcome(
                component_name=component.name, theme=theme, status="error", message=str(e),
            )]

        for outcome in outcomes:
            if outcome.succeeded:
                logger.info("Captured %s (%s): %s", outcome.component_name, theme, outcome.status)
            else:
                logger.warning("Capture of %s (%s) %s: %s",
                               outcome.component_name, theme, outcome.status, outcome.message)
        return outcomes

    def _compare_with_baseline(
        self, outcome: CaptureOutcome, component: ComponentSpec, store: ScreenshotStore,
    ) -> None:
        """Fill ``outcome.diff_percentage`` from the matching baseline, if any."""
        if not outcome.image_path:
            return
        baseline_path = store.baseline_for(outcome.image_path)
        if baseline_path is None:
            logger.info("No baseline for %s (%s), not compared", outcome.component_name, outcome.theme)
            return
        threshold = component.diff_threshold if component.diff_threshold is not None else self.config.diff_threshold
        result = compare_capture(
            outcome.component_name, outcome.theme, baseline_path, Path(outcome.image_path),
            threshold=threshold,
            pixel_threshold=self.config.pixel_threshold,
            diff_path=diff_image_path(self.config.output_dir, outcome.component_name, outcome.theme),
        )
        outcome.diff_percentage = result.diff_percentage
        self.diffs.append(result)
        if not result.passed:
            logger.warning("%s (%s) differs from baseline: %s",
                           outcome.component_name, outcome.theme, result.message)

    async def _wait_until_ready(self, page: Page, component: ComponentSpec) -> None:
        """Best-effort wait for the component to be visible and done loading."""
        timing = self.config.timing
        if component.selector:
            try:
                await page.wait_for_selector(
                    component.selector, state="visible", timeout=timing.readiness_timeout_ms,
                )
            except Exception as e:
                logger.debug("%s not visible yet: %s", component.name, e)

        try:
            loading = await page.evaluate(_LOADING_INDICATOR_SCRIPT)
        except Exception as e:
            logger.debug("Loading indicator check failed: %s", e)
            loading = False
        if loading:
            logger.info("Loading indicators present, waiting for %s", component.name)
            await page.wait_for_timeout(timing.page_settle_ms)

    def _write_report(self, summary: RunSummary) -> Path:
        path = Path(self.config.report_output_dir) / f"capture_{summary.run_id}.json"
        generate_json_report(summary, path, diffs=self.diffs if self.compare else None)
        logger.info("Report written to %s", path)
        return path

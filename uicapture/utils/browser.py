"""Browser launch helpers — one Chromium page sized for section captures."""

from __future__ import annotations

import logging

from playwright.async_api import Browser, BrowserContext, Page, Playwright

from uicapture.models.config import CaptureConfig

logger = logging.getLogger(__name__)

DEFAULT_ELEMENT_TIMEOUT_MS = 5000


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch Chromium for capturing."""
    return await playwright.chromium.launch(
        headless=headless,
        args=[
            "--disable-gpu",
            "--hide-scrollbars",
        ],
    )


async def create_capture_context(browser: Browser, config: CaptureConfig) -> BrowserContext:
    """Create a browser context with a deterministic viewport and locale."""
    context = await browser.new_context(
        viewport={"width": config.viewport.width, "height": config.viewport.height},
        locale="en-US",
        timezone_id="UTC",
        reduced_motion="reduce",
    )
    context.set_default_timeout(DEFAULT_ELEMENT_TIMEOUT_MS)
    context.set_default_navigation_timeout(config.timing.navigation_timeout_ms)
    return context


def attach_page_logging(page: Page) -> None:
    """Forward page errors and console errors to the log."""
    def _on_console(msg) -> None:
        if msg.type == "error":
            logger.debug("Console error: %s", msg.text)

    page.on("pageerror", lambda exc: logger.warning("Page error: %s", exc))
    page.on("console", _on_console)

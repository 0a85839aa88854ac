"""Region capture engine — turns a resolved element into a clipped screenshot."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from playwright.async_api import Page

from uicapture.capture.animation import AnimationFreezer
from uicapture.capture.element_resolver import ElementResolver, ResolvedRegion
from uicapture.capture.geometry import ClipRect, clamp_to_viewport, compute_base_clip, trim_exclusions
from uicapture.capture.highlight import DiffHighlighter
from uicapture.capture.tab_selector import TabSelector
from uicapture.models.capture_result import CaptureOutcome
from uicapture.models.component import ComponentSpec, TabConfig
from uicapture.models.config import CaptureConfig
from uicapture.models.page_state import PageVisualState
from uicapture.storage.screenshot_store import ScreenshotStore
from uicapture.utils.retry import RetryExhausted, retry

logger = logging.getLogger(__name__)

FALLBACK_VARIANT = "fallback"
CLICK_RESCROLL_SETTLE_MS = 400

_HEADER_HEIGHT_SCRIPT = """(selector) => {
    const header = document.querySelector(selector);
    return header ? header.offsetHeight : 0;
}"""

_SCROLL_UP_SCRIPT = """(pixels) => window.scrollBy(0, -pixels)"""

_DEBUG_SNAPSHOT_SCRIPT = """(element) => ({
    html: element.outerHTML,
    headings: Array.from(element.querySelectorAll('h1, h2, h3, h4, h5, h6')).map((h) => ({
        level: h.tagName,
        text: (h.textContent || '').trim(),
    })),
    buttons: Array.from(element.querySelectorAll('button')).map((b) => (b.textContent || '').trim()),
})"""


class RegionCaptureEngine:
    """Captures one (component, theme) pair from the shared page."""

    def __init__(
        self,
        config: CaptureConfig,
        resolver: ElementResolver | None = None,
        freezer: AnimationFreezer | None = None,
        tab_selector: TabSelector | None = None,
        highlighter: DiffHighlighter | None = None,
    ):
        self.config = config
        self.resolver = resolver or ElementResolver(
            identity_attribute=config.identity_attribute,
            wait_timeout_ms=config.timing.wait_for_selector_timeout_ms,
        )
        self.freezer = freezer or AnimationFreezer(settle_ms=config.timing.animation_settle_ms)
        self.tab_selector = tab_selector or TabSelector(identity_attribute=config.identity_attribute)
        self.highlighter = highlighter or DiffHighlighter()

    async def capture_component(
        self,
        page: Page,
        spec: ComponentSpec,
        theme: str,
        store: ScreenshotStore,
        state: PageVisualState,
    ) -> CaptureOutcome:
        """Resolve the component's element and capture it."""
        region = await self.resolver.resolve(page, spec)
        return await self.capture(page, region, spec, theme, store, state)

    async def capture_tabs(
        self,
        page: Page,
        spec: ComponentSpec,
        theme: str,
        store: ScreenshotStore,
        state: PageVisualState,
    ) -> list[CaptureOutcome]:
        """Capture a tabbed component once per tab, each saved as ``{name}-{tab}``.

        The tabs are ``tab_config.capture_tabs``, or every discovered tab when
        ``capture_all_tabs`` is set.
        """
        names = await self._tabs_to_capture(page, spec.tab_config)
        if not names:
            logger.error("No tabs to capture for %s", spec.name)
            return [CaptureOutcome(
                component_name=spec.name, theme=theme, status="failed", message="No tabs found",
            )]

        logger.info("Will capture %s tabs: %s", spec.name, ", ".join(names))
        outcomes = []
        for tab_name in names:
            # Switching tabs can re-render the component.
            region = await self.resolver.resolve(page, spec)
            outcomes.append(await self.capture(page, region, spec, theme, store, state, tab_name=tab_name))
        return outcomes

    async def _tabs_to_capture(self, page: Page, tab_config: TabConfig) -> list[str]:
        if tab_config.capture_tabs:
            return [name.lower() for name in tab_config.capture_tabs]
        return [tab.name for tab in await self.tab_selector.find_all_tabs(page, tab_config)]

    async def capture(
        self,
        page: Page,
        region: ResolvedRegion | None,
        spec: ComponentSpec,
        theme: str,
        store: ScreenshotStore,
        state: PageVisualState,
        tab_name: str | None = None,
    ) -> CaptureOutcome:
        """Capture ``region`` (or the whole viewport when it is None).

        With ``tab_name`` the tab is selected first and the image is saved as
        ``{name}-{tab_name}``. Never raises: errors become an ``error``
        outcome, and animations are always resumed.
        """
        started = time.monotonic()
        outcome = CaptureOutcome(
            component_name=f"{spec.name}-{tab_name}" if tab_name else spec.name,
            theme=theme,
            status="error",
            strategy=region.strategy_used if region else "",
        )
        debug = None
        try:
            await self.freezer.pause(page, spec, state)
            await self.highlighter.apply(page, spec)
            await self._capture(page, region, spec, theme, store, state, outcome, tab_name)
            if spec.debug_html and region is not None:
                debug = await self._debug_snapshot(region, spec)
        except Exception as e:
            logger.error("Error capturing %s (%s): %s", outcome.component_name, theme, e)
            outcome.status = "error"
            outcome.message = str(e)
        finally:
            await self.highlighter.remove(page, spec)
            await self.freezer.resume(page, spec, state)
            outcome.duration_seconds = round(time.monotonic() - started, 2)

        if outcome.image_path:
            try:
                store.save_metadata(outcome.image_path, self._metadata(page, region, outcome, tab_name, debug))
            except OSError as e:
                logger.warning("Could not write metadata for %s: %s", outcome.image_path, e)
        return outcome

    async def _capture(
        self,
        page: Page,
        region: ResolvedRegion | None,
        spec: ComponentSpec,
        theme: str,
        store: ScreenshotStore,
        state: PageVisualState,
        outcome: CaptureOutcome,
        tab_name: str | None = None,
    ) -> None:
        name = outcome.component_name
        if region is None:
            logger.warning("Component %s not found, capturing full viewport", name)
            image = await self._screenshot(page, None, name)
            outcome.image_path = str(store.save(name, theme, image, variant=FALLBACK_VARIANT))
            outcome.status = "fallback"
            outcome.message = "Component not found; captured full viewport"
            return

        tab = tab_name or (spec.tab_config.verify_tab_name if spec.tab_config else None)
        if spec.tab_config:
            tab_state = await self.tab_selector.select_tab(page, tab, spec.tab_config, theme, state)
            outcome.tab_verified = tab_state.verified

        element = region.element
        await element.scroll_into_view_if_needed()
        await page.wait_for_timeout(self.config.timing.scroll_settle_ms)

        if spec.extra_scroll:
            await page.evaluate(_SCROLL_UP_SCRIPT, spec.extra_scroll)
            await page.wait_for_timeout(self.config.timing.scroll_settle_ms)

        if spec.click_selector:
            await self._click_before_capture(page, element, spec)

        box = await element.bounding_box()
        if not box:
            logger.warning("Element disappeared after scrolling for %s", name)
            outcome.status = "failed"
            outcome.message = "Element has no bounding box"
            return

        clip = await self._compute_clip(page, box, spec)
        if clip.is_valid():
            logger.debug("Taking screenshot with clip: x=%s, y=%s, width=%s, height=%s",
                         clip.x, clip.y, clip.width, clip.height)
            image = await self._screenshot(page, clip, name)
            outcome.clip = clip.as_clip()
            outcome.status = "success"
            variant = None
        else:
            logger.warning("Invalid clip dimensions for %s, taking full viewport screenshot instead", name)
            image = await self._screenshot(page, None, name)
            outcome.status = "fallback"
            outcome.message = "Invalid clip; captured full viewport"
            variant = FALLBACK_VARIANT

        if outcome.tab_verified is False:
            outcome.status = "fallback"
            outcome.message = f"Could not verify {tab} tab selection"

        outcome.image_path = str(store.save(name, theme, image, variant=variant))

    async def _click_before_capture(self, page: Page, element, spec: ComponentSpec) -> None:
        logger.info("Clicking element matching selector: %s", spec.click_selector)
        retry_cfg = self.config.retry
        try:
            await retry(
                lambda: page.click(spec.click_selector),
                retries=retry_cfg.retries,
                delay_ms=retry_cfg.delay_ms,
                exponential_backoff=retry_cfg.exponential_backoff,
                name=f"Click {spec.click_selector}",
            )
        except RetryExhausted as e:
            logger.error("Error clicking %s for %s: %s", spec.click_selector, spec.name, e.last_error)
            return
        await page.wait_for_timeout(spec.click_wait_ms)
        await element.scroll_into_view_if_needed()
        await page.wait_for_timeout(CLICK_RESCROLL_SETTLE_MS)

    async def _compute_clip(self, page: Page, box: dict, spec: ComponentSpec) -> ClipRect:
        viewport = page.viewport_size or {
            "width": self.config.viewport.width,
            "height": self.config.viewport.height,
        }
        header_height = await page.evaluate(_HEADER_HEIGHT_SCRIPT, self.config.header_selector) or 0

        clip = compute_base_clip(box, spec.padding, header_height, viewport["width"], spec.min_height)
        if spec.exclude_selectors:
            clip = trim_exclusions(clip, await self._exclusion_boxes(page, spec))
        return clamp_to_viewport(clip, viewport["height"])

    async def _exclusion_boxes(self, page: Page, spec: ComponentSpec) -> list[dict]:
        """Bounding boxes of the visible elements matching ``exclude_selectors``."""
        boxes = []
        for selector in spec.exclude_selectors:
            try:
                elements = await page.query_selector_all(selector)
            except Exception as e:
                logger.debug("Exclusion selector '%s' errored: %s", selector, e)
                continue
            for element in elements:
                try:
                    box = await element.bounding_box()
                    if box and await element.is_visible():
                        boxes.append(box)
                except Exception as e:
                    logger.debug("Skipping exclusion element for %s: %s", selector, e)
        return boxes

    async def _screenshot(self, page: Page, clip: ClipRect | None, name: str) -> bytes:
        retry_cfg = self.config.retry
        kwargs = {"clip": clip.as_clip()} if clip else {"full_page": False}
        return await retry(
            lambda: page.screenshot(**kwargs),
            retries=retry_cfg.retries,
            delay_ms=retry_cfg.delay_ms,
            exponential_backoff=retry_cfg.exponential_backoff,
            name=f"Screenshot {name}",
        )

    async def _debug_snapshot(self, region: ResolvedRegion, spec: ComponentSpec) -> dict | None:
        try:
            return await region.element.evaluate(_DEBUG_SNAPSHOT_SCRIPT)
        except Exception as e:
            logger.warning("Could not capture HTML debug info for %s: %s", spec.name, e)
            return None

    def _metadata(
        self,
        page: Page,
        region: ResolvedRegion | None,
        outcome: CaptureOutcome,
        tab_name: str | None = None,
        debug: dict | None = None,
    ) -> dict:
        metadata = {
            "component": outcome.component_name,
            "theme": outcome.theme,
            "status": outcome.status,
            "strategy": outcome.strategy,
            "selector": region.selector if region else None,
            "attempts": region.attempts if region else [],
            "clip": outcome.clip,
            "tab": tab_name,
            "tab_verified": outcome.tab_verified,
            "message": outcome.message,
            "viewport": page.viewport_size,
            "captured_at": datetime.now(timezone.utc).isoformat(),
        }
        if debug is not None:
            metadata["debug"] = debug
        return metadata

"""Animation freezer — stops CSS motion so captures are repeatable."""

from __future__ import annotations

import logging

from playwright.async_api import Page

from uicapture.models.component import ComponentSpec
from uicapture.models.page_state import PageVisualState

logger = logging.getLogger(__name__)

STYLE_ID = "animation-control-for-screenshots"

FREEZE_CSS = """
*, *::before, *::after {
    animation-play-state: paused !important;
    animation-duration: 0s !important;
    animation-delay: 0s !important;
    transition: none !important;
    transition-duration: 0s !important;
    caret-color: transparent !important;
}
"""

_APPLY_STYLE_SCRIPT = """({styleId, css}) => {
    let style = document.getElementById(styleId);
    if (!style) {
        style = document.createElement('style');
        style.id = styleId;
        document.head.appendChild(style);
    }
    style.textContent = css;
}"""

_REMOVE_STYLE_SCRIPT = """(styleId) => {
    const style = document.getElementById(styleId);
    if (style) style.remove();
}"""


def build_freeze_css(hide_selectors: list[str]) -> str:
    """Freeze stylesheet, plus rules hiding decorative effect layers."""
    css = FREEZE_CSS
    if hide_selectors:
        css += f"\n{', '.join(hide_selectors)} {{\n    opacity: 0 !important;\n}}\n"
    return css


class AnimationFreezer:
    def __init__(self, settle_ms: int = 200):
        self.settle_ms = settle_ms

    async def pause(self, page: Page, spec: ComponentSpec, state: PageVisualState) -> None:
        """Inject the freeze stylesheet (reusing the existing node if present)."""
        if not spec.pause_animations:
            return
        logger.debug("Pausing animations for %s", spec.name)
        await page.evaluate(
            _APPLY_STYLE_SCRIPT,
            {"styleId": STYLE_ID, "css": build_freeze_css(spec.hide_selectors)},
        )
        state.animations_frozen = True
        await page.wait_for_timeout(self.settle_ms)

    async def resume(self, page: Page, spec: ComponentSpec, state: PageVisualState) -> None:
        """Remove the freeze stylesheet. Logs instead of raising."""
        if not spec.pause_animations:
            return
        logger.debug("Resuming animations for %s", spec.name)
        try:
            await page.evaluate(_REMOVE_STYLE_SCRIPT, STYLE_ID)
            state.animations_frozen = False
        except Exception as e:
            logger.warning("Could not resume animations for %s: %s", spec.name, e)

"""Theme controller — puts the page into a light or dark theme and verifies it."""

from __future__ import annotations

import logging

from playwright.async_api import Page

from uicapture.models.component import ComponentSpec
from uicapture.models.config import ThemeConfig
from uicapture.models.page_state import PageVisualState
from uicapture.utils.retry import RetryExhausted, retry

logger = logging.getLogger(__name__)

THEMES = ("light", "dark")

_READ_THEME_SCRIPT = """(attr) => document.documentElement.getAttribute(attr)"""

_HEURISTIC_TOGGLE_SCRIPT = """() => {
    const buttons = Array.from(document.querySelectorAll('button'));
    const themeButton = buttons.find((button) => {
        const attrs = Array.from(button.attributes);
        const text = (button.textContent || '').toLowerCase();
        return (
            attrs.some((attr) => {
                const name = attr.name.toLowerCase();
                const value = attr.value.toLowerCase();
                return name.includes('theme') || name.includes('mode') ||
                    value.includes('theme') || value.includes('mode');
            }) ||
            text.includes('theme') ||
            text.includes('🌙') ||
            text.includes('☀')
        );
    });
    if (!themeButton) return false;
    themeButton.click();
    return true;
}"""

_FORCE_THEME_SCRIPT = """({attr, theme}) => {
    document.documentElement.setAttribute(attr, theme);
    document.dispatchEvent(new CustomEvent('themeChange', { detail: { theme } }));
}"""


class ThemeController:
    """Toggles the page between the light and dark themes.

    The UI toggle is preferred; when it does not take effect the theme
    attribute is forced directly and a ``themeChange`` event is dispatched.
    """

    def __init__(self, config: ThemeConfig | None = None):
        self.config = config or ThemeConfig()

    async def current_theme(self, page: Page) -> str:
        """Read the active theme; anything other than ``dark`` counts as light."""
        value = await retry(
            lambda: page.evaluate(_READ_THEME_SCRIPT, self.config.attribute),
            retries=2,
            delay_ms=200,
            name="Theme read",
        )
        return "dark" if value == "dark" else "light"

    async def set_theme(
        self,
        page: Page,
        target: str,
        state: PageVisualState,
        component: ComponentSpec | None = None,
    ) -> bool:
        """Switch the page to ``target``. Returns True if a UI toggle was clicked.

        Page failures never raise; in the worst case the page ends in the
        forced state. Only an unknown theme name is an error.
        """
        if target not in THEMES:
            raise ValueError(f"Unknown theme: {target}")

        toggled = await self._switch(page, target)
        state.theme = target

        if target == "dark" and component and component.dark_mode_extra_wait_ms:
            logger.debug("Extra dark mode settle for %s: %dms",
                         component.name, component.dark_mode_extra_wait_ms)
            try:
                await page.wait_for_timeout(component.dark_mode_extra_wait_ms)
            except Exception as e:
                logger.debug("Dark mode settle interrupted: %s", e)
        return toggled

    async def _switch(self, page: Page, target: str) -> bool:
        try:
            current = await self.current_theme(page)
        except RetryExhausted as e:
            logger.warning("Could not read current theme (%s), forcing %s", e.last_error, target)
            await self._force_theme(page, target)
            return False

        if current == target:
            logger.debug("Theme already %s", target)
            return False

        logger.info("Toggling theme to %s mode...", target)
        toggled = await self._click_toggle(page)

        try:
            await page.wait_for_timeout(self.config.settle_ms)
            after = await self.current_theme(page)
        except Exception as e:
            logger.debug("Theme verification failed: %s", e)
            after = None
        logger.debug("Theme after toggle: %s", after)

        if after != target:
            logger.warning("Theme toggle did not switch to %s, forcing theme attribute", target)
            await self._force_theme(page, target)
        return toggled

    async def _click_toggle(self, page: Page) -> bool:
        """Click the first toggle affordance that accepts a click."""
        for selector in self.config.toggle_selectors:
            try:
                await page.click(selector, timeout=self.config.toggle_timeout_ms)
                logger.debug("Clicked theme toggle: %s", selector)
                return True
            except Exception as e:
                logger.debug("Theme toggle '%s' not clickable: %s", selector, e)

        try:
            clicked = await page.evaluate(_HEURISTIC_TOGGLE_SCRIPT)
        except Exception as e:
            logger.debug("Heuristic theme toggle scan failed: %s", e)
            return False
        if not clicked:
            logger.warning("Could not find a theme toggle button")
        return bool(clicked)

    async def _force_theme(self, page: Page, target: str) -> None:
        try:
            await page.evaluate(
                _FORCE_THEME_SCRIPT, {"attr": self.config.attribute, "theme": target},
            )
            await page.wait_for_timeout(self.config.force_settle_ms)
        except Exception as e:
            logger.error("Forcing %s theme failed: %s", target, e)

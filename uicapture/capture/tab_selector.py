"""Tab selection — selects a named interactive tab and confirms the page shows it."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable

from playwright.async_api import Page
from pydantic import BaseModel

from uicapture.models.component import TabConfig
from uicapture.models.page_state import PageVisualState
from uicapture.utils.retry import RetryExhausted, retry

logger = logging.getLogger(__name__)

RETRY_PAUSE_MS = 800
CLICK_TIMEOUT_MS = 1000
AGGRESSIVE_EXTRA_SETTLE_MS = 500

# Set on discovered tab elements so they can be clicked directly in the DOM
TAB_TAG_ATTRIBUTE = "data-capture-tab"

# Shared helpers for the in-page scripts below. ``args`` carries the tab
# name, its display label and any icon/text markers.
_MATCH_HELPERS = r"""
    const escapeRe = (s) => s.replace(/[.*+?^${}()|[\]\\]/g, '\\$&');
    const namePattern = new RegExp('\\b' + escapeRe(args.name) + '\\b', 'i');
    const matchesName = (el) => {
        const text = el.textContent || '';
        return namePattern.test(text) || (args.markers || []).some((m) => text.includes(m));
    };
    const candidateSelector = ['[role="tab"]', 'button']
        .concat(args.cardSelector ? [args.cardSelector] : [])
        .join(', ');
    const candidates = Array.from(document.querySelectorAll(candidateSelector));
"""

_FIND_TABS_SCRIPT = r"""(args) => {
    const escapeRe = (s) => s.replace(/[.*+?^${}()|[\]\\]/g, '\\$&');
    const labelFor = (name) => name.charAt(0).toUpperCase() + name.slice(1);
    const identify = (text) => {
        for (const name of args.names) {
            if (new RegExp('\\b' + escapeRe(name) + '\\b', 'i').test(text)) return name;
            if ((args.markers[name] || []).some((m) => text.includes(m))) return name;
        }
        return null;
    };
    // Tag each match so it can be clicked with a plain CSS selector.
    const tag = (el, tab) => {
        el.setAttribute(args.tagAttribute, tab.name);
        return { ...tab, dom_selector: `[${args.tagAttribute}="${tab.name}"]` };
    };
    for (const el of document.querySelectorAll(`[${args.tagAttribute}]`)) {
        el.removeAttribute(args.tagAttribute);
    }
    const strategies = [
        () => {
            if (!args.prefix) return [];
            const attr = args.identityAttribute;
            return Array.from(document.querySelectorAll(`[${attr}^="${args.prefix}"]`)).map((el) => {
                const raw = el.getAttribute(attr).slice(args.prefix.length);
                return [el, { selector: `[${attr}="${args.prefix}${raw}"]`, name: raw.toLowerCase(), source: 'identity' }];
            });
        },
        () => {
            if (!args.cardSelector) return [];
            const tabs = [];
            for (const card of document.querySelectorAll(args.cardSelector)) {
                const name = identify(card.textContent || '');
                if (name) {
                    tabs.push([card, { selector: `${args.cardSelector}:has-text("${labelFor(name)}")`, name, source: 'card' }]);
                }
            }
            return tabs;
        },
        () => {
            const tabs = [];
            for (const button of document.querySelectorAll('button')) {
                const name = identify(button.textContent || '');
                if (name) {
                    tabs.push([button, { selector: `button:has-text("${labelFor(name)}")`, name, source: 'button' }]);
                }
            }
            return tabs;
        },
    ];
    for (const strategy of strategies) {
        const seen = new Set();
        const found = strategy().filter(([, tab]) => !seen.has(tab.name) && seen.add(tab.name));
        if (found.length > 0) return found.map(([el, tab]) => tag(el, tab));
    }
    return [];
}"""

_DOM_CLICK_SCRIPT = """(selector) => {
    let element = null;
    try {
        element = document.querySelector(selector);
    } catch (e) {
        return { success: false, error: e.message };
    }
    if (!element) return { success: false, error: 'Element not found' };
    try {
        element.click();
        return { success: true };
    } catch (e) {
        return { success: false, error: e.message };
    }
}"""

_IDENTITY_SELECTED_SCRIPT = """(args) => {
    if (!args.prefix) return false;
    const base = `[${args.identityAttribute}="${args.prefix}${args.name}"]`;
    return !!document.querySelector(
        `${base}[aria-selected="true"], ${base}.active, ${base}[data-state="active"]`
    );
}"""

_ARIA_SELECTED_SCRIPT = "(args) => {" + _MATCH_HELPERS + """
    const selectedClasses = ['selected', 'active', 'current', 'tabs__item--active', 'active-tab'];
    return candidates.filter(matchesName).some((el) =>
        el.getAttribute('aria-selected') === 'true' ||
        el.getAttribute('aria-pressed') === 'true' ||
        el.getAttribute('data-state') === 'active' ||
        selectedClasses.some((cls) => el.classList.contains(cls))
    );
}"""

_TABLIST_SELECTED_SCRIPT = "(args) => {" + _MATCH_HELPERS + """
    return candidates.filter(matchesName).some((el) => {
        const tablist = el.closest('[role="tablist"]');
        const selected = tablist && tablist.querySelector('[aria-selected="true"]');
        return !!selected && matchesName(selected);
    });
}"""

_STYLE_SELECTED_SCRIPT = "(args) => {" + _MATCH_HELPERS + """
    const transparent = (bg) => !bg || bg === 'transparent' || bg === 'rgba(0, 0, 0, 0)';
    const look = (el) => {
        const style = window.getComputedStyle(el);
        return { bg: style.backgroundColor, transform: style.transform };
    };
    const matching = candidates.filter(matchesName);
    const others = candidates.filter((el) => !matchesName(el)).map(look);
    const distinct = (value, key) => !others.some((other) => other[key] === value);
    return matching.some((el) => {
        for (const target of [el, el.parentElement].filter(Boolean)) {
            const { bg, transform } = look(target);
            if (!transparent(bg) && distinct(bg, 'bg')) return true;
            if (transform && transform !== 'none' && distinct(transform, 'transform')) return true;
        }
        return false;
    });
}"""

SelectionCheck = Callable[[Page, str, TabConfig], Awaitable[bool]]


class TabPhase(str, Enum):
    CHECK_SELECTED = "check_selected"
    CLICK = "click"
    WAIT = "wait"
    VERIFY = "verify"
    SELECTED = "selected"
    FAILED = "failed"


class TabInfo(BaseModel):
    selector: str
    name: str
    source: str = ""  # identity, card, button
    dom_selector: str = ""  # tag set during discovery, for the direct DOM click


class TabState(BaseModel):
    selected_name: str
    attempt: int = 0
    verified: bool = False
    phase: TabPhase = TabPhase.CHECK_SELECTED


class TabSelector:
    """Finds, clicks and verifies mutually exclusive tabs."""

    def __init__(self, identity_attribute: str = "data-testid"):
        self.identity_attribute = identity_attribute
        self.checks: tuple[tuple[str, SelectionCheck], ...] = (
            ("identity", self._identity_selected),
            ("aria", self._aria_selected),
            ("tablist", self._tablist_selected),
            ("style", self._style_selected),
        )

    def _script_args(self, name: str, tab_config: TabConfig) -> dict:
        key = name.lower()
        return {
            "name": key,
            "identityAttribute": self.identity_attribute,
            "prefix": tab_config.test_id_prefix,
            "cardSelector": tab_config.card_selector,
            "markers": {k.lower(): v for k, v in tab_config.markers.items()}.get(key, []),
        }

    async def find_all_tabs(self, page: Page, tab_config: TabConfig) -> list[TabInfo]:
        """Discover tabs: identity-tagged elements, then cards, then buttons."""
        names = [n.lower() for n in tab_config.candidate_tab_names]
        if tab_config.verify_tab_name.lower() not in names:
            names.append(tab_config.verify_tab_name.lower())
        raw = await page.evaluate(_FIND_TABS_SCRIPT, {
            "names": names,
            "markers": {k.lower(): v for k, v in tab_config.markers.items()},
            "prefix": tab_config.test_id_prefix,
            "cardSelector": tab_config.card_selector,
            "identityAttribute": self.identity_attribute,
            "tagAttribute": TAB_TAG_ATTRIBUTE,
        })
        tabs = [TabInfo(**t) for t in raw or []]
        if tabs:
            logger.debug("Found %d tabs: %s", len(tabs), ", ".join(t.name for t in tabs))
        else:
            logger.warning("No tabs could be found on the page")
        return tabs

    async def is_tab_selected(self, page: Page, name: str, tab_config: TabConfig) -> bool:
        """True as soon as any selection signal confirms ``name`` is shown."""
        for label, check in self.checks:
            try:
                if await check(page, name, tab_config):
                    logger.debug("Tab %s selected (%s signal)", name, label)
                    return True
            except Exception as e:
                logger.debug("Tab %s %s check failed: %s", name, label, e)
        return False

    async def _identity_selected(self, page: Page, name: str, tab_config: TabConfig) -> bool:
        return bool(await page.evaluate(_IDENTITY_SELECTED_SCRIPT, self._script_args(name, tab_config)))

    async def _aria_selected(self, page: Page, name: str, tab_config: TabConfig) -> bool:
        return bool(await page.evaluate(_ARIA_SELECTED_SCRIPT, self._script_args(name, tab_config)))

    async def _tablist_selected(self, page: Page, name: str, tab_config: TabConfig) -> bool:
        return bool(await page.evaluate(_TABLIST_SELECTED_SCRIPT, self._script_args(name, tab_config)))

    async def _style_selected(self, page: Page, name: str, tab_config: TabConfig) -> bool:
        # Lower-confidence signal for tabs that carry no semantic selection state.
        if name.lower() not in (t.lower() for t in tab_config.style_heuristic_tabs):
            return False
        return bool(await page.evaluate(_STYLE_SELECTED_SCRIPT, self._script_args(name, tab_config)))

    async def select_tab(
        self,
        page: Page,
        name: str,
        tab_config: TabConfig,
        theme: str,
        state: PageVisualState,
        max_retries: int | None = None,
    ) -> TabState:
        """Select tab ``name`` and confirm it, retrying with growing pauses.

        A FAILED result is not an error: the caller captures whatever the
        page currently shows and flags the outcome.
        """
        key = name.lower()
        slow = theme in tab_config.slow_tabs.get(key, [])
        max_attempts = (max_retries or tab_config.max_retries) + (2 if slow else 0)
        settle_ms = tab_config.slow_settle_ms if slow else tab_config.settle_ms
        logger.info("Selecting %s tab (%d attempts)", key, max_attempts)

        tab_state = TabState(selected_name=key)
        target: TabInfo | None = None
        phase = TabPhase.CHECK_SELECTED

        while phase not in (TabPhase.SELECTED, TabPhase.FAILED):
            tab_state.phase = phase
            match phase:
                case TabPhase.CHECK_SELECTED:
                    if await self.is_tab_selected(page, key, tab_config):
                        phase = TabPhase.SELECTED
                        continue
                    if target is None:
                        tabs = await self.find_all_tabs(page, tab_config)
                        target = next((t for t in tabs if t.name == key), None)
                    if target is None:
                        logger.warning("Could not find %s tab among available tabs", key)
                        phase = TabPhase.FAILED
                    else:
                        phase = TabPhase.CLICK

                case TabPhase.CLICK:
                    tab_state.attempt += 1
                    logger.debug("Clicking %s tab via %s (attempt %d/%d)",
                                 key, target.selector, tab_state.attempt, max_attempts)
                    await self._click_tab(page, target)
                    phase = TabPhase.WAIT

                case TabPhase.WAIT:
                    await page.wait_for_timeout(settle_ms)
                    phase = TabPhase.VERIFY

                case TabPhase.VERIFY:
                    if await self.is_tab_selected(page, key, tab_config):
                        phase = TabPhase.SELECTED
                    elif tab_state.attempt < max_attempts:
                        logger.warning("Attempt %d/%d to select %s tab failed",
                                       tab_state.attempt, max_attempts, key)
                        await page.wait_for_timeout(RETRY_PAUSE_MS * tab_state.attempt)
                        phase = TabPhase.CHECK_SELECTED
                    else:
                        phase = TabPhase.FAILED

        if phase is TabPhase.FAILED and tab_config.aggressive_selectors:
            if await self._aggressive_click(page, key, tab_config):
                phase = TabPhase.SELECTED

        tab_state.phase = phase
        tab_state.verified = phase is TabPhase.SELECTED
        if tab_state.verified:
            state.active_tab = key
            logger.info("Selected %s tab after %d click(s)", key, tab_state.attempt)
        else:
            logger.error("Failed to select %s tab after %d attempts", key, tab_state.attempt)
        return tab_state

    async def _click_tab(self, page: Page, tab: TabInfo) -> None:
        """Direct DOM click on the tagged element, falling back to a Playwright click."""
        result = await page.evaluate(_DOM_CLICK_SCRIPT, tab.dom_selector or tab.selector)
        if result and result.get("success"):
            return
        logger.debug("DOM click on %s failed (%s), using Playwright click",
                     tab.name, (result or {}).get("error", "unknown error"))
        try:
            await retry(
                lambda: page.click(tab.selector, timeout=CLICK_TIMEOUT_MS),
                retries=2,
                delay_ms=300,
                name=f"Tab click {tab.selector}",
            )
        except RetryExhausted as e:
            logger.warning("Could not click tab %s: %s", tab.selector, e.last_error)

    async def _aggressive_click(self, page: Page, key: str, tab_config: TabConfig) -> bool:
        selector = ", ".join(tab_config.aggressive_selectors)
        logger.info("Last resort forced click for %s tab: %s", key, selector)
        try:
            await page.click(selector, force=True, timeout=CLICK_TIMEOUT_MS)
            await page.wait_for_timeout(tab_config.slow_settle_ms + AGGRESSIVE_EXTRA_SETTLE_MS)
        except Exception as e:
            logger.warning("Forced click for %s tab failed: %s", key, e)
            return False
        return await self.is_tab_selected(page, key, tab_config)

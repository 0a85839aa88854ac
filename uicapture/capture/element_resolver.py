"""Element resolution — tries multiple strategies to find a component's element."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from playwright.async_api import ElementHandle, Page

from uicapture.models.component import ComponentSpec

logger = logging.getLogger(__name__)

# A triangulated ancestor taller than this many viewport heights is treated as
# too broad, the same as <body> or <main>.
BROAD_CONTAINER_VIEWPORT_RATIO = 3.0

# (element, selector or description) on success, None on miss
StrategyHit = Optional[tuple[ElementHandle, str]]
Strategy = Callable[[Page, ComponentSpec], Awaitable[StrategyHit]]

_TRIANGULATE_SCRIPT = """([first, second, broadRatio]) => {
    const isRoot = (el) =>
        ['HTML', 'BODY', 'MAIN'].includes(el.tagName) || el.getAttribute('role') === 'main';
    const isBroad = (el) =>
        isRoot(el) || el.getBoundingClientRect().height > window.innerHeight * broadRatio;
    const isSectionLike = (el) =>
        el.tagName === 'SECTION' ||
        el.tagName === 'ARTICLE' ||
        (el.tagName === 'DIV' && typeof el.className === 'string' &&
            (el.className.includes('section') || el.className.includes('container')));

    let ancestor = first.parentElement;
    while (ancestor && !ancestor.contains(second)) {
        ancestor = ancestor.parentElement;
    }
    if (!ancestor) return first.parentElement;

    if (isBroad(ancestor)) {
        let current = first;
        while (current && current !== ancestor) {
            if (isSectionLike(current) && current.contains(second)) return current;
            current = current.parentElement;
        }
    }
    return ancestor;
}"""

_KEYWORD_CONTEXT_SCRIPT = """(keywords) => {
    const containers = Array.from(
        document.querySelectorAll('section, div.container, [class*="container_"]')
    );
    for (const keyword of keywords) {
        const matching = containers.filter((el) => (el.textContent || '').includes(keyword));
        if (matching.length > 0) {
            return matching.reduce((smallest, el) =>
                el.textContent.length < smallest.textContent.length ? el : smallest
            );
        }
    }
    const headings = Array.from(document.querySelectorAll('h1, h2, h3, h4, h5, h6'));
    for (const keyword of keywords) {
        const heading = headings.find((h) => (h.textContent || '').includes(keyword));
        if (heading) return heading.parentElement;
    }
    return null;
}"""


class ResolvedRegion:
    """A located component element plus how it was found."""

    def __init__(
        self,
        element: ElementHandle,
        strategy_used: str,
        attempts: list[dict],
        selector: str = "",
    ):
        self.element = element
        self.strategy_used = strategy_used
        self.selector = selector
        self.attempts = attempts  # [{strategy, selector, success}]


class ElementResolver:
    """Locates a component's element through an ordered fallback chain.

    Strategy order:
    1. Primary selector
    2. Alternative selectors, one at a time
    3. Triangulation: common container of two alternative matches
    4. Delayed wait for ``wait_for_selector``, then primary/alternatives again
    5. Identity attribute (``[data-testid="..."]``)
    6. Heuristic fallback named by ``fallback_strategy``
    """

    def __init__(
        self,
        identity_attribute: str = "data-testid",
        wait_timeout_ms: int = 5000,
    ):
        self.identity_attribute = identity_attribute
        self.wait_timeout_ms = wait_timeout_ms
        self.strategies: tuple[tuple[str, Strategy], ...] = (
            ("primary", self._by_primary),
            ("alternative", self._by_alternatives),
            ("triangulation", self._by_triangulation),
            ("delayed_wait", self._by_delayed_wait),
            ("identity", self._by_identity),
            ("fallback", self._by_fallback_strategy),
        )
        self.fallback_strategies: dict[str, Strategy] = {
            "first-heading": _first_heading,
            "section-index": _section_index,
            "keyword-context": _keyword_context,
            "last-element": _last_element,
        }

    async def resolve(self, page: Page, spec: ComponentSpec) -> ResolvedRegion | None:
        """Return the first strategy's hit, or None when every strategy misses.

        None is not an error: callers take an un-clipped viewport capture.
        """
        attempts: list[dict] = []
        for strategy_name, strategy in self.strategies:
            try:
                hit = await strategy(page, spec)
            except Exception as e:
                logger.debug("[%s] strategy %s raised: %s", spec.name, strategy_name, e)
                hit = None

            if hit is None:
                attempts.append({"strategy": strategy_name, "selector": "", "success": False})
                continue

            element, selector = hit
            attempts.append({"strategy": strategy_name, "selector": selector, "success": True})
            if strategy_name == "primary":
                logger.debug("[%s] found with primary selector", spec.name)
            else:
                logger.info("[%s] found via %s (%s)", spec.name, strategy_name, selector)
            return ResolvedRegion(element, strategy_name, attempts, selector=selector)

        logger.warning("[%s] all %d strategies failed", spec.name, len(attempts))
        return None

    async def _by_primary(self, page: Page, spec: ComponentSpec) -> StrategyHit:
        if not spec.selector:
            return None
        element = await page.query_selector(spec.selector)
        return (element, spec.selector) if element else None

    async def _by_alternatives(self, page: Page, spec: ComponentSpec) -> StrategyHit:
        for selector in spec.alternative_selectors:
            try:
                element = await page.query_selector(selector)
            except Exception as e:
                logger.debug("[%s] alternative '%s' errored: %s", spec.name, selector, e)
                continue
            if element:
                return element, selector
        return None

    async def _by_triangulation(self, page: Page, spec: ComponentSpec) -> StrategyHit:
        matched: list[tuple[str, ElementHandle]] = []
        for selector in spec.alternative_selectors:
            try:
                elements = await page.query_selector_all(selector)
            except Exception as e:
                logger.debug("[%s] triangulation selector '%s' errored: %s", spec.name, selector, e)
                continue
            if elements:
                matched.append((selector, elements[0]))
            if len(matched) == 2:
                break

        if len(matched) < 2:
            return None

        (first_selector, first), (second_selector, second) = matched
        handle = await page.evaluate_handle(
            _TRIANGULATE_SCRIPT, [first, second, BROAD_CONTAINER_VIEWPORT_RATIO],
        )
        element = handle.as_element()
        if element is None:
            return None
        return element, f"{first_selector} + {second_selector}"

    async def _by_delayed_wait(self, page: Page, spec: ComponentSpec) -> StrategyHit:
        if not spec.wait_for_selector:
            return None
        try:
            await page.wait_for_selector(
                spec.wait_for_selector, timeout=self.wait_timeout_ms, state="attached",
            )
        except Exception:
            logger.debug("[%s] timed out waiting for %s", spec.name, spec.wait_for_selector)
            return None
        return await self._by_primary(page, spec) or await self._by_alternatives(page, spec)

    async def _by_identity(self, page: Page, spec: ComponentSpec) -> StrategyHit:
        if not spec.test_id:
            return None
        selector = f'[{self.identity_attribute}="{spec.test_id}"]'
        element = await page.query_selector(selector)
        return (element, selector) if element else None

    async def _by_fallback_strategy(self, page: Page, spec: ComponentSpec) -> StrategyHit:
        strategy = self.fallback_strategies.get(spec.fallback_strategy)
        if strategy is None:
            return None
        logger.debug("[%s] trying fallback strategy %s", spec.name, spec.fallback_strategy)
        return await strategy(page, spec)


async def _first_heading(page: Page, spec: ComponentSpec) -> StrategyHit:
    for selector in ("h1", "h2"):
        element = await page.query_selector(selector)
        if element:
            return element, selector
    return None


async def _section_index(page: Page, spec: ComponentSpec) -> StrategyHit:
    sections = await page.query_selector_all("section")
    if not sections:
        return None
    index = spec.section_index or 0
    if index < len(sections):
        return sections[index], f"section[{index}]"
    logger.debug("[%s] section index %d out of range, using last section", spec.name, index)
    return sections[-1], f"section[{len(sections) - 1}]"


async def _keyword_context(page: Page, spec: ComponentSpec) -> StrategyHit:
    if not spec.keywords:
        return None
    handle = await page.evaluate_handle(_KEYWORD_CONTEXT_SCRIPT, spec.keywords)
    element = handle.as_element()
    return (element, f"keywords={spec.keywords}") if element else None


async def _last_element(page: Page, spec: ComponentSpec) -> StrategyHit:
    footer = await page.query_selector("footer")
    if footer:
        return footer, "footer"
    children = await page.query_selector_all("main > *")
    if children:
        return children[-1], "main > *:last"
    return None

"""Diff highlighting — outlines elements under review in the captured image."""

from __future__ import annotations

import logging

from playwright.async_api import Page

from uicapture.models.component import ComponentSpec

logger = logging.getLogger(__name__)

STYLE_ID = "diff-highlight-style"
MARK_ATTRIBUTE = "data-diff-highlight"

# Outline only, so the measured layout is unchanged.
HIGHLIGHT_CSS = f"""
[{MARK_ATTRIBUTE}="true"] {{
    outline: 3px solid rgba(255, 0, 0, 0.7) !important;
    outline-offset: 2px !important;
}}
"""

_ADD_HIGHLIGHT_SCRIPT = """({styleId, css, attribute, selectors}) => {
    let style = document.getElementById(styleId);
    if (!style) {
        style = document.createElement('style');
        style.id = styleId;
        document.head.appendChild(style);
    }
    style.textContent = css;
    let marked = 0;
    for (const selector of selectors) {
        let elements = [];
        try {
            elements = document.querySelectorAll(selector);
        } catch (e) {
            continue;
        }
        for (const el of elements) {
            el.setAttribute(attribute, 'true');
            marked++;
        }
    }
    return marked;
}"""

_REMOVE_HIGHLIGHT_SCRIPT = """({styleId, attribute}) => {
    const style = document.getElementById(styleId);
    if (style) style.remove();
    for (const el of document.querySelectorAll(`[${attribute}]`)) {
        el.removeAttribute(attribute);
    }
}"""


class DiffHighlighter:
    """Marks a component's ``diff_highlight_selectors`` with a red outline."""

    async def apply(self, page: Page, spec: ComponentSpec) -> None:
        if not spec.diff_highlight_selectors:
            return
        marked = await page.evaluate(_ADD_HIGHLIGHT_SCRIPT, {
            "styleId": STYLE_ID,
            "css": HIGHLIGHT_CSS,
            "attribute": MARK_ATTRIBUTE,
            "selectors": spec.diff_highlight_selectors,
        })
        logger.debug("Highlighted %s element(s) for %s", marked, spec.name)

    async def remove(self, page: Page, spec: ComponentSpec) -> None:
        """Remove the markers and their style node. Logs instead of raising."""
        if not spec.diff_highlight_selectors:
            return
        try:
            await page.evaluate(_REMOVE_HIGHLIGHT_SCRIPT, {"styleId": STYLE_ID, "attribute": MARK_ATTRIBUTE})
        except Exception as e:
            logger.warning("Could not remove diff highlights for %s: %s", spec.name, e)

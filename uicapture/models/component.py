"""Component registry data structures — what to capture and how to find it."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

FallbackStrategy = Literal[
    "first-heading", "section-index", "keyword-context", "last-element", "none",
]

_ORDER_PREFIX_RE = re.compile(r"^\d{2}-")


class TabConfig(BaseModel):
    """Interactive tab selection settings for a tabbed component."""
    candidate_tab_names: list[str] = Field(default_factory=list)
    verify_tab_name: str
    max_retries: int = 3

    # Discovery
    test_id_prefix: str = ""  # e.g. "site-framework-tab-" → [data-testid^=prefix]
    card_selector: str = ""  # styled card containers acting as tabs
    markers: dict[str, list[str]] = Field(default_factory=dict)  # name -> icon/text markers

    # Selection tuning
    settle_ms: int = 1500
    slow_settle_ms: int = 2000
    slow_tabs: dict[str, list[str]] = Field(default_factory=dict)  # name -> themes
    aggressive_selectors: list[str] = Field(default_factory=list)
    style_heuristic_tabs: list[str] = Field(default_factory=list)

    # Per-tab capture: one screenshot per listed tab, or per discovered tab
    capture_tabs: list[str] = Field(default_factory=list)
    capture_all_tabs: bool = False

    @property
    def per_tab(self) -> bool:
        return bool(self.capture_tabs) or self.capture_all_tabs


class ComponentSpec(BaseModel):
    name: str
    page: str = "/"

    # Locators, in resolution order
    selector: Optional[str] = None
    alternative_selectors: list[str] = Field(default_factory=list)
    wait_for_selector: Optional[str] = None
    test_id: Optional[str] = None
    fallback_strategy: FallbackStrategy = "none"
    section_index: Optional[int] = None
    keywords: list[str] = Field(default_factory=list)

    # Geometry
    padding: int = 40
    min_height: int = 0
    exclude_selectors: list[str] = Field(default_factory=list)
    extra_scroll: int = 0

    # Visual state
    pause_animations: bool = True
    hide_selectors: list[str] = Field(default_factory=list)
    diff_highlight_selectors: list[str] = Field(default_factory=list)
    dark_mode_extra_wait_ms: int = 0
    tab_config: Optional[TabConfig] = None

    # Interaction before capture
    click_selector: Optional[str] = None
    click_wait_ms: int = 1000

    diff_threshold: Optional[float] = None
    debug_html: bool = False  # element HTML, headings and buttons in the metadata sidecar

    @model_validator(mode="after")
    def check_locatable(self) -> "ComponentSpec":
        if not self.selector and self.fallback_strategy == "none":
            raise ValueError(
                f"Component '{self.name}' needs a selector or a fallback_strategy"
            )
        return self

    @property
    def short_name(self) -> str:
        """Name without its two-digit ordering prefix (``03-foo`` → ``foo``)."""
        return _ORDER_PREFIX_RE.sub("", self.name)

    @property
    def capture_names(self) -> list[str]:
        """Image names this component is saved under, one per tab in per-tab mode."""
        if self.tab_config and self.tab_config.per_tab:
            tabs = self.tab_config.capture_tabs or self.tab_config.candidate_tab_names
            return [f"{self.name}-{tab.lower()}" for tab in tabs]
        return [self.name]


def load_components(path: str | Path) -> list[ComponentSpec]:
    """Load and validate a component registry from a JSON file.

    Accepts either a bare list of components or ``{"components": [...]}``.
    Raises ValueError when two components share a name.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Component registry not found: {path}")
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("components", [])

    components = [ComponentSpec(**item) for item in data]
    seen: set[str] = set()
    for component in components:
        if component.name in seen:
            raise ValueError(f"Duplicate component name in registry: {component.name}")
        seen.add(component.name)
    logger.debug("Loaded %d components from %s", len(components), path)
    return components


def select_components(
    components: list[ComponentSpec], names: list[str] | None = None,
) -> list[ComponentSpec]:
    """Pick components by name; an empty selection means all of them.

    Names may omit the two-digit ordering prefix. Unknown names are logged
    and ignored.
    """
    if not names:
        return list(components)

    selected = []
    for name in names:
        match = next(
            (c for c in components if c.name == name or c.short_name == name), None,
        )
        if match is None:
            logger.warning("Unknown component: %s", name)
            continue
        if match not in selected:
            selected.append(match)
    return selected


def group_by_page(components: list[ComponentSpec]) -> dict[str, list[ComponentSpec]]:
    """Group components by page path, preserving registry order."""
    groups: dict[str, list[ComponentSpec]] = {}
    for component in components:
        groups.setdefault(component.page or "/", []).append(component)
    return groups

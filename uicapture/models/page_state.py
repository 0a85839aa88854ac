"""Visual state of the single shared browser page."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class PageVisualState(BaseModel):
    """Mutable page state owned by the capture run.

    Passed explicitly to every component that changes the page so the
    sequential, single-page model stays visible at call sites.
    """
    theme: Optional[str] = None
    animations_frozen: bool = False
    active_tab: Optional[str] = None

    def reset(self) -> None:
        """Forget everything, e.g. after navigating to a new page."""
        self.theme = None
        self.animations_frozen = False
        self.active_tab = None

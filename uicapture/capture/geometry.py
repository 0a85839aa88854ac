"""Clip geometry — pure arithmetic turning a bounding box into a capture clip."""

from __future__ import annotations

import logging

from pydantic import BaseModel

logger = logging.getLogger(__name__)

EXCLUSION_MARGIN = 10
# Trimming may never leave less than this share of the pre-trim height.
MIN_TRIMMED_HEIGHT_RATIO = 0.5


class ClipRect(BaseModel):
    x: float
    y: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def is_valid(self) -> bool:
        return self.width > 0 and self.height > 0

    def as_clip(self) -> dict[str, float]:
        """Clip dict in the shape ``page.screenshot(clip=...)`` expects."""
        return self.model_dump()


def compute_base_clip(
    box: dict,
    padding: int,
    header_height: float,
    viewport_width: float,
    min_height: int = 0,
) -> ClipRect:
    """Pad the element box, leaving room above it for a fixed header."""
    top_padding = padding + header_height
    x = max(0, box["x"] - padding)
    return ClipRect(
        x=x,
        y=max(0, box["y"] - top_padding),
        width=min(viewport_width - x, box["width"] + 2 * padding),
        height=max(box["height"] + top_padding + padding, min_height),
    )


def trim_exclusions(clip: ClipRect, exclusion_boxes: list[dict]) -> ClipRect:
    """Shrink the clip so excluded regions at its top or bottom fall outside it.

    A box whose bottom edge lies in the top half of the clip moves the top
    edge down; a box whose top edge lies in the bottom half moves the bottom
    edge up. Boxes outside the clip or straddling its middle are ignored, and
    any adjustment that would leave less than half the original height is
    skipped.
    """
    floor = clip.height * MIN_TRIMMED_HEIGHT_RATIO
    current = clip.model_copy()

    for box in exclusion_boxes:
        top = box["y"]
        bottom = box["y"] + box["height"]
        if bottom <= current.y or top >= current.bottom:
            continue

        middle = current.y + current.height / 2
        if bottom <= middle:
            new_y = bottom + EXCLUSION_MARGIN
            new_height = current.bottom - new_y
            if new_height >= floor:
                current = current.model_copy(update={"y": new_y, "height": new_height})
            else:
                logger.debug("Skipping top trim to %s: would leave %.0fpx", new_y, new_height)
        elif top >= middle:
            new_height = top - EXCLUSION_MARGIN - current.y
            if new_height >= floor:
                current = current.model_copy(update={"height": new_height})
            else:
                logger.debug("Skipping bottom trim at %s: would leave %.0fpx", top, new_height)

    return current


def clamp_to_viewport(clip: ClipRect, viewport_height: float) -> ClipRect:
    """Keep the clip's bottom edge inside the viewport."""
    if clip.bottom <= viewport_height:
        return clip
    return clip.model_copy(update={"height": viewport_height - clip.y})

"""Baseline vs. current pixel comparison for captured components."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PIL import Image, ImageChops
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Changed pixels are painted this color in diff images
DIFF_HIGHLIGHT_COLOR = (255, 0, 255)


class DiffResult(BaseModel):
    component_name: str
    theme: str
    baseline_path: str
    current_path: str
    diff_percentage: float
    threshold: float
    passed: bool
    message: str = ""
    diff_image_path: Optional[str] = None


def diff_image_path(output_dir: str | Path, component_name: str, theme: str) -> Path:
    return Path(output_dir) / "diffs" / f"{component_name}-{theme}-diff.png"


def _load_pair(baseline_path: Path, current_path: Path) -> tuple[Image.Image, Image.Image]:
    with Image.open(baseline_path) as baseline_img, Image.open(current_path) as current_img:
        return baseline_img.convert("RGB"), current_img.convert("RGB")


def _changed_mask(baseline: Image.Image, current: Image.Image, pixel_threshold: int) -> Image.Image:
    """L-mode mask, 255 wherever any RGB channel moved by more than ``pixel_threshold``."""
    bands = [
        band.point(lambda v: 255 if v > pixel_threshold else 0)
        for band in ImageChops.difference(baseline, current).split()
    ]
    mask = bands[0]
    for band in bands[1:]:
        mask = ImageChops.lighter(mask, band)
    return mask


def pixel_diff_ratio(baseline_path: Path, current_path: Path, pixel_threshold: int = 40) -> float:
    """Share of pixels where any RGB channel moved by more than ``pixel_threshold``.

    Images of different sizes count as entirely different: the clip itself
    changed.
    """
    baseline, current = _load_pair(baseline_path, current_path)
    if baseline.size != current.size:
        logger.debug("Size mismatch %s vs %s", baseline.size, current.size)
        return 1.0

    total = baseline.size[0] * baseline.size[1]
    if total == 0:
        return 0.0
    changed = _changed_mask(baseline, current, pixel_threshold).histogram()[255]
    return changed / total


def write_diff_image(
    baseline_path: Path,
    current_path: Path,
    output_path: Path,
    pixel_threshold: int = 40,
) -> Path | None:
    """Save the current capture with its changed pixels painted magenta.

    Returns None when the sizes differ, since there is no pixel mapping.
    """
    baseline, current = _load_pair(baseline_path, current_path)
    if baseline.size != current.size:
        return None

    highlighted = current.copy()
    highlighted.paste(DIFF_HIGHLIGHT_COLOR, mask=_changed_mask(baseline, current, pixel_threshold))
    output_path.parent.mkdir(parents=True, exist_ok=True)
    highlighted.save(output_path)
    logger.info("Diff image saved to: %s", output_path)
    return output_path


def compare_capture(
    component_name: str,
    theme: str,
    baseline_path: Path,
    current_path: Path,
    threshold: float,
    pixel_threshold: int = 40,
    diff_path: Path | None = None,
) -> DiffResult:
    """Compare one capture against its baseline.

    When ``diff_path`` is given and the capture is over ``threshold``, a diff
    image is written there.
    """
    saved_diff = None
    try:
        ratio = pixel_diff_ratio(baseline_path, current_path, pixel_threshold)
        if diff_path is not None and ratio > threshold:
            saved_diff = write_diff_image(baseline_path, current_path, diff_path, pixel_threshold)
    except OSError as e:
        logger.error("Could not compare %s (%s): %s", component_name, theme, e)
        return DiffResult(
            component_name=component_name,
            theme=theme,
            baseline_path=str(baseline_path),
            current_path=str(current_path),
            diff_percentage=1.0,
            threshold=threshold,
            passed=False,
            message=f"Screenshot comparison error: {e}",
        )

    passed = ratio <= threshold
    return DiffResult(
        component_name=component_name,
        theme=theme,
        baseline_path=str(baseline_path),
        current_path=str(current_path),
        diff_percentage=round(ratio, 4),
        threshold=threshold,
        passed=passed,
        message=f"Pixel diff: {ratio:.2%} (tolerance: {threshold:.2%})",
        diff_image_path=str(saved_diff) if saved_diff else None,
    )

"""Screenshot store — writes capture PNGs and their metadata sidecars."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


def make_timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.strftime(TIMESTAMP_FORMAT)


class ScreenshotStore:
    """Persists captures as ``{name}-{theme}[-{variant}][-{timestamp}].png``.

    A store without a timestamp writes baselines, which overwrite the
    previous baseline for the same component and theme.
    """

    def __init__(self, output_dir: str | Path, timestamp: str | None = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.timestamp = timestamp

    @property
    def is_baseline(self) -> bool:
        return self.timestamp is None

    def filename(self, component_name: str, theme: str, variant: str | None = None) -> str:
        parts = [component_name, theme]
        if variant:
            parts.append(variant)
        if self.timestamp:
            parts.append(self.timestamp)
        return "-".join(parts) + ".png"

    def save(
        self,
        component_name: str,
        theme: str,
        image_bytes: bytes,
        variant: str | None = None,
    ) -> Path:
        """Write PNG bytes and return the file path."""
        path = self.output_dir / self.filename(component_name, theme, variant)
        path.write_bytes(image_bytes)
        logger.info("Screenshot saved to: %s", path)
        return path

    def save_metadata(self, image_path: Path, metadata: dict) -> Path:
        """Write the JSON sidecar next to a saved image."""
        path = Path(image_path).with_suffix(".json")
        with open(path, "w") as f:
            json.dump(metadata, f, indent=2, default=str)
        return path

    def baseline_path(self, component_name: str, theme: str) -> Path | None:
        path = self.output_dir / f"{component_name}-{theme}.png"
        return path if path.exists() else None

    def baseline_for(self, image_path: str | Path) -> Path | None:
        """Baseline of a timestamped capture written by this store, if one exists."""
        image_path = Path(image_path)
        suffix = f"-{self.timestamp}" if self.timestamp else ""
        if not suffix or not image_path.stem.endswith(suffix):
            return None
        baseline = image_path.with_name(image_path.stem[: -len(suffix)] + image_path.suffix)
        return baseline if baseline.exists() else None

    def latest_capture(self, component_name: str, theme: str) -> Path | None:
        """Most recent timestamped capture for a component and theme."""
        pattern = re.compile(
            rf"{re.escape(component_name)}-{re.escape(theme)}-(\d{{8}}-\d{{6}})\.png"
        )
        matches = []
        for path in self.output_dir.glob(f"{component_name}-{theme}-*.png"):
            m = pattern.fullmatch(path.name)
            if m:
                matches.append((m.group(1), path))
        if not matches:
            return None
        return max(matches)[1]

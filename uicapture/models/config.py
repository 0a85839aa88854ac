"""Configuration models for the capture framework."""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class ViewportConfig(BaseModel):
    width: int = 1280
    height: int = 2000


class ThemeConfig(BaseModel):
    # Attribute on <html> that holds the active theme
    attribute: str = "data-theme"
    toggle_selectors: list[str] = Field(
        default_factory=lambda: [
            "button.toggleButton_e_pL",
            ".colorModeToggle_AEMF button",
            "[data-theme-toggle]",
        ]
    )
    toggle_timeout_ms: int = 2000
    settle_ms: int = 1200
    force_settle_ms: int = 500


class RetryConfig(BaseModel):
    retries: int = 3
    delay_ms: int = 500
    exponential_backoff: bool = True


class TimingConfig(BaseModel):
    navigation_timeout_ms: int = 60000
    page_settle_ms: int = 3000
    theme_settle_ms: int = 3000
    scroll_settle_ms: int = 500
    wait_for_selector_timeout_ms: int = 5000
    readiness_timeout_ms: int = 8000
    animation_settle_ms: int = 200


class CaptureConfig(BaseModel):
    # Target
    base_url: str = "http://localhost:3000"
    path_prefix: str = ""

    # Capture matrix
    themes: list[str] = Field(default_factory=lambda: ["light", "dark"])
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    headless: bool = True

    # Locating
    identity_attribute: str = "data-testid"
    header_selector: str = "header, .navbar, [class*='navbar_']"

    theme: ThemeConfig = Field(default_factory=ThemeConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    navigation_retries: int = 3

    # Output
    output_dir: str = "./screenshots"
    components_file: str = "components.json"
    report_output_dir: str = "./capture-reports"

    # Diffing
    diff_threshold: float = 0.02
    pixel_threshold: int = 40

    @field_validator("base_url", mode="before")
    @classmethod
    def resolve_env_base_url(cls, v: str) -> str:
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        return v

    @field_validator("themes")
    @classmethod
    def check_themes(cls, v: list[str]) -> list[str]:
        unknown = [t for t in v if t not in ("light", "dark")]
        if unknown:
            raise ValueError(f"Unsupported themes: {', '.join(unknown)}")
        return v

    def page_url(self, page_path: str) -> str:
        """Build the absolute URL for a component's page path."""
        return f"{self.base_url.rstrip('/')}{self.path_prefix}{page_path}"

    @classmethod
    def load(cls, path: str | Path) -> "CaptureConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

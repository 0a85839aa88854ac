"""Tests for configuration models."""

import json
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from uicapture.models.config import CaptureConfig, ThemeConfig, ViewportConfig


class TestViewportConfig:
    """Tests for ViewportConfig model."""

    def test_default_values(self):
        """Tall default viewport so long sections fit in one clip."""
        config = ViewportConfig()
        assert config.width == 1280
        assert config.height == 2000


class TestThemeConfig:
    """Tests for ThemeConfig model."""

    def test_default_toggles(self):
        config = ThemeConfig()
        assert config.attribute == "data-theme"
        assert config.toggle_selectors[0] == "button.toggleButton_e_pL"
        assert config.settle_ms == 1200


class TestCaptureConfig:
    """Tests for CaptureConfig model."""

    def test_defaults(self):
        config = CaptureConfig()
        assert config.themes == ["light", "dark"]
        assert config.retry.retries == 3
        assert config.retry.exponential_backoff is True
        assert config.navigation_retries == 3
        assert config.identity_attribute == "data-testid"

    def test_env_base_url(self):
        os.environ["TEST_CAPTURE_URL"] = "https://staging.example.com"
        try:
            config = CaptureConfig(base_url="env:TEST_CAPTURE_URL")
            assert config.base_url == "https://staging.example.com"
        finally:
            del os.environ["TEST_CAPTURE_URL"]

    def test_env_base_url_missing(self):
        with pytest.raises(ValidationError, match="NOT_A_REAL_CAPTURE_VAR"):
            CaptureConfig(base_url="env:NOT_A_REAL_CAPTURE_VAR")

    def test_rejects_unknown_theme(self):
        with pytest.raises(ValidationError, match="sepia"):
            CaptureConfig(themes=["light", "sepia"])

    def test_page_url(self):
        config = CaptureConfig(base_url="http://localhost:3000/", path_prefix="/docs-site")
        assert config.page_url("/") == "http://localhost:3000/docs-site/"
        assert config.page_url("/docs/intro") == "http://localhost:3000/docs-site/docs/intro"

    def test_save_and_load(self, tmp_path: Path):
        config = CaptureConfig(base_url="https://example.com", themes=["dark"], diff_threshold=0.05)
        path = tmp_path / "nested" / "capture-config.json"
        config.save(path)

        with open(path) as f:
            assert json.load(f)["themes"] == ["dark"]

        loaded = CaptureConfig.load(path)
        assert loaded == config

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            CaptureConfig.load(tmp_path / "missing.json")

    def test_load_fixture_file(self, temp_config_file: Path):
        config = CaptureConfig.load(temp_config_file)
        assert config.retry.delay_ms == 0
        assert config.timing.scroll_settle_ms == 0

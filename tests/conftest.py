"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image
from playwright.async_api import Browser, BrowserContext, ElementHandle, Page

from uicapture.models.component import ComponentSpec, TabConfig
from uicapture.models.config import CaptureConfig, RetryConfig, TimingConfig
from uicapture.models.page_state import PageVisualState
from uicapture.storage.screenshot_store import ScreenshotStore


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def capture_config(tmp_path: Path) -> CaptureConfig:
    """Create a test capture configuration with short timings."""
    return CaptureConfig(
        base_url="https://example.com",
        output_dir=str(tmp_path / "screenshots"),
        report_output_dir=str(tmp_path / "reports"),
        retry=RetryConfig(retries=2, delay_ms=0, exponential_backoff=False),
        timing=TimingConfig(
            page_settle_ms=0,
            theme_settle_ms=0,
            scroll_settle_ms=0,
            readiness_timeout_ms=10,
            animation_settle_ms=0,
        ),
        navigation_retries=2,
    )


@pytest.fixture
def temp_config_file(capture_config: CaptureConfig, tmp_path: Path) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "capture-config.json"
    capture_config.save(config_path)
    return config_path


# ============================================================================
# Component Fixtures
# ============================================================================


@pytest.fixture
def component_spec() -> ComponentSpec:
    """Create a simple component spec."""
    return ComponentSpec(
        name="01-hero",
        page="/",
        selector="section.hero",
        alternative_selectors=[".hero-banner", "main > section:first-child"],
        fallback_strategy="first-heading",
        padding=40,
    )


@pytest.fixture
def tab_config() -> TabConfig:
    """Create a framework-tab selection config."""
    return TabConfig(
        candidate_tab_names=["react", "preact", "remix"],
        verify_tab_name="react",
        max_retries=3,
        test_id_prefix="site-framework-tab-",
        markers={"react": ["⚛️"]},
        settle_ms=0,
        slow_settle_ms=0,
    )


@pytest.fixture
def page_state() -> PageVisualState:
    return PageVisualState()


# ============================================================================
# Mock Playwright Fixtures
# ============================================================================


def make_element(box: dict | None = None, visible: bool = True) -> AsyncMock:
    """Create a mock element handle with a bounding box."""
    element = AsyncMock(spec=ElementHandle)
    element.bounding_box.return_value = box
    element.is_visible.return_value = visible
    return element


def make_handle(element) -> Mock:
    """Wrap an element the way ``page.evaluate_handle`` returns it."""
    return Mock(as_element=Mock(return_value=element))


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "https://example.com"
    page.viewport_size = {"width": 1280, "height": 2000}
    page.screenshot = AsyncMock(return_value=b"\x89PNG fake")
    page.goto = AsyncMock()
    page.click = AsyncMock()
    page.evaluate = AsyncMock(return_value=None)
    page.query_selector = AsyncMock(return_value=None)
    page.query_selector_all = AsyncMock(return_value=[])
    page.wait_for_selector = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    return page


@pytest.fixture
def mock_context(mock_page: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser context."""
    context = AsyncMock(spec=BrowserContext)
    context.new_page = AsyncMock(return_value=mock_page)
    return context


@pytest.fixture
def mock_browser(mock_context: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser."""
    browser = AsyncMock(spec=Browser)
    browser.new_context = AsyncMock(return_value=mock_context)
    return browser


# ============================================================================
# Storage Fixtures
# ============================================================================


@pytest.fixture
def baseline_store(tmp_path: Path) -> ScreenshotStore:
    return ScreenshotStore(tmp_path / "screenshots")


@pytest.fixture
def timestamped_store(tmp_path: Path) -> ScreenshotStore:
    return ScreenshotStore(tmp_path / "screenshots", timestamp="20240102-030405")


def create_png(path: Path, color=(255, 255, 255), size=(10, 10)) -> Path:
    """Write a solid-color PNG for diff tests."""
    Image.new("RGB", size, color).save(path)
    return path


@pytest.fixture
def element_factory():
    """Factory for mock element handles."""
    return make_element


@pytest.fixture
def handle_factory():
    """Factory for mock JS handles wrapping an element."""
    return make_handle


@pytest.fixture
def png_factory():
    """Factory for solid-color PNG files."""
    return create_png

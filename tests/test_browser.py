"""Tests for browser launch helpers."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from uicapture.models.config import CaptureConfig, TimingConfig, ViewportConfig
from uicapture.utils.browser import (
    DEFAULT_ELEMENT_TIMEOUT_MS,
    attach_page_logging,
    create_capture_context,
    launch_browser,
)


class TestLaunchBrowser:
    @pytest.mark.asyncio
    async def test_launches_chromium(self):
        playwright = MagicMock()
        playwright.chromium.launch = AsyncMock(return_value="browser")

        browser = await launch_browser(playwright, headless=False)

        assert browser == "browser"
        kwargs = playwright.chromium.launch.call_args.kwargs
        assert kwargs["headless"] is False
        assert "--hide-scrollbars" in kwargs["args"]


class TestCreateCaptureContext:
    """Tests for create_capture_context."""

    @pytest.mark.asyncio
    async def test_viewport_and_timeouts(self, mock_browser, mock_context):
        config = CaptureConfig(
            viewport=ViewportConfig(width=1440, height=900),
            timing=TimingConfig(navigation_timeout_ms=30000),
        )

        context = await create_capture_context(mock_browser, config)

        assert context is mock_context
        kwargs = mock_browser.new_context.call_args.kwargs
        assert kwargs["viewport"] == {"width": 1440, "height": 900}
        assert kwargs["reduced_motion"] == "reduce"
        mock_context.set_default_timeout.assert_called_once_with(DEFAULT_ELEMENT_TIMEOUT_MS)
        mock_context.set_default_navigation_timeout.assert_called_once_with(30000)


class TestAttachPageLogging:
    def test_registers_listeners(self, mock_page):
        attach_page_logging(mock_page)
        events = [c.args[0] for c in mock_page.on.call_args_list]
        assert events == ["pageerror", "console"]

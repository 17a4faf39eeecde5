"""Unit tests for browser module."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeout

import browser as browser_module
from browser import BrowserSession
from config import BrowserConfig
from exceptions import BrowserNotStartedError, NavigationError, ScreenshotError


def started_session(page: MagicMock) -> BrowserSession:
    session = BrowserSession(BrowserConfig())
    session._page = page
    return session


class TestBrowserSession:
    def test_page_before_start(self):
        with pytest.raises(BrowserNotStartedError):
            BrowserSession().page

    @pytest.mark.asyncio
    async def test_close_without_start_is_safe(self):
        session = BrowserSession()
        await session.close()
        assert session.browser is None

    @pytest.mark.asyncio
    async def test_goto_uses_navigation_timeout(self):
        page = MagicMock()
        page.goto = AsyncMock()
        await started_session(page).goto("https://example.com")
        page.goto.assert_awaited_once_with(
            "https://example.com", wait_until="domcontentloaded", timeout=30000
        )

    @pytest.mark.asyncio
    async def test_goto_timeout_becomes_navigation_error(self):
        page = MagicMock()
        page.goto = AsyncMock(side_effect=PlaywrightTimeout("Timeout 30000ms exceeded"))
        with pytest.raises(NavigationError) as exc_info:
            await started_session(page).goto("https://example.com")
        assert exc_info.value.url == "https://example.com"

    @pytest.mark.asyncio
    async def test_screenshot_failure(self):
        page = MagicMock()
        page.screenshot = AsyncMock(side_effect=RuntimeError("target closed"))
        with pytest.raises(ScreenshotError):
            await started_session(page).screenshot()

    @pytest.mark.asyncio
    async def test_close_continues_after_failures(self):
        page = MagicMock()
        page.close = AsyncMock(side_effect=RuntimeError("already closed"))
        browser = MagicMock()
        browser.close = AsyncMock()
        session = started_session(page)
        session.browser = browser

        await session.close()

        page.close.assert_awaited_once()
        browser.close.assert_awaited_once()
        assert session.browser is None

    @pytest.mark.asyncio
    async def test_screenshot_uses_its_own_timeout(self):
        page = MagicMock()
        page.screenshot = AsyncMock(return_value=b"png")
        assert await started_session(page).screenshot() == b"png"
        page.screenshot.assert_awaited_once_with(full_page=False, timeout=5000)

    @pytest.mark.asyncio
    async def test_start_sets_default_action_timeout(self, monkeypatch):
        context = MagicMock()
        context.new_page = AsyncMock(return_value=MagicMock())
        launched = MagicMock()
        launched.new_context = AsyncMock(return_value=context)
        playwright = MagicMock()
        playwright.chromium.launch = AsyncMock(return_value=launched)
        manager = MagicMock()
        manager.start = AsyncMock(return_value=playwright)
        monkeypatch.setattr(browser_module, "async_playwright", lambda: manager)

        session = BrowserSession(BrowserConfig(action_timeout_ms=2000))
        await session.start()

        context.set_default_timeout.assert_called_once_with(2000)
        assert session.page is context.new_page.return_value

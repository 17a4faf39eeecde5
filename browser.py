"""Browser session for one run: launch, navigate, screenshot, close."""
from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
    TimeoutError as PlaywrightTimeout,
)

from config import BrowserConfig
from exceptions import BrowserError, BrowserNotStartedError, NavigationError, ScreenshotError


class BrowserSession:
    """Exclusive Playwright browser process and page for a single run."""

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or BrowserConfig()
        self.logger = logger or logging.getLogger("browser")

        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def page(self) -> Page:
        """The session's page; raises if the browser was never started."""
        if self._page is None:
            raise BrowserNotStartedError()
        return self._page

    async def start(self) -> Page:
        """Launch the configured engine and open one page."""
        try:
            self._playwright = await async_playwright().start()
            browser_launcher = getattr(self._playwright, self.config.browser)
            launch_options: dict[str, Any] = {"headless": self.config.headless}
            if self.config.browser == "chromium" and self.config.launch_args:
                launch_options["args"] = list(self.config.launch_args)

            self.browser = await browser_launcher.launch(**launch_options)
            context_options: dict[str, Any] = {
                "viewport": {
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                }
            }
            if self.config.user_agent:
                context_options["user_agent"] = self.config.user_agent
            self.context = await self.browser.new_context(**context_options)
            # Any page call without its own timeout gets the short action one.
            self.context.set_default_timeout(self.config.action_timeout_ms)
            self._page = await self.context.new_page()
        except Exception as e:
            raise BrowserError(f"Browser launch failed: {e}") from e

        self.logger.info(f"Browser started: {self.config.browser} (headless={self.config.headless})")
        return self._page

    async def goto(
        self,
        url: str,
        wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "domcontentloaded",
        timeout: Optional[float] = None,
    ) -> None:
        """Navigate to a URL."""
        timeout = timeout or self.config.navigation_timeout_ms
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightTimeout as e:
            raise NavigationError(f"Navigation timed out: {url}", url=url, timeout=timeout) from e
        except BrowserNotStartedError:
            raise
        except Exception as e:
            raise NavigationError(f"Navigation failed: {e}", url=url) from e

    async def screenshot(self, full_page: bool = False) -> bytes:
        """PNG of the current page."""
        try:
            return await self.page.screenshot(
                full_page=full_page, timeout=self.config.screenshot_timeout_ms
            )
        except BrowserNotStartedError:
            raise
        except Exception as e:
            raise ScreenshotError(f"Screenshot failed: {e}") from e

    async def close(self) -> None:
        """Release every resource; safe to call on a partially started session."""
        for name, closer in (
            ("page", self._page.close if self._page else None),
            ("context", self.context.close if self.context else None),
            ("browser", self.browser.close if self.browser else None),
            ("playwright", self._playwright.stop if self._playwright else None),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except Exception as e:
                self.logger.warning(f"Failed to close {name}: {e}")
        self._page = None
        self.context = None
        self.browser = None
        self._playwright = None
        self.logger.info("Browser closed")

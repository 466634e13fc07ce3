"""
Browser session management.

Keeps at most one pre-launched browser ready so a run does not pay the
browser startup cost. All methods must be called from the event loop
that owns the Playwright driver (the automation worker's loop).
"""

import asyncio
from typing import Optional

from playwright.async_api import async_playwright, Browser, Playwright

from .config import Config
from .logging_utils import get_logger, log_warning


class PlaywrightLauncher:
    """
    Owns the Playwright driver and launches Chromium instances.
    """

    def __init__(self, config: Config):
        self.config = config
        self.logger = get_logger('browser')
        self.playwright: Optional[Playwright] = None

    async def start(self):
        """Start the Playwright driver (idempotent)."""
        if self.playwright is None:
            self.playwright = await async_playwright().start()
            self.logger.debug("Playwright driver started")

    async def launch(self) -> Browser:
        """
        Launch a new Chromium instance.

        Returns:
            Browser
        """
        await self.start()
        browser = await self.playwright.chromium.launch(
            headless=self.config.headless,
            slow_mo=self.config.slow_mo,
        )
        self.logger.debug(f"Browser launched (headless={self.config.headless})")
        return browser

    async def stop(self):
        if self.playwright is not None:
            await self.playwright.stop()
            self.playwright = None
            self.logger.debug("Playwright driver stopped")


async def close_quietly(browser, logger=None):
    """Close a browser, ignoring errors."""
    if browser is None:
        return
    try:
        await browser.close()
    except Exception as e:
        if logger is not None:
            logger.debug(f"Ignoring error while closing browser: {e}")


class BrowserSessionManager:
    """
    Hands out browser instances, keeping one pre-launched when possible.
    """

    def __init__(self, launcher, replenish: bool = True):
        """
        Initialize the manager.

        Args:
            launcher: Object with async ``launch()`` and ``stop()``
            replenish: Whether acquire() starts preloading a replacement
        """
        self.launcher = launcher
        self.replenish = replenish
        self.logger = get_logger('browser')
        self._ready: Optional[Browser] = None
        self._pending: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def has_ready(self) -> bool:
        return self._ready is not None

    @property
    def is_preloading(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def _preload(self):
        try:
            self.logger.debug("Preloading browser...")
            browser = await self.launcher.launch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Lazy launch in acquire() takes over
            log_warning(f"Browser preload failed: {e}", self.logger)
            return

        if self._closed or self._ready is not None:
            await close_quietly(browser, self.logger)
            return

        self._ready = browser
        self.logger.debug("Browser preloaded")

    def preload(self) -> Optional[asyncio.Task]:
        """
        Launch a browser in the background if none is pending or ready.

        Returns:
            The pending task, or None when nothing was scheduled
        """
        if self._closed or self._ready is not None:
            return None
        if self.is_preloading:
            return self._pending

        self._pending = asyncio.ensure_future(self._preload())
        return self._pending

    async def acquire(self) -> Browser:
        """
        Get a browser: the preloaded one if available, else a new launch.

        Returns:
            Browser owned by the caller until release()
        """
        if self.is_preloading:
            await asyncio.shield(self._pending)

        if self._ready is not None:
            browser, self._ready = self._ready, None
            self.logger.debug("Using preloaded browser")
            if self.replenish:
                self.preload()
            return browser

        return await self.launcher.launch()

    async def release(self, browser):
        """Close a browser previously returned by acquire()."""
        await close_quietly(browser, self.logger)

    async def shutdown(self):
        """Cancel preloading, close the ready browser and stop the driver."""
        self._closed = True

        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
            try:
                await self._pending
            except (asyncio.CancelledError, Exception):
                pass
        self._pending = None

        ready, self._ready = self._ready, None
        await close_quietly(ready, self.logger)

        try:
            await self.launcher.stop()
        except Exception as e:
            self.logger.debug(f"Ignoring error while stopping launcher: {e}")

"""
Manages the shared Playwright browser used for page rendering.

This module provides the `PlaywrightManager` class, which owns the single
browser process shared by every render request. The browser is launched
lazily on first demand, concurrent first callers share one launch, and a
failed launch is forgotten so the next caller retries. Each request gets its
own isolated browser context from `isolated_context()`, which is always closed
when the request is done.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, TYPE_CHECKING

from playwright.async_api import async_playwright, Playwright, Browser, BrowserContext

from page_renderer.core.exceptions import BrowserShuttingDownError, ConfigurationError, RendererError
from page_renderer.core.logger import get_logger

if TYPE_CHECKING:
    from page_renderer.core.config import ConfigurationManager

logger = get_logger(__name__)


class PlaywrightManager:
    """
    Owner of the process-wide Playwright browser.

    Attributes:
        browser_type (str): The type of browser to launch (e.g., 'chromium').
        headless (bool): Whether the browser runs headless.
        launch_args (List[str]): Extra command-line arguments for the browser.
        playwright (Optional[Playwright]): The Playwright engine instance.
        browser (Optional[Browser]): The launched, shared browser instance.
    """
    DEFAULT_BROWSER_TYPE = 'chromium'
    DEFAULT_LAUNCH_ARGS = ['--no-sandbox', '--disable-setuid-sandbox']

    def __init__(self, config: Optional['ConfigurationManager'] = None):
        """
        Initializes the PlaywrightManager. No browser is started here.

        Args:
            config (Optional[ConfigurationManager]): Source of `renderer.browser_type`,
                `renderer.headless` and `renderer.launch_args`. Defaults are used if None.

        Raises:
            ConfigurationError: If an unsupported browser type is configured.
        """
        if config:
            self.browser_type = config.get('renderer.browser_type', self.DEFAULT_BROWSER_TYPE)
            self.headless = bool(config.get('renderer.headless', True))
            self.launch_args: List[str] = list(config.get('renderer.launch_args', self.DEFAULT_LAUNCH_ARGS))
        else:
            self.browser_type = self.DEFAULT_BROWSER_TYPE
            self.headless = True
            self.launch_args = list(self.DEFAULT_LAUNCH_ARGS)

        logger.info(f"PlaywrightManager configured to use browser: {self.browser_type}")

        if self.browser_type not in ['chromium', 'firefox', 'webkit']:
            logger.error(f"Unsupported browser type configured: {self.browser_type}")
            raise ConfigurationError(f"Unsupported browser type: {self.browser_type}. Must be 'chromium', 'firefox', or 'webkit'.")

        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self._launch_task: Optional['asyncio.Task[Browser]'] = None
        self._draining = False

    @property
    def is_draining(self) -> bool:
        return self._draining

    @property
    def is_connected(self) -> bool:
        return self.browser is not None and self.browser.is_connected()

    async def __aenter__(self) -> 'PlaywrightManager':
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def acquire(self) -> Browser:
        """
        Returns the shared browser, launching it if needed.

        Callers arriving while a launch is in flight await that same launch.
        If the launch fails, the failure is raised to every waiter and the
        in-flight launch is cleared so a later call starts a new one.

        Raises:
            BrowserShuttingDownError: If the manager is draining.
            RendererError: If Playwright fails to start or the browser fails to launch.
        """
        if self._draining:
            raise BrowserShuttingDownError()

        if self.browser is not None:
            if self.browser.is_connected():
                return self.browser
            logger.warning("Shared browser is no longer connected; launching a new one.")
            await self.close()

        task = self._launch_task
        if task is None:
            task = asyncio.ensure_future(self._launch())
            self._launch_task = task

        try:
            browser = await asyncio.shield(task)
        finally:
            if self._launch_task is task and task.done():
                self._launch_task = None

        if self._draining:
            raise BrowserShuttingDownError()
        return browser

    async def _launch(self) -> Browser:
        logger.debug(f"Starting Playwright and launching {self.browser_type} browser.")
        playwright: Optional[Playwright] = None
        try:
            playwright = await async_playwright().start()
            browser_launcher = getattr(playwright, self.browser_type)
            browser = await browser_launcher.launch(headless=self.headless, args=self.launch_args)
        except Exception as e:
            logger.error(f"Failed to initialize Playwright or launch browser {self.browser_type}: {e}", exc_info=True)
            if playwright:
                try:
                    await playwright.stop()
                except Exception as stop_e:
                    logger.error(f"Error stopping Playwright during launch cleanup: {stop_e}", exc_info=True)
            raise RendererError(f"Failed to initialize Playwright or launch browser {self.browser_type}: {e}")

        self.playwright = playwright
        self.browser = browser
        logger.info(f"{self.browser_type} browser launched successfully.")
        return browser

    @asynccontextmanager
    async def isolated_context(self, **context_options) -> AsyncIterator[BrowserContext]:
        """
        Yields a fresh browser context from the shared browser and closes it on exit.

        A failure while closing the context is logged and never replaces the
        outcome of the `async with` body.
        """
        browser = await self.acquire()
        context = await browser.new_context(**context_options)
        try:
            yield context
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.error(f"Error closing browser context: {e}", exc_info=True)

    async def warm_up(self) -> bool:
        """
        Launches the browser and opens/closes a blank context ahead of the first request.

        Returns:
            bool: True if the warm-up succeeded. Failures are logged, never raised.
        """
        try:
            async with self.isolated_context():
                pass
        except Exception as e:
            logger.warning(f"Browser warm-up failed; the first request will launch the browser instead: {e}")
            return False
        logger.info("Browser warm-up complete.")
        return True

    def begin_draining(self) -> None:
        """Rejects all future `acquire()` calls."""
        if not self._draining:
            logger.info("Browser manager draining; new browser work will be rejected.")
        self._draining = True

    async def close(self) -> bool:
        """
        Closes the browser and stops Playwright, clearing shared state.

        Unless draining, a later `acquire()` launches a new browser.

        Returns:
            bool: False if closing the browser or stopping Playwright raised.
        """
        clean = True
        pending = self._launch_task
        if pending is not None and not pending.done():
            try:
                await asyncio.shield(pending)
            except Exception:
                # The launch error has already been logged and raised to its waiters.
                pass
        self._launch_task = None

        browser, playwright = self.browser, self.playwright
        self.browser = None
        self.playwright = None

        if browser:
            try:
                await browser.close()
                logger.info("Browser closed successfully.")
            except Exception as e:
                clean = False
                logger.error(f"Error closing browser: {e}", exc_info=True)
        if playwright:
            try:
                await playwright.stop()
                logger.info("Playwright stopped successfully.")
            except Exception as e:
                clean = False
                logger.error(f"Error stopping Playwright: {e}", exc_info=True)
        return clean

    async def shutdown(self) -> bool:
        """Enters the draining state and closes the browser."""
        self.begin_draining()
        return await self.close()

"""Browser session management for critical CSS extraction."""

import os
import inspect
import logging
from typing import Any, Dict, Optional

from playwright.async_api import async_playwright

from .base import BaseManager
from ..core.options import CriticalOptions, DeviceOptions
from ..utils.common import ensure_directory
from ..utils.config import BROWSER_LAUNCH_ARGS, PAGE_ACQUIRE_RETRIES, PAGE_ACQUIRE_RETRY_DELAY
from ..utils.error import (
    BrowserError, ConfigurationError, FileOperationError, NavigationError, PageAcquisitionError,
)
from ..utils.file import safe_read_file
from ..utils.path import default_screenshot_name, is_local_file, resolve_local_path
from ..utils.retry import retry_async

logger = logging.getLogger(__name__)

# Collects the text of every readable stylesheet of the document
COLLECT_STYLESHEETS_SCRIPT = """
() => [...document.styleSheets]
    .map((styleSheet) => {
        try {
            return [...styleSheet.cssRules].map((rule) => rule.cssText).join('');
        } catch (e) {
            console.log('Access to stylesheet ' + styleSheet.href + ' is denied. Ignoring...');
            return '';
        }
    })
    .filter(Boolean)
    .join('\\n')
"""


class BrowserManager(BaseManager):
    """Own one Playwright browser and hand out configured pages.

    Every page lives in its own browser context, which carries the device
    emulation. A browser passed in through the options is reused and left
    open on ``close``.
    """

    def __init__(self, options: CriticalOptions,
                 max_retries: int = PAGE_ACQUIRE_RETRIES,
                 retry_delay: float = PAGE_ACQUIRE_RETRY_DELAY):
        """Initialize browser manager.

        Args:
            options: Run options
            max_retries: Page acquisition retries before giving up
            retry_delay: Initial delay between acquisition attempts in seconds
        """
        super().__init__()
        self.options = options
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self._playwright = None
        self.browser = None
        self._owns_browser = False
        self.device: Optional[DeviceOptions] = None

        self.stats = {
            'pages_opened': 0,
            'pages_closed': 0,
            'acquire_failures': 0,
            'navigations': 0,
            'navigation_failures': 0,
            'blocked_requests': 0,
            'screenshots': 0,
        }

    @property
    def is_started(self) -> bool:
        return self.browser is not None

    async def start(self) -> None:
        """Launch the browser or adopt the one from the options.

        Raises:
            ConfigurationError: If the device name is unknown
            BrowserError: If the browser cannot be launched
        """
        if self.is_started:
            return

        playwright_options = self.options.playwright
        device = self.options.device

        try:
            if playwright_options.browser is None or isinstance(device, str):
                self._playwright = await async_playwright().start()

            if playwright_options.browser is not None:
                self.log_debug('Reusing provided browser')
                self.browser = playwright_options.browser
                self._owns_browser = False
            else:
                browser_type = getattr(self._playwright, playwright_options.browser_type, None)
                if browser_type is None:
                    raise ConfigurationError(
                        f"Unknown browser type: {playwright_options.browser_type}"
                    )
                self.browser = await browser_type.launch(
                    headless=playwright_options.headless,
                    executable_path=playwright_options.chrome_path,
                    args=BROWSER_LAUNCH_ARGS,
                )
                self._owns_browser = True
                self.log_info(f"Launched {playwright_options.browser_type} browser")

            self.device = self.resolve_device(device)
        except ConfigurationError:
            await self.close()
            raise
        except Exception as e:
            await self.close()
            self.handle_error(e, "Browser could not be launched", BrowserError)

    def resolve_device(self, device) -> DeviceOptions:
        """Turn a device name into emulation settings.

        Raises:
            ConfigurationError: If the name is not a known Playwright device
        """
        if not isinstance(device, str):
            return device

        descriptor = self._playwright.devices.get(device) if self._playwright else None
        if descriptor is None:
            raise ConfigurationError(
                f"Unknown device {device!r}, use a Playwright device name or a dictionary"
            )

        viewport = descriptor.get('viewport', {})
        return DeviceOptions(
            width=viewport.get('width', DeviceOptions.width),
            height=viewport.get('height', DeviceOptions.height),
            scale_factor=descriptor.get('device_scale_factor', DeviceOptions.scale_factor),
            is_mobile=descriptor.get('is_mobile', DeviceOptions.is_mobile),
            has_touch=descriptor.get('has_touch', DeviceOptions.has_touch),
        )

    def context_options(self) -> Dict[str, Any]:
        """Keyword arguments of ``browser.new_context`` for one page."""
        device = self.device or self.resolve_device(self.options.device)
        width, height = device.width, device.height
        if device.is_landscape:
            width, height = height, width

        return {
            'viewport': {'width': width, 'height': height},
            'device_scale_factor': device.scale_factor,
            'is_mobile': device.is_mobile,
            'has_touch': device.has_touch,
            'user_agent': self.options.browser.user_agent,
            'java_script_enabled': self.options.browser.is_js_enabled,
        }

    async def _open_page(self):
        context = await self.browser.new_context(**self.context_options())
        try:
            return await context.new_page()
        except Exception:
            await context.close()
            raise

    async def acquire_page(self):
        """Open a fresh page, retrying a bounded number of times.

        Raises:
            PageAcquisitionError: If every attempt failed
        """
        if not self.is_started:
            raise PageAcquisitionError("Browser is not started")

        try:
            page = await retry_async(
                self._open_page,
                max_retries=self.max_retries,
                base_delay=self.retry_delay,
                jitter=False,
            )
        except Exception as e:
            self.stats['acquire_failures'] += 1
            raise PageAcquisitionError(
                f"Could not open a page after {self.max_retries} retries: {e}"
            ) from e

        self.stats['pages_opened'] += 1
        return page

    async def configure_page(self, page) -> None:
        """Install request blocking, cache settings and console forwarding."""
        block_requests = list(self.options.block_requests)

        if block_requests:
            async def block(route):
                url = route.request.url
                if any(blocked in url for blocked in block_requests):
                    self.stats['blocked_requests'] += 1
                    await route.abort()
                else:
                    await route.continue_()

            await page.route('**/*', block)

        if not self.options.browser.is_cache_enabled and self.options.playwright.browser_type == 'chromium':
            session = await page.context.new_cdp_session(page)
            await session.send('Network.setCacheDisabled', {'cacheDisabled': True})

        if self.options.print_browser_console:
            page.on('console', lambda message: logger.info(f"Browser console: {message.text}"))
            page.on('pageerror', lambda error: logger.info(f"Page error: {error}"))

    async def navigate(self, page, url: str) -> None:
        """Load a local html file or a network url into the page.

        Raises:
            NavigationError: If the target cannot be loaded within the timeout
        """
        self.stats['navigations'] += 1
        try:
            if is_local_file(url):
                html = await safe_read_file(resolve_local_path(url))
                await page.set_content(html, timeout=self.options.timeout, wait_until='load')
            else:
                await page.goto(url, timeout=self.options.timeout, wait_until='networkidle')
        except FileOperationError as e:
            self.stats['navigation_failures'] += 1
            raise NavigationError(str(e)) from e
        except Exception as e:
            self.stats['navigation_failures'] += 1
            raise NavigationError(f"Navigation to {url} failed: {e}") from e

    async def screenshot_name(self, url: str) -> str:
        generator = self.options.screenshot_name_generator
        if generator is None:
            return default_screenshot_name(url)
        name = generator(url)
        if inspect.isawaitable(name):
            name = await name
        return str(name)

    async def take_screenshot(self, page, url: str) -> str:
        """Save a png of the page into the screenshot directory.

        Returns:
            Path of the screenshot
        """
        ensure_directory(self.options.screenshot_path)
        path = os.path.join(self.options.screenshot_path, f"{await self.screenshot_name(url)}.png")
        await page.screenshot(path=path, type='png')
        self.stats['screenshots'] += 1
        self.log_debug(f"Screenshot of {url} saved to {path}")
        return path

    async def close_page(self, page) -> None:
        """Close a page and its context, ignoring pages that are already gone."""
        if page is None:
            return
        try:
            await page.context.close()
            self.stats['pages_closed'] += 1
        except Exception as e:
            self.log_debug(f"Error while closing page, already closed? {e}")

    async def extract_css(self, url: str) -> str:
        """Collect the css of every stylesheet a page loads.

        Raises:
            NavigationError: If the page cannot be loaded
            BrowserError: If the stylesheets cannot be read
        """
        page = await self.acquire_page()
        try:
            self.log_info(f"Collecting css from {url}")
            await self.navigate(page, url)
            try:
                return await page.evaluate(COLLECT_STYLESHEETS_SCRIPT) or ''
            except Exception as e:
                raise BrowserError(f"Could not read stylesheets of {url}: {e}") from e
        finally:
            await self.close_page(page)

    async def close(self) -> None:
        """Close the browser if it was launched here and stop Playwright."""
        if self.browser is not None and self._owns_browser:
            try:
                await self.browser.close()
            except Exception as e:
                self.log_debug(f"Error while closing browser, already closed? {e}")
        self.browser = None

        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    def get_stats(self) -> Dict[str, Any]:
        """Get browser usage statistics."""
        return dict(self.stats)

# Exported classes
__all__ = ['BrowserManager']

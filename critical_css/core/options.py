"""Run options: defaults, merging of user options and validation."""

import copy
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Optional, Union

from typing_extensions import TypedDict

from ..utils.config import (
    BLOCK_REQUESTS, BROWSER_CACHE_ENABLED, BROWSER_CONCURRENT_TABS, BROWSER_HEADLESS,
    BROWSER_JS_ENABLED, BROWSER_USER_AGENT, DEVICE_HAS_TOUCH, DEVICE_HEIGHT,
    DEVICE_IS_LANDSCAPE, DEVICE_IS_MOBILE, DEVICE_SCALE_FACTOR, DEVICE_WIDTH,
    DROP_KEYFRAMES, MINIFY, OUTPUT_REMAINING_CSS, PAGE_LOAD_TIMEOUT,
    PAGE_RENDER_TIMEOUT, PAGE_SCREENSHOT, PRINT_BROWSER_CONSOLE, SCREENSHOT_PATH,
    TIMEOUT,
)
from ..utils.error import ConfigurationError

logger = logging.getLogger(__name__)


class BrowserOptionsDict(TypedDict, total=False):
    user_agent: str
    is_cache_enabled: bool
    is_js_enabled: bool
    concurrent_tabs: int


class DeviceOptionsDict(TypedDict, total=False):
    width: int
    height: int
    scale_factor: float
    is_mobile: bool
    has_touch: bool
    is_landscape: bool


class PlaywrightOptionsDict(TypedDict, total=False):
    browser: Any
    browser_type: str
    chrome_path: Optional[str]
    headless: bool


class OptionsDict(TypedDict, total=False):
    css: Optional[str]
    urls: List[str]
    timeout: int
    page_load_timeout: int
    page_render_timeout: int
    output_remaining_css: bool
    browser: BrowserOptionsDict
    device: Union[str, DeviceOptionsDict]
    playwright: PlaywrightOptionsDict
    print_browser_console: bool
    drop_keyframes: bool
    take_screenshots: bool
    screenshot_path: str
    screenshot_name_generator: Optional[Callable]
    keep_selectors: List[str]
    remove_selectors: List[str]
    block_requests: List[str]
    minify: bool


# Alternative option names, mapped to their canonical snake_case name
OPTION_ALIASES = {
    'pageLoadTimeout': 'page_load_timeout',
    'pageRenderTimeout': 'page_render_timeout',
    'outputRemainingCss': 'output_remaining_css',
    'printBrowserConsole': 'print_browser_console',
    'dropKeyframes': 'drop_keyframes',
    'takeScreenshots': 'take_screenshots',
    'screenshot': 'take_screenshots',
    'screenshotPath': 'screenshot_path',
    'screenshotNameGenerator': 'screenshot_name_generator',
    'keepSelectors': 'keep_selectors',
    'removeSelectors': 'remove_selectors',
    'blockRequests': 'block_requests',
    'viewport': 'device',
    'puppeteer': 'playwright',
    # browser
    'userAgent': 'user_agent',
    'isCacheEnabled': 'is_cache_enabled',
    'isJsEnabled': 'is_js_enabled',
    'concurrentTabs': 'concurrent_tabs',
    # device
    'scaleFactor': 'scale_factor',
    'isMobile': 'is_mobile',
    'hasTouch': 'has_touch',
    'isLandscape': 'is_landscape',
    # playwright
    'browserType': 'browser_type',
    'chromePath': 'chrome_path',
}


@dataclass
class BrowserOptions:
    user_agent: str = BROWSER_USER_AGENT
    is_cache_enabled: bool = BROWSER_CACHE_ENABLED
    is_js_enabled: bool = BROWSER_JS_ENABLED
    concurrent_tabs: int = BROWSER_CONCURRENT_TABS


@dataclass
class DeviceOptions:
    width: int = DEVICE_WIDTH
    height: int = DEVICE_HEIGHT
    scale_factor: float = DEVICE_SCALE_FACTOR
    is_mobile: bool = DEVICE_IS_MOBILE
    has_touch: bool = DEVICE_HAS_TOUCH
    is_landscape: bool = DEVICE_IS_LANDSCAPE


@dataclass
class PlaywrightOptions:
    """Browser engine settings.

    Attributes:
        browser: Already running Playwright browser to reuse; it is not closed
            at the end of the run
        browser_type: Playwright browser type to launch
        chrome_path: Executable to launch instead of the bundled browser
        headless: Launch without a window
    """

    browser: Any = None
    browser_type: str = 'chromium'
    chrome_path: Optional[str] = None
    headless: bool = BROWSER_HEADLESS


@dataclass
class CriticalOptions:
    """Validated options of one extraction run.

    ``device`` is either a ``DeviceOptions`` or the name of a Playwright
    device descriptor, resolved when the browser starts.
    """

    urls: List[str] = field(default_factory=list)
    css: Optional[str] = None
    timeout: int = TIMEOUT
    page_load_timeout: int = PAGE_LOAD_TIMEOUT
    page_render_timeout: int = PAGE_RENDER_TIMEOUT
    output_remaining_css: bool = OUTPUT_REMAINING_CSS
    browser: BrowserOptions = field(default_factory=BrowserOptions)
    device: Union[str, DeviceOptions] = field(default_factory=DeviceOptions)
    playwright: PlaywrightOptions = field(default_factory=PlaywrightOptions)
    print_browser_console: bool = PRINT_BROWSER_CONSOLE
    drop_keyframes: bool = DROP_KEYFRAMES
    take_screenshots: bool = PAGE_SCREENSHOT
    screenshot_path: str = SCREENSHOT_PATH
    screenshot_name_generator: Optional[Callable] = None
    keep_selectors: List[str] = field(default_factory=list)
    remove_selectors: List[str] = field(default_factory=list)
    block_requests: List[str] = field(default_factory=lambda: list(BLOCK_REQUESTS))
    minify: bool = MINIFY

    @property
    def concurrency(self) -> int:
        return self.browser.concurrent_tabs

    @classmethod
    def from_dict(cls, options: Optional[Dict[str, Any]] = None) -> 'CriticalOptions':
        """Build validated options from a user dictionary.

        Nested dictionaries are merged key by key over the defaults; lists
        and other values replace the default.

        Args:
            options: User options, snake_case or camelCase keys

        Returns:
            Validated options

        Raises:
            ConfigurationError: If any option is invalid or unknown
        """
        merged = deep_merge(default_options(), normalize_keys(options or {}))

        unknown = sorted(set(merged) - {f.name for f in fields(cls)} - {'concurrency'})
        if unknown:
            raise ConfigurationError(f"Unknown options: {', '.join(unknown)}")

        # Shortcut for browser.concurrent_tabs
        if 'concurrency' in merged:
            concurrency = merged.pop('concurrency')
            if isinstance(merged['browser'], dict):
                merged['browser']['concurrent_tabs'] = concurrency

        errors = validate_options(merged)
        if errors:
            for message in errors:
                logger.error(message)
            raise ConfigurationError('Invalid options: ' + '; '.join(errors))

        device = merged['device']
        try:
            return cls(**{
                **merged,
                'browser': BrowserOptions(**merged['browser']),
                'device': device if isinstance(device, str) else DeviceOptions(**device),
                'playwright': PlaywrightOptions(**merged['playwright']),
            })
        except TypeError as e:
            raise ConfigurationError(f"Invalid options: {e}") from e


def default_options() -> Dict[str, Any]:
    """Defaults as a plain nested dictionary."""
    return {
        'urls': [],
        'css': None,
        'timeout': TIMEOUT,
        'page_load_timeout': PAGE_LOAD_TIMEOUT,
        'page_render_timeout': PAGE_RENDER_TIMEOUT,
        'output_remaining_css': OUTPUT_REMAINING_CSS,
        'browser': dict(BrowserOptions().__dict__),
        'device': dict(DeviceOptions().__dict__),
        'playwright': dict(PlaywrightOptions().__dict__),
        'print_browser_console': PRINT_BROWSER_CONSOLE,
        'drop_keyframes': DROP_KEYFRAMES,
        'take_screenshots': PAGE_SCREENSHOT,
        'screenshot_path': SCREENSHOT_PATH,
        'screenshot_name_generator': None,
        'keep_selectors': [],
        'remove_selectors': [],
        'block_requests': list(BLOCK_REQUESTS),
        'minify': MINIFY,
    }


def normalize_keys(options: Dict[str, Any]) -> Dict[str, Any]:
    """Rename alias keys at every level to their snake_case name."""
    normalized = {}
    for key, value in options.items():
        if isinstance(value, dict):
            value = normalize_keys(value)
        normalized[OPTION_ALIASES.get(key, key)] = value
    return normalized


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, recursing into plain dicts."""
    result = copy.copy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def validate_options(options: Dict[str, Any]) -> List[str]:
    """Collect every problem of a merged option dictionary.

    Returns:
        Error messages, empty if the options are valid
    """
    errors = []

    urls = options.get('urls')
    if not isinstance(urls, list):
        errors.append('urls must be a list')
    elif not urls:
        errors.append('No urls to check, provide at least one url')
    elif not all(isinstance(url, str) and url for url in urls):
        errors.append('urls must be non-empty strings')

    css = options.get('css')
    if css is not None and not isinstance(css, str):
        errors.append(f"css not valid, expected string got {type(css).__name__}")

    if not isinstance(options.get('screenshot_path'), str):
        errors.append('screenshot_path needs to be a string')

    generator = options.get('screenshot_name_generator')
    if generator is not None and not callable(generator):
        errors.append('screenshot_name_generator must be callable')

    for name in ('browser', 'playwright'):
        if not isinstance(options.get(name), dict):
            errors.append(f"{name} must be a dictionary")

    browser = options.get('browser')
    concurrent_tabs = browser.get('concurrent_tabs') if isinstance(browser, dict) else None
    if isinstance(browser, dict) and (not isinstance(concurrent_tabs, int) or concurrent_tabs <= 0):
        errors.append('concurrent_tabs must be a positive integer')

    for name in ('timeout', 'page_load_timeout', 'page_render_timeout'):
        value = options.get(name)
        if not isinstance(value, (int, float)) or value < 0:
            errors.append(f"{name} must be a non-negative number")

    device = options.get('device')
    if not isinstance(device, (str, dict)):
        errors.append('device must be a device name or a dictionary')
    elif isinstance(device, dict):
        for name in ('width', 'height'):
            value = device.get(name)
            if not isinstance(value, int) or value <= 0:
                errors.append(f"device.{name} must be a positive integer")

    for name in ('keep_selectors', 'remove_selectors', 'block_requests'):
        if not isinstance(options.get(name), list):
            errors.append(f"{name} must be a list")

    return errors


# Exported classes and functions
__all__ = [
    'OptionsDict',
    'BrowserOptions',
    'DeviceOptions',
    'PlaywrightOptions',
    'CriticalOptions',
    'default_options',
    'normalize_keys',
    'deep_merge',
    'validate_options',
]

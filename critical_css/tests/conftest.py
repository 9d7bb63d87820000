"""Pytest configuration for critical CSS extraction tests."""

import asyncio
import pytest
import logging

from ..core.ast import Declaration, RuleNode
from ..core.options import CriticalOptions
from ..core.parser import CssTransformer
from ..core.probe import ABOVE_FOLD_SCRIPT, WATCHDOG_SCRIPT
from ..utils.error import NavigationError, PageAcquisitionError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def style(selectors, **declarations):
    """Build a style rule, ``style(['.a'], color='red')``."""
    return RuleNode.style_rule(
        selectors,
        [Declaration(name.replace('_', '-'), value) for name, value in declarations.items()],
    )


class FakePage:
    """In-memory page answering the probe scripts.

    Args:
        visible: Cleaned selectors that match an element above the fold
        invalid: Selectors the page cannot query
        fail_evaluate: Raise on every evaluation
    """

    def __init__(self, visible=(), invalid=(), fail_evaluate=False):
        self.visible = set(visible)
        self.invalid = set(invalid)
        self.fail_evaluate = fail_evaluate
        self.scripts = []
        self.watchdog_timeout = None
        self.closed = False

    async def evaluate(self, script, arg=None):
        self.scripts.append(script)
        if self.fail_evaluate:
            raise RuntimeError("Execution context was destroyed")
        if script == WATCHDOG_SCRIPT:
            self.watchdog_timeout = arg
            return True
        if script == ABOVE_FOLD_SCRIPT:
            return [s in self.visible and s not in self.invalid for s in arg]
        raise AssertionError(f"Unexpected script {script!r}")


class FakeBrowserManager:
    """Browser manager double driving ``CriticalExtractor`` without a browser.

    Args:
        visible: Url -> selectors above the fold on that page
        failing: Urls whose navigation fails
        acquire_failing: Urls for which no page can be opened
        css: Css returned by ``extract_css``
        delay: Seconds every navigation takes
    """

    def __init__(self, visible=None, failing=(), acquire_failing=(), css='', delay=0):
        self.visible = visible or {}
        self.failing = set(failing)
        self.acquire_failing = set(acquire_failing)
        self.css = css
        self.delay = delay
        self.started = False
        self.closed = False
        self.open_pages = 0
        self.peak_open_pages = 0
        self.closed_pages = []
        self.screenshots = []
        self._acquired = 0
        self._urls = []

    async def start(self):
        self.started = True

    async def close(self):
        self.closed = True

    async def acquire_page(self):
        self._acquired += 1
        self.open_pages += 1
        self.peak_open_pages = max(self.peak_open_pages, self.open_pages)
        return FakePage()

    async def configure_page(self, page):
        pass

    async def navigate(self, page, url):
        if url in self.acquire_failing:
            raise PageAcquisitionError(f"Could not open a page for {url}")
        await asyncio.sleep(self.delay)
        if url in self.failing:
            raise NavigationError(f"Navigation to {url} failed")
        page.visible = set(self.visible.get(url, ()))

    async def take_screenshot(self, page, url):
        self.screenshots.append(url)
        return f"{url}.png"

    async def close_page(self, page):
        if page is not None:
            self.open_pages -= 1
            page.closed = True
            self.closed_pages.append(page)

    async def extract_css(self, url):
        self._urls.append(url)
        return self.css

    def get_stats(self):
        return {'pages_opened': self._acquired}


@pytest.fixture
def transformer():
    """Return a css transformer."""
    return CssTransformer()


@pytest.fixture
def make_options():
    """Return a factory for options that never wait."""
    def factory(**overrides):
        options = {
            'urls': ['https://example.com'],
            'css': '.a{color:red} .b{color:blue}',
            'page_render_timeout': 0,
        }
        options.update(overrides)
        return CriticalOptions.from_dict(options)
    return factory


@pytest.fixture(scope='session')
def sample_css():
    """Return sample CSS content for testing."""
    return """
    body {
        color: #333;
        margin: 0;
    }

    .header {
        background-color: #f5f5f5;
        padding: 10px;
    }

    .footer {
        padding: 20px;
    }

    @media (max-width: 768px) {
        .header {
            padding: 5px;
        }

        .footer {
            display: none;
        }
    }
    """

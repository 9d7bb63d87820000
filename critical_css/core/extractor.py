"""Critical CSS extraction across many pages."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from .ast import RuleNode
from .options import CriticalOptions
from .parser import CssTransformer
from .partitioner import AstPartitioner
from .postprocess import finalize_css
from .probe import PageCriticalityProbe
from .rule_map import assemble, build_rule_map, subtract
from ..managers.browser import BrowserManager
from ..utils.common import is_css_path
from ..utils.concurrency import TaskPool
from ..utils.error import AllTasksFailedError, CssParseError
from ..utils.file import safe_read_file

logger = logging.getLogger(__name__)


class PageTaskState(str, Enum):
    """Progress of one url evaluation."""

    PENDING = 'pending'
    PAGE_ACQUIRED = 'page_acquired'
    PAGE_CONFIGURED = 'page_configured'
    NAVIGATED = 'navigated'
    PROBED = 'probed'
    CLOSED = 'closed'
    FAILED = 'failed'


@dataclass
class PageResult:
    """Outcome of one url: either both trees or an error."""

    url: str
    state: PageTaskState = PageTaskState.PENDING
    critical_ast: Optional[RuleNode] = None
    rest_ast: Optional[RuleNode] = None
    error: Optional[Exception] = None
    screenshot: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.critical_ast is not None

    def fail(self, error: Exception) -> 'PageResult':
        self.state = PageTaskState.FAILED
        self.error = error
        self.critical_ast = None
        self.rest_ast = None
        return self


@dataclass
class CriticalResult:
    """Merged output of a run.

    Attributes:
        critical: Critical css text
        rest: Remaining css text, empty if remaining css output is disabled
        errors: Results of the urls that failed
        results: Results of every url, in url order
    """

    critical: str
    rest: str
    errors: List[PageResult] = field(default_factory=list)
    results: List[PageResult] = field(default_factory=list)


class CriticalExtractor:
    """Extract critical and remaining css of a stylesheet for a set of urls.

    Args:
        options: Run options, a dictionary is validated first
        browser_manager: Browser to use; one is created, started and closed
            by ``run`` if omitted
        transformer: CSS parser and printer
        on_result: Called with every finished page result
    """

    def __init__(self, options: Union[CriticalOptions, Dict[str, Any]],
                 browser_manager: Optional[BrowserManager] = None,
                 transformer: Optional[CssTransformer] = None,
                 on_result: Optional[Callable[[PageResult], None]] = None):
        if not isinstance(options, CriticalOptions):
            options = CriticalOptions.from_dict(options)
        self.options = options
        self._owns_browser_manager = browser_manager is None
        self.browser_manager = browser_manager or BrowserManager(options)
        self.transformer = transformer or CssTransformer()
        self.partitioner = AstPartitioner(drop_keyframes=options.drop_keyframes)
        self.probe = PageCriticalityProbe(
            load_timeout=options.page_load_timeout,
            keep_selectors=options.keep_selectors,
            remove_selectors=options.remove_selectors,
        )
        self.pool = TaskPool(max_workers=options.concurrency)
        self.on_result = on_result

    async def run(self) -> CriticalResult:
        """Run the whole extraction.

        Returns:
            Merged result with the list of failed urls

        Raises:
            CssParseError: If the source css is empty or cannot be parsed
            BrowserError: If the browser cannot be started
            AllTasksFailedError: If no url could be evaluated
        """
        logger.info(f"Extracting critical css for {len(self.options.urls)} urls")
        await self.browser_manager.start()
        try:
            css_content = await self.get_css_content()
            source_ast = self.transformer.parse(css_content)
            results = await self.evaluate_urls(source_ast)
            result = self.merge_results(results)
        finally:
            if self._owns_browser_manager:
                await self.browser_manager.close()

        if result.errors:
            logger.warning(f"{len(result.errors)} of {len(results)} urls had errors")
            for failed in result.errors:
                logger.error(f"{failed.url}: {failed.error}")
        return result

    async def get_css_content(self) -> str:
        """Source css: literal text, a ``.css`` file, or collected from the first url.

        Raises:
            CssParseError: If no css content is available
        """
        css = self.options.css
        if css is None:
            css_content = await self.browser_manager.extract_css(self.options.urls[0])
            origin = self.options.urls[0]
        elif is_css_path(css):
            css_content = await safe_read_file(css)
            origin = css
        else:
            css_content = css
            origin = 'css option'

        if not css_content or not css_content.strip():
            raise CssParseError(f"No css content in {origin}")
        logger.debug(f"Source css of {len(css_content)} characters from {origin}")
        return css_content

    async def evaluate_url(self, url: str, source_ast: RuleNode) -> PageResult:
        """Evaluate one url and partition the source tree by its critical selectors.

        Errors end only this url; the page is closed in any case.
        """
        result = PageResult(url)
        page = None
        try:
            page = await self.browser_manager.acquire_page()
            result.state = PageTaskState.PAGE_ACQUIRED

            await self.browser_manager.configure_page(page)
            result.state = PageTaskState.PAGE_CONFIGURED

            await self.browser_manager.navigate(page, url)
            result.state = PageTaskState.NAVIGATED

            if self.options.page_render_timeout:
                await asyncio.sleep(self.options.page_render_timeout / 1000)
            if self.options.take_screenshots:
                result.screenshot = await self.browser_manager.take_screenshot(page, url)

            selector_map = await self.probe.evaluate(page, source_ast)
            result.state = PageTaskState.PROBED

            result.critical_ast, result.rest_ast = self.partitioner.partition(source_ast, selector_map)
        except Exception as e:
            logger.error(f"Evaluation of {url} failed in state {result.state.value}: {e}")
            result.fail(e)
        finally:
            await self.browser_manager.close_page(page)

        if result.error is None:
            result.state = PageTaskState.CLOSED
            logger.debug(f"Evaluated {url}")
        if self.on_result is not None:
            self.on_result(result)
        return result

    async def evaluate_urls(self, source_ast: RuleNode) -> List[PageResult]:
        """Evaluate every url with bounded concurrency."""
        async def evaluate(url: str) -> PageResult:
            return await self.evaluate_url(url, source_ast)

        outcomes = await self.pool.map(evaluate, self.options.urls)

        results = []
        for url, outcome in zip(self.options.urls, outcomes):
            if isinstance(outcome, BaseException):
                outcome = PageResult(url).fail(outcome)
            results.append(outcome)
        return results

    def merge_results(self, results: List[PageResult]) -> CriticalResult:
        """Fold page results into the final css texts.

        Raises:
            AllTasksFailedError: If no url produced a critical tree
        """
        succeeded = [r for r in results if r.ok]
        failed = [r for r in results if not r.ok]

        if not succeeded:
            raise AllTasksFailedError(f"All {len(results)} urls failed", errors=failed)

        critical_map = build_rule_map(r.critical_ast for r in succeeded)
        critical = finalize_css(
            self.transformer, assemble(critical_map),
            minify=self.options.minify, critical=True,
        )

        rest = ''
        if self.options.output_remaining_css:
            rest_map = subtract(build_rule_map(r.rest_ast for r in succeeded), critical_map)
            rest = finalize_css(
                self.transformer, assemble(rest_map),
                minify=self.options.minify, critical=False,
            )

        logger.info(
            f"Critical css: {len(critical)} characters from {len(succeeded)} urls, "
            f"remaining css: {len(rest)} characters"
        )
        return CriticalResult(critical=critical, rest=rest, errors=failed, results=results)


async def extract_critical_css(options: Union[CriticalOptions, Dict[str, Any]]) -> CriticalResult:
    """Extract critical css with a freshly started browser.

    Args:
        options: Run options

    Returns:
        Merged result
    """
    return await CriticalExtractor(options).run()


# Exported classes and functions
__all__ = [
    'PageTaskState',
    'PageResult',
    'CriticalResult',
    'CriticalExtractor',
    'extract_critical_css',
]

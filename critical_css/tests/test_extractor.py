"""Tests for the multi-page extraction run."""

import pytest

from ..core.extractor import CriticalExtractor, PageResult, PageTaskState, extract_critical_css
from ..utils.error import AllTasksFailedError, CssParseError, NavigationError
from .conftest import FakeBrowserManager


def extractor_for(options, **manager_kwargs):
    manager = FakeBrowserManager(**manager_kwargs)
    return CriticalExtractor(options, browser_manager=manager), manager


class TestScenarios:
    """End to end scenarios with a fake browser."""

    @pytest.mark.asyncio
    async def test_above_fold_rule_is_critical(self, make_options):
        extractor, _ = extractor_for(make_options(), visible={'https://example.com': {'.a'}})
        result = await extractor.run()
        assert result.critical == '.a{color:red}'
        assert result.rest == '.b{color:blue}'
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_media_rule(self, make_options):
        options = make_options(css='@media (min-width:600px){.c{color:green}}')
        extractor, _ = extractor_for(options, visible={'https://example.com': {'.c'}})
        result = await extractor.run()
        assert result.critical.startswith('@media')
        assert result.critical.count('@media') == 1
        assert result.critical.endswith('{.c{color:green}}')
        assert result.rest == ''

    @pytest.mark.asyncio
    async def test_supports_rules_split(self, make_options):
        options = make_options(css='.a{color:red} @supports (display: grid){.g{display:grid} .h{color:blue}}')
        extractor, _ = extractor_for(options, visible={'https://example.com': {'.a', '.g'}})
        result = await extractor.run()
        assert result.critical.startswith('.a{color:red}@supports')
        assert result.critical.endswith('{.g{display:grid}}')
        assert '.h{' not in result.critical
        assert result.rest.startswith('@supports')
        assert result.rest.endswith('{.h{color:blue}}')
        assert '.g{' not in result.rest

    @pytest.mark.asyncio
    async def test_supports_in_media_rules_split(self, make_options):
        options = make_options(
            css='@media print{.p{color:red} @supports (display: grid){.g{display:grid} .h{color:blue}}}'
        )
        extractor, _ = extractor_for(options, visible={'https://example.com': {'.g'}})
        result = await extractor.run()
        assert '.g{display:grid}' in result.critical
        assert '.p{' not in result.critical and '.h{' not in result.critical
        assert '.p{color:red}' in result.rest
        assert '.h{color:blue}' in result.rest
        assert '.g{' not in result.rest

    @pytest.mark.asyncio
    async def test_two_pages_dedupe(self, make_options):
        urls = ['https://example.com/1', 'https://example.com/2']
        extractor, _ = extractor_for(
            make_options(urls=urls),
            visible={url: {'.a'} for url in urls},
        )
        result = await extractor.run()
        assert result.critical == '.a{color:red}'

    @pytest.mark.asyncio
    async def test_two_pages_union(self, make_options):
        urls = ['https://example.com/1', 'https://example.com/2']
        extractor, _ = extractor_for(
            make_options(urls=urls),
            visible={urls[0]: {'.a'}, urls[1]: {'.b'}},
        )
        result = await extractor.run()
        assert result.critical == '.a{color:red}.b{color:blue}'
        assert result.rest == ''

    @pytest.mark.asyncio
    async def test_keep_selector_wildcard(self, make_options):
        options = make_options(css='.always-hidden{color:red} .b{color:blue}', keep_selectors=['.always-%'])
        extractor, _ = extractor_for(options)
        result = await extractor.run()
        assert result.critical == '.always-hidden{color:red}'

    @pytest.mark.asyncio
    async def test_remove_selector(self, make_options):
        options = make_options(remove_selectors=['.a'])
        extractor, _ = extractor_for(options, visible={'https://example.com': {'.a', '.b'}})
        result = await extractor.run()
        assert result.critical == '.b{color:blue}'
        assert result.rest == '.a{color:red}'

    @pytest.mark.asyncio
    async def test_pure_pseudo_retained(self, make_options):
        options = make_options(css='::selection{color:red} .b{color:blue}')
        extractor, _ = extractor_for(options)
        result = await extractor.run()
        assert result.critical == '::selection{color:red}'

    @pytest.mark.asyncio
    async def test_no_remaining_css(self, make_options):
        extractor, _ = extractor_for(
            make_options(output_remaining_css=False),
            visible={'https://example.com': {'.a'}},
        )
        result = await extractor.run()
        assert result.rest == ''

    @pytest.mark.asyncio
    async def test_readable_output(self, make_options):
        extractor, _ = extractor_for(
            make_options(minify=False),
            visible={'https://example.com': {'.a'}},
        )
        result = await extractor.run()
        assert result.critical == '.a {\n  color: red;\n}'


class TestFailureIsolation:
    """Tests for per-url failures."""

    @pytest.mark.asyncio
    async def test_one_failing_url(self, make_options):
        urls = ['https://example.com/ok', 'https://example.com/broken']
        extractor, manager = extractor_for(
            make_options(urls=urls),
            visible={urls[0]: {'.a'}},
            failing={urls[1]},
        )
        result = await extractor.run()
        assert result.critical == '.a{color:red}'
        assert [r.url for r in result.errors] == [urls[1]]
        assert isinstance(result.errors[0].error, NavigationError)
        assert result.errors[0].state == PageTaskState.FAILED
        assert result.results[0].state == PageTaskState.CLOSED
        assert manager.open_pages == 0

    @pytest.mark.asyncio
    async def test_all_urls_failing(self, make_options):
        urls = ['https://example.com/1', 'https://example.com/2']
        extractor, manager = extractor_for(make_options(urls=urls), failing=set(urls))
        with pytest.raises(AllTasksFailedError) as excinfo:
            await extractor.run()
        assert [r.url for r in excinfo.value.errors] == urls
        assert manager.open_pages == 0

    @pytest.mark.asyncio
    async def test_probe_failure_closes_page(self, make_options):
        extractor, manager = extractor_for(make_options(), visible={'https://example.com': {'.a'}})

        async def broken_evaluate(page, source_ast):
            raise RuntimeError("Target closed")

        extractor.probe.evaluate = broken_evaluate
        with pytest.raises(AllTasksFailedError) as excinfo:
            await extractor.run()
        failed = excinfo.value.errors[0]
        assert failed.critical_ast is None and failed.rest_ast is None
        assert manager.closed_pages[0].closed

    @pytest.mark.asyncio
    async def test_unparseable_css_aborts(self, make_options):
        extractor, _ = extractor_for(make_options(css='/* only a comment */'))
        with pytest.raises(CssParseError):
            await extractor.run()

    def test_merge_results_requires_success(self, make_options):
        extractor, _ = extractor_for(make_options())
        failed = PageResult('https://example.com').fail(NavigationError('boom'))
        with pytest.raises(AllTasksFailedError):
            extractor.merge_results([failed])


class TestRun:
    """Tests for run orchestration."""

    @pytest.mark.asyncio
    async def test_concurrency_bound(self, make_options):
        urls = [f"https://example.com/{i}" for i in range(6)]
        extractor, manager = extractor_for(
            make_options(urls=urls, concurrency=2),
            visible={url: {'.a'} for url in urls},
            delay=0.01,
        )
        result = await extractor.run()
        assert manager.peak_open_pages == 2
        assert len(result.results) == 6

    @pytest.mark.asyncio
    async def test_results_in_url_order(self, make_options):
        urls = [f"https://example.com/{i}" for i in range(4)]
        extractor, _ = extractor_for(make_options(urls=urls), visible={url: {'.a'} for url in urls})
        result = await extractor.run()
        assert [r.url for r in result.results] == urls

    @pytest.mark.asyncio
    async def test_css_collected_from_first_url(self, make_options):
        options = make_options(css=None, urls=['https://example.com/a', 'https://example.com/b'])
        extractor, manager = extractor_for(
            options, css='.x{color:red}', visible={'https://example.com/a': {'.x'}},
        )
        result = await extractor.run()
        assert manager._urls == ['https://example.com/a']
        assert result.critical == '.x{color:red}'

    @pytest.mark.asyncio
    async def test_css_read_from_file(self, make_options, tmp_path):
        css_file = tmp_path / 'site.css'
        css_file.write_text('.f{color:red}')
        extractor, _ = extractor_for(
            make_options(css=str(css_file)), visible={'https://example.com': {'.f'}},
        )
        result = await extractor.run()
        assert result.critical == '.f{color:red}'

    @pytest.mark.asyncio
    async def test_empty_collected_css(self, make_options):
        extractor, _ = extractor_for(make_options(css=None), css='  ')
        with pytest.raises(CssParseError):
            await extractor.run()

    @pytest.mark.asyncio
    async def test_screenshots(self, make_options):
        extractor, manager = extractor_for(
            make_options(take_screenshots=True), visible={'https://example.com': {'.a'}},
        )
        result = await extractor.run()
        assert manager.screenshots == ['https://example.com']
        assert result.results[0].screenshot == 'https://example.com.png'

    @pytest.mark.asyncio
    async def test_supplied_manager_not_closed(self, make_options):
        extractor, manager = extractor_for(make_options(), visible={'https://example.com': {'.a'}})
        await extractor.run()
        assert manager.started
        assert not manager.closed

    @pytest.mark.asyncio
    async def test_dict_options(self):
        manager = FakeBrowserManager(visible={'https://example.com': {'.a'}})
        extractor = CriticalExtractor(
            {'urls': ['https://example.com'], 'css': '.a{color:red}', 'pageRenderTimeout': 0},
            browser_manager=manager,
        )
        result = await extractor.run()
        assert result.critical == '.a{color:red}'

    @pytest.mark.asyncio
    async def test_extract_critical_css(self, make_options, monkeypatch):
        manager = FakeBrowserManager(visible={'https://example.com': {'.a'}})
        monkeypatch.setattr(
            'critical_css.core.extractor.BrowserManager', lambda options: manager,
        )
        result = await extract_critical_css(make_options())
        assert result.critical == '.a{color:red}'
        assert manager.closed

    @pytest.mark.asyncio
    async def test_result_callback(self, make_options):
        urls = ['https://example.com/ok', 'https://example.com/broken']
        seen = []
        manager = FakeBrowserManager(visible={urls[0]: {'.a'}}, failing={urls[1]})
        extractor = CriticalExtractor(make_options(urls=urls), browser_manager=manager, on_result=seen.append)
        await extractor.run()
        assert sorted(r.url for r in seen) == sorted(urls)
        assert [r.ok for r in seen if r.url == urls[1]] == [False]

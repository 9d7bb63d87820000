#!/usr/bin/env python3
"""
Command-line interface for critical CSS extraction.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Any, Dict, List, Optional

import orjson

from critical_css.core.extractor import CriticalExtractor, CriticalResult
from critical_css.utils.config import VERSION
from critical_css.utils.error import AllTasksFailedError, ConfigurationError, CriticalCssError
from critical_css.utils.file import safe_read_file, safe_write_file
from critical_css.utils.logging import setup_logging
from critical_css.utils.progress import ProgressReporter

logger = logging.getLogger(__name__)

CRITICAL_FILE = 'critical.css'
REST_FILE = 'rest.css'

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog='critical-css',
        description='Extract the critical (above the fold) CSS of one or more pages'
    )

    parser.add_argument(
        'urls',
        help='Urls or local html files to evaluate',
        nargs='+'
    )

    # Input options
    parser.add_argument(
        '--css',
        help='Source css as text or path to a .css file, collected from the first url if omitted'
    )
    parser.add_argument(
        '--config',
        help='JSON file with options, command line flags take precedence'
    )

    # Output options
    parser.add_argument(
        '-o', '--output',
        help='Output directory for critical.css and rest.css',
        default='.'
    )
    parser.add_argument(
        '--no-rest',
        help='Do not write the remaining css',
        action='store_true'
    )
    parser.add_argument(
        '--no-minify',
        help='Write readable instead of minified css',
        action='store_true'
    )
    parser.add_argument(
        '--screenshots',
        help='Save a screenshot of every page into this directory',
        metavar='DIR'
    )

    # Browser options
    parser.add_argument(
        '--concurrency',
        help='Maximum number of pages evaluated at once',
        type=int
    )
    parser.add_argument(
        '--timeout',
        help='Navigation timeout in milliseconds',
        type=int
    )
    parser.add_argument(
        '--page-load-timeout',
        help='Milliseconds after which page loading is stopped',
        type=int
    )
    parser.add_argument(
        '--device',
        help='Playwright device name to emulate'
    )
    parser.add_argument(
        '--width',
        help='Viewport width',
        type=int
    )
    parser.add_argument(
        '--height',
        help='Viewport height',
        type=int
    )

    # Selection options
    parser.add_argument(
        '--keep-selector',
        help='Selector pattern that is always critical, %% matches anything (repeatable)',
        action='append',
        dest='keep_selectors'
    )
    parser.add_argument(
        '--remove-selector',
        help='Selector pattern that is never critical, %% matches anything (repeatable)',
        action='append',
        dest='remove_selectors'
    )
    parser.add_argument(
        '--block-request',
        help='Block requests whose url contains this text, replaces the default list (repeatable)',
        action='append',
        dest='block_requests'
    )
    parser.add_argument(
        '--keep-keyframes',
        help='Keep @keyframes in the critical css',
        action='store_true'
    )

    # Other options
    parser.add_argument(
        '-v', '--verbose',
        help='Enable verbose output',
        action='store_true'
    )
    parser.add_argument(
        '-q', '--quiet',
        help='Only report errors, no progress bar',
        action='store_true'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f"%(prog)s {VERSION}"
    )

    return parser.parse_args(argv)

async def load_config(path: str) -> Dict[str, Any]:
    """Load options from a JSON file.

    Raises:
        ConfigurationError: If the file is not a JSON object
    """
    content = await safe_read_file(path)
    try:
        config = orjson.loads(content)
    except orjson.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file {path}: {e}") from e
    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return config

def build_options(args: argparse.Namespace, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Combine config file options with command line flags."""
    options: Dict[str, Any] = dict(config or {})
    options['urls'] = list(args.urls)

    if args.css is not None:
        options['css'] = args.css
    if args.concurrency is not None:
        options['concurrency'] = args.concurrency
    if args.timeout is not None:
        options['timeout'] = args.timeout
    if args.page_load_timeout is not None:
        options['page_load_timeout'] = args.page_load_timeout

    if args.device:
        options['device'] = args.device
    elif args.width or args.height:
        device = {}
        if args.width:
            device['width'] = args.width
        if args.height:
            device['height'] = args.height
        options['device'] = device

    for name in ('keep_selectors', 'remove_selectors', 'block_requests'):
        value = getattr(args, name)
        if value:
            options[name] = value

    if args.keep_keyframes:
        options['drop_keyframes'] = False
    if args.no_rest:
        options['output_remaining_css'] = False
    if args.no_minify:
        options['minify'] = False
    if args.screenshots:
        options['take_screenshots'] = True
        options['screenshot_path'] = args.screenshots

    return options

async def write_result(result: CriticalResult, output_dir: str, write_rest: bool) -> List[str]:
    """Write the css files of a result.

    Returns:
        Paths of the written files
    """
    written = []
    critical_path = os.path.join(output_dir, CRITICAL_FILE)
    await safe_write_file(critical_path, result.critical)
    written.append(critical_path)

    if write_rest:
        rest_path = os.path.join(output_dir, REST_FILE)
        await safe_write_file(rest_path, result.rest)
        written.append(rest_path)
    return written

async def run(args: argparse.Namespace, reporter: Optional[ProgressReporter] = None) -> CriticalResult:
    """Run an extraction for parsed arguments and write its output."""
    config = await load_config(args.config) if args.config else None
    extractor = CriticalExtractor(
        build_options(args, config),
        on_result=reporter.update if reporter else None,
    )

    if reporter:
        reporter.start()
    result = await extractor.run()
    if reporter:
        reporter.finish()

    for path in await write_result(result, args.output, extractor.options.output_remaining_css):
        logger.info(f"CSS saved to {path}")
    return result

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO)
    reporter = ProgressReporter(len(args.urls), quiet=args.quiet)

    try:
        result = asyncio.run(run(args, reporter))
    except AllTasksFailedError as e:
        reporter.error(str(e))
        for failed in e.errors:
            reporter.print_error(f"{failed.url}: {failed.error}")
        return 1
    except CriticalCssError as e:
        reporter.error(str(e))
        return 1

    for failed in result.errors:
        reporter.print_error(f"{failed.url}: {failed.error}")
    return 0

if __name__ == '__main__':
    sys.exit(main())

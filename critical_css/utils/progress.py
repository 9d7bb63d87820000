"""Progress reporting functionality."""

import sys
from datetime import datetime
from typing import Optional

import colorama
from colorama import Fore, Style
from tqdm import tqdm

PROGRESS_BAR_FORMAT = '{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]'

class ProgressReporter:
    """Reports per-page progress of an extraction run on the terminal."""

    def __init__(self, total_pages: int, quiet: bool = False, stream=None):
        """Initialize the progress reporter.

        Args:
            total_pages: Number of pages that will be evaluated
            quiet: Suppress the progress bar and every message but errors
            stream: Output stream, stderr by default
        """
        self.total_pages = total_pages
        self.quiet = quiet
        self.stream = stream or sys.stderr
        self.done = 0
        self.failed = 0
        self.start_time: Optional[datetime] = None
        self._progress_bar = None
        colorama.init()

    def start(self):
        """Start progress reporting."""
        self.start_time = datetime.now()
        self._progress_bar = tqdm(
            total=self.total_pages,
            desc="Evaluating pages",
            unit='page',
            bar_format=PROGRESS_BAR_FORMAT,
            file=self.stream,
            disable=self.quiet,
        )

    def update(self, result):
        """Count one finished page.

        Args:
            result: Page result with ``url`` and ``ok``
        """
        self.done += 1
        if not result.ok:
            self.failed += 1
        if self._progress_bar is not None:
            self._progress_bar.update(1)
            self._progress_bar.set_postfix_str(result.url)

    def finish(self):
        """Close the bar and print a summary."""
        self._close()
        elapsed = (datetime.now() - self.start_time).total_seconds() if self.start_time else 0
        message = f"{self.done - self.failed} of {self.total_pages} pages evaluated in {elapsed:.2f}s"
        if self.failed:
            self.print_warning(f"{message}, {self.failed} failed")
        else:
            self.print_success(message)

    def error(self, message: str):
        """Close the bar and report a fatal error."""
        self._close()
        self.print_error(message)

    def print_success(self, message: str):
        if not self.quiet:
            print(f"{Fore.GREEN}Success: {message}{Style.RESET_ALL}", file=self.stream)

    def print_warning(self, message: str):
        if not self.quiet:
            print(f"{Fore.YELLOW}Warning: {message}{Style.RESET_ALL}", file=self.stream)

    def print_error(self, message: str):
        # Errors are shown even when quiet
        print(f"{Fore.RED}Error: {message}{Style.RESET_ALL}", file=self.stream)

    def _close(self):
        if self._progress_bar is not None:
            self._progress_bar.close()
            self._progress_bar = None

# Exported classes
__all__ = ['ProgressReporter']

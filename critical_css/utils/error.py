"""Error utility for critical CSS extraction."""

class CriticalCssError(Exception):
    """Base exception for critical CSS extraction."""
    pass

class ConfigurationError(CriticalCssError):
    """Raised when configuration is invalid."""
    pass

class FileOperationError(CriticalCssError):
    """Raised when file operations fail."""
    pass

class CssParseError(CriticalCssError):
    """Raised when the source stylesheet cannot be parsed."""
    pass

class BrowserError(CriticalCssError):
    """Raised when the browser session cannot be started or used."""
    pass

class PageAcquisitionError(BrowserError):
    """Raised when no page could be opened after all retries."""
    pass

class NavigationError(BrowserError):
    """Raised when a page cannot be navigated to its target."""
    pass

class ProbeExecutionError(BrowserError):
    """Raised when the in-page criticality probe fails."""
    pass

class AllTasksFailedError(CriticalCssError):
    """Raised when no page produced a usable critical AST."""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])

# Exported exceptions
__all__ = [
    'CriticalCssError',
    'ConfigurationError',
    'FileOperationError',
    'CssParseError',
    'BrowserError',
    'PageAcquisitionError',
    'NavigationError',
    'ProbeExecutionError',
    'AllTasksFailedError',
]

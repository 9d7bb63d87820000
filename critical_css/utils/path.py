"""Path and URL handling functionality."""

import os
import re
from urllib.parse import urlparse

def is_valid_url(url: str) -> bool:
    """Check if string is a valid URL.

    Args:
        url: URL to check

    Returns:
        True if valid URL
    """
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except Exception:
        return False

def is_local_file(url: str) -> bool:
    """Check if a page target refers to a file on disk.

    ``file:`` URLs are navigated like network URLs.

    Args:
        url: Page target

    Returns:
        True if the target must be read from disk
    """
    return not is_valid_url(url) and not url.startswith('file:')

def strip_url_params(url: str) -> str:
    """Remove query string and fragment from a target.

    Args:
        url: Page target

    Returns:
        Target without ``?query`` and ``#fragment``
    """
    return re.split(r'[?#]', url, maxsplit=1)[0]

def resolve_local_path(url: str, base_dir: str = None) -> str:
    """Resolve a local page target against a base directory.

    Args:
        url: Local page target, absolute or relative
        base_dir: Directory for relative targets, defaults to the working directory

    Returns:
        Absolute file path
    """
    path = strip_url_params(url)
    if os.path.isabs(path):
        return path
    return os.path.abspath(os.path.join(base_dir or os.getcwd(), path))

def default_screenshot_name(url: str) -> str:
    """Derive a screenshot file stem from a URL.

    Args:
        url: Page URL

    Returns:
        File stem with every non-word character replaced
    """
    return re.sub(r'[^\w\s]', '_', url)

# Exported functions
__all__ = [
    'is_valid_url',
    'is_local_file',
    'strip_url_params',
    'resolve_local_path',
    'default_screenshot_name',
]

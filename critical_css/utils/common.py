"""Common utilities for critical CSS extraction."""

import os
from .error import FileOperationError

CSS_EXTENSION = '.css'

def ensure_directory(path: str) -> str:
    """Create a directory and its parents if missing.

    Args:
        path: Directory path, empty for the working directory

    Returns:
        The directory path

    Raises:
        FileOperationError: If the directory cannot be created
    """
    if not path:
        return path
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise FileOperationError(f"Failed to create directory {path}: {e}") from e
    return path

def is_css_path(value: str) -> bool:
    """Check whether a ``css`` option names a stylesheet file.

    Anything containing a declaration block is css text.
    """
    if '{' in value:
        return False
    return os.path.splitext(value.strip())[1].lower() == CSS_EXTENSION

# Exported functions
__all__ = [
    'ensure_directory',
    'is_css_path',
]

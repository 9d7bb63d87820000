"""Resource managers for critical CSS extraction."""

from .base import BaseManager
from .browser import BrowserManager

# Exported classes
__all__ = [
    'BaseManager',
    'BrowserManager',
]

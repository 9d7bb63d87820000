"""Critical CSS extraction for above-the-fold content."""

from .core.extractor import CriticalExtractor, CriticalResult, PageResult, extract_critical_css
from .core.options import CriticalOptions
from .utils.config import VERSION

__version__ = VERSION

__all__ = [
    'CriticalExtractor',
    'CriticalResult',
    'PageResult',
    'CriticalOptions',
    'extract_critical_css',
    '__version__',
]

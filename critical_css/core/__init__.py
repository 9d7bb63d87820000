"""Core functionality for critical CSS extraction."""

from .ast import Declaration, RuleKind, RuleNode
from .parser import CssTransformer
from .partitioner import AstPartitioner
from .probe import PageCriticalityProbe
from .rule_map import assemble, build_rule_map, merge_into, subtract
from .extractor import CriticalExtractor, CriticalResult, PageResult, extract_critical_css

__all__ = [
    'Declaration',
    'RuleKind',
    'RuleNode',
    'CssTransformer',
    'AstPartitioner',
    'PageCriticalityProbe',
    'assemble',
    'build_rule_map',
    'merge_into',
    'subtract',
    'CriticalExtractor',
    'CriticalResult',
    'PageResult',
    'extract_critical_css',
]

"""Final touches applied to assembled critical and remaining trees."""

import re
import logging
from dataclasses import replace
from typing import List, Optional, Set, Tuple

from .ast import RuleKind, RuleNode
from .parser import CssTransformer

logger = logging.getLogger(__name__)

VAR_REFERENCE_REGEX = re.compile(r'var\(\s*(--[\w-]+)')
MIN_WIDTH_REGEX = re.compile(r'min-width\s*:\s*([\d.]+)\s*(px|em|rem)?', re.IGNORECASE)
MAX_WIDTH_REGEX = re.compile(r'max-width\s*:\s*([\d.]+)\s*(px|em|rem)?', re.IGNORECASE)

# Pixels per em/rem when comparing media query breakpoints
EM_SIZE = 16


def _map_rules(ast: RuleNode, fn) -> RuleNode:
    """Rebuild a tree applying ``fn`` to every node that has declarations."""
    children = []
    for node in ast.iter_children():
        if node.children is not None:
            node = _map_rules(node, fn)
        if node.declarations is not None:
            node = fn(node)
        children.append(node)
    return ast.with_children(children)


def _iter_declarations(ast: RuleNode):
    for node in ast.iter_children():
        if node.declarations:
            yield from node.declarations
        if node.children is not None:
            yield from _iter_declarations(node)


def remove_duplicate_variables(ast: RuleNode) -> RuleNode:
    """Keep only the last declaration of each custom property within a rule."""
    def dedupe(node: RuleNode) -> RuleNode:
        last_index = {}
        for index, decl in enumerate(node.declarations):
            if decl.property.startswith('--'):
                last_index[decl.property] = index
        declarations = tuple(
            decl for index, decl in enumerate(node.declarations)
            if not decl.property.startswith('--') or last_index[decl.property] == index
        )
        if len(declarations) == len(node.declarations):
            return node
        return replace(node, declarations=declarations)

    return _map_rules(ast, dedupe)


def prune_unused_variables(ast: RuleNode) -> RuleNode:
    """Drop custom property declarations that nothing references.

    Runs until stable since removing a declaration can orphan the variables
    it referenced.
    """
    while True:
        used: Set[str] = set()
        defined: Set[str] = set()
        for decl in _iter_declarations(ast):
            used.update(VAR_REFERENCE_REGEX.findall(decl.value))
            if decl.property.startswith('--'):
                defined.add(decl.property)

        unused = defined - used
        if not unused:
            return ast

        logger.debug(f"Pruning {len(unused)} unused custom properties")

        def prune(node: RuleNode) -> RuleNode:
            declarations = tuple(d for d in node.declarations if d.property not in unused)
            return replace(node, declarations=declarations)

        ast = _map_rules(ast, prune)


def _breakpoint(regex, query: str) -> Optional[float]:
    match = regex.search(query)
    if match is None:
        return None
    value = float(match.group(1))
    if (match.group(2) or 'px').lower() in ('em', 'rem'):
        value *= EM_SIZE
    return value


def media_sort_key(query: str) -> Tuple[int, float]:
    """Mobile-first order: min-width ascending, max-width descending, then the rest."""
    min_width = _breakpoint(MIN_WIDTH_REGEX, query)
    if min_width is not None:
        return 0, min_width
    max_width = _breakpoint(MAX_WIDTH_REGEX, query)
    if max_width is not None:
        return 1, -max_width
    return 2, 0


def sort_media_queries(ast: RuleNode) -> RuleNode:
    """Move top-level media rules behind the other rules in mobile-first order."""
    others: List[RuleNode] = []
    media: List[RuleNode] = []
    for node in ast.iter_children():
        (media if node.kind == RuleKind.MEDIA else others).append(node)

    media.sort(key=lambda node: media_sort_key(node.criterion or ''))
    return ast.with_children(others + media)


def clean(ast: RuleNode) -> RuleNode:
    """Keep a single leading @charset and drop blocks without content."""
    charset = None
    children = []
    for node in ast.iter_children():
        if node.kind == RuleKind.CHARSET:
            charset = charset or node
            continue
        if node.kind == RuleKind.COMMENT:
            continue
        if node.declarations is not None and not node.declarations:
            continue
        if node.children is not None:
            node = clean(node)
            if not node.children:
                continue
        children.append(node)

    if charset is not None:
        children.insert(0, charset)
    return ast.with_children(children)


def finalize_css(transformer: CssTransformer, ast: RuleNode,
                 minify: bool = True, critical: bool = True) -> str:
    """Post-process an assembled tree and print it.

    Args:
        transformer: Printer
        ast: Assembled stylesheet node
        minify: Print compressed css
        critical: Also prune unused custom properties

    Returns:
        CSS text
    """
    if critical:
        ast = prune_unused_variables(ast)
    ast = remove_duplicate_variables(ast)
    ast = sort_media_queries(clean(ast))
    return transformer.stringify(ast, compress=minify)


# Exported functions
__all__ = [
    'remove_duplicate_variables',
    'prune_unused_variables',
    'media_sort_key',
    'sort_media_queries',
    'clean',
    'finalize_css',
]

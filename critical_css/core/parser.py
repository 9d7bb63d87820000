"""Conversion between CSS text and rule trees."""

import re
import logging
from typing import Iterable, Iterator, List, Optional, Tuple, Union

import csscompressor
import cssutils

from .ast import Declaration, RuleKind, RuleNode
from ..utils.error import CssParseError

logger = logging.getLogger(__name__)

# cssutils reports every property it does not know about
cssutils.log.setLevel(logging.CRITICAL)

KEYFRAME_BLOCK_REGEX = re.compile(r'([^{}]+)\{([^{}]*)\}')
COMMENT_REGEX = re.compile(r'/\*.*?\*/', re.DOTALL)

# Group at-rules cut out of the text before cssutils sees it. cssutils has no
# model for @supports and @keyframes and mangles their bodies when printing.
BLOCK_AT_RULE_REGEX = re.compile(
    r'@((?:-[a-z]+-)?keyframes|media|supports)(?![\w-])',
    re.IGNORECASE,
)

Segment = Union[str, Tuple[str, str, str]]


def _string_end(text: str, start: int) -> int:
    quote = text[start]
    index = start + 1
    while index < len(text):
        char = text[index]
        if char == '\\':
            index += 2
            continue
        if char == quote or char == '\n':
            return index + 1
        index += 1
    return len(text)


def _code_chars(text: str, start: int = 0) -> Iterator[Tuple[int, str]]:
    """Yield ``(index, char)`` for every character outside comments and strings."""
    index = start
    length = len(text)
    while index < length:
        if text.startswith('/*', index):
            end = text.find('*/', index + 2)
            index = length if end == -1 else end + 2
            continue
        char = text[index]
        if char in '"\'':
            index = _string_end(text, index)
            continue
        yield index, char
        index += 1


def _find_block(text: str, start: int) -> Optional[Tuple[int, int]]:
    """Locate the ``{...}`` block of an at-rule whose prelude starts at ``start``.

    Returns:
        Indexes of the opening and closing brace, or None for a statement
        at-rule. An unterminated block ends with the text.
    """
    open_index = None
    depth = 0
    for index, char in _code_chars(text, start):
        if open_index is None:
            if char in ';}':
                return None
            if char == '{':
                open_index = index
                depth = 1
            continue
        if char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return open_index, index
    if open_index is None:
        return None
    return open_index, len(text)


def split_block_at_rules(css_text: str) -> List[Segment]:
    """Split CSS text at its top-level ``@media``, ``@supports`` and ``@keyframes`` blocks.

    Args:
        css_text: CSS text

    Returns:
        Plain text chunks and ``(keyword, prelude, body)`` tuples in source
        order; prelude and body are taken verbatim from the text
    """
    segments: List[Segment] = []
    chunk_start = 0
    depth = 0
    for index, char in _code_chars(css_text):
        if index < chunk_start:
            continue
        if char == '{':
            depth += 1
        elif char == '}':
            depth = max(depth - 1, 0)
        elif char == '@' and depth == 0:
            match = BLOCK_AT_RULE_REGEX.match(css_text, index)
            block = _find_block(css_text, match.end()) if match else None
            if block is None:
                continue
            open_index, close_index = block
            if css_text[chunk_start:index].strip():
                segments.append(css_text[chunk_start:index])
            segments.append((
                match.group(1).lower(),
                css_text[match.end():open_index],
                css_text[open_index + 1:close_index],
            ))
            chunk_start = close_index + 1

    if css_text[chunk_start:].strip():
        segments.append(css_text[chunk_start:])
    return segments


class CssTransformer:
    """Parse CSS text into ``RuleNode`` trees and print them back.

    Args:
        indent: Indentation of the readable output
    """

    def __init__(self, indent: str = '  '):
        self.indent = indent
        self._parser = cssutils.CSSParser(
            raiseExceptions=False,
            validate=False,
            parseComments=True,
        )

    def parse(self, css_content: str, source: Optional[str] = None) -> RuleNode:
        """Parse CSS text into a stylesheet node.

        Args:
            css_content: CSS text
            source: Optional origin (file or URL) used in error messages

        Returns:
            Stylesheet node

        Raises:
            CssParseError: If the text is empty or yields no rules
        """
        origin = source or 'source css'
        if not css_content or not css_content.strip():
            raise CssParseError(f"No CSS content in {origin}")

        logger.debug(f"Parsing {len(css_content)} characters of {origin}")
        try:
            ast = RuleNode.stylesheet(self._parse_rules(css_content, source))
        except CssParseError:
            raise
        except Exception as e:
            raise CssParseError(f"Failed to parse {origin}: {e}") from e

        if not any(child.kind != RuleKind.COMMENT for child in ast.iter_children()):
            raise CssParseError(f"No CSS rules could be parsed from {origin}")

        logger.debug(f"Parsed {len(ast.children)} top-level rules from {origin}")
        return ast

    def stringify(self, ast: RuleNode, compress: bool = False) -> str:
        """Print a stylesheet node as CSS text.

        Args:
            ast: Stylesheet node
            compress: Emit minified CSS without comments

        Returns:
            CSS text
        """
        if compress:
            return csscompressor.compress(self._print_sheet(ast, comments=False))
        return self._print_sheet(ast)

    # CSS text -> RuleNode

    def _parse_rules(self, css_text: str, source: Optional[str] = None) -> List[RuleNode]:
        nodes = []
        for segment in split_block_at_rules(css_text):
            if isinstance(segment, str):
                sheet = self._parser.parseString(segment, href=source)
                nodes.extend(self._convert_rules(sheet.cssRules))
            else:
                nodes.append(self._convert_block(*segment))
        return nodes

    def _convert_block(self, keyword: str, prelude: str, body: str) -> RuleNode:
        prelude = ' '.join(COMMENT_REGEX.sub(' ', prelude).split())

        if keyword == 'media':
            return RuleNode(
                RuleKind.MEDIA,
                criterion=self._media_text(prelude),
                children=tuple(self._parse_rules(body)),
            )
        if keyword == 'supports':
            return RuleNode(
                RuleKind.SUPPORTS,
                criterion=prelude,
                children=tuple(self._parse_rules(body)),
            )

        keyframes = []
        for match in KEYFRAME_BLOCK_REGEX.finditer(COMMENT_REGEX.sub('', body)):
            offsets = tuple(v.strip() for v in match.group(1).split(',') if v.strip())
            style = cssutils.css.CSSStyleDeclaration(cssText=match.group(2))
            keyframes.append(RuleNode(
                RuleKind.KEYFRAME,
                selectors=offsets,
                declarations=self._convert_style(style),
            ))
        return RuleNode(
            RuleKind.KEYFRAMES,
            criterion=prelude,
            children=tuple(keyframes),
            vendor=keyword[:-len('keyframes')],
        )

    def _media_text(self, prelude: str) -> str:
        """Media query in cssutils' normalized spelling."""
        sheet = self._parser.parseString(f"@media {prelude} {{}}")
        for rule in sheet.cssRules:
            if rule.type == rule.MEDIA_RULE:
                return rule.media.mediaText
        return prelude

    def _convert_rules(self, rules: Iterable) -> List[RuleNode]:
        nodes = []
        for rule in rules:
            node = self._convert_rule(rule)
            if node is not None:
                nodes.append(node)
        return nodes

    def _convert_rule(self, rule) -> Optional[RuleNode]:
        rule_type = rule.type

        if rule_type == rule.STYLE_RULE:
            return RuleNode(
                RuleKind.RULE,
                selectors=tuple(s.selectorText for s in rule.selectorList),
                declarations=self._convert_style(rule.style),
            )
        if rule_type == rule.CHARSET_RULE:
            return RuleNode(RuleKind.CHARSET, criterion=rule.encoding)
        if rule_type == rule.FONT_FACE_RULE:
            return RuleNode(RuleKind.FONT_FACE, declarations=self._convert_style(rule.style))
        if rule_type == rule.PAGE_RULE:
            selector = rule.selectorText
            return RuleNode(
                RuleKind.PAGE,
                selectors=(selector,) if selector else (),
                declarations=self._convert_style(rule.style),
            )
        if rule_type == rule.IMPORT_RULE:
            return RuleNode(RuleKind.IMPORT, criterion=self._at_rule_prelude(rule.cssText, '@import'))
        if rule_type == rule.NAMESPACE_RULE:
            return RuleNode(RuleKind.NAMESPACE, criterion=self._at_rule_prelude(rule.cssText, '@namespace'))
        if rule_type == rule.COMMENT:
            return RuleNode(RuleKind.COMMENT, text=rule.cssText[2:-2])

        logger.debug(f"Keeping unsupported rule type {rule.typeString} as raw text")
        return RuleNode(RuleKind.UNKNOWN, text=rule.cssText)

    def _convert_style(self, style) -> Tuple[Declaration, ...]:
        # all=True keeps fallbacks such as "display: -webkit-box; display: flex"
        return tuple(
            Declaration(prop.name, prop.value, prop.priority == 'important')
            for prop in style.getProperties(all=True)
        )

    @staticmethod
    def _at_rule_prelude(css_text: str, keyword: str) -> str:
        return css_text[len(keyword):].strip().rstrip(';').strip()

    # RuleNode -> CSS text

    def _print_sheet(self, ast: RuleNode, comments: bool = True) -> str:
        parts = [self._print_node(child, 0, comments) for child in ast.iter_children()]
        return '\n\n'.join(part for part in parts if part)

    def _print_declarations(self, declarations, depth: int) -> str:
        pad = self.indent * (depth + 1)
        lines = [
            f"{pad}{d.property}: {d.value}{' !important' if d.important else ''};"
            for d in declarations
        ]
        return ' {\n' + '\n'.join(lines) + '\n' + self.indent * depth + '}'

    def _print_block(self, head: str, children, depth: int, comments: bool) -> str:
        inner = [self._print_node(child, depth + 1, comments) for child in children]
        pad = self.indent * depth
        return f"{pad}{head} {{\n" + '\n'.join(part for part in inner if part) + f"\n{pad}}}"

    def _print_node(self, node: RuleNode, depth: int, comments: bool) -> str:
        pad = self.indent * depth
        kind = node.kind
        declarations = node.declarations or ()

        if kind == RuleKind.RULE:
            return pad + (',\n' + pad).join(node.selectors) + self._print_declarations(declarations, depth)
        if kind == RuleKind.KEYFRAME:
            return pad + ', '.join(node.selectors) + self._print_declarations(declarations, depth)
        if kind == RuleKind.MEDIA:
            return self._print_block(f"@media {node.criterion}", node.iter_children(), depth, comments)
        if kind == RuleKind.SUPPORTS:
            return self._print_block(f"@supports {node.criterion}", node.iter_children(), depth, comments)
        if kind == RuleKind.KEYFRAMES:
            return self._print_block(f"@{node.vendor}keyframes {node.criterion}",
                                     node.iter_children(), depth, comments)
        if kind == RuleKind.FONT_FACE:
            return pad + '@font-face' + self._print_declarations(declarations, depth)
        if kind == RuleKind.PAGE:
            head = ' '.join(['@page'] + list(node.selectors))
            return pad + head + self._print_declarations(declarations, depth)
        if kind == RuleKind.CHARSET:
            return f'{pad}@charset "{node.criterion}";'
        if kind == RuleKind.IMPORT:
            return f"{pad}@import {node.criterion};"
        if kind == RuleKind.NAMESPACE:
            return f"{pad}@namespace {node.criterion};"
        if kind == RuleKind.COMMENT:
            return f"{pad}/*{node.text or ''}*/" if comments else ''
        if kind == RuleKind.STYLESHEET:
            return self._print_sheet(node, comments)
        return pad + (node.text or '')


# Exported classes and functions
__all__ = ['CssTransformer', 'split_block_at_rules']

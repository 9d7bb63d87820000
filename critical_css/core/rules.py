"""Rule classification and rule identity keys."""

from typing import Union
from .ast import RuleKind, RuleNode
from ..utils.config import DEFAULT_RULE_KEY, GROUP_SEPARATOR, RULE_SEPARATOR

# Conditional group rules the partitioner and the page probe descend into
GROUP_KINDS = frozenset({RuleKind.MEDIA, RuleKind.SUPPORTS})

REDUNDANT_MEDIA_PREFIX = 'all and '


def identify(node: RuleNode) -> RuleKind:
    """Return the variant tag of a node."""
    return node.kind


def is_style_rule(node: RuleNode) -> bool:
    return node.kind == RuleKind.RULE


def is_comment(node: RuleNode) -> bool:
    return node.kind == RuleKind.COMMENT


def is_media_rule(node: RuleNode) -> bool:
    return node.kind == RuleKind.MEDIA


def is_group_rule(node: RuleNode) -> bool:
    """True for media/supports rules, whose children are classified one by one."""
    return node.kind in GROUP_KINDS and node.children is not None


def has_declarations(node: RuleNode) -> bool:
    """True if the node carries a non-empty declaration block."""
    return bool(node.declarations)


def rule_key(node: RuleNode, group_prefix: str = '',
             with_separator: bool = False) -> Union[str, bool]:
    """Derive the identity key of a rule.

    Two rules occupy the same slot iff their keys are equal. The group
    prefix keeps identical selectors nested in different media or supports
    contexts apart.

    Args:
        node: Rule to classify
        group_prefix: Prefix chain of the enclosing group rules
        with_separator: Put ``RULE_SEPARATOR`` between prefix and key

    Returns:
        The key, or ``False`` for comments, which have no identity
    """
    kind = node.kind

    if kind == RuleKind.RULE and node.selectors:
        key = ','.join(node.selectors)
    elif kind == RuleKind.CHARSET:
        key = node.criterion or ''
    elif kind == RuleKind.KEYFRAMES:
        key = node.criterion or ''
    elif kind == RuleKind.KEYFRAME:
        key = ','.join(node.selectors)
    elif kind == RuleKind.MEDIA:
        key = f"{kind.value} {node.criterion}"
    elif kind == RuleKind.SUPPORTS:
        key = f"{kind.value} {node.criterion}"
    elif kind == RuleKind.FONT_FACE:
        key = kind.value
    elif kind == RuleKind.COMMENT:
        return False
    elif node.criterion is not None:
        key = f"{kind.value} {node.criterion}"
    else:
        # Page rules, unknown at-rules and selector-less style rules share
        # this bucket
        return DEFAULT_RULE_KEY

    separator = RULE_SEPARATOR if with_separator else ''
    return group_prefix + separator + key


def group_id(node: RuleNode) -> str:
    """Identifier of a group rule inside a prefix chain (``media(min-width: 1px)``)."""
    if node.kind == RuleKind.STYLESHEET:
        return ''
    return f"{node.kind.value}{node.criterion or ''}"


def extend_group_prefix(group_prefix: str, node: RuleNode) -> str:
    """Append a group rule to a prefix chain."""
    if group_prefix:
        return f"{group_prefix}{GROUP_SEPARATOR}{group_id(node)}"
    return group_id(node)


def normalize_media_criterion(media: str) -> str:
    """Drop the redundant ``all and`` from a media query."""
    return (media or '').replace(REDUNDANT_MEDIA_PREFIX, '', 1)


def is_matching_media_criterion(media_1: str, media_2: str) -> bool:
    """Check whether two media queries mean the same.

    ``all and (min-width: 10px)`` matches ``(min-width: 10px)``.
    """
    return (
        media_1 == media_2
        or media_1 == normalize_media_criterion(media_2)
        or media_2 == normalize_media_criterion(media_1)
        or normalize_media_criterion(media_1) == normalize_media_criterion(media_2)
    )


# Exported functions
__all__ = [
    'GROUP_KINDS',
    'identify',
    'is_style_rule',
    'is_comment',
    'is_media_rule',
    'is_group_rule',
    'has_declarations',
    'rule_key',
    'group_id',
    'extend_group_prefix',
    'normalize_media_criterion',
    'is_matching_media_criterion',
]

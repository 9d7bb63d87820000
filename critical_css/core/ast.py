"""Immutable CSS rule tree used throughout the extraction pipeline.

A stylesheet is a ``RuleNode`` of kind ``STYLESHEET`` whose children are the
top-level rules. Nodes are frozen; every transformation builds new nodes.

The dictionary form (``to_dict``/``from_dict``) uses the widely known
``{"type": ..., "selectors": [...], "declarations": [...], "rules": [...]}``
schema, so trees can be exchanged as JSON.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple


class RuleKind(str, Enum):
    """Tag of a ``RuleNode``."""

    STYLESHEET = 'stylesheet'
    RULE = 'rule'
    MEDIA = 'media'
    SUPPORTS = 'supports'
    KEYFRAMES = 'keyframes'
    KEYFRAME = 'keyframe'
    FONT_FACE = 'font-face'
    CHARSET = 'charset'
    COMMENT = 'comment'
    IMPORT = 'import'
    NAMESPACE = 'namespace'
    PAGE = 'page'
    UNKNOWN = 'unknown'

    def __str__(self) -> str:
        return self.value


# Kinds whose ``criterion`` is stored under a dict key of the same name
_CRITERION_FIELDS = {
    RuleKind.MEDIA: 'media',
    RuleKind.SUPPORTS: 'supports',
    RuleKind.KEYFRAMES: 'name',
    RuleKind.CHARSET: 'charset',
    RuleKind.IMPORT: 'import',
    RuleKind.NAMESPACE: 'namespace',
}

# Kinds whose ``selectors`` are stored under another dict key
_SELECTOR_FIELDS = {
    RuleKind.KEYFRAME: 'values',
}

# Kinds whose ``children`` are stored under another dict key
_CHILDREN_FIELDS = {
    RuleKind.KEYFRAMES: 'keyframes',
}


@dataclass(frozen=True)
class Declaration:
    """A single ``property: value`` pair."""

    property: str
    value: str
    important: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {'type': 'declaration', 'property': self.property, 'value': self.value}
        if self.important:
            data['important'] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Declaration':
        value = str(data.get('value', ''))
        important = bool(data.get('important', False))
        if value.rstrip().endswith('!important'):
            value = value.rstrip()[:-len('!important')].rstrip()
            important = True
        return cls(property=data['property'], value=value, important=important)


@dataclass(frozen=True)
class RuleNode:
    """One node of a CSS rule tree.

    Attributes:
        kind: Variant tag
        selectors: Selector list of a style rule, offsets of a keyframe,
            page selectors of a page rule
        declarations: Declaration block, ``None`` if the node has none
        criterion: Media query, supports condition, keyframes name, charset
            value, or import/namespace text
        children: Nested rules of a grouping node, ``None`` for leaves
        vendor: Vendor prefix of an at-rule (``-webkit-``)
        text: Comment body or raw text of an unknown at-rule
    """

    kind: RuleKind
    selectors: Tuple[str, ...] = ()
    declarations: Optional[Tuple[Declaration, ...]] = None
    criterion: Optional[str] = None
    children: Optional[Tuple['RuleNode', ...]] = None
    vendor: str = ''
    text: Optional[str] = None

    @classmethod
    def stylesheet(cls, children=()) -> 'RuleNode':
        return cls(RuleKind.STYLESHEET, children=tuple(children))

    @classmethod
    def style_rule(cls, selectors, declarations=()) -> 'RuleNode':
        return cls(RuleKind.RULE, selectors=tuple(selectors),
                   declarations=tuple(declarations))

    @classmethod
    def media(cls, query: str, children=()) -> 'RuleNode':
        return cls(RuleKind.MEDIA, criterion=query, children=tuple(children))

    @classmethod
    def supports(cls, condition: str, children=()) -> 'RuleNode':
        return cls(RuleKind.SUPPORTS, criterion=condition, children=tuple(children))

    def with_children(self, children) -> 'RuleNode':
        return replace(self, children=tuple(children))

    def with_selectors(self, selectors) -> 'RuleNode':
        return replace(self, selectors=tuple(selectors))

    def iter_children(self) -> Iterator['RuleNode']:
        return iter(self.children or ())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        data: Dict[str, Any] = {'type': self.kind.value}

        if self.kind == RuleKind.STYLESHEET:
            data['stylesheet'] = {'rules': [child.to_dict() for child in self.iter_children()]}
            return data

        if self.kind == RuleKind.COMMENT:
            data['comment'] = self.text or ''
            return data

        if self.vendor:
            data['vendor'] = self.vendor
        if self.criterion is not None:
            data[_CRITERION_FIELDS.get(self.kind, 'criterion')] = self.criterion
        if self.selectors:
            data[_SELECTOR_FIELDS.get(self.kind, 'selectors')] = list(self.selectors)
        if self.declarations is not None:
            data['declarations'] = [decl.to_dict() for decl in self.declarations]
        if self.children is not None:
            data[_CHILDREN_FIELDS.get(self.kind, 'rules')] = [
                child.to_dict() for child in self.children
            ]
        if self.text is not None:
            data['text'] = self.text
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RuleNode':
        """Build a node from its dictionary form.

        Source position metadata (``position``) is ignored.
        """
        if 'stylesheet' in data and data.get('type', 'stylesheet') == 'stylesheet':
            rules = data['stylesheet'].get('rules', [])
            return cls.stylesheet(cls.from_dict(rule) for rule in rules)

        try:
            kind = RuleKind(data.get('type'))
        except ValueError:
            kind = RuleKind.UNKNOWN

        if kind == RuleKind.COMMENT:
            return cls(kind, text=data.get('comment', ''))

        criterion = data.get(_CRITERION_FIELDS.get(kind, 'criterion'))
        selectors = data.get(_SELECTOR_FIELDS.get(kind, 'selectors')) or ()
        children = data.get(_CHILDREN_FIELDS.get(kind, 'rules'))
        declarations = data.get('declarations')

        return cls(
            kind=kind,
            selectors=tuple(selectors),
            declarations=(
                None if declarations is None
                else tuple(Declaration.from_dict(d) for d in declarations
                           if d.get('type', 'declaration') == 'declaration')
            ),
            criterion=criterion,
            children=None if children is None else tuple(cls.from_dict(c) for c in children),
            vendor=data.get('vendor', ''),
            text=data.get('text'),
        )


# Exported classes
__all__ = ['RuleKind', 'Declaration', 'RuleNode']

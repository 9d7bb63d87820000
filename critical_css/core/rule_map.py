"""Deduplicated rule maps merged across many stylesheets.

A rule map is an ordered mapping ``rule key -> [RuleEntry, ...]``. Within a
bucket every entry has a distinct content hash, so merging the same stylesheet
twice changes nothing and merge order only affects insertion order.
"""

import hashlib
import logging
from collections import OrderedDict
from typing import Iterable, List, NamedTuple

import orjson

from .ast import RuleKind, RuleNode
from .rules import (
    is_comment,
    is_matching_media_criterion,
    is_media_rule,
    is_style_rule,
    normalize_media_criterion,
    rule_key,
)
from ..utils.config import MEDIA_PREFIX

logger = logging.getLogger(__name__)


class RuleEntry(NamedTuple):
    """A rule body stored under a rule key."""

    hash: str
    rule: RuleNode


RuleMap = "OrderedDict[str, List[RuleEntry]]"


def content_hash(node: RuleNode) -> str:
    """Structural MD5 hash of a rule body."""
    payload = orjson.dumps(node.to_dict(), option=orjson.OPT_SORT_KEYS)
    return hashlib.md5(payload).hexdigest()


def new_rule_map() -> RuleMap:
    return OrderedDict()


def is_media_key(key: str) -> bool:
    return key.startswith(MEDIA_PREFIX)


def media_key(media: str) -> str:
    """Bucket key collecting every rule of one media query."""
    return MEDIA_PREFIX + normalize_media_criterion(media)


def find_media_key(rule_map: RuleMap, media: str) -> str:
    """Key of the bucket holding ``media``, an existing equivalent bucket first."""
    for key in rule_map:
        if is_media_key(key) and is_matching_media_criterion(key[len(MEDIA_PREFIX):], media):
            return key
    return media_key(media)


def _insert(rule_map: RuleMap, key: str, node: RuleNode) -> bool:
    bucket = rule_map.setdefault(key, [])
    node_hash = content_hash(node)
    if any(entry.hash == node_hash for entry in bucket):
        return False
    bucket.append(RuleEntry(node_hash, node))
    return True


def merge_into(rule_map: RuleMap, ast: RuleNode) -> RuleMap:
    """Fold the top-level rules of a stylesheet into a rule map.

    Media rules are flattened into one bucket per media query; their
    children are deduplicated individually. Every other rule is stored
    under its rule key. Comments are skipped.

    Args:
        rule_map: Map to extend in place
        ast: Stylesheet node

    Returns:
        The same map, for chaining
    """
    if ast is None or ast.kind != RuleKind.STYLESHEET:
        return rule_map

    for node in ast.iter_children():
        if is_comment(node):
            continue

        if is_media_rule(node):
            key = find_media_key(rule_map, node.criterion)
            rule_map.setdefault(key, [])
            for child in node.iter_children():
                if not is_comment(child):
                    _insert(rule_map, key, child)
        else:
            _insert(rule_map, rule_key(node), node)

    return rule_map


def build_rule_map(asts: Iterable[RuleNode]) -> RuleMap:
    """Merge many stylesheets into a fresh rule map."""
    rule_map = new_rule_map()
    for ast in asts:
        merge_into(rule_map, ast)
    return rule_map


def subtract(rest_map: RuleMap, critical_map: RuleMap) -> RuleMap:
    """Remove from ``rest_map`` every body already present in ``critical_map``.

    Only bodies stored under the same key with the same hash are removed;
    keys left without bodies are dropped.

    Returns:
        New rule map, the inputs are not modified
    """
    result = new_rule_map()
    for key, bucket in rest_map.items():
        critical_hashes = {entry.hash for entry in critical_map.get(key, ())}
        remaining = [entry for entry in bucket if entry.hash not in critical_hashes]
        if remaining:
            result[key] = remaining
    return result


def is_emittable(node: RuleNode) -> bool:
    """Check whether a rule body can be printed.

    Bodies with an empty declaration block, and style rules without any
    declaration block, are invalid.
    """
    if node.declarations is not None and not node.declarations:
        return False
    if is_style_rule(node) and node.declarations is None:
        return False
    return True


def assemble(rule_map: RuleMap) -> RuleNode:
    """Rebuild a stylesheet from a rule map in insertion order.

    Invalid bodies are skipped one by one; assembly continues with the next
    entry.

    Args:
        rule_map: Map to rebuild

    Returns:
        Stylesheet node
    """
    rules = []

    for key, bucket in rule_map.items():
        bodies = []
        for entry in bucket:
            if is_emittable(entry.rule):
                bodies.append(entry.rule)
            else:
                logger.debug(f"Skipping rule without declarations under key {key!r}")

        if not bodies:
            continue

        if is_media_key(key):
            rules.append(RuleNode.media(key[len(MEDIA_PREFIX):], bodies))
        else:
            rules.extend(bodies)

    return RuleNode.stylesheet(rules)


def rule_map_signature(rule_map: RuleMap) -> dict:
    """Order-independent view of a rule map: key -> set of hashes."""
    return {key: frozenset(entry.hash for entry in bucket) for key, bucket in rule_map.items()}


# Exported functions
__all__ = [
    'RuleEntry',
    'content_hash',
    'new_rule_map',
    'is_media_key',
    'media_key',
    'find_media_key',
    'merge_into',
    'build_rule_map',
    'subtract',
    'is_emittable',
    'assemble',
    'rule_map_signature',
]

"""Split a stylesheet into critical and remaining trees."""

import logging
from typing import Dict, List, Optional, Tuple

from .ast import RuleKind, RuleNode
from .rules import extend_group_prefix, is_comment, is_group_rule, is_style_rule, rule_key

logger = logging.getLogger(__name__)

# Top-level rule kinds that may end up in critical css
CRITICAL_KINDS = frozenset({
    RuleKind.MEDIA,
    RuleKind.RULE,
    RuleKind.CHARSET,
    RuleKind.FONT_FACE,
    RuleKind.SUPPORTS,
})


class AstPartitioner:
    """Partition a source tree by the selectors a page found critical.

    Both passes build new nodes; the source tree is never modified and the
    two outputs share no mutable state.

    Args:
        drop_keyframes: Leave @keyframes out of the critical tree
    """

    def __init__(self, drop_keyframes: bool = True):
        self.drop_keyframes = drop_keyframes
        self.critical_kinds = set(CRITICAL_KINDS)
        if not drop_keyframes:
            self.critical_kinds.add(RuleKind.KEYFRAMES)

    def partition(self, source_ast: RuleNode, selector_map) -> Tuple[RuleNode, RuleNode]:
        """Split a source tree into ``(critical_ast, rest_ast)``.

        Args:
            source_ast: Stylesheet node
            selector_map: Rule key -> critical selectors found by the page probe

        Returns:
            Tuple of critical and remaining stylesheet nodes
        """
        critical_ast, rest_ast, _ = self.partition_with_confirmed(source_ast, selector_map)
        return critical_ast, rest_ast

    def partition_with_confirmed(self, source_ast: RuleNode, selector_map):
        """Like ``partition`` but also return the confirmed selectors per rule key."""
        confirmed: Dict[str, Tuple[str, ...]] = {}

        candidates = [
            node for node in source_ast.iter_children()
            if node.kind in self.critical_kinds
        ]
        critical_rules = self._critical_collection(candidates, selector_map, confirmed, '')
        rest_rules = self._rest_collection(source_ast.iter_children(), confirmed, '')

        logger.debug(
            f"Partitioned {len(source_ast.children or ())} rules into "
            f"{len(critical_rules)} critical and {len(rest_rules)} remaining"
        )
        return (
            RuleNode.stylesheet(critical_rules),
            RuleNode.stylesheet(rest_rules),
            confirmed,
        )

    # Critical pass

    def _critical_collection(self, rules, selector_map, confirmed, group_prefix: str) -> List[RuleNode]:
        processed = []
        for node in rules:
            if is_comment(node):
                continue
            if node.kind == RuleKind.KEYFRAMES and self.drop_keyframes:
                continue

            if is_group_rule(node):
                prefix = extend_group_prefix(group_prefix, node)
                children = self._critical_collection(node.children, selector_map, confirmed, prefix)
                new_node = node.with_children(children) if children else None
            else:
                new_node = self._critical_rule(node, selector_map, confirmed, group_prefix)

            if new_node is not None:
                processed.append(new_node)
        return processed

    def _critical_rule(self, node: RuleNode, selector_map, confirmed, group_prefix: str) -> Optional[RuleNode]:
        key = rule_key(node, group_prefix)

        if is_style_rule(node):
            entry = selector_map.get(key)
            critical_selectors = set(entry.selectors) if entry is not None else set()
            kept = tuple(s for s in node.selectors if s in critical_selectors)
            confirmed[key] = kept
            if not kept:
                return None
            return node.with_selectors(kept)

        # Leaves without selectors (font-face, charset, keyframes) are kept as is
        confirmed[key] = ()
        return node

    # Rest pass

    def _rest_collection(self, rules, confirmed, group_prefix: str) -> List[RuleNode]:
        processed = []
        for node in rules:
            if is_comment(node):
                continue

            if is_group_rule(node):
                prefix = extend_group_prefix(group_prefix, node)
                children = self._rest_collection(node.children, confirmed, prefix)
                new_node = node.with_children(children) if children else None
            else:
                new_node = self._rest_rule(node, confirmed, group_prefix)

            if new_node is not None:
                processed.append(new_node)
        return processed

    def _rest_rule(self, node: RuleNode, confirmed, group_prefix: str) -> Optional[RuleNode]:
        key = rule_key(node, group_prefix)
        selectors = node.selectors

        if key in confirmed:
            claimed = set(confirmed[key])
            selectors = tuple(s for s in selectors if s not in claimed)

        if is_style_rule(node) and not selectors:
            return None
        if selectors == node.selectors:
            return node
        return node.with_selectors(selectors)


# Exported classes
__all__ = ['CRITICAL_KINDS', 'AstPartitioner']

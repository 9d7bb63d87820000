"""Decide per selector whether it styles above-the-fold content of a live page.

The rule tree is walked in Python with the same key scheme as the
partitioner. Only the geometry check runs inside the page: it receives the
list of cleaned selectors and answers with one boolean per selector.
"""

import re
import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .ast import RuleKind, RuleNode
from .rules import extend_group_prefix, is_group_rule, rule_key
from ..utils.config import PAGE_LOAD_TIMEOUT
from ..utils.error import ProbeExecutionError

logger = logging.getLogger(__name__)

# Rule kinds the probe walks, everything else is skipped
PROBED_KINDS = frozenset({RuleKind.SUPPORTS, RuleKind.MEDIA, RuleKind.RULE})

# Pseudo classes and elements that never change which elements a selector matches
NON_STRUCTURAL_PSEUDOS = ('after', 'before', 'first-line', 'first-letter', 'selection', 'visited')

# Pseudo selectors that do match a concrete element
EXCLUDED_PSEUDOS = ('root',)

PSEUDO_DEFAULT_REGEX = re.compile('|'.join(':?:' + p for p in NON_STRUCTURAL_PSEUDOS))
PSEUDO_BROWSER_REGEX = re.compile(r':?:-[a-z-]*')
PSEUDO_EXCLUDED_REGEX = re.compile('|'.join(':?:' + p for p in EXCLUDED_PSEUDOS))

# Stops further loading once the page had ``timeout`` ms, checked every frame
WATCHDOG_SCRIPT = """
(timeout) => {
    const start = Date.now();
    const check = () => {
        window.requestAnimationFrame(() => {
            if (Date.now() - start >= timeout) {
                window.stop();
            } else {
                check();
            }
        });
    };
    check();
    return true;
}
"""

# One boolean per selector: does any match start above the viewport bottom
ABOVE_FOLD_SCRIPT = """
(selectors) => {
    const height = window.innerHeight;
    const criticalNodes = new Set();

    const isAboveTheFold = (element) => {
        if (criticalNodes.has(element)) return true;
        if (element.getBoundingClientRect().top < height) {
            criticalNodes.add(element);
            return true;
        }
        return false;
    };

    return selectors.map((selector) => {
        let elements;
        try {
            elements = document.querySelectorAll(selector);
        } catch (e) {
            return false;
        }
        for (const element of elements) {
            if (isAboveTheFold(element)) return true;
        }
        return false;
    });
}
"""


@dataclass(frozen=True)
class CriticalSelectors:
    """Selectors of one rule that a page confirmed as critical."""

    selectors: Tuple[str, ...]
    kind: RuleKind

    def to_dict(self) -> dict:
        return {'selectors': list(self.selectors), 'type': self.kind.value}


CriticalSelectorMap = Dict[str, CriticalSelectors]


def compile_selector_pattern(pattern: str):
    """Compile a selector pattern, ``%`` matches any substring."""
    return re.compile('^' + '.*'.join(re.escape(part) for part in pattern.split('%')) + '$')


def clean_selector(selector: str) -> str:
    """Strip pseudos that do not influence which elements match."""
    if ':' not in selector:
        return selector
    selector = PSEUDO_DEFAULT_REGEX.sub('', selector)
    return PSEUDO_BROWSER_REGEX.sub('', selector).strip()


def is_pure_pseudo(selector: str) -> bool:
    """True for selectors like ``::selection`` that cannot be queried."""
    return selector.startswith(':') and PSEUDO_EXCLUDED_REGEX.search(selector) is None


class SelectorMatcher:
    """Exact or ``%`` wildcard selector patterns."""

    def __init__(self, patterns: Optional[Sequence[str]] = None):
        self.patterns = list(patterns or [])
        self._exact = set(self.patterns)
        self._regexes = [compile_selector_pattern(p) for p in self.patterns if '%' in p]

    def matches(self, selector: str) -> bool:
        if selector in self._exact:
            return True
        return any(regex.match(selector) for regex in self._regexes)

    def __bool__(self) -> bool:
        return bool(self.patterns)


class PageCriticalityProbe:
    """Compute the critical selector map of one rendered page.

    Args:
        load_timeout: Milliseconds after which the page is stopped from loading
        keep_selectors: Patterns that are always critical
        remove_selectors: Patterns that are never critical
    """

    def __init__(self, load_timeout: int = PAGE_LOAD_TIMEOUT,
                 keep_selectors: Optional[Sequence[str]] = None,
                 remove_selectors: Optional[Sequence[str]] = None):
        self.load_timeout = load_timeout
        self.keep = SelectorMatcher(keep_selectors)
        self.remove = SelectorMatcher(remove_selectors)

    def iter_style_rules(self, source_ast: RuleNode) -> Iterator[Tuple[str, RuleNode]]:
        """Yield ``(rule key, rule)`` for every probed style rule."""
        yield from self._walk(source_ast, '')

    def _walk(self, group: RuleNode, group_prefix: str):
        for node in group.iter_children():
            if node.kind not in PROBED_KINDS:
                logger.debug(f"Unprocessed rule type: {node.kind}")
                continue
            if is_group_rule(node):
                yield from self._walk(node, extend_group_prefix(group_prefix, node))
            elif node.selectors:
                yield rule_key(node, group_prefix), node

    def classify(self, selector: str) -> Optional[bool]:
        """Decide a selector without the page.

        Returns:
            True or False when a rule decides it, None when the page must be queried
        """
        if self.keep.matches(selector):
            return True
        if self.remove.matches(selector):
            return False
        if is_pure_pseudo(selector):
            return True
        return None

    def collect_queries(self, source_ast: RuleNode) -> List[str]:
        """Cleaned selectors that need a page query, in first-seen order."""
        queries = {}
        for _, node in self.iter_style_rules(source_ast):
            for selector in node.selectors:
                if self.classify(selector) is None:
                    cleaned = clean_selector(selector)
                    if cleaned:
                        queries.setdefault(cleaned, None)
        return list(queries)

    def build_selector_map(self, source_ast: RuleNode, above_fold: Dict[str, bool]) -> CriticalSelectorMap:
        """Combine rule decisions with page answers into a critical selector map.

        Args:
            source_ast: Stylesheet node
            above_fold: Cleaned selector -> whether it matched above the fold

        Returns:
            Rule key -> critical selectors
        """
        selector_map: CriticalSelectorMap = {}

        for key, node in self.iter_style_rules(source_ast):
            critical = []
            for selector in node.selectors:
                decision = self.classify(selector)
                if decision is None:
                    decision = above_fold.get(clean_selector(selector), False)
                if decision:
                    critical.append(selector)

            if not critical:
                continue

            existing = selector_map.get(key)
            if existing is not None:
                critical = list(existing.selectors) + [s for s in critical if s not in existing.selectors]
            selector_map[key] = CriticalSelectors(tuple(dict.fromkeys(critical)), node.kind)

        return selector_map

    async def install_watchdog(self, page) -> None:
        await page.evaluate(WATCHDOG_SCRIPT, self.load_timeout)

    async def evaluate(self, page, source_ast: RuleNode) -> CriticalSelectorMap:
        """Run the probe against a navigated page.

        Args:
            page: Playwright page
            source_ast: Stylesheet node

        Returns:
            Critical selector map of this page

        Raises:
            ProbeExecutionError: If the in-page evaluation fails
        """
        queries = self.collect_queries(source_ast)
        logger.debug(f"Querying {len(queries)} selectors in page")

        try:
            await self.install_watchdog(page)
            answers = await page.evaluate(ABOVE_FOLD_SCRIPT, queries) if queries else []
            answers = list(answers or [])
        except Exception as e:
            raise ProbeExecutionError(f"Critical selector evaluation failed: {e}") from e

        if len(answers) != len(queries):
            raise ProbeExecutionError(
                f"Page answered {len(answers)} of {len(queries)} selector queries"
            )

        selector_map = self.build_selector_map(source_ast, dict(zip(queries, answers)))
        logger.debug(f"Found critical selectors for {len(selector_map)} rules")
        return selector_map


# Exported classes and functions
__all__ = [
    'CriticalSelectors',
    'CriticalSelectorMap',
    'compile_selector_pattern',
    'clean_selector',
    'is_pure_pseudo',
    'SelectorMatcher',
    'PageCriticalityProbe',
]

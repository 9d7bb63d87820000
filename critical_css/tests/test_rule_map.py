"""Tests for rule map merging, assembly and subtraction."""

from ..core.ast import Declaration, RuleKind, RuleNode
from ..core.rule_map import (
    assemble,
    build_rule_map,
    content_hash,
    find_media_key,
    merge_into,
    new_rule_map,
    rule_map_signature,
    subtract,
)
from .conftest import style


def sheet(*rules):
    return RuleNode.stylesheet(rules)


class TestContentHash:
    """Tests for content_hash."""

    def test_equal_content(self):
        assert content_hash(style(['.a'], color='red')) == content_hash(style(['.a'], color='red'))

    def test_different_content(self):
        assert content_hash(style(['.a'], color='red')) != content_hash(style(['.a'], color='blue'))

    def test_position_does_not_matter(self):
        """Test that nodes parsed from dicts with positions hash alike."""
        with_position = RuleNode.from_dict({
            'type': 'rule', 'selectors': ['.a'],
            'declarations': [{'type': 'declaration', 'property': 'color', 'value': 'red'}],
            'position': {'start': {'line': 7, 'column': 1}},
        })
        assert content_hash(with_position) == content_hash(style(['.a'], color='red'))


class TestMergeInto:
    """Tests for merge_into."""

    def test_idempotence(self):
        ast = sheet(
            style(['.a'], color='red'),
            RuleNode.media('print', [style(['.b'], color='blue')]),
        )
        once = merge_into(new_rule_map(), ast)
        twice = merge_into(merge_into(new_rule_map(), ast), ast)
        assert rule_map_signature(once) == rule_map_signature(twice)
        assert all(len(bucket) == 1 for bucket in twice.values())

    def test_commutativity(self):
        a = sheet(style(['.a'], color='red'), RuleNode.media('print', [style(['.p'], color='red')]))
        b = sheet(style(['.a'], color='blue'), RuleNode.media('print', [style(['.q'], color='red')]))
        assert rule_map_signature(build_rule_map([a, b])) == rule_map_signature(build_rule_map([b, a]))

    def test_distinct_bodies_are_siblings(self):
        rule_map = build_rule_map([sheet(style(['.a'], color='red')), sheet(style(['.a'], color='blue'))])
        assert len(rule_map['.a']) == 2

    def test_media_occurrences_share_bucket(self):
        """Test that equivalent media queries end up under one key."""
        ast = sheet(
            RuleNode.media('all and (min-width: 600px)', [style(['.a'], color='red')]),
            RuleNode.media('(min-width: 600px)', [style(['.b'], color='red'), style(['.a'], color='red')]),
        )
        rule_map = merge_into(new_rule_map(), ast)
        assert list(rule_map) == ['@media (min-width: 600px)']
        assert [entry.rule.selectors for entry in rule_map['@media (min-width: 600px)']] == [('.a',), ('.b',)]

    def test_find_media_key(self):
        """Test that an equivalent media bucket is reused."""
        rule_map = merge_into(new_rule_map(), sheet(RuleNode.media('(min-width: 600px)', [style(['.a'], color='red')])))
        assert find_media_key(rule_map, 'all and (min-width: 600px)') == '@media (min-width: 600px)'
        assert find_media_key(rule_map, 'all and print') == '@media print'

    def test_comments_skipped(self):
        ast = sheet(RuleNode(RuleKind.COMMENT, text='x'), style(['.a'], color='red'))
        assert list(merge_into(new_rule_map(), ast)) == ['.a']

    def test_two_pages_same_rule(self):
        """Test that a rule found critical on two pages is stored once."""
        page = sheet(style(['.a'], color='red'))
        rule_map = build_rule_map([page, sheet(style(['.a'], color='red'))])
        assert len(rule_map['.a']) == 1


class TestAssemble:
    """Tests for assemble."""

    def test_insertion_order(self):
        ast = sheet(
            style(['.a'], color='red'),
            RuleNode.media('print', [style(['.b'], color='blue')]),
            style(['.c'], color='green'),
        )
        rebuilt = assemble(merge_into(new_rule_map(), ast))
        assert rebuilt == ast

    def test_invalid_entry_is_skipped(self):
        """Test that an invalid entry does not stop assembly of later entries."""
        ast = sheet(
            style(['.a'], color='red'),
            RuleNode(RuleKind.RULE, selectors=('.empty',), declarations=()),
            RuleNode(RuleKind.RULE, selectors=('.bare',)),
            style(['.c'], color='green'),
        )
        rebuilt = assemble(merge_into(new_rule_map(), ast))
        assert [node.selectors for node in rebuilt.children] == [('.a',), ('.c',)]

    def test_invalid_entry_in_media(self):
        ast = sheet(RuleNode.media('print', [
            RuleNode(RuleKind.RULE, selectors=('.empty',), declarations=()),
            style(['.b'], color='blue'),
        ]))
        rebuilt = assemble(merge_into(new_rule_map(), ast))
        assert rebuilt.children[0].children == (style(['.b'], color='blue'),)

    def test_empty_media_bucket_dropped(self):
        ast = sheet(RuleNode.media('print', [
            RuleNode(RuleKind.RULE, selectors=('.empty',), declarations=()),
        ]))
        assert assemble(merge_into(new_rule_map(), ast)).children == ()

    def test_rules_without_declaration_block(self):
        """Test that non-style rules without declarations are emitted."""
        charset = RuleNode(RuleKind.CHARSET, criterion='utf-8')
        rebuilt = assemble(merge_into(new_rule_map(), sheet(charset)))
        assert rebuilt.children == (charset,)


class TestSubtract:
    """Tests for subtract."""

    def test_removes_identical_bodies(self):
        font = RuleNode(RuleKind.FONT_FACE, declarations=(Declaration('font-family', 'Foo'),))
        critical = build_rule_map([sheet(font, style(['.a'], color='red'))])
        rest = build_rule_map([sheet(font, style(['.a'], color='red'), style(['.b'], color='blue'))])
        remaining = subtract(rest, critical)
        assert list(remaining) == ['.b']

    def test_keeps_different_bodies_under_same_key(self):
        critical = build_rule_map([sheet(style(['.a'], color='red'))])
        rest = build_rule_map([sheet(style(['.a'], color='red')), sheet(style(['.a'], margin='0'))])
        remaining = subtract(rest, critical)
        assert [entry.rule for entry in remaining['.a']] == [style(['.a'], margin='0')]

    def test_inputs_untouched(self):
        critical = build_rule_map([sheet(style(['.a'], color='red'))])
        rest = build_rule_map([sheet(style(['.a'], color='red'))])
        subtract(rest, critical)
        assert len(rest['.a']) == 1

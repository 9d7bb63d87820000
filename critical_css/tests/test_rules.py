"""Tests for rule classification and rule keys."""

from ..core.ast import RuleKind, RuleNode
from ..core.rules import (
    extend_group_prefix,
    group_id,
    is_group_rule,
    is_matching_media_criterion,
    normalize_media_criterion,
    rule_key,
)
from .conftest import style


class TestRuleKey:
    """Tests for rule_key."""

    def test_style_rule(self):
        assert rule_key(style(['.a', '.b'], color='red')) == '.a,.b'

    def test_group_prefix(self):
        assert rule_key(style(['.a'], color='red'), 'media(min-width: 1px)') == 'media(min-width: 1px).a'

    def test_group_prefix_with_separator(self):
        key = rule_key(style(['.a'], color='red'), 'media print', with_separator=True)
        assert key == 'media print-#-.a'

    def test_charset_and_keyframes(self):
        assert rule_key(RuleNode(RuleKind.CHARSET, criterion='utf-8')) == 'utf-8'
        assert rule_key(RuleNode(RuleKind.KEYFRAMES, criterion='spin', children=())) == 'spin'
        assert rule_key(RuleNode(RuleKind.KEYFRAME, selectors=('0%', '50%'))) == '0%,50%'

    def test_groups(self):
        assert rule_key(RuleNode.media('print')) == 'media print'
        assert rule_key(RuleNode.supports('(display: grid)')) == 'supports (display: grid)'

    def test_font_face(self):
        assert rule_key(RuleNode(RuleKind.FONT_FACE, declarations=())) == 'font-face'

    def test_comment_has_no_key(self):
        assert rule_key(RuleNode(RuleKind.COMMENT, text='x')) is False

    def test_other_kinds_with_criterion(self):
        assert rule_key(RuleNode(RuleKind.IMPORT, criterion='url(a.css)')) == 'import url(a.css)'

    def test_default_key(self):
        """Test that unclassified rules share the default key without prefix."""
        page = RuleNode(RuleKind.PAGE, declarations=())
        unknown = RuleNode(RuleKind.UNKNOWN, text='@document x {}')
        assert rule_key(page) == 'default'
        assert rule_key(unknown, 'media print') == 'default'

    def test_same_selector_in_different_media(self):
        """Test that nesting keeps identical selectors apart."""
        rule = style(['.a'], color='red')
        print_key = rule_key(rule, extend_group_prefix('', RuleNode.media('print')))
        screen_key = rule_key(rule, extend_group_prefix('', RuleNode.media('screen')))
        assert print_key != screen_key


class TestGroupPrefix:
    """Tests for group ids and prefix chains."""

    def test_group_id(self):
        assert group_id(RuleNode.media('print')) == 'mediaprint'
        assert group_id(RuleNode.stylesheet()) == ''

    def test_nested_prefix(self):
        prefix = extend_group_prefix('', RuleNode.supports('(display: grid)'))
        prefix = extend_group_prefix(prefix, RuleNode.media('print'))
        assert prefix == 'supports(display: grid)-##-mediaprint'

    def test_is_group_rule(self):
        assert is_group_rule(RuleNode.media('print'))
        assert is_group_rule(RuleNode.supports('(display: grid)'))
        assert not is_group_rule(RuleNode(RuleKind.KEYFRAMES, criterion='spin', children=()))
        assert not is_group_rule(style(['.a'], color='red'))


class TestMediaCriterion:
    """Tests for media query equivalence."""

    def test_normalize(self):
        assert normalize_media_criterion('all and (min-width: 10px)') == '(min-width: 10px)'
        assert normalize_media_criterion('screen') == 'screen'

    def test_matching(self):
        assert is_matching_media_criterion('all and (min-width: 10px)', '(min-width: 10px)')
        assert is_matching_media_criterion('(min-width: 10px)', 'all and (min-width: 10px)')
        assert is_matching_media_criterion('print', 'print')
        assert not is_matching_media_criterion('print', 'screen')

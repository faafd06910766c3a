"""
Unit tests for the tag grammar

Covers parsing, singular-key derivation, the regex tester and schedule
conversion.
"""

from tdm_classification.models.registry import SemanticRule
from tdm_classification.models.tag_grammar import (
    ParseResult,
    category_token,
    check_pattern,
    drop_key_prefix,
    is_category_token,
    is_semantic_tag,
    is_singular,
    is_singular_exact,
    merge_key_of,
    normalize_tag,
    parse_tag,
    schedule_to_tags,
    singular_key_of,
    tags_to_schedule,
    try_parse,
)


def _rule(pattern, key="k"):
    return SemanticRule(id=f"rule-{key}", key=key, validation_pattern=pattern)


class TestParseTag:
    """Tests for splitting tags into key and values"""

    def test_plain_label(self):
        assert parse_tag("Active account") == (None, ["Active account"])

    def test_two_segments(self):
        assert parse_tag("account:primary") == ("account", ["primary"])

    def test_three_segments(self):
        assert parse_tag("transactions:pending:3") == ("transactions", ["pending", "3"])

    def test_no_depth_limit(self):
        key, values = parse_tag("a:b:c:d:e")
        assert key == "a"
        assert values == ["b", "c", "d", "e"]

    def test_is_semantic_tag(self):
        assert is_semantic_tag("account:primary")
        assert not is_semantic_tag("Primary user")

    def test_category_token(self):
        assert category_token("customer-type") == "customer-type:"
        assert is_category_token("customer-type:")
        assert not is_category_token("customer-type:vip")
        assert not is_category_token("plain")


class TestTryParse:
    """Tests for rule-based validation"""

    def test_match_returns_lowercased_trimmed_tag(self, customer_type_rule):
        result = try_parse("  Customer-Type:VIP  ", [customer_type_rule])
        assert result == ParseResult(tag="customer-type:vip")

    def test_parsed_is_always_empty(self, customer_type_rule):
        result = try_parse("customer-type:retail", [customer_type_rule])
        assert result.parsed == {}

    def test_no_match_returns_none(self, customer_type_rule):
        assert try_parse("customer-type:gold", [customer_type_rule]) is None
        assert try_parse("Active account", [customer_type_rule]) is None

    def test_no_rules_never_match(self):
        assert try_parse("account:primary", []) is None

    def test_invalid_pattern_never_matches_and_never_raises(self):
        broken = _rule("^account:(primary", key="account")
        assert try_parse("account:primary", [broken]) is None

    def test_invalid_pattern_does_not_hide_later_rules(self):
        broken = _rule("([", key="broken")
        valid = _rule("^account:(primary|secondary)$", key="account")
        assert try_parse("account:primary", [broken, valid]).tag == "account:primary"

    def test_unanchored_pattern_matches_anywhere(self):
        rule = _rule("balance", key="balance")
        assert try_parse("low-balance:yes", [rule]).tag == "low-balance:yes"

    def test_normalize_tag_falls_back_to_lowercase(self, customer_type_rule):
        assert normalize_tag("  Active Account ", [customer_type_rule]) == "active account"
        assert normalize_tag("CUSTOMER-TYPE:RETAIL", [customer_type_rule]) == "customer-type:retail"


class TestSingularKeys:
    """Tests for singular-key derivation on the add and merge paths"""

    def test_schedule_uses_two_segments(self):
        assert singular_key_of("schedule:month:3") == "schedule:month"
        assert singular_key_of("schedule:days:10") == "schedule:days"

    def test_short_schedule_tag_uses_first_segment(self):
        assert singular_key_of("schedule:month") == "schedule"

    def test_other_three_segment_tags_use_first_segment(self):
        assert singular_key_of("transactions:pending:3") == "transactions"

    def test_merge_key_has_no_schedule_special_case(self):
        assert merge_key_of("schedule:month:3") == "schedule"
        assert merge_key_of("account:primary") == "account"

    def test_is_singular_requires_delimiter(self):
        assert not is_singular("account", ["account"])

    def test_is_singular_exact_key(self):
        assert is_singular("account:primary", ["account"])

    def test_is_singular_prefix_of_rule_key(self):
        # "schedule:month" starts with the rule key "schedule"
        assert is_singular("schedule:month:3", ["schedule"])
        assert is_singular("account-type:savings", ["account"])

    def test_is_singular_no_matching_rule(self):
        assert not is_singular("region:emea", ["account", "schedule"])

    def test_is_singular_exact_membership(self):
        assert is_singular_exact("account", {"account"})
        assert not is_singular_exact("account-type", {"account"})

    def test_drop_key_prefix(self):
        tags = ["account:primary", "account-type:savings", "account", "user:mfa"]
        assert drop_key_prefix(tags, "account") == ["account-type:savings", "account", "user:mfa"]


class TestCheckPattern:
    """Tests for the rule editor's regex tester"""

    def test_blank_inputs_return_none(self):
        assert check_pattern("", "sample") is None
        assert check_pattern("^a$", "") is None

    def test_invalid_pattern_returns_none(self):
        assert check_pattern("(", "anything") is None

    def test_match_and_mismatch(self):
        assert check_pattern("^card:(active|new)$", "card:new") is True
        assert check_pattern("^card:(active|new)$", "card:expired") is False

    def test_is_case_sensitive(self):
        assert check_pattern("^card:new$", "CARD:NEW") is False


class TestScheduleConversion:
    """Tests for reconditioning schedule <-> tag conversion"""

    def test_schedule_to_tags_in_dimension_order(self):
        assert schedule_to_tags({"year": 1, "month": 3}) == ["schedule:month:3", "schedule:year:1"]

    def test_empty_schedule(self):
        assert schedule_to_tags(None) == []
        assert schedule_to_tags({}) == []

    def test_tags_to_schedule_ignores_other_tags(self):
        tags = ["schedule:month:3", "schedule:days:10", "account:primary", "schedule:week:2", "schedule:year:x"]
        assert tags_to_schedule(tags) == {"month": 3, "days": 10}

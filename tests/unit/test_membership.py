"""
Unit tests for whole-token domain membership.
"""

from domain_recon.engine.membership import contains_token, missing_values, split_tokens


class TestSplitTokens:
    def test_splits_on_comma(self):
        assert split_tokens("a.com,b.com") == frozenset({"a.com", "b.com"})

    def test_none_is_empty(self):
        assert split_tokens(None) == frozenset()

    def test_custom_delimiter(self):
        assert split_tokens("a.com;b.com", delimiter=";") == frozenset({"a.com", "b.com"})


class TestContainsToken:
    """Membership must match whole tokens, never substrings"""

    def test_exact_token_found(self):
        assert contains_token("a.com,b.com", "a.com") is True

    def test_last_token_found(self):
        assert contains_token("a.com,b.com", "b.com") is True

    def test_prefix_of_token_not_found(self):
        assert contains_token("a.com,b.com", "b.co") is False

    def test_suffix_of_token_not_found(self):
        assert contains_token("xab.com,b.com", "ab.com") is False

    def test_empty_candidate_not_found(self):
        assert contains_token("a.com,b.com", "") is False

    def test_none_actual_contains_nothing(self):
        assert contains_token(None, "a.com") is False


class TestMissingValues:
    def test_reports_only_absent_values(self):
        assert list(missing_values("x.com,y.com", ["x.com", "y.com", "w.com"])) == ["w.com"]

    def test_preserves_input_order(self):
        assert list(missing_values("a.com", ["c.com", "a.com", "b.com"])) == ["c.com", "b.com"]

    def test_deduplicates(self):
        assert list(missing_values("", ["w.com", "w.com"])) == ["w.com"]

    def test_empty_actual_reports_everything(self):
        assert list(missing_values("", ["a.com", "b.com"])) == ["a.com", "b.com"]

    def test_nothing_expected(self):
        assert list(missing_values("a.com", [])) == []

"""Tests for the composite key model."""

from questionbank.core.identity import ParsedKey, compose, parse, suffixed_label


class TestCompose:
    """Tests for identity composition."""

    def test_compose_joins_page_and_label(self):
        """Identity is "{page}_{label}"."""
        assert compose(3, "1") == "3_1"
        assert compose(12, "3-a") == "12_3-a"

    def test_compose_keeps_suffixed_labels(self):
        """Rename suffixes are part of the label."""
        assert compose(1, "1(1)") == "1_1(1)"


class TestParse:
    """Tests for key parsing."""

    def test_parse_numeric_page(self):
        """Numeric prefix becomes the page."""
        assert parse("5_3") == ParsedKey(page=5, label="3")

    def test_parse_splits_on_first_separator_only(self):
        """Labels may themselves contain underscores."""
        assert parse("5_3_b") == ParsedKey(page=5, label="3_b")

    def test_parse_without_separator_is_label_only(self):
        """Legacy keys without a page degrade to label-only."""
        assert parse("q1") == ParsedKey(page=None, label="q1")

    def test_parse_non_numeric_prefix_keeps_whole_key(self):
        """Malformed prefixes make the whole key the label."""
        assert parse("abc_3") == ParsedKey(page=None, label="abc_3")

    def test_parse_empty_key(self):
        """Empty keys never raise."""
        assert parse("") == ParsedKey(page=None, label="")

    def test_parse_round_trips_compose(self):
        """parse() inverts compose() for canonical identities."""
        assert parse(compose(7, "2(1)")) == ParsedKey(page=7, label="2(1)")


class TestSuffixedLabel:
    """Tests for rename candidates."""

    def test_attempt_zero_is_label_itself(self):
        assert suffixed_label("3", 0) == "3"

    def test_attempts_add_parenthesized_counter(self):
        assert suffixed_label("3", 1) == "3(1)"
        assert suffixed_label("3", 12) == "3(12)"

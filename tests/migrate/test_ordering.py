"""Tests for version-aware identifier ordering."""

from __future__ import annotations

import pytest

from sqlspine.migrate.ordering import compare, less, sort_key, tokenize, version_int


class TestTokenize:
    def test_splits_digit_runs(self):
        assert tokenize("10_bar") == ["10", "_bar"]

    def test_timestamp_ids(self):
        assert tokenize("20160126_1100") == ["20160126", "_", "1100"]

    def test_pure_text(self):
        assert tokenize("abc") == ["abc"]

    def test_empty(self):
        assert tokenize("") == []


class TestLess:
    @pytest.mark.parametrize(
        "a, b",
        [
            ("1", "2"),
            ("1", "10"),
            ("1", "a"),
            ("1-a", "1-b"),
            ("1_foo", "10_bar"),
            ("20160126_1100", "20160126_1200"),
        ],
    )
    def test_ordered_pairs(self, a, b):
        assert less(a, b) is True
        assert less(b, a) is False

    def test_irreflexive(self):
        assert less("a", "a") is False
        assert less("10_bar", "10_bar") is False

    def test_prefix_sorts_first(self):
        assert less("1", "1_foo") is True
        assert less("1_foo", "1") is False

    def test_leading_zeros_do_not_change_magnitude(self):
        assert less("2", "010") is True

    def test_equal_magnitude_different_spelling_is_strict(self):
        # Exactly one direction holds so sorting stays deterministic
        assert less("007", "7") != less("7", "007")
        assert compare("007", "7") != 0


class TestSortKey:
    def test_sorted_matches_less(self):
        ids = ["10_add_last_name.sql", "2_alter_table.sql", "1_create_table.sql", "11_add_middle_name.sql"]
        assert sorted(ids, key=sort_key) == [
            "1_create_table.sql",
            "2_alter_table.sql",
            "10_add_last_name.sql",
            "11_add_middle_name.sql",
        ]

    def test_digits_before_letters(self):
        assert sorted(["b", "a", "3", "20"], key=sort_key) == ["3", "20", "a", "b"]


class TestVersionInt:
    def test_leading_digits(self):
        assert version_int("10_add_last_name.sql") == 10

    def test_plain_number(self):
        assert version_int("123") == 123

    def test_leading_zeros(self):
        assert version_int("0007_x") == 7

    def test_no_leading_digits(self):
        assert version_int("init.sql") is None

"""Tests for collection-path pluralisation."""

import pytest

from crudgen.core.strings import collection_path, pluralize


class TestPluralize:
    @pytest.mark.parametrize(
        "word,expected",
        [
            ("widget", "widgets"),
            ("Product", "products"),
            ("category", "categories"),
            ("person", "people"),
            ("status", "statuses"),
        ],
    )
    def test_known_forms(self, word, expected):
        assert pluralize(word) == expected

    def test_naive_rule_for_unknown_words(self):
        # Outside the irregular table the rule is just "+s"
        assert pluralize("story") == "storys"

    def test_extra_irregulars_take_precedence(self):
        assert pluralize("story", {"story": "stories"}) == "stories"
        assert pluralize("category", {"category": "cats"}) == "cats"

    def test_empty_word(self):
        assert pluralize("") == ""


class TestCollectionPath:
    def test_default_plural(self):
        assert collection_path("/api", "Widget") == "/api/widgets"

    def test_trailing_slash_prefix(self):
        assert collection_path("/api/", "category") == "/api/categories"

    def test_explicit_plural_override(self):
        assert collection_path("/api", "story", plural="stories") == "/api/stories"

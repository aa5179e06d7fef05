"""Tests for identifier helpers."""

import pytest

from erforge.codegen.naming import (
    camel_case,
    entity_name_for_table,
    pascal_case,
    pluralize,
    sanitize_class_name,
    singularize,
    snake_case,
    table_name,
)


class TestCaseConversion:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("OrderItem", "order_item"),
            ("createdAt", "created_at"),
            ("HTTPRequest", "http_request"),
            ("user id", "user_id"),
        ],
    )
    def test_snake_case(self, name, expected):
        assert snake_case(name) == expected

    def test_camel_case(self):
        assert camel_case("order_item") == "orderItem"
        assert camel_case("OrderItem") == "orderItem"

    def test_pascal_case(self):
        assert pascal_case("order_item") == "OrderItem"


class TestSanitizeClassName:
    def test_valid_name_unchanged(self):
        assert sanitize_class_name("User") == "User"

    def test_spaces_and_punctuation(self):
        assert sanitize_class_name("New Entity 1") == "New_Entity_1"
        assert sanitize_class_name("a--b") == "a_b"

    def test_leading_digit(self):
        assert sanitize_class_name("3D Model") == "_3D_Model"

    def test_empty(self):
        assert sanitize_class_name("!!!") == "_"


class TestPlurals:
    @pytest.mark.parametrize(
        "word, plural",
        [
            ("user", "users"),
            ("category", "categories"),
            ("day", "days"),
            ("box", "boxes"),
            ("address", "addresses"),
            ("match", "matches"),
            ("status", "statuses"),
        ],
    )
    def test_pluralize(self, word, plural):
        assert pluralize(word) == plural
        assert singularize(plural) == word

    def test_singular_word_kept(self):
        assert singularize("address") == "address"


class TestTableNames:
    def test_default_table(self):
        assert table_name("User") == "users"
        assert table_name("OrderItem") == "order_items"

    def test_custom_table(self):
        assert table_name("User", "people") == "people"

    def test_entity_for_table(self):
        assert entity_name_for_table("order_items") == "OrderItem"
        assert entity_name_for_table("categories") == "Category"

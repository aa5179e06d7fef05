"""Identifier helpers shared by the emitters and the DDL parser."""

import re

_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9_]")
_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")


def sanitize_class_name(name: str) -> str:
    """Turn a free-form node name into a valid TypeScript identifier.

    Characters other than letters, digits and underscores become
    underscores, runs of underscores collapse, leading and trailing
    underscores are dropped, and an underscore is prepended when the result
    is empty or starts with a digit.
    """
    sanitized = _NON_IDENTIFIER.sub("_", name)
    sanitized = re.sub(r"_+", "_", sanitized).strip("_")
    if not sanitized or sanitized[0].isdigit():
        sanitized = "_" + sanitized
    return sanitized


def _words(name: str) -> list[str]:
    spaced = _WORD_BOUNDARY.sub(" ", name)
    return [w for w in _SEPARATORS.split(spaced) if w]


def snake_case(name: str) -> str:
    """``OrderItem`` -> ``order_item``, ``createdAt`` -> ``created_at``."""
    return "_".join(w.lower() for w in _words(name))


def camel_case(name: str) -> str:
    """``order_item`` -> ``orderItem``, ``OrderItem`` -> ``orderItem``."""
    words = _words(name)
    if not words:
        return ""
    return words[0].lower() + "".join(w.capitalize() for w in words[1:])


def pascal_case(name: str) -> str:
    """``order_item`` -> ``OrderItem``."""
    return "".join(w.capitalize() for w in _words(name))


def pluralize(word: str) -> str:
    """English plural of a lower-case word (good enough for table names)."""
    if not word:
        return word
    if re.search(r"[^aeiou]y$", word):
        return word[:-1] + "ies"
    if re.search(r"(s|x|z|ch|sh)$", word):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    """Inverse of ``pluralize`` for the regular cases it produces."""
    if re.search(r"(ss|x|z|ch|sh|us)es$", word):
        return word[:-2]
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def table_name(entity_name: str, custom: str | None = None) -> str:
    """Table for an entity: the custom name, or the plural snake-case name."""
    if custom:
        return custom
    words = snake_case(entity_name).split("_")
    words[-1] = pluralize(words[-1])
    return "_".join(words)


def column_name(property_name: str) -> str:
    return snake_case(property_name)


def entity_name_for_table(table: str) -> str:
    """``order_items`` -> ``OrderItem``."""
    words = snake_case(table).split("_")
    words[-1] = singularize(words[-1])
    return pascal_case("_".join(words))

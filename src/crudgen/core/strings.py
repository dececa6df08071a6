"""
String utility functions for crudgen.

Provides the collection-path pluralisation used when routes are synthesized.
"""

from __future__ import annotations

# Plurals that don't follow the "+s" rule
_IRREGULAR_PLURALS = {
    "category": "categories",
    "company": "companies",
    "person": "people",
    "child": "children",
    "status": "statuses",
    "address": "addresses",
    "box": "boxes",
    "index": "indices",
    "datum": "data",
    "medium": "media",
}


def pluralize(word: str, irregular: dict[str, str] | None = None) -> str:
    """
    Convert a model name to its collection path segment.

    The rule is deliberately naive: append "s" unless the word appears in the
    irregular table. Models whose names fall outside the table should set
    ``ModelConfig.plural`` explicitly.

    Args:
        word: Singular word to pluralize
        irregular: Extra irregular forms, checked before the built-in table

    Returns:
        Plural form of the word

    Examples:
        >>> pluralize("widget")
        'widgets'
        >>> pluralize("category")
        'categories'
    """
    if not word:
        return word

    lower_word = word.lower()
    if irregular and lower_word in irregular:
        return irregular[lower_word]
    if lower_word in _IRREGULAR_PLURALS:
        return _IRREGULAR_PLURALS[lower_word]
    return lower_word + "s"


def collection_path(prefix: str, model_name: str, plural: str | None = None) -> str:
    """
    Build the collection path for a model.

    Examples:
        >>> collection_path("/api", "Product")
        '/api/products'
        >>> collection_path("/api/", "person", plural="folks")
        '/api/folks'
    """
    segment = plural or pluralize(model_name)
    return f"{prefix.rstrip('/')}/{segment.strip('/')}"

"""
Name normalization for GoHighLevel contact matching.

Produces the join key used to pair GoHighLevel contacts with HireOS
candidates during a sync run. The key is recomputed on every run and never
stored.
"""

from __future__ import annotations


def normalize_name(name: str | None) -> str:
    """
    Normalize a person's name into a comparable key.

    The whole value is lower-cased, split on single spaces, and each token is
    capitalized (first character upper-cased, remainder lower-cased) before
    being rejoined with single spaces and stripped.

    Diacritics and punctuation are left alone, and runs of spaces are not
    collapsed, so ``"Jane  Doe"`` and ``"Jane Doe"`` produce different keys.

    Args:
        name: Free-text name, possibly None

    Returns:
        Normalized name, or an empty string for None/empty input

    Example:
        >>> normalize_name("JOHN michael DOE")
        'John Michael Doe'
    """
    if not name:
        return ""

    words = name.strip().lower().split(" ")
    return " ".join(word[:1].title() + word[1:] for word in words).strip()


def name_tokens(name: str | None) -> list[str]:
    """
    Split a name into its normalized, non-empty tokens.

    Used by the diagnostic name analysis to compare individual first and last
    names; the production matcher only ever compares whole keys.
    """
    return [token for token in normalize_name(name).split(" ") if token]

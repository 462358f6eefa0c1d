"""Canonical forms for free-text category labels."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")


def normalize_category(text: str | None) -> str:
    """Canonicalize a label for comparison.

    Case-folds, strips diacritics (NFD + drop combining marks), trims and
    collapses internal whitespace. Idempotent.
    """
    decomposed = unicodedata.normalize("NFD", (text or "").casefold())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped).strip()


def is_category(value: str | None, target: str | None) -> bool:
    """True when both labels are non-empty and canonically equal."""
    left = normalize_category(value)
    if not left:
        return False
    return left == normalize_category(target)


def sanitize_text(value: str | None) -> str | None:
    """Trimmed text, or None when nothing is left."""
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None

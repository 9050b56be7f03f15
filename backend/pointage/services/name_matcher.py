"""
Name similarity for roster imports.

A roster row whose matricule already exists is only merged when its name
is close enough to the stored one; anything else is reported as a conflict
instead of overwriting a different person.
"""

import re

from thefuzz import fuzz

from pointage.services.analytics import normalize_search

_ws_re = re.compile(r"\s+")


def _clean_name(raw: str) -> str:
    """Accent-free, case-folded, whitespace collapsed."""
    return _ws_re.sub(" ", normalize_search(raw))


def name_similarity(a: str, b: str) -> float:
    """``token_sort_ratio`` scaled to 0..1; word order does not matter."""
    left, right = _clean_name(a), _clean_name(b)
    if not left or not right:
        return 0.0
    return fuzz.token_sort_ratio(left, right) / 100

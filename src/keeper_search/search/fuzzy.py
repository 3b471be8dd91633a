"""Fuzzy matching for typo-tolerant search.

This module provides edit distance calculation and the similarity-based
fuzzy contribution used by the scorer and by ``fuzzy`` filters.

Defaults (overridable through settings):
- A word counts as a fuzzy match when its similarity to the term exceeds 0.6
- Fuzzy matches are weighted at half the strength of an exact hit
- Only the best matching word contributes for a given term
- Adjacent transpositions ("tesst" for "tests") count as a single edit

``similarity`` deliberately uses this transposition-aware distance instead of
plain Levenshtein, so "ab" against "ba" scores 0.5 rather than 0.0.
"""

from __future__ import annotations


DEFAULT_FUZZY_THRESHOLD = 0.6
DEFAULT_FUZZY_WEIGHT = 0.5


def levenshtein_distance(s1: str, s2: str, *, transpositions: bool = False) -> int:
    """Calculate the Levenshtein (edit) distance between two strings.

    Uses dynamic programming for O(m*n) time and O(min(m, n)) space.
    Comparison is case-sensitive; callers normalize beforehand. With
    ``transpositions`` an adjacent swap also counts as one edit (optimal
    string alignment distance).

    Examples:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("tesst", "tests")
        2
        >>> levenshtein_distance("tesst", "tests", transpositions=True)
        1
        >>> levenshtein_distance("", "abc")
        3
    """
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    # Use shorter string as columns for space efficiency
    if len(s1) > len(s2):
        s1, s2 = s2, s1

    m, n = len(s1), len(s2)

    # Three rows: the one before last is needed for transpositions
    before_row = [0] * (m + 1)
    prev_row = list(range(m + 1))
    curr_row = [0] * (m + 1)

    for j in range(1, n + 1):
        curr_row[0] = j
        for i in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(
                prev_row[i] + 1,  # deletion
                curr_row[i - 1] + 1,  # insertion
                prev_row[i - 1] + cost,  # substitution
            )
            if (
                transpositions
                and i > 1
                and j > 1
                and s1[i - 1] == s2[j - 2]
                and s1[i - 2] == s2[j - 1]
            ):
                curr_row[i] = min(curr_row[i], before_row[i - 2] + 1)

        before_row, prev_row, curr_row = prev_row, curr_row, before_row

    return prev_row[m]


def similarity(word: str, term: str) -> float:
    """Return ``1 - distance / max(len(word), len(term))``.

    Two empty strings are considered identical.

    Examples:
        >>> similarity("tests", "tesst")
        0.8
    """
    longest = max(len(word), len(term))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(word, term, transpositions=True) / longest


def fuzzy_score(
    text: str,
    term: str,
    *,
    threshold: float = DEFAULT_FUZZY_THRESHOLD,
    weight: float = DEFAULT_FUZZY_WEIGHT,
) -> float:
    """Best weighted similarity between ``term`` and any whitespace word of ``text``.

    Words whose similarity does not exceed ``threshold`` contribute nothing.

    Examples:
        >>> fuzzy_score("write unit tests", "tesst")
        0.4
        >>> fuzzy_score("write unit tests", "zzzz")
        0.0
    """
    best = 0.0
    for word in text.split():
        ratio = similarity(word, term)
        if ratio > threshold:
            best = max(best, ratio * weight)
    return best


def is_fuzzy_match(text: str, term: str, *, threshold: float = DEFAULT_FUZZY_THRESHOLD) -> bool:
    """Return True when some word of ``text`` is similar enough to ``term``."""
    return any(similarity(word, term) > threshold for word in text.split())

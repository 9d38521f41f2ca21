"""
Text similarity for picking the listing that best matches a component name.

Uses the Sørensen–Dice coefficient over character bigrams, ignoring
whitespace. Pure Python implementation - no external dependencies.
"""

import re
from collections import Counter
from collections.abc import Sequence

WHITESPACE_PATTERN = re.compile(r"\s+")


def _bigrams(text: str) -> Counter[str]:
    return Counter(text[i : i + 2] for i in range(len(text) - 1))


def compare_two_strings(first: str, second: str) -> float:
    """
    Similarity of two strings between 0.0 (nothing shared) and 1.0 (equal).

    Comparison is case-sensitive. Strings shorter than two characters
    (after whitespace removal) only match when identical.
    """
    first = WHITESPACE_PATTERN.sub("", first)
    second = WHITESPACE_PATTERN.sub("", second)

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = _bigrams(first)
    second_bigrams = _bigrams(second)
    intersection = sum((first_bigrams & second_bigrams).values())

    return (2.0 * intersection) / (len(first) + len(second) - 2)


def find_best_match(term: str, candidates: Sequence[str]) -> tuple[int, float] | None:
    """
    Return ``(index, rating)`` of the candidate most similar to ``term``.

    The earliest candidate wins ties. There is no minimum rating: any
    non-empty sequence produces a match. Returns None for no candidates.
    """
    best_index = -1
    best_rating = -1.0
    for index, candidate in enumerate(candidates):
        rating = compare_two_strings(term, candidate)
        if rating > best_rating:
            best_index, best_rating = index, rating

    if best_index < 0:
        return None
    return best_index, best_rating

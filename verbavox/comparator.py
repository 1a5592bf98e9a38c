"""Positional comparison of a typed transcript against the reference text."""

from __future__ import annotations

from typing import List, Tuple

from .models import Comparison


def _words(text: str) -> List[str]:
    return text.lower().split()


def _percent(part: int, whole: int) -> int:
    # Half-up rounding; round() would pick the even neighbour on .5.
    return (200 * part + whole) // (2 * whole)


def compare_transcripts(reference: str, submitted: str) -> Comparison:
    """Score ``submitted`` against ``reference`` word by word.

    Words are compared by position only, case-insensitively. Submitted words
    past the end of the reference are ignored and reference words with no
    counterpart count as mistakes. There is no alignment or fuzzy matching, so
    a single dropped word shifts every following position.
    """

    expected = _words(reference)
    given = _words(submitted)
    total_words = len(expected)
    if total_words == 0:
        return Comparison(accuracy=0, mistakes=0, total_words=0)

    correct_words = sum(1 for want, got in zip(expected, given) if want == got)
    return Comparison(
        accuracy=_percent(correct_words, total_words),
        mistakes=total_words - correct_words,
        total_words=total_words,
    )


def word_diff(reference: str, submitted: str) -> List[Tuple[str, str, bool]]:
    """Return ``(expected, given, correct)`` for every reference position."""

    expected = _words(reference)
    given = _words(submitted)
    diff = []
    for index, word in enumerate(expected):
        typed = given[index] if index < len(given) else ""
        diff.append((word, typed, word == typed))
    return diff

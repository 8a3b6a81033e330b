"""Approximate string matching for 'did you mean?' suggestions."""

from __future__ import annotations

from collections.abc import Iterable


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit-cost insertions, deletions and substitutions."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def match_threshold(value: str) -> int:
    """Largest distance still accepted as a typo of ``value``."""
    return max(1, int(len(value) * 0.4))


def find_closest_match(value: str, candidates: Iterable[str]) -> str | None:
    """Closest candidate by case-insensitive edit distance, or ``None``.

    Returns ``None`` when there are no candidates or the best one is further
    away than :func:`match_threshold`. Ties keep the first candidate. Never raises.
    """
    if not isinstance(value, str) or not value:
        return None
    needle = value.lower()
    best: str | None = None
    best_distance = match_threshold(value) + 1
    for candidate in candidates:
        if not isinstance(candidate, str):
            continue
        distance = levenshtein(needle, candidate.lower())
        if distance < best_distance:
            best, best_distance = candidate, distance
    return best

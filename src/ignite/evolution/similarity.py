"""Jaccard similarity between note-id sets.

Jaccard similarity = |A ∩ B| / |A ∪ B|
"""

from dataclasses import dataclass
from typing import AbstractSet, Hashable, Iterable, Sequence


@dataclass(frozen=True)
class BestMatch:
    id: str
    score: float
    size: int


def jaccard(set_a: AbstractSet[Hashable], set_b: AbstractSet[Hashable]) -> float:
    """Jaccard similarity of two sets, in [0, 1].

    Two empty sets are identical (1.0); one empty set shares nothing (0.0).
    """
    if not set_a and not set_b:
        return 1.0
    if not set_a or not set_b:
        return 0.0

    # Iterate the smaller set
    small, large = (set_a, set_b) if len(set_a) <= len(set_b) else (set_b, set_a)
    intersection = sum(1 for item in small if item in large)
    union = len(set_a) + len(set_b) - intersection
    return intersection / union


def jaccard_lists(items_a: Iterable[Hashable], items_b: Iterable[Hashable]) -> float:
    """Jaccard similarity of two iterables; duplicates collapse."""
    return jaccard(set(items_a), set(items_b))


def match_key(match: BestMatch) -> tuple[float, int, str]:
    """Sort key where the smallest key is the best match.

    Higher score first, then the larger candidate, then the smaller id.
    """
    return (-match.score, -match.size, match.id)


def find_best_match(
    target: AbstractSet[Hashable],
    candidates: Sequence[tuple[str, AbstractSet[Hashable]]],
) -> BestMatch | None:
    """Best matching candidate for ``target``, or None if there are none.

    The choice depends only on the candidates' contents, never on their
    order in ``candidates``.
    """
    best: BestMatch | None = None
    for candidate_id, candidate_set in candidates:
        match = BestMatch(id=candidate_id, score=jaccard(target, candidate_set), size=len(candidate_set))
        if best is None or match_key(match) < match_key(best):
            best = match
    return best

"""Apply cluster evolutions to tracked concepts.

Each concept is handled on its own using only its current cluster id and a
read-only lookup of evolutions keyed by old cluster id:

- no evolution for its cluster: unchanged
- rename: keep the name, move to the new cluster, record the event
- remap: move to the new cluster, take the new name if one is known
- dissolved: the concept is dropped (None); its history goes with it
"""

from collections import Counter
from dataclasses import dataclass
from typing import Literal, Mapping

from ..models import ClusterEvolution, EvolutionEvent, TrackedConcept, now_ms, touch

EvolveAction = Literal["renamed", "remapped", "dissolved", "unchanged"]


@dataclass(frozen=True)
class AutoEvolveResult:
    concept: TrackedConcept | None
    was_modified: bool
    action: EvolveAction


@dataclass(frozen=True)
class EvolutionStats:
    renamed: int = 0
    remapped: int = 0
    dissolved: int = 0
    unchanged: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "renamed": self.renamed,
            "remapped": self.remapped,
            "dissolved": self.dissolved,
            "unchanged": self.unchanged,
        }


def auto_evolve_concept(
    concept: TrackedConcept,
    evolution: ClusterEvolution,
    new_name: str | None = None,
    now: int | None = None,
) -> AutoEvolveResult:
    """Evolve a single concept. The input concept is left untouched."""
    if concept.cluster_id != evolution.old_cluster_id:
        return AutoEvolveResult(concept=concept, was_modified=False, action="unchanged")

    if evolution.type == "dissolved":
        return AutoEvolveResult(concept=None, was_modified=True, action="dissolved")

    ts = now if now is not None else now_ms()
    event = EvolutionEvent(
        ts=ts,
        from_cluster=evolution.old_cluster_id,
        to_cluster=evolution.new_cluster_id,
        type=evolution.type,
        overlap_score=evolution.overlap_score,
    )
    history = concept.evolution_history + (event,)

    if evolution.type == "rename":
        evolved = touch(concept, now=ts, cluster_id=evolution.new_cluster_id, evolution_history=history)
        return AutoEvolveResult(concept=evolved, was_modified=True, action="renamed")

    if evolution.type == "remap":
        evolved = touch(
            concept,
            now=ts,
            canonical_name=new_name or concept.canonical_name,
            cluster_id=evolution.new_cluster_id,
            evolution_history=history,
        )
        return AutoEvolveResult(concept=evolved, was_modified=True, action="remapped")

    return AutoEvolveResult(concept=concept, was_modified=False, action="unchanged")


def auto_evolve_batch(
    concepts: list[TrackedConcept],
    evolutions: list[ClusterEvolution],
    new_names: Mapping[str, str] | None = None,
    now: int | None = None,
) -> list[AutoEvolveResult]:
    """Evolve every concept; returns exactly one result per input concept.

    ``new_names`` maps a *new* cluster id to the name it was given, used for
    remaps.
    """
    new_names = new_names or {}
    by_old_cluster = {e.old_cluster_id: e for e in evolutions}
    ts = now if now is not None else now_ms()

    results = []
    for concept in concepts:
        evolution = by_old_cluster.get(concept.cluster_id)
        if evolution is None:
            results.append(AutoEvolveResult(concept=concept, was_modified=False, action="unchanged"))
            continue
        name = new_names.get(evolution.new_cluster_id) if evolution.new_cluster_id else None
        results.append(auto_evolve_concept(concept, evolution, new_name=name, now=ts))
    return results


def filter_surviving_concepts(results: list[AutoEvolveResult]) -> list[TrackedConcept]:
    return [r.concept for r in results if r.concept is not None]


def calculate_evolution_stats(results: list[AutoEvolveResult]) -> EvolutionStats:
    counts = Counter(r.action for r in results)
    return EvolutionStats(
        renamed=counts["renamed"],
        remapped=counts["remapped"],
        dissolved=counts["dissolved"],
        unchanged=counts["unchanged"],
    )

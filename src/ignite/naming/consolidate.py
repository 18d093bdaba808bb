"""Fold naming results back into clusters and produce tracked concepts.

Steps, all over results taken in submission order (the order of the
clusters that were sent for naming):

1. claim merges: each suggested merge target is absorbed by the first
   result that claims it
2. collect misfit notes from every result
3. build one concept per cluster that was not absorbed, owning its own
   notes plus those of the clusters it absorbed, minus misfits
4. skip clusters left with no notes

Clusters without a naming result fall back to their first candidate name
(or "Unnamed Concept") with a neutral quizzability score. Running this again
with any subset of results is safe.
"""

import logging
from dataclasses import dataclass, field
from itertools import chain
from types import MappingProxyType
from typing import Mapping

from ..evolution import AutoEvolveResult
from ..models import (
    DEFAULT_QUIZZABILITY,
    UNNAMED_CONCEPT,
    Cluster,
    ConceptNamingResult,
    MisfitNote,
    TrackedConcept,
    create_tracked_concept,
    is_quizzable_score,
    now_ms,
    touch,
)

logger = logging.getLogger(__name__)


@dataclass
class ConsolidationResult:
    concepts: list[TrackedConcept]
    misfit_notes: list[MisfitNote]
    merge_map: Mapping[str, str] = field(default_factory=dict)
    # Distinct misfit note ids that were actually dropped from a cluster
    removed_note_ids: set[str] = field(default_factory=set)
    # Clusters (with whatever they absorbed) left with no notes
    empty_cluster_ids: list[str] = field(default_factory=list)


@dataclass
class ReconcileResult:
    concepts: list[TrackedConcept]
    updated: int = 0
    created: int = 0
    dropped: int = 0
    # Concept id -> id of the concept it was merged into
    merged: dict[str, str] = field(default_factory=dict)


def order_results(clusters: list[Cluster], results: list[ConceptNamingResult]) -> list[ConceptNamingResult]:
    """Sort results into submission order; unknown clusters go last, as given."""
    position = {}
    for index, cluster in enumerate(clusters):
        position.setdefault(cluster.id, index)
    return sorted(results, key=lambda r: position.get(r.cluster_id, len(position)))


def build_merge_map(clusters: list[Cluster], results: list[ConceptNamingResult]) -> Mapping[str, str]:
    """Map each absorbed cluster id to the cluster id that absorbs it.

    First writer wins. Claims on unknown clusters, self-merges and claims
    that would close a cycle are ignored. Chains (A absorbs B, B absorbs C)
    resolve to the root, so C maps to A.
    """
    known = {c.id for c in clusters}
    claims: dict[str, str] = {}

    def root(cluster_id: str) -> str:
        while cluster_id in claims:
            cluster_id = claims[cluster_id]
        return cluster_id

    for result in order_results(clusters, results):
        claimant = result.cluster_id
        if claimant not in known:
            continue
        for target in result.suggested_merges:
            if target == claimant or target not in known:
                continue
            if target in claims:
                logger.debug("Merge of %s into %s ignored: already claimed by %s", target, claimant, claims[target])
                continue
            if root(claimant) == target:
                logger.warning("Merge of %s into %s ignored: would create a merge cycle", target, claimant)
                continue
            claims[target] = claimant

    return MappingProxyType({absorbed: root(absorbed) for absorbed in claims})


def collect_misfits(results: list[ConceptNamingResult]) -> tuple[list[MisfitNote], frozenset[str]]:
    """All misfit entries, and the set of their note ids."""
    notes = [m for r in results for m in r.misfit_notes]
    return notes, frozenset(m.note_id for m in notes)


def process_concept_naming(
    clusters: list[Cluster],
    results: list[ConceptNamingResult],
    now: int | None = None,
) -> ConsolidationResult:
    """Create tracked concepts from clusters and their naming results."""
    ts = now if now is not None else now_ms()
    ordered = order_results(clusters, results)

    result_by_cluster: dict[str, ConceptNamingResult] = {}
    for result in ordered:
        result_by_cluster.setdefault(result.cluster_id, result)

    merge_map = build_merge_map(clusters, ordered)
    misfit_notes, misfit_ids = collect_misfits(ordered)

    absorbed_by: dict[str, list[Cluster]] = {}
    for cluster in clusters:
        if cluster.id in merge_map:
            absorbed_by.setdefault(merge_map[cluster.id], []).append(cluster)

    consolidation = ConsolidationResult(concepts=[], misfit_notes=misfit_notes, merge_map=merge_map)
    seen: set[str] = set()

    for cluster in clusters:
        if cluster.id in merge_map or cluster.id in seen:
            continue
        seen.add(cluster.id)

        members = chain(cluster.note_ids, *(c.note_ids for c in absorbed_by.get(cluster.id, [])))
        note_ids = list(dict.fromkeys(members))
        kept = [n for n in note_ids if n not in misfit_ids]
        consolidation.removed_note_ids.update(n for n in note_ids if n in misfit_ids)

        if not kept:
            logger.info("Cluster %s has no notes left after misfit removal; no concept created", cluster.id)
            consolidation.empty_cluster_ids.append(cluster.id)
            continue

        result = result_by_cluster.get(cluster.id)
        if result is None:
            logger.debug("No naming result for cluster %s, using fallback name", cluster.id)
            name = cluster.candidate_names[0] if cluster.candidate_names else UNNAMED_CONCEPT
            concept = create_tracked_concept(name or UNNAMED_CONCEPT, kept, cluster.id, DEFAULT_QUIZZABILITY, now=ts)
        else:
            concept = create_tracked_concept(
                result.canonical_name, kept, cluster.id, result.quizzability_score, now=ts,
            )
        consolidation.concepts.append(concept)

    if merge_map:
        logger.info("Merged %d cluster(s) into others", len(merge_map))
    return consolidation


def create_concept_from_result(
    result: ConceptNamingResult,
    cluster: Cluster,
    exclude_misfits: frozenset[str] | set[str] = frozenset(),
) -> TrackedConcept:
    note_ids = [n for n in cluster.note_ids if n not in exclude_misfits]
    return create_tracked_concept(result.canonical_name, note_ids, cluster.id, result.quizzability_score)


def filter_quizzable_concepts(concepts: list[TrackedConcept]) -> list[TrackedConcept]:
    return [c for c in concepts if is_quizzable_score(c.quizzability_score)]


def filter_non_quizzable_concepts(concepts: list[TrackedConcept]) -> list[TrackedConcept]:
    return [c for c in concepts if not is_quizzable_score(c.quizzability_score)]


def reconcile_concepts(
    evolved: list[AutoEvolveResult],
    candidates: list[TrackedConcept],
    merge_map: Mapping[str, str],
    now: int | None = None,
) -> ReconcileResult:
    """Fold freshly named candidates into concepts that survived evolution.

    Only concepts the evolver moved into the new run (renamed or remapped)
    are matched to candidates; concept identity is never inferred from a
    reused cluster id.

    - a moved concept follows ``merge_map`` to the cluster that absorbed
      its cluster, then takes that cluster's candidate (notes, score,
      cluster id) while keeping its own id and history
    - when several concepts land on one cluster, the first (input order)
      keeps it and the others are merged into it (see ``merged``)
    - a moved concept whose cluster produced no candidate lost all its
      notes to misfit removal and is dropped
    - dissolved concepts are gone; unchanged concepts are kept as is
    - candidates nobody claimed become new concepts
    """
    ts = now if now is not None else now_ms()
    by_cluster = {c.cluster_id: c for c in candidates}
    holder: dict[str, str] = {}
    outcome = ReconcileResult(concepts=[])

    for result in evolved:
        concept = result.concept
        if concept is None:
            continue
        if result.action == "unchanged":
            outcome.concepts.append(concept)
            continue

        target = merge_map.get(concept.cluster_id, concept.cluster_id)
        candidate = by_cluster.get(target)
        if candidate is None:
            logger.info("Dropping concept %s: cluster %s has no notes left", concept.id, target)
            outcome.dropped += 1
            continue

        if target in holder:
            logger.info("Merging concept %s into %s: both track cluster %s", concept.id, holder[target], target)
            outcome.merged[concept.id] = holder[target]
            continue
        holder[target] = concept.id

        current = (concept.note_ids, concept.quizzability_score, concept.cluster_id)
        if current != (candidate.note_ids, candidate.quizzability_score, target):
            concept = touch(
                concept,
                now=ts,
                note_ids=candidate.note_ids,
                quizzability_score=candidate.quizzability_score,
                cluster_id=target,
            )
            outcome.updated += 1
        outcome.concepts.append(concept)

    for candidate in candidates:
        if candidate.cluster_id not in holder:
            outcome.concepts.append(candidate)
            outcome.created += 1

    return outcome

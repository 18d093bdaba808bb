"""End-to-end concept pipeline: summarize, name, consolidate, evolve.

``run_naming_pipeline`` turns one run's clusters into named concepts.
``run_concept_cycle`` additionally carries the previous run's concepts
forward, so concept ids and histories survive re-clustering.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from .config import estimate_cost
from .evolution import (
    EvolutionConfig,
    EvolutionDetectionResult,
    EvolutionStats,
    auto_evolve_batch,
    calculate_evolution_stats,
    detect_evolution,
)
from .models import (
    Cluster,
    ConceptNamingResponse,
    ConceptNamingResult,
    MisfitNote,
    TokenUsage,
    TrackedConcept,
    now_ms,
)
from .naming import (
    ConceptNamer,
    NamingConfig,
    NamingError,
    ReconcileResult,
    SummaryConfig,
    batch_cluster_summaries,
    filter_non_quizzable_concepts,
    filter_quizzable_concepts,
    prepare_cluster_summaries,
    process_concept_naming,
    reconcile_concepts,
)
from .naming.summaries import display_title

logger = logging.getLogger(__name__)


@dataclass
class PipelineStats:
    total_clusters: int = 0
    total_concepts: int = 0
    quizzable_concept_count: int = 0
    non_quizzable_concept_count: int = 0
    naming_batches: int = 0
    failed_batches: int = 0
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    estimated_cost: float = 0.0
    misfit_notes_removed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalClusters": self.total_clusters,
            "totalConcepts": self.total_concepts,
            "quizzableConceptCount": self.quizzable_concept_count,
            "nonQuizzableConceptCount": self.non_quizzable_concept_count,
            "namingBatches": self.naming_batches,
            "failedBatches": self.failed_batches,
            "tokenUsage": self.token_usage.to_dict(),
            "estimatedCost": round(self.estimated_cost, 6),
            "misfitNotesRemoved": self.misfit_notes_removed,
        }


@dataclass
class NamingPipelineResult:
    concepts: list[TrackedConcept]
    quizzable_concepts: list[TrackedConcept]
    non_quizzable_concepts: list[TrackedConcept]
    misfit_notes: list[MisfitNote]
    results: list[ConceptNamingResult]
    stats: PipelineStats
    # Absorbed cluster id -> absorbing cluster id
    merge_map: Mapping[str, str] = field(default_factory=dict)


@dataclass
class ConceptCycleResult:
    concepts: list[TrackedConcept]
    detection: EvolutionDetectionResult
    evolution_stats: EvolutionStats
    reconcile: ReconcileResult
    naming: NamingPipelineResult


async def _name_batches(
    namer: ConceptNamer,
    batches: list,
    concurrency: int,
) -> list[ConceptNamingResponse | None]:
    """Name all batches, at most ``concurrency`` in flight.

    Returns responses in submission order; a failed batch is None.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def name_batch(index: int, batch) -> ConceptNamingResponse | None:
        async with semaphore:
            logger.debug("Naming batch %d/%d (%d clusters)", index, len(batches), len(batch))
            try:
                return await namer.name_concepts_batch(batch)
            except NamingError as e:
                logger.warning("Naming batch %d/%d failed, using fallback names: %s", index, len(batches), e)
                return None

    return await asyncio.gather(*(name_batch(i, b) for i, b in enumerate(batches, 1)))


def resolve_misfit_note_ids(
    results: list[ConceptNamingResult],
    clusters: list[Cluster],
    title_lookup: Mapping[str, str],
) -> list[ConceptNamingResult]:
    """Map misfit entries reported by title back to the cluster's note ids.

    The naming prompt only shows titles, so collaborators often answer with
    a title where a note id is expected.
    """
    clusters_by_id = {c.id: c for c in clusters}
    resolved = []
    for result in results:
        cluster = clusters_by_id.get(result.cluster_id)
        if cluster is None or not result.misfit_notes:
            resolved.append(result)
            continue

        members = set(cluster.note_ids)
        by_title = {
            display_title(title_lookup[n]): n for n in cluster.note_ids if n in title_lookup
        }
        misfits = [
            MisfitNote(note_id=by_title[m.note_id], reason=m.reason)
            if m.note_id not in members and m.note_id in by_title else m
            for m in result.misfit_notes
        ]
        resolved.append(replace(result, misfit_notes=misfits))
    return resolved


async def run_naming_pipeline(
    clusters: list[Cluster],
    title_lookup: Mapping[str, str],
    namer: ConceptNamer,
    config: dict[str, Any] | None = None,
    now: int | None = None,
) -> NamingPipelineResult:
    """Name clusters and consolidate them into tracked concepts.

    A batch whose naming call fails does not stop the others; its clusters
    get fallback names.
    """
    config = config or {}
    summary_cfg = SummaryConfig.from_config(config)
    naming_cfg = NamingConfig.from_config(config)

    summaries = prepare_cluster_summaries(clusters, title_lookup, summary_cfg)
    batches = batch_cluster_summaries(summaries, summary_cfg.batch_size)
    logger.info("Naming %d cluster(s) in %d batch(es)", len(clusters), len(batches))

    responses = await _name_batches(namer, batches, naming_cfg.concurrency)

    results: list[ConceptNamingResult] = []
    usage = TokenUsage()
    failed = 0
    for response in responses:
        if response is None:
            failed += 1
            continue
        results.extend(response.results)
        if response.usage:
            usage = usage + response.usage

    results = resolve_misfit_note_ids(results, clusters, title_lookup)
    consolidation = process_concept_naming(clusters, results, now=now)

    quizzable = filter_quizzable_concepts(consolidation.concepts)
    non_quizzable = filter_non_quizzable_concepts(consolidation.concepts)
    stats = PipelineStats(
        total_clusters=len(clusters),
        total_concepts=len(consolidation.concepts),
        quizzable_concept_count=len(quizzable),
        non_quizzable_concept_count=len(non_quizzable),
        naming_batches=len(batches),
        failed_batches=failed,
        token_usage=usage,
        estimated_cost=estimate_cost(config, namer.model, usage.input_tokens, usage.output_tokens),
        misfit_notes_removed=len(consolidation.removed_note_ids),
    )
    logger.info(
        "Named %d concept(s) from %d cluster(s); %d batch(es) failed",
        stats.total_concepts, stats.total_clusters, failed,
    )

    return NamingPipelineResult(
        concepts=consolidation.concepts,
        quizzable_concepts=quizzable,
        non_quizzable_concepts=non_quizzable,
        misfit_notes=consolidation.misfit_notes,
        results=results,
        stats=stats,
        merge_map=consolidation.merge_map,
    )


async def run_concept_cycle(
    old_clusters: list[Cluster],
    new_clusters: list[Cluster],
    concepts: list[TrackedConcept],
    title_lookup: Mapping[str, str],
    namer: ConceptNamer,
    config: dict[str, Any] | None = None,
    evolution_config: EvolutionConfig | None = None,
    now: int | None = None,
) -> ConceptCycleResult:
    """Carry tracked concepts from the previous clustering run to a new one.

    Old concepts are evolved against the new clusters (renamed, remapped or
    dissolved), refreshed with the new run's notes and carried along when
    their cluster is merged into another. Any new cluster no concept claims
    becomes a new concept.
    """
    config = config or {}
    ts = now if now is not None else now_ms()
    evolution_config = evolution_config or EvolutionConfig.from_config(config)

    detection = detect_evolution(old_clusters, new_clusters, evolution_config)
    naming = await run_naming_pipeline(new_clusters, title_lookup, namer, config, now=ts)

    names: dict[str, str] = {}
    for result in naming.results:
        names.setdefault(result.cluster_id, result.canonical_name)
    # A remapped concept takes the name of the cluster that ends up holding its notes
    new_names = {
        c.id: names[naming.merge_map.get(c.id, c.id)]
        for c in new_clusters
        if naming.merge_map.get(c.id, c.id) in names
    }

    evolved = auto_evolve_batch(concepts, detection.evolutions, new_names, now=ts)
    evolution_stats = calculate_evolution_stats(evolved)
    reconciled = reconcile_concepts(evolved, naming.concepts, naming.merge_map, now=ts)
    logger.info(
        "Cycle: %d renamed, %d remapped, %d dissolved, %d unchanged; %d merged, %d new concept(s)",
        evolution_stats.renamed, evolution_stats.remapped, evolution_stats.dissolved,
        evolution_stats.unchanged, len(reconciled.merged), reconciled.created,
    )

    return ConceptCycleResult(
        concepts=reconciled.concepts,
        detection=detection,
        evolution_stats=evolution_stats,
        reconcile=reconciled,
        naming=naming,
    )

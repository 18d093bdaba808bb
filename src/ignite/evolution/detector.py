"""Detect how clusters evolved between two clustering runs."""

import logging
from dataclasses import dataclass, field
from typing import Any

from ..models import Cluster, ClusterEvolution, EvolutionType, EVOLUTION_TYPES
from .similarity import find_best_match

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvolutionConfig:
    """Overlap thresholds for classifying an evolution.

    - score >= rename_threshold: rename (same concept, cluster id changed)
    - remap_threshold <= score < rename_threshold: remap (concept drifted)
    - below remap_threshold: dissolved
    """
    rename_threshold: float = 0.6
    remap_threshold: float = 0.2

    def __post_init__(self):
        if not 0.0 <= self.remap_threshold <= self.rename_threshold <= 1.0:
            raise ValueError(
                f"Invalid evolution thresholds: need 0 <= remap ({self.remap_threshold}) "
                f"<= rename ({self.rename_threshold}) <= 1"
            )

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "EvolutionConfig":
        evo_cfg = config.get("evolution", {})
        return cls(
            rename_threshold=float(evo_cfg.get("rename_threshold", 0.6)),
            remap_threshold=float(evo_cfg.get("remap_threshold", 0.2)),
        )


DEFAULT_EVOLUTION_CONFIG = EvolutionConfig()


@dataclass
class EvolutionDetectionResult:
    """One evolution per old cluster plus the genuinely new cluster ids."""
    evolutions: list[ClusterEvolution] = field(default_factory=list)
    dissolved: list[str] = field(default_factory=list)
    new_cluster_ids: list[str] = field(default_factory=list)


def classify_evolution(score: float, config: EvolutionConfig = DEFAULT_EVOLUTION_CONFIG) -> EvolutionType:
    if score >= config.rename_threshold:
        return "rename"
    if score >= config.remap_threshold:
        return "remap"
    return "dissolved"


def detect_evolution(
    old_clusters: list[Cluster],
    new_clusters: list[Cluster],
    config: EvolutionConfig = DEFAULT_EVOLUTION_CONFIG,
) -> EvolutionDetectionResult:
    """Match every old cluster to at most one new cluster.

    Matching is greedy per old cluster; several old clusters may pick the
    same new cluster. Ties are broken by candidate size, then id, so the
    result does not depend on the order of ``new_clusters``.
    """
    result = EvolutionDetectionResult()
    matched: set[str] = set()

    candidates = [(c.id, frozenset(c.note_ids)) for c in new_clusters]

    for old in old_clusters:
        best = find_best_match(frozenset(old.note_ids), candidates)
        score = best.score if best else 0.0
        evolution_type = classify_evolution(score, config) if best else "dissolved"

        if evolution_type == "dissolved":
            result.dissolved.append(old.id)
            result.evolutions.append(ClusterEvolution(
                old_cluster_id=old.id,
                new_cluster_id=None,
                overlap_score=score,
                type="dissolved",
            ))
            continue

        matched.add(best.id)
        result.evolutions.append(ClusterEvolution(
            old_cluster_id=old.id,
            new_cluster_id=best.id,
            overlap_score=score,
            type=evolution_type,
        ))

    result.new_cluster_ids = [c.id for c in new_clusters if c.id not in matched]

    logger.debug(
        "Evolution: %d old vs %d new clusters -> %d dissolved, %d new",
        len(old_clusters), len(new_clusters), len(result.dissolved), len(result.new_cluster_ids),
    )
    return result


def find_evolution_for_cluster(old_cluster_id: str, evolutions: list[ClusterEvolution]) -> ClusterEvolution | None:
    for evolution in evolutions:
        if evolution.old_cluster_id == old_cluster_id:
            return evolution
    return None


def group_evolutions_by_type(evolutions: list[ClusterEvolution]) -> dict[str, list[ClusterEvolution]]:
    groups: dict[str, list[ClusterEvolution]] = {t: [] for t in EVOLUTION_TYPES}
    for evolution in evolutions:
        groups[evolution.type].append(evolution)
    return groups

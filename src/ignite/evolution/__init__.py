"""Cluster evolution detection and concept auto-evolution."""

from .detector import (
    DEFAULT_EVOLUTION_CONFIG,
    EvolutionConfig,
    EvolutionDetectionResult,
    classify_evolution,
    detect_evolution,
    find_evolution_for_cluster,
    group_evolutions_by_type,
)
from .evolver import (
    AutoEvolveResult,
    EvolutionStats,
    auto_evolve_batch,
    auto_evolve_concept,
    calculate_evolution_stats,
    filter_surviving_concepts,
)
from .similarity import BestMatch, find_best_match, jaccard, jaccard_lists

__all__ = [
    "AutoEvolveResult",
    "BestMatch",
    "DEFAULT_EVOLUTION_CONFIG",
    "EvolutionConfig",
    "EvolutionDetectionResult",
    "EvolutionStats",
    "auto_evolve_batch",
    "auto_evolve_concept",
    "calculate_evolution_stats",
    "classify_evolution",
    "detect_evolution",
    "filter_surviving_concepts",
    "find_best_match",
    "find_evolution_for_cluster",
    "group_evolutions_by_type",
    "jaccard",
    "jaccard_lists",
]

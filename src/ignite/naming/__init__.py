"""LLM concept naming: summaries, the naming protocol and consolidation."""

from .consolidate import (
    ConsolidationResult,
    ReconcileResult,
    build_merge_map,
    collect_misfits,
    create_concept_from_result,
    filter_non_quizzable_concepts,
    filter_quizzable_concepts,
    process_concept_naming,
    reconcile_concepts,
)
from .errors import NamingError, NamingResponseError, NamingTransportError
from .namer import ClaudeConceptNamer, ConceptNamer, NamingConfig, RuleBasedConceptNamer, get_concept_namer
from .parser import extract_json, parse_naming_response
from .rules import DEFAULT_RULE_SET, MisfitRule, NamingRule, NamingRuleSet
from .summaries import SummaryConfig, batch_cluster_summaries, prepare_cluster_summaries, select_representative_titles

__all__ = [
    "ClaudeConceptNamer",
    "ConceptNamer",
    "ConsolidationResult",
    "DEFAULT_RULE_SET",
    "MisfitRule",
    "NamingConfig",
    "NamingError",
    "NamingResponseError",
    "NamingRule",
    "NamingRuleSet",
    "NamingTransportError",
    "ReconcileResult",
    "RuleBasedConceptNamer",
    "SummaryConfig",
    "batch_cluster_summaries",
    "build_merge_map",
    "collect_misfits",
    "create_concept_from_result",
    "extract_json",
    "filter_non_quizzable_concepts",
    "filter_quizzable_concepts",
    "get_concept_namer",
    "parse_naming_response",
    "prepare_cluster_summaries",
    "process_concept_naming",
    "reconcile_concepts",
    "select_representative_titles",
]

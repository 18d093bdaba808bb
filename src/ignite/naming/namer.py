"""Naming collaborators: the interface, a Claude-backed namer and an offline one."""

import json
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import anthropic

from ..models import ClusterSummary, ConceptNamingResponse, ConceptNamingResult, MisfitNote, TokenUsage
from .errors import NamingTransportError
from .parser import parse_naming_response
from .prompts import CONCEPT_NAMING_SYSTEM_PROMPT, build_concept_naming_prompt
from .rules import DEFAULT_RULE_SET, NamingRuleSet

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


@dataclass(frozen=True)
class NamingConfig:
    backend: str = "claude"
    model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    temperature: float = 0.3
    max_retries: int = 3
    concurrency: int = 4
    timeout: float = 120.0

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "NamingConfig":
        naming_cfg = config.get("naming", {})
        return cls(
            backend=naming_cfg.get("backend", "claude"),
            model=config.get("claude_model", DEFAULT_MODEL),
            max_tokens=int(naming_cfg.get("max_tokens", 4096)),
            temperature=float(naming_cfg.get("temperature", 0.3)),
            max_retries=int(naming_cfg.get("max_retries", 3)),
            concurrency=max(1, int(naming_cfg.get("concurrency", 4))),
            timeout=float(naming_cfg.get("timeout", 120.0)),
        )


class ConceptNamer(ABC):
    """Names a batch of cluster summaries.

    Implementations may return fewer results than summaries; missing
    clusters fall back to default naming downstream.
    """

    model: str = ""

    @abstractmethod
    async def name_concepts_batch(self, summaries: list[ClusterSummary]) -> ConceptNamingResponse:
        """Name one batch. Raises NamingError when the batch yields nothing usable."""


class ClaudeConceptNamer(ConceptNamer):
    """Names concepts with the Anthropic Messages API.

    Transport retries are left to the SDK (``max_retries``).
    """

    def __init__(self, config: dict[str, Any], client: anthropic.AsyncAnthropic | None = None):
        self.naming = NamingConfig.from_config(config)
        self.model = self.naming.model
        if client is None:
            api_key = config.get("claude_api_key")
            if not api_key:
                raise ValueError("Claude API key required for naming. Set ANTHROPIC_API_KEY or claude_api_key in config.")
            client = anthropic.AsyncAnthropic(
                api_key=api_key,
                max_retries=self.naming.max_retries,
                timeout=self.naming.timeout,
            )
        self.client = client

    async def name_concepts_batch(self, summaries: list[ClusterSummary]) -> ConceptNamingResponse:
        prompt = build_concept_naming_prompt(summaries)
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.naming.max_tokens,
                temperature=self.naming.temperature,
                system=CONCEPT_NAMING_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise NamingTransportError(f"Claude naming request failed: {e}") from e

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        results = parse_naming_response(text)
        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        logger.debug("Claude named %d/%d cluster(s)", len(results), len(summaries))
        return ConceptNamingResponse(results=results, usage=usage)


@dataclass
class NamingCall:
    summaries: list[ClusterSummary]
    timestamp: float = field(default_factory=time.time)


class RuleBasedConceptNamer(ConceptNamer):
    """Deterministic, offline namer driven by a NamingRuleSet."""

    model = "rules"

    def __init__(self, rules: NamingRuleSet = DEFAULT_RULE_SET):
        self.rules = rules
        self.calls: list[NamingCall] = []

    async def name_concepts_batch(self, summaries: list[ClusterSummary]) -> ConceptNamingResponse:
        self.calls.append(NamingCall(summaries=list(summaries)))
        results = [self._name_cluster(s) for s in summaries]
        self._suggest_merges(results)
        return ConceptNamingResponse(
            results=results,
            usage=TokenUsage(
                input_tokens=_estimate_tokens([s.to_dict() for s in summaries]),
                output_tokens=_estimate_tokens([r.to_dict() for r in results]),
            ),
        )

    def _name_cluster(self, summary: ClusterSummary) -> ConceptNamingResult:
        search_text = " ".join([
            *summary.candidate_names,
            *summary.representative_titles,
            *summary.common_tags,
            summary.folder_path,
        ])

        misfits = []
        for title in summary.representative_titles:
            reason = self.rules.misfit_reason(title)
            if reason:
                misfits.append(MisfitNote(note_id=title, reason=reason))

        rule = self.rules.match(search_text)
        if rule:
            return ConceptNamingResult(
                cluster_id=summary.cluster_id,
                canonical_name=rule.canonical_name,
                quizzability_score=rule.quizzability_score,
                non_quizzable_reason=rule.non_quizzable_reason,
                misfit_notes=misfits,
            )

        name = (
            (summary.candidate_names[0] if summary.candidate_names else "")
            or _name_from_folder(summary.folder_path)
            or "Unnamed Concept"
        )
        return ConceptNamingResult(
            cluster_id=summary.cluster_id,
            canonical_name=name,
            quizzability_score=0.5,
            misfit_notes=misfits,
        )

    @staticmethod
    def _suggest_merges(results: list[ConceptNamingResult]) -> None:
        """The first result of each same-named group absorbs the others."""
        by_name: dict[str, list[ConceptNamingResult]] = {}
        for result in results:
            by_name.setdefault(result.canonical_name.lower(), []).append(result)
        for group in by_name.values():
            if len(group) > 1:
                group[0].suggested_merges = [r.cluster_id for r in group[1:]]


def _name_from_folder(folder_path: str) -> str:
    """'projects/golf-swing' -> 'Golf Swing'."""
    parts = [p for p in folder_path.split("/") if p]
    if not parts:
        return ""
    return parts[-1].replace("-", " ").replace("_", " ").title()


def _estimate_tokens(payload: Any) -> int:
    # ~4 chars per token
    return math.ceil(len(json.dumps(payload)) / 4)


def get_concept_namer(config: dict[str, Any], offline: bool = False) -> ConceptNamer:
    """Factory: return the namer selected by config (or the offline one)."""
    backend = "rules" if offline else NamingConfig.from_config(config).backend

    if backend == "claude":
        return ClaudeConceptNamer(config)
    elif backend == "rules":
        return RuleBasedConceptNamer()
    else:
        raise ValueError(f"Unknown naming backend: {backend}")

"""Data models used throughout Ignite.

Python attributes are snake_case; the JSON shapes exchanged with the
clustering and naming collaborators (and written to run files) are camelCase,
so every record has a ``to_dict``/``from_dict`` pair.
"""

import random
import string
import time
from dataclasses import dataclass, field, replace
from typing import Any, Literal

EvolutionType = Literal["rename", "remap", "dissolved"]
EVOLUTION_TYPES: tuple[str, ...] = ("rename", "remap", "dissolved")

# Scores >= this are quizzable
QUIZZABILITY_THRESHOLD = 0.4
DEFAULT_QUIZZABILITY = 0.5
UNNAMED_CONCEPT = "Unnamed Concept"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def clamp_score(value: Any) -> float:
    """Clamp a score into [0, 1]; anything non-numeric becomes 0.5."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_QUIZZABILITY
    if value != value:  # NaN
        return DEFAULT_QUIZZABILITY
    return max(0.0, min(1.0, float(value)))


def is_quizzable_score(score: float) -> bool:
    return score >= QUIZZABILITY_THRESHOLD


def _base36(length: int = 6) -> str:
    alphabet = string.digits + string.ascii_lowercase
    return "".join(random.choice(alphabet) for _ in range(length))


def generate_concept_id() -> str:
    return f"concept-{now_ms()}-{_base36()}"


@dataclass(frozen=True)
class Cluster:
    """A group of notes produced by one clustering run.

    Ids are only meaningful within the run that produced them.
    """
    id: str
    note_ids: tuple[str, ...]
    candidate_names: tuple[str, ...] = ()
    dominant_tags: tuple[str, ...] = ()
    folder_path: str = ""
    internal_link_density: float = 0.0
    created_at: int = field(default_factory=now_ms)
    reasons: tuple[str, ...] = ()

    def __post_init__(self):
        # Accept lists from callers but store tuples so the cluster stays immutable
        for name in ("note_ids", "candidate_names", "dominant_tags", "reasons"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    @property
    def note_count(self) -> int:
        return len(self.note_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "noteIds": list(self.note_ids),
            "candidateNames": list(self.candidate_names),
            "dominantTags": list(self.dominant_tags),
            "folderPath": self.folder_path,
            "internalLinkDensity": self.internal_link_density,
            "createdAt": self.created_at,
            "reasons": list(self.reasons),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cluster":
        if "id" not in data:
            raise ValueError("Cluster record is missing 'id'")
        return cls(
            id=str(data["id"]),
            note_ids=tuple(data.get("noteIds") or ()),
            candidate_names=tuple(data.get("candidateNames") or ()),
            dominant_tags=tuple(data.get("dominantTags") or ()),
            folder_path=data.get("folderPath") or "",
            internal_link_density=float(data.get("internalLinkDensity") or 0.0),
            created_at=int(data.get("createdAt") or now_ms()),
            reasons=tuple(data.get("reasons") or ()),
        )


@dataclass(frozen=True)
class ClusterEvolution:
    """How one old cluster relates to the new run."""
    old_cluster_id: str
    new_cluster_id: str | None
    overlap_score: float
    type: EvolutionType

    def to_dict(self) -> dict[str, Any]:
        return {
            "oldClusterId": self.old_cluster_id,
            "newClusterId": self.new_cluster_id,
            "overlapScore": self.overlap_score,
            "type": self.type,
        }


@dataclass(frozen=True)
class EvolutionEvent:
    """One entry of a concept's audit trail."""
    ts: int
    from_cluster: str
    to_cluster: str | None
    type: EvolutionType
    overlap_score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "ts": self.ts,
            "fromCluster": self.from_cluster,
            "toCluster": self.to_cluster,
            "type": self.type,
            "overlapScore": self.overlap_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EvolutionEvent":
        return cls(
            ts=int(data["ts"]),
            from_cluster=data["fromCluster"],
            to_cluster=data.get("toCluster"),
            type=data["type"],
            overlap_score=float(data.get("overlapScore", 0.0)),
        )


@dataclass(frozen=True)
class ConceptMetadata:
    created_at: int
    last_updated: int


@dataclass(frozen=True)
class TrackedConcept:
    """A named concept whose identity survives re-clustering.

    Instances are never changed in place: the evolver and the consolidation
    step hand back updated copies (see ``dataclasses.replace``).
    """
    id: str
    canonical_name: str
    note_ids: tuple[str, ...]
    quizzability_score: float
    cluster_id: str
    metadata: ConceptMetadata
    evolution_history: tuple[EvolutionEvent, ...] = ()

    def __post_init__(self):
        if not isinstance(self.note_ids, tuple):
            object.__setattr__(self, "note_ids", tuple(self.note_ids))
        if not isinstance(self.evolution_history, tuple):
            object.__setattr__(self, "evolution_history", tuple(self.evolution_history))

    @property
    def is_quizzable(self) -> bool:
        return is_quizzable_score(self.quizzability_score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "canonicalName": self.canonical_name,
            "noteIds": list(self.note_ids),
            "quizzabilityScore": self.quizzability_score,
            "clusterId": self.cluster_id,
            "metadata": {
                "createdAt": self.metadata.created_at,
                "lastUpdated": self.metadata.last_updated,
            },
            "evolutionHistory": [e.to_dict() for e in self.evolution_history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackedConcept":
        meta = data.get("metadata") or {}
        created = int(meta.get("createdAt") or now_ms())
        return cls(
            id=data["id"],
            canonical_name=data["canonicalName"],
            note_ids=tuple(data.get("noteIds") or ()),
            quizzability_score=clamp_score(data.get("quizzabilityScore")),
            cluster_id=data["clusterId"],
            metadata=ConceptMetadata(
                created_at=created,
                last_updated=int(meta.get("lastUpdated") or created),
            ),
            evolution_history=tuple(
                EvolutionEvent.from_dict(e) for e in data.get("evolutionHistory") or ()
            ),
        )


def create_tracked_concept(
    canonical_name: str,
    note_ids: list[str] | tuple[str, ...],
    cluster_id: str,
    quizzability_score: float = DEFAULT_QUIZZABILITY,
    concept_id: str | None = None,
    now: int | None = None,
) -> TrackedConcept:
    """Create a brand-new concept with an empty history."""
    ts = now if now is not None else now_ms()
    return TrackedConcept(
        id=concept_id or generate_concept_id(),
        canonical_name=canonical_name,
        note_ids=tuple(note_ids),
        quizzability_score=clamp_score(quizzability_score),
        cluster_id=cluster_id,
        metadata=ConceptMetadata(created_at=ts, last_updated=ts),
    )


def touch(concept: TrackedConcept, now: int | None = None, **changes: Any) -> TrackedConcept:
    """Copy a concept with changes applied and ``last_updated`` bumped."""
    ts = now if now is not None else now_ms()
    metadata = ConceptMetadata(created_at=concept.metadata.created_at, last_updated=ts)
    return replace(concept, metadata=metadata, **changes)


@dataclass(frozen=True)
class MisfitNote:
    """A note the naming collaborator says does not belong to its cluster."""
    note_id: str
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"noteId": self.note_id, "reason": self.reason}


@dataclass
class ConceptNamingResult:
    """Naming collaborator output for one cluster."""
    cluster_id: str
    canonical_name: str
    quizzability_score: float
    non_quizzable_reason: str | None = None
    suggested_merges: list[str] = field(default_factory=list)
    misfit_notes: list[MisfitNote] = field(default_factory=list)

    def __post_init__(self):
        self.quizzability_score = clamp_score(self.quizzability_score)

    @property
    def is_quizzable(self) -> bool:
        return is_quizzable_score(self.quizzability_score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "clusterId": self.cluster_id,
            "canonicalName": self.canonical_name,
            "quizzabilityScore": self.quizzability_score,
            "nonQuizzableReason": self.non_quizzable_reason,
            "suggestedMerges": list(self.suggested_merges),
            "misfitNotes": [m.to_dict() for m in self.misfit_notes],
        }


@dataclass(frozen=True)
class ClusterSummary:
    """Compact view of a cluster sent to the naming collaborator."""
    cluster_id: str
    candidate_names: tuple[str, ...]
    representative_titles: tuple[str, ...]
    common_tags: tuple[str, ...]
    folder_path: str
    note_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "clusterId": self.cluster_id,
            "candidateNames": list(self.candidate_names),
            "representativeTitles": list(self.representative_titles),
            "commonTags": list(self.common_tags),
            "folderPath": self.folder_path,
            "noteCount": self.note_count,
        }


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict[str, int]:
        return {"inputTokens": self.input_tokens, "outputTokens": self.output_tokens}


@dataclass
class ConceptNamingResponse:
    """One batch worth of naming results."""
    results: list[ConceptNamingResult]
    usage: TokenUsage | None = None

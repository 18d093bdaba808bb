"""Pydantic schema for naming collaborator responses.

Required fields are strict; everything else is lenient and normalised so a
single sloppy field never throws away an otherwise usable result.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

from ..models import ConceptNamingResult, MisfitNote, clamp_score


class MisfitNotePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    note_id: StrictStr = Field(alias="noteId")
    reason: str = ""

    @field_validator("reason", mode="before")
    @classmethod
    def _reason_text(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


class NamingResultPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    cluster_id: StrictStr = Field(alias="clusterId")
    canonical_name: StrictStr = Field(alias="canonicalName")
    quizzability_score: float = Field(default=0.5, alias="quizzabilityScore")
    non_quizzable_reason: Optional[str] = Field(default=None, alias="nonQuizzableReason")
    suggested_merges: List[str] = Field(default_factory=list, alias="suggestedMerges")
    misfit_notes: List[MisfitNotePayload] = Field(default_factory=list, alias="misfitNotes")

    @field_validator("quizzability_score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> float:
        return clamp_score(value)

    @field_validator("non_quizzable_reason", mode="before")
    @classmethod
    def _reason_or_none(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("suggested_merges", mode="before")
    @classmethod
    def _string_ids(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, str)]

    @field_validator("misfit_notes", mode="before")
    @classmethod
    def _valid_misfits(cls, value: Any) -> list[MisfitNotePayload]:
        # Each entry stands alone: bad ones are dropped, good ones kept
        if not isinstance(value, list):
            return []
        valid = []
        for entry in value:
            if isinstance(entry, dict) and isinstance(entry.get("noteId"), str):
                valid.append(MisfitNotePayload.model_validate(entry))
        return valid

    def to_result(self) -> ConceptNamingResult:
        return ConceptNamingResult(
            cluster_id=self.cluster_id,
            canonical_name=self.canonical_name,
            quizzability_score=self.quizzability_score,
            non_quizzable_reason=self.non_quizzable_reason,
            suggested_merges=list(self.suggested_merges),
            misfit_notes=[MisfitNote(note_id=m.note_id, reason=m.reason) for m in self.misfit_notes],
        )

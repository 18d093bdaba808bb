"""Turn clusters into compact summaries for the naming prompt."""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Mapping

from ..models import Cluster, ClusterSummary


@dataclass(frozen=True)
class SummaryConfig:
    max_representative_titles: int = 5
    max_common_tags: int = 5
    batch_size: int = 20

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "SummaryConfig":
        summary_cfg = config.get("summaries", {})
        naming_cfg = config.get("naming", {})
        return cls(
            max_representative_titles=int(summary_cfg.get("max_representative_titles", 5)),
            max_common_tags=int(summary_cfg.get("max_common_tags", 5)),
            batch_size=int(naming_cfg.get("batch_size", 20)),
        )


def extract_title(path: str) -> str:
    """'notes/react/Hooks Intro.md' -> 'Hooks Intro'."""
    name = PurePosixPath(path.replace("\\", "/")).name or path
    return re.sub(r"\.md$", "", name, flags=re.IGNORECASE)


def display_title(value: str) -> str:
    """Note path (`.md`) -> its file name; any other value is already a title."""
    if value.lower().endswith(".md"):
        return extract_title(value)
    return value.strip()


def prepare_cluster_summaries(
    clusters: list[Cluster],
    title_lookup: Mapping[str, str],
    config: SummaryConfig | None = None,
) -> list[ClusterSummary]:
    """Summarize each cluster for the naming collaborator.

    ``title_lookup`` maps note id to a title or a note path (see
    ``display_title``). Notes missing from it contribute no title but still
    count towards ``note_count``.
    """
    config = config or SummaryConfig()

    summaries = []
    for cluster in clusters:
        titles = [
            display_title(title_lookup[note_id])
            for note_id in cluster.note_ids
            if note_id in title_lookup
        ]
        summaries.append(ClusterSummary(
            cluster_id=cluster.id,
            candidate_names=tuple(cluster.candidate_names),
            representative_titles=tuple(select_representative_titles(titles, config.max_representative_titles)),
            common_tags=tuple(cluster.dominant_tags[:config.max_common_tags]),
            folder_path=cluster.folder_path,
            note_count=cluster.note_count,
        ))
    return summaries


def select_representative_titles(titles: list[str], max_titles: int) -> list[str]:
    """Pick up to ``max_titles`` titles that span the cluster's range.

    Always keeps the first title, then repeatedly adds the title least
    similar to those already chosen. Ties go to the earlier title.
    """
    if max_titles <= 0:
        return []
    if len(titles) <= max_titles:
        return list(titles)

    selected = [titles[0]]
    remaining = list(titles[1:])

    while len(selected) < max_titles and remaining:
        best_index = 0
        best_score = -1.0
        for i, candidate in enumerate(remaining):
            min_similarity = min(_title_similarity(s, candidate) for s in selected)
            diversity = 1 - min_similarity
            if diversity > best_score:
                best_score = diversity
                best_index = i
        selected.append(remaining.pop(best_index))

    return selected


def _words(text: str) -> set[str]:
    return {w for w in text.lower().split() if len(w) > 2}


def _title_similarity(a: str, b: str) -> float:
    """Word-overlap (Dice) similarity, ignoring words of 2 chars or less."""
    words_a, words_b = _words(a), _words(b)
    if not words_a and not words_b:
        return 1.0
    if not words_a or not words_b:
        return 0.0
    overlap = len(words_a & words_b)
    return 2 * overlap / (len(words_a) + len(words_b))


def batch_cluster_summaries(summaries: list[ClusterSummary], batch_size: int = 20) -> list[list[ClusterSummary]]:
    """Split summaries into order-preserving batches of at most ``batch_size``."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return [summaries[i:i + batch_size] for i in range(0, len(summaries), batch_size)]

"""Read and write the JSON run files exchanged with other tools.

- clusters file: a list of clusters, or ``{"clusters": [...]}``
- concepts file: ``{"stats": ..., "concepts": [...], "misfitNotes": [...]}``
"""

import json
from pathlib import Path
from typing import Any

from .evolution import AutoEvolveResult, EvolutionDetectionResult
from .models import Cluster, MisfitNote, TrackedConcept


def _read_json(path: str | Path) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def write_json(path: str | Path, payload: Any) -> Path:
    """Write ``payload`` as indented JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def _cluster_records(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get("clusters", [])
    if not isinstance(data, list):
        raise ValueError("Clusters file must hold a list of clusters or {'clusters': [...]}")
    return data


def load_clusters(path: str | Path) -> tuple[list[Cluster], dict[str, str]]:
    """Load clusters plus a note id -> title/path lookup for summaries.

    Titles come from ``representativeNotes`` where the clustering run
    provided them; other notes fall back to their id (a file path).
    """
    records = _cluster_records(_read_json(path))
    clusters = [Cluster.from_dict(r) for r in records]

    title_lookup: dict[str, str] = {}
    for record in records:
        for rep in record.get("representativeNotes") or []:
            if isinstance(rep, dict) and rep.get("path"):
                title_lookup.setdefault(rep["path"], rep.get("title") or rep["path"])
    for cluster in clusters:
        for note_id in cluster.note_ids:
            title_lookup.setdefault(note_id, note_id)

    return clusters, title_lookup


def load_concepts(path: str | Path) -> list[TrackedConcept]:
    data = _read_json(path)
    if isinstance(data, dict):
        records = data.get("concepts", data.get("allConcepts", []))
    else:
        records = data
    if not isinstance(records, list):
        raise ValueError("Concepts file must hold a list of concepts or {'concepts': [...]}")
    return [TrackedConcept.from_dict(r) for r in records]


def save_concepts(
    path: str | Path,
    concepts: list[TrackedConcept],
    stats: dict[str, Any] | None = None,
    misfit_notes: list[MisfitNote] | None = None,
) -> Path:
    payload = {
        "stats": stats or {},
        "concepts": [c.to_dict() for c in concepts],
        "misfitNotes": [m.to_dict() for m in misfit_notes or []],
    }
    return write_json(path, payload)


def evolution_report(
    old_clusters: list[Cluster],
    new_clusters: list[Cluster],
    detection: EvolutionDetectionResult,
    concepts: list[TrackedConcept],
    results: list[AutoEvolveResult],
) -> dict[str, Any]:
    """Describe a detection run and what it did to each concept."""
    old_by_id = {c.id: c for c in old_clusters}
    new_by_id = {c.id: c for c in new_clusters}

    evolutions = []
    for e in detection.evolutions:
        old_notes = set(old_by_id[e.old_cluster_id].note_ids) if e.old_cluster_id in old_by_id else set()
        new_notes = set(new_by_id[e.new_cluster_id].note_ids) if e.new_cluster_id in new_by_id else set()
        evolutions.append({
            **e.to_dict(),
            "noteOverlap": {
                "sharedNotes": len(old_notes & new_notes),
                "oldTotal": len(old_notes),
                "newTotal": len(new_notes),
            },
        })

    updates = []
    for concept, result in zip(concepts, results):
        updates.append({
            "conceptId": concept.id,
            "canonicalName": concept.canonical_name,
            "action": result.action,
            "oldClusterId": concept.cluster_id,
            "newClusterId": result.concept.cluster_id if result.concept else None,
            "evolutionEventAdded": result.action in ("renamed", "remapped"),
        })

    types = [e.type for e in detection.evolutions]
    return {
        "oldClusterCount": len(old_clusters),
        "newClusterCount": len(new_clusters),
        "evolutions": evolutions,
        "newClusterIds": list(detection.new_cluster_ids),
        "conceptUpdates": updates,
        "summary": {
            "renames": types.count("rename"),
            "remaps": types.count("remap"),
            "dissolved": types.count("dissolved"),
        },
    }

"""Tests for applying evolutions to tracked concepts."""

from ignite.evolution import (
    auto_evolve_batch,
    auto_evolve_concept,
    calculate_evolution_stats,
    filter_surviving_concepts,
)
from ignite.models import ClusterEvolution, EvolutionEvent, create_tracked_concept


def _concept(cluster_id="old-1", name="React Hooks", concept_id="concept-1"):
    return create_tracked_concept(name, ["a", "b"], cluster_id, 0.8, concept_id=concept_id, now=1000)


def _evolution(old, new, kind, score=0.5):
    return ClusterEvolution(old_cluster_id=old, new_cluster_id=new, overlap_score=score, type=kind)


def test_dissolved_concept_is_dropped():
    concept = _concept()
    result = auto_evolve_concept(concept, _evolution("old-1", None, "dissolved", 0.0))
    assert result.concept is None
    assert result.action == "dissolved"
    assert result.was_modified


def test_rename_keeps_name_and_records_event():
    concept = _concept()
    result = auto_evolve_concept(concept, _evolution("old-1", "new-1", "rename", 0.9), new_name="Other", now=2000)

    evolved = result.concept
    assert result.action == "renamed"
    assert evolved.id == concept.id
    assert evolved.canonical_name == "React Hooks"
    assert evolved.cluster_id == "new-1"
    assert evolved.metadata.created_at == 1000
    assert evolved.metadata.last_updated == 2000
    assert evolved.evolution_history == (
        EvolutionEvent(ts=2000, from_cluster="old-1", to_cluster="new-1", type="rename", overlap_score=0.9),
    )


def test_remap_takes_new_name_when_given():
    concept = _concept()
    renamed = auto_evolve_concept(concept, _evolution("old-1", "new-1", "remap"), new_name="React State")
    assert renamed.action == "remapped"
    assert renamed.concept.canonical_name == "React State"
    assert renamed.concept.cluster_id == "new-1"

    kept = auto_evolve_concept(concept, _evolution("old-1", "new-1", "remap"))
    assert kept.concept.canonical_name == "React Hooks"


def test_mismatched_cluster_is_unchanged():
    concept = _concept()
    result = auto_evolve_concept(concept, _evolution("other", "new-1", "rename"))
    assert result.concept is concept
    assert result.action == "unchanged"
    assert not result.was_modified


def test_input_concept_not_mutated():
    concept = _concept()
    auto_evolve_concept(concept, _evolution("old-1", "new-1", "remap"), new_name="Changed", now=5000)
    assert concept.canonical_name == "React Hooks"
    assert concept.cluster_id == "old-1"
    assert concept.evolution_history == ()
    assert concept.metadata.last_updated == 1000


def test_history_grows_by_one_per_evolution():
    concept = _concept()
    steps = [
        _evolution("old-1", "c2", "rename", 0.8),
        _evolution("c2", "c3", "remap", 0.4),
        _evolution("c3", "c4", "rename", 0.7),
    ]
    history_before = concept.evolution_history
    for n, evolution in enumerate(steps, 1):
        previous = concept.evolution_history
        concept = auto_evolve_concept(concept, evolution, now=1000 + n).concept
        assert len(concept.evolution_history) == len(history_before) + n
        assert concept.evolution_history[:len(previous)] == previous
    assert [e.to_cluster for e in concept.evolution_history] == ["c2", "c3", "c4"]


def test_batch_returns_one_result_per_concept():
    concepts = [
        _concept("k1", concept_id="c-1"),
        _concept("k2", concept_id="c-2"),
        _concept("k3", concept_id="c-3"),
        _concept("k4", concept_id="c-4"),
    ]
    evolutions = [
        _evolution("k1", "n1", "rename", 0.9),
        _evolution("k2", "n2", "remap", 0.3),
        _evolution("k3", None, "dissolved", 0.1),
    ]
    results = auto_evolve_batch(concepts, evolutions, new_names={"n2": "Fresh Name"}, now=3000)

    assert len(results) == len(concepts)
    assert [r.action for r in results] == ["renamed", "remapped", "dissolved", "unchanged"]
    for concept, result in zip(concepts, results):
        if result.concept is not None:
            assert result.concept.id == concept.id
    assert results[1].concept.canonical_name == "Fresh Name"

    survivors = filter_surviving_concepts(results)
    assert [c.id for c in survivors] == ["c-1", "c-2", "c-4"]


def test_batch_with_no_evolutions():
    concepts = [_concept()]
    results = auto_evolve_batch(concepts, [])
    assert results[0].concept is concepts[0]
    assert results[0].action == "unchanged"


def test_evolution_stats():
    concepts = [_concept("k1"), _concept("k2"), _concept("k3"), _concept("k4"), _concept("k5")]
    evolutions = [
        _evolution("k1", "n1", "rename"),
        _evolution("k2", "n1", "rename"),
        _evolution("k3", "n3", "remap"),
        _evolution("k4", None, "dissolved"),
    ]
    stats = calculate_evolution_stats(auto_evolve_batch(concepts, evolutions))
    assert stats.to_dict() == {"renamed": 2, "remapped": 1, "dissolved": 1, "unchanged": 1}

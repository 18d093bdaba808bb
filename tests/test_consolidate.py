"""Tests for merge resolution, misfit removal and concept creation."""

import pytest

from ignite.evolution import AutoEvolveResult
from ignite.models import Cluster, ConceptNamingResult, MisfitNote, create_tracked_concept
from ignite.naming import (
    build_merge_map,
    collect_misfits,
    create_concept_from_result,
    filter_non_quizzable_concepts,
    filter_quizzable_concepts,
    process_concept_naming,
    reconcile_concepts,
)


def _cluster(cluster_id, notes, names=()):
    return Cluster(id=cluster_id, note_ids=notes, candidate_names=names, created_at=0)


def _result(cluster_id, name, score=0.8, merges=(), misfits=()):
    return ConceptNamingResult(
        cluster_id=cluster_id,
        canonical_name=name,
        quizzability_score=score,
        suggested_merges=list(merges),
        misfit_notes=[MisfitNote(note_id=n, reason="off topic") for n in misfits],
    )


def test_suggested_merge_combines_clusters():
    clusters = [_cluster("cluster-1", ["a", "b"]), _cluster("cluster-2", ["c", "d"])]
    results = [
        _result("cluster-1", "React Development", merges=["cluster-2"]),
        _result("cluster-2", "React Development"),
    ]
    consolidation = process_concept_naming(clusters, results, now=100)

    assert len(consolidation.concepts) == 1
    concept = consolidation.concepts[0]
    assert concept.cluster_id == "cluster-1"
    assert set(concept.note_ids) == {"a", "b", "c", "d"}
    assert concept.canonical_name == "React Development"
    assert dict(consolidation.merge_map) == {"cluster-2": "cluster-1"}


def test_all_misfit_cluster_yields_no_concept():
    clusters = [_cluster("c1", ["grocery", "recipe"]), _cluster("c2", ["x"])]
    results = [_result("c1", "Odds", misfits=["grocery", "recipe"]), _result("c2", "Kept")]
    consolidation = process_concept_naming(clusters, results)

    assert [c.cluster_id for c in consolidation.concepts] == ["c2"]
    assert consolidation.empty_cluster_ids == ["c1"]
    assert consolidation.removed_note_ids == {"grocery", "recipe"}


def test_misfit_removed_from_any_cluster():
    clusters = [_cluster("c1", ["a", "b"]), _cluster("c2", ["b", "c"])]
    results = [_result("c1", "One", misfits=["b"]), _result("c2", "Two")]
    concepts = process_concept_naming(clusters, results).concepts
    assert [c.note_ids for c in concepts] == [("a",), ("c",)]


def test_first_writer_wins_merge_claims():
    clusters = [_cluster("c1", ["a"]), _cluster("c2", ["b"]), _cluster("c3", ["c"])]
    # Results arrive out of submission order; c1 still claims first
    results = [
        _result("c2", "Two", merges=["c3"]),
        _result("c1", "One", merges=["c3"]),
        _result("c3", "Three"),
    ]
    merge_map = build_merge_map(clusters, results)
    assert dict(merge_map) == {"c3": "c1"}


def test_merge_chains_resolve_to_root():
    clusters = [_cluster("a", ["1"]), _cluster("b", ["2"]), _cluster("c", ["3"])]
    results = [_result("a", "A", merges=["b"]), _result("b", "B", merges=["c"])]
    merge_map = build_merge_map(clusters, results)
    assert dict(merge_map) == {"b": "a", "c": "a"}

    concepts = process_concept_naming(clusters, results).concepts
    assert len(concepts) == 1
    assert concepts[0].note_ids == ("1", "2", "3")


def test_merge_cycles_and_bad_targets_ignored():
    clusters = [_cluster("a", ["1"]), _cluster("b", ["2"])]
    results = [
        _result("a", "A", merges=["b", "a", "missing"]),
        _result("b", "B", merges=["a"]),
        _result("ghost", "Ghost", merges=["a"]),
    ]
    merge_map = build_merge_map(clusters, results)
    assert dict(merge_map) == {"b": "a"}


def test_merge_map_is_read_only():
    merge_map = build_merge_map([_cluster("a", ["1"]), _cluster("b", ["2"])], [_result("a", "A", merges=["b"])])
    with pytest.raises(TypeError):
        merge_map["x"] = "y"


def test_missing_result_uses_fallback_name():
    clusters = [_cluster("c1", ["a"], names=("Golf Swing",)), _cluster("c2", ["b"])]
    concepts = process_concept_naming(clusters, []).concepts

    assert [c.canonical_name for c in concepts] == ["Golf Swing", "Unnamed Concept"]
    assert all(c.quizzability_score == 0.5 for c in concepts)


def test_duplicate_results_first_wins():
    clusters = [_cluster("c1", ["a"])]
    results = [_result("c1", "First"), _result("c1", "Second")]
    concepts = process_concept_naming(clusters, results).concepts
    assert [c.canonical_name for c in concepts] == ["First"]


def test_conservation_and_no_empty_concepts():
    clusters = [
        _cluster("c1", ["a", "b", "c"]),
        _cluster("c2", ["d", "e"]),
        _cluster("c3", ["f"]),
        _cluster("c4", ["g", "h"]),
    ]
    results = [
        _result("c1", "One", merges=["c2"], misfits=["b"]),
        _result("c2", "Two", misfits=["e"]),
        _result("c3", "Three", misfits=["f"]),
    ]
    consolidation = process_concept_naming(clusters, results)

    for concept in consolidation.concepts:
        assert concept.note_ids

    input_notes = {n for c in clusters for n in c.note_ids}
    output_notes = {n for c in consolidation.concepts for n in c.note_ids}
    _, misfit_ids = collect_misfits(results)
    empty_notes = {n for c in clusters if c.id in consolidation.empty_cluster_ids for n in c.note_ids}
    assert output_notes | misfit_ids | empty_notes == input_notes
    assert consolidation.removed_note_ids == {"b", "e", "f"}


def test_rerun_with_subset_is_safe():
    clusters = [_cluster("c1", ["a"]), _cluster("c2", ["b"])]
    results = [_result("c1", "One", merges=["c2"]), _result("c2", "Two")]
    full = process_concept_naming(clusters, results)
    partial = process_concept_naming(clusters, results[1:])

    assert len(full.concepts) == 1
    assert [c.canonical_name for c in partial.concepts] == ["Unnamed Concept", "Two"]


def test_create_concept_from_result_and_filters():
    cluster = _cluster("c1", ["a", "b"])
    concept = create_concept_from_result(_result("c1", "Golf", score=0.3), cluster, exclude_misfits={"b"})
    assert concept.note_ids == ("a",)
    assert concept.cluster_id == "c1"
    assert concept.id.startswith("concept-")

    high = create_tracked_concept("High", ["x"], "c2", 0.4)
    assert filter_quizzable_concepts([concept, high]) == [high]
    assert filter_non_quizzable_concepts([concept, high]) == [concept]


def _moved(concept_id, cluster_id, name="Concept", action="renamed"):
    concept = create_tracked_concept(name, ["a"], cluster_id, 0.9, concept_id=concept_id, now=1)
    return AutoEvolveResult(concept=concept, was_modified=True, action=action)


def _candidate(cluster_id, notes, concept_id, score=0.8):
    return create_tracked_concept(f"Named {cluster_id}", notes, cluster_id, score, concept_id=concept_id, now=5)


def test_reconcile_refreshes_moved_concepts():
    evolved = [
        _moved("keep", "n1", name="React"),
        AutoEvolveResult(concept=None, was_modified=True, action="dissolved"),
        _moved("emptied", "n2"),
    ]
    candidates = [_candidate("n1", ["a", "b"], "cand-1"), _candidate("n3", ["c"], "cand-3")]
    outcome = reconcile_concepts(evolved, candidates, {}, now=9)

    assert [c.id for c in outcome.concepts] == ["keep", "cand-3"]
    kept = outcome.concepts[0]
    assert kept.canonical_name == "React"
    assert kept.note_ids == ("a", "b")
    assert kept.quizzability_score == 0.8
    assert kept.metadata.last_updated == 9
    # n2 produced no concept: every note was a misfit
    assert (outcome.updated, outcome.created, outcome.dropped) == (1, 1, 1)
    assert outcome.merged == {}


def test_reconcile_follows_merge_to_absorbing_cluster():
    evolved = [_moved("k1", "new-1", name="Hooks")]
    # new-3 absorbed new-1
    candidates = [_candidate("new-3", ["a", "b", "c"], "cand-3")]
    outcome = reconcile_concepts(evolved, candidates, {"new-1": "new-3"}, now=9)

    assert [c.id for c in outcome.concepts] == ["k1"]
    concept = outcome.concepts[0]
    assert concept.cluster_id == "new-3"
    assert concept.canonical_name == "Hooks"
    assert concept.note_ids == ("a", "b", "c")
    assert outcome.created == 0


def test_reconcile_merges_concepts_sharing_a_cluster():
    evolved = [
        _moved("first", "n1"),
        _moved("second", "n1", action="remapped"),
        _moved("third", "n2"),
    ]
    candidates = [_candidate("n1", ["a", "b"], "cand-1")]
    outcome = reconcile_concepts(evolved, candidates, {"n2": "n1"})

    assert [c.id for c in outcome.concepts] == ["first"]
    assert outcome.merged == {"second": "first", "third": "first"}
    assert outcome.dropped == 0


def test_reconcile_ignores_reused_cluster_ids_for_unchanged_concepts():
    stale = create_tracked_concept("Old", ["q"], "cluster-0", 0.9, concept_id="stale", now=1)
    evolved = [AutoEvolveResult(concept=stale, was_modified=False, action="unchanged")]
    candidates = [_candidate("cluster-0", ["x", "y"], "fresh")]
    outcome = reconcile_concepts(evolved, candidates, {})

    assert [c.id for c in outcome.concepts] == ["stale", "fresh"]
    assert outcome.concepts[0] is stale
    assert outcome.created == 1

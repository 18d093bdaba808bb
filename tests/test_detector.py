"""Tests for cluster evolution detection."""

import random

import pytest

from ignite.evolution import (
    EvolutionConfig,
    classify_evolution,
    detect_evolution,
    find_evolution_for_cluster,
    group_evolutions_by_type,
)
from ignite.models import Cluster


def _cluster(cluster_id, notes):
    return Cluster(id=cluster_id, note_ids=notes, created_at=0)


def test_identical_notes_is_rename():
    old = [_cluster("c1", ["a", "b", "c", "d", "e"])]
    new = [_cluster("c2", ["a", "b", "c", "d", "e"])]
    result = detect_evolution(old, new)

    assert len(result.evolutions) == 1
    evolution = result.evolutions[0]
    assert evolution.type == "rename"
    assert evolution.overlap_score == 1.0
    assert evolution.new_cluster_id == "c2"
    assert result.new_cluster_ids == []


def test_partial_overlap_is_remap():
    old = [_cluster("c1", ["a", "b", "c", "d", "e"])]
    new = [_cluster("c2", ["a", "b", "c", "x", "y"])]
    evolution = detect_evolution(old, new).evolutions[0]

    assert evolution.type == "remap"
    assert evolution.overlap_score == pytest.approx(0.4286, abs=1e-4)


def test_classification_boundaries():
    # 3/5 == rename threshold
    rename = detect_evolution([_cluster("o", ["a", "b", "c"])], [_cluster("n", ["a", "b", "c", "d", "e"])])
    assert rename.evolutions[0].type == "rename"

    # 1/5 == remap threshold
    remap = detect_evolution([_cluster("o", ["a"])], [_cluster("n", ["a", "b", "c", "d", "e"])])
    assert remap.evolutions[0].type == "remap"

    # 1/6 is just below
    dissolved = detect_evolution([_cluster("o", ["a"])], [_cluster("n", ["a", "b", "c", "d", "e", "f"])])
    assert dissolved.evolutions[0].type == "dissolved"
    assert dissolved.evolutions[0].new_cluster_id is None
    assert dissolved.dissolved == ["o"]
    # A low-overlap match does not count as a continuation
    assert dissolved.new_cluster_ids == ["n"]


def test_classify_evolution_custom_thresholds():
    config = EvolutionConfig(rename_threshold=0.8, remap_threshold=0.5)
    assert classify_evolution(0.8, config) == "rename"
    assert classify_evolution(0.79, config) == "remap"
    assert classify_evolution(0.49, config) == "dissolved"


def test_no_new_clusters_dissolves_everything():
    old = [_cluster("o1", ["a"]), _cluster("o2", ["b"])]
    result = detect_evolution(old, [])
    assert [e.type for e in result.evolutions] == ["dissolved", "dissolved"]
    assert all(e.overlap_score == 0.0 for e in result.evolutions)
    assert result.dissolved == ["o1", "o2"]


def test_no_old_clusters_marks_all_new():
    new = [_cluster("n1", ["a"]), _cluster("n2", ["b"])]
    result = detect_evolution([], new)
    assert result.evolutions == []
    assert result.new_cluster_ids == ["n1", "n2"]


def test_deterministic_under_reordering():
    old = [
        _cluster("o1", ["a", "b", "c", "d"]),
        _cluster("o2", ["e", "f", "g"]),
        _cluster("o3", ["h", "i"]),
    ]
    new = [
        _cluster("n1", ["a", "b"]),
        _cluster("n2", ["c", "d"]),
        _cluster("n3", ["e", "f", "g", "z"]),
        _cluster("n4", ["q", "r"]),
        _cluster("n5", ["a", "b", "x", "y"]),
    ]
    expected = detect_evolution(old, new).evolutions
    rng = random.Random(42)
    for _ in range(25):
        shuffled = new[:]
        rng.shuffle(shuffled)
        assert detect_evolution(old, shuffled).evolutions == expected


def test_tie_breaks_on_size_then_id():
    old = [_cluster("o", ["a", "b"])]
    # Both score 0.5; the larger cluster wins
    new = [_cluster("small", ["a"]), _cluster("large", ["a", "b", "c", "d"])]
    assert detect_evolution(old, new).evolutions[0].new_cluster_id == "large"

    # Same score and size; the smaller id wins
    new = [_cluster("beta", ["a", "x"]), _cluster("alpha", ["b", "y"])]
    evolution = detect_evolution(old, new, EvolutionConfig(rename_threshold=0.6, remap_threshold=0.3)).evolutions[0]
    assert evolution.new_cluster_id == "alpha"


def test_many_old_clusters_can_pick_same_new_cluster():
    old = [_cluster("o1", ["a", "b"]), _cluster("o2", ["c", "d"])]
    new = [_cluster("merged", ["a", "b", "c", "d"]), _cluster("other", ["z"])]
    result = detect_evolution(old, new)

    assert [e.new_cluster_id for e in result.evolutions] == ["merged", "merged"]
    assert [e.type for e in result.evolutions] == ["remap", "remap"]
    assert result.new_cluster_ids == ["other"]


def test_one_evolution_per_old_cluster():
    old = [_cluster(f"o{i}", [f"n{i}", f"m{i}"]) for i in range(5)]
    new = [_cluster("n", ["n0", "m0", "n1"])]
    result = detect_evolution(old, new)
    assert [e.old_cluster_id for e in result.evolutions] == [c.id for c in old]


def test_invalid_config_rejected():
    with pytest.raises(ValueError):
        EvolutionConfig(rename_threshold=0.2, remap_threshold=0.6)
    with pytest.raises(ValueError):
        EvolutionConfig(rename_threshold=1.5, remap_threshold=0.2)


def test_config_from_dict():
    config = EvolutionConfig.from_config({"evolution": {"rename_threshold": 0.7}})
    assert config.rename_threshold == 0.7
    assert config.remap_threshold == 0.2


def test_lookup_helpers():
    old = [_cluster("o1", ["a"]), _cluster("o2", ["b"])]
    new = [_cluster("n1", ["a"])]
    evolutions = detect_evolution(old, new).evolutions

    assert find_evolution_for_cluster("o1", evolutions).new_cluster_id == "n1"
    assert find_evolution_for_cluster("missing", evolutions) is None

    groups = group_evolutions_by_type(evolutions)
    assert [e.old_cluster_id for e in groups["rename"]] == ["o1"]
    assert [e.old_cluster_id for e in groups["dissolved"]] == ["o2"]
    assert groups["remap"] == []

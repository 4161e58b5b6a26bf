# tests/test_clustering.py
import math

import numpy as np
import pytest

from galaxy.clustering import (
    cluster_placement,
    clamp_shell,
    group_anchor,
    group_by_traits,
    member_offset,
)
from galaxy.config import Config
from galaxy.metrics import trait_hash
from galaxy.nodes import generate_nodes, sample_nodes


@pytest.fixture
def twin_nodes(make_node):
    return [
        make_node("c", [50, 50, 50], central=True),
        make_node("a", [20, 80, 40]),
        make_node("b", [20, 80, 40]),
        make_node("d", [90, 10, 60]),
        make_node("e", [20, 80, 40]),
    ]


class TestGrouping:
    def test_groups_identical_traits_in_first_seen_order(self, twin_nodes):
        groups = group_by_traits(twin_nodes)
        assert [g.members for g in groups] == [[1, 2, 4], [3]]

    def test_central_node_excluded(self, twin_nodes):
        groups = group_by_traits(twin_nodes)
        assert all(0 not in g.members for g in groups)


class TestAnchor:
    def test_radius_tracks_compatibility(self):
        cfg = Config.cluster
        near, _ = group_anchor([50, 50, 50], [50, 50, 50], cfg)
        far, _ = group_anchor([0, 0, 0], [100, 100, 100], cfg)
        assert math.hypot(near[0], near[2]) == pytest.approx(15.0)
        assert math.hypot(far[0], far[2]) == pytest.approx(75.0)

    def test_angle_and_height_from_hash(self):
        traits = [20, 80, 40]
        base, angle = group_anchor(traits, [50, 50, 50], Config.cluster)
        assert angle == pytest.approx(math.radians(trait_hash(traits) % 360))
        expected_height = ((trait_hash([40, 80, 20]) % 100) - 50) / 50.0 * 20.0
        assert base[1] == pytest.approx(expected_height)
        assert -20.0 <= base[1] <= 20.0

    def test_single_member_has_no_offset(self):
        np.testing.assert_array_equal(member_offset(0, 1, Config.cluster), np.zeros(3))

    def test_member_offsets_alternate_height(self):
        cfg = Config.cluster
        offsets = [member_offset(k, 4, cfg) for k in range(4)]
        assert [o[1] for o in offsets] == [0.5, -0.5, 0.5, -0.5]


class TestClusterPlacement:
    def test_deterministic(self):
        nodes = generate_nodes(15, 4, preferences=[75, 25, 60, 40], seed=5)
        first = cluster_placement(nodes, [75, 25, 60, 40])
        second = cluster_placement(generate_nodes(15, 4, preferences=[75, 25, 60, 40], seed=5), [75, 25, 60, 40])
        np.testing.assert_array_equal(first, second)

    def test_twins_share_group_but_not_position(self, twin_nodes):
        positions = cluster_placement(twin_nodes, [50, 50, 50])
        twins = positions[[1, 2, 4]]
        for i in range(3):
            for j in range(i + 1, 3):
                assert np.linalg.norm(twins[i] - twins[j]) > 1e-6
        # All twins stay close to their shared anchor
        centroid = twins.mean(axis=0)
        assert np.all(np.linalg.norm(twins - centroid, axis=1) < 5.0)

    def test_central_at_origin(self, twin_nodes):
        positions = cluster_placement(twin_nodes, [50, 50, 50])
        np.testing.assert_array_equal(positions[0], np.zeros(3))

    def test_radius_bounds(self):
        nodes = generate_nodes(40, 3, preferences=[50, 50, 50], seed=9)
        positions = cluster_placement(nodes, [50, 50, 50])
        radii = np.linalg.norm(positions[1:], axis=1)
        assert np.all(radii >= 8.0 - 1e-9)
        assert np.all(radii <= 120.0 + 1e-9)

    def test_close_groups_are_pushed_apart(self, make_node):
        # Same compatibility and hash-neighbours would land on top of each other
        nodes = [
            make_node("c", [50, 50, 50], central=True),
            make_node("a", [50, 50, 60]),
            make_node("b", [50, 50, 61]),
        ]
        raw_a, _ = group_anchor([50, 50, 60], [50, 50, 50], Config.cluster)
        raw_b, _ = group_anchor([50, 50, 61], [50, 50, 50], Config.cluster)
        positions = cluster_placement(nodes, [50, 50, 50])
        assert np.linalg.norm(positions[2] - positions[1]) > np.linalg.norm(raw_b - raw_a)

    def test_sample_nodes(self):
        nodes = sample_nodes()
        positions = cluster_placement(nodes, [75, 25, 60])
        assert positions.shape == (len(nodes), 3)


def test_clamp_shell_uses_fallback_for_origin():
    positions = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [500.0, 0.0, 0.0]])
    fallback = np.array([[0.0, 0.0, 1.0], [1.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
    out = clamp_shell(positions, 8.0, 120.0, fallback)
    np.testing.assert_allclose(out, [[0, 0, 8], [8, 0, 0], [120, 0, 0]])

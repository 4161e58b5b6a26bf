# tests/test_forces.py
import numpy as np
import pytest

from galaxy.forces import (
    PhysicsConfig,
    attraction,
    attraction_field,
    repulsion,
    repulsion_field,
)


class TestPhysicsConfig:
    def test_defaults_follow_config(self):
        cfg = PhysicsConfig.from_config()
        assert cfg.attraction_k == 100.0
        assert cfg.repulsion_k == 20.0
        assert cfg.damping == 0.98
        assert cfg.min_distance == 0.1
        assert cfg.attraction_floor == 0.1

    @pytest.mark.parametrize("changes", [
        {"attraction_k": -1.0},
        {"repulsion_k": -0.5},
        {"damping": 0.0},
        {"damping": 1.5},
        {"min_distance": 0.0},
        {"max_distance": 0.05},
    ])
    def test_invalid_values_rejected(self, changes):
        with pytest.raises(ValueError):
            PhysicsConfig().updated(**changes)

    def test_partial_update_returns_new_config(self):
        base = PhysicsConfig()
        changed = base.updated(repulsion_k=5.0)
        assert changed.repulsion_k == 5.0
        assert changed.attraction_k == base.attraction_k
        assert base.repulsion_k == 20.0


class TestAttraction:
    def test_full_compatibility_magnitude(self):
        force = attraction(np.zeros(3), np.array([10.0, 0.0, 0.0]), 1.0, k=100.0)
        assert np.linalg.norm(force) == pytest.approx(100.0 / 10.0 ** 2)

    def test_points_toward_center(self):
        node = np.array([3.0, -4.0, 12.0])
        force = attraction(np.zeros(3), node, 0.6, k=50.0)
        assert np.dot(force, -node) > 0
        np.testing.assert_allclose(np.cross(force, node), 0.0, atol=1e-12)

    def test_inverse_square_falloff(self):
        mags = [
            np.linalg.norm(attraction(np.zeros(3), np.array([d, 0.0, 0.0]), 0.5, k=100.0))
            for d in (1.0, 2.0, 4.0, 8.0)
        ]
        assert all(a > b for a, b in zip(mags, mags[1:]))
        assert mags[0] / mags[1] == pytest.approx(4.0)

    def test_floor_applies_to_zero_compatibility(self):
        node = np.array([5.0, 0.0, 0.0])
        strict = attraction(np.zeros(3), node, 0.0, k=100.0, floor=0.0)
        floored = attraction(np.zeros(3), node, 0.0, k=100.0, floor=0.1)
        np.testing.assert_array_equal(strict, np.zeros(3))
        assert np.linalg.norm(floored) == pytest.approx(100.0 * 0.1 / 25.0)

    def test_coincident_positions_are_finite(self):
        force = attraction(np.zeros(3), np.zeros(3), 1.0, k=100.0, min_distance=0.1)
        assert np.all(np.isfinite(force))


class TestRepulsion:
    def test_equal_and_opposite(self):
        fa, fb = repulsion(np.array([1.0, 2.0, 3.0]), np.array([-2.0, 0.5, 4.0]), 0.3, k=20.0)
        np.testing.assert_array_equal(fa, -fb)

    def test_pushes_apart(self):
        a, b = np.zeros(3), np.array([2.0, 0.0, 0.0])
        fa, fb = repulsion(a, b, 0.0, k=20.0)
        assert fa[0] < 0 < fb[0]
        assert np.linalg.norm(fb) == pytest.approx(20.0 / 4.0)

    def test_identical_nodes_do_not_repel(self):
        fa, fb = repulsion(np.zeros(3), np.ones(3), 1.0, k=20.0)
        np.testing.assert_array_equal(fa, np.zeros(3))
        np.testing.assert_array_equal(fb, np.zeros(3))


class TestFields:
    def test_attraction_field_matches_scalar(self):
        cfg = PhysicsConfig()
        positions = np.array([[0.0, 0.0, 0.0], [10.0, 0.0, 0.0], [0.0, 3.0, 4.0]])
        compat = np.array([1.0, 0.5, 0.05])
        active = np.array([False, True, True])
        field = attraction_field(positions, compat, cfg, active=active)
        np.testing.assert_array_equal(field[0], np.zeros(3))
        for i in (1, 2):
            expected = attraction(np.zeros(3), positions[i], compat[i], cfg.attraction_k,
                                  cfg.min_distance, cfg.attraction_floor)
            np.testing.assert_allclose(field[i], expected)

    def test_repulsion_field_matches_pairwise_sum(self):
        cfg = PhysicsConfig()
        positions = np.array([[1.0, 0.0, 0.0], [0.0, 2.0, 0.0], [-3.0, 0.0, 1.0]])
        sim = np.array([[1.0, 0.2, 0.6], [0.2, 1.0, 0.4], [0.6, 0.4, 1.0]])
        field = repulsion_field(positions, sim, cfg)

        expected = np.zeros((3, 3))
        for i in range(3):
            for j in range(i + 1, 3):
                fi, fj = repulsion(positions[i], positions[j], sim[i, j], cfg.repulsion_k, cfg.min_distance)
                expected[i] += fi
                expected[j] += fj
        np.testing.assert_allclose(field, expected)
        np.testing.assert_allclose(field.sum(axis=0), 0.0, atol=1e-12)

    def test_repulsion_field_ignores_inactive_and_distant(self):
        cfg = PhysicsConfig(max_distance=50.0)
        positions = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [100.0, 0.0, 0.0]])
        sim = np.zeros((3, 3))
        field = repulsion_field(positions, sim, cfg, active=np.array([False, True, True]))
        np.testing.assert_array_equal(field, np.zeros((3, 3)))

# tests/test_metrics.py
import pytest

from galaxy.metrics import (
    compatibility,
    compatibility_scores,
    similarity,
    similarity_matrix,
    trait_hash,
)


class TestCompatibility:
    """Normalized L1 alignment against the central preferences."""

    def test_identical_vectors_are_fully_compatible(self):
        assert compatibility([50, 50, 50], [50, 50, 50]) == 1.0
        assert similarity([10, 90, 30, 70], [10, 90, 30, 70]) == 1.0

    def test_mixed_profile_scenario(self):
        # sum diff = 200 over 3 traits
        assert compatibility([100, 0, 0], [0, 100, 0]) == pytest.approx(1.0 / 3.0)

    def test_opposite_extremes_have_zero_similarity(self):
        assert similarity([0, 0, 0], [100, 100, 100]) == 0.0

    def test_length_mismatch_uses_common_prefix(self):
        assert compatibility([50, 50], [50, 50, 0, 0]) == 1.0
        assert compatibility([0, 0, 0], [100]) == 0.0

    def test_empty_vector_scores_zero(self):
        assert compatibility([], [10, 20]) == 0.0
        assert similarity([], []) == 0.0

    def test_range(self):
        for prefs, attrs in [([0, 0], [100, 100]), ([30, 60], [35, 55]), ([100], [0])]:
            assert 0.0 <= compatibility(prefs, attrs) <= 1.0

    def test_monotonic_in_single_coordinate(self):
        prefs = [40, 60, 80]
        scores = [compatibility(prefs, [40 + d, 60, 80]) for d in range(0, 61, 10)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))
        assert scores[0] > scores[-1]


class TestVectorized:
    def test_scores_match_scalar(self):
        prefs = [75, 25, 60]
        rows = [[85, 70, 60], [90, 80, 75], [0, 100, 0]]
        scores = compatibility_scores(prefs, rows)
        for row, score in zip(rows, scores):
            assert score == pytest.approx(compatibility(prefs, row))

    def test_similarity_matrix_matches_scalar(self):
        rows = [[0, 0, 0], [100, 100, 100], [50, 25, 75]]
        sim = similarity_matrix(rows)
        assert sim.shape == (3, 3)
        for i in range(3):
            assert sim[i, i] == pytest.approx(1.0)
            for j in range(3):
                assert sim[i, j] == pytest.approx(similarity(rows[i], rows[j]))
                assert sim[i, j] == pytest.approx(sim[j, i])


class TestTraitHash:
    def test_stable(self):
        assert trait_hash([85, 70, 60]) == trait_hash([85, 70, 60])
        # (85*31 + 70)*31 + 60
        assert trait_hash([85, 70, 60]) == (85 * 31 + 70) * 31 + 60

    def test_order_sensitive(self):
        assert trait_hash([1, 2, 3]) != trait_hash([3, 2, 1])

    def test_wraps_to_32_bits(self):
        h = trait_hash([100] * 20)
        assert 0 <= h < 2 ** 32

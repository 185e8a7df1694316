"""Tests for elbow-based K selection."""

import pytest

from rfm_segmentation.customer_segmentation import (
    InsufficientPopulationError,
    ModelSelector,
    RFMRecord,
    candidate_k_range,
    find_elbow,
    normalize_rfm,
)


class TestCandidateKRange:
    """Test the K sweep range."""

    def test_six_customers(self):
        assert list(candidate_k_range(6)) == [2, 3]

    def test_capped_at_eight(self):
        assert list(candidate_k_range(1000)) == list(range(2, 9))

    def test_four_customers(self):
        assert list(candidate_k_range(4)) == [2]

    @pytest.mark.parametrize('n', [0, 1, 2, 3])
    def test_too_few_customers_raises(self, n):
        with pytest.raises(InsufficientPopulationError, match="at least 4 customers"):
            candidate_k_range(n)

    def test_custom_bounds(self):
        assert list(candidate_k_range(100, min_k=3, max_k=5)) == [3, 4, 5]


class TestFindElbow:
    """Test the elbow heuristic."""

    def test_sharpest_drop_in_improvement(self):
        assert find_elbow([2, 3, 4, 5], [10.0, 4.0, 3.0, 2.5]) == 3

    def test_later_elbow(self):
        assert find_elbow([2, 3, 4, 5, 6], [10.0, 9.0, 8.0, 2.0, 1.9]) == 5

    def test_linear_decrease_defaults_to_first_k(self):
        assert find_elbow([2, 3, 4, 5], [10.0, 8.0, 6.0, 4.0]) == 2

    def test_no_interior_point_defaults_to_first_k(self):
        assert find_elbow([2, 3], [5.0, 1.0]) == 2
        assert find_elbow([2], [5.0]) == 2

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            find_elbow([], [])


class TestModelSelector:
    """Test ModelSelector sweeps."""

    def test_sweep_covers_range(self, rfm_records):
        sweep = ModelSelector(random_state=0).sweep(rfm_records)

        assert sweep.k_values == [2, 3, 4]
        assert len(sweep.wcss) == 3
        assert len(sweep.silhouettes) == 3
        assert sweep.optimal_k in sweep.k_values

    def test_three_groups_give_elbow_at_three(self, rfm_records):
        selector = ModelSelector(random_state=0)
        assert selector.select_optimal_k(rfm_records) == 3

    def test_parallel_matches_sequential(self, rfm_records):
        sequential = ModelSelector(random_state=21, n_jobs=1).sweep(rfm_records)
        parallel = ModelSelector(random_state=21, n_jobs=3).sweep(rfm_records)

        assert sequential.wcss == parallel.wcss
        assert sequential.optimal_k == parallel.optimal_k

    def test_six_customers_sweep(self):
        records = [RFMRecord(f'C{i}', i * 10, i + 1, 100.0 * i) for i in range(6)]
        sweep = ModelSelector(random_state=0).sweep(records)

        assert sweep.k_values == [2, 3]
        assert sweep.optimal_k == 2

    def test_too_small_population_raises(self, rfm_records):
        with pytest.raises(InsufficientPopulationError):
            ModelSelector().select_optimal_k(rfm_records[:3])

    def test_sweep_vectors_matches_sweep(self, rfm_records):
        X = normalize_rfm(rfm_records).vectors

        from_records = ModelSelector(random_state=5).sweep(rfm_records)
        from_vectors = ModelSelector(random_state=5).sweep_vectors(X)

        assert from_vectors == from_records

    def test_sweep_vectors_too_few_rows_raises(self, rfm_records):
        X = normalize_rfm(rfm_records[:3]).vectors

        with pytest.raises(InsufficientPopulationError):
            ModelSelector().sweep_vectors(X)

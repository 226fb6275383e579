"""
Tests for greenindex/analytics/pareto.py

Covers:
  - Pairwise Pareto flags (worked example, ties, missing values)
  - No flagged record is dominated by any other record
  - Price-sorted sweep frontier and its relation to the pairwise set
"""

import math

import numpy as np
import pytest

from greenindex.analytics.pareto import (
    compute_pareto_flags,
    compute_price_sorted_frontier,
    dominates,
)


class TestDominates:

    def test_strictly_better_on_one_axis(self):
        assert dominates(0.9, 50.0, 0.9, 100.0)
        assert dominates(0.95, 100.0, 0.9, 100.0)

    def test_identical_does_not_dominate(self):
        assert not dominates(0.9, 50.0, 0.9, 50.0)

    def test_trade_off_does_not_dominate(self):
        assert not dominates(0.5, 20.0, 0.9, 100.0)


class TestParetoFlags:

    def test_worked_example(self):
        flags = compute_pareto_flags([0.9, 0.5, 0.9], [100.0, 20.0, 50.0])
        assert flags == [False, True, True]

    def test_duplicates_both_kept(self):
        assert compute_pareto_flags([0.7, 0.7], [10.0, 10.0]) == [True, True]

    def test_missing_price_never_dominates_on_price(self):
        flags = compute_pareto_flags([0.9, 0.5], [math.nan, 10.0])
        assert flags == [True, True]

    def test_missing_sis_is_dominated(self):
        flags = compute_pareto_flags([math.nan, 0.5], [10.0, 10.0])
        assert flags == [False, True]

    def test_empty(self):
        assert compute_pareto_flags([], []) == []

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            compute_pareto_flags([0.1, 0.2], [1.0])

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_flagged_records_are_non_dominated(self, seed):
        rng = np.random.default_rng(seed)
        sis = rng.uniform(size=40).tolist()
        prices = rng.uniform(5, 200, size=40).tolist()
        flags = compute_pareto_flags(sis, prices)
        assert any(flags)
        for i, flagged in enumerate(flags):
            dominated = any(
                dominates(sis[j], prices[j], sis[i], prices[i])
                for j in range(40) if j != i
            )
            assert flagged == (not dominated)

    def test_idempotent(self):
        sis = [0.2, 0.8, 0.5, 0.8]
        prices = [10.0, 40.0, 15.0, 45.0]
        assert compute_pareto_flags(sis, prices) == compute_pareto_flags(sis, prices)


class TestPriceSortedFrontier:

    def test_worked_example(self):
        assert compute_price_sorted_frontier([0.9, 0.5, 0.9], [100.0, 20.0, 50.0]) == [1, 2]

    def test_skips_non_finite(self):
        frontier = compute_price_sorted_frontier([0.9, 0.5, math.nan], [math.nan, 10.0, 5.0])
        assert frontier == [1]

    def test_equal_price_keeps_best_sis(self):
        assert compute_price_sorted_frontier([0.5, 0.7], [10.0, 10.0]) == [1]

    def test_empty(self):
        assert compute_price_sorted_frontier([], []) == []

    @pytest.mark.parametrize("seed", [3, 4])
    def test_subset_of_pairwise_frontier(self, seed):
        rng = np.random.default_rng(seed)
        sis = rng.uniform(size=30).tolist()
        prices = rng.integers(1, 10, size=30).astype(float).tolist()
        flags = compute_pareto_flags(sis, prices)
        frontier = compute_price_sorted_frontier(sis, prices)
        assert frontier
        assert all(flags[i] for i in frontier)
        assert [prices[i] for i in frontier] == sorted(prices[i] for i in frontier)

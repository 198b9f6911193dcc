"""
Tests for the distribution algebra.

Tests cover sampling, lazy mapping, dependent composition, Monte Carlo and
exact expectations and finite distributions.
"""

import itertools
import math
from fractions import Fraction

import numpy as np
import pytest

from rlprob.distribution import (
    Bernoulli,
    Categorical,
    Choose,
    Constant,
    DistIter,
    DistMap,
    FiniteDistribution,
    Range,
    SampledDist,
    SampledDistribution,
)


def empirical(samples) -> dict:
    """Frequency of each distinct sample."""
    counts: dict = {}
    for s in samples:
        counts[s] = counts.get(s, 0) + 1
    return {k: v / len(samples) for k, v in counts.items()}


def uniform(low: float, high: float) -> SampledDistribution:
    """Continuous uniform distribution over [low, high)."""
    return SampledDistribution(lambda rng: float(rng.uniform(low, high)))


# =============================================================================
# Finite Distribution Tests
# =============================================================================


class TestCategorical:
    def test_table_is_normalized(self):
        dist = Categorical({"a": 1, "b": 3})

        assert dist.probability("a") == pytest.approx(0.25)
        assert dist.probability("b") == pytest.approx(0.75)
        assert sum(dist.table().values()) == pytest.approx(1.0)

    def test_missing_outcome_has_zero_probability(self):
        dist = Categorical({"a": 0.5, "b": 0.5})
        assert dist.probability("z") == 0.0

    def test_unnormalized_table_kept_as_given(self):
        dist = Categorical({"a": 0.2, "b": 0.3}, normalize=False)

        assert dist.probability("a") == 0.2
        assert dist.total_probability() == pytest.approx(0.5)
        assert dist.probability("c") == 0.0

    def test_fraction_weights_stay_exact(self):
        dist = Categorical({"a": Fraction(1), "b": Fraction(2)})

        assert dist.probability("a") == Fraction(1, 3)
        assert dist.total_probability() == 1

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            Categorical({"a": -0.1, "b": 1.1})

    def test_zero_total_rejected(self):
        with pytest.raises(ValueError):
            Categorical({"a": 0.0})
        with pytest.raises(ValueError):
            Categorical({})

    def test_sample_frequencies_match_table(self):
        dist = Categorical({"a": 0.1, "b": 0.6, "c": 0.3})
        rng = np.random.default_rng(42)

        freqs = empirical(dist.sample_n(20_000, rng))

        for outcome, p in dist:
            assert freqs.get(outcome, 0.0) == pytest.approx(p, abs=0.02)

    def test_zero_weight_never_sampled(self):
        dist = Categorical({"a": 0.0, "b": 1.0, "c": 0.0})
        rng = np.random.default_rng(0)

        assert set(dist.sample_n(1000, rng)) == {"b"}

    def test_draw_at_total_skips_trailing_zero_weight(self):
        class TopOfRange:
            """Generator whose uniform draw has rounded up to 1."""

            def random(self):
                return 1.0

        dist = Categorical({"a": 0.5, "b": 0.5, "c": 0.0, "d": 0.0})

        assert dist.sample(TopOfRange()) == "b"  # type: ignore[arg-type]

    def test_samples_do_not_change_table(self):
        dist = Categorical({"a": 1, "b": 1})
        before = dict(dist.table())
        rng = np.random.default_rng(1)

        dist.sample_n(100, rng)

        assert dict(dist.table()) == before

    def test_iteration_length_and_membership(self):
        dist = Categorical({"a": 1, "b": 1})

        assert len(dist) == 2
        assert "a" in dist
        assert "z" not in dist
        assert dict(dist) == {"a": 0.5, "b": 0.5}

    def test_equality_by_table(self):
        assert Categorical({1: 1.0}) == Constant(1)
        assert Categorical({1: 0.5, 2: 0.5}) != Categorical({1: 0.25, 2: 0.75})


class TestSimpleFiniteDistributions:
    def test_constant(self):
        dist = Constant("x")
        rng = np.random.default_rng(42)

        assert dist.table() == {"x": 1.0}
        assert dist.sample_n(10, rng) == ["x"] * 10

    def test_bernoulli(self):
        dist = Bernoulli(0.3)
        rng = np.random.default_rng(42)

        assert dist.probability(True) == 0.3
        assert dist.probability(False) == pytest.approx(0.7)
        assert np.mean(dist.sample_n(10_000, rng)) == pytest.approx(0.3, abs=0.02)

    def test_bernoulli_invalid_p(self):
        with pytest.raises(ValueError):
            Bernoulli(1.5)
        with pytest.raises(ValueError):
            Bernoulli(-0.1)

    def test_choose_counts_multiplicity(self):
        dist = Choose("aab")

        assert dist.probability("a") == pytest.approx(2 / 3)
        assert dist.probability("b") == pytest.approx(1 / 3)

    def test_choose_empty_rejected(self):
        with pytest.raises(ValueError):
            Choose([])

    def test_range_single_argument(self):
        dist = Range(3)

        assert set(dist.table()) == {0, 1, 2}
        assert dist.probability(1) == pytest.approx(1 / 3)

    def test_range_samples_in_bounds(self):
        dist = Range(2, 5)
        rng = np.random.default_rng(7)

        assert set(dist.sample_n(1000, rng)) == {2, 3, 4}

    def test_range_invalid(self):
        with pytest.raises(ValueError):
            Range(5, 5)

    @pytest.mark.parametrize(
        "dist",
        [
            Constant(1),
            Bernoulli(0.25),
            Choose([1, 2, 2, 3]),
            Range(10),
            Categorical({"a": 2, "b": 5, "c": 3}),
        ],
    )
    def test_tables_sum_to_one(self, dist: FiniteDistribution):
        assert dist.total_probability() == pytest.approx(1.0)
        assert all(p >= 0 for _, p in dist)


# =============================================================================
# Expectation Tests
# =============================================================================


class TestFiniteExpectation:
    def test_exact_weighted_sum(self):
        dist = Categorical(
            {1: Fraction(1, 5), 2: Fraction(3, 10), 5: Fraction(1, 2)}, normalize=False
        )

        assert dist.expectation(lambda x: x) == Fraction(1, 5) + Fraction(6, 10) + Fraction(5, 2)

    def test_exact_expectation_has_no_variance(self):
        dist = Choose([1.0, 2.0, 4.0])

        first = dist.expectation(lambda x: x * x)
        second = dist.expectation(lambda x: x * x)

        assert first == second
        assert first == pytest.approx((1 + 4 + 16) / 3)

    def test_bernoulli_indicator(self):
        dist = Bernoulli(0.4)
        assert dist.expectation(lambda b: 1.0 if b else 0.0) == pytest.approx(0.4)


class TestMonteCarloExpectation:
    def test_fair_coin_converges(self):
        coin = Choose([0, 1]).map(lambda x: x)
        rng = np.random.default_rng(42)

        estimate = coin.expectation(lambda x: x, 20_000, rng)

        assert estimate == pytest.approx(0.5, abs=0.02)

    def test_error_shrinks_with_sample_size(self):
        coin = Choose([0, 1]).map(float)
        rng = np.random.default_rng(123)

        def mean_abs_error(n: int) -> float:
            errors = [abs(coin.expectation(lambda x: x, n, rng) - 0.5) for _ in range(30)]
            return float(np.mean(errors))

        small = mean_abs_error(10)
        large = mean_abs_error(5_000)

        assert large < small
        assert large < 0.02

    def test_sample_size_must_be_positive(self):
        dist = uniform(0.0, 1.0)
        rng = np.random.default_rng(0)

        with pytest.raises(ValueError):
            dist.expectation(lambda x: x, 0, rng)

    def test_estimate_confidence_interval(self):
        dist = uniform(0.0, 1.0)
        rng = np.random.default_rng(42)

        estimate = dist.expectation_estimate(lambda x: x, 5_000, rng, confidence_level=0.999)

        assert estimate.num_samples == 5_000
        assert estimate.contains(0.5)
        assert 0 < estimate.ci_half_width < 0.05
        # Std of U(0, 1) is 1/sqrt(12)
        assert estimate.std == pytest.approx(1 / math.sqrt(12), abs=0.02)

    def test_estimate_single_sample_has_infinite_interval(self):
        estimate = Constant(3.0).expectation_estimate(
            lambda x: x, 1, np.random.default_rng(0)
        )

        assert estimate.mean == 3.0
        assert math.isinf(estimate.ci_half_width)

    def test_estimate_invalid_confidence(self):
        with pytest.raises(ValueError):
            Constant(1.0).expectation_estimate(
                lambda x: x, 10, np.random.default_rng(0), confidence_level=1.0
            )


# =============================================================================
# Composition Tests
# =============================================================================


class TestMap:
    def test_map_is_lazy(self):
        calls = []

        def double(x):
            calls.append(x)
            return 2 * x

        mapped = Constant(3).map(double)

        assert isinstance(mapped, DistMap)
        assert calls == []

        assert mapped.sample(np.random.default_rng(0)) == 6
        assert calls == [3]

    def test_map_transforms_distribution(self):
        dist = Range(4).map(lambda x: x % 2)
        rng = np.random.default_rng(42)

        freqs = empirical(dist.sample_n(10_000, rng))

        assert freqs[0] == pytest.approx(0.5, abs=0.02)
        assert freqs[1] == pytest.approx(0.5, abs=0.02)

    def test_map_expectation_is_sampled(self):
        dist = uniform(0.0, 1.0).map(lambda x: 2 * x)
        rng = np.random.default_rng(5)

        assert dist.expectation(lambda x: x, 10_000, rng) == pytest.approx(1.0, abs=0.03)

    def test_push_forward_is_exact(self):
        dist = Choose([1, 2, 3, 4]).push_forward(lambda x: x % 2)

        assert dist.table() == {1: 0.5, 0: 0.5}


class TestApply:
    def test_apply_passes_sampled_value(self):
        dist = Constant(5).apply(lambda x: Constant(x + 1))

        assert isinstance(dist, SampledDist)
        assert dist.sample(np.random.default_rng(0)) == 6

    def test_apply_matches_convolution(self):
        # Sum of two fair coins: the second draw is offset by the first
        coin = Choose([0, 1])
        total = coin.apply(lambda x: Choose([x, x + 1]))
        rng = np.random.default_rng(42)

        freqs = empirical(total.sample_n(20_000, rng))

        assert freqs[0] == pytest.approx(0.25, abs=0.02)
        assert freqs[1] == pytest.approx(0.5, abs=0.02)
        assert freqs[2] == pytest.approx(0.25, abs=0.02)

    def test_apply_dependent_support(self):
        dist = Range(1, 3).apply(lambda n: Range(n))
        rng = np.random.default_rng(3)

        freqs = empirical(dist.sample_n(20_000, rng))

        # P(0) = 1/2 * 1 + 1/2 * 1/2
        assert freqs[0] == pytest.approx(0.75, abs=0.02)
        assert freqs[1] == pytest.approx(0.25, abs=0.02)

    def test_apply_expectation(self):
        dist = Bernoulli(0.5).apply(lambda b: uniform(0.0, 2.0) if b else Constant(0.0))
        rng = np.random.default_rng(11)

        assert dist.expectation(lambda x: x, 20_000, rng) == pytest.approx(0.5, abs=0.03)


class TestSampleIter:
    def test_sample_iter_is_infinite(self):
        it = Constant(1).sample_iter(np.random.default_rng(0))

        assert isinstance(it, DistIter)
        assert list(itertools.islice(it, 500)) == [1] * 500
        assert next(it) == 1

    def test_sample_iter_draws_independently(self):
        it = Range(1000).sample_iter(np.random.default_rng(42))
        values = list(itertools.islice(it, 50))

        assert len(set(values)) > 40


class TestSampledDistribution:
    def test_wraps_sampler(self):
        dist = SampledDistribution(lambda rng: int(rng.integers(0, 10)))
        rng = np.random.default_rng(42)

        assert dist.expectation(lambda x: x, 10_000, rng) == pytest.approx(4.5, abs=0.15)

    def test_composes(self):
        dist = SampledDistribution(lambda rng: rng.random()).map(lambda x: x + 10)
        rng = np.random.default_rng(0)

        assert all(10 <= x < 11 for x in dist.sample_n(100, rng))


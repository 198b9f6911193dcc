"""
Sampling and composition algebra for probability distributions.

A distribution is anything that can draw an outcome from a NumPy random
generator. Distributions compose: ``map`` transforms outcomes lazily and
``apply`` builds a dependent random variable whose distribution is chosen
by the outcome of another one. Expectations of derived distributions are
estimated by Monte Carlo sampling.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

import numpy as np
from scipy import stats as scipy_stats

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class ExpectationEstimate:
    """Monte Carlo estimate of E[f(X)].

    Attributes:
        mean: Sample mean of f over the drawn outcomes.
        std: Sample standard deviation (ddof=1). Zero for a single sample.
        ci_half_width: Half-width of the Student-t confidence interval.
        confidence_level: Confidence level the interval was computed at.
        num_samples: Number of outcomes drawn.
    """

    mean: float
    std: float
    ci_half_width: float
    confidence_level: float
    num_samples: int

    @property
    def ci_low(self) -> float:
        return self.mean - self.ci_half_width

    @property
    def ci_high(self) -> float:
        return self.mean + self.ci_half_width

    def contains(self, value: float) -> bool:
        """Check whether ``value`` lies inside the confidence interval."""
        return self.ci_low <= value <= self.ci_high


def _check_sample_size(sample_size: int) -> None:
    if sample_size <= 0:
        raise ValueError(f"sample_size must be positive, got {sample_size}")


class Distribution(ABC, Generic[T]):
    """Abstract base class for probability distributions over outcomes of type T.

    Subclasses implement ``sample``. Drawing a sample may consume randomness
    from the generator but must never change the distribution's own
    parameters.
    """

    @abstractmethod
    def sample(self, rng: np.random.Generator) -> T:
        """Sample an outcome from the distribution.

        Args:
            rng: NumPy random number generator for reproducibility.

        Returns:
            A sampled outcome.
        """
        pass

    def sample_n(self, n: int, rng: np.random.Generator) -> list[T]:
        """Draw ``n`` independent samples."""
        return [self.sample(rng) for _ in range(n)]

    def sample_iter(self, rng: np.random.Generator) -> DistIter[T]:
        """Return an infinite iterator of independent samples.

        Args:
            rng: Generator every sample is drawn from.

        Returns:
            A DistIter that owns this distribution.
        """
        return DistIter(self, rng)

    def map(self, f: Callable[[T], U]) -> DistMap[T, U]:
        """Transform outcomes through ``f``.

        ``f`` is not called until a sample is requested from the result.

        Args:
            f: Function applied to every outcome.

        Returns:
            The distribution of f(X).
        """
        return DistMap(self, f)

    def apply(self, f: Callable[[T], Distribution[U]]) -> SampledDist[T, U]:
        """Build a dependent random variable.

        Sampling the result draws ``x`` from this distribution, then draws
        from ``f(x)``.

        Args:
            f: Function from an outcome to the distribution of the next value.

        Returns:
            The composed distribution.
        """
        return SampledDist(self, f)

    def expectation(
        self,
        f: Callable[[T], float],
        sample_size: int,
        rng: np.random.Generator,
    ) -> float:
        """Estimate E[f(X)] from ``sample_size`` independent samples.

        Args:
            f: Function from an outcome to a real number.
            sample_size: Number of samples to average over. Must be positive.
            rng: Generator to draw samples from.

        Returns:
            The sample mean of f.
        """
        _check_sample_size(sample_size)
        total = 0.0
        for _ in range(sample_size):
            total += f(self.sample(rng))
        return total / sample_size

    def expectation_estimate(
        self,
        f: Callable[[T], float],
        sample_size: int,
        rng: np.random.Generator,
        confidence_level: float = 0.95,
    ) -> ExpectationEstimate:
        """Estimate E[f(X)] together with a confidence interval.

        The interval uses the Student-t quantile for ``sample_size - 1``
        degrees of freedom. With a single sample the half-width is infinite.

        Args:
            f: Function from an outcome to a real number.
            sample_size: Number of samples to draw. Must be positive.
            rng: Generator to draw samples from.
            confidence_level: Desired confidence level in (0, 1).

        Returns:
            ExpectationEstimate with mean, std and CI half-width.
        """
        _check_sample_size(sample_size)
        if not 0 < confidence_level < 1:
            raise ValueError(
                f"confidence_level must be in (0, 1), got {confidence_level}"
            )

        values = np.array([f(self.sample(rng)) for _ in range(sample_size)], dtype=float)
        mean = float(np.mean(values))
        if sample_size < 2:
            return ExpectationEstimate(
                mean=mean,
                std=0.0,
                ci_half_width=math.inf,
                confidence_level=confidence_level,
                num_samples=sample_size,
            )

        std = float(np.std(values, ddof=1))
        t_crit = scipy_stats.t.ppf((1 + confidence_level) / 2, df=sample_size - 1)
        return ExpectationEstimate(
            mean=mean,
            std=std,
            ci_half_width=float(t_crit * std / math.sqrt(sample_size)),
            confidence_level=confidence_level,
            num_samples=sample_size,
        )


class DistIter(Generic[T]):
    """Infinite iterator of independent samples from a distribution.

    Created by ``Distribution.sample_iter``. Never raises StopIteration;
    the consumer decides when to stop.
    """

    def __init__(self, dist: Distribution[T], rng: np.random.Generator):
        self.dist = dist
        self.rng = rng

    def __iter__(self) -> DistIter[T]:
        return self

    def __next__(self) -> T:
        return self.dist.sample(self.rng)

    def __repr__(self) -> str:
        return f"DistIter({self.dist!r})"


class DistMap(Distribution[U], Generic[T, U]):
    """Distribution of f(X) for X drawn from a source distribution.

    Created by ``Distribution.map``.
    """

    def __init__(self, dist: Distribution[T], func: Callable[[T], U]):
        self.dist = dist
        self.func = func

    def sample(self, rng: np.random.Generator) -> U:
        return self.func(self.dist.sample(rng))

    def __repr__(self) -> str:
        return f"DistMap({self.dist!r})"


class SampledDist(Distribution[U], Generic[T, U]):
    """Dependent random variable: sample X, then sample from func(X).

    Created by ``Distribution.apply``.
    """

    def __init__(self, dist: Distribution[T], func: Callable[[T], Distribution[U]]):
        self.dist = dist
        self.func = func

    def sample(self, rng: np.random.Generator) -> U:
        return self.func(self.dist.sample(rng)).sample(rng)

    def __repr__(self) -> str:
        return f"SampledDist({self.dist!r})"


class SampledDistribution(Distribution[T]):
    """A distribution defined by a function that samples it.

    Useful for wrapping any sampler (for example a NumPy routine) so that
    it takes part in ``map``, ``apply`` and ``expectation``.

    Args:
        sampler: Callable drawing one outcome from the generator it is given.
    """

    def __init__(self, sampler: Callable[[np.random.Generator], T]):
        self.sampler = sampler

    def sample(self, rng: np.random.Generator) -> T:
        return self.sampler(rng)

    def __repr__(self) -> str:
        name = getattr(self.sampler, "__name__", type(self.sampler).__name__)
        return f"SampledDistribution({name})"

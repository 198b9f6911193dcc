"""
Distributions with finitely many outcomes.

A finite distribution can be written down as a probability table, so its
expectations are computed exactly instead of by sampling. Probabilities may
be floats or ``fractions.Fraction`` values; arithmetic on the table keeps
whatever numeric type the caller supplied.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Hashable, Mapping, Sequence
from typing import Callable, Iterator, TypeVar

import numpy as np

from .base import Distribution

T = TypeVar("T", bound=Hashable)
U = TypeVar("U", bound=Hashable)


class FiniteDistribution(Distribution[T]):
    """A distribution over finitely many hashable outcomes.

    Subclasses provide ``table``; ``sample`` defaults to inverting the
    cumulative weights of that table against a single uniform draw.
    """

    @abstractmethod
    def table(self) -> Mapping[T, float]:
        """Return the probability of each outcome.

        Returns:
            Read-only mapping from outcome to probability. Outcomes not in
            the mapping have probability zero.
        """
        pass

    def probability(self, outcome: T) -> float:
        """Probability of ``outcome``; 0.0 for outcomes not in the table."""
        return self.table().get(outcome, 0.0)

    def sample(self, rng: np.random.Generator) -> T:
        outcomes = list(self.table().keys())
        cumulative = np.cumsum([float(p) for p in self.table().values()])
        return _invert_cumulative(outcomes, cumulative, rng)

    def expectation(self, f: Callable[[T], float]) -> float:  # type: ignore[override]
        """Exact expectation of f(X): the probability-weighted sum over the table.

        Unlike the sampled estimator there is no ``sample_size``; the result
        has no sampling variance.

        Args:
            f: Function from an outcome to a real number.

        Returns:
            Sum of p(x) * f(x) over all outcomes x.
        """
        return sum(p * f(x) for x, p in self.table().items())

    def push_forward(self, f: Callable[[T], U]) -> Categorical[U]:
        """Exact distribution of f(X).

        Outcomes that ``f`` sends to the same value have their
        probabilities added. Unlike ``map``, ``f`` is evaluated immediately,
        once per outcome.

        Args:
            f: Function applied to every outcome in the table.

        Returns:
            Categorical over the image of ``f``.
        """
        result: dict[U, float] = {}
        for x, p in self.table().items():
            y = f(x)
            result[y] = result.get(y, 0) + p
        return Categorical(result, normalize=False)

    def total_probability(self) -> float:
        """Sum of the table; 1 for a well-formed distribution."""
        return sum(self.table().values())

    def __iter__(self) -> Iterator[tuple[T, float]]:
        return iter(self.table().items())

    def __len__(self) -> int:
        return len(self.table())

    def __contains__(self, outcome: object) -> bool:
        return outcome in self.table()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FiniteDistribution):
            return dict(self.table()) == dict(other.table())
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        entries = ", ".join(f"{x!r}: {p}" for x, p in self.table().items())
        return f"{type(self).__name__}({{{entries}}})"


def _invert_cumulative(
    outcomes: Sequence[T], cumulative: np.ndarray, rng: np.random.Generator
) -> T:
    """Pick the outcome whose cumulative-weight interval contains a uniform draw."""
    if len(outcomes) == 0:
        raise ValueError("Cannot sample from an empty distribution")
    u = rng.random() * cumulative[-1]
    idx = int(np.searchsorted(cumulative, u, side="right"))
    if idx >= len(outcomes):
        # u rounded up to the total; take the last outcome with positive weight
        idx = int(np.searchsorted(cumulative, cumulative[-1], side="left"))
    return outcomes[idx]


class Categorical(FiniteDistribution[T]):
    """Finite distribution given by an explicit outcome -> weight table.

    Args:
        weights: Non-negative weight per outcome.
        normalize: Divide every weight by the total so the table sums to 1.
            With ``normalize=False`` the weights are stored as given.
    """

    def __init__(self, weights: Mapping[T, float], normalize: bool = True):
        for outcome, weight in weights.items():
            if weight < 0:
                raise ValueError(
                    f"Weights must be non-negative, got {weight} for {outcome!r}"
                )
        total = sum(weights.values())
        if total <= 0:
            raise ValueError(f"Total weight must be positive, got {total}")

        if normalize:
            self._table = {outcome: weight / total for outcome, weight in weights.items()}
        else:
            self._table = dict(weights)

        self._outcomes = list(self._table.keys())
        self._cumulative = np.cumsum([float(p) for p in self._table.values()])

    def table(self) -> Mapping[T, float]:
        return self._table

    def sample(self, rng: np.random.Generator) -> T:
        """Sample by cumulative-weight inversion against one uniform draw."""
        return _invert_cumulative(self._outcomes, self._cumulative, rng)


class Constant(FiniteDistribution[T]):
    """Distribution that puts all probability on a single outcome.

    Args:
        value: The only outcome.
    """

    def __init__(self, value: T):
        self.value = value

    def table(self) -> Mapping[T, float]:
        return {self.value: 1.0}

    def sample(self, rng: np.random.Generator) -> T:
        return self.value

    def __repr__(self) -> str:
        return f"Constant(value={self.value!r})"


class Bernoulli(FiniteDistribution[bool]):
    """True with probability p, False otherwise.

    Args:
        p: Probability of True. Must be in [0, 1].
    """

    def __init__(self, p: float):
        if not 0 <= p <= 1:
            raise ValueError(f"p must be in [0, 1], got {p}")
        self.p = p

    def table(self) -> Mapping[bool, float]:
        return {True: self.p, False: 1 - self.p}

    def sample(self, rng: np.random.Generator) -> bool:
        return bool(rng.random() < self.p)

    def __repr__(self) -> str:
        return f"Bernoulli(p={self.p})"


class Choose(FiniteDistribution[T]):
    """Uniform choice among a collection of options.

    Repeated options are counted with multiplicity, so ``Choose("aab")``
    gives "a" probability 2/3.

    Args:
        options: Options to choose from. Must be non-empty.
    """

    def __init__(self, options: Sequence[T]):
        self.options = list(options)
        if not self.options:
            raise ValueError("Choose needs at least one option")
        weight = 1.0 / len(self.options)
        self._table: dict[T, float] = {}
        for option in self.options:
            self._table[option] = self._table.get(option, 0.0) + weight

    def table(self) -> Mapping[T, float]:
        return self._table

    def sample(self, rng: np.random.Generator) -> T:
        return self.options[int(rng.integers(len(self.options)))]

    def __repr__(self) -> str:
        return f"Choose({self.options!r})"


class Range(FiniteDistribution[int]):
    """Uniform over the integers in [low, high).

    ``Range(n)`` is uniform over 0, 1, ..., n - 1.

    Args:
        low: Lowest integer (inclusive), or the exclusive upper bound when
            ``high`` is omitted.
        high: Upper bound (exclusive).
    """

    def __init__(self, low: int, high: int | None = None):
        if high is None:
            low, high = 0, low
        if low >= high:
            raise ValueError(f"Low must be less than high, got low={low}, high={high}")
        self.low = low
        self.high = high

    def table(self) -> Mapping[int, float]:
        p = 1.0 / (self.high - self.low)
        return {i: p for i in range(self.low, self.high)}

    def sample(self, rng: np.random.Generator) -> int:
        return int(rng.integers(self.low, self.high))

    def __repr__(self) -> str:
        return f"Range(low={self.low}, high={self.high})"

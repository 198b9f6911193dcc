"""
Probability distributions for dynamic programming and simulation.

This package provides a sampling/composition algebra over arbitrary
outcome types and exact tabular distributions for finite outcome spaces.
"""

from .base import (
    Distribution,
    DistIter,
    DistMap,
    SampledDist,
    SampledDistribution,
    ExpectationEstimate,
)
from .finite import (
    FiniteDistribution,
    Categorical,
    Constant,
    Bernoulli,
    Choose,
    Range,
)

__all__ = [
    # Algebra
    "Distribution",
    "DistIter",
    "DistMap",
    "SampledDist",
    "SampledDistribution",
    "ExpectationEstimate",
    # Finite
    "FiniteDistribution",
    "Categorical",
    "Constant",
    "Bernoulli",
    "Choose",
    "Range",
]

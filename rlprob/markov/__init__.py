"""
Markov processes built on the rlprob distribution algebra.

This package provides the terminal/non-terminal state model, abstract and
finite Markov processes with lazy trace simulation, Markov reward
processes, and tabular methods (transition matrix, stationary distribution)
in floating-point and exact arithmetic.
"""

from .state import State, Terminal, NonTerminal
from .process import (
    MarkovProcess,
    FiniteMarkovProcess,
    MarkovRewardProcess,
    FiniteMarkovRewardProcess,
    TransitionStep,
)
from .stationary import StationaryConfig, StationaryMethod, stationary_distribution
from .exact import exact_transition_matrix, exact_stationary_distribution

__all__ = [
    # States
    "State",
    "Terminal",
    "NonTerminal",
    # Processes
    "MarkovProcess",
    "FiniteMarkovProcess",
    "MarkovRewardProcess",
    "FiniteMarkovRewardProcess",
    "TransitionStep",
    # Stationary solve
    "StationaryConfig",
    "StationaryMethod",
    "stationary_distribution",
    # Exact arithmetic
    "exact_transition_matrix",
    "exact_stationary_distribution",
]

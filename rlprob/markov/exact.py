"""
Lossless tabular methods for finite Markov processes.

Probabilities are converted to sympy Rationals so transition matrices and
stationary distributions carry no floating-point error. Use Fraction
probabilities in the transition map for exact input; floats are converted
to the rational matching their decimal representation, so rows built from
rounded floats may not sum to exactly one.
"""

import logging
from fractions import Fraction
from numbers import Rational

import sympy as sym

from ..distribution import Categorical
from ..exceptions import NoStationaryDistributionError
from .process import FiniteMarkovProcess
from .state import NonTerminal

logger = logging.getLogger(__name__)


def to_rational(p) -> sym.Rational:
    """Convert an int, Fraction or float probability to a sympy Rational."""
    if isinstance(p, Rational):
        return sym.Rational(p.numerator, p.denominator)
    return sym.nsimplify(p, rational=True)


def exact_transition_matrix(process: FiniteMarkovProcess) -> sym.Matrix:
    """
    Algorithm:
    1. process.non_terminal_states[i] becomes row and column i
    2. Q[i, j] = P(i -> j) as a Rational, zero when no transition is listed
    *** transitions to terminal states have no column and are dropped
    """
    index = {s: i for i, s in enumerate(process.non_terminal_states)}
    n = len(index)
    output_matrix = sym.zeros(n, n)
    for starting_state, starting_id in index.items():
        for ending_state, p in process.transition(starting_state):
            ending_id = index.get(ending_state)
            if ending_id is not None:
                output_matrix[starting_id, ending_id] = to_rational(p)
    return output_matrix


def exact_stationary_distribution(
    process: FiniteMarkovProcess,
) -> Categorical[NonTerminal]:
    """Stationary distribution with Fraction probabilities.

    Solves the null space of (P^T - I) symbolically; a unique stationary
    distribution exists exactly when that null space is one-dimensional and
    spanned by a sign-consistent vector.

    Raises:
        NoStationaryDistributionError: If no unique stationary distribution exists.
    """
    n = len(process.non_terminal_states)
    if n == 0:
        raise NoStationaryDistributionError("process has no non-terminal states")

    p = exact_transition_matrix(process)
    basis = (p.T - sym.eye(n)).nullspace()
    if len(basis) != 1:
        logger.warning("Exact null space of (P^T - I) has dimension %d", len(basis))
        raise NoStationaryDistributionError(
            f"null space of (P^T - I) has dimension {len(basis)}, expected 1"
        )

    v = basis[0]
    total = sum(v)
    if total == 0:
        raise NoStationaryDistributionError("null space vector sums to zero")
    pi = [x / total for x in v]
    if any(x < 0 for x in pi):
        raise NoStationaryDistributionError("stationary vector is not sign-consistent")

    return Categorical(
        {
            s: Fraction(int(x.p), int(x.q))
            for s, x in zip(process.non_terminal_states, pi)
        },
        normalize=False,
    )

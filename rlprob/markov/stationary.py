"""
Stationary distribution of a finite transition matrix.

Solves pi = pi P with sum(pi) = 1 and pi >= 0. A result is returned only
when exactly one such distribution exists; otherwise
NoStationaryDistributionError is raised. This happens when probability
leaks out of the matrix (absorbing states outside it), when the chain has
more than one closed class, or when the solve is numerically unreliable.

Two methods are supported:
  - **NULL_SPACE**: orthonormal basis of the null space of (P^T - I) via
    SVD. Singular values below ``tolerance * max(singular value)`` count as
    zero, and the basis must be one-dimensional.
  - **LINEAR_SOLVE**: checks that (P^T - I) has rank n - 1, replaces its
    last equation with the normalization constraint and solves the
    resulting square system.

Both methods then verify the answer: every component must be >= -tolerance
and the residual max|pi P - pi| must be <= tolerance.
"""

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np
from scipy import linalg

from ..exceptions import NoStationaryDistributionError

logger = logging.getLogger(__name__)


class StationaryMethod(Enum):
    """Numerical approach for the stationary solve."""

    NULL_SPACE = "null_space"
    LINEAR_SOLVE = "linear_solve"


@dataclass
class StationaryConfig:
    """Settings for the stationary distribution solve.

    Attributes:
        method: Which numerical approach to use. Default NULL_SPACE.
        tolerance: Relative singular-value cutoff for rank decisions, maximum
            allowed residual max|pi P - pi|, and the most negative component
            still treated as zero. Default 1e-10.
    """

    method: StationaryMethod = StationaryMethod.NULL_SPACE
    tolerance: float = 1e-10

    def __post_init__(self) -> None:
        if not isinstance(self.method, StationaryMethod):
            raise ValueError(f"Unknown stationary method: {self.method!r}")
        if not 0 < self.tolerance < 1:
            raise ValueError(f"tolerance must be in (0, 1), got {self.tolerance}")


def _fail(message: str) -> NoStationaryDistributionError:
    logger.warning("No stationary distribution: %s", message)
    return NoStationaryDistributionError(message)


def _solve_null_space(a: np.ndarray, tolerance: float) -> np.ndarray:
    basis = linalg.null_space(a, rcond=tolerance)
    dimension = basis.shape[1]
    if dimension != 1:
        raise _fail(
            f"null space of (P^T - I) has dimension {dimension}, expected 1"
        )
    v = basis[:, 0]
    total = v.sum()
    if abs(total) <= tolerance:
        raise _fail("null space vector cannot be normalized (sums to zero)")
    return v / total


def _solve_linear(a: np.ndarray, tolerance: float) -> np.ndarray:
    n = a.shape[0]
    singular_values = linalg.svdvals(a)
    rank = int(np.sum(singular_values > tolerance * singular_values.max()))
    if rank != n - 1:
        raise _fail(f"(P^T - I) has rank {rank}, expected {n - 1}")

    system = a.copy()
    system[-1, :] = 1.0
    rhs = np.zeros(n)
    rhs[-1] = 1.0
    try:
        return linalg.solve(system, rhs)
    except linalg.LinAlgError as e:
        raise _fail(f"normalized system is singular ({e})") from e


def stationary_distribution(
    matrix: np.ndarray, config: StationaryConfig | None = None
) -> np.ndarray:
    """Compute the unique stationary distribution of a transition matrix.

    Args:
        matrix: Square matrix with ``matrix[i, j]`` = P(i -> j). Rows may sum
            to less than 1 when mass leaves the matrix.
        config: Solve settings. Defaults to StationaryConfig().

    Returns:
        Vector pi with pi >= 0, sum(pi) == 1 and pi P == pi within tolerance.

    Raises:
        NoStationaryDistributionError: If no unique stationary distribution exists.
    """
    if config is None:
        config = StationaryConfig()

    p = np.asarray(matrix, dtype=float)
    if p.ndim != 2 or p.shape[0] != p.shape[1]:
        raise ValueError(f"Transition matrix must be square, got shape {p.shape}")
    n = p.shape[0]
    if n == 0:
        raise _fail("process has no non-terminal states")

    a = p.T - np.eye(n)
    if config.method == StationaryMethod.NULL_SPACE:
        pi = _solve_null_space(a, config.tolerance)
    else:
        pi = _solve_linear(a, config.tolerance)

    if pi.min() < -config.tolerance:
        raise _fail(f"solution has negative component {pi.min():.3g}")
    pi = np.clip(pi, 0.0, None)
    pi = pi / pi.sum()

    residual = float(np.max(np.abs(pi @ p - pi)))
    if residual > config.tolerance:
        raise _fail(f"residual {residual:.3g} exceeds tolerance {config.tolerance:.3g}")

    logger.debug(
        "Stationary distribution over %d states via %s (residual %.3g)",
        n,
        config.method.value,
        residual,
    )
    return pi

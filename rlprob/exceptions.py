"""
Exceptions raised by rlprob.

Bad arguments raise the built-in ``ValueError``. The classes here cover
failures specific to Markov process construction and analysis.
"""


class RLProbError(Exception):
    """Base class for rlprob errors."""


class InvalidProcessError(RLProbError, ValueError):
    """A Markov process was built from an incomplete or inconsistent transition map."""


class NoStationaryDistributionError(RLProbError, ArithmeticError):
    """The process has no unique stationary distribution over its non-terminal states."""

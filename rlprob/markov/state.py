"""
States of a Markov process.

Every state is either ``Terminal`` (absorbing, no outgoing transition) or
``NonTerminal`` (has a one-step transition distribution). Both wrap a plain
state value; equality and hashing follow the wrapped value, so wrapped
states work as dictionary keys.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

S = TypeVar("S")
X = TypeVar("X")


class State(ABC, Generic[S]):
    """A state of a Markov process: either Terminal or NonTerminal."""

    state: S

    def __init__(self, *args, **kwargs):
        # Terminal and NonTerminal get their own dataclass __init__
        raise TypeError("State cannot be instantiated; use Terminal or NonTerminal")

    def on_non_terminal(self, f: Callable[[NonTerminal[S]], X], default: X) -> X:
        """Apply ``f`` if this state is non-terminal, otherwise return ``default``.

        Args:
            f: Function of the non-terminal state.
            default: Value returned for a terminal state.

        Returns:
            f(self) for a NonTerminal, else default.
        """
        if isinstance(self, NonTerminal):
            return f(self)
        return default

    def is_terminal(self) -> bool:
        return isinstance(self, Terminal)


@dataclass(frozen=True, order=True)
class Terminal(State[S]):
    """An absorbing state."""

    state: S

    def __repr__(self) -> str:
        return f"Terminal({self.state!r})"


@dataclass(frozen=True, order=True)
class NonTerminal(State[S]):
    """An active state with an outgoing transition distribution."""

    state: S

    def __repr__(self) -> str:
        return f"NonTerminal({self.state!r})"

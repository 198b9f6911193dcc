"""
Markov processes and Markov reward processes.

A Markov process maps every non-terminal state to a distribution over the
next state. Simulation draws a start state and follows transitions until a
terminal state is reached; chains without reachable terminal states produce
infinite traces, so all simulation methods are lazy generators.

FiniteMarkovProcess stores an exact transition table per non-terminal state,
which supports tabular methods: the transition matrix and the stationary
distribution.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass
from typing import Generic, Iterator, TypeVar

import numpy as np

from ..distribution import Categorical, Distribution, FiniteDistribution
from ..exceptions import InvalidProcessError
from .state import NonTerminal, State, Terminal
from .stationary import StationaryConfig, stationary_distribution

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Hashable)


def _require_non_terminal(state: State[S]) -> NonTerminal[S]:
    if not isinstance(state, NonTerminal):
        raise TypeError(f"Transitions are only defined for NonTerminal states, got {state!r}")
    return state


@dataclass(frozen=True)
class TransitionStep(Generic[S]):
    """One step of a reward-process trace.

    Attributes:
        state: State the step starts from.
        next_state: State reached (terminal or non-terminal).
        reward: Reward earned on the transition.
    """

    state: NonTerminal[S]
    next_state: State[S]
    reward: float


class MarkovProcess(ABC, Generic[S]):
    """Abstract base class for Markov processes over states of type S."""

    @abstractmethod
    def transition(self, state: NonTerminal[S]) -> Distribution[State[S]]:
        """Distribution of the next state given the current non-terminal state.

        Args:
            state: Current state. Must be NonTerminal; terminal states have
                no outgoing transition.

        Returns:
            Distribution over next states, which may be terminal.
        """
        pass

    def is_terminal(self, state: State[S]) -> bool:
        return isinstance(state, Terminal)

    def start_state(self, draw) -> State[S]:
        """Check a draw from a start-state distribution.

        Raises:
            TypeError: If the draw is not a Terminal or NonTerminal state.
        """
        if not isinstance(draw, State):
            raise TypeError(f"Start state must be Terminal or NonTerminal, got {draw!r}")
        return draw

    def simulate(
        self,
        start_state_distribution: Distribution[State[S]],
        rng: np.random.Generator,
    ) -> Iterator[State[S]]:
        """Lazily generate one trace of the process.

        The first element is drawn from ``start_state_distribution``; each
        following element is drawn from the transition of the previous one.
        The trace ends right after the first terminal state and is infinite
        if no terminal state is ever reached.

        Args:
            start_state_distribution: Distribution of the initial state.
                Draws go through ``start_state``.
            rng: Generator all draws come from.

        Yields:
            States of the trace, in order.
        """
        state = self.start_state(start_state_distribution.sample(rng))
        yield state
        while isinstance(state, NonTerminal):
            state = self.transition(state).sample(rng)
            yield state

    def traces(
        self,
        start_state_distribution: Distribution[State[S]],
        rng: np.random.Generator,
    ) -> Iterator[Iterator[State[S]]]:
        """Infinite stream of independent traces, each started from a fresh draw."""
        while True:
            yield self.simulate(start_state_distribution, rng)


class FiniteMarkovProcess(MarkovProcess[S]):
    """Markov process over a finite set of non-terminal states.

    Built from a mapping of each non-terminal state value to a finite
    distribution over next state values. Next states that are not keys of
    the mapping are terminal.

    Args:
        transition_map: Transition distribution for every non-terminal state.
        non_terminal_states: Order in which non-terminal states are
            enumerated (matrix rows and columns). Must name exactly the keys
            of ``transition_map``. Defaults to the mapping's key order.

    Raises:
        InvalidProcessError: If the order and the mapping disagree, or a
            transition entry is not a finite distribution.
    """

    def __init__(
        self,
        transition_map: Mapping[S, FiniteDistribution[S]],
        non_terminal_states: Sequence[S] | None = None,
    ):
        order = _resolve_order(transition_map, non_terminal_states)
        self._non_terminal_values = frozenset(order)

        self.non_terminal_states: list[NonTerminal[S]] = [NonTerminal(s) for s in order]
        self.transition_map: dict[NonTerminal[S], FiniteDistribution[State[S]]] = {}
        for s in order:
            dist = transition_map[s]
            self.transition_map[NonTerminal(s)] = _wrap_table(
                s, {self.wrap(s1): p for s1, p in dist}
            )

        terminal_count = len(
            {
                next_state
                for dist in self.transition_map.values()
                for next_state, _ in dist
                if isinstance(next_state, Terminal)
            }
        )
        logger.debug(
            "Built %s with %d non-terminal and %d terminal states",
            type(self).__name__,
            len(self.non_terminal_states),
            terminal_count,
        )

    def wrap(self, state: S) -> State[S]:
        """Wrap a raw state value as NonTerminal or Terminal for this process."""
        if state in self._non_terminal_values:
            return NonTerminal(state)
        return Terminal(state)

    def start_state(self, draw) -> State[S]:
        """Accept a State as is and wrap a raw state value."""
        if isinstance(draw, State):
            return draw
        return self.wrap(draw)

    def transition(self, state: NonTerminal[S]) -> FiniteDistribution[State[S]]:
        return self.transition_map[_require_non_terminal(state)]

    def get_transition_matrix(self) -> np.ndarray:
        """Transition probabilities between non-terminal states.

        Rows and columns follow ``non_terminal_states``. Mass that moves to
        terminal states is left out, so rows of a process with reachable
        terminal states sum to less than one.

        Returns:
            n x n array with entry (i, j) = P(state i -> state j).
        """
        index = {s: i for i, s in enumerate(self.non_terminal_states)}
        n = len(self.non_terminal_states)
        matrix = np.zeros((n, n))
        for i, s in enumerate(self.non_terminal_states):
            for next_state, p in self.transition_map[s]:
                j = index.get(next_state)
                if j is not None:
                    matrix[i, j] = float(p)
        return matrix

    def get_stationary_distribution(
        self, config: StationaryConfig | None = None
    ) -> Categorical[NonTerminal[S]]:
        """Stationary distribution over the non-terminal states.

        Args:
            config: Solve settings; see StationaryConfig.

        Returns:
            Categorical pi over non-terminal states with pi = pi P.

        Raises:
            NoStationaryDistributionError: If no unique stationary
                distribution exists over the non-terminal states.
        """
        pi = stationary_distribution(self.get_transition_matrix(), config)
        return Categorical(
            {s: float(pi[i]) for i, s in enumerate(self.non_terminal_states)},
            normalize=False,
        )

    def display(self) -> str:
        """Human-readable listing of every transition."""
        lines = []
        for s in self.non_terminal_states:
            lines.append(f"From State {s.state!r}:")
            for next_state, p in self.transition_map[s]:
                kind = " (terminal)" if isinstance(next_state, Terminal) else ""
                lines.append(
                    f"  To State {next_state.state!r}{kind} with Probability {float(p):.3f}"
                )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(non_terminal_states={len(self.non_terminal_states)})"


class MarkovRewardProcess(MarkovProcess[S]):
    """Markov process whose transitions also yield a scalar reward."""

    @abstractmethod
    def transition_reward(
        self, state: NonTerminal[S]
    ) -> Distribution[tuple[State[S], float]]:
        """Joint distribution of (next state, reward) from a non-terminal state."""
        pass

    def transition(self, state: NonTerminal[S]) -> Distribution[State[S]]:
        return self.transition_reward(state).map(lambda pair: pair[0])

    def simulate_reward(
        self,
        start_state_distribution: Distribution[State[S]],
        rng: np.random.Generator,
    ) -> Iterator[TransitionStep[S]]:
        """Lazily generate one trace of (state, next_state, reward) steps.

        The trace ends with the step that reaches a terminal state. A
        terminal start state gives an empty trace.

        Args:
            start_state_distribution: Distribution of the initial state.
            rng: Generator all draws come from.

        Yields:
            TransitionStep for every transition taken.
        """
        state = self.start_state(start_state_distribution.sample(rng))
        while isinstance(state, NonTerminal):
            next_state, reward = self.transition_reward(state).sample(rng)
            yield TransitionStep(state=state, next_state=next_state, reward=reward)
            state = next_state

    def reward_traces(
        self,
        start_state_distribution: Distribution[State[S]],
        rng: np.random.Generator,
    ) -> Iterator[Iterator[TransitionStep[S]]]:
        """Infinite stream of independent reward traces."""
        while True:
            yield self.simulate_reward(start_state_distribution, rng)


class FiniteMarkovRewardProcess(FiniteMarkovProcess[S], MarkovRewardProcess[S]):
    """Finite Markov process with a joint (next state, reward) table per state.

    The plain transition of each state is the exact marginal of its
    (next state, reward) table over next states, so all FiniteMarkovProcess
    tabular methods apply.

    Args:
        transition_reward_map: Distribution over (next state, reward) pairs
            for every non-terminal state.
        non_terminal_states: Enumeration order; see FiniteMarkovProcess.
    """

    def __init__(
        self,
        transition_reward_map: Mapping[S, FiniteDistribution[tuple[S, float]]],
        non_terminal_states: Sequence[S] | None = None,
    ):
        marginals = {
            s: dist.push_forward(lambda pair: pair[0])
            if isinstance(dist, FiniteDistribution)
            else dist
            for s, dist in transition_reward_map.items()
        }
        super().__init__(marginals, non_terminal_states)

        self.transition_reward_map: dict[
            NonTerminal[S], FiniteDistribution[tuple[State[S], float]]
        ] = {}
        for s in self.non_terminal_states:
            dist = transition_reward_map[s.state]
            self.transition_reward_map[s] = _wrap_table(
                s.state,
                {(self.wrap(next_state), reward): p for (next_state, reward), p in dist},
            )

    def transition_reward(
        self, state: NonTerminal[S]
    ) -> FiniteDistribution[tuple[State[S], float]]:
        return self.transition_reward_map[_require_non_terminal(state)]


def _resolve_order(
    transition_map: Mapping[S, FiniteDistribution], non_terminal_states: Sequence[S] | None
) -> list[S]:
    """Check the transition map against the requested state order and return the order."""
    if non_terminal_states is None:
        order = list(transition_map.keys())
    else:
        order = list(non_terminal_states)
        seen: set[S] = set()
        duplicates = []
        for s in order:
            if s in seen:
                duplicates.append(s)
            seen.add(s)
        if duplicates:
            raise InvalidProcessError(f"Duplicate non-terminal states: {duplicates!r}")
        missing = [s for s in order if s not in transition_map]
        if missing:
            raise InvalidProcessError(
                f"Non-terminal states without a transition entry: {missing!r}"
            )
        unlisted = [s for s in transition_map if s not in seen]
        if unlisted:
            raise InvalidProcessError(
                f"Transition entries for states not listed as non-terminal: {unlisted!r}"
            )

    for s in order:
        if not isinstance(transition_map[s], FiniteDistribution):
            raise InvalidProcessError(
                f"Transition for {s!r} must be a FiniteDistribution, "
                f"got {type(transition_map[s]).__name__}"
            )
    return order


def _wrap_table(source: S, table: dict) -> Categorical:
    """Build a transition Categorical, warning if its probabilities do not sum to 1."""
    try:
        dist = Categorical(table, normalize=False)
    except ValueError as e:
        raise InvalidProcessError(f"Invalid transition for {source!r}: {e}") from e
    total = float(dist.total_probability())
    if not math.isclose(total, 1.0, abs_tol=1e-9):
        logger.warning("Transition probabilities for %r sum to %.6g, not 1", source, total)
    return dist

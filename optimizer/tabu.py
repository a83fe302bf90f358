"""Tabu search used as a local repair step.

A random-move tabu search that minimizes an integer score (for timetables:
the number of hard violations). Each iteration proposes one random move,
applies it to a copy of the current state and scores the result.

- A move is accepted if it is not tabu.
- A tabu move is still accepted if it beats the best score seen so far
  (aspiration criterion).
- Accepted moves enter a FIFO tabu list of fixed length (`tenure`).

Accepted moves do not have to improve the current state: the search walks
freely and keeps a snapshot of the best state. The result is therefore never
worse than the input.

The engine is problem-agnostic: the caller supplies how to propose a move,
how to apply it and how to score a state.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, Protocol, TypeVar

import random


TState = TypeVar("TState")


class ProposeFn(Protocol[TState]):
    def __call__(self, state: TState, rng: random.Random) -> Hashable:  # pragma: no cover
        """Return a random move for `state`. Moves must be hashable."""


class ApplyFn(Protocol[TState]):
    def __call__(self, state: TState, move: Hashable) -> TState:  # pragma: no cover
        """Return a NEW state with `move` applied; `state` must not change."""


class ScoreFn(Protocol[TState]):
    def __call__(self, state: TState) -> int:  # pragma: no cover
        """Return the score to MINIMIZE (0 = nothing left to repair)."""


@dataclass(frozen=True)
class TabuConfig:
    """Configuration for the tabu repair.

    Attributes:
        tenure: Number of recent moves that are tabu.
        max_iterations: Iteration cap per call.
    """

    tenure: int = 10
    max_iterations: int = 50


@dataclass
class TabuResult(Generic[TState]):
    best_state: TState
    best_score: int
    initial_score: int
    iterations: int
    accepted_moves: int

    @property
    def improved(self) -> bool:
        return self.best_score < self.initial_score


class TabuList:
    """Fixed-length FIFO of moves with O(1) membership checks."""

    def __init__(self, tenure: int) -> None:
        self.tenure = max(0, int(tenure))
        self._queue: deque = deque()
        self._members: set = set()

    def __contains__(self, move: Hashable) -> bool:
        return move in self._members

    def __len__(self) -> int:
        return len(self._queue)

    def add(self, move: Hashable) -> None:
        self._queue.append(move)
        self._members.add(move)
        while len(self._queue) > self.tenure:
            old = self._queue.popleft()
            # a move can sit in the queue twice; keep it tabu while any copy remains
            if old not in self._queue:
                self._members.discard(old)


def tabu_search(
    initial_state: TState,
    propose: ProposeFn[TState],
    apply: ApplyFn[TState],
    score: ScoreFn[TState],
    config: TabuConfig = TabuConfig(),
    rng: Optional[random.Random] = None,
    callback: Optional[Callable[[int, int, int], None]] = None,
) -> TabuResult[TState]:
    """Run tabu search from `initial_state`.

    Contract:
    - Minimizes `score(state)`; stops early when it reaches 0.
    - `apply` never mutates its input.
    - `callback(iteration, current_score, best_score)` is called each iteration.

    Returns:
        TabuResult with the best state found (the input itself if it already
        scores 0 or nothing better was found).
    """

    rng = rng or random.Random()

    current = initial_state
    current_score = score(current)
    initial_score = current_score

    best = current
    best_score = current_score

    tabu = TabuList(config.tenure)
    accepted_moves = 0
    iterations = 0

    for it in range(config.max_iterations):
        if best_score == 0:
            break
        iterations = it + 1

        move = propose(current, rng)
        cand = apply(current, move)
        cand_score = score(cand)

        if move not in tabu or cand_score < best_score:
            current = cand
            current_score = cand_score
            accepted_moves += 1
            tabu.add(move)

            if cand_score < best_score:
                best = cand
                best_score = cand_score

        if callback is not None:
            callback(iterations, current_score, best_score)

    return TabuResult(
        best_state=best,
        best_score=best_score,
        initial_score=initial_score,
        iterations=iterations,
        accepted_moves=accepted_moves,
    )

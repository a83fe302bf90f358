"""Genetic algorithm (population search).

This module provides a reusable, problem-agnostic genetic algorithm. The
caller supplies how to create a random individual, how to score it (fitness to
MAXIMIZE), how to recombine two parents and how to mutate a child. An optional
repair step runs on every offspring before it is scored.

Two replacement policies are supported:

1) steady_state: each iteration produces exactly one offspring, which replaces
   the current worst individual only if it is strictly fitter. The run stops
   when the best fitness reaches the target, when the best fitness has not
   improved for `max_stagnation` iterations, or after `max_iterations`.
2) generational: each generation keeps the `elite_count` best individuals
   unchanged and refills the rest with offspring. The run stops when the best
   fitness reaches the target or after `generations` generations.

Parents are chosen by tournament selection. All randomness comes from one
`random.Random` so that a fixed seed reproduces a run.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Generic, List, Optional, Protocol, Sequence, Tuple, TypeVar

import logging
import random


logger = logging.getLogger(__name__)

TState = TypeVar("TState")

REPLACEMENT_POLICIES = ("steady_state", "generational")


class InitFn(Protocol[TState]):
    def __call__(self, rng: random.Random) -> TState:  # pragma: no cover
        """Return a new random individual."""


class FitnessFn(Protocol[TState]):
    def __call__(self, state: TState) -> float:  # pragma: no cover
        """Return fitness to MAXIMIZE."""


class CrossoverFn(Protocol[TState]):
    def __call__(self, first: TState, second: TState, rng: random.Random) -> TState:  # pragma: no cover
        """Return a NEW child built from two parents; parents must not change."""


class MutateFn(Protocol[TState]):
    def __call__(self, state: TState, rng: random.Random) -> TState:  # pragma: no cover
        """Return the mutated individual (may be `state` changed in place)."""


class RepairFn(Protocol[TState]):
    def __call__(self, state: TState, rng: random.Random) -> TState:  # pragma: no cover
        """Return a repaired individual, at least as good as `state`."""


class CallbackFn(Protocol):
    def __call__(self, iteration: int, best_fitness: float, worst_fitness: float, stagnation: int) -> None:  # pragma: no cover
        """Optional progress callback called each iteration/generation."""


@dataclass(frozen=True)
class GeneticConfig:
    """Configuration for the genetic algorithm.

    Attributes:
        population_size: Number of individuals.
        tournament_size: Individuals drawn per tournament.
        mutation_rate: Probability handed to the mutation operator.
        replacement: "steady_state" or "generational".
        elite_count: Individuals carried unchanged per generation (generational).
        max_stagnation: Iterations without improvement before stopping (steady_state).
        max_iterations: Hard iteration ceiling (steady_state).
        generations: Generation cap (generational).
        target_fitness: Stop as soon as the best fitness reaches this value.
        repair: Run the repair step on offspring when one is supplied.
        workers: Threads used to score batches of individuals (1 = inline).
        seed: RNG seed for reproducibility.
    """

    population_size: int = 50
    tournament_size: int = 5
    mutation_rate: float = 0.5
    replacement: str = "steady_state"
    elite_count: int = 2
    max_stagnation: int = 50
    max_iterations: int = 5000
    generations: int = 100
    target_fitness: float = 1.0
    repair: bool = True
    workers: int = 1
    seed: Optional[int] = 42

    def validate(self) -> None:
        if self.replacement not in REPLACEMENT_POLICIES:
            raise ValueError(f"replacement must be one of: {', '.join(REPLACEMENT_POLICIES)}")
        if self.population_size < 2:
            raise ValueError("population_size must be >= 2")
        if self.tournament_size < 1:
            raise ValueError("tournament_size must be >= 1")
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ValueError("mutation_rate must be between 0 and 1")
        if not 0 <= self.elite_count < self.population_size:
            raise ValueError("elite_count must be >= 0 and < population_size")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")


@dataclass
class GeneticResult(Generic[TState]):
    best_state: TState
    best_fitness: float
    iterations: int
    stagnation: int
    # best fitness after initialization and after every iteration/generation
    history: List[float] = field(default_factory=list)
    final_population: List[Tuple[float, TState]] = field(default_factory=list)


Scored = Tuple[float, TState]


def _sort(population: List[Scored]) -> None:
    population.sort(key=lambda p: p[0], reverse=True)


def _score_all(states: Sequence[TState], fitness: FitnessFn[TState], workers: int) -> List[float]:
    if workers <= 1 or len(states) <= 1:
        return [fitness(s) for s in states]
    # each individual owns its data, so scoring distinct individuals is independent
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(fitness, states))


def tournament_select(population: Sequence[Scored], size: int, rng: random.Random) -> TState:
    """Draw `size` individuals uniformly (with replacement) and return the fittest."""

    best: Optional[Scored] = None
    for _k in range(size):
        cand = population[rng.randrange(len(population))]
        if best is None or cand[0] > best[0]:
            best = cand
    return best[1]


def evolve(
    init: InitFn[TState],
    fitness: FitnessFn[TState],
    crossover: CrossoverFn[TState],
    mutate: MutateFn[TState],
    config: GeneticConfig = GeneticConfig(),
    repair: Optional[RepairFn[TState]] = None,
    callback: Optional[CallbackFn] = None,
    rng: Optional[random.Random] = None,
) -> GeneticResult[TState]:
    """Run the genetic algorithm.

    Contract:
    - Maximizes `fitness(state)`.
    - `rng` takes precedence over `config.seed`; pass one generator to share it
      with the operators.

    Returns:
        GeneticResult with the best individual of the final population.
    """

    config.validate()
    rng = rng or random.Random(config.seed)
    use_repair = repair is not None and config.repair

    def offspring() -> TState:
        first = tournament_select(population, config.tournament_size, rng)
        second = tournament_select(population, config.tournament_size, rng)
        child = crossover(first, second, rng)
        child = mutate(child, rng)
        if use_repair:
            child = repair(child, rng)
        return child

    states = [init(rng) for _k in range(config.population_size)]
    population: List[Scored] = list(zip(_score_all(states, fitness, config.workers), states))
    _sort(population)

    best_fitness = population[0][0]
    history = [best_fitness]
    stagnation = 0
    iterations = 0

    logger.debug(
        "Population initialized | size=%s best=%.6f worst=%.6f",
        len(population),
        population[0][0],
        population[-1][0],
    )

    if config.replacement == "steady_state":
        while population[0][0] < config.target_fitness and stagnation < config.max_stagnation:
            iterations += 1

            child = offspring()
            child_fitness = fitness(child)

            if child_fitness > population[-1][0]:
                population[-1] = (child_fitness, child)
                _sort(population)

            if population[0][0] > best_fitness:
                best_fitness = population[0][0]
                stagnation = 0
            else:
                stagnation += 1

            history.append(population[0][0])
            if callback is not None:
                callback(iterations, population[0][0], population[-1][0], stagnation)

            if iterations >= config.max_iterations:
                logger.debug("Iteration ceiling reached | iterations=%s", iterations)
                break
    else:
        for _gen in range(config.generations):
            if population[0][0] >= config.target_fitness:
                break
            iterations += 1

            elites = population[: config.elite_count]
            children = [offspring() for _k in range(config.population_size - len(elites))]
            scored = list(zip(_score_all(children, fitness, config.workers), children))
            population = list(elites) + scored
            _sort(population)

            if population[0][0] > best_fitness:
                best_fitness = population[0][0]
                stagnation = 0
            else:
                stagnation += 1

            history.append(population[0][0])
            if callback is not None:
                callback(iterations, population[0][0], population[-1][0], stagnation)

    logger.debug(
        "Search finished | policy=%s iterations=%s best=%.6f stagnation=%s",
        config.replacement,
        iterations,
        population[0][0],
        stagnation,
    )

    return GeneticResult(
        best_state=population[0][1],
        best_fitness=population[0][0],
        iterations=iterations,
        stagnation=stagnation,
        history=history,
        final_population=population,
    )

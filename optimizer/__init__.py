"""Optimization engines used by the timetable scheduler."""

from .genetic import GeneticConfig, GeneticResult, evolve, tournament_select
from .tabu import TabuConfig, TabuList, TabuResult, tabu_search

__all__ = [
    "GeneticConfig",
    "GeneticResult",
    "evolve",
    "tournament_select",
    "TabuConfig",
    "TabuList",
    "TabuResult",
    "tabu_search",
]

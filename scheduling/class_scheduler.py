"""Weekly class timetable generation.

This module plugs the timetable problem into the reusable engines:

- `optimizer.genetic` searches over slot assignments (population search)
- `optimizer.tabu` repairs offspring that still contain hard violations

Faculty are bound to every session unit up front by the session builder; the
search only moves units between time slots.

Session groups
--------------
All hours of one lab for one section are generated back to back by the
builder and form one session group. Initialization, crossover and mutation
always place a group as one block of slots on the same day, each slot starting
exactly when the previous one ends. A theory hour is a group of one.

Tabu repair moves single units and may break a lab block; its output is
re-scored like any other offspring.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

import random

from optimizer import GeneticConfig, TabuConfig, evolve, tabu_search

from .config import RunConfig
from .fitness import ClassSchedulingSettings, compute_metrics, count_hard_violations, evaluate
from .models import CandidateSchedule, Faculty, Section, SessionGroup, SessionUnit, Subject, TimeSlot, build_week_slots
from .session_builder import build_sessions


logger = logging.getLogger(__name__)


# ----------------------------
# Groups and slot blocks
# ----------------------------


def build_session_groups(template: Sequence[SessionUnit]) -> Tuple[SessionGroup, ...]:
    """Group template indices: one group per theory unit, one per run of lab units.

    A lab run is a maximal sequence of consecutive units with the same section
    and the same lab subject.
    """

    groups: List[SessionGroup] = []
    n = len(template)
    i = 0
    while i < n:
        unit = template[i]
        indices = [i]
        j = i + 1
        if unit.subject.is_lab:
            while j < n and template[j].group_key == unit.group_key:
                indices.append(j)
                j += 1
        groups.append(
            SessionGroup(
                indices=tuple(indices),
                section_id=unit.section.section_id,
                subject_code=unit.subject.code,
                is_lab=unit.subject.is_lab,
            )
        )
        i = j
    return tuple(groups)


def is_valid_block(slots: Sequence[TimeSlot], start: int, size: int) -> bool:
    """True if slots[start:start+size] are on one day and strictly back to back."""

    if start < 0 or start + size > len(slots):
        return False
    for k in range(start + 1, start + size):
        if not slots[k - 1].is_followed_by(slots[k]):
            return False
    return True


def valid_block_starts(slots: Sequence[TimeSlot], size: int) -> Tuple[int, ...]:
    return tuple(i for i in range(len(slots) - size + 1) if is_valid_block(slots, i, size))


class SlotPicker:
    """Random slot blocks over a fixed, ordered week of slots."""

    def __init__(self, slots: Sequence[TimeSlot]) -> None:
        if not slots:
            raise ValueError("No time slots available")
        self.slots: Tuple[TimeSlot, ...] = tuple(slots)
        self._starts = lru_cache(maxsize=None)(self._compute_starts)

    def _compute_starts(self, size: int) -> Tuple[int, ...]:
        return valid_block_starts(self.slots, size)

    def random_slot(self, rng: random.Random) -> TimeSlot:
        return self.slots[rng.randrange(len(self.slots))]

    def pick_block(self, size: int, rng: random.Random) -> Tuple[Tuple[TimeSlot, ...], bool]:
        """Return (slots, contiguous).

        If no contiguous block of `size` exists, every member gets an
        independently drawn slot and `contiguous` is False.
        """

        if size <= 1:
            return (self.random_slot(rng),), True
        starts = self._starts(size)
        if not starts:
            return tuple(self.random_slot(rng) for _k in range(size)), False
        start = starts[rng.randrange(len(starts))]
        return self.slots[start : start + size], True


# ----------------------------
# Genetic operators
# ----------------------------


def random_schedule(
    template: Sequence[SessionUnit],
    groups: Sequence[SessionGroup],
    picker: SlotPicker,
    rng: random.Random,
) -> CandidateSchedule:
    schedule = CandidateSchedule(template)
    for group in groups:
        block, _contiguous = picker.pick_block(group.size, rng)
        schedule.assign_block(group.indices, block)
    return schedule


def group_crossover(
    first: CandidateSchedule,
    second: CandidateSchedule,
    groups: Sequence[SessionGroup],
    rng: random.Random,
) -> CandidateSchedule:
    """Uniform crossover: every group comes whole from one parent (fair coin)."""

    child = first.clone()
    for group in groups:
        if rng.random() < 0.5:
            continue
        child.assign_block(group.indices, [second.slot_of(i) for i in group.indices])
    return child


def swap_groups(schedule: CandidateSchedule, a: SessionGroup, b: SessionGroup) -> bool:
    """Exchange the slots of two equal-length groups. Returns False if sizes differ."""

    if a.size != b.size:
        return False
    slots_a = [schedule.slot_of(i) for i in a.indices]
    slots_b = [schedule.slot_of(i) for i in b.indices]
    schedule.assign_block(a.indices, slots_b)
    schedule.assign_block(b.indices, slots_a)
    return True


def mutate_schedule(
    schedule: CandidateSchedule,
    groups: Sequence[SessionGroup],
    groups_by_section: Dict[str, Tuple[SessionGroup, ...]],
    picker: SlotPicker,
    rng: random.Random,
    rate: float = 0.5,
) -> CandidateSchedule:
    """Swap mutation and re-roll mutation, each applied with probability `rate`."""

    if rng.random() < rate:
        first = groups[rng.randrange(len(groups))]
        same_section = groups_by_section.get(first.section_id, ())
        if len(same_section) > 1:
            second = same_section[rng.randrange(len(same_section))]
            swap_groups(schedule, first, second)

    if rng.random() < rate:
        group = groups[rng.randrange(len(groups))]
        block, _contiguous = picker.pick_block(group.size, rng)
        schedule.assign_block(group.indices, block)

    return schedule


# ----------------------------
# Repair
# ----------------------------


def repair_schedule(
    schedule: CandidateSchedule,
    picker: SlotPicker,
    rng: random.Random,
    config: TabuConfig = TabuConfig(),
) -> CandidateSchedule:
    """Reduce hard violations by moving single units (tabu search).

    Moves are (unit index, slot) pairs drawn uniformly from the whole week.
    """

    def propose(state: CandidateSchedule, r: random.Random) -> Tuple[int, TimeSlot]:
        return (r.randrange(len(state)), picker.random_slot(r))

    def apply(state: CandidateSchedule, move: Tuple[int, TimeSlot]) -> CandidateSchedule:
        idx, slot = move
        out = state.clone()
        out.assign(idx, slot)
        return out

    result = tabu_search(
        initial_state=schedule,
        propose=propose,
        apply=apply,
        score=count_hard_violations,
        config=config,
        rng=rng,
    )
    if result.improved:
        logger.debug(
            "Repair improved offspring | hard=%s->%s iterations=%s",
            result.initial_score,
            result.best_score,
            result.iterations,
        )
    return result.best_state


# ----------------------------
# Solve
# ----------------------------


def schedule_template(
    template: Sequence[SessionUnit],
    slots: Sequence[TimeSlot],
    config: RunConfig = RunConfig(),
    rng: Optional[random.Random] = None,
) -> Tuple[CandidateSchedule, Dict[str, float]]:
    """Search slot assignments for already-built session units."""

    if not template:
        raise ValueError("No session units to schedule")

    ga_config: GeneticConfig = config.genetic
    settings: ClassSchedulingSettings = config.scoring
    rng = rng or random.Random(ga_config.seed)

    picker = SlotPicker(slots)
    groups = build_session_groups(template)
    by_section: Dict[str, List[SessionGroup]] = {}
    for g in groups:
        by_section.setdefault(g.section_id, []).append(g)
    groups_by_section = {k: tuple(v) for k, v in by_section.items()}
    blank = [u.with_slot(None) for u in template]

    logger.info(
        "Search started | units=%s groups=%s slots=%s policy=%s population=%s",
        len(template),
        len(groups),
        len(picker.slots),
        ga_config.replacement,
        ga_config.population_size,
    )

    result = evolve(
        init=lambda r: random_schedule(blank, groups, picker, r),
        fitness=lambda s: evaluate(s, settings).fitness,
        crossover=lambda a, b, r: group_crossover(a, b, groups, r),
        mutate=lambda s, r: mutate_schedule(s, groups, groups_by_section, picker, r, ga_config.mutation_rate),
        config=ga_config,
        repair=lambda s, r: repair_schedule(s, picker, r, config.tabu),
        rng=rng,
    )

    best = result.best_state
    metrics = compute_metrics(best, settings)
    metrics["iterations"] = float(result.iterations)
    metrics["stagnation"] = float(result.stagnation)
    metrics["groups"] = float(len(groups))

    logger.info(
        "Search finished | fitness=%.6f hard=%s soft=%.3f iterations=%s",
        metrics["fitness"],
        int(metrics["hard_violations"]),
        metrics["soft_penalty"],
        result.iterations,
    )
    if metrics["hard_violations"] > 0:
        logger.warning(
            "Best schedule still has hard violations | hard=%s",
            int(metrics["hard_violations"]),
        )

    return best, metrics


def solve_weekly_timetable(
    faculty: Sequence[Faculty],
    subjects: Sequence[Subject],
    sections: Sequence[Section],
    slots: Optional[Sequence[TimeSlot]] = None,
    config: RunConfig = RunConfig(),
    rng: Optional[random.Random] = None,
) -> Tuple[CandidateSchedule, Dict[str, float]]:
    """Build session units and search for the best weekly timetable.

    Configuration errors (see `scheduling.errors`) are raised before any
    search starts. The search itself always returns its best schedule; check
    `metrics["hard_violations"]` (or `metrics["feasible"]`) before accepting it.
    """

    template = build_sessions(faculty, subjects, sections, settings=config.builder)
    week = tuple(slots) if slots is not None else build_week_slots()
    return schedule_template(template, week, config=config, rng=rng)

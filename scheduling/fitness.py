"""Objective function for candidate schedules.

    fitness = 1 / (1 + hard_violations * hard_weight + soft_penalty)

`hard_weight` must dominate any plausible soft penalty so that a schedule with
fewer hard violations always ranks above one with more.

Hard constraints (counted)
--------------------------
- faculty double booking: a faculty member in two units on the same slot
- section double booking: a section in two units on the same slot
- faculty workload: assigned credits above max teaching credits
  (counted once per overloaded faculty member, not by magnitude)
- lab consecutiveness: all hours of a (section, lab) on one day, back to back

Soft constraints (weighted)
---------------------------
- faculty clumping: long idle gaps inside a faculty member's day
- morning balance: variance of 08:00 classes across faculty
- student fatigue: more than 3 back-to-back hours for a section
- section gaps: unexplained free time in a section's day
- subject distribution: too many heavy or light subjects for one faculty
- workload balance: variance of total hours across faculty
- lab day spread: more than one lab subject per section per day

Scoring only reads units; it never changes a schedule except for caching the
breakdown on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from .models import (
    LUNCH_BREAK,
    MORNING_BREAK,
    SLOT_MINUTES,
    CandidateSchedule,
    Faculty,
    SessionUnit,
    Subject,
    TimeSlot,
    parse_time_to_minutes,
)


HARD_CHECKS: Tuple[str, ...] = (
    "faculty_double_booking",
    "section_double_booking",
    "faculty_workload",
    "lab_consecutiveness",
)

SOFT_CHECKS: Tuple[str, ...] = (
    "faculty_clumping",
    "morning_balance",
    "student_fatigue",
    "section_gaps",
    "subject_distribution",
    "workload_balance",
    "lab_day_spread",
)


@dataclass(frozen=True)
class ClassSchedulingSettings:
    # Multiplier for each hard violation
    hard_weight: float = 100.0

    # Soft constraints weights
    prefer_avoid_faculty_clumping: float = 1.0
    prefer_morning_balance: float = 1.0
    prefer_avoid_student_fatigue: float = 1.0
    prefer_compact_section_day: float = 1.0
    prefer_subject_distribution: float = 1.0
    # Optional refinements (off in the standard profile)
    prefer_workload_balance: float = 0.0
    prefer_lab_day_spread: float = 0.0

    # Thresholds
    clumping_gap_minutes: int = 160
    morning_start: str = "08:00"
    max_consecutive_hours: int = 3
    gap_tolerance_minutes: int = 10
    max_heavy_subjects: int = 2  # subjects with credits >= heavy_credit_threshold
    heavy_credit_threshold: int = 3
    max_light_subjects: int = 1  # subjects with exactly 1 credit

    def soft_weights(self) -> Dict[str, float]:
        return {
            "faculty_clumping": self.prefer_avoid_faculty_clumping,
            "morning_balance": self.prefer_morning_balance,
            "student_fatigue": self.prefer_avoid_student_fatigue,
            "section_gaps": self.prefer_compact_section_day,
            "subject_distribution": self.prefer_subject_distribution,
            "workload_balance": self.prefer_workload_balance,
            "lab_day_spread": self.prefer_lab_day_spread,
        }


@dataclass(frozen=True)
class FitnessBreakdown:
    hard_violations: int
    soft_penalty: float
    fitness: float
    hard: Dict[str, int] = field(default_factory=dict)
    soft: Dict[str, float] = field(default_factory=dict)  # raw values, before weights
    settings: ClassSchedulingSettings = field(default=ClassSchedulingSettings(), compare=False, repr=False)

    @property
    def is_feasible(self) -> bool:
        return self.hard_violations == 0


# ----------------------------
# Helpers
# ----------------------------


def _slots(units: Sequence[SessionUnit]) -> List[TimeSlot]:
    out: List[TimeSlot] = []
    for idx, u in enumerate(units):
        if u.slot is None:
            # Scoring a partial schedule is a caller bug, not a search outcome.
            raise ValueError(f"Session unit {idx} ({u.section.section_id}/{u.subject.code}) has no slot")
        out.append(u.slot)
    return out


def _by_day(slots: Sequence[TimeSlot]) -> Dict[str, List[TimeSlot]]:
    out: Dict[str, List[TimeSlot]] = {}
    for s in slots:
        out.setdefault(s.day, []).append(s)
    for day_slots in out.values():
        day_slots.sort(key=lambda s: s.start_minute)
    return out


def _faculty_slots(units: Sequence[SessionUnit]) -> Dict[str, List[TimeSlot]]:
    out: Dict[str, List[TimeSlot]] = {}
    for u in units:
        for fac in u.faculty:
            out.setdefault(fac.faculty_id, []).append(u.slot)
    return out


def _section_slots(units: Sequence[SessionUnit]) -> Dict[str, List[TimeSlot]]:
    out: Dict[str, List[TimeSlot]] = {}
    for u in units:
        out.setdefault(u.section.section_id, []).append(u.slot)
    return out


def _variance(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    avg = sum(values) / len(values)
    return sum((v - avg) ** 2 for v in values) / len(values)


# ----------------------------
# Hard checks
# ----------------------------


def check_faculty_double_booking(units: Sequence[SessionUnit]) -> int:
    violations = 0
    seen: Dict[str, set] = {}
    for u in units:
        for fac in u.faculty:
            taken = seen.setdefault(fac.faculty_id, set())
            if u.slot in taken:
                violations += 1
            else:
                taken.add(u.slot)
    return violations


def check_section_double_booking(units: Sequence[SessionUnit]) -> int:
    violations = 0
    seen: Dict[str, set] = {}
    for u in units:
        taken = seen.setdefault(u.section.section_id, set())
        if u.slot in taken:
            violations += 1
        else:
            taken.add(u.slot)
    return violations


def check_faculty_workload(units: Sequence[SessionUnit]) -> int:
    credits: Dict[str, float] = {}
    faculty: Dict[str, Faculty] = {}
    for u in units:
        for fac in u.faculty:
            credits[fac.faculty_id] = credits.get(fac.faculty_id, 0.0) + u.credit_cost
            faculty[fac.faculty_id] = fac
    return sum(1 for fid, total in credits.items() if total > faculty[fid].max_teaching_credits)


def check_lab_consecutiveness(units: Sequence[SessionUnit]) -> int:
    violations = 0
    labs: Dict[Tuple[str, str], List[TimeSlot]] = {}
    for u in units:
        if u.subject.is_lab:
            labs.setdefault(u.group_key, []).append(u.slot)

    for slots in labs.values():
        if len(slots) < 2:
            continue
        if any(s.day != slots[0].day for s in slots):
            violations += 1
            continue
        ordered = sorted(slots, key=lambda s: s.start_minute)
        for a, b in zip(ordered, ordered[1:]):
            if a.end_minute != b.start_minute:
                violations += 1
    return violations


# ----------------------------
# Soft checks
# ----------------------------


def check_faculty_clumping(units: Sequence[SessionUnit], gap_minutes: int = 160) -> float:
    penalty = 0
    for slots in _faculty_slots(units).values():
        for day_slots in _by_day(slots).values():
            for a, b in zip(day_slots, day_slots[1:]):
                if b.start_minute - a.end_minute >= gap_minutes:
                    penalty += 1
    return float(penalty)


def check_morning_balance(units: Sequence[SessionUnit], morning_start: str = "08:00") -> float:
    start = parse_time_to_minutes(morning_start)
    counts: Dict[str, int] = {}
    for u in units:
        if u.slot.start_minute == start:
            for fac in u.faculty:
                counts[fac.faculty_id] = counts.get(fac.faculty_id, 0) + 1
    return _variance(list(counts.values()))


def check_student_fatigue(units: Sequence[SessionUnit], max_consecutive: int = 3) -> float:
    penalty = 0
    for slots in _section_slots(units).values():
        for day_slots in _by_day(slots).values():
            run = 1
            for a, b in zip(day_slots, day_slots[1:]):
                if a.end_minute == b.start_minute:
                    run += 1
                    continue
                if run > max_consecutive:
                    penalty += run - max_consecutive
                run = 1
            if run > max_consecutive:
                penalty += run - max_consecutive
    return float(penalty)


def _break_windows() -> Tuple[Tuple[int, int], ...]:
    return tuple((parse_time_to_minutes(a), parse_time_to_minutes(b)) for a, b in (MORNING_BREAK, LUNCH_BREAK))


def check_section_gaps(units: Sequence[SessionUnit], tolerance_minutes: int = 10) -> float:
    penalty = 0
    windows = _break_windows()
    for slots in _section_slots(units).values():
        for day_slots in _by_day(slots).values():
            first, last = day_slots[0], day_slots[-1]
            span = last.end_minute - first.start_minute

            # a break counts as explained time only if the day runs across it
            breaks = sum(
                (w_end - w_start)
                for (w_start, w_end) in windows
                if first.start_minute < w_start and last.end_minute > w_end
            )
            free = span - len(day_slots) * SLOT_MINUTES - breaks
            if free > tolerance_minutes:
                penalty += free // SLOT_MINUTES + 1
    return float(penalty)


def check_subject_distribution(
    units: Sequence[SessionUnit],
    max_heavy: int = 2,
    heavy_credits: int = 3,
    max_light: int = 1,
) -> float:
    penalty = 0
    subjects: Dict[str, Dict[str, Subject]] = {}
    for u in units:
        for fac in u.faculty:
            subjects.setdefault(fac.faculty_id, {})[u.subject.code] = u.subject

    for taught in subjects.values():
        heavy = sum(1 for s in taught.values() if s.credits >= heavy_credits)
        light = sum(1 for s in taught.values() if s.credits == 1)
        if heavy > max_heavy:
            penalty += 1
        if light > max_light:
            penalty += 1
    return float(penalty)


def check_workload_balance(units: Sequence[SessionUnit]) -> float:
    counts: Dict[str, int] = {}
    for u in units:
        for fac in u.faculty:
            counts[fac.faculty_id] = counts.get(fac.faculty_id, 0) + 1
    return _variance(list(counts.values()))


def check_lab_day_spread(units: Sequence[SessionUnit]) -> float:
    labs: Dict[Tuple[str, str], set] = {}
    for u in units:
        if u.subject.is_lab:
            labs.setdefault((u.section.section_id, u.slot.day), set()).add(u.subject.code)
    return float(sum(len(codes) - 1 for codes in labs.values() if len(codes) > 1))


# ----------------------------
# Aggregates
# ----------------------------


def hard_breakdown(units: Sequence[SessionUnit]) -> Dict[str, int]:
    _slots(units)
    return {
        "faculty_double_booking": check_faculty_double_booking(units),
        "section_double_booking": check_section_double_booking(units),
        "faculty_workload": check_faculty_workload(units),
        "lab_consecutiveness": check_lab_consecutiveness(units),
    }


def soft_breakdown(units: Sequence[SessionUnit], settings: ClassSchedulingSettings) -> Dict[str, float]:
    _slots(units)
    weights = settings.soft_weights()
    out: Dict[str, float] = {
        "faculty_clumping": check_faculty_clumping(units, settings.clumping_gap_minutes),
        "morning_balance": check_morning_balance(units, settings.morning_start),
        "student_fatigue": check_student_fatigue(units, settings.max_consecutive_hours),
        "section_gaps": check_section_gaps(units, settings.gap_tolerance_minutes),
        "subject_distribution": check_subject_distribution(
            units,
            max_heavy=settings.max_heavy_subjects,
            heavy_credits=settings.heavy_credit_threshold,
            max_light=settings.max_light_subjects,
        ),
        "workload_balance": 0.0,
        "lab_day_spread": 0.0,
    }
    # optional refinements are only computed when switched on
    if weights["workload_balance"] > 0:
        out["workload_balance"] = check_workload_balance(units)
    if weights["lab_day_spread"] > 0:
        out["lab_day_spread"] = check_lab_day_spread(units)
    return out


def combine(hard_violations: int, soft_penalty: float, hard_weight: float = 100.0) -> float:
    return 1.0 / (1.0 + hard_violations * hard_weight + soft_penalty)


def count_hard_violations(schedule: CandidateSchedule) -> int:
    cached = schedule.breakdown
    if cached is not None:
        return cached.hard_violations
    return sum(hard_breakdown(schedule.units).values())


def evaluate(schedule: CandidateSchedule, settings: ClassSchedulingSettings = ClassSchedulingSettings()) -> FitnessBreakdown:
    """Score a complete schedule and cache the breakdown on it."""

    cached = schedule.breakdown
    if cached is not None and cached.settings == settings:
        return cached

    units = schedule.units
    hard = hard_breakdown(units)
    soft = soft_breakdown(units, settings)

    weights = settings.soft_weights()
    hard_total = sum(hard.values())
    soft_total = sum(weights[k] * v for k, v in soft.items())

    result = FitnessBreakdown(
        hard_violations=hard_total,
        soft_penalty=soft_total,
        fitness=combine(hard_total, soft_total, settings.hard_weight),
        hard=hard,
        soft=soft,
        settings=settings,
    )
    schedule.breakdown = result
    return result


def compute_fitness(schedule: CandidateSchedule, settings: ClassSchedulingSettings = ClassSchedulingSettings()) -> float:
    return evaluate(schedule, settings).fitness


def compute_metrics(schedule: CandidateSchedule, settings: ClassSchedulingSettings = ClassSchedulingSettings()) -> Dict[str, float]:
    b = evaluate(schedule, settings)
    metrics: Dict[str, float] = {
        "fitness": float(b.fitness),
        "hard_violations": float(b.hard_violations),
        "soft_penalty": float(b.soft_penalty),
        "feasible": float(b.is_feasible),
        "total_units": float(len(schedule)),
    }
    for k, v in b.hard.items():
        metrics[k] = float(v)
    for k, v in b.soft.items():
        metrics[k] = float(v)
    return metrics

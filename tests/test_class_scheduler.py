from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from optimizer import GeneticConfig, TabuConfig
from scheduling.class_scheduler import (
    SlotPicker,
    build_session_groups,
    group_crossover,
    mutate_schedule,
    random_schedule,
    repair_schedule,
    solve_weekly_timetable,
    valid_block_starts,
)
from scheduling.config import RunConfig
from scheduling.errors import NoEligibleFaculty
from scheduling.fitness import count_hard_violations
from scheduling.models import CandidateSchedule, Faculty, Section, Subject, build_week_slots
from scheduling.session_builder import build_sessions


F1 = Faculty(faculty_id="F1", name="Alice", total_workload_credits=16, research_credits=0, subject_codes=("ALG",))
F2 = Faculty(faculty_id="F2", name="Bob", total_workload_credits=16, research_credits=0, subject_codes=("NET",))
F3 = Faculty(faculty_id="F3", name="Chen", total_workload_credits=16, research_credits=0, subject_codes=("UNIX_L", "PROJ_L"))

ALG = Subject(name="Algorithms", code="ALG", is_lab=False, credits=3)
NET = Subject(name="Networks", code="NET", is_lab=False, credits=2)
UNIX_LAB = Subject(name="Unix Lab", code="UNIX_L", is_lab=True, credits=1)
SEC = Section(section_id="S1", name="CSE-A", batch_count=1)


def _template():
    return build_sessions([F1, F2, F3], [ALG, NET, UNIX_LAB], [SEC])


def _groups_by_section(groups):
    out = {}
    for g in groups:
        out.setdefault(g.section_id, []).append(g)
    return {k: tuple(v) for k, v in out.items()}


def _assert_labs_contiguous(schedule: CandidateSchedule, groups) -> None:
    for g in groups:
        slots = [schedule.slot_of(i) for i in g.indices]
        for a, b in zip(slots, slots[1:]):
            assert a.is_followed_by(b), f"{g.subject_code}: {a} then {b}"


def test_groups_follow_the_template() -> None:
    template = _template()
    groups = build_session_groups(template)

    assert [g.size for g in groups] == [1, 1, 1, 1, 1, 2]
    lab = groups[-1]
    assert lab.is_lab
    assert lab.subject_code == "UNIX_L"
    assert lab.indices == (5, 6)


def test_block_starts_on_the_week_grid() -> None:
    week = build_week_slots()

    assert len(valid_block_starts(week, 1)) == 50
    # Mon-Fri: 1 morning + 2 mid-morning + 3 afternoon; Sat: 1 + 2
    assert len(valid_block_starts(week, 2)) == 33
    # only the afternoon period is four slots long
    assert len(valid_block_starts(week, 4)) == 5
    assert valid_block_starts(week, 5) == ()


def test_block_falls_back_to_independent_slots() -> None:
    picker = SlotPicker(build_week_slots())

    slots, contiguous = picker.pick_block(5, random.Random(0))

    assert not contiguous
    assert len(slots) == 5

    slots, contiguous = picker.pick_block(4, random.Random(0))
    assert contiguous
    assert slots[0].start == "14:00"


def test_operators_keep_lab_blocks_contiguous() -> None:
    template = [u.with_slot(None) for u in _template()]
    groups = build_session_groups(template)
    by_section = _groups_by_section(groups)
    lab_groups = [g for g in groups if g.is_lab]
    picker = SlotPicker(build_week_slots())

    for seed in range(25):
        rng = random.Random(seed)
        a = random_schedule(template, groups, picker, rng)
        b = random_schedule(template, groups, picker, rng)
        assert a.is_complete()
        _assert_labs_contiguous(a, lab_groups)

        child = group_crossover(a, b, groups, rng)
        _assert_labs_contiguous(child, lab_groups)

        mutated = mutate_schedule(child, groups, by_section, picker, rng, rate=1.0)
        _assert_labs_contiguous(mutated, lab_groups)


def test_crossover_leaves_parents_untouched() -> None:
    template = [u.with_slot(None) for u in _template()]
    groups = build_session_groups(template)
    picker = SlotPicker(build_week_slots())
    rng = random.Random(11)

    a = random_schedule(template, groups, picker, rng)
    b = random_schedule(template, groups, picker, rng)
    before_a = [a.slot_of(i) for i in range(len(a))]
    before_b = [b.slot_of(i) for i in range(len(b))]

    child = group_crossover(a, b, groups, rng)
    # each group is inherited whole from one parent
    for g in groups:
        got = [child.slot_of(i) for i in g.indices]
        assert got in ([before_a[i] for i in g.indices], [before_b[i] for i in g.indices])

    mutate_schedule(child, groups, _groups_by_section(groups), picker, rng, rate=1.0)

    assert [a.slot_of(i) for i in range(len(a))] == before_a
    assert [b.slot_of(i) for i in range(len(b))] == before_b


def test_clone_is_independent() -> None:
    template = [u.with_slot(None) for u in _template()]
    groups = build_session_groups(template)
    picker = SlotPicker(build_week_slots())
    original = random_schedule(template, groups, picker, random.Random(5))
    before = original.slot_of(0)
    other = next(s for s in picker.slots if s != before)

    copy = original.clone()
    copy.assign(0, other)

    assert copy.slot_of(0) == other
    assert original.slot_of(0) == before


def test_repair_reduces_hard_violations() -> None:
    template = _template()
    slot = build_week_slots()[0]
    # everything piled onto Monday 08:00
    crowded = CandidateSchedule([u.with_slot(slot) for u in template])
    before = count_hard_violations(crowded)

    repaired = repair_schedule(
        crowded,
        SlotPicker(build_week_slots()),
        random.Random(3),
        TabuConfig(tenure=10, max_iterations=200),
    )

    assert before > 0
    assert count_hard_violations(repaired) < before
    # the input is never modified
    assert all(u.slot == slot for u in crowded)


def test_small_problem_is_solved_without_hard_violations() -> None:
    config = RunConfig(genetic=GeneticConfig(population_size=20, max_stagnation=30, seed=5))

    best, metrics = solve_weekly_timetable([F1, F2, F3], [ALG, NET, UNIX_LAB], [SEC], config=config)

    assert len(best) == 7
    assert best.is_complete()
    assert metrics["hard_violations"] == 0
    assert metrics["feasible"] == 1.0
    assert 0.0 < metrics["fitness"] <= 1.0
    assert metrics["groups"] == 6.0


def test_same_seed_gives_same_schedule() -> None:
    config = RunConfig(genetic=GeneticConfig(population_size=10, max_stagnation=10, seed=21))

    first, m1 = solve_weekly_timetable([F1, F2, F3], [ALG, NET, UNIX_LAB], [SEC], config=config)
    second, m2 = solve_weekly_timetable([F1, F2, F3], [ALG, NET, UNIX_LAB], [SEC], config=config)

    assert [u.slot for u in first] == [u.slot for u in second]
    assert m1["fitness"] == m2["fitness"]


def test_generational_policy_runs_end_to_end() -> None:
    config = RunConfig(
        genetic=GeneticConfig(population_size=10, replacement="generational", elite_count=2, generations=5, seed=3),
        profile="balanced",
    )

    best, metrics = solve_weekly_timetable([F1, F2, F3], [ALG, NET, UNIX_LAB], [SEC], config=config)

    assert best.is_complete()
    assert metrics["hard_violations"] == 0
    assert metrics["iterations"] <= 5


def test_configuration_errors_surface_before_search() -> None:
    with pytest.raises(NoEligibleFaculty):
        solve_weekly_timetable([F1], [ALG, NET], [SEC])

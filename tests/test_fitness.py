from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scheduling.fitness import (
    ClassSchedulingSettings,
    check_faculty_clumping,
    check_lab_consecutiveness,
    check_lab_day_spread,
    check_morning_balance,
    check_section_gaps,
    check_student_fatigue,
    check_subject_distribution,
    check_workload_balance,
    combine,
    count_hard_violations,
    evaluate,
)
from scheduling.models import CandidateSchedule, Faculty, Section, SessionUnit, Subject, make_slot


F1 = Faculty(faculty_id="F1", name="Alice", total_workload_credits=12, research_credits=0, subject_codes=("M1",))
F2 = Faculty(faculty_id="F2", name="Bob", total_workload_credits=12, research_credits=0, subject_codes=("M1",))
MATH = Subject(name="Math", code="M1", is_lab=False, credits=3)
LAB = Subject(name="Math Lab", code="M1_L", is_lab=True, credits=1)
SEC = Section(section_id="S1", name="A", batch_count=1)


def _unit(day: str, start: str, end: str, *, subject: Subject = MATH, faculty=(F1,), section: Section = SEC) -> SessionUnit:
    return SessionUnit(section=section, subject=subject, faculty=tuple(faculty), slot=make_slot(day, start, end))


def test_double_booking_penalty() -> None:
    # Two units, same slot, same faculty -> clash
    schedule = CandidateSchedule([_unit("Mon", "08:00", "09:00"), _unit("Mon", "08:00", "09:00")])

    b = evaluate(schedule)

    assert b.hard_violations >= 1
    assert b.hard["faculty_double_booking"] == 1
    assert b.hard["section_double_booking"] == 1
    assert b.fitness < 0.5


def test_no_clash_high_fitness() -> None:
    schedule = CandidateSchedule([_unit("Mon", "08:00", "09:00"), _unit("Mon", "09:00", "10:00")])

    b = evaluate(schedule)

    assert b.hard_violations == 0
    assert b.fitness > 0.8


def test_slot_equality_ignores_end_time_for_conflicts() -> None:
    schedule = CandidateSchedule([_unit("Mon", "08:00", "08:55"), _unit("Mon", "08:00", "09:50")])

    assert evaluate(schedule).hard["faculty_double_booking"] == 1


def test_workload_overrun_is_a_hard_violation() -> None:
    small = Faculty(faculty_id="F9", name="Small", total_workload_credits=8, research_credits=2, subject_codes=("M1",))
    assert small.max_teaching_credits == 6

    starts = ["08:00", "08:55", "10:20", "11:15", "12:10", "14:00", "14:55"]
    units = []
    for i, start in enumerate(starts):
        day = "Mon" if i < 4 else "Tue"
        h, m = start.split(":")
        end_min = int(h) * 60 + int(m) + 55
        units.append(_unit(day, start, f"{end_min // 60:02d}:{end_min % 60:02d}", faculty=(small,)))

    b = evaluate(CandidateSchedule(units))

    assert b.hard["faculty_workload"] >= 1
    assert b.hard["faculty_double_booking"] == 0


def test_lab_split_across_days_is_a_violation() -> None:
    split = [
        _unit("Mon", "14:00", "14:55", subject=LAB),
        _unit("Tue", "14:55", "15:50", subject=LAB),
    ]
    together = [
        _unit("Mon", "14:00", "14:55", subject=LAB),
        _unit("Mon", "14:55", "15:50", subject=LAB),
    ]

    assert check_lab_consecutiveness(split) >= 1
    assert check_lab_consecutiveness(together) == 0


def test_lab_with_gap_on_same_day_is_a_violation() -> None:
    # the lunch break sits between 12:10-13:05 and 14:00
    units = [
        _unit("Mon", "12:10", "13:05", subject=LAB),
        _unit("Mon", "14:00", "14:55", subject=LAB),
    ]
    assert check_lab_consecutiveness(units) == 1


def test_clean_schedule_has_zero_hard_violations() -> None:
    units = [
        _unit("Mon", "08:00", "08:55"),
        _unit("Mon", "08:55", "09:50"),
        _unit("Tue", "10:20", "11:15"),
        _unit("Wed", "14:00", "14:55", subject=LAB, faculty=(F1, F2)),
        _unit("Wed", "14:55", "15:50", subject=LAB, faculty=(F1, F2)),
    ]
    assert count_hard_violations(CandidateSchedule(units)) == 0


def test_scoring_twice_is_identical() -> None:
    units = [_unit("Mon", "08:00", "08:55"), _unit("Tue", "14:00", "14:55"), _unit("Tue", "08:00", "08:55")]
    first = evaluate(CandidateSchedule(units))
    second = evaluate(CandidateSchedule(units))
    assert first.fitness == second.fitness
    assert first.hard == second.hard
    assert first.soft == second.soft


def test_fitness_is_monotone_in_hard_and_soft() -> None:
    assert combine(0, 0.0) == 1.0
    assert combine(1, 5.0) < combine(0, 5.0)
    assert combine(2, 0.0) < combine(1, 0.0)
    assert combine(0, 3.0) < combine(0, 1.0)
    # one hard violation always ranks below any plausible soft penalty
    assert combine(1, 0.0) < combine(0, 99.0)


def test_assign_invalidates_cached_score() -> None:
    schedule = CandidateSchedule([_unit("Mon", "08:00", "08:55"), _unit("Mon", "08:55", "09:50")])
    assert evaluate(schedule).hard_violations == 0
    assert schedule.breakdown is not None

    schedule.assign(1, make_slot("Mon", "08:00", "08:55"))

    assert schedule.breakdown is None
    assert evaluate(schedule).hard_violations == 2


def test_student_fatigue_penalizes_long_runs() -> None:
    units = [
        _unit("Mon", "14:00", "14:55"),
        _unit("Mon", "14:55", "15:50"),
        _unit("Mon", "15:50", "16:45"),
        _unit("Mon", "16:45", "17:40"),
    ]
    assert check_student_fatigue(units) == 1.0
    assert check_student_fatigue(units[:3]) == 0.0


def test_faculty_clumping_penalizes_long_gap() -> None:
    gappy = [_unit("Mon", "08:00", "08:55"), _unit("Mon", "14:00", "14:55")]
    close = [_unit("Mon", "08:00", "08:55"), _unit("Mon", "10:20", "11:15")]
    assert check_faculty_clumping(gappy) == 1.0
    assert check_faculty_clumping(close) == 0.0


def test_section_gaps_ignore_breaks_but_count_holes() -> None:
    compact = [
        _unit("Mon", "08:00", "08:55"),
        _unit("Mon", "08:55", "09:50"),
        _unit("Mon", "10:20", "11:15"),
    ]
    gappy = [
        _unit("Mon", "08:00", "08:55"),
        _unit("Mon", "11:15", "12:10"),
    ]
    assert check_section_gaps(compact) == 0.0
    assert check_section_gaps(gappy) > 0.0


def test_morning_balance_is_variance_of_eight_oclock_counts() -> None:
    units = [
        _unit("Mon", "08:00", "08:55", faculty=(F1,)),
        _unit("Tue", "08:00", "08:55", faculty=(F1,)),
        _unit("Wed", "08:00", "08:55", faculty=(F2,)),
        # 08:55 is not an 08:00 slot
        _unit("Wed", "08:55", "09:50", faculty=(F2,)),
    ]
    assert check_morning_balance(units) == 0.25


def test_subject_distribution_limits() -> None:
    heavy = [
        _unit("Mon", "08:00", "08:55", subject=Subject(name="A", code="A", is_lab=False, credits=3)),
        _unit("Tue", "08:00", "08:55", subject=Subject(name="B", code="B", is_lab=False, credits=3)),
        _unit("Wed", "08:00", "08:55", subject=Subject(name="C", code="C", is_lab=False, credits=4)),
    ]
    light = [
        _unit("Mon", "08:00", "08:55", subject=Subject(name="X", code="X", is_lab=False, credits=1)),
        _unit("Tue", "08:00", "08:55", subject=Subject(name="Y", code="Y", is_lab=False, credits=1)),
    ]
    assert check_subject_distribution(heavy) == 1.0
    assert check_subject_distribution(heavy[:2]) == 0.0
    assert check_subject_distribution(light) == 1.0


def test_optional_refinements_follow_weights() -> None:
    lab_b = Subject(name="Other Lab", code="O_L", is_lab=True, credits=1)
    units = [
        _unit("Mon", "08:00", "08:55", faculty=(F1,)),
        _unit("Mon", "08:55", "09:50", faculty=(F1,)),
        _unit("Tue", "14:00", "14:55", subject=LAB, faculty=(F2,)),
        _unit("Tue", "14:55", "15:50", subject=LAB, faculty=(F2,)),
        _unit("Tue", "15:50", "16:45", subject=lab_b, faculty=(F2,)),
        _unit("Tue", "16:45", "17:40", subject=lab_b, faculty=(F2,)),
    ]
    assert check_workload_balance(units) == 1.0
    assert check_lab_day_spread(units) == 1.0

    off = evaluate(CandidateSchedule(units), ClassSchedulingSettings())
    on = evaluate(
        CandidateSchedule(units),
        ClassSchedulingSettings(prefer_workload_balance=1.0, prefer_lab_day_spread=1.0),
    )
    assert off.soft["lab_day_spread"] == 0.0
    assert on.soft["lab_day_spread"] == 1.0
    assert on.soft_penalty == off.soft_penalty + 2.0
    assert on.fitness < off.fitness

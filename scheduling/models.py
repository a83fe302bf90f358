"""Domain model for the weekly class timetable.

We schedule "session units". A session unit is one contact hour of one subject
for one section, bound to the faculty who teach it. Example: a 3-credit theory
subject creates 3 units for every section; a 1-credit lab creates 2 units
(1 lab credit = 2 contact hours) which must end up as one contiguous block.

All records are frozen dataclasses. A candidate schedule owns its list of
units and replaces a unit whenever its slot changes, so copies never share
mutable state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


DAYS: Tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

MORNING = "Morning"
MID_MORNING = "Mid-Morning"
AFTERNOON = "Afternoon"

# (period, first start, slot count); every slot lasts SLOT_MINUTES.
SLOT_MINUTES = 55
WEEKLY_SLOT_LAYOUT: Tuple[Tuple[str, str, int], ...] = (
    (MORNING, "08:00", 2),
    (MID_MORNING, "10:20", 3),
    (AFTERNOON, "14:00", 4),
)
# Days on which the afternoon period is not taught.
HALF_DAYS: Tuple[str, ...] = ("Sat",)

# Fixed break windows between periods: (start, end).
MORNING_BREAK = ("09:50", "10:20")
LUNCH_BREAK = ("13:05", "14:00")


def parse_time_to_minutes(value: str) -> int:
    hours, minutes = value.strip().split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(value: int) -> str:
    hours = value // 60
    minutes = value % 60
    return f"{hours:02d}:{minutes:02d}"


# ----------------------------
# Time slots
# ----------------------------


@dataclass(frozen=True)
class TimeSlot:
    """One teaching period of the week.

    Equality and hashing use (day, start_minute) only. This is the
    conflict-detection key: two slots starting at the same time on the same day
    are the same slot, whatever their declared end or period.
    """

    day: str
    start_minute: int
    end_minute: int = field(compare=False)
    period: str = field(default=MORNING, compare=False)

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def start(self) -> str:
        return minutes_to_time(self.start_minute)

    @property
    def end(self) -> str:
        return minutes_to_time(self.end_minute)

    @property
    def label(self) -> str:
        return f"{self.day} {self.start}-{self.end}"

    def is_followed_by(self, other: "TimeSlot") -> bool:
        """True if `other` starts exactly when this slot ends, on the same day."""

        return self.day == other.day and self.end_minute == other.start_minute

    def __str__(self) -> str:
        return self.label


def make_slot(day: str, start: str, end: str, period: str = MORNING) -> TimeSlot:
    return TimeSlot(
        day=day,
        start_minute=parse_time_to_minutes(start),
        end_minute=parse_time_to_minutes(end),
        period=period,
    )


def build_week_slots(days: Sequence[str] = DAYS) -> Tuple[TimeSlot, ...]:
    """Return the fixed weekly slot grid, ordered by day then start time.

    Mon-Fri have 9 slots (2 morning, 3 mid-morning, 4 afternoon); Saturday has
    no afternoon period.
    """

    slots: List[TimeSlot] = []
    for day in days:
        for period, first_start, count in WEEKLY_SLOT_LAYOUT:
            if period == AFTERNOON and day in HALF_DAYS:
                continue
            start = parse_time_to_minutes(first_start)
            for _k in range(count):
                slots.append(TimeSlot(day=day, start_minute=start, end_minute=start + SLOT_MINUTES, period=period))
                start += SLOT_MINUTES
    return tuple(slots)


# ----------------------------
# Input records
# ----------------------------


@dataclass(frozen=True)
class Subject:
    name: str
    code: str
    is_lab: bool
    credits: int

    @property
    def hours_required(self) -> int:
        # 1 credit = 1 theory hour or 2 lab hours
        return self.credits * 2 if self.is_lab else self.credits

    def __str__(self) -> str:
        return f"{self.name} ({'Lab' if self.is_lab else 'Theory'})"


@dataclass(frozen=True)
class Faculty:
    faculty_id: str
    name: str
    total_workload_credits: int
    research_credits: int = 0
    # subject codes this faculty member is qualified to teach
    subject_codes: Tuple[str, ...] = ()

    @property
    def max_teaching_credits(self) -> int:
        return self.total_workload_credits - self.research_credits

    def can_teach(self, subject_code: str) -> bool:
        return subject_code in self.subject_codes

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Section:
    section_id: str
    name: str
    batch_count: int = 1

    def __str__(self) -> str:
        return self.name


# ----------------------------
# State representation
# ----------------------------


@dataclass(frozen=True)
class SessionUnit:
    section: Section
    subject: Subject
    faculty: Tuple[Faculty, ...]
    slot: Optional[TimeSlot] = None

    @property
    def is_assigned(self) -> bool:
        return self.slot is not None

    @property
    def credit_cost(self) -> float:
        """Workload credits one hour of this unit costs each bound faculty."""

        return 0.5 if self.subject.is_lab else 1.0

    @property
    def group_key(self) -> Tuple[str, str]:
        return (self.section.section_id, self.subject.code)

    def with_slot(self, slot: Optional[TimeSlot]) -> "SessionUnit":
        return replace(self, slot=slot)

    def with_faculty(self, faculty: Iterable[Faculty]) -> "SessionUnit":
        return replace(self, faculty=tuple(faculty))

    def __str__(self) -> str:
        names = ", ".join(f.name for f in self.faculty)
        return f"{self.slot} | {self.section.name} | {self.subject.code} | {names}"


class CandidateSchedule:
    """An ordered list of session units plus a cached score.

    The cache is dropped on every slot change. `breakdown` is written by
    `scheduling.fitness.evaluate`.
    """

    __slots__ = ("_units", "breakdown")

    def __init__(self, units: Iterable[SessionUnit]) -> None:
        self._units: List[SessionUnit] = list(units)
        self.breakdown = None

    @property
    def units(self) -> Tuple[SessionUnit, ...]:
        return tuple(self._units)

    @property
    def fitness(self) -> Optional[float]:
        return None if self.breakdown is None else self.breakdown.fitness

    def __len__(self) -> int:
        return len(self._units)

    def __iter__(self):
        return iter(self._units)

    def __getitem__(self, index: int) -> SessionUnit:
        return self._units[index]

    def slot_of(self, index: int) -> Optional[TimeSlot]:
        return self._units[index].slot

    def assign(self, index: int, slot: Optional[TimeSlot]) -> None:
        self._units[index] = self._units[index].with_slot(slot)
        self.breakdown = None

    def assign_block(self, indices: Sequence[int], slots: Sequence[TimeSlot]) -> None:
        if len(indices) != len(slots):
            raise ValueError("indices and slots must have the same length")
        for idx, slot in zip(indices, slots):
            self._units[idx] = self._units[idx].with_slot(slot)
        self.breakdown = None

    def is_complete(self) -> bool:
        return all(u.is_assigned for u in self._units)

    def clone(self) -> "CandidateSchedule":
        out = CandidateSchedule(self._units)
        out.breakdown = self.breakdown
        return out

    def units_by_section(self) -> Dict[str, List[SessionUnit]]:
        out: Dict[str, List[SessionUnit]] = {}
        for u in self._units:
            out.setdefault(u.section.section_id, []).append(u)
        return out


@dataclass(frozen=True)
class SessionGroup:
    """Unit indices that are always scheduled as one contiguous block."""

    indices: Tuple[int, ...]
    section_id: str
    subject_code: str
    is_lab: bool = False

    @property
    def size(self) -> int:
        return len(self.indices)

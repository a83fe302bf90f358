"""Session builder: expand (faculty, subjects, sections) into session units.

This is a single deterministic pre-pass run before the search. It decides who
teaches what; the search only decides when.

Theory subjects are assigned first, one faculty member per (section, subject),
using a least-loaded-first heuristic. Lab subjects are assigned second and may
need several faculty at the same time (one per batch). The faculty member who
teaches the theory part of a lab for a section is pulled into the lab when
they still have capacity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from .errors import EmptyScheduleRequest, FacultyOverloaded, InsufficientLabFaculty, NoEligibleFaculty
from .models import Faculty, Section, SessionUnit, Subject


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuilderSettings:
    # Faculty required at the same time for a regular lab.
    lab_faculty_count: int = 4
    # Labs taught by a single instructor (compared case-insensitively).
    single_instructor_labs: Tuple[str, ...] = ("UNIX_L", "WEB_L")
    # Lab code = theory code + suffix, e.g. "DS" -> "DS_L".
    lab_suffix: str = "_L"
    # Use the section's batch count instead of lab_faculty_count.
    faculty_per_batch: bool = False


def theory_code_for_lab(lab_code: str, suffix: str = "_L") -> str:
    return lab_code.removesuffix(suffix) if suffix else lab_code


def required_lab_faculty(subject: Subject, section: Section, settings: BuilderSettings) -> int:
    singles = {code.upper() for code in settings.single_instructor_labs}
    if subject.code.upper() in singles:
        return 1
    if settings.faculty_per_batch:
        return max(1, int(section.batch_count))
    return int(settings.lab_faculty_count)


def _least_loaded(eligible: Iterable[Faculty], load: Dict[str, float]) -> List[Faculty]:
    # Ties broken by faculty id so that runs are reproducible.
    return sorted(eligible, key=lambda f: (load.get(f.faculty_id, 0.0), f.faculty_id))


def _has_capacity(fac: Faculty, load: Dict[str, float], cost: float) -> bool:
    return load.get(fac.faculty_id, 0.0) + cost <= fac.max_teaching_credits


def build_sessions(
    faculty: Sequence[Faculty],
    subjects: Sequence[Subject],
    sections: Sequence[Section],
    settings: BuilderSettings = BuilderSettings(),
) -> List[SessionUnit]:
    """Return unscheduled session units (slot=None) for every section x subject.

    Raises:
        NoEligibleFaculty: a subject has no qualified faculty.
        FacultyOverloaded: all qualified faculty for a theory subject are full.
        InsufficientLabFaculty: a lab cannot get its required faculty count.
        EmptyScheduleRequest: nothing to schedule.
    """

    units: List[SessionUnit] = []

    # running load in credits, keyed by faculty id
    load: Dict[str, float] = {f.faculty_id: 0.0 for f in faculty}

    # (section_id, theory code) -> faculty teaching it
    theory_owner: Dict[Tuple[str, str], Faculty] = {}

    # Pass 1: theory
    for section in sections:
        for subject in subjects:
            if subject.is_lab:
                continue

            cost = float(subject.credits)
            eligible = [f for f in faculty if f.can_teach(subject.code)]
            if not eligible:
                raise NoEligibleFaculty(subject.code, section.section_id)

            assigned = None
            for fac in _least_loaded(eligible, load):
                if _has_capacity(fac, load, cost):
                    assigned = fac
                    break
            if assigned is None:
                raise FacultyOverloaded(subject.code, section.section_id, len(eligible))

            load[assigned.faculty_id] += cost
            theory_owner[(section.section_id, subject.code)] = assigned
            logger.debug(
                "Theory assigned | section=%s subject=%s faculty=%s load=%.1f",
                section.section_id,
                subject.code,
                assigned.faculty_id,
                load[assigned.faculty_id],
            )

            for _k in range(subject.hours_required):
                units.append(SessionUnit(section=section, subject=subject, faculty=(assigned,)))

    # Pass 2: labs
    for section in sections:
        for subject in subjects:
            if not subject.is_lab:
                continue

            cost = float(subject.credits)
            eligible = [f for f in faculty if f.can_teach(subject.code)]
            if not eligible:
                raise NoEligibleFaculty(subject.code, section.section_id)

            needed = required_lab_faculty(subject, section, settings)
            chosen: List[Faculty] = []

            owner = theory_owner.get((section.section_id, theory_code_for_lab(subject.code, settings.lab_suffix)))
            if owner is not None:
                if _has_capacity(owner, load, cost):
                    chosen.append(owner)
                    load[owner.faculty_id] += cost
                else:
                    logger.warning(
                        "Theory faculty overloaded, skipping for lab | faculty=%s lab=%s section=%s",
                        owner.faculty_id,
                        subject.code,
                        section.section_id,
                    )

            for fac in _least_loaded(eligible, load):
                if len(chosen) >= needed:
                    break
                if fac in chosen:
                    continue
                if _has_capacity(fac, load, cost):
                    chosen.append(fac)
                    load[fac.faculty_id] += cost

            if len(chosen) < needed:
                raise InsufficientLabFaculty(subject.code, section.section_id, needed, len(chosen))

            logger.debug(
                "Lab assigned | section=%s subject=%s faculty=%s",
                section.section_id,
                subject.code,
                ",".join(f.faculty_id for f in chosen),
            )

            team = tuple(chosen)
            for _k in range(subject.hours_required):
                units.append(SessionUnit(section=section, subject=subject, faculty=team))

    if not units:
        raise EmptyScheduleRequest()

    lab_units = sum(1 for u in units if u.subject.is_lab)
    logger.info(
        "Session units built | total=%s theory=%s lab=%s sections=%s faculty=%s",
        len(units),
        len(units) - lab_units,
        lab_units,
        len(sections),
        len(faculty),
    )
    return units


def faculty_load(units: Iterable[SessionUnit]) -> Dict[str, float]:
    """Credits bound to each faculty member by a list of units."""

    out: Dict[str, float] = {}
    for u in units:
        for fac in u.faculty:
            out[fac.faculty_id] = out.get(fac.faculty_id, 0.0) + u.credit_cost
    return out

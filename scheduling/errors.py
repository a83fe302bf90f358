"""Configuration errors raised while building session units.

All of them are raised before any search starts and abort the run.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SchedulingError(ValueError):
    """Base class for input/configuration errors of a scheduling run."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NoEligibleFaculty(SchedulingError):
    """A subject required by a section has no qualified faculty."""

    def __init__(self, subject_code: str, section_id: str):
        super().__init__(
            f"No faculty found for {subject_code} (section {section_id})",
            details={"subject_code": subject_code, "section_id": section_id},
        )


class FacultyOverloaded(SchedulingError):
    """Every qualified faculty member is already at capacity for a theory subject."""

    def __init__(self, subject_code: str, section_id: str, candidates: int):
        super().__init__(
            f"All eligible faculty for {subject_code} (section {section_id}) are overloaded",
            details={"subject_code": subject_code, "section_id": section_id, "candidates": candidates},
        )


class InsufficientLabFaculty(SchedulingError):
    def __init__(self, subject_code: str, section_id: str, needed: int, got: int):
        super().__init__(
            f"Not enough available faculty for lab {subject_code} (section {section_id}). "
            f"Needed {needed}, got {got}",
            details={"subject_code": subject_code, "section_id": section_id, "needed": needed, "got": got},
        )


class EmptyScheduleRequest(SchedulingError):
    def __init__(self) -> None:
        super().__init__("No classes to schedule. Check faculty, subject and section inputs.")

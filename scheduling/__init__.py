"""Weekly class timetable problem (domain model, builder, scoring, search)."""

from .models import (
	DAYS,
	CandidateSchedule,
	Faculty,
	Section,
	SessionGroup,
	SessionUnit,
	Subject,
	TimeSlot,
	build_week_slots,
)

from .errors import (
	EmptyScheduleRequest,
	FacultyOverloaded,
	InsufficientLabFaculty,
	NoEligibleFaculty,
	SchedulingError,
)

from .session_builder import BuilderSettings, build_sessions
from .fitness import ClassSchedulingSettings, FitnessBreakdown, compute_metrics, count_hard_violations, evaluate
from .config import PROFILES, RunConfig, load_run_config, profile
from .class_scheduler import build_session_groups, repair_schedule, schedule_template, solve_weekly_timetable

__all__ = [
	"DAYS",
	"CandidateSchedule",
	"Faculty",
	"Section",
	"SessionGroup",
	"SessionUnit",
	"Subject",
	"TimeSlot",
	"build_week_slots",
	"EmptyScheduleRequest",
	"FacultyOverloaded",
	"InsufficientLabFaculty",
	"NoEligibleFaculty",
	"SchedulingError",
	"BuilderSettings",
	"build_sessions",
	"ClassSchedulingSettings",
	"FitnessBreakdown",
	"compute_metrics",
	"count_hard_violations",
	"evaluate",
	"PROFILES",
	"RunConfig",
	"load_run_config",
	"profile",
	"build_session_groups",
	"repair_schedule",
	"schedule_template",
	"solve_weekly_timetable",
]

"""Input loading and read-only export of finished timetables."""

from .csv_loader import load_faculty, load_inputs, load_sections, load_subjects
from .timetable_export import (
    df_to_markdown,
    export_to_excel,
    faculty_timetable_df,
    faculty_workload_df,
    format_faculty_timetable,
    format_section_timetable,
    schedule_rows_df,
    section_timetable_df,
    weekly_workbook_bytes,
)

__all__ = [
    "load_faculty",
    "load_inputs",
    "load_sections",
    "load_subjects",
    "df_to_markdown",
    "export_to_excel",
    "faculty_timetable_df",
    "faculty_workload_df",
    "format_faculty_timetable",
    "format_section_timetable",
    "schedule_rows_df",
    "section_timetable_df",
    "weekly_workbook_bytes",
]

from __future__ import annotations

import io
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from scheduling.models import (
    DAYS,
    LUNCH_BREAK,
    MORNING_BREAK,
    CandidateSchedule,
    Faculty,
    SessionUnit,
    TimeSlot,
    build_week_slots,
    minutes_to_time,
    parse_time_to_minutes,
)


BREAK_LABEL = "BREAK"
LUNCH_LABEL = "LUNCH"


def _grid_columns(slots: Optional[Sequence[TimeSlot]] = None) -> List[Tuple[int, int]]:
    """Distinct (start, end) minute pairs of the week, in time order."""

    seen: Dict[int, int] = {}
    for s in slots or build_week_slots():
        seen.setdefault(s.start_minute, s.end_minute)
    return sorted(seen.items())


def _faculty_label(unit: SessionUnit) -> str:
    if not unit.faculty:
        return ""
    label = unit.faculty[0].name
    if len(unit.faculty) > 1:
        label += f" +{len(unit.faculty) - 1}"
    return label


def _fill_table(
    units: Sequence[SessionUnit],
    label_of,
    days: Sequence[str],
    slots: Optional[Sequence[TimeSlot]],
) -> List[List[str]]:
    columns = _grid_columns(slots)
    col_of = {start: i for i, (start, _end) in enumerate(columns)}
    row_of = {d: i for i, d in enumerate(days)}

    table = [["" for _ in columns] for _ in days]
    for u in units:
        if u.slot is None:
            continue
        r = row_of.get(u.slot.day)
        c = col_of.get(u.slot.start_minute)
        if r is None or c is None:
            continue
        label = label_of(u)
        # clashes stay visible instead of silently overwriting
        table[r][c] = f"{table[r][c]} / {label}" if table[r][c] else label
    return table


def format_section_timetable(
    schedule: CandidateSchedule,
    section_id: str,
    *,
    days: Sequence[str] = DAYS,
    slots: Optional[Sequence[TimeSlot]] = None,
) -> List[List[str]]:
    """Return a table (rows=days, cols=slot start times) with 'SUBJECT (FACULTY)' or ''."""

    units = [u for u in schedule if u.section.section_id == section_id]
    return _fill_table(units, lambda u: f"{u.subject.code} ({_faculty_label(u)})", days, slots)


def format_faculty_timetable(
    schedule: CandidateSchedule,
    faculty_id: str,
    *,
    days: Sequence[str] = DAYS,
    slots: Optional[Sequence[TimeSlot]] = None,
) -> List[List[str]]:
    units = [u for u in schedule if any(f.faculty_id == faculty_id for f in u.faculty)]
    return _fill_table(units, lambda u: f"{u.subject.code} ({u.section.name})", days, slots)


def _timetable_df_from_table(
    *,
    day_names: Sequence[str],
    table: List[List[str]],
    slots: Optional[Sequence[TimeSlot]] = None,
) -> pd.DataFrame:
    """Convert a (days x slots) table into a spreadsheet-style DataFrame.

    The morning break and lunch break are shown as labeled columns after the
    slot that ends when the break starts.
    """

    breaks = {
        parse_time_to_minutes(MORNING_BREAK[0]): BREAK_LABEL,
        parse_time_to_minutes(LUNCH_BREAK[0]): LUNCH_LABEL,
    }

    columns: List[str] = []
    col_map: List[Optional[int]] = []  # None => break column
    for i, (start, end) in enumerate(_grid_columns(slots)):
        columns.append(f"{minutes_to_time(start)}-{minutes_to_time(end)}")
        col_map.append(i)
        if end in breaks:
            columns.append(breaks[end])
            col_map.append(None)

    out_rows: List[List[str]] = []
    for row in table:
        out_rows.append([name if c is None else row[c] for name, c in zip(columns, col_map)])

    df = pd.DataFrame(out_rows, columns=columns)
    df.insert(0, "DAY", list(day_names))
    return df


def section_timetable_df(
    schedule: CandidateSchedule,
    section_id: str,
    *,
    days: Sequence[str] = DAYS,
    slots: Optional[Sequence[TimeSlot]] = None,
) -> pd.DataFrame:
    """Create a per-section timetable DataFrame suitable for Excel export."""

    table = format_section_timetable(schedule, section_id, days=days, slots=slots)
    return _timetable_df_from_table(day_names=days, table=table, slots=slots)


def faculty_timetable_df(
    schedule: CandidateSchedule,
    faculty_id: str,
    *,
    days: Sequence[str] = DAYS,
    slots: Optional[Sequence[TimeSlot]] = None,
) -> pd.DataFrame:
    """Create an individual staff timetable DataFrame suitable for Excel export."""

    table = format_faculty_timetable(schedule, faculty_id, days=days, slots=slots)
    return _timetable_df_from_table(day_names=days, table=table, slots=slots)


def schedule_faculty(schedule: CandidateSchedule) -> Dict[str, Faculty]:
    out: Dict[str, Faculty] = {}
    for u in schedule:
        for f in u.faculty:
            out.setdefault(f.faculty_id, f)
    return dict(sorted(out.items()))


def schedule_rows_df(schedule: CandidateSchedule) -> pd.DataFrame:
    """One row per session unit, ordered by section, day and start time."""

    day_order = {d: i for i, d in enumerate(DAYS)}
    rows = []
    for u in schedule:
        rows.append(
            {
                "section_id": u.section.section_id,
                "section": u.section.name,
                "subject_code": u.subject.code,
                "subject": u.subject.name,
                "type": "Lab" if u.subject.is_lab else "Theory",
                "day": u.slot.day if u.slot else "",
                "start": u.slot.start if u.slot else "",
                "end": u.slot.end if u.slot else "",
                "faculty_ids": ";".join(f.faculty_id for f in u.faculty),
                "_day": day_order.get(u.slot.day, len(day_order)) if u.slot else len(day_order),
                "_start": u.slot.start_minute if u.slot else 0,
            }
        )
    df = pd.DataFrame(rows)
    if df.empty:
        return df
    return df.sort_values(["section_id", "_day", "_start"]).drop(columns=["_day", "_start"]).reset_index(drop=True)


def faculty_workload_df(schedule: CandidateSchedule) -> pd.DataFrame:
    """Assigned credits per faculty member (0.5 per lab hour, 1 per theory hour)."""

    rows: Dict[str, Dict[str, object]] = {}
    for fid, fac in schedule_faculty(schedule).items():
        rows[fid] = {
            "faculty_id": fid,
            "name": fac.name,
            "max_teaching_credits": fac.max_teaching_credits,
            "Theory": 0.0,
            "Lab": 0.0,
            "hours": 0,
        }

    for u in schedule:
        bucket = "Lab" if u.subject.is_lab else "Theory"
        for fac in u.faculty:
            rows[fac.faculty_id][bucket] += u.credit_cost
            rows[fac.faculty_id]["hours"] += 1

    out = pd.DataFrame(list(rows.values()))
    if out.empty:
        return out

    out["Total"] = out["Theory"] + out["Lab"]
    out["Overload"] = (out["Total"] - out["max_teaching_credits"]).clip(lower=0)
    return out.sort_values(["Overload", "Total", "faculty_id"], ascending=[False, False, True]).reset_index(drop=True)


def _safe_sheet_name(name: str) -> str:
    """Excel sheet names: max 31 chars, cannot contain: `: \\ / ? * [ ]`."""

    bad = [":", "\\", "/", "?", "*", "[", "]"]
    out = str(name or "Sheet")
    for b in bad:
        out = out.replace(b, "-")
    out = out.strip() or "Sheet"
    return out[:31]


def weekly_workbook_bytes(
    schedule: CandidateSchedule,
    *,
    metrics: Optional[Mapping[str, float]] = None,
    include_faculty_sheets: bool = True,
) -> bytes:
    """Build a multi-sheet Excel workbook.

    Includes:
    - Summary (run metrics), when metrics are given
    - Staff workload
    - One sheet per section (section timetable)
    - One sheet per faculty member (individual timetable)
    """

    # Pandas uses openpyxl to write .xlsx.
    out = io.BytesIO()

    sections = sorted({(u.section.name, u.section.section_id) for u in schedule})

    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        if metrics:
            pd.DataFrame(
                [{"metric": k, "value": v} for k, v in metrics.items()]
            ).to_excel(writer, sheet_name="Summary", index=False)

        faculty_workload_df(schedule).to_excel(writer, sheet_name=_safe_sheet_name("Staff Workload"), index=False)

        for name, sid in sections:
            df = section_timetable_df(schedule, sid)
            df.to_excel(writer, sheet_name=_safe_sheet_name(name), index=False)

        if include_faculty_sheets:
            for fid, fac in schedule_faculty(schedule).items():
                header_df = pd.DataFrame(
                    [
                        ["FACULTY ID", fid],
                        ["NAME", fac.name],
                        ["MAX TEACHING CREDITS", fac.max_teaching_credits],
                    ],
                    columns=["Field", "Value"],
                )
                sheet = _safe_sheet_name(f"Staff-{fid}")
                header_df.to_excel(writer, sheet_name=sheet, index=False, startrow=0)
                faculty_timetable_df(schedule, fid).to_excel(
                    writer, sheet_name=sheet, index=False, startrow=len(header_df) + 2
                )

    return out.getvalue()


def export_to_excel(
    schedule: CandidateSchedule,
    path: Union[str, Path],
    *,
    metrics: Optional[Mapping[str, float]] = None,
) -> Path:
    target = Path(path)
    target.write_bytes(weekly_workbook_bytes(schedule, metrics=metrics))
    return target


def df_to_markdown(df: pd.DataFrame) -> str:
    """Convert DataFrame to a GitHub-flavored Markdown table."""

    # pandas to_markdown requires tabulate; avoid the extra dependency.
    cols = list(df.columns)
    rows = df.astype(str).values.tolist()

    def esc(s: str) -> str:
        return str(s).replace("\n", " ").replace("|", "\\|")

    header = "| " + " | ".join(esc(c) for c in cols) + " |"
    sep = "| " + " | ".join(["---"] * len(cols)) + " |"
    body = ["| " + " | ".join(esc(v) for v in r) + " |" for r in rows]
    return "\n".join([header, sep] + body) + "\n"

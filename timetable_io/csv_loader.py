"""Load faculty, subjects and sections from CSV files.

Each file has a header row (skipped) followed by one record per row:

- faculty.csv:  ID, Name, TotalWorkload, ResearchCredits, PreferredSubjectCodes
  (subject codes separated by ';')
- subjects.csv: Name, Code, Type (Theory/Lab), Credits
- sections.csv: ID, Name, BatchCount

Rows with fewer columns than required, or with a blank required field, are
skipped. Non-numeric credit or batch values raise ValueError.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple, Union

import pandas as pd

from scheduling.models import Faculty, Section, Subject


PathLike = Union[str, Path]

FACULTY_FILE = "faculty.csv"
SUBJECTS_FILE = "subjects.csv"
SECTIONS_FILE = "sections.csv"


def _read_rows(path: PathLike, width: int) -> List[List[str]]:
    # The header row fixes the column count; its names are not used.
    try:
        df = pd.read_csv(
            path,
            header=0,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return []

    if df.shape[1] < width:
        return []

    rows: List[List[str]] = []
    for values in df.iloc[:, :width].itertuples(index=False, name=None):
        # short rows come back padded with blanks
        if any(pd.isna(v) or not str(v).strip() for v in values):
            continue
        rows.append([str(v).strip() for v in values])
    return rows


def load_faculty(path: PathLike) -> List[Faculty]:
    out: List[Faculty] = []
    for fid, name, total, research, codes in _read_rows(path, 5):
        subject_codes = tuple(c.strip() for c in codes.split(";") if c.strip())
        out.append(
            Faculty(
                faculty_id=fid,
                name=name,
                total_workload_credits=int(total),
                research_credits=int(research),
                subject_codes=subject_codes,
            )
        )
    return out


def load_subjects(path: PathLike) -> List[Subject]:
    out: List[Subject] = []
    for name, code, stype, credits in _read_rows(path, 4):
        out.append(Subject(name=name, code=code, is_lab=stype.lower() == "lab", credits=int(credits)))
    return out


def load_sections(path: PathLike) -> List[Section]:
    out: List[Section] = []
    for sid, name, batches in _read_rows(path, 3):
        out.append(Section(section_id=sid, name=name, batch_count=int(batches)))
    return out


def load_inputs(directory: PathLike) -> Tuple[List[Faculty], List[Subject], List[Section]]:
    """Load faculty.csv, subjects.csv and sections.csv from one folder."""

    root = Path(directory)
    missing = [n for n in (FACULTY_FILE, SUBJECTS_FILE, SECTIONS_FILE) if not (root / n).exists()]
    if missing:
        raise FileNotFoundError(f"Missing input file(s) in {root}: {', '.join(missing)}")
    return (
        load_faculty(root / FACULTY_FILE),
        load_subjects(root / SUBJECTS_FILE),
        load_sections(root / SECTIONS_FILE),
    )

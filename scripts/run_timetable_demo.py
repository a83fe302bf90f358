"""Demo runner: generate a weekly class timetable from the sample CSV files.

This is meant for quick validation and for demos.

Usage:
    python scripts/run_timetable_demo.py
    python scripts/run_timetable_demo.py --data data --config data/run_config.json --xlsx timetable.xlsx

"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

# Ensure project root is on PYTHONPATH when running as a script
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scheduling import SchedulingError, load_run_config, solve_weekly_timetable
from timetable_io import export_to_excel, faculty_workload_df, load_inputs, section_timetable_df


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a weekly class timetable")
    parser.add_argument("--data", default=str(ROOT / "data"), help="folder with faculty/subjects/sections CSV files")
    parser.add_argument("--config", default=None, help="JSON run configuration")
    parser.add_argument("--xlsx", default=None, help="write the timetable workbook to this path")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    faculty, subjects, sections = load_inputs(args.data)
    config = load_run_config(args.config)

    try:
        best, metrics = solve_weekly_timetable(faculty, subjects, sections, config=config)
    except SchedulingError as e:
        print(f"Cannot build a timetable: {e}")
        return 2

    for section in sections:
        print(f"\n=== Timetable for {section.name} ===")
        print(section_timetable_df(best, section.section_id).to_string(index=False))

    print("\n=== Staff Workload ===")
    print(faculty_workload_df(best).to_string(index=False))

    print("\n=== Metrics ===")
    for k, v in metrics.items():
        print(f"{k}: {v}")

    if args.xlsx:
        path = export_to_excel(best, args.xlsx, metrics=metrics)
        print(f"\nWrote: {path}")

    if metrics["hard_violations"] > 0:
        print("\nCould not find a fully valid schedule; re-run with a different seed or larger budget.")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

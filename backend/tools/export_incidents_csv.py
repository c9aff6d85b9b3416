#!/usr/bin/env python3
"""
CLI tool to write the public incident dataset to a CSV file, the same
content served by GET /api/export/incidents.csv.
"""
import argparse
import sys
from pathlib import Path

from msarchive import queries
from msarchive.db import SessionLocal
from msarchive.export import export_filename, incidents_to_csv


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="CLI: export published incidents to CSV.")
    parser.add_argument("--output", "-o", default=None, help="Output file (default: msarchive_incidents_<date>.csv)")
    parser.add_argument("--state", "-s", default=None, help="Only incidents in this state")
    parser.add_argument("--year", "-y", type=int, default=None, help="Only incidents in this year")
    parser.add_argument("--school-only", action="store_true", help="Only school incidents")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    output = Path(args.output or export_filename())

    db = SessionLocal()
    try:
        incidents = queries.list_incidents(db, state=args.state, year=args.year, school_only=args.school_only)
        output.write_text(incidents_to_csv(incidents), encoding="utf-8")
    finally:
        db.close()

    print(f"[export_incidents_csv] Wrote {len(incidents)} incident(s) to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

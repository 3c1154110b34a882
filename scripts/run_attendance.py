#!/usr/bin/env python3
"""Replay a recorded attendance session.

This script enrolls the students of a session file, recognizes its captures
in order and prints each outcome together with an attendance summary.

Usage:
    python scripts/run_attendance.py --session data/session.json
    python scripts/run_attendance.py --session session.json --threshold 0.5 --export out.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from face_attendance.config import Config, parse_threshold
from face_attendance.errors import InvalidInputError
from face_attendance.interfaces import AlreadyMarked, Recognized
from face_attendance.logging_config import setup_logging
from face_attendance.replay import load_session, replay_session
from face_attendance.system import AttendanceSystem

logger = setup_logging(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Replay a recorded attendance session",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--session",
        type=str,
        required=True,
        help="Path to session JSON file (students and captures)",
    )

    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Recognition threshold (overrides .env THRESH value)",
    )

    parser.add_argument(
        "--export",
        type=str,
        default=None,
        help="Path to write identities and attendance records as JSON",
    )

    return parser.parse_args()


def print_section(title: str) -> None:
    """Print a section divider."""
    print()
    print("=" * 70)
    print(f"  {title}")
    print("=" * 70)


def main() -> int:
    """Main function."""
    args = parse_args()

    print_section("Attendance - Session Replay")

    try:
        config = Config.from_env()
        if args.threshold is not None:
            config.thresh = parse_threshold(args.threshold)
    except ValueError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        return 1
    logger.info(f"Loaded config: thresh={config.thresh}, day_timezone={config.day_timezone}")

    try:
        session = load_session(args.session)
    except (FileNotFoundError, InvalidInputError) as e:
        logger.error(str(e))
        print(f"Error: {e}")
        return 1

    print(f"Session file:  {args.session}")
    print(f"Threshold:     {config.thresh:.2f}")
    print(f"Students:      {len(session.students)}")
    print(f"Captures:      {len(session.captures)}")

    system = AttendanceSystem.from_config(config)
    report = replay_session(system, session)

    print_section("Step 1: Enrollment")
    for identity in report.enrolled:
        print(f"  Enrolled {identity.name} ({identity.roll_number}) as {identity.id}")
    for roll_number, message in report.enrollment_errors:
        print(f"  Rejected {roll_number or '<missing roll number>'}: {message}")

    print_section("Step 2: Recognition")
    for i, outcome in enumerate(report.outcomes, 1):
        if isinstance(outcome, Recognized):
            print(
                f"Capture {i}: {outcome.identity.name} ({outcome.identity.roll_number}) "
                f"- {outcome.status.value}, {outcome.confidence:.1f}% "
                f"[{outcome.event.subject}]"
            )
        elif isinstance(outcome, AlreadyMarked):
            print(
                f"Capture {i}: {outcome.identity.name} already marked for "
                f"{outcome.existing_event.subject} today ({outcome.confidence:.1f}%)"
            )
        else:
            print(f"Capture {i}: rejected ({outcome.reason.value}) {outcome.message}")
            if outcome.best_similarity is not None:
                print(
                    f"  best similarity {outcome.best_similarity:.3f} "
                    f"among {outcome.students_in_database} student(s)"
                )

    print_section("Step 3: Summary")
    summary = system.summary()
    print(f"Students:        {summary['totalStudents']}")
    print(f"Records:         {summary['totalRecords']}")
    print(f"Present / late:  {summary['byStatus']['present']} / {summary['byStatus']['late']}")
    for subject, count in sorted(summary["bySubject"].items()):
        print(f"  {subject}: {count}")

    if args.export:
        export_path = Path(args.export)
        export_path.parent.mkdir(parents=True, exist_ok=True)
        with open(export_path, "w") as f:
            json.dump(system.export(), f, indent=2)
        print()
        print(f"Export saved: {export_path}")

    print()
    logger.info(f"Session replay complete: {summary['totalRecords']} records")
    return 0


if __name__ == "__main__":
    sys.exit(main())

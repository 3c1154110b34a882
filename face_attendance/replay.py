"""Replay of recorded session files.

A session file is a JSON document with the students to enroll and the
captures to recognize, in order:

    {
      "students": [
        {"name": "Asha", "roll_number": "R1", "descriptor": [1, 0, 0]}
      ],
      "captures": [
        {"descriptor": [0.9, 0.1, 0], "subject": "Math",
         "session_id": "cam-1", "timestamp": "2025-03-03T09:00:00+00:00"}
      ]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from face_attendance.errors import DuplicateKeyError, InvalidInputError
from face_attendance.interfaces import Identity, RecognitionOutcome
from face_attendance.logging_config import get_logger
from face_attendance.system import AttendanceSystem

logger = get_logger(__name__)


@dataclass
class Capture:
    """One recorded capture to recognize."""

    descriptor: list[float]
    subject: Optional[str] = None
    session_id: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass
class SessionFile:
    """Parsed session file."""

    students: list[dict[str, Any]] = field(default_factory=list)
    captures: list[Capture] = field(default_factory=list)


@dataclass
class ReplayReport:
    """Result of replaying a session file.

    Attributes:
        enrolled: Identities enrolled successfully
        enrollment_errors: (roll number, message) for rejected students
        outcomes: One outcome per capture, in order
    """

    enrolled: list[Identity] = field(default_factory=list)
    enrollment_errors: list[tuple[str, str]] = field(default_factory=list)
    outcomes: list[RecognitionOutcome] = field(default_factory=list)


def _parse_capture(raw: Any, index: int) -> Capture:
    if not isinstance(raw, dict):
        raise InvalidInputError(f"Capture {index} must be an object")

    timestamp = raw.get("timestamp")
    if timestamp is not None:
        try:
            timestamp = datetime.fromisoformat(timestamp)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Capture {index} has invalid timestamp: {e}") from e

    return Capture(
        descriptor=raw.get("descriptor"),
        subject=raw.get("subject"),
        session_id=raw.get("session_id", raw.get("sessionId")),
        timestamp=timestamp,
    )


def parse_session(data: Any) -> SessionFile:
    """Parse a decoded session document.

    Raises:
        InvalidInputError: If the document structure is invalid.
    """
    if not isinstance(data, dict):
        raise InvalidInputError("Session file must contain a JSON object")

    students = data.get("students", [])
    captures = data.get("captures", [])
    if not isinstance(students, list) or not isinstance(captures, list):
        raise InvalidInputError("'students' and 'captures' must be lists")

    return SessionFile(
        students=students,
        captures=[_parse_capture(raw, i) for i, raw in enumerate(captures)],
    )


def load_session(path: str | Path) -> SessionFile:
    """Load and parse a session file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        InvalidInputError: If the file is not valid JSON or has a bad layout.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Session file not found: {path}")

    with open(path, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Session file is not valid JSON: {e}") from e

    session = parse_session(data)
    logger.info(
        f"Loaded session file {path}: {len(session.students)} students, "
        f"{len(session.captures)} captures"
    )
    return session


def replay_session(system: AttendanceSystem, session: SessionFile) -> ReplayReport:
    """Enroll the session's students, then recognize its captures in order.

    Rejected enrollments are collected in the report and do not stop the
    replay.
    """
    report = ReplayReport()

    for student in session.students:
        descriptor = student.get("descriptor") if isinstance(student, dict) else None
        try:
            report.enrolled.append(system.enroll(student, descriptor))
        except (InvalidInputError, DuplicateKeyError) as e:
            roll_number = ""
            if isinstance(student, dict):
                roll_number = str(student.get("roll_number", student.get("rollNumber", "")))
            report.enrollment_errors.append((roll_number, str(e)))

    for capture in session.captures:
        report.outcomes.append(
            system.recognize(
                capture.descriptor,
                subject=capture.subject,
                session_id=capture.session_id,
                timestamp=capture.timestamp,
            )
        )

    logger.info(
        f"Replay complete: {len(report.enrolled)} enrolled, "
        f"{len(report.enrollment_errors)} rejected, {len(report.outcomes)} captures"
    )
    return report

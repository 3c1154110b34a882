"""Error taxonomy for the attendance core.

Every error here is an expected, recoverable outcome that callers can act on.
None of them represent transport or storage failures.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from face_attendance.interfaces import AttendanceEvent


class AttendanceError(Exception):
    """Base class for all attendance core errors."""


class InvalidInputError(AttendanceError, ValueError):
    """Malformed input, e.g. an empty or dimensionally inconsistent descriptor."""


class DuplicateKeyError(AttendanceError):
    """An identity with the same roll number is already enrolled."""

    def __init__(self, roll_number: str):
        super().__init__(f"Student with roll number {roll_number} already exists")
        self.roll_number = roll_number


class DuplicateForDayError(AttendanceError):
    """Attendance is already recorded for this identity, subject and day.

    Attributes:
        existing: The event recorded earlier for the same cell.
    """

    def __init__(self, existing: AttendanceEvent):
        super().__init__(
            f"{existing.student_name} ({existing.roll_number}) already marked "
            f"for {existing.subject} on {existing.day.isoformat()}"
        )
        self.existing = existing


class NotFoundError(AttendanceError, KeyError):
    """A referenced identity does not exist (e.g. removed by a purge)."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""

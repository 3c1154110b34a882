"""Core interfaces and data structures for the attendance recorder.

This module defines the records exchanged between components (identities,
attendance events, recognition outcomes), the validated enrollment input,
and the abstract interfaces (Protocols) the services depend on.

Following the Dependency Inversion Principle, the services depend on these
abstractions rather than concrete implementations.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

import numpy as np

from face_attendance.errors import InvalidInputError


class AttendanceStatus(str, Enum):
    """Status tag of an attendance event."""

    PRESENT = "present"
    LATE = "late"


class CaptureMethod(str, Enum):
    """How an attendance event was captured."""

    FACIAL_RECOGNITION = "facial_recognition"
    MANUAL = "manual"


class RejectReason(str, Enum):
    """Why a capture was rejected."""

    NO_MATCH = "no_match"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class StudentRegistration:
    """Validated display fields for a new identity.

    Attributes:
        name: Display name
        roll_number: Unique key of the student
        email: Optional contact email (derived at enrollment when missing)
    """

    name: str
    roll_number: str
    email: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate and normalize required fields."""
        for field_name in ("name", "roll_number"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidInputError(f"Field '{field_name}' is required")
            object.__setattr__(self, field_name, value.strip())

        if self.email is not None:
            if not isinstance(self.email, str):
                raise InvalidInputError("Field 'email' must be a string")
            object.__setattr__(self, "email", self.email.strip() or None)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> StudentRegistration:
        """Build a registration from an untyped payload.

        Accepts both ``roll_number`` and ``rollNumber`` keys.

        Raises:
            InvalidInputError: If the payload is not a mapping or a required
                field is missing or blank.
        """
        if not isinstance(payload, Mapping):
            raise InvalidInputError("Student data must be a mapping")

        roll_number = payload.get("roll_number", payload.get("rollNumber"))
        return cls(
            name=payload.get("name"),
            roll_number=roll_number,
            email=payload.get("email"),
        )

    def resolved_email(self, domain: str) -> str:
        """Get the email, deriving ``first.last@domain`` from the name if unset."""
        if self.email:
            return self.email
        local_part = re.sub(r"\s+", ".", self.name.lower())
        return f"{local_part}@{domain}"


@dataclass(frozen=True, eq=False)
class Identity:
    """An enrolled student.

    Records are immutable; the store replaces a record to bump the
    attendance counter and last-seen day.

    Attributes:
        id: Store-assigned key
        roll_number: Unique roll number
        name: Display name
        email: Contact email
        descriptor: Read-only face descriptor, shape [D]
        registration_date: Day of enrollment
        total_attendance: Number of recorded attendance events
        last_seen: Day of the most recent event, None if never seen
    """

    id: str
    roll_number: str
    name: str
    email: str
    descriptor: np.ndarray
    registration_date: date
    total_attendance: int = 0
    last_seen: Optional[date] = None

    @property
    def dimension(self) -> int:
        """Get descriptor length."""
        return int(self.descriptor.shape[0])

    def to_dict(self) -> dict[str, Any]:
        """Export as a JSON-serializable dict."""
        return {
            "id": self.id,
            "rollNumber": self.roll_number,
            "name": self.name,
            "email": self.email,
            "faceDescriptor": self.descriptor.tolist(),
            "registrationDate": self.registration_date.isoformat(),
            "totalAttendance": self.total_attendance,
            "lastSeen": self.last_seen.isoformat() if self.last_seen else "Never",
        }

    def __repr__(self) -> str:
        """String representation without the descriptor values."""
        return (
            f"Identity(id='{self.id}', roll_number='{self.roll_number}', "
            f"name='{self.name}', dim={self.dimension}, "
            f"total_attendance={self.total_attendance})"
        )


@dataclass(frozen=True)
class AttendanceEvent:
    """Immutable record that an identity was seen for a subject.

    Attributes:
        id: Event key
        identity_id: Identity the event belongs to
        student_name: Name at recording time
        roll_number: Roll number of the identity
        subject: Subject label
        timestamp: Aware capture time
        day: Calendar-day key used for deduplication
        confidence: Capped confidence in percent
        status: present or late
        method: Capture method
        session_id: Camera session that produced the capture
    """

    id: str
    identity_id: str
    student_name: str
    roll_number: str
    subject: str
    timestamp: datetime
    day: date
    confidence: float
    status: AttendanceStatus
    method: CaptureMethod
    session_id: str

    def to_dict(self) -> dict[str, Any]:
        """Export as a JSON-serializable dict."""
        return {
            "id": self.id,
            "studentId": self.identity_id,
            "studentName": self.student_name,
            "rollNumber": self.roll_number,
            "timestamp": self.timestamp.isoformat(),
            "confidence": self.confidence,
            "subject": self.subject,
            "status": self.status.value,
            "method": self.method.value,
            "sessionId": self.session_id,
        }


@dataclass(frozen=True)
class Match:
    """Best candidate found by a matcher.

    Attributes:
        identity: Winning identity
        similarity: Raw cosine similarity in [-1, 1]
    """

    identity: Identity
    similarity: float


@dataclass(frozen=True)
class Recognized:
    """Capture matched an identity and a new event was recorded."""

    identity: Identity
    similarity: float
    confidence: float
    status: AttendanceStatus
    event: AttendanceEvent

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": "recognized",
            "student": self.identity.to_dict(),
            "similarity": self.similarity,
            "confidence": self.confidence,
            "status": self.status.value,
            "attendanceRecord": self.event.to_dict(),
        }


@dataclass(frozen=True)
class Rejected:
    """Capture could not be attributed to an identity.

    Attributes:
        reason: Why the capture was rejected
        message: Human-readable explanation
        best_similarity: Highest similarity seen (no_match only; None when
            no candidate had the probe's length)
        students_in_database: Number of enrolled identities compared against
    """

    reason: RejectReason
    message: str = ""
    best_similarity: Optional[float] = None
    students_in_database: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": "rejected",
            "reason": self.reason.value,
            "message": self.message,
            "debug": {
                "bestSimilarity": self.best_similarity,
                "studentsInDatabase": self.students_in_database,
            },
        }


@dataclass(frozen=True)
class AlreadyMarked:
    """Capture matched an identity that is already marked for the day.

    ``confidence`` belongs to the current capture; the confidence stored
    with the earlier event is on ``existing_event``.
    """

    identity: Identity
    existing_event: AttendanceEvent
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": "already_marked",
            "student": self.identity.to_dict(),
            "confidence": self.confidence,
            "attendanceRecord": self.existing_event.to_dict(),
        }


RecognitionOutcome = Union[Recognized, Rejected, AlreadyMarked]


@runtime_checkable
class Matcher(Protocol):
    """Protocol for probe-to-candidate matching.

    A Matcher is a pure function over a snapshot of identities; it keeps no
    state between calls besides its configuration.
    """

    threshold: float

    def best(self, probe: np.ndarray, candidates: Sequence[Identity]) -> Optional[Match]:
        """Find the most similar candidate, ignoring the threshold."""
        ...

    def accepts(self, candidate: Optional[Match]) -> bool:
        """Check whether a candidate clears the threshold."""
        ...

    def match(self, probe: np.ndarray, candidates: Sequence[Identity]) -> Optional[Match]:
        """Find the best candidate for a probe descriptor.

        Args:
            probe: Probe descriptor, shape [D]
            candidates: Identities in deterministic order

        Returns:
            Best Match, or None if no candidate clears the threshold.

        Raises:
            InvalidInputError: If the probe is empty or malformed.
        """
        ...


@runtime_checkable
class IdentityDirectory(Protocol):
    """Protocol for the read/touch view of enrolled identities."""

    def snapshot(self) -> tuple[Identity, ...]:
        """Get all identities in enrollment order."""
        ...

    def get(self, identity_id: str) -> Identity:
        """Get identity by id; raises NotFoundError if missing."""
        ...

    def touch(self, identity_id: str, seen_on: date) -> Identity:
        """Bump attendance counter and last-seen day."""
        ...

    def clear(self) -> int:
        """Remove all identities; returns how many were removed."""
        ...

"""Process-wide attendance system.

This module wires the descriptor store, matcher, ledger and services into a
single aggregate that the surrounding application calls:

    system = AttendanceSystem.from_config(get_config())
    system.enroll({"name": "Asha", "roll_number": "R1"}, descriptor)
    outcome = system.recognize(probe, subject="Math", session_id="cam-1")
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Any, Optional

from face_attendance.config import (
    CONFIDENCE_CAP,
    DEFAULT_EMAIL_DOMAIN,
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_SUBJECT,
    PRESENT_CONFIDENCE_THRESHOLD,
    Config,
)
from face_attendance.interfaces import AttendanceEvent, Identity, RecognitionOutcome
from face_attendance.ledger import AttendanceLedger
from face_attendance.logging_config import get_logger
from face_attendance.matcher import CosineMatcher
from face_attendance.services.enrollment import DisplayFields, EnrollmentService
from face_attendance.services.recognition import RecognitionService
from face_attendance.store import DescriptorStore
from face_attendance.utils import DescriptorLike

logger = get_logger(__name__)


class AttendanceSystem:
    """Owned aggregate of identities and attendance events.

    Attributes:
        store: Descriptor store
        matcher: Cosine matcher
        ledger: Attendance ledger
        enrollment: Enrollment service
        recognition: Recognition service
    """

    def __init__(
        self,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        present_threshold: float = PRESENT_CONFIDENCE_THRESHOLD,
        confidence_cap: float = CONFIDENCE_CAP,
        tz: tzinfo = timezone.utc,
        default_subject: str = DEFAULT_SUBJECT,
        email_domain: str = DEFAULT_EMAIL_DOMAIN,
    ):
        self.tz = tz
        self.store = DescriptorStore(email_domain=email_domain)
        self.matcher = CosineMatcher(threshold=threshold)
        self.ledger = AttendanceLedger(
            self.store,
            tz=tz,
            present_threshold=present_threshold,
            confidence_cap=confidence_cap,
            default_subject=default_subject,
        )
        self.enrollment = EnrollmentService(self.store, tz=tz)
        self.recognition = RecognitionService(self.store, self.matcher, self.ledger)

    @classmethod
    def from_config(cls, config: Config) -> AttendanceSystem:
        """Create an attendance system from configuration.

        Example:
            >>> from face_attendance.config import get_config
            >>> system = AttendanceSystem.from_config(get_config())
        """
        logger.info(f"Creating attendance system from {config!r}")
        return cls(
            threshold=config.thresh,
            present_threshold=config.present_confidence,
            confidence_cap=config.confidence_cap,
            tz=config.tz,
            default_subject=config.default_subject,
            email_domain=config.email_domain,
        )

    def enroll(self, display_fields: DisplayFields, descriptor: DescriptorLike) -> Identity:
        """Enroll a new student.

        Raises:
            InvalidInputError: If fields or descriptor are invalid.
            DuplicateKeyError: If the roll number is already enrolled.
        """
        return self.enrollment.register(display_fields, descriptor)

    def recognize(
        self,
        descriptor: DescriptorLike,
        subject: Optional[str] = None,
        session_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> RecognitionOutcome:
        """Recognize a capture and record attendance.

        Args:
            descriptor: Face descriptor of the capture
            subject: Subject label (default subject if blank)
            session_id: Camera session id (generated if blank)
            timestamp: Capture time (default: now, UTC)
        """
        if timestamp is None:
            timestamp = datetime.now(timezone.utc)
        return self.recognition.recognize(descriptor, subject, session_id, timestamp)

    def list_identities(self) -> list[Identity]:
        """Get enrolled identities in enrollment order."""
        return list(self.store.snapshot())

    def list_events(self) -> list[AttendanceEvent]:
        """Get attendance events, most recent first."""
        return self.ledger.events()

    def summary(self) -> dict[str, Any]:
        """Get counts for the reporting layer."""
        summary = self.ledger.summary()
        summary["totalStudents"] = len(self.store)
        return summary

    def export(self) -> dict[str, Any]:
        """Export identities and events read at one consistent instant.

        Returns:
            JSON-serializable dict with ``students`` and ``records``.
        """
        identities, events = self.ledger.snapshot()
        return {
            "students": [identity.to_dict() for identity in identities],
            "totalStudents": len(identities),
            "records": [event.to_dict() for event in events],
            "totalRecords": len(events),
        }

    def purge_all(self) -> tuple[int, int]:
        """Clear all identities and events atomically.

        Returns:
            Tuple of (identities removed, events removed).
        """
        return self.ledger.purge()

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"AttendanceSystem(identities={len(self.store)}, "
            f"events={len(self.ledger)}, threshold={self.matcher.threshold:.2f})"
        )

"""Attendance ledger enforcing one event per student, subject and day.

Each (identity, subject, calendar day) cell moves from unmarked to marked
exactly once. The duplicate check, the append and the store update run in
a single critical section so two concurrent captures of the same student
cannot both be recorded.
"""

from __future__ import annotations

import threading
import uuid
from collections import Counter
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Optional

from face_attendance.config import (
    CONFIDENCE_CAP,
    DEFAULT_SUBJECT,
    PRESENT_CONFIDENCE_THRESHOLD,
)
from face_attendance.errors import DuplicateForDayError, NotFoundError
from face_attendance.interfaces import (
    AttendanceEvent,
    AttendanceStatus,
    CaptureMethod,
    IdentityDirectory,
)
from face_attendance.logging_config import get_logger
from face_attendance.utils import calendar_day, localize

logger = get_logger(__name__)

CellKey = tuple[str, str, date]


class AttendanceLedger:
    """In-memory ledger of attendance events.

    Lock order is always ledger, then store.

    Attributes:
        store: Directory used to validate and touch identities
        tz: Reference zone defining a calendar day
        present_threshold: Confidence above which status is "present"
        confidence_cap: Upper bound for confidence (percent)
        default_subject: Subject used when none is given

    Example:
        >>> ledger = AttendanceLedger(store)
        >>> event = ledger.record(identity.id, "Math", 0.97,
        ...                       CaptureMethod.FACIAL_RECOGNITION, "cam-1", now)
        >>> event.status
        <AttendanceStatus.PRESENT: 'present'>
    """

    def __init__(
        self,
        store: IdentityDirectory,
        tz: tzinfo = timezone.utc,
        present_threshold: float = PRESENT_CONFIDENCE_THRESHOLD,
        confidence_cap: float = CONFIDENCE_CAP,
        default_subject: str = DEFAULT_SUBJECT,
    ):
        self.store = store
        self.tz = tz
        self.present_threshold = present_threshold
        self.confidence_cap = confidence_cap
        self.default_subject = default_subject

        self._lock = threading.Lock()
        # Oldest first; events() reverses for display
        self._events: list[AttendanceEvent] = []
        self._cells: dict[CellKey, AttendanceEvent] = {}

        logger.debug(
            f"Initialized AttendanceLedger: tz={tz}, "
            f"present_threshold={present_threshold}, confidence_cap={confidence_cap}"
        )

    def confidence_for(self, similarity: float) -> float:
        """Convert a raw similarity into a capped percentage."""
        return max(0.0, min(similarity * 100.0, self.confidence_cap))

    def status_for(self, confidence: float) -> AttendanceStatus:
        """Classify a confidence as present or late."""
        if confidence > self.present_threshold:
            return AttendanceStatus.PRESENT
        return AttendanceStatus.LATE

    def normalize_subject(self, subject: Optional[str]) -> str:
        """Strip a subject label, falling back to the default subject."""
        subject = (subject or "").strip()
        return subject or self.default_subject

    def record(
        self,
        identity_id: str,
        subject: Optional[str],
        similarity: float,
        method: CaptureMethod,
        session_id: Optional[str],
        now: datetime,
    ) -> AttendanceEvent:
        """Record an attendance event.

        Args:
            identity_id: Recognized identity
            subject: Subject label (blank uses the default subject)
            similarity: Raw matcher similarity in [-1, 1]
            method: Capture method
            session_id: Camera session id (generated from ``now`` if blank)
            now: Capture time

        Returns:
            The new event.

        Raises:
            DuplicateForDayError: If the cell is already marked; carries the
                existing event.
            NotFoundError: If the identity is not in the store.
        """
        subject = self.normalize_subject(subject)
        timestamp = localize(now, self.tz)
        day = calendar_day(timestamp, self.tz)
        if not session_id:
            session_id = f"session_{int(timestamp.timestamp() * 1000)}"

        confidence = self.confidence_for(similarity)
        status = self.status_for(confidence)
        key: CellKey = (identity_id, subject, day)

        with self._lock:
            existing = self._cells.get(key)
            if existing is not None:
                logger.info(
                    f"{existing.student_name} ({existing.roll_number}) already marked "
                    f"for {subject} on {day.isoformat()}"
                )
                raise DuplicateForDayError(existing)

            identity = self.store.get(identity_id)

            event = AttendanceEvent(
                id=f"att_{uuid.uuid4().hex}",
                identity_id=identity.id,
                student_name=identity.name,
                roll_number=identity.roll_number,
                subject=subject,
                timestamp=timestamp,
                day=day,
                confidence=confidence,
                status=status,
                method=method,
                session_id=session_id,
            )
            self._events.append(event)
            self._cells[key] = event

            try:
                self.store.touch(identity_id, day)
            except NotFoundError:
                self._events.pop()
                del self._cells[key]
                raise

        logger.info(
            f"Attendance recorded for {event.student_name} ({event.roll_number}): "
            f"subject={subject}, confidence={confidence:.1f}%, status={status.value}"
        )
        return event

    def find(self, identity_id: str, subject: str, day: date) -> Optional[AttendanceEvent]:
        """Get the event recorded for a cell, if any."""
        with self._lock:
            return self._cells.get((identity_id, self.normalize_subject(subject), day))

    def events(self) -> list[AttendanceEvent]:
        """Get all events, most recent first."""
        with self._lock:
            return self._events[::-1]

    def summary(self) -> dict[str, Any]:
        """Summarize recorded events for the reporting layer.

        Returns:
            Dict with total events, counts by status, subject and method,
            and the number of distinct students marked.
        """
        with self._lock:
            events = list(self._events)

        return {
            "totalRecords": len(events),
            "byStatus": {
                status.value: sum(1 for e in events if e.status is status)
                for status in AttendanceStatus
            },
            "bySubject": dict(Counter(e.subject for e in events)),
            "byMethod": dict(Counter(e.method.value for e in events)),
            "studentsMarked": len({e.identity_id for e in events}),
        }

    def snapshot(self) -> tuple[tuple, list[AttendanceEvent]]:
        """Get identities and events read under the ledger lock.

        Returns:
            Tuple of (identities in enrollment order, events most recent first).
        """
        with self._lock:
            return self.store.snapshot(), self._events[::-1]

    def purge(self) -> tuple[int, int]:
        """Clear all events and all identities in the store.

        Both collections are cleared while the ledger lock is held, so no
        record() can interleave.

        Returns:
            Tuple of (identities removed, events removed).
        """
        with self._lock:
            events_removed = len(self._events)
            self._events = []
            self._cells = {}
            identities_removed = self.store.clear()

        logger.info(
            f"Purged all data: {identities_removed} identities, {events_removed} events"
        )
        return identities_removed, events_removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __repr__(self) -> str:
        """String representation."""
        return f"AttendanceLedger(events={len(self)}, tz={self.tz})"

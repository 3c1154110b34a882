"""Recognition service turning a probe descriptor into an attendance outcome.

The service takes a snapshot of the descriptor store, asks the matcher for
the best candidate and asks the ledger to record the event. Errors from
either side are normalized into a single outcome type.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from face_attendance.errors import DuplicateForDayError, InvalidInputError, NotFoundError
from face_attendance.interfaces import (
    AlreadyMarked,
    CaptureMethod,
    IdentityDirectory,
    Matcher,
    RecognitionOutcome,
    Recognized,
    Rejected,
    RejectReason,
)
from face_attendance.ledger import AttendanceLedger
from face_attendance.logging_config import get_logger
from face_attendance.matcher import validate_threshold
from face_attendance.utils import DescriptorLike

logger = get_logger(__name__)


class RecognitionService:
    """Service for marking attendance from face descriptors.

    This service orchestrates:
    1. Snapshot enrolled identities
    2. Match the probe descriptor against the snapshot
    3. Record the event in the ledger
    4. Map the result to Recognized, Rejected or AlreadyMarked

    Attributes:
        store: Directory of enrolled identities
        matcher: Matcher holding the similarity threshold
        ledger: Attendance ledger

    Example:
        >>> service = RecognitionService(store, CosineMatcher(0.4), ledger)
        >>> outcome = service.recognize(probe, "Math", "cam-1", now)
        >>> if isinstance(outcome, Recognized):
        ...     print(f"{outcome.identity.name}: {outcome.confidence:.1f}%")
    """

    def __init__(
        self,
        store: IdentityDirectory,
        matcher: Matcher,
        ledger: AttendanceLedger,
    ):
        self.store = store
        self.matcher = matcher
        self.ledger = ledger

        logger.info(f"Initialized RecognitionService with threshold={matcher.threshold:.2f}")

    @property
    def threshold(self) -> float:
        """Get the matcher's similarity threshold."""
        return self.matcher.threshold

    def recognize(
        self,
        probe: DescriptorLike,
        subject: Optional[str],
        session_id: Optional[str],
        now: datetime,
        method: CaptureMethod = CaptureMethod.FACIAL_RECOGNITION,
    ) -> RecognitionOutcome:
        """Recognize a probe descriptor and record attendance.

        Args:
            probe: Face descriptor of the capture
            subject: Subject label
            session_id: Camera session id
            now: Capture time
            method: Capture method tag for the event

        Returns:
            Recognized with the new event, AlreadyMarked with the existing
            event, or Rejected with a reason.
        """
        candidates = self.store.snapshot()

        try:
            best = self.matcher.best(probe, candidates)
        except InvalidInputError as e:
            logger.warning(f"Rejected capture: {e}")
            return Rejected(reason=RejectReason.INVALID_INPUT, message=str(e))

        if not self.matcher.accepts(best):
            best_similarity = best.similarity if best is not None else None
            message = (
                f"No matching student found (threshold: {self.threshold}). "
                f"Please register first or try again."
            )
            logger.info(
                f"No match among {len(candidates)} enrolled student(s) "
                f"(best similarity={best_similarity})"
            )
            return Rejected(
                reason=RejectReason.NO_MATCH,
                message=message,
                best_similarity=best_similarity,
                students_in_database=len(candidates),
            )

        identity = best.identity

        try:
            event = self.ledger.record(
                identity.id, subject, best.similarity, method, session_id, now
            )
        except DuplicateForDayError as e:
            return AlreadyMarked(
                identity=identity,
                existing_event=e.existing,
                confidence=self.ledger.confidence_for(best.similarity),
            )
        except NotFoundError as e:
            logger.warning(f"Matched identity vanished before recording: {e}")
            return Rejected(reason=RejectReason.NOT_FOUND, message=str(e))

        # Report the touched record; fall back to the matched one after a purge
        try:
            identity = self.store.get(identity.id)
        except NotFoundError:
            logger.debug(f"Identity {identity.id} purged after recording")

        return Recognized(
            identity=identity,
            similarity=best.similarity,
            confidence=event.confidence,
            status=event.status,
            event=event,
        )

    def set_threshold(self, threshold: float) -> None:
        """Update recognition threshold.

        Args:
            threshold: New threshold value (-1.0 to 1.0)

        Raises:
            ValueError: If threshold is not in valid range.
        """
        threshold = validate_threshold(threshold)

        old_threshold = self.matcher.threshold
        self.matcher.threshold = threshold

        logger.info(f"Updated recognition threshold: {old_threshold:.2f} -> {threshold:.2f}")

    def __repr__(self) -> str:
        """String representation."""
        return f"RecognitionService(threshold={self.threshold:.2f}, matcher={self.matcher})"

"""Face-descriptor attendance recorder.

Identifies enrolled students from face descriptors and records one
attendance event per student, subject and calendar day.
"""

from face_attendance.config import Config, get_config
from face_attendance.errors import (
    AttendanceError,
    DuplicateForDayError,
    DuplicateKeyError,
    InvalidInputError,
    NotFoundError,
)
from face_attendance.interfaces import (
    AlreadyMarked,
    AttendanceEvent,
    AttendanceStatus,
    CaptureMethod,
    Identity,
    Match,
    RecognitionOutcome,
    Recognized,
    Rejected,
    RejectReason,
    StudentRegistration,
)
from face_attendance.ledger import AttendanceLedger
from face_attendance.logging_config import get_logger, setup_logging
from face_attendance.matcher import CosineMatcher
from face_attendance.store import DescriptorStore
from face_attendance.system import AttendanceSystem

__version__ = "0.1.0"

__all__ = [
    # Config
    "Config",
    "get_config",
    # Errors
    "AttendanceError",
    "DuplicateForDayError",
    "DuplicateKeyError",
    "InvalidInputError",
    "NotFoundError",
    # Records
    "AlreadyMarked",
    "AttendanceEvent",
    "AttendanceStatus",
    "CaptureMethod",
    "Identity",
    "Match",
    "RecognitionOutcome",
    "Recognized",
    "Rejected",
    "RejectReason",
    "StudentRegistration",
    # Components
    "AttendanceLedger",
    "AttendanceSystem",
    "CosineMatcher",
    "DescriptorStore",
    # Logging
    "get_logger",
    "setup_logging",
]

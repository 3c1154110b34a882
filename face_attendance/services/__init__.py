"""High-level services for the attendance recorder.

This package contains the services that orchestrate the descriptor store,
matcher and attendance ledger.
"""

from face_attendance.services.enrollment import EnrollmentService
from face_attendance.services.recognition import RecognitionService

__all__ = [
    "EnrollmentService",
    "RecognitionService",
]

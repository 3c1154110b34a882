"""Enrollment service for registering new students.

This module validates display fields and descriptors before inserting a
new identity into the descriptor store.
"""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Any, Mapping, Optional, Union

from face_attendance.errors import DuplicateKeyError, InvalidInputError
from face_attendance.interfaces import Identity, StudentRegistration
from face_attendance.logging_config import get_logger
from face_attendance.store import DescriptorStore
from face_attendance.utils import DescriptorLike, as_descriptor

logger = get_logger(__name__)

DisplayFields = Union[StudentRegistration, Mapping[str, Any]]


class EnrollmentService:
    """Service for enrolling new students.

    Workflow:
    1. Validate display fields (name, roll number)
    2. Coerce and validate the descriptor
    3. Check the descriptor length against the store
    4. Insert into the store (roll number uniqueness is enforced there)

    Attributes:
        store: Descriptor store receiving new identities
        tz: Zone used to date registrations

    Example:
        >>> service = EnrollmentService(store)
        >>> identity = service.register(
        ...     {"name": "Asha", "roll_number": "R1"},
        ...     [1.0, 0.0, 0.0],
        ... )
    """

    def __init__(self, store: DescriptorStore, tz: tzinfo = timezone.utc):
        self.store = store
        self.tz = tz

        logger.debug(f"Initialized EnrollmentService: store={store}")

    def register(
        self,
        display_fields: DisplayFields,
        descriptor: DescriptorLike,
        registered_on: Optional[date] = None,
    ) -> Identity:
        """Register a new student.

        The first enrolled descriptor fixes the expected length; later
        descriptors of any other length are rejected, never padded or
        truncated.

        Args:
            display_fields: StudentRegistration or mapping with name,
                roll_number and optional email
            descriptor: Face descriptor
            registered_on: Enrollment day (default: today in ``tz``)

        Returns:
            The stored identity.

        Raises:
            InvalidInputError: If fields are missing or the descriptor is
                empty, malformed or of the wrong length.
            DuplicateKeyError: If the roll number is already enrolled.
        """
        try:
            if isinstance(display_fields, StudentRegistration):
                registration = display_fields
            else:
                registration = StudentRegistration.from_dict(display_fields)

            vector = as_descriptor(descriptor)

            expected = self.store.dimension
            if expected is not None and vector.shape[0] != expected:
                raise InvalidInputError(
                    f"Expected descriptor of length {expected}, got {vector.shape[0]}"
                )
        except InvalidInputError as e:
            logger.warning(f"Rejected enrollment: {e}")
            raise

        if registered_on is None:
            registered_on = datetime.now(self.tz).date()

        try:
            return self.store.enroll(registration, vector, registered_on)
        except (DuplicateKeyError, InvalidInputError) as e:
            logger.warning(f"Rejected enrollment of '{registration.roll_number}': {e}")
            raise

    def __repr__(self) -> str:
        """String representation."""
        return f"EnrollmentService(enrolled={len(self.store)})"

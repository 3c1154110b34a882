"""Descriptor store holding enrolled identities.

Writers (enroll, touch, clear) are serialized by a lock. Every write
publishes a new immutable tuple of identities, so readers take a snapshot
without locking and never observe a half-applied write.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import date
from typing import Optional

from face_attendance.errors import DuplicateKeyError, InvalidInputError, NotFoundError
from face_attendance.interfaces import Identity, StudentRegistration
from face_attendance.logging_config import get_logger
from face_attendance.utils import DescriptorLike, as_descriptor

logger = get_logger(__name__)


class DescriptorStore:
    """In-memory store of enrolled identities keyed by roll number.

    The first enrolled descriptor fixes the descriptor length for the life
    of the store (until clear()).

    Attributes:
        email_domain: Domain used to derive missing emails

    Example:
        >>> store = DescriptorStore()
        >>> identity = store.enroll(
        ...     StudentRegistration(name="Asha", roll_number="R1"),
        ...     as_descriptor([1.0, 0.0, 0.0]),
        ...     registered_on=date.today(),
        ... )
        >>> len(store.snapshot())
        1
    """

    def __init__(self, email_domain: str = "school.edu"):
        self.email_domain = email_domain
        self._lock = threading.Lock()
        self._identities: tuple[Identity, ...] = ()
        self._positions: dict[str, int] = {}
        self._by_roll: dict[str, str] = {}
        self._dimension: Optional[int] = None

        logger.debug(f"Initialized DescriptorStore (email_domain={email_domain})")

    @property
    def dimension(self) -> Optional[int]:
        """Get the established descriptor length (None while empty)."""
        return self._dimension

    def enroll(
        self,
        registration: StudentRegistration,
        descriptor: DescriptorLike,
        registered_on: date,
    ) -> Identity:
        """Insert a new identity.

        The descriptor is copied into a read-only array, so later changes to
        the caller's array do not reach the stored identity.

        Args:
            registration: Validated display fields
            descriptor: Face descriptor, shape [D]
            registered_on: Enrollment day

        Returns:
            The stored identity with counter 0 and no last-seen day.

        Raises:
            DuplicateKeyError: If the roll number is already enrolled.
            InvalidInputError: If the descriptor is malformed or its length
                disagrees with the store's established dimension.
        """
        descriptor = as_descriptor(descriptor)
        dim = int(descriptor.shape[0])

        with self._lock:
            if registration.roll_number in self._by_roll:
                raise DuplicateKeyError(registration.roll_number)

            if self._dimension is not None and dim != self._dimension:
                raise InvalidInputError(
                    f"Expected descriptor of length {self._dimension}, got {dim}"
                )

            identity = Identity(
                id=f"STU_{uuid.uuid4().hex[:12]}",
                roll_number=registration.roll_number,
                name=registration.name,
                email=registration.resolved_email(self.email_domain),
                descriptor=descriptor,
                registration_date=registered_on,
            )

            self._positions[identity.id] = len(self._identities)
            self._by_roll[identity.roll_number] = identity.id
            self._identities = self._identities + (identity,)
            if self._dimension is None:
                self._dimension = dim

        logger.info(
            f"Enrolled '{identity.name}' ({identity.roll_number}) as {identity.id} "
            f"(total: {len(self._identities)})"
        )
        return identity

    def snapshot(self) -> tuple[Identity, ...]:
        """Get all identities in enrollment order.

        The returned tuple is never modified by later writes.
        """
        return self._identities

    # Alias kept for callers that read the store as a collection
    all = snapshot

    def get(self, identity_id: str) -> Identity:
        """Get identity by id.

        Raises:
            NotFoundError: If no identity has this id.
        """
        identities = self._identities
        position = self._positions.get(identity_id)
        if position is None or position >= len(identities):
            raise NotFoundError(f"Identity {identity_id} not found")
        identity = identities[position]
        if identity.id != identity_id:
            raise NotFoundError(f"Identity {identity_id} not found")
        return identity

    def get_by_roll_number(self, roll_number: str) -> Identity:
        """Get identity by roll number.

        Raises:
            NotFoundError: If the roll number is not enrolled.
        """
        identity_id = self._by_roll.get(roll_number.strip())
        if identity_id is None:
            raise NotFoundError(f"Roll number {roll_number} not found")
        return self.get(identity_id)

    def touch(self, identity_id: str, seen_on: date) -> Identity:
        """Increment the attendance counter and set the last-seen day.

        Args:
            identity_id: Identity to update
            seen_on: Day of the recorded event

        Returns:
            Updated identity.

        Raises:
            NotFoundError: If the identity does not exist.
        """
        with self._lock:
            position = self._positions.get(identity_id)
            if position is None:
                raise NotFoundError(f"Identity {identity_id} not found")

            current = self._identities[position]
            updated = replace(
                current,
                total_attendance=current.total_attendance + 1,
                last_seen=seen_on,
            )
            identities = list(self._identities)
            identities[position] = updated
            self._identities = tuple(identities)

        logger.debug(
            f"Touched {identity_id}: total_attendance={updated.total_attendance}, "
            f"last_seen={seen_on.isoformat()}"
        )
        return updated

    def clear(self) -> int:
        """Remove every identity and reset the descriptor length.

        Returns:
            Number of identities removed.
        """
        with self._lock:
            removed = len(self._identities)
            self._identities = ()
            self._positions = {}
            self._by_roll = {}
            self._dimension = None

        logger.info(f"Cleared descriptor store ({removed} identities removed)")
        return removed

    def __len__(self) -> int:
        return len(self._identities)

    def __contains__(self, roll_number: object) -> bool:
        return isinstance(roll_number, str) and roll_number.strip() in self._by_roll

    def __repr__(self) -> str:
        """String representation."""
        return f"DescriptorStore(identities={len(self)}, dim={self._dimension})"

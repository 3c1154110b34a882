"""Unit tests for descriptor store."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date

import numpy as np
import pytest

from face_attendance.errors import DuplicateKeyError, InvalidInputError, NotFoundError
from face_attendance.interfaces import StudentRegistration
from face_attendance.store import DescriptorStore
from face_attendance.utils import as_descriptor

TODAY = date(2025, 3, 3)


@pytest.fixture
def store():
    """Create an empty DescriptorStore."""
    return DescriptorStore(email_domain="school.edu")


def enroll(store, roll_number, descriptor, name="Student"):
    return store.enroll(
        StudentRegistration(name=name, roll_number=roll_number),
        as_descriptor(descriptor),
        registered_on=TODAY,
    )


def test_enroll(store):
    """Test enrolling a new identity."""
    identity = enroll(store, "R1", [1.0, 0.0, 0.0], name="Asha Rao")

    assert identity.id.startswith("STU_")
    assert identity.roll_number == "R1"
    assert identity.email == "asha.rao@school.edu"
    assert identity.total_attendance == 0
    assert identity.last_seen is None
    assert identity.registration_date == TODAY
    assert store.dimension == 3
    assert len(store) == 1
    assert "R1" in store


def test_descriptor_is_read_only(store):
    """Test that stored descriptors cannot be mutated."""
    identity = enroll(store, "R1", [1.0, 0.0, 0.0])

    with pytest.raises(ValueError):
        identity.descriptor[0] = 5.0


def test_enroll_copies_raw_descriptor(store):
    """Test that lists and writable arrays are copied into read-only storage."""
    raw = np.array([1.0, 0.0, 0.0])
    identity = store.enroll(StudentRegistration(name="Asha", roll_number="R1"), raw, TODAY)
    raw[0] = 5.0

    assert identity.descriptor.tolist() == [1.0, 0.0, 0.0]
    assert not identity.descriptor.flags.writeable

    other = store.enroll(StudentRegistration(name="Ben", roll_number="R2"), [0, 1, 0], TODAY)
    assert other.descriptor.dtype == np.float64

    with pytest.raises(InvalidInputError):
        store.enroll(StudentRegistration(name="Cleo", roll_number="R3"), [], TODAY)
    assert len(store) == 2


def test_duplicate_roll_number(store):
    """Test that re-enrolling a roll number fails and keeps the first record."""
    first = enroll(store, "R1", [1.0, 0.0, 0.0])

    with pytest.raises(DuplicateKeyError, match="R1"):
        enroll(store, "R1", [0.0, 1.0, 0.0])

    assert len(store) == 1
    assert store.get_by_roll_number("R1").id == first.id
    assert np.array_equal(store.get_by_roll_number("R1").descriptor, [1.0, 0.0, 0.0])


def test_dimension_mismatch(store):
    """Test that the first enrollment fixes the descriptor length."""
    enroll(store, "R1", [1.0, 0.0, 0.0])

    with pytest.raises(InvalidInputError, match="length 3"):
        enroll(store, "R2", [1.0, 0.0])

    assert len(store) == 1


def test_snapshot_is_stable(store):
    """Test that a snapshot is unaffected by later writes."""
    a = enroll(store, "R1", [1.0, 0.0, 0.0])
    snapshot = store.snapshot()

    enroll(store, "R2", [0.0, 1.0, 0.0])
    store.touch(a.id, TODAY)

    assert len(snapshot) == 1
    assert snapshot[0].total_attendance == 0
    assert [i.roll_number for i in store.all()] == ["R1", "R2"]


def test_touch(store):
    """Test incrementing the counter and setting last seen."""
    identity = enroll(store, "R1", [1.0, 0.0, 0.0])

    store.touch(identity.id, TODAY)
    updated = store.touch(identity.id, date(2025, 3, 4))

    assert updated.total_attendance == 2
    assert updated.last_seen == date(2025, 3, 4)
    assert store.get(identity.id).total_attendance == 2
    assert identity.total_attendance == 0  # original record is unchanged


def test_touch_missing(store):
    """Test touching an unknown identity."""
    with pytest.raises(NotFoundError):
        store.touch("STU_missing", TODAY)


def test_lookups_missing(store):
    """Test lookups of unknown ids and roll numbers."""
    with pytest.raises(NotFoundError):
        store.get("STU_missing")

    with pytest.raises(NotFoundError):
        store.get_by_roll_number("R9")


def test_clear(store):
    """Test clearing the store also resets the dimension."""
    identity = enroll(store, "R1", [1.0, 0.0, 0.0])
    enroll(store, "R2", [0.0, 1.0, 0.0])

    assert store.clear() == 2
    assert len(store) == 0
    assert store.dimension is None

    with pytest.raises(NotFoundError):
        store.get(identity.id)

    # New dimension allowed after clear
    enroll(store, "R1", [1.0, 0.0])
    assert store.dimension == 2


def test_concurrent_enrollment_of_same_roll_number(store):
    """Test that only one of many concurrent enrollments succeeds."""

    def attempt(i):
        try:
            enroll(store, "R1", [1.0, float(i), 0.0])
            return True
        except DuplicateKeyError:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(32)))

    assert results.count(True) == 1
    assert len(store) == 1


def test_concurrent_touches_are_not_lost(store):
    """Test that concurrent touches all count."""
    identity = enroll(store, "R1", [1.0, 0.0, 0.0])

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: store.touch(identity.id, TODAY), range(200)))

    assert store.get(identity.id).total_attendance == 200


def test_repr(store):
    """Test string representation."""
    assert "identities=0" in repr(store)

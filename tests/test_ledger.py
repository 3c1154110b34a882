"""Unit tests for attendance ledger."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from face_attendance.errors import DuplicateForDayError, NotFoundError
from face_attendance.interfaces import AttendanceStatus, CaptureMethod, StudentRegistration
from face_attendance.ledger import AttendanceLedger
from face_attendance.store import DescriptorStore
from face_attendance.utils import as_descriptor

NOW = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
FACE = CaptureMethod.FACIAL_RECOGNITION


@pytest.fixture
def store():
    """Create a store with one enrolled identity."""
    store = DescriptorStore()
    store.enroll(
        StudentRegistration(name="Asha", roll_number="R1"),
        as_descriptor([1.0, 0.0, 0.0]),
        registered_on=date(2025, 3, 1),
    )
    return store


@pytest.fixture
def asha(store):
    """The enrolled identity."""
    return store.get_by_roll_number("R1")


@pytest.fixture
def ledger(store):
    """Create a ledger over the store."""
    return AttendanceLedger(store)


def test_record(ledger, store, asha):
    """Test recording an event."""
    event = ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", NOW)

    assert event.id.startswith("att_")
    assert event.identity_id == asha.id
    assert event.student_name == "Asha"
    assert event.roll_number == "R1"
    assert event.subject == "Math"
    assert event.timestamp == NOW
    assert event.day == date(2025, 3, 3)
    assert event.confidence == 95.0
    assert event.status is AttendanceStatus.PRESENT
    assert event.method is FACE
    assert event.session_id == "cam-1"

    touched = store.get(asha.id)
    assert touched.total_attendance == 1
    assert touched.last_seen == date(2025, 3, 3)


@pytest.mark.parametrize(
    "similarity, confidence, status",
    [
        (1.0, 95.0, AttendanceStatus.PRESENT),
        (0.994, 95.0, AttendanceStatus.PRESENT),
        (0.85, 85.0, AttendanceStatus.PRESENT),
        (0.75, 75.0, AttendanceStatus.LATE),
        (0.41, 41.0, AttendanceStatus.LATE),
        (-0.3, 0.0, AttendanceStatus.LATE),
    ],
)
def test_confidence_and_status(ledger, similarity, confidence, status):
    """Test confidence capping and status classification."""
    assert ledger.confidence_for(similarity) == pytest.approx(confidence)
    assert ledger.status_for(ledger.confidence_for(similarity)) is status


def test_present_boundary_is_strict(ledger):
    """Test that exactly 80% confidence is late."""
    assert ledger.status_for(80.0) is AttendanceStatus.LATE
    assert ledger.status_for(80.5) is AttendanceStatus.PRESENT


def test_policy_is_overridable(store, asha):
    """Test custom present threshold and confidence cap."""
    ledger = AttendanceLedger(store, present_threshold=50.0, confidence_cap=90.0)
    event = ledger.record(asha.id, "Math", 0.6, FACE, "cam-1", NOW)

    assert event.status is AttendanceStatus.PRESENT
    assert ledger.confidence_for(1.0) == 90.0


def test_duplicate_same_day(ledger, store, asha):
    """Test that a second record on the same day returns the first event."""
    first = ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", NOW)

    with pytest.raises(DuplicateForDayError) as exc_info:
        ledger.record(asha.id, "Math", 0.9, FACE, "cam-2", NOW + timedelta(hours=3))

    assert exc_info.value.existing is first
    assert len(ledger) == 1
    assert store.get(asha.id).total_attendance == 1


def test_other_subject_or_day_is_allowed(ledger, asha):
    """Test that cells are keyed by subject and day."""
    ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", NOW)
    ledger.record(asha.id, "Physics", 1.0, FACE, "cam-1", NOW)
    ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", NOW + timedelta(days=1))

    assert len(ledger) == 3


def test_day_boundary_uses_reference_zone(store, asha):
    """Test that the calendar day is taken in the configured zone."""
    ledger = AttendanceLedger(store, tz=ZoneInfo("Asia/Kolkata"))

    # 20:00 UTC on 3 March is 01:30 on 4 March in Kolkata
    late_evening = datetime(2025, 3, 3, 20, 0, tzinfo=timezone.utc)
    event = ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", late_evening)
    assert event.day == date(2025, 3, 4)

    # 10:00 UTC on 3 March is the previous Kolkata day
    ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", datetime(2025, 3, 3, 10, 0, tzinfo=timezone.utc))
    assert len(ledger) == 2


def test_naive_timestamp_is_reference_zone(ledger, asha):
    """Test that naive timestamps are interpreted in the reference zone."""
    event = ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", datetime(2025, 3, 3, 23, 59))

    assert event.timestamp.tzinfo is not None
    assert event.day == date(2025, 3, 3)


def test_blank_subject_and_session(ledger, asha):
    """Test default subject and generated session id."""
    event = ledger.record(asha.id, "  ", 1.0, FACE, None, NOW)

    assert event.subject == "General"
    assert event.session_id == f"session_{int(NOW.timestamp() * 1000)}"
    assert ledger.find(asha.id, "", date(2025, 3, 3)) is event


def test_unknown_identity(ledger):
    """Test recording for an identity that is not enrolled."""
    with pytest.raises(NotFoundError):
        ledger.record("STU_missing", "Math", 1.0, FACE, "cam-1", NOW)

    assert len(ledger) == 0


def test_touch_failure_undoes_append(store, asha):
    """Test that a failing touch leaves the ledger unchanged."""
    ledger = AttendanceLedger(store)

    def vanish(identity_id, seen_on):
        raise NotFoundError(f"Identity {identity_id} not found")

    store.touch = vanish

    with pytest.raises(NotFoundError):
        ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", NOW)

    assert len(ledger) == 0
    assert ledger.find(asha.id, "Math", date(2025, 3, 3)) is None


def test_events_most_recent_first(ledger, asha):
    """Test event ordering."""
    first = ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", NOW)
    second = ledger.record(asha.id, "Physics", 1.0, FACE, "cam-1", NOW)

    assert ledger.events() == [second, first]


def test_concurrent_records_for_same_cell(ledger, store, asha):
    """Test that exactly one of many concurrent records succeeds."""
    barrier = threading.Barrier(16)

    def attempt(i):
        barrier.wait()
        try:
            ledger.record(asha.id, "Math", 0.9, FACE, f"cam-{i}", NOW + timedelta(minutes=i))
            return "recorded"
        except DuplicateForDayError:
            return "duplicate"

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(attempt, range(16)))

    assert results.count("recorded") == 1
    assert results.count("duplicate") == 15
    assert len(ledger) == 1
    assert store.get(asha.id).total_attendance == 1


def test_summary(ledger, asha):
    """Test summary counts."""
    ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", NOW)
    ledger.record(asha.id, "Physics", 0.5, FACE, "cam-1", NOW)

    summary = ledger.summary()

    assert summary["totalRecords"] == 2
    assert summary["byStatus"] == {"present": 1, "late": 1}
    assert summary["bySubject"] == {"Math": 1, "Physics": 1}
    assert summary["byMethod"] == {"facial_recognition": 2}
    assert summary["studentsMarked"] == 1


def test_purge(ledger, store, asha):
    """Test purging events and identities together."""
    ledger.record(asha.id, "Math", 1.0, FACE, "cam-1", NOW)

    assert ledger.purge() == (1, 1)
    assert len(ledger) == 0
    assert len(store) == 0
    assert ledger.snapshot() == ((), [])

"""Utility functions for the attendance core.

Descriptor coercion and the calendar-day key used for attendance
deduplication.
"""

from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Sequence, Union

import numpy as np

from face_attendance.errors import InvalidInputError

DescriptorLike = Union[np.ndarray, Sequence[float]]


def as_descriptor(values: DescriptorLike) -> np.ndarray:
    """Convert raw values into a read-only 1-D float64 descriptor.

    Args:
        values: Sequence of numbers or numpy array

    Returns:
        New read-only array of shape [D].

    Raises:
        InvalidInputError: If values are missing, empty, non-numeric,
            not one-dimensional or contain NaN/inf.

    Example:
        >>> descriptor = as_descriptor([0.1, 0.2, 0.3])
        >>> descriptor.shape
        (3,)
    """
    if values is None:
        raise InvalidInputError("Face descriptor is required")

    try:
        descriptor = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Face descriptor must be numeric: {e}") from e

    if descriptor.ndim != 1:
        raise InvalidInputError(
            f"Face descriptor must be one-dimensional, got shape {descriptor.shape}"
        )

    if descriptor.size == 0:
        raise InvalidInputError("Face descriptor is empty")

    if not np.all(np.isfinite(descriptor)):
        raise InvalidInputError("Face descriptor contains NaN or infinite values")

    descriptor.setflags(write=False)
    return descriptor


def calendar_day(timestamp: datetime, tz: tzinfo) -> date:
    """Get the calendar-day key of a timestamp in a fixed reference zone.

    Naive timestamps are taken to already be in ``tz``.

    Args:
        timestamp: Point in time
        tz: Reference time zone for the notion of "day"

    Returns:
        Date component of the timestamp expressed in ``tz``.
    """
    return localize(timestamp, tz).date()


def localize(timestamp: datetime, tz: tzinfo) -> datetime:
    """Return ``timestamp`` as an aware datetime in ``tz``."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=tz)
    return timestamp.astimezone(tz)

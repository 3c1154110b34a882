"""Configuration management for the attendance recorder.

This module loads configuration from environment variables (.env file) and
provides a centralized Config class for accessing application settings.
The policy constants below are the defaults used when a variable is unset.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Minimum cosine similarity a candidate must strictly exceed to be accepted
DEFAULT_MATCH_THRESHOLD = 0.4

# Confidence (percent) a recognition must strictly exceed to count as "present"
PRESENT_CONFIDENCE_THRESHOLD = 80.0

# Recognition is probabilistic; displayed confidence never reaches 100
CONFIDENCE_CAP = 95.0

DEFAULT_SUBJECT = "General"
DEFAULT_EMAIL_DOMAIN = "school.edu"
DEFAULT_DAY_TIMEZONE = "UTC"


def parse_threshold(value: str | float) -> float:
    """Parse a THRESH value and check it is in [-1.0, 1.0).

    Raises:
        ValueError: If the value is not a number or is out of range.
    """
    try:
        thresh = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"THRESH must be a number, got {value!r}") from None
    if not -1.0 <= thresh < 1.0:
        raise ValueError(f"THRESH must be in [-1.0, 1.0), got {thresh}")
    return thresh


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Attributes:
        thresh: Cosine similarity threshold for face matching (-1.0 to 1.0)
        present_confidence: Confidence above which an event is "present"
        confidence_cap: Upper bound for recorded confidence (percent)
        day_timezone: IANA zone that defines a calendar day for deduplication
        default_subject: Subject used when a capture names none
        email_domain: Domain for derived student emails
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    thresh: float
    present_confidence: float
    confidence_cap: float
    day_timezone: str
    default_subject: str
    email_domain: str
    log_level: str

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Returns:
            Config instance with values from environment or defaults.

        Raises:
            ValueError: If environment variables are invalid.
        """
        # Recognition threshold
        thresh = parse_threshold(os.getenv("THRESH", str(DEFAULT_MATCH_THRESHOLD)))

        # Attendance policy
        present_confidence = float(
            os.getenv("PRESENT_CONFIDENCE", str(PRESENT_CONFIDENCE_THRESHOLD))
        )
        if not 0.0 <= present_confidence <= 100.0:
            raise ValueError(
                f"PRESENT_CONFIDENCE must be in [0, 100], got {present_confidence}"
            )

        confidence_cap = float(os.getenv("CONFIDENCE_CAP", str(CONFIDENCE_CAP)))
        if not 0.0 < confidence_cap <= 100.0:
            raise ValueError(f"CONFIDENCE_CAP must be in (0, 100], got {confidence_cap}")

        # Calendar day reference
        day_timezone = os.getenv("DAY_TIMEZONE", DEFAULT_DAY_TIMEZONE)
        try:
            ZoneInfo(day_timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"DAY_TIMEZONE is not a known time zone: {day_timezone}") from e

        default_subject = os.getenv("DEFAULT_SUBJECT", DEFAULT_SUBJECT).strip()
        if not default_subject:
            raise ValueError("DEFAULT_SUBJECT must not be blank")

        email_domain = os.getenv("EMAIL_DOMAIN", DEFAULT_EMAIL_DOMAIN).strip()
        if not email_domain:
            raise ValueError("EMAIL_DOMAIN must not be blank")

        # Logging configuration
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if log_level not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}, got {log_level}")

        return cls(
            thresh=thresh,
            present_confidence=present_confidence,
            confidence_cap=confidence_cap,
            day_timezone=day_timezone,
            default_subject=default_subject,
            email_domain=email_domain,
            log_level=log_level,
        )

    @property
    def tz(self) -> tzinfo:
        """Get the calendar-day reference zone."""
        return ZoneInfo(self.day_timezone)

    def __repr__(self) -> str:
        """Return string representation of config."""
        return (
            f"Config(\n"
            f"  Threshold: {self.thresh},\n"
            f"  Present Confidence: {self.present_confidence},\n"
            f"  Confidence Cap: {self.confidence_cap},\n"
            f"  Day Timezone: {self.day_timezone},\n"
            f"  Default Subject: {self.default_subject},\n"
            f"  Email Domain: {self.email_domain},\n"
            f"  Log Level: {self.log_level}\n"
            f")"
        )


# Global config instance (lazy-loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get global config instance (singleton pattern).

    Returns:
        Config instance loaded from environment.
    """
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config

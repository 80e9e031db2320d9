"""Summary: Timestamp normalization for imported calendar events.

Importance: Converts the basic UTC timestamps of the upload into the instants stored on appointments.
Alternatives: Trust the trailing Z and store the values unchanged.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from semesterplan.errors import TimestampParseError

DEFAULT_REFERENCE_TIMEZONE = "Europe/Berlin"

_BASIC_UTC_PATTERN = re.compile(r"^\d{8}T\d{6}Z$")
_BASIC_UTC_FORMAT = "%Y%m%dT%H%M%SZ"


class DaylightSavingRule(ABC):
    """Summary: Decides whether daylight saving is in effect at an instant.

    Importance: Keeps the reference region swappable for tests and other deployments.
    Alternatives: Hardcode a single timezone inside the normalizer.
    """

    @abstractmethod
    def is_dst(self, instant: datetime) -> bool:
        """Summary: Return True when the region observes daylight saving at the instant."""


class ZoneInfoDaylightSavingRule(DaylightSavingRule):
    """Summary: Daylight saving rule backed by the IANA timezone database."""

    def __init__(self, zone_name: str = DEFAULT_REFERENCE_TIMEZONE) -> None:
        try:
            self._zone = ZoneInfo(zone_name)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown reference timezone: {zone_name}") from exc
        self.zone_name = zone_name

    def is_dst(self, instant: datetime) -> bool:
        offset = instant.astimezone(self._zone).dst()
        return bool(offset)


class TimestampNormalizer:
    """Summary: Shifts basic UTC timestamps by the reference region's UTC offset.

    Importance: The uploaded files carry local wall-clock times labeled as UTC; the shift
    reproduces the instants existing consumers already rely on.
    Alternatives: Interpret the Z suffix literally.
    """

    def __init__(self, rule: DaylightSavingRule | None = None) -> None:
        self._rule = rule or ZoneInfoDaylightSavingRule()

    def normalize(self, value: str) -> datetime:
        """Summary: Parse a YYYYMMDDTHHMMSSZ string and apply the offset shift.

        Importance: Produces the start and end instants for each appointment.
        Alternatives: Use dateutil to accept any ISO-8601 variant.
        """

        if not isinstance(value, str) or not _BASIC_UTC_PATTERN.match(value):
            raise TimestampParseError(f"Unsupported timestamp: {value!r}")
        try:
            naive = datetime.strptime(value, _BASIC_UTC_FORMAT)
        except ValueError as exc:
            raise TimestampParseError(f"Invalid timestamp: {value!r}") from exc
        instant = naive.replace(tzinfo=timezone.utc)
        # Offset is +2h while the region observes DST, +1h otherwise.
        shift = timedelta(hours=2) if self._rule.is_dst(instant) else timedelta(hours=1)
        return instant + shift

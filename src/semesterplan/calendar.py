"""Summary: iCalendar parsing and grouping for semesterplan uploads.

Importance: Turns an uploaded .ics file into intervals keyed by reservation id.
Alternatives: Parse BEGIN/END blocks by hand without an iCalendar library.
"""

from __future__ import annotations

import logging

from icalendar import Calendar, Component

from semesterplan.errors import MalformedDocumentError, TimestampParseError
from semesterplan.models import ImportGroup, NormalizedInterval, SkippedEvent
from semesterplan.timestamps import TimestampNormalizer

DEFAULT_CORRELATION_PROPERTY = "X-RAPLA-ID"

logger = logging.getLogger(__name__)


class IcsImportParser:
    """Summary: Parses an iCalendar document and groups its events by correlation key.

    Importance: Isolates event-level defects so one bad VEVENT never drops the rest.
    Alternatives: Abort the whole upload on the first invalid event.
    """

    def __init__(
        self,
        normalizer: TimestampNormalizer | None = None,
        correlation_property: str = DEFAULT_CORRELATION_PROPERTY,
    ) -> None:
        self._normalizer = normalizer or TimestampNormalizer()
        self._correlation_property = correlation_property.upper()

    def parse_and_group(self, document: str | bytes) -> ImportGroup:
        """Summary: Parse the document and return intervals grouped by key.

        Importance: Only a document that is not iCalendar at all is fatal.
        Alternatives: Return parse errors alongside a partial calendar.
        """

        calendar = _load_calendar(document)
        group = ImportGroup()
        for index, event in enumerate(calendar.walk("VEVENT")):
            key = _property_text(event, self._correlation_property)
            start = _property_text(event, "DTSTART")
            end = _property_text(event, "DTEND")
            if not key:
                self._skip(group, index, f"missing {self._correlation_property}")
                continue
            group.intervals.setdefault(key, [])
            if start is None or end is None:
                missing = "DTSTART" if start is None else "DTEND"
                self._skip(group, index, f"missing {missing}", key)
                continue
            try:
                interval = NormalizedInterval(
                    start=self._normalizer.normalize(start),
                    end=self._normalizer.normalize(end),
                )
            except TimestampParseError as exc:
                self._skip(group, index, str(exc), key)
                continue
            group.add(key, interval)
        logger.info(
            "Parsed %s reservation groups from iCalendar (%s events skipped).",
            len(group),
            len(group.skipped),
        )
        return group

    def _skip(self, group: ImportGroup, index: int, reason: str, key: str | None = None) -> None:
        logger.warning("Skipping VEVENT #%s (%s): %s", index, key or "no id", reason)
        group.skipped.append(SkippedEvent(index=index, reason=reason, correlation_key=key))


def _load_calendar(document: str | bytes) -> Calendar:
    """Summary: Load raw upload content into an icalendar Calendar.

    Importance: Maps every syntax-level failure onto MalformedDocumentError.
    Alternatives: Let icalendar's ValueError escape to the caller.
    """

    if isinstance(document, bytes):
        try:
            document = document.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedDocumentError("Upload is not UTF-8 encoded text") from exc
    if not document.strip():
        raise MalformedDocumentError("Upload is empty")
    try:
        calendar = Calendar.from_ical(document)
    except ValueError as exc:
        raise MalformedDocumentError(f"Not an iCalendar document: {exc}") from exc
    if calendar.name != "VCALENDAR":
        raise MalformedDocumentError(f"Expected VCALENDAR, found {calendar.name}")
    return calendar


def _property_text(event: Component, name: str) -> str | None:
    """Summary: Return a property's value as its raw iCalendar text."""

    value = event.get(name)
    if value is None:
        return None
    if isinstance(value, list):
        value = value[0]
    if isinstance(value, str):
        return str(value).strip()
    raw = value.to_ical()
    return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)

"""Summary: Tests for iCalendar parsing and grouping.

Importance: Ensures uploads are grouped by reservation id in document order.
Alternatives: Test grouping only through the import service.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from semesterplan.calendar import IcsImportParser
from semesterplan.errors import MalformedDocumentError


def _event(start: str, end: str, key: str | None) -> str:
    lines = ["BEGIN:VEVENT", f"DTSTART:{start}", f"DTEND:{end}"]
    if key is not None:
        lines.append(f"X-RAPLA-ID:{key}")
    lines.append("END:VEVENT")
    return "\n".join(lines)


def _calendar(*events: str) -> str:
    return "\n".join(["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//test//EN", *events, "END:VCALENDAR"])


def test_events_with_same_key_are_grouped_in_order() -> None:
    """Summary: Two events tagged with the same id form one group.

    Importance: Mirrors a course with several sessions in one upload.
    Alternatives: Create one reservation per event.
    """

    document = _calendar(
        _event("20210702T120000Z", "20210702T130000Z", "1"),
        _event("20210703T120000Z", "20210703T130000Z", "1"),
    )
    group = IcsImportParser().parse_and_group(document)
    assert group.keys() == ["1"]
    intervals = group.intervals["1"]
    assert len(intervals) == 2
    assert intervals[0].start == datetime(2021, 7, 2, 14, 0, tzinfo=timezone.utc)
    assert intervals[0].end == datetime(2021, 7, 2, 15, 0, tzinfo=timezone.utc)
    assert intervals[1].start == datetime(2021, 7, 3, 14, 0, tzinfo=timezone.utc)
    assert group.skipped == []


def test_keys_keep_first_seen_order() -> None:
    document = _calendar(
        _event("20210104T080000Z", "20210104T093000Z", "b"),
        _event("20210105T080000Z", "20210105T093000Z", "a"),
        _event("20210106T080000Z", "20210106T093000Z", "b"),
    )
    group = IcsImportParser().parse_and_group(document)
    assert group.keys() == ["b", "a"]
    assert len(group) == 2
    assert [interval.start.day for interval in group.intervals["b"]] == [4, 6]


def test_invalid_timestamp_skips_only_that_event() -> None:
    """Summary: A broken DTSTART drops one event, not the document.

    Importance: Keeps partially broken exports importable.
    Alternatives: Reject the whole upload.
    """

    document = _calendar(
        _event("invalid_date", "20210702T130000Z", "1"),
        _event("20210703T120000Z", "20210703T130000Z", "1"),
        _event("20210704T120000Z", "20210704T130000Z", "2"),
    )
    group = IcsImportParser().parse_and_group(document)
    assert group.keys() == ["1", "2"]
    assert len(group.intervals["1"]) == 1
    assert len(group.skipped) == 1
    assert group.skipped[0].index == 0


def test_event_with_only_invalid_timestamps_keeps_an_empty_group() -> None:
    """Summary: A key whose events all fail still reaches the reconciler.

    Importance: The reservation is cleared instead of keeping stale appointments.
    Alternatives: Drop keys that end up without intervals.
    """

    document = _calendar(_event("20210702T120000", "20210702T130000", "7"))
    group = IcsImportParser().parse_and_group(document)
    assert group.keys() == ["7"]
    assert group.intervals["7"] == []
    assert group.skipped[0].correlation_key == "7"


def test_event_without_correlation_key_is_skipped() -> None:
    document = _calendar(
        _event("20210702T120000Z", "20210702T130000Z", None),
        _event("20210703T120000Z", "20210703T130000Z", "3"),
    )
    group = IcsImportParser().parse_and_group(document)
    assert group.keys() == ["3"]
    assert "X-RAPLA-ID" in group.skipped[0].reason


def test_event_without_end_is_skipped() -> None:
    document = _calendar(
        "BEGIN:VEVENT\nDTSTART:20210702T120000Z\nX-RAPLA-ID:4\nEND:VEVENT",
    )
    group = IcsImportParser().parse_and_group(document)
    assert group.intervals == {"4": []}
    assert group.skipped[0].reason == "missing DTEND"


def test_empty_calendar_yields_empty_group() -> None:
    group = IcsImportParser().parse_and_group("BEGIN:VCALENDAR\nEND:VCALENDAR")
    assert len(group) == 0
    assert group.skipped == []


def test_bytes_with_crlf_and_bom_are_accepted() -> None:
    document = _calendar(_event("20210102T120000Z", "20210102T133000Z", "9"))
    raw = ("\ufeff" + document.replace("\n", "\r\n")).encode("utf-8")
    group = IcsImportParser().parse_and_group(raw)
    assert group.intervals["9"][0].start == datetime(2021, 1, 2, 13, 0, tzinfo=timezone.utc)


def test_custom_correlation_property() -> None:
    document = _calendar(
        "BEGIN:VEVENT\nDTSTART:20210102T120000Z\nDTEND:20210102T130000Z\n"
        "X-COURSE-ID:c-1\nEND:VEVENT"
    )
    group = IcsImportParser(correlation_property="X-COURSE-ID").parse_and_group(document)
    assert group.keys() == ["c-1"]


@pytest.mark.parametrize(
    "document",
    ["INVALID ICS CONTENT", "", "   \n", b"\xff\xfe\x00garbage"],
)
def test_non_calendar_documents_are_malformed(document: str | bytes) -> None:
    """Summary: Content that is not iCalendar at all is fatal.

    Importance: Separates unreadable uploads from skippable event defects.
    Alternatives: Treat unreadable uploads as empty calendars.
    """

    with pytest.raises(MalformedDocumentError):
        IcsImportParser().parse_and_group(document)

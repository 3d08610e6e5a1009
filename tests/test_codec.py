"""
test_codec.py
-------------
Unit tests for icsjournal.codec.

Tests VJOURNAL parsing/serialization, tolerant error handling and
preservation of foreign components.
"""
from datetime import datetime, timedelta, timezone

from icsjournal import codec
from icsjournal.models import Entry

MIXED_CALENDAR = "\r\n".join([
    "BEGIN:VCALENDAR",
    "VERSION:2.0",
    "PRODID:-//Other//Other//EN",
    "BEGIN:VEVENT",
    "UID:event-1@example.com",
    "DTSTAMP:20240101T000000Z",
    "DTSTART:20240101T100000",
    "SUMMARY:Meeting",
    "END:VEVENT",
    "BEGIN:VJOURNAL",
    "UID:journal-1@example.com",
    "DTSTAMP:20240101T000000Z",
    "DTSTART;VALUE=DATE:20240102",
    "SUMMARY:Thoughts",
    "CATEGORIES:work,Travel",
    "END:VJOURNAL",
    "END:VCALENDAR",
    "",
])


class TestRoundTrip:
    """Test serialize followed by parse."""

    def test_full_entry_round_trips(self, full_entry):
        """Every field survives a round trip."""
        parsed = codec.parse(codec.serialize([full_entry]))
        assert parsed == [full_entry]

    def test_fixed_offset_times_round_trip(self, make_entry):
        """Times with a plain UTC offset keep their absolute instant."""
        plus_two = timezone(timedelta(hours=2))
        entry = make_entry(
            datetime(2024, 3, 15, 9, 30, tzinfo=plus_two),
            created=datetime(2024, 3, 15, 9, 0, tzinfo=plus_two),
            last_modified=datetime(2024, 3, 15, 10, 0, tzinfo=timezone(timedelta(hours=-5))),
        )
        parsed = codec.parse(codec.serialize([entry]))
        assert parsed == [entry]
        assert parsed[0].start.utcoffset() == timedelta(0)
        assert parsed[0].start == datetime(2024, 3, 15, 7, 30, tzinfo=timezone.utc)

    def test_multiple_entries_keep_order(self, make_entry):
        """Entries come back in the order they were written."""
        entries = [make_entry(summary="one"), make_entry(summary="two")]
        parsed = codec.parse(codec.serialize(entries))
        assert [e.summary for e in parsed] == ["one", "two"]

    def test_empty_list_serializes_to_empty_calendar(self):
        """No entries still produces a valid calendar container."""
        text = codec.serialize([])
        assert "BEGIN:VCALENDAR" in text
        assert codec.parse(text) == []

    def test_serialized_text_is_vjournal(self, make_entry):
        """Entries are written as VJOURNAL components."""
        text = codec.serialize([make_entry()])
        assert "BEGIN:VJOURNAL" in text
        assert "DTSTART:20240315T093000" in text


class TestParse:
    """Test parsing of foreign and malformed input."""

    def test_empty_text(self):
        """Blank input yields no entries and no errors."""
        result = codec.parse_calendar("   \n")
        assert result.entries == []
        assert result.errors == []

    def test_garbage_is_reported_not_raised(self):
        """Unreadable text becomes a single parse error."""
        result = codec.parse_calendar("garbage without any structure", source="x.ics")
        assert result.entries == []
        assert len(result.errors) == 1
        assert result.errors[0].source == "x.ics"

    def test_foreign_components_preserved(self):
        """VEVENTs are kept aside and written back out."""
        result = codec.parse_calendar(MIXED_CALENDAR)
        assert [e.uid for e in result.entries] == ["journal-1@example.com"]
        assert [c.name for c in result.others] == ["VEVENT"]
        text = codec.serialize(result.entries, result.others)
        assert "BEGIN:VEVENT" in text
        assert "event-1@example.com" in text

    def test_date_only_start_is_midnight(self):
        """DTSTART given as a DATE becomes midnight of that day."""
        entry = codec.parse(MIXED_CALENDAR)[0]
        assert entry.start == datetime(2024, 1, 2, 0, 0)

    def test_categories_joined(self):
        """Category lists are normalized to a comma-separated string."""
        entry = codec.parse(MIXED_CALENDAR)[0]
        assert entry.categories == "work, Travel"
        assert entry.category_list() == ["work", "Travel"]

    def test_missing_optional_fields_default(self):
        """Absent properties map to empty values."""
        entry = codec.parse(MIXED_CALENDAR)[0]
        assert entry.description == ""
        assert entry.sequence == 0
        assert entry.attachments == []
        assert entry.last_modified is None

    def test_external_attachment_dropped_with_error(self):
        """Attachments that are only URLs are reported and skipped."""
        text = MIXED_CALENDAR.replace(
            "SUMMARY:Thoughts", "SUMMARY:Thoughts\r\nATTACH:http://example.com/a.png"
        )
        result = codec.parse_calendar(text)
        assert len(result.entries) == 1
        assert result.entries[0].attachments == []
        assert len(result.errors) == 1

    def test_strict_rejects_undated_entry(self):
        """Strict parsing skips records without a start date."""
        text = MIXED_CALENDAR.replace("DTSTART;VALUE=DATE:20240102\r\n", "")
        assert len(codec.parse_calendar(text).entries) == 1
        strict = codec.parse_calendar(text, strict=True)
        assert strict.entries == []
        assert len(strict.errors) == 1

    def test_missing_uid_gets_one(self):
        """Records without a UID are given a fresh one."""
        text = MIXED_CALENDAR.replace("UID:journal-1@example.com\r\n", "")
        entry = codec.parse(text)[0]
        assert entry.uid.startswith("icsjournal-")


class TestEntryModel:
    """Test Entry helpers used by the codec."""

    def test_file_key_not_part_of_equality(self, make_entry):
        """Entries compare equal regardless of where they are stored."""
        a = make_entry(uid="same")
        b = make_entry(uid="same")
        a.file_key = "20240315.ics"
        assert a == b

    def test_filing_date(self):
        """The filing date is the calendar day of the start."""
        entry = Entry(uid="x", start=datetime(2024, 3, 15, 23, 59))
        assert str(entry.filing_date) == "2024-03-15"
        assert Entry(uid="y").filing_date is None

"""Unit tests for the Calendar aggregate."""
from datetime import datetime
from unittest.mock import Mock

import pytest

from processor.event_builder import build_event_record
from processor.exceptions import ExportError, ValidationError
from processor.ical_calendar import Calendar


class UppercaseAdapter:
    """Adapter turning simple dicts into records, skipping empty ones."""

    def adapt(self, external_event):
        if not external_event:
            return None
        return build_event_record(
            uid=external_event['id'],
            summary=external_event['title'].upper()
        )


class TestCalendar:
    """Test cases for Calendar class."""

    def test_from_events_uses_adapter(self):
        """Test that provider events are adapted in input order."""
        calendar = Calendar.from_events(
            [{'id': 'a', 'title': 'first'}, {'id': 'b', 'title': 'second'}],
            UppercaseAdapter()
        )

        assert len(calendar) == 2
        assert [event.summary for event in calendar] == ['FIRST', 'SECOND']

    def test_from_events_skips_none(self):
        """Test that events the adapter declines are skipped."""
        calendar = Calendar.from_events(
            [{}, {'id': 'a', 'title': 'kept'}, None],
            UppercaseAdapter()
        )

        assert [event.uid for event in calendar] == ['a']

    def test_from_events_empty_source(self):
        """Test that a missing event list yields an empty calendar."""
        assert len(Calendar.from_events(None, UppercaseAdapter())) == 0

    def test_from_events_rejects_non_records(self):
        """Test that an adapter breaking its contract is reported."""
        adapter = Mock()
        adapter.adapt.return_value = {'uid': 'x'}

        with pytest.raises(ValidationError) as exc_info:
            Calendar.from_events([object()], adapter)

        assert exc_info.value.field == 'event'

    def test_adapter_validation_error_propagates(self):
        """Test that invalid adapted events are not silently dropped."""
        adapter = Mock()
        adapter.adapt.side_effect = ValidationError('end', 'end without start')

        with pytest.raises(ValidationError):
            Calendar.from_events([{'id': 'a'}], adapter)

    def test_events_returns_copy(self):
        """Test that the events list cannot be mutated from outside."""
        calendar = Calendar([build_event_record(uid='a')])

        calendar.events.clear()

        assert len(calendar) == 1

    def test_to_ical_text_end_to_end(self):
        """Test the standup scenario through the Calendar API."""
        calendar = Calendar()
        calendar.add_event(build_event_record(
            uid='e1',
            summary='Standup',
            start=datetime(2025, 7, 29, 9, 0, 0),
            end=datetime(2025, 7, 29, 9, 15, 0)
        ))

        text = calendar.to_ical_text(clock=lambda: datetime(2025, 7, 29, 8, 0, 0))

        assert text.startswith('BEGIN:VCALENDAR\r\nVERSION:2.0\r\n')
        assert text.endswith('END:VCALENDAR\r\n')
        assert text.count('BEGIN:VEVENT') == 1
        assert 'UID:e1\r\n' in text
        assert 'DTSTART:20250729T090000\r\n' in text
        assert 'DTEND:20250729T091500\r\n' in text
        assert 'DTSTAMP:20250729T080000\r\n' in text
        assert 'STATUS:CONFIRMED\r\n' in text
        assert 'TRANSP:OPAQUE\r\n' in text
        assert 'CLASS:PUBLIC\r\n' in text
        assert 'ATTENDEE' not in text
        assert 'CATEGORIES' not in text
        assert 'RRULE' not in text

    def test_write_to_hands_utf8_bytes_to_writer(self):
        """Test that write_to encodes the document and delegates writing."""
        calendar = Calendar([build_event_record(uid='e1', summary='Café')])
        writer = Mock()
        writer.write.return_value = '/exports/cal.ics'

        location = calendar.write_to('/exports/cal.ics', writer=writer)

        assert location == '/exports/cal.ics'
        written_location, data = writer.write.call_args[0]
        assert written_location == '/exports/cal.ics'
        assert isinstance(data, bytes)
        assert 'SUMMARY:Café'.encode('utf-8') in data

    def test_write_to_local_file(self, tmp_path):
        """Test writing to a local path with the default writer."""
        calendar = Calendar([build_event_record(uid='e1', summary='Standup')])
        target = tmp_path / 'nested' / 'calendar.ics'

        location = calendar.write_to(str(target))

        assert location == str(target)
        content = target.read_bytes()
        assert content.startswith(b'BEGIN:VCALENDAR\r\n')
        assert b'SUMMARY:Standup\r\n' in content

    def test_write_to_propagates_export_error(self):
        """Test that writer failures surface as ExportError."""
        calendar = Calendar()
        writer = Mock()
        writer.write.side_effect = ExportError('/nope/cal.ics', 'Permission denied')

        with pytest.raises(ExportError):
            calendar.write_to('/nope/cal.ics', writer=writer)

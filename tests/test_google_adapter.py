"""Unit tests for GoogleEventAdapter."""
from datetime import datetime, timedelta, timezone

import pytest

from processor.exceptions import ValidationError
from processor.models import Classification, EventStatus, Transparency
from sources.google_adapter import GoogleEventAdapter, html_to_text

UTC = timezone.utc


@pytest.fixture
def adapter():
    """Create an adapter converting timed events to UTC."""
    return GoogleEventAdapter(tz=UTC)


@pytest.fixture
def google_event():
    """Create a fully populated Google Calendar event resource."""
    return {
        'id': 'abc123',
        'status': 'tentative',
        'htmlLink': 'https://www.google.com/calendar/event?eid=abc123',
        'created': '2025-07-01T10:00:00.000Z',
        'updated': '2025-07-02T11:30:00.000Z',
        'summary': 'Design review',
        'description': 'Agenda, notes; links',
        'location': 'Room 4',
        'organizer': {'email': 'lead@example.com', 'displayName': 'Lead'},
        'start': {'dateTime': '2025-07-29T11:00:00+02:00', 'timeZone': 'Europe/Berlin'},
        'end': {'dateTime': '2025-07-29T12:00:00+02:00', 'timeZone': 'Europe/Berlin'},
        'recurrence': ['EXDATE;TZID=Europe/Berlin:20250805T110000',
                       'RRULE:FREQ=WEEKLY;BYDAY=TU'],
        'transparency': 'transparent',
        'visibility': 'private',
        'attendees': [
            {'email': 'ann@example.com', 'displayName': 'Ann', 'responseStatus': 'accepted'},
            {'email': 'bob@example.com', 'responseStatus': 'needsAction'},
            {'displayName': 'Room without email'},
            {'email': 'cy@example.com'},
        ],
        'reminders': {
            'useDefault': False,
            'overrides': [
                {'method': 'email', 'minutes': 60},
                {'method': 'popup', 'minutes': 10},
            ]
        }
    }


class TestGoogleEventAdapter:
    """Test cases for GoogleEventAdapter class."""

    def test_adapt_full_event(self, adapter, google_event):
        """Test mapping of every supported Google field."""
        record = adapter.adapt(google_event)

        assert record.uid == 'abc123'
        assert record.summary == 'Design review'
        assert record.description == 'Agenda, notes; links'
        assert record.location == 'Room 4'
        assert record.start == datetime(2025, 7, 29, 9, 0)
        assert record.end == datetime(2025, 7, 29, 10, 0)
        assert record.created == datetime(2025, 7, 1, 10, 0)
        assert record.last_modified == datetime(2025, 7, 2, 11, 30)
        assert record.organizer == 'CN=Lead:MAILTO:lead@example.com'
        assert record.attendees == (
            'CN=Ann:MAILTO:ann@example.com;PARTSTAT=ACCEPTED',
            'MAILTO:bob@example.com;PARTSTAT=NEEDS-ACTION',
            'MAILTO:cy@example.com',
        )
        assert record.status == EventStatus.TENTATIVE
        assert record.transparency == Transparency.TRANSPARENT
        assert record.classification == Classification.PRIVATE
        assert record.url == 'https://www.google.com/calendar/event?eid=abc123'
        assert record.recurrence_rule == 'FREQ=WEEKLY;BYDAY=TU'
        assert record.alarm_minutes_before == 10

    def test_adapt_minimal_event(self, adapter):
        """Test defaults for an event carrying only an id."""
        record = adapter.adapt({'id': 'min'})

        assert record.uid == 'min'
        assert record.start is None
        assert record.end is None
        assert record.status == EventStatus.CONFIRMED
        assert record.transparency == Transparency.OPAQUE
        assert record.classification == Classification.PUBLIC
        assert record.attendees == ()
        assert record.alarm_minutes_before is None

    def test_adapt_none_returns_none(self, adapter):
        """Test that a missing event is skipped."""
        assert adapter.adapt(None) is None

    def test_missing_id_generates_uid(self, adapter):
        """Test that events without an id still get a uid."""
        record = adapter.adapt({'summary': 'No id'})

        assert record.uid

    def test_all_day_event(self, adapter):
        """Test that all-day dates become midnight timestamps."""
        record = adapter.adapt({
            'id': 'allday',
            'start': {'date': '2025-07-29'},
            'end': {'date': '2025-07-30'}
        })

        assert record.start == datetime(2025, 7, 29, 0, 0)
        assert record.end == datetime(2025, 7, 30, 0, 0)

    def test_converts_to_target_zone(self):
        """Test that timed events are shifted into the configured zone."""
        adapter = GoogleEventAdapter(tz=timezone(timedelta(hours=-4)))

        record = adapter.adapt({
            'id': 'tz',
            'start': {'dateTime': '2025-07-29T13:00:00Z'},
        })

        assert record.start == datetime(2025, 7, 29, 9, 0)
        assert record.start.tzinfo is None

    @pytest.mark.parametrize('google_status,expected', [
        ('confirmed', EventStatus.CONFIRMED),
        ('CANCELLED', EventStatus.CANCELLED),
        ('unknown', EventStatus.CONFIRMED),
    ])
    def test_status_mapping(self, adapter, google_status, expected):
        """Test Google status to STATUS mapping."""
        assert adapter.adapt({'id': 'x', 'status': google_status}).status == expected

    @pytest.mark.parametrize('visibility,expected', [
        ('public', Classification.PUBLIC),
        ('confidential', Classification.CONFIDENTIAL),
        ('default', Classification.PUBLIC),
    ])
    def test_visibility_mapping(self, adapter, visibility, expected):
        """Test Google visibility to CLASS mapping."""
        record = adapter.adapt({'id': 'x', 'visibility': visibility})

        assert record.classification == expected

    @pytest.mark.parametrize('response_status,expected', [
        ('declined', 'DECLINED'),
        ('tentative', 'TENTATIVE'),
        ('something', 'NEEDS-ACTION'),
    ])
    def test_response_status_mapping(self, adapter, response_status, expected):
        """Test attendee responseStatus to PARTSTAT mapping."""
        record = adapter.adapt({
            'id': 'x',
            'attendees': [{'email': 'a@example.com', 'responseStatus': response_status}]
        })

        assert record.attendees == (f'MAILTO:a@example.com;PARTSTAT={expected}',)

    def test_organizer_without_email_ignored(self, adapter):
        """Test that an organizer with no email is not emitted."""
        record = adapter.adapt({'id': 'x', 'organizer': {'displayName': 'Ghost'}})

        assert record.organizer is None

    def test_no_popup_reminder_means_no_alarm(self, adapter):
        """Test that only popup reminders become alarms."""
        record = adapter.adapt({
            'id': 'x',
            'reminders': {'overrides': [{'method': 'email', 'minutes': 30}]}
        })

        assert record.alarm_minutes_before is None

    def test_recurrence_without_rrule(self, adapter):
        """Test that non-RRULE recurrence lines are ignored."""
        record = adapter.adapt({'id': 'x', 'recurrence': ['RDATE:20250801T090000']})

        assert record.recurrence_rule is None

    def test_end_without_start_rejected(self, adapter):
        """Test that invalid provider data is reported, not dropped."""
        with pytest.raises(ValidationError) as exc_info:
            adapter.adapt({'id': 'x', 'end': {'dateTime': '2025-07-29T10:00:00Z'}})

        assert exc_info.value.field == 'end'

    def test_html_description_flattened(self, adapter):
        """Test that HTML descriptions are converted to plain text."""
        record = adapter.adapt({
            'id': 'x',
            'description': 'Join <a href="https://meet.example.com">here</a><br>Bring notes'
        })

        assert record.description == 'Join here\nBring notes'


class TestHtmlToText:
    """Test cases for html_to_text helper."""

    def test_plain_text_unchanged(self):
        """Test that plain text keeps its own line breaks."""
        assert html_to_text('Line one\nLine two') == 'Line one\nLine two'

    def test_empty_values(self):
        """Test None and empty strings pass through."""
        assert html_to_text(None) is None
        assert html_to_text('') == ''

    def test_paragraphs_and_entities(self):
        """Test block elements become lines and entities are decoded."""
        text = html_to_text('<p>Fish &amp; chips</p><p>At noon</p>')

        assert text == 'Fish & chips\nAt noon'

"""Adapter mapping Google Calendar event resources to EventRecord."""
import logging
from datetime import datetime, tzinfo
from typing import Any, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup

from processor.event_builder import EventRecordBuilder
from processor.ical_serializer import format_address
from processor.models import (
    Classification,
    EventRecord,
    EventStatus,
    ParticipationStatus,
)

logger = logging.getLogger(__name__)

STATUS_MAP = {
    'confirmed': EventStatus.CONFIRMED,
    'tentative': EventStatus.TENTATIVE,
    'cancelled': EventStatus.CANCELLED,
}

RESPONSE_STATUS_MAP = {
    'accepted': ParticipationStatus.ACCEPTED,
    'declined': ParticipationStatus.DECLINED,
    'tentative': ParticipationStatus.TENTATIVE,
    'needsaction': ParticipationStatus.NEEDS_ACTION,
}

VISIBILITY_MAP = {
    'public': Classification.PUBLIC,
    'private': Classification.PRIVATE,
    'confidential': Classification.CONFIDENTIAL,
}

RRULE_PREFIX = 'RRULE:'


class GoogleEventAdapter:
    """Converts Google Calendar API event dicts into event records."""

    def __init__(self, tz: Optional[Union[str, tzinfo]] = None):
        """
        Initialize the adapter.

        Args:
            tz: Zone that timed events are converted into before being
                stored as floating local time (default: system local zone)
        """
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def adapt(self, google_event: Optional[Dict[str, Any]]) -> Optional[EventRecord]:
        """
        Convert one Google event resource.

        Args:
            google_event: Event resource as returned by events.list

        Returns:
            EventRecord, or None when no event is given

        Raises:
            ValidationError: If the mapped event violates record invariants
        """
        if not google_event:
            return None

        builder = EventRecordBuilder()

        if google_event.get('id'):
            builder.set_uid(google_event['id'])
        builder.set_summary(google_event.get('summary'))
        builder.set_description(html_to_text(google_event.get('description')))
        builder.set_location(google_event.get('location'))

        builder.set_start(self._event_datetime(google_event.get('start')))
        builder.set_end(self._event_datetime(google_event.get('end')))
        if google_event.get('created'):
            builder.set_created(self._parse_timestamp(google_event['created']))
        if google_event.get('updated'):
            builder.set_last_modified(self._parse_timestamp(google_event['updated']))

        organizer = google_event.get('organizer') or {}
        if organizer.get('email'):
            builder.set_organizer(
                format_address(organizer['email'], organizer.get('displayName'))
            )

        builder.set_attendees(self._attendees(google_event.get('attendees') or []))

        status = (google_event.get('status') or '').lower()
        builder.set_status(STATUS_MAP.get(status, EventStatus.CONFIRMED))

        if google_event.get('transparency'):
            builder.set_transparency(google_event['transparency'].upper())

        if google_event.get('visibility'):
            builder.set_classification(
                VISIBILITY_MAP.get(google_event['visibility'].lower(), Classification.PUBLIC)
            )

        if google_event.get('htmlLink'):
            builder.set_url(google_event['htmlLink'])

        for rule in google_event.get('recurrence') or []:
            if rule.startswith(RRULE_PREFIX):
                builder.set_recurrence_rule(rule[len(RRULE_PREFIX):])
                break

        reminders = google_event.get('reminders') or {}
        for reminder in reminders.get('overrides') or []:
            if reminder.get('method') == 'popup':
                builder.set_alarm_minutes_before(reminder.get('minutes'))
                break

        return builder.build()

    def _attendees(self, attendees: List[Dict[str, Any]]) -> List[str]:
        """Format attendees, skipping entries without an email address."""
        formatted = []
        for attendee in attendees:
            email = attendee.get('email')
            if not email:
                logger.debug("Skipping attendee without email")
                continue

            partstat = None
            if attendee.get('responseStatus'):
                partstat = RESPONSE_STATUS_MAP.get(
                    attendee['responseStatus'].lower(), ParticipationStatus.NEEDS_ACTION
                )
            formatted.append(format_address(email, attendee.get('displayName'), partstat))
        return formatted

    def _event_datetime(self, value: Optional[Dict[str, str]]) -> Optional[datetime]:
        """Convert a Google EventDateTime (timed or all-day) to local time."""
        if not value:
            return None
        if value.get('dateTime'):
            return self._parse_timestamp(value['dateTime'])
        if value.get('date'):
            return datetime.strptime(value['date'], '%Y-%m-%d')
        return None

    def _parse_timestamp(self, value: str) -> datetime:
        """Parse an RFC 3339 timestamp into a naive datetime in the target zone."""
        if value.endswith('Z'):
            value = value[:-1] + '+00:00'
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            return parsed
        return parsed.astimezone(self.tz).replace(tzinfo=None)


def html_to_text(description: Optional[str]) -> Optional[str]:
    """
    Flatten an HTML event description to plain text.

    Google stores descriptions edited in its web UI as HTML. Plain-text
    descriptions are returned unchanged.
    """
    if not description:
        return description

    soup = BeautifulSoup(description, 'html.parser')
    if soup.find() is None:
        return description

    for br in soup.find_all('br'):
        br.replace_with('\n')
    for block in soup.find_all(['p', 'div', 'li']):
        block.append('\n')

    return soup.get_text().strip()

"""Serialization of event records into RFC 5545 iCalendar text."""
import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Union

from processor.exceptions import SerializationError
from processor.models import EventRecord, ParticipationStatus

logger = logging.getLogger(__name__)

CRLF = '\r\n'
PRODUCT_ID = '-//gcal-ical-export//iCal Exporter//EN'
ICAL_DATETIME_FORMAT = '%Y%m%dT%H%M%S'

MAX_LINE_OCTETS = 75
# A continuation line starts with one space, leaving 74 octets of content.
MAX_CONTINUATION_OCTETS = MAX_LINE_OCTETS - 1


def escape_text(text: str) -> str:
    """
    Escape a TEXT property value.

    Backslashes are escaped first so that the escapes added for commas,
    semicolons and newlines are not escaped again. Carriage returns are
    dropped.
    """
    return (
        text.replace('\\', '\\\\')
        .replace(',', '\\,')
        .replace(';', '\\;')
        .replace('\n', '\\n')
        .replace('\r', '')
    )


def strip_line_breaks(value: str) -> str:
    """Remove CR and LF from a value emitted without TEXT escaping."""
    return value.replace('\r', '').replace('\n', '')


def format_datetime(value: datetime) -> str:
    """Format a timestamp as floating local time, e.g. 20250729T090000."""
    return value.strftime(ICAL_DATETIME_FORMAT)


def format_address(
    email: str,
    name: Optional[str] = None,
    partstat: Optional[Union[ParticipationStatus, str]] = None
) -> str:
    """
    Format an ORGANIZER or ATTENDEE value.

    Args:
        email: Mail address
        name: Display name, if known
        partstat: Participation status for attendees, if known

    Returns:
        ``MAILTO:<email>`` or ``CN=<name>:MAILTO:<email>``, optionally
        followed by ``;PARTSTAT=<status>``
    """
    value = f"CN={name}:MAILTO:{email}" if name else f"MAILTO:{email}"
    if partstat:
        status = partstat.value if isinstance(partstat, ParticipationStatus) else partstat
        value += f";PARTSTAT={status}"
    return value


def _fold_line(line: str) -> List[str]:
    """Split one content line into physical lines of at most 75 octets."""
    if len(line.encode('utf-8')) <= MAX_LINE_OCTETS:
        return [line]

    segments = []
    current = []
    current_octets = 0
    limit = MAX_LINE_OCTETS

    for char in line:
        char_octets = len(char.encode('utf-8'))
        if current_octets + char_octets > limit:
            segments.append(''.join(current))
            current = []
            current_octets = 0
            limit = MAX_CONTINUATION_OCTETS
        current.append(char)
        current_octets += char_octets

    if current:
        segments.append(''.join(current))

    return [segments[0]] + [' ' + segment for segment in segments[1:]]


def fold_lines(text: str) -> str:
    """
    Fold every CRLF-delimited content line of a document.

    Folding counts UTF-8 octets and never splits a multi-byte character.
    The result always ends with CRLF.
    """
    lines = text.split(CRLF)
    if lines and lines[-1] == '':
        lines.pop()

    physical_lines = []
    for line in lines:
        physical_lines.extend(_fold_line(line))

    return ''.join(physical_line + CRLF for physical_line in physical_lines)


class CalendarSerializer:
    """Renders event records as a VCALENDAR document."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the serializer.

        Args:
            clock: Callable returning the current time, used for DTSTAMP
        """
        self.clock = clock

    def serialize(self, events: Iterable[EventRecord]) -> str:
        """
        Render events as a folded iCalendar document.

        Args:
            events: Event records in emission order

        Returns:
            The complete VCALENDAR text with CRLF line endings

        Raises:
            SerializationError: If a record fails the pre-emission check
        """
        dtstamp = format_datetime(self.clock())
        lines = [
            'BEGIN:VCALENDAR',
            'VERSION:2.0',
            f'PRODID:{PRODUCT_ID}',
        ]

        count = 0
        for index, event in enumerate(events):
            self._check_event(index, event)
            lines.extend(self._event_lines(event, dtstamp))
            count += 1

        lines.append('END:VCALENDAR')
        logger.debug(f"Serialized {count} events to iCalendar")

        return fold_lines(CRLF.join(lines) + CRLF)

    def _check_event(self, index: int, event) -> None:
        """Re-check record invariants right before emission."""
        if not isinstance(event, EventRecord):
            raise SerializationError(
                index, getattr(event, 'uid', None), 'event',
                f'expected EventRecord, got {type(event).__name__}'
            )

        violations = event.validate()
        if violations:
            field_name, message = violations[0]
            raise SerializationError(index, event.uid, field_name, message)

    def _event_lines(self, event: EventRecord, dtstamp: str) -> List[str]:
        """Build the unfolded content lines of one VEVENT block."""
        lines = ['BEGIN:VEVENT', f'UID:{strip_line_breaks(event.uid)}']

        if event.start is not None:
            lines.append(f'DTSTART:{format_datetime(event.start)}')
        if event.end is not None:
            lines.append(f'DTEND:{format_datetime(event.end)}')
        lines.append(f'DTSTAMP:{dtstamp}')

        _append_text(lines, 'SUMMARY', event.summary)
        _append_text(lines, 'DESCRIPTION', event.description)
        _append_text(lines, 'LOCATION', event.location)
        _append_raw(lines, 'ORGANIZER', event.organizer)

        if event.created is not None:
            lines.append(f'CREATED:{format_datetime(event.created)}')
        if event.last_modified is not None:
            lines.append(f'LAST-MODIFIED:{format_datetime(event.last_modified)}')

        lines.append(f'STATUS:{event.status.value}')
        lines.append(f'TRANSP:{event.transparency.value}')
        lines.append(f'CLASS:{event.classification.value}')
        if event.priority > 0:
            lines.append(f'PRIORITY:{event.priority}')

        _append_raw(lines, 'RRULE', event.recurrence_rule)
        _append_raw(lines, 'URL', event.url)
        _append_text(lines, 'COMMENT', event.comment)
        _append_text(lines, 'CONTACT', event.contact)

        for attendee in event.attendees:
            _append_raw(lines, 'ATTENDEE', attendee)

        categories = [strip_line_breaks(category) for category in event.categories]
        categories = [category for category in categories if category]
        if categories:
            lines.append(f"CATEGORIES:{','.join(categories)}")

        for rdate in event.recurrence_dates:
            lines.append(f'RDATE:{format_datetime(rdate)}')
        for exdate in event.exception_dates:
            lines.append(f'EXDATE:{format_datetime(exdate)}')

        if event.has_alarm:
            lines.extend([
                'BEGIN:VALARM',
                f'TRIGGER:-PT{event.alarm_minutes_before}M',
                'ACTION:DISPLAY',
                'DESCRIPTION:Reminder',
                'END:VALARM',
            ])

        lines.append('END:VEVENT')
        return lines


def _append_text(lines: List[str], name: str, value: Optional[str]) -> None:
    escaped = escape_text(value) if value else ''
    if escaped:
        lines.append(f'{name}:{escaped}')


def _append_raw(lines: List[str], name: str, value: Optional[str]) -> None:
    cleaned = strip_line_breaks(value) if value else ''
    if cleaned:
        lines.append(f'{name}:{cleaned}')

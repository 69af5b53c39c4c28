"""Calendar aggregate: an ordered set of event records exported as iCal."""
import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, List, Optional, Protocol

from processor.exceptions import ValidationError
from processor.ical_serializer import CalendarSerializer
from processor.models import EventRecord
from storage.ics_writer import writer_for

logger = logging.getLogger(__name__)


class EventAdapter(Protocol):
    """Converts a provider-native event into an EventRecord."""

    def adapt(self, external_event: Any) -> EventRecord:
        ...


class IcsWriter(Protocol):
    """Destination that accepts the encoded iCalendar bytes."""

    def write(self, location: str, data: bytes) -> str:
        ...


class Calendar:
    """Ordered collection of event records; insertion order is VEVENT order."""

    def __init__(self, events: Iterable[EventRecord] = ()):
        self._events: List[EventRecord] = []
        for event in events:
            self.add_event(event)

    @classmethod
    def from_events(
        cls, external_events: Optional[Iterable[Any]], adapter: EventAdapter
    ) -> 'Calendar':
        """
        Build a calendar from provider events.

        Args:
            external_events: Provider-native events, e.g. Google event dicts
            adapter: Adapter converting each event into an EventRecord

        Returns:
            Calendar holding the adapted records in input order
        """
        calendar = cls()
        if not external_events:
            return calendar

        skipped = 0
        for external_event in external_events:
            record = adapter.adapt(external_event)
            if record is None:
                skipped += 1
                continue
            calendar.add_event(record)

        if skipped:
            logger.warning(f"Adapter skipped {skipped} events")
        logger.info(f"Built calendar with {len(calendar)} events")
        return calendar

    def add_event(self, event: EventRecord) -> None:
        """Append an event record."""
        if not isinstance(event, EventRecord):
            raise ValidationError(
                'event', f'expected EventRecord, got {type(event).__name__}'
            )
        self._events.append(event)

    @property
    def events(self) -> List[EventRecord]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[EventRecord]:
        return iter(list(self._events))

    def to_ical_text(
        self, clock: Callable[[], datetime] = datetime.now
    ) -> str:
        """Render the calendar as a complete VCALENDAR document."""
        return CalendarSerializer(clock=clock).serialize(self._events)

    def write_to(self, location: str, writer: Optional[IcsWriter] = None) -> str:
        """
        Export the calendar as UTF-8 bytes.

        Args:
            location: Local file path or ``s3://bucket/key`` URI
            writer: Destination writer; chosen from the location when omitted

        Returns:
            The location written to

        Raises:
            ExportError: If the writer fails
        """
        if writer is None:
            writer = writer_for(location)

        data = self.to_ical_text().encode('utf-8')
        return writer.write(location, data)

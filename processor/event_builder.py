"""Fluent builder producing validated EventRecord objects."""
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Type, Union

from processor.exceptions import ValidationError
from processor.models import (
    Classification,
    EventRecord,
    EventStatus,
    Transparency,
)

logger = logging.getLogger(__name__)


def _coerce_enum(enum_cls: Type[Enum], value, field_name: str):
    """Accept an enum member or its (case-insensitive) string value."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            pass
    allowed = ', '.join(member.value for member in enum_cls)
    raise ValidationError(field_name, f"{value!r} is not one of: {allowed}")


class EventRecordBuilder:
    """
    Builder for EventRecord.

    Setters store values as given and return the builder. Defaults and
    validation are applied once, in build().
    """

    def __init__(self):
        self._uid: Optional[str] = None
        self._summary: Optional[str] = None
        self._description: Optional[str] = None
        self._location: Optional[str] = None
        self._start: Optional[datetime] = None
        self._end: Optional[datetime] = None
        self._created: Optional[datetime] = None
        self._last_modified: Optional[datetime] = None
        self._organizer: Optional[str] = None
        self._attendees: list = []
        self._status = None
        self._transparency = None
        self._classification = None
        self._priority: Optional[int] = None
        self._recurrence_rule: Optional[str] = None
        self._recurrence_dates: list = []
        self._exception_dates: list = []
        self._url: Optional[str] = None
        self._categories: list = []
        self._comment: Optional[str] = None
        self._contact: Optional[str] = None
        self._alarm_minutes_before: Optional[int] = None

    # Identification

    def set_uid(self, uid: str) -> 'EventRecordBuilder':
        self._uid = uid
        return self

    def set_summary(self, summary: str) -> 'EventRecordBuilder':
        self._summary = summary
        return self

    def set_description(self, description: str) -> 'EventRecordBuilder':
        self._description = description
        return self

    def set_location(self, location: str) -> 'EventRecordBuilder':
        self._location = location
        return self

    # Date and time

    def set_start(self, start: datetime) -> 'EventRecordBuilder':
        self._start = start
        return self

    def set_end(self, end: datetime) -> 'EventRecordBuilder':
        self._end = end
        return self

    def set_created(self, created: datetime) -> 'EventRecordBuilder':
        self._created = created
        return self

    def set_last_modified(self, last_modified: datetime) -> 'EventRecordBuilder':
        self._last_modified = last_modified
        return self

    # People

    def set_organizer(self, organizer: str) -> 'EventRecordBuilder':
        self._organizer = organizer
        return self

    def set_attendees(self, attendees: Iterable[str]) -> 'EventRecordBuilder':
        self._attendees = list(attendees) if attendees is not None else []
        return self

    def add_attendee(self, attendee: str) -> 'EventRecordBuilder':
        self._attendees.append(attendee)
        return self

    # Properties

    def set_status(self, status: Union[EventStatus, str]) -> 'EventRecordBuilder':
        self._status = status
        return self

    def set_status_confirmed(self) -> 'EventRecordBuilder':
        return self.set_status(EventStatus.CONFIRMED)

    def set_status_tentative(self) -> 'EventRecordBuilder':
        return self.set_status(EventStatus.TENTATIVE)

    def set_status_cancelled(self) -> 'EventRecordBuilder':
        return self.set_status(EventStatus.CANCELLED)

    def set_transparency(
        self, transparency: Union[Transparency, str]
    ) -> 'EventRecordBuilder':
        self._transparency = transparency
        return self

    def set_opaque(self) -> 'EventRecordBuilder':
        return self.set_transparency(Transparency.OPAQUE)

    def set_transparent(self) -> 'EventRecordBuilder':
        return self.set_transparency(Transparency.TRANSPARENT)

    def set_classification(
        self, classification: Union[Classification, str]
    ) -> 'EventRecordBuilder':
        self._classification = classification
        return self

    def set_public(self) -> 'EventRecordBuilder':
        return self.set_classification(Classification.PUBLIC)

    def set_private(self) -> 'EventRecordBuilder':
        return self.set_classification(Classification.PRIVATE)

    def set_confidential(self) -> 'EventRecordBuilder':
        return self.set_classification(Classification.CONFIDENTIAL)

    def set_priority(self, priority: int) -> 'EventRecordBuilder':
        self._priority = priority
        return self

    # Recurrence

    def set_recurrence_rule(self, rule: str) -> 'EventRecordBuilder':
        self._recurrence_rule = rule
        return self

    def set_recurrence_dates(
        self, dates: Iterable[datetime]
    ) -> 'EventRecordBuilder':
        self._recurrence_dates = list(dates) if dates is not None else []
        return self

    def add_recurrence_date(self, date: datetime) -> 'EventRecordBuilder':
        self._recurrence_dates.append(date)
        return self

    def set_exception_dates(
        self, dates: Iterable[datetime]
    ) -> 'EventRecordBuilder':
        self._exception_dates = list(dates) if dates is not None else []
        return self

    def add_exception_date(self, date: datetime) -> 'EventRecordBuilder':
        self._exception_dates.append(date)
        return self

    # Extras

    def set_url(self, url: str) -> 'EventRecordBuilder':
        self._url = url
        return self

    def set_categories(self, categories: Iterable[str]) -> 'EventRecordBuilder':
        self._categories = list(categories) if categories is not None else []
        return self

    def add_category(self, category: str) -> 'EventRecordBuilder':
        self._categories.append(category)
        return self

    def set_comment(self, comment: str) -> 'EventRecordBuilder':
        self._comment = comment
        return self

    def set_contact(self, contact: str) -> 'EventRecordBuilder':
        self._contact = contact
        return self

    def set_alarm_minutes_before(self, minutes: int) -> 'EventRecordBuilder':
        self._alarm_minutes_before = minutes
        return self

    def build(self) -> EventRecord:
        """
        Apply defaults, validate and produce an immutable EventRecord.

        Returns:
            The constructed EventRecord

        Raises:
            ValidationError: If an invariant is violated
        """
        now = datetime.now()

        record = EventRecord(
            uid=self._uid if self._uid is not None else str(uuid.uuid4()),
            created=self._created if self._created is not None else now,
            last_modified=(
                self._last_modified if self._last_modified is not None else now
            ),
            start=self._start,
            end=self._end,
            summary=self._summary,
            description=self._description,
            location=self._location,
            url=self._url,
            comment=self._comment,
            contact=self._contact,
            organizer=self._organizer,
            attendees=tuple(self._attendees),
            status=_coerce_enum(
                EventStatus,
                self._status if self._status is not None else EventStatus.CONFIRMED,
                'status'
            ),
            transparency=_coerce_enum(
                Transparency,
                self._transparency if self._transparency is not None
                else Transparency.OPAQUE,
                'transparency'
            ),
            classification=_coerce_enum(
                Classification,
                self._classification if self._classification is not None
                else Classification.PUBLIC,
                'classification'
            ),
            priority=self._priority if self._priority is not None else 0,
            recurrence_rule=self._recurrence_rule,
            recurrence_dates=tuple(self._recurrence_dates),
            exception_dates=tuple(self._exception_dates),
            categories=tuple(self._categories),
            alarm_minutes_before=self._alarm_minutes_before
        )

        violations = record.validate()
        if violations:
            field_name, message = violations[0]
            logger.debug(f"Rejected event record {record.uid!r}: {message}")
            raise ValidationError(field_name, message)

        return record


# Setters that take no argument and so cannot be driven by keyword.
_FLAG_SETTERS = frozenset({
    'status_confirmed', 'status_tentative', 'status_cancelled',
    'opaque', 'transparent', 'public', 'private', 'confidential',
})


def build_event_record(**fields) -> EventRecord:
    """
    Build an EventRecord from keyword arguments.

    Each keyword maps to the builder setter of the same name, e.g.
    ``build_event_record(uid='e1', summary='Standup')``.

    Raises:
        ValidationError: If a keyword is unknown or an invariant is violated
    """
    builder = EventRecordBuilder()
    for name, value in fields.items():
        setter = getattr(builder, f'set_{name}', None)
        if setter is None or name in _FLAG_SETTERS:
            raise ValidationError(name, 'unknown event field')
        setter(value)
    return builder.build()

"""Data models for calendar event export."""
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple

from processor.exceptions import ValidationError


class EventStatus(str, Enum):
    """VEVENT STATUS values."""
    CONFIRMED = 'CONFIRMED'
    TENTATIVE = 'TENTATIVE'
    CANCELLED = 'CANCELLED'


class Transparency(str, Enum):
    """VEVENT TRANSP values."""
    OPAQUE = 'OPAQUE'
    TRANSPARENT = 'TRANSPARENT'


class Classification(str, Enum):
    """VEVENT CLASS values."""
    PUBLIC = 'PUBLIC'
    PRIVATE = 'PRIVATE'
    CONFIDENTIAL = 'CONFIDENTIAL'


class ParticipationStatus(str, Enum):
    """ATTENDEE PARTSTAT values."""
    ACCEPTED = 'ACCEPTED'
    DECLINED = 'DECLINED'
    TENTATIVE = 'TENTATIVE'
    NEEDS_ACTION = 'NEEDS-ACTION'


MIN_PRIORITY = 0
MAX_PRIORITY = 9

# Fields that may change after construction; each change refreshes last_modified.
UPDATABLE_FIELDS = frozenset(
    {'summary', 'description', 'location', 'start', 'end'}
)


@dataclass(frozen=True)
class EventRecord:
    """
    Immutable calendar event holding every field used for iCal export.

    Records are produced by EventRecordBuilder, which applies defaults and
    validates invariants. Collections are tuples and never None.
    """
    uid: str
    created: datetime
    last_modified: datetime
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None
    comment: Optional[str] = None
    contact: Optional[str] = None
    organizer: Optional[str] = None
    attendees: Tuple[str, ...] = ()
    status: EventStatus = EventStatus.CONFIRMED
    transparency: Transparency = Transparency.OPAQUE
    classification: Classification = Classification.PUBLIC
    priority: int = 0
    recurrence_rule: Optional[str] = None
    recurrence_dates: Tuple[datetime, ...] = ()
    exception_dates: Tuple[datetime, ...] = ()
    categories: Tuple[str, ...] = ()
    alarm_minutes_before: Optional[int] = None

    @property
    def has_alarm(self) -> bool:
        """True when a display alarm should be emitted."""
        return self.alarm_minutes_before is not None

    def validate(self) -> List[Tuple[str, str]]:
        """
        Check the record invariants.

        Returns:
            List of (field, message) tuples, empty when the record is valid
        """
        violations = []

        if not isinstance(self.uid, str) or not self.uid.strip():
            violations.append(('uid', 'uid must be a non-empty string'))

        for name in ('start', 'end', 'created', 'last_modified'):
            value = getattr(self, name)
            if value is not None and not isinstance(value, (datetime, date)):
                violations.append(
                    (name, f'{name} must be a datetime, got {type(value).__name__}')
                )

        if self.end is not None and self.start is None:
            violations.append(('end', 'end without start'))

        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            violations.append(('priority', 'priority must be an integer'))
        elif not MIN_PRIORITY <= self.priority <= MAX_PRIORITY:
            violations.append(
                ('priority',
                 f'priority {self.priority} outside {MIN_PRIORITY}-{MAX_PRIORITY}')
            )

        if not isinstance(self.status, EventStatus):
            violations.append(('status', f'unknown status {self.status!r}'))
        if not isinstance(self.transparency, Transparency):
            violations.append(
                ('transparency', f'unknown transparency {self.transparency!r}')
            )
        if not isinstance(self.classification, Classification):
            violations.append(
                ('classification',
                 f'unknown classification {self.classification!r}')
            )

        if self.alarm_minutes_before is not None:
            minutes = self.alarm_minutes_before
            if isinstance(minutes, bool) or not isinstance(minutes, int):
                violations.append(
                    ('alarm_minutes_before', 'alarm minutes must be an integer')
                )
            elif minutes < 0:
                violations.append(
                    ('alarm_minutes_before', 'alarm minutes must not be negative')
                )

        for name in ('attendees', 'recurrence_dates', 'exception_dates',
                     'categories'):
            if not isinstance(getattr(self, name), tuple):
                violations.append((name, f'{name} must be a tuple'))

        for name in ('recurrence_dates', 'exception_dates'):
            for value in getattr(self, name):
                if not isinstance(value, (datetime, date)):
                    violations.append(
                        (name, f'{name} items must be datetimes, got {type(value).__name__}')
                    )
                    break

        return violations

    def updated(self, **changes) -> 'EventRecord':
        """
        Return a copy with summary/description/location/start/end changed.

        The copy gets a fresh last_modified timestamp and is re-validated.

        Raises:
            ValidationError: If a non-updatable field is given or the
                resulting record is invalid
        """
        for name in changes:
            if name not in UPDATABLE_FIELDS:
                raise ValidationError(name, 'field cannot be updated after construction')

        record = replace(self, last_modified=datetime.now(), **changes)
        violations = record.validate()
        if violations:
            raise ValidationError(*violations[0])
        return record

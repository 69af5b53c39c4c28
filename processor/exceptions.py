"""Exceptions raised while building, serializing and exporting calendars."""


class ICalExportError(Exception):
    """Base class for calendar export errors."""


class ValidationError(ICalExportError):
    """An event record violates one of its invariants."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Invalid event field '{field}': {message}")


class SerializationError(ICalExportError):
    """A record failed the re-check performed right before emission."""

    def __init__(self, index: int, uid: str, field: str, message: str):
        self.index = index
        self.uid = uid
        self.field = field
        self.message = message
        super().__init__(
            f"Cannot serialize event #{index} (uid={uid!r}), "
            f"field '{field}': {message}"
        )


class ExportError(ICalExportError):
    """Writing the iCalendar bytes to their destination failed."""

    def __init__(self, location: str, message: str):
        self.location = location
        self.message = message
        super().__init__(f"Failed to export iCal to {location}: {message}")

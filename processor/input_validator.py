"""Validation of export request parameters (dates, file name, calendar)."""
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import List, Optional

DATE_FORMAT = '%Y-%m-%d'
DEFAULT_FILE_NAME = 'calendar_export.ics'
ICS_EXTENSION = '.ics'

MAX_YEARS_FROM_TODAY = 10
MAX_RANGE_YEARS = 2
MAX_FILE_NAME_LENGTH = 255
INVALID_FILE_NAME_CHARS = '<>:"|?*'
RESERVED_FILE_NAMES = frozenset(
    ['CON', 'PRN', 'AUX', 'NUL']
    + [f'COM{i}' for i in range(1, 10)]
    + [f'LPT{i}' for i in range(1, 10)]
)


@dataclass
class ValidationResult:
    """Outcome of validating one input value."""
    is_valid: bool
    error_message: Optional[str] = None


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return day.replace(year=day.year + years, day=28)


def _parse_date(date_str: str) -> date:
    return datetime.strptime(date_str.strip(), DATE_FORMAT).date()


def validate_date(
    date_str: Optional[str], field_name: str, today: Optional[date] = None
) -> ValidationResult:
    """
    Validate a YYYY-MM-DD date within 10 years of today.

    Args:
        date_str: Date string to validate
        field_name: Name used in error messages, e.g. "Start date"
        today: Reference date (defaults to the current date)

    Returns:
        ValidationResult
    """
    if date_str is None:
        return ValidationResult(False, f"{field_name} cannot be empty")
    if not isinstance(date_str, str):
        return ValidationResult(
            False,
            f"{field_name} must be a string in YYYY-MM-DD format, "
            f"got {type(date_str).__name__}"
        )
    if not date_str.strip():
        return ValidationResult(False, f"{field_name} cannot be empty")

    try:
        parsed = _parse_date(date_str)
    except ValueError:
        return ValidationResult(
            False,
            f"Invalid {field_name.lower()} format: '{date_str}'. "
            f"Please use YYYY-MM-DD format (e.g., 2025-07-29)"
        )

    today = today or date.today()
    min_date = _add_years(today, -MAX_YEARS_FROM_TODAY)
    max_date = _add_years(today, MAX_YEARS_FROM_TODAY)

    if parsed < min_date:
        return ValidationResult(
            False,
            f"{field_name} is too far in the past. "
            f"Please use a date after {min_date.strftime(DATE_FORMAT)}"
        )
    if parsed > max_date:
        return ValidationResult(
            False,
            f"{field_name} is too far in the future. "
            f"Please use a date before {max_date.strftime(DATE_FORMAT)}"
        )

    return ValidationResult(True)


def validate_date_range(
    start_str: str, end_str: Optional[str], today: Optional[date] = None
) -> ValidationResult:
    """
    Validate an export date range.

    The start date is expected to have been validated already.
    """
    end_result = validate_date(end_str, 'End date', today=today)
    if not end_result.is_valid:
        return end_result

    try:
        start = _parse_date(start_str)
    except (ValueError, AttributeError, TypeError):
        return ValidationResult(False, 'Error parsing date range')
    end = _parse_date(end_str)

    if start > end:
        return ValidationResult(
            False,
            f"Start date ({start_str}) cannot be after end date ({end_str})"
        )
    if _add_years(start, MAX_RANGE_YEARS) < end:
        return ValidationResult(
            False,
            f"Date range is too large (more than {MAX_RANGE_YEARS} years). "
            f"Please select a smaller range."
        )

    return ValidationResult(True)


def validate_file_name(file_name: Optional[str]) -> ValidationResult:
    """Validate an output file name (the .ics extension may be missing)."""
    if file_name is None:
        return ValidationResult(False, 'Filename cannot be empty')
    if not isinstance(file_name, str):
        return ValidationResult(
            False, f"Filename must be a string, got {type(file_name).__name__}"
        )
    if not file_name.strip():
        return ValidationResult(False, 'Filename cannot be empty')

    name = file_name.strip()

    if len(name) > MAX_FILE_NAME_LENGTH:
        return ValidationResult(
            False,
            f"Filename is too long (maximum {MAX_FILE_NAME_LENGTH} characters)"
        )

    for char in INVALID_FILE_NAME_CHARS:
        if char in name:
            return ValidationResult(
                False,
                f"Filename contains invalid character '{char}'. "
                f"Invalid characters: {INVALID_FILE_NAME_CHARS}"
            )

    stem = name[:-len(ICS_EXTENSION)] if name.lower().endswith(ICS_EXTENSION) else name
    if stem.upper() in RESERVED_FILE_NAMES:
        return ValidationResult(
            False,
            f"'{stem.upper()}' is a reserved filename. Please choose a different name."
        )

    if (not name.lower().endswith(ICS_EXTENSION)
            and len(name + ICS_EXTENSION) > MAX_FILE_NAME_LENGTH):
        return ValidationResult(
            False,
            f"Filename is too long when {ICS_EXTENSION} extension is added "
            f"(maximum {MAX_FILE_NAME_LENGTH} characters total)"
        )

    return ValidationResult(True)


def normalize_file_name(file_name: Optional[str]) -> str:
    """Trim the file name and make sure it ends with .ics."""
    if not isinstance(file_name, str) or not file_name.strip():
        return DEFAULT_FILE_NAME

    name = file_name.strip()
    if not name.lower().endswith(ICS_EXTENSION):
        name += ICS_EXTENSION
    return name


def validate_calendar_index(index_str: Optional[str], calendars: List[dict]) -> ValidationResult:
    """Validate a 0-based index into the list of available calendars."""
    if not calendars:
        return ValidationResult(
            False, 'No available calendars found. Please add a calendar first.'
        )
    if index_str is None or not str(index_str).strip():
        return ValidationResult(False, 'Calendar index cannot be empty')

    try:
        index = int(str(index_str).strip())
    except ValueError:
        return ValidationResult(
            False,
            f"Invalid calendar index format: '{index_str}'. "
            f"Please enter a valid number."
        )

    if index < 0:
        return ValidationResult(False, 'Calendar index cannot be negative')
    if index >= len(calendars):
        return ValidationResult(
            False,
            f"Calendar index {index} is out of range. "
            f"Available indices: 0-{len(calendars) - 1}"
        )

    return ValidationResult(True)


def to_rfc3339(date_str: str, is_end_date: bool = False) -> str:
    """
    Convert a YYYY-MM-DD date to a local-time RFC 3339 timestamp.

    Start dates map to 00:00:00 and end dates to 23:59:59 so that the
    whole end day is included.
    """
    day = _parse_date(date_str)
    moment = datetime.combine(day, time(23, 59, 59) if is_end_date else time(0, 0, 0))
    return moment.astimezone().isoformat()

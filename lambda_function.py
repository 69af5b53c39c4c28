"""AWS Lambda handler exporting a Google Calendar to an iCalendar file."""
import json
import logging
import os
import time
from datetime import date, timedelta
from typing import Any, Dict

from processor.ical_calendar import Calendar
from processor.input_validator import (
    normalize_file_name,
    to_rfc3339,
    validate_calendar_index,
    validate_date,
    validate_date_range,
    validate_file_name,
)
from sources.google_adapter import GoogleEventAdapter
from sources.google_calendar import GoogleCalendarClient
from storage.ics_writer import join_location

ALL_CALENDARS = '*'


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def _error_response(status_code: int, message: str, error: Exception,
                    start_time: float, **extra) -> Dict[str, Any]:
    body = {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(time.time() - start_time, 2)
    }
    body.update(extra)
    return _response(status_code, body)


def load_config(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Read export settings from environment variables.

    Keys present in the invocation payload override the environment.
    """
    event = event or {}
    days_ahead = int(event.get('days_ahead', os.environ.get('DAYS_AHEAD', '30')))
    today = date.today()

    return {
        'access_token': event.get('access_token', os.environ.get('GOOGLE_ACCESS_TOKEN', '')),
        'calendar_id': event.get('calendar_id', os.environ.get('CALENDAR_ID', 'primary')),
        'calendar_index': event.get('calendar_index', os.environ.get('CALENDAR_INDEX')),
        'start_date': event.get(
            'start_date', os.environ.get('START_DATE', today.isoformat())
        ),
        'end_date': event.get(
            'end_date',
            os.environ.get('END_DATE', (today + timedelta(days=days_ahead)).isoformat())
        ),
        'output_dir': event.get('output_dir', os.environ.get('OUTPUT_DIR', '/tmp')),
        'file_name': event.get(
            'file_name', os.environ.get('FILE_NAME', 'calendar_export.ics')
        ),
        'timeout_seconds': int(os.environ.get('TIMEOUT_SECONDS', '30')),
        'tz': event.get('tz', os.environ.get('EXPORT_TIMEZONE')) or None,
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for Google Calendar iCal export.

    Args:
        event: Invocation payload; may override configuration keys
        context: Lambda context object

    Returns:
        Response dict with statusCode and export statistics
    """
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()

    try:
        config = load_config(event)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return _error_response(400, 'Invalid configuration', e, start_time)

    logger.info(
        "Lambda execution started",
        extra={
            'calendar_id': config['calendar_id'],
            'start_date': config['start_date'],
            'end_date': config['end_date'],
            'output_dir': config['output_dir']
        }
    )

    validation_errors = []
    if not config['access_token']:
        validation_errors.append('GOOGLE_ACCESS_TOKEN is not set')
    start_result = validate_date(config['start_date'], 'Start date')
    if not start_result.is_valid:
        validation_errors.append(start_result.error_message)
    else:
        range_result = validate_date_range(config['start_date'], config['end_date'])
        if not range_result.is_valid:
            validation_errors.append(range_result.error_message)
    file_result = validate_file_name(config['file_name'])
    if not file_result.is_valid:
        validation_errors.append(file_result.error_message)

    if validation_errors:
        logger.warning(f"Rejected export request: {validation_errors}")
        return _response(400, {
            'message': 'Invalid export request',
            'errors': validation_errors
        })

    try:
        client = GoogleCalendarClient(
            access_token=config['access_token'],
            timeout=config['timeout_seconds']
        )
        adapter = GoogleEventAdapter(tz=config['tz'])
        time_min = to_rfc3339(config['start_date'], is_end_date=False)
        time_max = to_rfc3339(config['end_date'], is_end_date=True)

        # Fetch events from Google Calendar with error handling
        try:
            calendar_id = config['calendar_id']
            if config['calendar_index'] not in (None, ''):
                calendars = client.list_calendars()
                index_result = validate_calendar_index(config['calendar_index'], calendars)
                if not index_result.is_valid:
                    logger.warning(f"Rejected calendar index: {index_result.error_message}")
                    return _response(400, {
                        'message': 'Invalid export request',
                        'errors': [index_result.error_message]
                    })
                calendar_id = calendars[int(str(config['calendar_index']).strip())]['id']

            if calendar_id == ALL_CALENDARS:
                logger.info("Fetching events from all calendars")
                google_events = client.fetch_all_calendars_events(time_min, time_max)
            else:
                logger.info(f"Fetching events from calendar: {calendar_id}")
                google_events = client.fetch_events(calendar_id, time_min, time_max)
        except Exception as e:
            logger.error(
                f"Failed to fetch events from calendar after retries: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response(500, 'Failed to fetch calendar events', e, start_time)

        calendar = Calendar.from_events(google_events, adapter)

        # Export iCal file with error handling
        location = join_location(config['output_dir'], normalize_file_name(config['file_name']))
        try:
            location = calendar.write_to(location)
        except Exception as e:
            logger.error(
                f"Error exporting iCal file: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response(
                500, 'Failed to export iCal file', e, start_time, location=location
            )

        duration = time.time() - start_time

        logger.info(
            "Lambda execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'events_fetched': len(google_events),
                'events_exported': len(calendar),
                'location': location
            }
        )

        return _response(200, {
            'message': 'Export completed successfully',
            'statistics': {
                'events_fetched': len(google_events),
                'events_exported': len(calendar),
                'location': location,
                'duration_seconds': round(duration, 2)
            }
        })

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(time.time() - start_time, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response(500, 'Export failed', e, start_time)

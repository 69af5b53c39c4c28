"""Google Calendar REST API client."""
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """Read-only client for the Google Calendar v3 API."""

    BASE_URL = "https://www.googleapis.com/calendar/v3"
    PAGE_SIZE = 2500

    def __init__(self, access_token: str, timeout: int = 30, max_retries: int = 3,
                 session: Optional[requests.Session] = None):
        """
        Initialize the calendar client.

        Args:
            access_token: OAuth 2.0 access token with calendar read scope
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts per request before giving up (default: 3)
            session: Optional requests session to reuse
        """
        self.access_token = access_token
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.session = session or requests.Session()

    def list_calendars(self) -> List[Dict[str, Any]]:
        """
        List the calendars visible to the authenticated user.

        Returns:
            List of calendarList entry resources
        """
        calendars = self._get_paginated(f"{self.BASE_URL}/users/me/calendarList", {})
        logger.info(f"Found {len(calendars)} calendars")
        return calendars

    def fetch_events(self, calendar_id: str, time_min: str, time_max: str) -> List[Dict[str, Any]]:
        """
        Fetch single events of a calendar within a time range.

        Recurring events are expanded into instances and ordered by start.

        Args:
            calendar_id: Calendar identifier, e.g. "primary"
            time_min: RFC 3339 lower bound (inclusive) for event end
            time_max: RFC 3339 upper bound (exclusive) for event start

        Returns:
            List of event resources

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        logger.info(f"Fetching events for calendar {calendar_id} from {time_min} to {time_max}")

        url = f"{self.BASE_URL}/calendars/{quote(calendar_id, safe='')}/events"
        params = {
            'timeMin': time_min,
            'timeMax': time_max,
            'singleEvents': 'true',
            'orderBy': 'startTime',
            'maxResults': self.PAGE_SIZE,
        }
        events = self._get_paginated(url, params)

        logger.info(f"Fetched {len(events)} events from calendar {calendar_id}")
        return events

    def fetch_all_calendars_events(self, time_min: str, time_max: str) -> List[Dict[str, Any]]:
        """Fetch events of every calendar in the user's calendar list."""
        events = []
        for calendar in self.list_calendars():
            events.extend(self.fetch_events(calendar['id'], time_min, time_max))
        return events

    def _get_paginated(self, url: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Collect 'items' across all pages of a list endpoint."""
        items = []
        page_token = None

        while True:
            page_params = dict(params)
            if page_token:
                page_params['pageToken'] = page_token

            payload = self._get_json(url, page_params)
            items.extend(payload.get('items', []))

            page_token = payload.get('nextPageToken')
            if not page_token:
                break

        return items

    def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        GET a JSON document with retry logic.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        headers = {'Authorization': f"Bearer {self.access_token}"}
        base_delay = 1  # seconds

        for attempt in range(self.max_retries):
            try:
                response = self.session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.json()

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

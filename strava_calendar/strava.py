"""
Minimal Strava API v3 client for the endpoints the sync uses.
"""

import logging

import requests

from .errors import ActivityFetchError
from .models import Activity

logger = logging.getLogger(__name__)

API_BASE = 'https://www.strava.com/api/v3'
MAX_PER_PAGE = 200  # Strava max is 200 per page


class StravaClient:
    def __init__(self, access_token, session=None, base_url=API_BASE):
        self.access_token = access_token
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip('/')

    def _get(self, path, params=None):
        url = f"{self.base_url}{path}"
        headers = {'Authorization': f'Bearer {self.access_token}'}
        try:
            resp = self.session.get(url, headers=headers, params=params)
        except requests.RequestException as e:
            raise ActivityFetchError(f"Strava API request failed: {e}") from e

        if resp.status_code != 200:
            raise ActivityFetchError(
                f"Strava API error: {resp.status_code} {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        if not resp.text:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ActivityFetchError(
                "Strava API returned invalid JSON", status_code=resp.status_code, body=resp.text
            ) from e

    def _get_list(self, params):
        data = self._get('/athlete/activities', params=params)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ActivityFetchError(f"Expected a list of activities, got {type(data).__name__}")
        return data

    def list_activities(self, page=1, per_page=30):
        """Fetch one page of the athlete's activities, newest first.

        Records are returned as raw dicts so the caller can skip a malformed
        record without losing the rest of the page.
        """
        params = {'per_page': min(per_page, MAX_PER_PAGE), 'page': page}
        logger.debug("GET /athlete/activities %s", params)
        return self._get_list(params)

    def list_activities_after(self, after, per_page=100):
        """Fetch activities that started after the given Unix timestamp."""
        params = {'after': int(after), 'per_page': min(per_page, MAX_PER_PAGE)}
        logger.debug("GET /athlete/activities %s", params)
        return self._get_list(params)

    def get_activity(self, activity_id):
        data = self._get(f"/activities/{int(activity_id)}")
        return Activity.from_json(data)

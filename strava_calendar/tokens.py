"""
Strava OAuth access token handling.
"""

import logging
import time

import requests

from . import config
from .errors import AuthenticationError
from .models import TokenResponse

logger = logging.getLogger(__name__)

TOKEN_URL = 'https://www.strava.com/oauth/token'
EXPIRY_MARGIN = 60  # refresh when the token expires within this many seconds


class TokenManager:
    """Keeps a valid Strava access token in the property store.

    Strava rotates the refresh token on every exchange, so the new one is
    written back together with the access token and its expiry.
    """

    def __init__(self, store, session=None, token_url=TOKEN_URL, clock=time.time):
        self.store = store
        self.session = session or requests.Session()
        self.token_url = token_url
        self.clock = clock

    def ensure_valid_access_token(self):
        """Return the stored access token, refreshing it first if it is missing or about to expire."""
        access_token = self.store.get(config.ACCESS_TOKEN)
        expires_at = self.store.get_int(config.EXPIRES_AT, 0)
        if access_token and self.clock() < expires_at - EXPIRY_MARGIN:
            return access_token
        return self.refresh()

    def refresh(self):
        client_id, client_secret, refresh_token = config.require_credentials(self.store)
        now = int(self.clock())

        logger.info("Refreshing Strava access token...")
        try:
            resp = self.session.post(
                self.token_url,
                data={
                    'client_id': client_id,
                    'client_secret': client_secret,
                    'grant_type': 'refresh_token',
                    'refresh_token': refresh_token,
                },
            )
        except requests.RequestException as e:
            raise AuthenticationError(f"Strava token refresh failed: {e}") from e

        if resp.status_code != 200:
            raise AuthenticationError(
                f"Failed to refresh Strava token: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise AuthenticationError(
                "Strava token response was not JSON", status_code=resp.status_code, body=resp.text
            ) from e

        tokens = TokenResponse.from_json(payload, now)
        if tokens.refresh_token is None:
            logger.warning("Token response had no refresh_token; keeping the current one")

        self.store.update({
            config.ACCESS_TOKEN: tokens.access_token,
            config.REFRESH_TOKEN: tokens.refresh_token or refresh_token,
            config.EXPIRES_AT: tokens.expires_at,
        })
        logger.info("Token refreshed successfully (expires at %s)", tokens.expires_at)
        return tokens.access_token

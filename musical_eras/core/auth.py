# musical_eras/core/auth.py
import logging
import threading
from typing import Any, Callable, Dict, Optional, TypeVar

import requests
import spotipy
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from musical_eras.core.errors import AuthExpired

logger = logging.getLogger(__name__)

SCOPE = "user-library-read"

T = TypeVar("T")


def build_oauth(settings) -> SpotifyOAuth:
    return SpotifyOAuth(
        client_id=settings.spotify_client_id,
        client_secret=settings.spotify_client_secret,
        redirect_uri=settings.spotify_redirect_uri,
        scope=SCOPE,
        cache_handler=MemoryCacheHandler(),
        open_browser=False,
    )


def exchange_code(oauth: SpotifyOAuth, code: str) -> Dict[str, Optional[str]]:
    """Trade the redirect's authorization code for the user's tokens."""
    try:
        token_info = oauth.get_access_token(code, as_dict=True, check_cache=False)
    except (SpotifyOauthError, requests.RequestException) as e:
        # expired or already used codes land here
        raise AuthExpired(f"Could not complete the Spotify login: {e}") from e
    return {
        "access_token": token_info["access_token"],
        "refresh_token": token_info.get("refresh_token"),
    }


def build_spotify_client(access_token: str) -> spotipy.Spotify:
    # a bare session has no urllib3 status retries, so a 429 reaches
    # retry_with_backoff as a SpotifyException carrying the Retry-After header
    return spotipy.Spotify(
        auth=access_token,
        requests_timeout=10,
        requests_session=requests.Session(),
    )


class SpotifyAuth:
    """
    Holds the user's Spotify credential and wraps every API call with a
    refresh-once policy: on a 401 the access token is refreshed exactly once,
    handed to `on_refresh` for persistence, and the call is retried once.
    A second rejection, a missing refresh token or a failed refresh raise
    AuthExpired.
    """

    def __init__(
        self,
        oauth: SpotifyOAuth,
        access_token: str,
        refresh_token: Optional[str] = None,
        on_refresh: Optional[Callable[[Dict[str, str]], None]] = None,
        client_factory: Callable[[str], Any] = build_spotify_client,
    ):
        self._oauth = oauth
        self.access_token = access_token
        self.refresh_token = refresh_token
        self._on_refresh = on_refresh
        self._client_factory = client_factory
        self._client = None
        self._lock = threading.Lock()

    def client(self):
        with self._lock:
            if self._client is None:
                self._client = self._client_factory(self.access_token)
            return self._client

    def call(self, fn: Callable[[Any], T]) -> T:
        with self._lock:
            token = self.access_token
        try:
            return fn(self.client())
        except SpotifyException as e:
            if e.http_status != 401:
                raise
            logger.info("Access token rejected, refreshing.")

        client = self._refresh(stale_token=token)
        try:
            return fn(client)
        except SpotifyException as e:
            if e.http_status == 401:
                raise AuthExpired("Spotify rejected the refreshed access token.") from e
            raise

    def _refresh(self, stale_token: str):
        with self._lock:
            if self.access_token != stale_token:
                # another batch already refreshed while we were waiting
                if self._client is None:
                    self._client = self._client_factory(self.access_token)
                return self._client
            if not self.refresh_token:
                raise AuthExpired("Authentication expired. No refresh token available.")
            try:
                tokens = self._oauth.refresh_access_token(self.refresh_token)
            except (SpotifyOauthError, requests.RequestException) as e:
                raise AuthExpired(f"Could not refresh the access token: {e}") from e

            self.access_token = tokens["access_token"]
            # Spotify may rotate the refresh token
            self.refresh_token = tokens.get("refresh_token") or self.refresh_token
            self._client = self._client_factory(self.access_token)
            if self._on_refresh:
                self._on_refresh({"access_token": self.access_token, "refresh_token": self.refresh_token})
            logger.info("Access token refreshed.")
            return self._client

# musical_eras/core/fetch.py
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping

import requests
from spotipy.exceptions import SpotifyException

from musical_eras.core.auth import SpotifyAuth
from musical_eras.core.errors import RateLimited, UpstreamFetchFailure
from musical_eras.core.models import ArtistDetail, AudioFeatures, FeatureKind, TrackProfile
from musical_eras.core.retry import retry_with_backoff

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
AUDIO_FEATURES_BATCH = 100
TRACKS_BATCH = 50
ARTISTS_BATCH = 50


def chunked(ids: Iterable[str], size: int) -> Iterator[List[str]]:
    """Deduplicate (keeping first-seen order) and split into batches of `size`."""
    unique = list(dict.fromkeys(i for i in ids if i))
    for i in range(0, len(unique), size):
        yield unique[i:i + size]


def _retry_after(e: SpotifyException):
    headers = getattr(e, "headers", None) or {}
    value = headers.get("Retry-After") or headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _payload_list(payload: Any, key: str) -> list:
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, Mapping) or not isinstance(payload.get(key), list):
        raise UpstreamFetchFailure(f"Malformed Spotify response: no '{key}' list.")
    return payload[key]


def _page_items(page: Any) -> list:
    if not isinstance(page, Mapping):
        raise UpstreamFetchFailure("Malformed Spotify response: saved-tracks page is not an object.")
    return _payload_list(page, "items")


def _parse_rows(rows: list, parse: Callable[[Mapping[str, Any]], Any]) -> Dict[str, Any]:
    # null rows are ids Spotify has nothing for: omitted, not placeholders
    out = {}
    for row in rows:
        if not row or not row.get("id"):
            continue
        try:
            out[row["id"]] = parse(row)
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamFetchFailure(f"Malformed Spotify entry for {row.get('id')}: {e}") from e
    return out


class SpotifyLibrary:
    """
    The user's Spotify library as seen by the era pipeline: saved tracks,
    per-track features and per-artist genres. Lookups are batched to the
    endpoint ceilings and the batches run concurrently, merged by id.
    """

    def __init__(self, auth: SpotifyAuth, max_workers: int = 4, max_attempts: int = 5,
                 initial_delay: float = 1.0):
        self._auth = auth
        self.max_workers = max_workers
        self._request = retry_with_backoff(
            max_attempts=max_attempts, initial_delay=initial_delay,
        )(self._request_once)

    def _request_once(self, fn):
        try:
            return self._auth.call(fn)
        except SpotifyException as e:
            if e.http_status == 429:
                raise RateLimited(f"Spotify rate limit: {e.msg}", retry_after=_retry_after(e)) from e
            raise UpstreamFetchFailure(f"Spotify request failed ({e.http_status}): {e.msg}") from e
        except requests.RequestException as e:
            raise UpstreamFetchFailure(f"Spotify request failed: {e}") from e

    # ------------------------- Saved tracks ------------------------- #

    def fetch_saved_tracks(self) -> List[Mapping[str, Any]]:
        """All saved-track items, every page, in the order Spotify returns them."""
        page = self._request(lambda sp: sp.current_user_saved_tracks(limit=PAGE_SIZE))
        items = list(_page_items(page))
        while page.get("next"):
            page = self._request(lambda sp, p=page: sp.next(p))
            items += _page_items(page)
        logger.info("Fetched %d saved tracks", len(items))
        return items

    # --------------------------- Features --------------------------- #

    def fetch_features(self, ids: Iterable[str], kind: FeatureKind = FeatureKind.AUDIO) -> Dict[str, Any]:
        if kind is FeatureKind.AUDIO:
            return self.fetch_audio_features(ids)
        return self.fetch_track_profiles(ids)

    def fetch_audio_features(self, ids: Iterable[str]) -> Dict[str, AudioFeatures]:
        def batch(chunk):
            payload = self._request(lambda sp: sp.audio_features(chunk))
            return _parse_rows(_payload_list(payload, "audio_features"), AudioFeatures.from_payload)

        features = self._fetch_batches(ids, AUDIO_FEATURES_BATCH, batch)
        logger.info("Fetched audio features for %d tracks", len(features))
        return features

    def fetch_track_profiles(self, ids: Iterable[str]) -> Dict[str, TrackProfile]:
        def batch(chunk):
            payload = self._request(lambda sp: sp.tracks(chunk))
            return _parse_rows(_payload_list(payload, "tracks"), TrackProfile.from_payload)

        profiles = self._fetch_batches(ids, TRACKS_BATCH, batch)
        logger.info("Fetched popularity/release year for %d tracks", len(profiles))
        return profiles

    # ---------------------------- Artists --------------------------- #

    def fetch_artists(self, ids: Iterable[str]) -> Dict[str, ArtistDetail]:
        def batch(chunk):
            payload = self._request(lambda sp: sp.artists(chunk))
            return _parse_rows(_payload_list(payload, "artists"), ArtistDetail.from_payload)

        artists = self._fetch_batches(ids, ARTISTS_BATCH, batch)
        logger.info("Fetched details for %d artists", len(artists))
        return artists

    def _fetch_batches(self, ids: Iterable[str], size: int,
                       fetch_batch: Callable[[List[str]], Dict[str, Any]]) -> Dict[str, Any]:
        batches = list(chunked(ids, size))
        if not batches:
            return {}

        merged: Dict[str, Any] = {}
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(batches))) as ex:
            futures = [ex.submit(fetch_batch, b) for b in batches]
            try:
                for fut in as_completed(futures):
                    merged.update(fut.result())
            except Exception:
                for fut in futures:
                    fut.cancel()
                raise
        return merged

"""Test configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from musical_eras.core.models import FeatureKind

UTC = timezone.utc


def _make_item(track_id, added_at, artists=(("a-x", "X"),)):
    """A saved-track item in Spotify's wire shape."""
    return {
        "added_at": added_at.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "track": {
            "id": track_id,
            "artists": [{"id": aid, "name": name} for aid, name in artists],
        },
    }


def _make_items(n, start=datetime(2021, 1, 1, tzinfo=UTC), step=timedelta(days=1),
                artists=(("a-x", "X"),), prefix="t"):
    return [_make_item(f"{prefix}{i}", start + i * step, artists) for i in range(n)]


class FakeLibrary:
    """In-memory stand-in for SpotifyLibrary that records every call."""

    def __init__(self, items=(), features=None, artists=None, errors=None):
        self.items = list(items)
        self.features = features or {}
        self.artists = artists or {}
        self.errors = errors or {}
        self.calls = []

    def _maybe_fail(self, name):
        if name in self.errors:
            raise self.errors[name]

    def fetch_saved_tracks(self):
        self.calls.append(("saved_tracks",))
        self._maybe_fail("saved_tracks")
        return list(self.items)

    def fetch_features(self, ids, kind=FeatureKind.AUDIO):
        ids = list(ids)
        self.calls.append(("features", ids, kind))
        self._maybe_fail("features")
        return {i: self.features[i] for i in ids if i in self.features}

    def fetch_artists(self, ids):
        ids = list(ids)
        self.calls.append(("artists", ids))
        self._maybe_fail("artists")
        return {i: self.artists[i] for i in ids if i in self.artists}

    def call_names(self):
        return [c[0] for c in self.calls]


@pytest.fixture()
def make_item():
    return _make_item


@pytest.fixture()
def make_items():
    return _make_items


@pytest.fixture()
def fake_library():
    return FakeLibrary

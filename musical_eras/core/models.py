# musical_eras/core/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


def parse_added_at(value: Any) -> Optional[datetime]:
    """Parse Spotify's ISO-8601 `added_at` into an aware UTC datetime."""
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str) and value:
        try:
            ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True)
class ArtistRef:
    id: Optional[str]
    name: str


@dataclass(frozen=True)
class Track:
    """A saved track: when it was added and who plays on it."""
    id: str
    added_at: datetime
    artists: Tuple[ArtistRef, ...] = ()

    @classmethod
    def from_item(cls, item: Optional[Mapping[str, Any]]) -> Optional["Track"]:
        """Build a Track from a saved-track item, or None if it is unusable."""
        tr = (item or {}).get("track") or {}
        if not tr.get("id"):
            return None
        added_at = parse_added_at(item.get("added_at"))
        if added_at is None:
            return None
        artists = tuple(
            ArtistRef(id=a.get("id"), name=a.get("name") or "")
            for a in (tr.get("artists") or [])
            if a
        )
        return cls(id=tr["id"], added_at=added_at, artists=artists)


class FeatureKind(str, Enum):
    AUDIO = "audio"        # energy / valence / danceability
    PROFILE = "profile"    # popularity / release year


@dataclass(frozen=True)
class AudioFeatures:
    energy: float
    valence: float
    danceability: float

    DIMENSIONS = ("energy", "valence", "danceability")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AudioFeatures":
        return cls(
            energy=float(payload["energy"]),
            valence=float(payload["valence"]),
            danceability=float(payload["danceability"]),
        )

    def as_dict(self) -> Dict[str, Optional[float]]:
        return {"energy": self.energy, "valence": self.valence, "danceability": self.danceability}

    def as_vector(self) -> Tuple[float, float, float]:
        return (self.energy, self.valence, self.danceability)


@dataclass(frozen=True)
class TrackProfile:
    """Popularity and vintage of a track, from the /tracks endpoint."""
    popularity: float
    release_year: Optional[int] = None

    DIMENSIONS = ("popularity", "release_year")

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TrackProfile":
        release = (payload.get("album") or {}).get("release_date") or ""
        year = int(release[:4]) if release[:4].isdigit() else None
        return cls(popularity=float(payload.get("popularity") or 0), release_year=year)

    def as_dict(self) -> Dict[str, Optional[float]]:
        return {"popularity": self.popularity, "release_year": self.release_year}


FEATURE_DIMENSIONS = {
    FeatureKind.AUDIO: AudioFeatures.DIMENSIONS,
    FeatureKind.PROFILE: TrackProfile.DIMENSIONS,
}


@dataclass(frozen=True)
class ArtistDetail:
    id: str
    name: str
    genres: Tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ArtistDetail":
        return cls(
            id=payload["id"],
            name=payload.get("name") or "",
            genres=tuple(g for g in (payload.get("genres") or []) if g),
        )


@dataclass
class Era:
    timeframe: str
    era_name: str
    top_artists: List[str] = field(default_factory=list)
    top_genres: List[str] = field(default_factory=list)
    aggregate_features: Dict[str, float] = field(default_factory=dict)
    track_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape shared with the export/share surfaces."""
        return {
            "timeframe": self.timeframe,
            "eraName": self.era_name,
            "topArtists": list(self.top_artists),
            "topGenres": list(self.top_genres),
            "avgFeatures": dict(self.aggregate_features),
            "trackIds": list(self.track_ids),
        }

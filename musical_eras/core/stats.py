# musical_eras/core/stats.py
from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from musical_eras.core.models import ArtistDetail, Era, Track
from musical_eras.core.segment import Segment

TOP_N = 5
FALLBACK_ERA_NAME = "The Eclectic Era"


# ----------------------------- Ranking ---------------------------- #

def rank_top(values: Iterable[str], n: int = TOP_N) -> List[str]:
    """Most frequent values first; equal counts keep first-seen order."""
    counts = Counter(values)
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [name for name, _ in ranked[:n]]


def count_artists(tracks: Sequence[Track], n: int = TOP_N) -> Tuple[List[str], Dict[str, str]]:
    """
    Rank artists of a segment by how many of its tracks they appear on.

    Returns:
        (top artist names, {artist name: first-seen artist id})
    """
    names: List[str] = []
    ids: Dict[str, str] = {}
    for t in tracks:
        for a in t.artists:
            if not a.name:
                continue
            names.append(a.name)
            if a.id and a.name not in ids:
                ids[a.name] = a.id
    return rank_top(names, n), ids


def rank_genres(artist_ids: Sequence[str], artists: Mapping[str, ArtistDetail], n: int = TOP_N) -> List[str]:
    genres = [g for aid in artist_ids if aid in artists for g in artists[aid].genres]
    return rank_top(genres, n)


# --------------------------- Aggregation -------------------------- #

def safe_average(values: Iterable[Optional[float]]) -> float:
    mean = pd.Series(list(values), dtype=float).mean()
    return 0.0 if pd.isna(mean) else float(mean)


def aggregate_features(track_ids: Sequence[str], features: Mapping[str, Any],
                       dimensions: Sequence[str]) -> Dict[str, float]:
    """Per-dimension mean over the tracks that have a feature entry; 0.0 when none do."""
    rows = [features[tid].as_dict() for tid in track_ids if tid in features]
    df = pd.DataFrame(rows, columns=list(dimensions), dtype=float)
    means = df.mean().reindex(list(dimensions)).fillna(0.0)
    return {dim: float(means[dim]) for dim in dimensions}


# ------------------------- Display fields ------------------------- #

def derive_timeframe(tracks: Sequence[Track]) -> str:
    first, last = tracks[0].added_at.year, tracks[-1].added_at.year
    return str(first) if first == last else f"{first} - {last}"


def title_case(text: str) -> str:
    # capitalize the first letter of each word, leave the rest alone ("k-pop" -> "K-pop")
    return " ".join(w[:1].upper() + w[1:] for w in text.split(" "))


def derive_era_name(top_genres: Sequence[str]) -> str:
    if not top_genres:
        return FALLBACK_ERA_NAME
    return f"The {title_case(top_genres[0])} Era"


class EraSummarizer:
    """Turns one segment plus its resolved features and artists into an Era."""

    def __init__(self, top_n: int = TOP_N):
        self.top_n = top_n

    def top_artist_ids(self, segment: Segment) -> List[str]:
        names, ids = count_artists(segment.tracks, self.top_n)
        return [ids[name] for name in names if name in ids]

    def summarize(self, segment: Segment, features: Mapping[str, Any],
                  artists: Mapping[str, ArtistDetail], dimensions: Sequence[str]) -> Era:
        top_artists, ids = count_artists(segment.tracks, self.top_n)
        top_ids = [ids[name] for name in top_artists if name in ids]
        top_genres = rank_genres(top_ids, artists, self.top_n)

        if segment.centroid is not None:
            aggregate = dict(segment.centroid)
        else:
            aggregate = aggregate_features(segment.track_ids, features, dimensions)

        return Era(
            timeframe=derive_timeframe(segment.tracks),
            era_name=derive_era_name(top_genres),
            top_artists=top_artists,
            top_genres=top_genres,
            aggregate_features=aggregate,
            track_ids=segment.track_ids,
        )

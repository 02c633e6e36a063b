# musical_eras/core/segment.py
"""
Era segmentation: split a chronologically sorted list of saved tracks into
the groups that become eras.

Three policies:
    fixed    - up to `era_count` equal windows of at least `min_window` tracks
    quarter  - one group per calendar quarter of the add date
    kmeans   - k-means on (energy, valence, danceability) inside each quarter
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from sklearn.cluster import KMeans

from musical_eras.core.models import AudioFeatures, Track


class SegmentPolicy(str, Enum):
    FIXED = "fixed"
    QUARTER = "quarter"
    KMEANS = "kmeans"


@dataclass
class Segment:
    tracks: List[Track]
    # only set by the k-means policy
    centroid: Optional[Dict[str, float]] = None

    @property
    def track_ids(self) -> List[str]:
        return [t.id for t in self.tracks]


# ------------------------- Fixed windows -------------------------- #

def window_size(total: int, era_count: int = 5, min_window: int = 20) -> int:
    return max(min_window, math.ceil(total / era_count))


def fixed_windows(tracks: Sequence[Track], era_count: int = 5, min_window: int = 20,
                  min_era_size: int = 10) -> List[Segment]:
    if not tracks:
        return []
    size = window_size(len(tracks), era_count, min_window)
    windows = [list(tracks[i:i + size]) for i in range(0, len(tracks), size)]
    # only the trailing window can come up short
    return [Segment(w) for w in windows if len(w) >= min_era_size]


# ------------------------ Calendar quarters ----------------------- #

def quarter_key(track: Track) -> Tuple[int, int]:
    ts = track.added_at
    return ts.year, (ts.month - 1) // 3 + 1


def quarter_buckets(tracks: Sequence[Track]) -> List[List[Track]]:
    buckets: Dict[Tuple[int, int], List[Track]] = {}
    for t in tracks:
        buckets.setdefault(quarter_key(t), []).append(t)
    return [buckets[k] for k in sorted(buckets)]


def calendar_quarters(tracks: Sequence[Track], min_era_size: int = 10) -> List[Segment]:
    return [Segment(b) for b in quarter_buckets(tracks) if len(b) >= min_era_size]


# ----------------------------- K-means ---------------------------- #

def kmeans_clusters(tracks: Sequence[Track], features: Mapping[str, Any], max_clusters: int = 4,
                    min_bucket: int = 10, min_cluster_size: int = 5,
                    random_state: Optional[int] = None) -> List[Segment]:
    segments: List[Segment] = []
    for bucket in quarter_buckets(tracks):
        if len(bucket) < min_bucket:
            continue
        segments.extend(_cluster_bucket(bucket, features, max_clusters, min_cluster_size, random_state))
    return segments


def _cluster_bucket(bucket: List[Track], features: Mapping[str, Any], max_clusters: int,
                    min_cluster_size: int, random_state: Optional[int]) -> List[Segment]:
    members = [t for t in bucket if isinstance(features.get(t.id), AudioFeatures)]
    if not members:
        return []

    X = np.array([features[t.id].as_vector() for t in members], dtype=float)
    k = min(max_clusters, len(np.unique(X, axis=0)))
    km = KMeans(n_clusters=k, n_init=10, random_state=random_state)
    labels = km.fit_predict(X)

    segments = []
    # clusters ordered by their earliest member; members stay chronological
    for label in dict.fromkeys(labels.tolist()):
        idx = np.flatnonzero(labels == label)
        if len(idx) < min_cluster_size:
            continue
        centroid = {dim: float(v) for dim, v in zip(AudioFeatures.DIMENSIONS, km.cluster_centers_[label])}
        segments.append(Segment([members[i] for i in idx], centroid=centroid))
    return segments


class EraSegmenter:
    def __init__(self, policy: SegmentPolicy = SegmentPolicy.FIXED, era_count: int = 5,
                 min_window: int = 20, min_era_size: int = 10, min_cluster_size: int = 5,
                 max_clusters: int = 4, random_state: Optional[int] = None):
        self.policy = SegmentPolicy(policy)
        self.era_count = era_count
        self.min_window = min_window
        self.min_era_size = min_era_size
        self.min_cluster_size = min_cluster_size
        self.max_clusters = max_clusters
        self.random_state = random_state

    @property
    def needs_audio_features(self) -> bool:
        return self.policy is SegmentPolicy.KMEANS

    def segment(self, tracks: Sequence[Track], features: Optional[Mapping[str, Any]] = None) -> List[Segment]:
        """Group sorted tracks (oldest first) into chronologically ordered segments."""
        if self.policy is SegmentPolicy.FIXED:
            return fixed_windows(tracks, self.era_count, self.min_window, self.min_era_size)
        if self.policy is SegmentPolicy.QUARTER:
            return calendar_quarters(tracks, self.min_era_size)
        return kmeans_clusters(
            tracks, features or {},
            max_clusters=self.max_clusters,
            min_bucket=self.min_era_size,
            min_cluster_size=self.min_cluster_size,
            random_state=self.random_state,
        )

# musical_eras/core/pipeline.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from musical_eras.core.models import FEATURE_DIMENSIONS, ArtistDetail, Era, FeatureKind, Track
from musical_eras.core.segment import EraSegmenter
from musical_eras.core.stats import EraSummarizer

logger = logging.getLogger(__name__)

MIN_HISTORY = 20


class MusicLibrary(Protocol):
    def fetch_saved_tracks(self) -> List[Mapping[str, Any]]: ...

    def fetch_features(self, ids: Iterable[str], kind: FeatureKind = FeatureKind.AUDIO) -> Dict[str, Any]: ...

    def fetch_artists(self, ids: Iterable[str]) -> Dict[str, ArtistDetail]: ...


def prepare_tracks(items: Iterable[Optional[Mapping[str, Any]]]) -> List[Track]:
    """Drop unusable items and repeated ids, then sort oldest first (ties keep source order)."""
    unique: Dict[str, Track] = {}
    for t in (Track.from_item(item) for item in items):
        # a saved id belongs to one era: the first item listed for it wins
        if t is not None and t.id not in unique:
            unique[t.id] = t
    return sorted(unique.values(), key=lambda t: t.added_at)


class EraPipeline:
    """
    Saved tracks -> sorted/filtered tracks -> features -> segments -> eras.

    Either the full era list comes back or the run raises; an empty list
    means "not enough history yet", which is not an error.
    """

    def __init__(self, library: MusicLibrary, segmenter: Optional[EraSegmenter] = None,
                 summarizer: Optional[EraSummarizer] = None,
                 feature_kind: FeatureKind = FeatureKind.AUDIO, min_history: int = MIN_HISTORY):
        self.library = library
        self.segmenter = segmenter or EraSegmenter()
        self.summarizer = summarizer or EraSummarizer()
        self.feature_kind = FeatureKind(feature_kind)
        self.min_history = min_history
        if self.segmenter.needs_audio_features and self.feature_kind is not FeatureKind.AUDIO:
            raise ValueError("The k-means policy clusters audio features; use FeatureKind.AUDIO.")

    def run(self) -> List[Era]:
        return self.analyze(self.library.fetch_saved_tracks())

    def analyze(self, items: Iterable[Optional[Mapping[str, Any]]]) -> List[Era]:
        tracks = prepare_tracks(items)
        if len(tracks) < self.min_history:
            logger.info("Only %d usable saved tracks (need %d); no eras yet.", len(tracks), self.min_history)
            return []

        track_ids = [t.id for t in tracks]
        features = self.library.fetch_features(track_ids, self.feature_kind)

        segments = self.segmenter.segment(tracks, features)
        logger.info("Segmented %d tracks into %d groups (%s policy)",
                    len(tracks), len(segments), self.segmenter.policy.value)
        if not segments:
            return []

        # one lookup for every segment's top artists, merged by id
        artist_ids = list(dict.fromkeys(aid for s in segments for aid in self.summarizer.top_artist_ids(s)))
        artists = self.library.fetch_artists(artist_ids) if artist_ids else {}

        dimensions = FEATURE_DIMENSIONS[self.feature_kind]
        eras = [self.summarizer.summarize(s, features, artists, dimensions) for s in segments]
        logger.info("Built %d eras", len(eras))
        return eras

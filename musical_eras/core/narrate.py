# musical_eras/core/narrate.py
from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Protocol, Sequence

from openai import OpenAI, OpenAIError

from musical_eras.core.models import Era

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


class Narrator(Protocol):
    def narrate(self, era: Era) -> str: ...


def _pct(value: float) -> int:
    return int(round(value * 100))


def describe_vibe(era: Era) -> str:
    f = era.aggregate_features
    if "energy" in f:
        return (f"Energy level at {_pct(f['energy'])}% and Happiness/Positivity at "
                f"{_pct(f.get('valence', 0.0))}%.")
    year = int(f.get("release_year") or 0)
    year_part = f", mostly music released around {year}" if year else ""
    return f"Mainstream appeal at {int(round(f.get('popularity', 0.0)))}/100{year_part}."


# ---------------------------- Prompts ----------------------------- #

def build_era_prompt(era: Era) -> str:
    artists = ", ".join(era.top_artists[:3]) or "various artists"
    genres = ", ".join(era.top_genres[:3]) or "a mix of styles"
    return (
        "You are a witty, insightful music journalist crafting a chapter of a person's musical biography.\n"
        f"Write one evocative paragraph (around 80-100 words) describing this musical phase named \"{era.era_name}\".\n"
        "Focus on the feeling and narrative, not just listing data. Be personal and creative.\n\n"
        "Details of the Era:\n"
        f"- Timeframe: {era.timeframe}\n"
        f"- Key Artists: {artists}\n"
        f"- Dominant Genres: {genres}\n"
        f"- Vibe: {describe_vibe(era)}"
    )


def build_name_prompt(era: Era) -> str:
    features = ", ".join(f"{k}: {v:.2f}" for k, v in era.aggregate_features.items()) or "n/a"
    return (
        "You are a creative music journalist. Coin a catchy, evocative name for a person's musical era "
        "based on the data below. The name should be 2-5 words long.\n\n"
        f"- Top Genres: {', '.join(era.top_genres) or 'n/a'}\n"
        f"- Top Artists: {', '.join(era.top_artists) or 'n/a'}\n"
        f"- Average features: {features}\n\n"
        "For example: \"Melancholic Indie Winter\", \"Upbeat Summer Pop\", \"Experimental Electronic Nights\".\n"
        "Return ONLY the name.\n\nEra Name:"
    )


# --------------------------- Narrators ---------------------------- #

class OpenAINarrator:
    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODEL, client=None):
        self.client = client or OpenAI(api_key=api_key)
        self.model = model

    def _complete(self, prompt: str, temperature: float, max_tokens: int) -> str:
        resp = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return (resp.choices[0].message.content or "").strip()

    def narrate(self, era: Era) -> str:
        return self._complete(build_era_prompt(era), temperature=0.7, max_tokens=256)

    def name_era(self, era: Era) -> str:
        return self._complete(build_name_prompt(era), temperature=0.9, max_tokens=20).replace('"', "").strip()


class RuleBasedNarrator:
    """Local, deterministic paragraph for when no LLM is configured or it fails."""

    def narrate(self, era: Era) -> str:
        f = era.aggregate_features
        artists = ", ".join(era.top_artists[:3]) or "a rotating cast of artists"
        genres = ", ".join(era.top_genres[:3]) or "a mix of styles"

        if "energy" in f:
            energy, valence = f.get("energy", 0.0), f.get("valence", 0.0)
            pace = "restless and loud" if energy >= 0.66 else "laid-back" if energy < 0.4 else "steady"
            mood = "sunny" if valence >= 0.6 else "moody" if valence < 0.4 else "bittersweet"
            feel = f"The soundtrack ran {pace} and {mood}."
        else:
            pop = f.get("popularity", 0.0)
            feel = ("The picks leaned " + ("underground" if pop < 40 else "balanced" if pop < 65 else "mainstream") + ".")

        return (
            f"{era.era_name} ({era.timeframe}). {len(era.track_ids)} saved tracks, "
            f"built around {artists} and steeped in {genres}. {feel}"
        )


# --------------------------- Biography ---------------------------- #

def write_biography(eras: Sequence[Era], narrator: Narrator, fallback: Optional[Narrator] = None,
                    max_workers: int = 4) -> str:
    """Narrate every era (concurrently, order kept) and join with blank lines."""
    if not eras:
        return ""

    def one(era: Era) -> str:
        try:
            return narrator.narrate(era)
        except OpenAIError as e:
            if fallback is None:
                raise
            logger.warning("Narration failed for %s, using local fallback: %s", era.era_name, e)
            return fallback.narrate(era)

    with ThreadPoolExecutor(max_workers=min(max_workers, len(eras))) as ex:
        parts = list(ex.map(one, eras))
    return "\n\n".join(parts)


def rename_eras(eras: Sequence[Era], namer: Callable[[Era], str]) -> List[Era]:
    """Replace era names (e.g. k-means placeholders) with coined ones; blank names are ignored."""
    renamed = []
    for era in eras:
        name = namer(era).strip()
        renamed.append(dataclasses.replace(era, era_name=name) if name else era)
    return renamed

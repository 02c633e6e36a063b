# musical_eras/core/config.py
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import streamlit as st

from musical_eras.core.models import FeatureKind
from musical_eras.core.segment import SegmentPolicy


@dataclass(frozen=True)
class Settings:
    spotify_client_id: str
    spotify_client_secret: str
    spotify_redirect_uri: str = "http://localhost:8501"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    segment_policy: SegmentPolicy = SegmentPolicy.FIXED
    feature_kind: FeatureKind = FeatureKind.AUDIO
    log_level: str = "INFO"


def _lookup(secrets: Mapping[str, Any], key: str) -> Optional[str]:
    # st.secrets raises FileNotFoundError when no secrets.toml exists
    try:
        value = secrets.get(key)
    except FileNotFoundError:
        value = None
    return value or os.getenv(key)


def load_settings(secrets: Optional[Mapping[str, Any]] = None) -> Settings:
    """Read settings from Streamlit secrets first, then the environment."""
    if secrets is None:
        secrets = st.secrets

    client_id = _lookup(secrets, "SPOTIFY_CLIENT_ID")
    client_secret = _lookup(secrets, "SPOTIFY_CLIENT_SECRET")
    if not client_id or not client_secret:
        raise ValueError("Missing SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET in Streamlit Secrets (or env).")

    return Settings(
        spotify_client_id=client_id,
        spotify_client_secret=client_secret,
        spotify_redirect_uri=_lookup(secrets, "SPOTIFY_REDIRECT_URI") or Settings.spotify_redirect_uri,
        openai_api_key=_lookup(secrets, "OPENAI_API_KEY"),
        openai_model=_lookup(secrets, "OPENAI_MODEL") or Settings.openai_model,
        segment_policy=SegmentPolicy(_lookup(secrets, "ERA_POLICY") or SegmentPolicy.FIXED.value),
        feature_kind=FeatureKind(_lookup(secrets, "ERA_FEATURES") or FeatureKind.AUDIO.value),
        log_level=(_lookup(secrets, "LOG_LEVEL") or "INFO").upper(),
    )

# app.py: Musical Eras, saved-track history to eras to biography
import streamlit as st

from musical_eras.core.auth import SpotifyAuth, build_oauth, exchange_code
from musical_eras.core.config import load_settings
from musical_eras.core.errors import AuthExpired, UpstreamFetchFailure
from musical_eras.core.fetch import SpotifyLibrary
from musical_eras.core.logs import configure_logging
from musical_eras.core.narrate import OpenAINarrator, RuleBasedNarrator, rename_eras
from musical_eras.core.pipeline import EraPipeline
from musical_eras.core.segment import EraSegmenter, SegmentPolicy

# --- App config ---
st.set_page_config(page_title="Musical Eras", page_icon="🟢", layout="wide")

# --- Theme palette (shared) ---
PALETTE = ["#1b5e20","#2e7d32","#388e3c","#43a047","#4caf50",
           "#66bb6a","#81c784","#a5d6a7","#c8e6c9"]
PRIMARY = "#43a047"

from views.eras import render_eras
from views.biography import render_biography
from views.export import render_export

try:
    settings = load_settings()
except ValueError as e:
    st.error(str(e))
    st.stop()

configure_logging(settings.log_level)
oauth = build_oauth(settings)

# --- OAuth redirect ---
code = st.query_params.get("code")
login_error = None
if code and "tokens" not in st.session_state:
    try:
        st.session_state["tokens"] = exchange_code(oauth, code)
    except AuthExpired:
        login_error = "That Spotify login link has expired. Please connect again."
    st.query_params.clear()

if "tokens" not in st.session_state:
    st.title("🟢 Musical Eras")
    if login_error:
        st.warning(login_error)
    st.caption("Connect Spotify to turn your saved tracks into the chapters of your musical biography.")
    st.link_button("Connect Spotify", oauth.get_authorize_url(), type="primary")
    st.stop()

# --- Sidebar ---
with st.sidebar:
    if st.button("🔄 Re-analyze", use_container_width=True):
        for k in ("eras", "biography", "biography_source"):
            st.session_state.pop(k, None)
        st.rerun()
    st.divider()
    if st.button("Log out", use_container_width=True):
        for k in list(st.session_state.keys()):
            del st.session_state[k]
        st.rerun()

# --- Narration ---
if settings.openai_api_key:
    narrator = OpenAINarrator(api_key=settings.openai_api_key, model=settings.openai_model)
else:
    narrator = None
fallback = RuleBasedNarrator()

# --- Analysis ---
if "eras" not in st.session_state:
    # updated in place from fetch threads when the token is refreshed
    tokens = st.session_state["tokens"]
    auth = SpotifyAuth(oauth, tokens["access_token"], tokens.get("refresh_token"), on_refresh=tokens.update)
    pipeline = EraPipeline(
        SpotifyLibrary(auth),
        EraSegmenter(settings.segment_policy),
        feature_kind=settings.feature_kind,
    )

    with st.status("Reading your listening history…", state="running") as status:
        try:
            eras = pipeline.run()
        except AuthExpired:
            del st.session_state["tokens"]
            st.error("Your Spotify session expired. Please connect again.")
            st.stop()
        except UpstreamFetchFailure as e:
            st.error(f"Spotify is not cooperating right now: {e}")
            st.stop()

        if eras and narrator and settings.segment_policy is SegmentPolicy.KMEANS:
            status.update(label="Naming your eras…")
            eras = rename_eras(eras, narrator.name_era)
        status.update(label="Done ✅", state="complete")
    st.session_state["eras"] = eras

eras = st.session_state["eras"]
if not eras:
    st.info("Not enough listening history yet. Save at least 20 tracks and come back.")
    st.stop()

st.title("🟢 Your Musical Eras")
tab_eras, tab_bio, tab_export = st.tabs(["Eras", "Biography", "Export"])

with tab_eras:   render_eras(eras, PALETTE, PRIMARY)
with tab_bio:    render_biography(eras, narrator, fallback)
with tab_export: render_export(eras)

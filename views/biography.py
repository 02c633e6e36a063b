# views/biography.py
import streamlit as st

from musical_eras.core.narrate import write_biography


def render_biography(eras, narrator, fallback):
    st.subheader("Your musical biography")
    st.markdown(
        f"✨ **AI mode** — {narrator.model}" if narrator else
        "⚙️ **Local mode (free)** — AI key not configured"
    )

    c1, c2 = st.columns([1, 1])
    gen = c1.button("Write my biography", type="primary", use_container_width=True)
    regen = c2.button("Regenerate", use_container_width=True, help="Try a fresh take")

    if gen or regen:
        with st.spinner("Crafting your story…"):
            text = write_biography(eras, narrator or fallback, fallback=fallback)
        st.session_state["biography"] = text
        st.session_state["biography_source"] = narrator.model if narrator else "local-fallback"

    if st.session_state.get("biography"):
        st.markdown(st.session_state["biography"])
        st.caption(f"Source: {st.session_state['biography_source']}")

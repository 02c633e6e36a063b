# views/export.py
import json
import streamlit as st

from views.eras import eras_frame


def render_export(eras):
    """Export tab: eras as JSON/CSV, biography as text."""
    st.subheader("Download your data")

    payload = json.dumps([e.to_dict() for e in eras], indent=2)
    st.download_button(
        "Download eras (JSON)",
        payload.encode("utf-8"),
        file_name="musical_eras.json",
        mime="application/json",
        use_container_width=True,
    )

    csv_bytes = eras_frame(eras).to_csv(index=False).encode("utf-8")
    st.download_button(
        "Download era features (CSV)",
        csv_bytes,
        file_name="musical_eras_features.csv",
        mime="text/csv",
        use_container_width=True,
    )

    st.divider()
    bio = st.session_state.get("biography")
    if bio:
        st.download_button(
            "Download biography (TXT)",
            bio.encode("utf-8"),
            file_name="musical_biography.txt",
            mime="text/plain",
            use_container_width=True,
        )
    else:
        st.info("Write your biography first to export it.")

# views/eras.py
import pandas as pd
import altair as alt
import streamlit as st


def eras_frame(eras) -> pd.DataFrame:
    """Long-form (era, feature, value) rows for charting."""
    rows = [
        {"era": f"{i + 1}. {era.era_name}", "feature": feature, "value": value}
        for i, era in enumerate(eras)
        for feature, value in era.aggregate_features.items()
    ]
    return pd.DataFrame(rows, columns=["era", "feature", "value"])


def era_sizes_chart(eras, PRIMARY) -> alt.Chart:
    df = pd.DataFrame(
        [{"era": f"{i + 1}. {era.era_name}", "timeframe": era.timeframe, "tracks": len(era.track_ids)}
         for i, era in enumerate(eras)],
        columns=["era", "timeframe", "tracks"],
    )
    return (
        alt.Chart(df)
        .mark_bar(color=PRIMARY)
        .encode(
            x=alt.X("era:N", title=None, sort=list(df["era"])),
            y=alt.Y("tracks:Q", title="Tracks"),
            tooltip=["era:N", "timeframe:N", "tracks:Q"],
        )
        .properties(height=220)
    )


def render_eras(eras, PALETTE, PRIMARY):
    """Eras tab: one card per era plus size and feature comparison charts."""
    st.caption(f"{len(eras)} eras • {sum(len(e.track_ids) for e in eras)} tracks")

    for i, era in enumerate(eras):
        with st.container(border=True):
            st.subheader(f"{i + 1}. {era.era_name}")
            st.caption(f"{era.timeframe} • {len(era.track_ids)} tracks")
            c1, c2 = st.columns(2)
            c1.markdown("**Top artists**  \n" + ("  \n".join(era.top_artists) or "—"))
            c2.markdown("**Top genres**  \n" + ("  \n".join(era.top_genres) or "—"))

    st.subheader("Tracks per era")
    st.altair_chart(era_sizes_chart(eras, PRIMARY), use_container_width=True)

    df = eras_frame(eras)
    # popularity / release year live on different scales than audio features
    df = df[df["feature"] != "release_year"]
    if df.empty:
        return

    st.subheader("How each era sounds")
    chart = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("feature:N", title=None),
            y=alt.Y("value:Q", title="Average"),
            color=alt.Color("feature:N", legend=None, scale=alt.Scale(range=PALETTE)),
            column=alt.Column("era:N", title=None, sort=list(df["era"].unique())),
            tooltip=["era:N", "feature:N", alt.Tooltip("value:Q", format=".2f")],
        )
        .properties(height=260)
    )
    st.altair_chart(chart)

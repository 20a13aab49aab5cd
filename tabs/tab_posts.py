"""Tab 2 — Posts."""
import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from analytics.models import AnalysisReport
from config.settings import MIN_DELIVERED_FOR_RATE
from exporters.files import per_post_frame

PURPLE = "#7C3AED"

COLUMN_LABELS = {
    "post_id": "ID", "title": "Title", "date": "Date", "type": "Type",
    "audience": "Audience", "delivered": "Delivered", "opened": "Opens (raw)",
    "unique_openers": "Unique Opens", "open_rate": "Open Rate (%)",
}


def _top_table(posts) -> pd.DataFrame:
    return per_post_frame(posts).drop(columns=["post_id", "opened"]).rename(columns=COLUMN_LABELS)


def render(report: AnalysisReport):
    st.header("Posts")

    if not report.post_analytics:
        st.info("No open or delivery logs matched any published post.")
        return

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Top by Unique Opens")
        st.dataframe(_top_table(report.top_posts_by_opens),
                     use_container_width=True, hide_index=True)
    with col2:
        st.subheader("Top by Open Rate")
        st.caption(f"Posts with at least {MIN_DELIVERED_FOR_RATE} deliveries")
        st.dataframe(_top_table(report.top_posts_by_open_rate),
                     use_container_width=True, hide_index=True)

    df = per_post_frame(report.post_analytics)

    st.subheader("Open Rate by Post")
    recent = df[df["delivered"] > 0].head(30).iloc[::-1]
    if not recent.empty:
        fig = go.Figure()
        fig.add_trace(go.Bar(
            x=recent["title"].where(recent["title"] != "", recent["post_id"]),
            y=recent["open_rate"],
            marker_color=PURPLE,
        ))
        fig.update_layout(
            xaxis_title="Post",
            yaxis_title="Open Rate (%)",
            height=400,
            xaxis_tickangle=-30,
        )
        st.plotly_chart(fig, use_container_width=True)

    st.subheader("All Posts")
    types = sorted(df["type"].unique())
    chosen = st.multiselect("Type", types, default=types, key="posts_type_filter")
    st.dataframe(
        df[df["type"].isin(chosen)].rename(columns=COLUMN_LABELS),
        use_container_width=True,
        hide_index=True,
    )
    st.download_button(
        "Download CSV",
        df.to_csv(index=False).encode("utf-8"),
        file_name="per-post-metrics.csv",
        mime="text/csv",
        key="posts_csv_download",
    )

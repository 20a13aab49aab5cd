"""Tab 3 — Subscribers."""
import plotly.graph_objects as go
import streamlit as st

from analytics.engagement import ranked
from analytics.models import AnalysisReport
from exporters.files import subscriber_frame

PURPLE = "#7C3AED"

SEGMENTS = {"All": "all", "Active": "active", "Paid": "paid", "Free": "free", "Churned": "churned"}


def render(report: AnalysisReport):
    st.header("Subscribers")

    stats = report.subscriber_stats
    segments = report.subscriber_segments
    if stats is None or segments is None:
        st.info("This export has no subscriber list.")
        return

    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Active", f"{stats.active:,}")
    k2.metric("Inactive", f"{stats.inactive:,}")
    k3.metric("Email Disabled", f"{stats.email_disabled:,}")
    k4.metric("Churned", f"{stats.churned:,}")

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("By Plan")
        plans = ranked(stats.by_plan)
        fig = go.Figure(go.Pie(
            labels=[p for p, _ in plans],
            values=[n for _, n in plans],
            hole=0.45,
        ))
        fig.update_layout(height=350)
        st.plotly_chart(fig, use_container_width=True)

    with col2:
        st.subheader("Growth")
        months = list(stats.by_month)
        counts = list(stats.by_month.values())
        running, cumulative = 0, []
        for n in counts:
            running += n
            cumulative.append(running)
        fig = go.Figure()
        fig.add_trace(go.Bar(x=months, y=counts, name="New", marker_color=PURPLE))
        fig.add_trace(go.Scatter(x=months, y=cumulative, name="Cumulative",
                                 mode="lines", yaxis="y2"))
        fig.update_layout(
            yaxis=dict(title="New"),
            yaxis2=dict(title="Cumulative", overlaying="y", side="right"),
            hovermode="x unified",
            height=350,
        )
        st.plotly_chart(fig, use_container_width=True)

    st.subheader("Segment")
    label = st.radio("Show", list(SEGMENTS), horizontal=True, key="subs_segment")
    df = subscriber_frame(getattr(segments, SEGMENTS[label]))
    st.caption(f"{len(df):,} subscribers")
    st.dataframe(df, use_container_width=True, hide_index=True)
    st.download_button(
        "Download CSV",
        df.to_csv(index=False).encode("utf-8"),
        file_name=f"{SEGMENTS[label]}-subscribers.csv",
        mime="text/csv",
        key="subs_csv_download",
    )

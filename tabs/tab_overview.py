"""Tab 1 — Overview."""
import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from analytics.models import AnalysisReport
from analytics.report import jsonable

PURPLE = "#7C3AED"
GREEN = "#10B981"


def _fmt(value) -> str:
    return f"{value:,}" if value is not None else "—"


def render(report: AnalysisReport):
    st.header("Overview")
    ov = report.overview

    st.subheader("Email")
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Published Posts", _fmt(ov.total_posts))
    k2.metric("Emails Delivered", _fmt(ov.total_delivered))
    k3.metric("Total Opens", _fmt(ov.total_opened))
    k4.metric("Avg Open Rate", f"{ov.average_open_rate:.1f}%")

    st.subheader("Subscribers")
    s1, s2, s3, s4, s5 = st.columns(5)
    s1.metric("Total", _fmt(ov.total_subscribers))
    s2.metric("Active", _fmt(ov.active_subscribers))
    s3.metric("Paid", _fmt(ov.paid_subscribers))
    s4.metric("Free", _fmt(ov.free_subscribers))
    s5.metric("Churned", _fmt(ov.churned_subscribers))

    if not report.monthly_trends:
        st.info("No dated posts or signups to chart.")
        return

    df = pd.DataFrame(jsonable(report.monthly_trends))

    st.subheader("Monthly Trends")
    fig = go.Figure()
    fig.add_trace(go.Bar(x=df["month"], y=df["posts"], name="Posts", marker_color=PURPLE))
    fig.add_trace(go.Scatter(
        x=df["month"], y=df["open_rate"], name="Open Rate (%)",
        mode="lines+markers", yaxis="y2", line=dict(color=GREEN, width=2),
    ))
    fig.update_layout(
        xaxis_title="Month",
        yaxis=dict(title="Posts"),
        yaxis2=dict(title="Open Rate (%)", overlaying="y", side="right", rangemode="tozero"),
        hovermode="x unified",
        height=380,
    )
    st.plotly_chart(fig, use_container_width=True)

    st.dataframe(
        df.rename(columns={
            "month": "Month", "posts": "Posts", "new_subscribers": "New Subs",
            "cumulative_subscribers": "Cumulative", "delivered": "Delivered",
            "opened": "Unique Opens", "open_rate": "Open Rate (%)",
        }),
        use_container_width=True,
        hide_index=True,
    )

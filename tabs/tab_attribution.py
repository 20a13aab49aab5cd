"""Tab 5 — Signup attribution."""
import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from analytics.models import AnalysisReport
from utils.helpers import fmt_date, truncate

PURPLE = "#7C3AED"
GREY = "#9CA3AF"


def render(report: AnalysisReport):
    st.header("Signup Attribution")

    if not report.attribution:
        st.info("Attribution needs a subscriber list with signup dates.")
        return

    st.caption("Each signup is credited to the most recent post published within the "
               "window before it. Everything else is organic.")

    labels = [f"{r.window_days}-day" for r in report.attribution]
    fig = go.Figure()
    fig.add_trace(go.Bar(x=labels, y=[r.total_attributed for r in report.attribution],
                         name="Attributed", marker_color=PURPLE))
    fig.add_trace(go.Bar(x=labels, y=[r.organic_signups for r in report.attribution],
                         name="Organic", marker_color=GREY))
    fig.update_layout(barmode="stack", xaxis_title="Window", yaxis_title="Subscribers", height=320)
    st.plotly_chart(fig, use_container_width=True)

    by_label = dict(zip(labels, report.attribution))
    chosen = st.selectbox("Window", labels, key="attribution_window")
    result = by_label[chosen]

    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Attributed", f"{result.total_attributed:,}")
    k2.metric("Organic", f"{result.organic_signups:,}")
    k3.metric("Undated", f"{result.undated_signups:,}")
    k4.metric("Coverage", f"{result.attribution_coverage:.1f}%")

    if not result.post_attributions:
        st.info("No signups fell inside this window.")
        return

    df = pd.DataFrame([{
        "Title": truncate(pa.title, 60),
        "Date": fmt_date(pa.post_date),
        "Signups": pa.attributed_total,
        "Paid": pa.attributed_paid,
        "Free": pa.attributed_free,
        "Avg Days": pa.avg_days_to_signup,
    } for pa in result.post_attributions])
    st.dataframe(df, use_container_width=True, hide_index=True)

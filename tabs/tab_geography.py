"""Tab 4 — Geography, devices and open times."""
import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from analytics.engagement import ranked
from analytics.models import AnalysisReport
from exporters.files import WEEKDAY_NAMES, geo_distribution

PURPLE = "#7C3AED"


def _bar(labels, values, x_title: str, height: int = 350) -> go.Figure:
    fig = go.Figure(go.Bar(x=labels, y=values, marker_color=PURPLE))
    fig.update_layout(xaxis_title=x_title, yaxis_title="Opens", height=height)
    return fig


def render(report: AnalysisReport):
    st.header("Geography & Devices")

    dist = report.distribution
    if dist.total_opens == 0:
        st.info("No open events in this export.")
        return

    st.caption(f"{dist.total_opens:,} opens across all posts")

    st.subheader("Top Countries")
    geo = pd.DataFrame(geo_distribution(report))
    st.plotly_chart(_bar(geo["country"], geo["count"], "Country"), use_container_width=True)
    st.dataframe(geo.rename(columns={"country": "Country", "count": "Opens",
                                     "percentage": "Share (%)"}),
                 use_container_width=True, hide_index=True)

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Devices")
        devices = ranked(dist.devices)
        fig = go.Figure(go.Pie(labels=[d for d, _ in devices], values=[n for _, n in devices], hole=0.45))
        fig.update_layout(height=320)
        st.plotly_chart(fig, use_container_width=True)
    with col2:
        st.subheader("Email Clients")
        clients = ranked(dist.clients, 10)
        st.plotly_chart(_bar([c for c, _ in clients], [n for _, n in clients], "Client", 320),
                        use_container_width=True)

    col3, col4 = st.columns(2)
    with col3:
        st.subheader("Opens by Hour")
        st.plotly_chart(_bar(list(range(24)), list(dist.hours), "Hour of day"),
                        use_container_width=True)
    with col4:
        st.subheader("Opens by Weekday")
        st.plotly_chart(_bar(list(WEEKDAY_NAMES), list(dist.weekdays), "Day"),
                        use_container_width=True)

"""Streamlit entry point — Substack Export Analytics Dashboard."""
import sys
import tempfile
from pathlib import Path

# Ensure project root is on sys.path so all imports work
sys.path.insert(0, str(Path(__file__).parent))

import streamlit as st

from analytics.report import build_report
from config.settings import ARCHIVE_DIR, ATTRIBUTION_WINDOWS, PUBLICATION_NAME, REPORT_TIMEZONE
from substack.archive import ArchiveError, load_export
from utils.logger import get_logger

log = get_logger(__name__)

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="Substack Export Analytics",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
)


# ---------------------------------------------------------------------------
# Loading (cached per archive + settings)
# ---------------------------------------------------------------------------
@st.cache_data(show_spinner="Analyzing export...")
def _analyze_path(path: str, windows: tuple, tz_name: str, publication: str):
    export = load_export(Path(path))
    return build_report(export, windows=windows, timezone_name=tz_name, publication=publication)


@st.cache_data(show_spinner="Analyzing upload...")
def _analyze_upload(data: bytes, windows: tuple, tz_name: str, publication: str):
    with tempfile.TemporaryDirectory() as tmp:
        zip_path = Path(tmp) / "export.zip"
        zip_path.write_bytes(data)
        export = load_export(zip_path)
        return build_report(export, windows=windows, timezone_name=tz_name, publication=publication)


def _parse_windows(text: str) -> tuple:
    days = tuple(int(p) for p in text.replace(" ", "").split(",") if p.isdigit() and int(p) > 0)
    return days or ATTRIBUTION_WINDOWS


# ---------------------------------------------------------------------------
# Sidebar — archive source + settings
# ---------------------------------------------------------------------------
with st.sidebar:
    st.title("📊 Export Analytics")
    st.divider()

    st.subheader("Archive")
    upload = st.file_uploader("Upload export (.zip)", type=["zip"], key="archive_upload")
    archive_path = st.text_input(
        "…or path to an export folder / zip",
        value=str(ARCHIVE_DIR),
        key="archive_path",
    )

    st.divider()
    st.subheader("Settings")
    publication = st.text_input("Publication name", value=PUBLICATION_NAME, key="publication")
    windows_text = st.text_input(
        "Attribution windows (days)",
        value=",".join(str(w) for w in ATTRIBUTION_WINDOWS),
        help="Comma-separated, e.g. 1,2,7",
        key="windows",
    )
    tz_name = st.text_input(
        "Timezone for open times",
        value=REPORT_TIMEZONE,
        placeholder="e.g. America/New_York (blank = server local)",
        key="tz_name",
    )

windows = _parse_windows(windows_text)

try:
    if upload is not None:
        report = _analyze_upload(upload.getvalue(), windows, tz_name, publication)
    else:
        report = _analyze_path(archive_path, windows, tz_name, publication)
except ArchiveError as exc:
    st.title("Substack Export Analytics")
    st.error(str(exc))
    st.info("Upload a Substack export zip or point the sidebar at an extracted export folder.")
    st.stop()

st.title(f"{report.publication} — Analytics")
if not report.has_subscribers:
    st.warning("No subscriber list (email_list*.csv) in this export. "
               "Subscriber and attribution views are empty.")

# ---------------------------------------------------------------------------
# Tab routing
# ---------------------------------------------------------------------------
tab1, tab2, tab3, tab4, tab5 = st.tabs([
    "📈 Overview",
    "📝 Posts",
    "👥 Subscribers",
    "🌍 Geography",
    "🎯 Attribution",
])

with tab1:
    from tabs.tab_overview import render as render_overview
    render_overview(report)

with tab2:
    from tabs.tab_posts import render as render_posts
    render_posts(report)

with tab3:
    from tabs.tab_subscribers import render as render_subscribers
    render_subscribers(report)

with tab4:
    from tabs.tab_geography import render as render_geography
    render_geography(report)

with tab5:
    from tabs.tab_attribution import render as render_attribution
    render_attribution(report)

"""Human-readable analytics report: Markdown text and its HTML rendering."""
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

import markdown

from analytics.engagement import ranked
from analytics.models import AnalysisReport, PostAnalytics
from config.settings import TOP_POSTS_LIMIT
from utils.helpers import truncate

TITLE_WIDTH = 40
TOP_COUNTRIES = 15
TOP_DEVICES = 10
GROWTH_MONTHS = 12

_HTML_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: -apple-system, "Segoe UI", sans-serif; max-width: 960px; margin: 2rem auto; padding: 0 1rem; }}
table {{ border-collapse: collapse; margin: 1rem 0; }}
th, td {{ border: 1px solid #ddd; padding: 4px 10px; text-align: left; }}
th {{ background: #f4f4f4; }}
</style>
</head>
<body>
{body}
</body>
</html>
"""


def _num(n) -> str:
    return f"{n:,}"


def _pct(n: float) -> str:
    return f"{n:.1f}%"


def _date(dt: Optional[datetime]) -> str:
    return f"{dt:%b} {dt.day}, {dt.year}" if dt else "N/A"


def _month_label(month: str) -> str:
    return datetime.strptime(month, "%Y-%m").strftime("%b %Y")


def _table(headers: Sequence[str], rows: Iterable[Sequence]) -> List[str]:
    lines = ["| " + " | ".join(headers) + " |",
             "|" + "|".join("-" * (len(h) + 2) for h in headers) + "|"]
    for row in rows:
        lines.append("| " + " | ".join(str(c).replace("|", "\\|") for c in row) + " |")
    lines.append("")
    return lines


def _post_rows(posts: Sequence[PostAnalytics], rate_first: bool) -> List[Tuple]:
    rows = []
    for i, pa in enumerate(posts, 1):
        title = truncate(pa.title, TITLE_WIDTH)
        if rate_first:
            rows.append((i, title, _date(pa.post_date), _pct(pa.open_rate),
                         _num(pa.unique_openers), _num(pa.delivered)))
        else:
            rows.append((i, title, _date(pa.post_date), _num(pa.unique_openers),
                         _num(pa.delivered), _pct(pa.open_rate)))
    return rows


def render_markdown(report: AnalysisReport) -> str:
    ov = report.overview
    stats = report.subscriber_stats
    limit = TOP_POSTS_LIMIT
    out = [f"# {report.publication} - Analytics Report", "", "---", ""]

    # ---- Overview -------------------------------------------------------
    overview = [
        ("Total Posts Analyzed", _num(ov.total_posts)),
        ("Posts with Email Analytics", _num(ov.posts_with_analytics)),
        ("Total Emails Delivered", _num(ov.total_delivered)),
        ("Total Opens", _num(ov.total_opened)),
        ("Average Open Rate", _pct(ov.average_open_rate)),
    ]
    if stats is not None:
        overview += [
            ("Total Subscribers", _num(stats.total)),
            ("Active Subscribers", _num(stats.active)),
            ("Paid Subscribers", _num(stats.paid)),
        ]
    out += ["## Overview", ""] + _table(("Metric", "Value"), overview) + ["---", ""]

    # ---- Top posts ------------------------------------------------------
    out += [f"## Top {limit} Posts by Opens", ""]
    out += _table(("#", "Title", "Date", "Opens", "Delivered", "Rate"),
                  _post_rows(report.top_posts_by_opens, rate_first=False))
    out += ["---", ""]
    out += [f"## Top {limit} Posts by Open Rate (min. 100 delivered)", ""]
    out += _table(("#", "Title", "Date", "Rate", "Opens", "Delivered"),
                  _post_rows(report.top_posts_by_open_rate, rate_first=True))
    out += ["---", ""]

    # ---- Geography and devices -----------------------------------------
    dist = report.distribution
    out += ["## Geographic Distribution", ""]
    out += _table(("Country", "Opens"),
                  ((c, _num(n)) for c, n in ranked(dist.countries, TOP_COUNTRIES)))
    out += ["---", ""]

    out += ["## Monthly Trends", ""]
    out += _table(("Month", "Posts", "Delivered", "Opens", "Open Rate"),
                  ((_month_label(t.month), t.posts, _num(t.delivered), _num(t.opened),
                    _pct(t.open_rate)) for t in report.monthly_trends))
    out += ["---", ""]

    if dist.devices:
        out += ["## Device Distribution", ""]
        out += _table(("Device", "Opens"),
                      ((d, _num(n)) for d, n in ranked(dist.devices, TOP_DEVICES)))
        out += ["---", ""]

    # ---- Attribution ----------------------------------------------------
    for result in report.attribution:
        out += [f"## Signup Attribution ({result.window_days}-day window)", ""]
        out += _table(("Metric", "Value"), (
            ("Attributed Signups", _num(result.total_attributed)),
            ("Organic Signups", _num(result.organic_signups)),
            ("Undated Signups", _num(result.undated_signups)),
            ("Coverage", _pct(result.attribution_coverage)),
        ))
        out += _table(("#", "Title", "Date", "Signups", "Paid", "Free", "Avg Days"), (
            (i, truncate(pa.title, TITLE_WIDTH), _date(pa.post_date), pa.attributed_total,
             pa.attributed_paid, pa.attributed_free, pa.avg_days_to_signup)
            for i, pa in enumerate(result.post_attributions[:limit], 1)
        ))
        out += ["---", ""]

    # ---- Subscribers ----------------------------------------------------
    if stats is not None:
        out += ["## Subscriber Breakdown", "", "### By Status", ""]
        out += _table(("Status", "Count"), (
            ("Active", _num(stats.active)),
            ("Inactive", _num(stats.inactive)),
            ("Email Disabled", _num(stats.email_disabled)),
        ))
        out += ["### By Plan", ""]
        out += _table(("Plan", "Count"), ((p, _num(n)) for p, n in ranked(stats.by_plan)))
        out += ["### Subscriber Growth by Month", ""]
        recent = list(stats.by_month.items())[-GROWTH_MONTHS:]
        out += _table(("Month", "New Subscribers"),
                      ((_month_label(m), _num(n)) for m, n in recent))

    return "\n".join(out).rstrip() + "\n"


def render_html(report: AnalysisReport, text: Optional[str] = None) -> str:
    body = markdown.markdown(text if text is not None else render_markdown(report),
                             extensions=["tables"])
    return _HTML_PAGE.format(title=f"{report.publication} - Analytics Report", body=body)

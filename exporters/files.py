"""Write report outputs to disk: dashboard JSON, CSV tables, Markdown content."""
import json
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

import pandas as pd

from analytics.engagement import ranked
from analytics.models import AnalysisReport, PostAnalytics, SubscriberSegments, SubscriberStats
from analytics.report import jsonable, report_to_dict
from config.settings import PUBLICATION_NAME
from content.converter import convert_post_to_markdown, exportable_posts, post_filenames, render_archive
from exporters.markdown_report import render_html, render_markdown
from substack.models import Post, Subscriber
from utils.helpers import fmt_date, percentage
from utils.logger import get_logger

log = get_logger(__name__)

GEO_LIMIT = 20
WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
SUBSCRIBER_COLUMNS = ["email", "active_subscription", "expiry", "plan",
                      "email_disabled", "created_at", "first_payment_at"]
POST_METRIC_COLUMNS = ["post_id", "title", "date", "type", "audience",
                       "delivered", "opened", "unique_openers", "open_rate"]


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


def write_text(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def newest_first(analytics: Iterable[PostAnalytics]) -> List[PostAnalytics]:
    """Date descending, undated last."""
    return sorted(analytics, key=lambda pa: -pa.post_date.timestamp() if pa.post_date else float("inf"))


# ---------------------------------------------------------------------------
# Dashboard JSON
# ---------------------------------------------------------------------------

def _post_summary(pa: PostAnalytics) -> dict:
    return {
        "post_id": pa.post_id,
        "title": pa.title,
        "date": pa.post_date.isoformat() if pa.post_date else None,
        "type": pa.type,
        "audience": pa.audience,
        "delivered": pa.delivered,
        "opens": pa.unique_openers,
        "open_rate": pa.open_rate,
    }


def geo_distribution(report: AnalysisReport, limit: int = GEO_LIMIT) -> List[dict]:
    total = report.distribution.total_opens
    return [{"country": country, "count": count, "percentage": percentage(count, total)}
            for country, count in ranked(report.distribution.countries, limit)]


def engagement_times(report: AnalysisReport) -> dict:
    dist = report.distribution
    return {
        "hours": [{"hour": h, "opens": n} for h, n in enumerate(dist.hours)],
        "weekdays": [{"day": WEEKDAY_NAMES[d], "opens": n} for d, n in enumerate(dist.weekdays)],
        "devices": dict(ranked(dist.devices)),
        "clients": dict(ranked(dist.clients)),
    }


def dashboard_payloads(report: AnalysisReport) -> Dict[str, object]:
    """File stem → JSON document for every dashboard file."""
    stats = report.subscriber_stats
    return {
        "overview": jsonable(report.overview),
        "monthly-trends": jsonable(report.monthly_trends),
        "top-posts": {
            "by_opens": [_post_summary(pa) for pa in report.top_posts_by_opens],
            "by_open_rate": [_post_summary(pa) for pa in report.top_posts_by_open_rate],
        },
        "geo-distribution": geo_distribution(report),
        "subscriber-growth": [{"month": m, "count": n}
                              for m, n in (stats.by_month.items() if stats else ())],
        "all-posts": [_post_summary(pa) for pa in newest_first(report.post_analytics)],
        "subscriber-stats": jsonable(stats),
        "attribution": jsonable(report.attribution),
        "engagement-times": engagement_times(report),
        "report": report_to_dict(report),
    }


def write_dashboard(report: AnalysisReport, out_dir: Path) -> List[Path]:
    target = Path(out_dir) / "dashboard"
    written = [write_json(target / f"{stem}.json", data)
               for stem, data in dashboard_payloads(report).items()]
    log.info("Wrote %d dashboard files to %s", len(written), target)
    return written


# ---------------------------------------------------------------------------
# Analytics report + per-post CSV
# ---------------------------------------------------------------------------

def per_post_frame(analytics: Sequence[PostAnalytics]) -> pd.DataFrame:
    rows = [{
        "post_id": pa.post_id,
        "title": pa.title,
        "date": fmt_date(pa.post_date),
        "type": pa.type,
        "audience": pa.audience,
        "delivered": pa.delivered,
        "opened": pa.opened,
        "unique_openers": pa.unique_openers,
        "open_rate": pa.open_rate,
    } for pa in newest_first(analytics)]
    return pd.DataFrame(rows, columns=POST_METRIC_COLUMNS)


def write_analytics(report: AnalysisReport, out_dir: Path) -> List[Path]:
    target = Path(out_dir) / "analytics"
    text = render_markdown(report)
    written = [
        write_text(target / "analytics-report.md", text),
        write_text(target / "analytics-report.html", render_html(report, text)),
    ]
    csv_path = target / "per-post-metrics.csv"
    per_post_frame(report.post_analytics).to_csv(csv_path, index=False)
    written.append(csv_path)
    log.info("Analytics report written to %s", target)
    return written


# ---------------------------------------------------------------------------
# Subscriber segments
# ---------------------------------------------------------------------------

def _flag(value: bool) -> str:
    return "true" if value else "false"


def subscriber_frame(subscribers: Sequence[Subscriber]) -> pd.DataFrame:
    rows = [{
        "email": s.email,
        "active_subscription": _flag(s.active_subscription),
        "expiry": s.expiry.isoformat() if s.expiry else "",
        "plan": s.plan,
        "email_disabled": _flag(s.email_disabled),
        "created_at": s.created_at.isoformat() if s.created_at else "",
        "first_payment_at": s.first_payment_at.isoformat() if s.first_payment_at else "",
    } for s in subscribers]
    return pd.DataFrame(rows, columns=SUBSCRIBER_COLUMNS)


def write_subscribers(segments: SubscriberSegments, stats: SubscriberStats,
                      out_dir: Path) -> List[Path]:
    target = Path(out_dir) / "subscribers"
    target.mkdir(parents=True, exist_ok=True)
    written = []
    for name in ("all", "active", "paid", "free", "churned"):
        path = target / f"{name}-subscribers.csv"
        subscriber_frame(getattr(segments, name)).to_csv(path, index=False)
        written.append(path)
    written.append(write_json(target / "all-subscribers.json", jsonable(segments.all)))
    summary = {**jsonable(stats), "segments": segments.sizes()}
    written.append(write_json(target / "summary.json", summary))
    log.info("Subscriber export: %d total, %d active, %d paid, %d free, %d churned",
             stats.total, stats.active, stats.paid, stats.free, stats.churned)
    return written


# ---------------------------------------------------------------------------
# Post content
# ---------------------------------------------------------------------------

def write_content(posts: Iterable[Post], out_dir: Path,
                  publication: str = PUBLICATION_NAME,
                  individual: bool = True) -> List[Path]:
    """content/all-posts.md plus, optionally, content/individual/<date>-<slug>.md."""
    posts = tuple(posts)
    target = Path(out_dir) / "content"
    written = [write_text(target / "all-posts.md", render_archive(posts, publication))]
    ordered = exportable_posts(posts)
    if individual:
        for i, (post, name) in enumerate(zip(ordered, post_filenames(ordered)), 1):
            written.append(write_text(target / "individual" / name,
                                      convert_post_to_markdown(post)))
            if i % 50 == 0:
                log.debug("Converted %d/%d posts", i, len(ordered))
    log.info("Exported %d posts to %s", len(ordered), target)
    return written


def write_all(report: AnalysisReport, out_dir: Path) -> List[Path]:
    """Every output the pipeline produces. Subscriber files only when a roster was loaded."""
    out_dir = Path(out_dir)
    written = write_content(report.posts, out_dir, report.publication)
    if report.subscriber_segments is not None:
        written += write_subscribers(report.subscriber_segments, report.subscriber_stats, out_dir)
    written += write_analytics(report, out_dir)
    written += write_dashboard(report, out_dir)
    return written

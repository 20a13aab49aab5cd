"""Pipeline entry point and report assembly."""
import json
from dataclasses import fields, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

from pydantic import BaseModel

from analytics.attribution import attribute_windows
from analytics.engagement import analyze_engagement, ranked, resolve_timezone, summarize_engagement
from analytics.models import (
    AnalysisReport, AttributionResult, EngagementSummary, MonthlyTrend, OpenDistribution,
    Overview, PostAnalytics, SubscriberSegments, SubscriberStats,
)
from analytics.segmentation import calculate_subscriber_stats, segment_subscribers
from analytics.trends import calculate_monthly_trends
from config.settings import ATTRIBUTION_WINDOWS, PUBLICATION_NAME, REPORT_TIMEZONE, TOP_POSTS_LIMIT
from substack.archive import ExportData, load_export
from substack.models import Post
from utils.logger import get_logger

log = get_logger(__name__)


def assemble_report(publication: str,
                    posts: Iterable[Post],
                    post_analytics: Sequence[PostAnalytics],
                    engagement: EngagementSummary,
                    monthly_trends: Sequence[MonthlyTrend],
                    subscriber_stats: Optional[SubscriberStats],
                    subscriber_segments: Optional[SubscriberSegments],
                    attribution: Sequence[AttributionResult]) -> AnalysisReport:
    """Shape component outputs into one report. No analytics happen here."""
    posts = tuple(posts)
    stats = subscriber_stats
    overview = Overview(
        total_posts=sum(1 for p in posts if p.is_published),
        posts_with_analytics=engagement.posts_with_analytics,
        total_delivered=engagement.total_delivered,
        total_opened=engagement.total_opened,
        average_open_rate=engagement.average_open_rate,
        total_subscribers=stats.total if stats else None,
        active_subscribers=stats.active if stats else None,
        paid_subscribers=stats.paid if stats else None,
        free_subscribers=stats.free if stats else None,
        churned_subscribers=stats.churned if stats else None,
    )
    return AnalysisReport(
        publication=publication,
        overview=overview,
        posts=posts,
        post_analytics=tuple(post_analytics),
        monthly_trends=tuple(monthly_trends),
        top_posts_by_opens=engagement.top_by_opens,
        top_posts_by_open_rate=engagement.top_by_open_rate,
        distribution=engagement.distribution,
        subscriber_stats=subscriber_stats,
        subscriber_segments=subscriber_segments,
        attribution=tuple(attribution),
    )


def build_report(export: ExportData,
                 windows: Sequence[int] = ATTRIBUTION_WINDOWS,
                 timezone_name: Optional[str] = REPORT_TIMEZONE,
                 publication: str = PUBLICATION_NAME,
                 limit: int = TOP_POSTS_LIMIT) -> AnalysisReport:
    """
    Run every component over a loaded export. Without a subscriber roster the
    subscriber fields are None and attribution is empty; engagement and trends
    are still produced.
    """
    tz = resolve_timezone(timezone_name)
    subscribers = export.subscribers

    if subscribers is not None:
        stats = calculate_subscriber_stats(subscribers)
        segments = segment_subscribers(subscribers)
        attribution = attribute_windows(export.posts, subscribers, windows)
    else:
        log.info("No subscriber roster: segmentation and attribution skipped")
        stats, segments, attribution = None, None, ()

    post_analytics = analyze_engagement(export.posts, export.opens, export.delivers, tz)
    engagement = summarize_engagement(post_analytics, export.unmatched_opens, tz, limit)
    trends = calculate_monthly_trends(
        export.posts, stats.by_month if stats else {}, post_analytics,
    )

    return assemble_report(
        publication, export.posts, post_analytics, engagement, trends,
        stats, segments, attribution,
    )


def analyze_archive(path, windows: Sequence[int] = ATTRIBUTION_WINDOWS,
                    timezone_name: Optional[str] = REPORT_TIMEZONE,
                    publication: str = PUBLICATION_NAME) -> Tuple[ExportData, AnalysisReport]:
    """load_export + build_report. ArchiveError propagates."""
    export = load_export(Path(path))
    report = build_report(export, windows=windows, timezone_name=timezone_name,
                          publication=publication)
    return export, report


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def jsonable(value):
    """Dataclasses, models, datetimes and containers → plain JSON types."""
    if isinstance(value, OpenDistribution):
        return {
            "countries": dict(ranked(value.countries)),
            "devices": dict(ranked(value.devices)),
            "clients": dict(ranked(value.clients)),
            "hours": list(value.hours),
            "weekdays": list(value.weekdays),
            "total_opens": value.total_opens,
        }
    if isinstance(value, BaseModel):
        return jsonable(value.model_dump(exclude={"html_content"}))
    if is_dataclass(value):
        return {f.name: jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def report_to_dict(report: AnalysisReport) -> dict:
    """JSON-ready report. Subscriber rows are reduced to segment sizes."""
    data = {f.name: jsonable(getattr(report, f.name))
            for f in fields(report) if f.name != "subscriber_segments"}
    segments = report.subscriber_segments
    data["subscriber_segments"] = segments.sizes() if segments is not None else None
    return data


def report_to_json(report: AnalysisReport) -> str:
    return json.dumps(report_to_dict(report), indent=2, ensure_ascii=False)

"""Per-post email engagement and global open distributions."""
from datetime import tzinfo
from functools import reduce
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from analytics.models import (
    DAYS_IN_WEEK, HOURS_IN_DAY, EngagementSummary, OpenDistribution, PostAnalytics,
)
from config.settings import MIN_DELIVERED_FOR_RATE, TOP_POSTS_LIMIT
from substack.models import DeliverEvent, OpenEvent, Post
from utils.helpers import percentage, round_half_up
from utils.logger import get_logger

log = get_logger(__name__)


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """IANA name → tzinfo. None means the machine's local zone."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        log.warning("Unknown timezone %r, falling back to system local time", name)
        return None


def _bump(counts: Dict[str, int], key: str) -> None:
    counts[key] = counts.get(key, 0) + 1


def _merge_counts(a: Mapping[str, int], b: Mapping[str, int]) -> Dict[str, int]:
    merged = dict(a)
    for key, count in b.items():
        merged[key] = merged.get(key, 0) + count
    return merged


def ranked(counts: Mapping[str, int], limit: Optional[int] = None) -> List[Tuple[str, int]]:
    """Count descending, key ascending: a stable order independent of insertion."""
    items = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return items[:limit] if limit is not None else items


def tally_opens(opens: Iterable[OpenEvent], tz: Optional[tzinfo] = None) -> OpenDistribution:
    """Raw (not deduplicated) open counts per country/device/client/hour/weekday."""
    countries: Dict[str, int] = {}
    devices: Dict[str, int] = {}
    clients: Dict[str, int] = {}
    hours = [0] * HOURS_IN_DAY
    weekdays = [0] * DAYS_IN_WEEK
    total = 0

    for event in opens:
        total += 1
        _bump(countries, event.country)
        _bump(devices, event.device_type)
        _bump(clients, event.client_type)
        if event.timestamp is not None:
            local = event.timestamp.astimezone(tz)
            hours[local.hour] += 1
            # datetime.weekday() is Monday=0; shift to Sunday=0
            weekdays[(local.weekday() + 1) % 7] += 1

    return OpenDistribution(
        countries=countries,
        devices=devices,
        clients=clients,
        hours=tuple(hours),
        weekdays=tuple(weekdays),
        total_opens=total,
    )


def merge_distributions(a: OpenDistribution, b: OpenDistribution) -> OpenDistribution:
    return OpenDistribution(
        countries=_merge_counts(a.countries, b.countries),
        devices=_merge_counts(a.devices, b.devices),
        clients=_merge_counts(a.clients, b.clients),
        hours=tuple(x + y for x, y in zip(a.hours, b.hours)),
        weekdays=tuple(x + y for x, y in zip(a.weekdays, b.weekdays)),
        total_opens=a.total_opens + b.total_opens,
    )


def calculate_post_analytics(post: Post, opens: Sequence[OpenEvent],
                             delivers: Sequence[DeliverEvent],
                             tz: Optional[tzinfo] = None) -> PostAnalytics:
    delivered = len(delivers)
    unique_openers = len({o.email for o in opens})
    return PostAnalytics(
        post_id=post.post_id,
        title=post.title,
        post_date=post.post_date,
        type=post.type,
        audience=post.audience,
        delivered=delivered,
        opened=len(opens),
        unique_openers=unique_openers,
        open_rate=percentage(unique_openers, delivered),
        distribution=tally_opens(opens, tz),
    )


def analyze_engagement(posts: Iterable[Post],
                       opens_by_post: Mapping[str, Sequence[OpenEvent]],
                       delivers_by_post: Mapping[str, Sequence[DeliverEvent]],
                       tz: Optional[tzinfo] = None) -> Tuple[PostAnalytics, ...]:
    """
    Metrics for each published post that has open or deliver rows, in input
    order. Posts without either are left out rather than reported as zeros.
    """
    results = []
    for post in posts:
        if not post.is_published:
            continue
        opens = opens_by_post.get(post.post_id, ())
        delivers = delivers_by_post.get(post.post_id, ())
        if not opens and not delivers:
            continue
        results.append(calculate_post_analytics(post, opens, delivers, tz))
    log.debug("Engagement computed for %d posts", len(results))
    return tuple(results)


def top_posts_by_opens(analytics: Iterable[PostAnalytics],
                       limit: int = TOP_POSTS_LIMIT) -> Tuple[PostAnalytics, ...]:
    return tuple(sorted(analytics, key=lambda pa: -pa.unique_openers)[:limit])


def top_posts_by_open_rate(analytics: Iterable[PostAnalytics],
                           limit: int = TOP_POSTS_LIMIT) -> Tuple[PostAnalytics, ...]:
    """Low-volume posts (< MIN_DELIVERED_FOR_RATE deliveries) are not ranked."""
    eligible = [pa for pa in analytics if pa.delivered >= MIN_DELIVERED_FOR_RATE]
    return tuple(sorted(eligible, key=lambda pa: -pa.open_rate)[:limit])


def summarize_engagement(analytics: Sequence[PostAnalytics],
                         unmatched_opens: Iterable[OpenEvent] = (),
                         tz: Optional[tzinfo] = None,
                         limit: int = TOP_POSTS_LIMIT) -> EngagementSummary:
    """
    Totals, top-N lists and the global distribution. Opens from files that
    matched no post still count toward the distribution.
    """
    distribution = reduce(
        merge_distributions,
        (pa.distribution for pa in analytics),
        tally_opens(unmatched_opens, tz),
    )
    if analytics:
        average = round_half_up(sum(pa.open_rate for pa in analytics) / len(analytics))
    else:
        average = 0.0

    return EngagementSummary(
        total_posts=len(analytics),
        posts_with_analytics=sum(1 for pa in analytics if pa.delivered > 0),
        total_delivered=sum(pa.delivered for pa in analytics),
        total_opened=sum(pa.opened for pa in analytics),
        average_open_rate=average,
        top_by_opens=top_posts_by_opens(analytics, limit),
        top_by_open_rate=top_posts_by_open_rate(analytics, limit),
        distribution=distribution,
    )

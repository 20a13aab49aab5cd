"""Calendar-month cohorts: posts, signups, running subscriber totals, engagement."""
from collections import Counter
from typing import Iterable, Mapping, Optional, Tuple

from analytics.models import MonthlyTrend, PostAnalytics
from substack.models import Post
from utils.helpers import month_key, percentage


def posts_by_month(posts: Iterable[Post]) -> Counter:
    """Published, dated posts per 'YYYY-MM'."""
    return Counter(month_key(p.post_date) for p in posts
                   if p.is_published and p.post_date is not None)


def calculate_monthly_trends(posts: Iterable[Post],
                             subscribers_by_month: Mapping[str, int],
                             post_analytics: Optional[Iterable[PostAnalytics]] = None,
                             ) -> Tuple[MonthlyTrend, ...]:
    """
    One entry per month in the union of post months and signup months, sorted
    ascending. ``cumulative_subscribers`` is a running sum carried through
    months with no signups. Passing ``post_analytics`` also folds in
    delivered / opened (unique openers) / open rate for each month.
    """
    post_counts = posts_by_month(posts)
    delivered: Counter = Counter()
    opened: Counter = Counter()
    for pa in post_analytics or ():
        if pa.post_date is None:
            continue
        month = month_key(pa.post_date)
        delivered[month] += pa.delivered
        opened[month] += pa.unique_openers

    months = sorted(set(post_counts) | set(subscribers_by_month) | set(delivered))

    trends = []
    cumulative = 0
    for month in months:
        new = subscribers_by_month.get(month, 0)
        cumulative += new
        trends.append(MonthlyTrend(
            month=month,
            posts=post_counts[month],
            new_subscribers=new,
            cumulative_subscribers=cumulative,
            delivered=delivered[month],
            opened=opened[month],
            open_rate=percentage(opened[month], delivered[month]),
        ))
    return tuple(trends)

"""
Signup attribution: credit each new subscriber to the most recent post
published within a lookback window before they signed up.

For a window of W days a subscriber who joined at time ``t`` is credited to
the post P with the latest ``post_date`` such that

    P.post_date <= t  and  t - P.post_date <= W days      (both inclusive)

Subscribers with no such post, or with no ``created_at`` at all, are organic.
Posts published after the signup never qualify, whatever the window.
"""
from bisect import bisect_left
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Dict, Iterable, List, Sequence, Tuple

from analytics.models import AttributionResult, PostAttribution
from config.settings import ATTRIBUTION_WINDOWS
from substack.models import Post, Subscriber
from utils.helpers import percentage, round_half_up
from utils.logger import get_logger

log = get_logger(__name__)

ONE_DAY = timedelta(days=1)


def attributable_posts(posts: Iterable[Post]) -> List[Post]:
    """Published, dated posts, newest first. Equal dates keep input order."""
    dated = [p for p in posts if p.is_published and p.post_date is not None]
    return sorted(dated, key=lambda p: -p.post_date.timestamp())


class _Tally:
    __slots__ = ("paid", "free", "elapsed_days")

    def __init__(self):
        self.paid = 0
        self.free = 0
        self.elapsed_days: List[int] = []

    @property
    def total(self) -> int:
        return self.paid + self.free


def attribute_signups(posts: Iterable[Post], subscribers: Sequence[Subscriber],
                      window_days: int) -> AttributionResult:
    """Run one attribution pass for a single window. Pure; safe to run in parallel."""
    window = timedelta(days=window_days)
    ordered = attributable_posts(posts)
    # Ascending search keys over the newest-first list: the first index whose
    # key is >= -signup is the newest post dated at or before the signup, and
    # bisect_left lands on the earliest of any equal-date run.
    keys = [-p.post_date.timestamp() for p in ordered]

    tallies: Dict[str, _Tally] = {}
    organic = 0
    undated = 0

    for sub in subscribers:
        if sub.created_at is None:
            organic += 1
            undated += 1
            continue

        signup = sub.created_at
        idx = bisect_left(keys, -signup.timestamp())
        # Older posts can only be further away, so one check settles it.
        if idx == len(ordered) or signup - ordered[idx].post_date > window:
            organic += 1
            continue

        post = ordered[idx]
        tally = tallies.setdefault(post.post_id, _Tally())
        if sub.is_paid:
            tally.paid += 1
        else:
            tally.free += 1
        tally.elapsed_days.append((signup - post.post_date) // ONE_DAY)

    attributions = []
    for post in ordered:
        tally = tallies.get(post.post_id)
        if tally is None:
            continue
        attributions.append(PostAttribution(
            post_id=post.post_id,
            title=post.title,
            post_date=post.post_date,
            attributed_total=tally.total,
            attributed_paid=tally.paid,
            attributed_free=tally.free,
            avg_days_to_signup=round_half_up(sum(tally.elapsed_days) / len(tally.elapsed_days)),
        ))
    attributions.sort(key=lambda pa: -pa.attributed_total)

    total_attributed = sum(pa.attributed_total for pa in attributions)
    result = AttributionResult(
        window_days=window_days,
        post_attributions=tuple(attributions),
        organic_signups=organic,
        undated_signups=undated,
        total_attributed=total_attributed,
        attribution_coverage=percentage(total_attributed, len(subscribers)),
    )
    log.debug("Window %dd: %d attributed, %d organic (%.1f%% coverage)",
              window_days, total_attributed, organic, result.attribution_coverage)
    return result


def attribute_windows(posts: Iterable[Post], subscribers: Sequence[Subscriber],
                      windows: Sequence[int] = ATTRIBUTION_WINDOWS,
                      ) -> Tuple[AttributionResult, ...]:
    """One independent result per window, in the order the windows were given."""
    posts = tuple(posts)
    subscribers = tuple(subscribers)
    if not windows:
        return ()
    with ThreadPoolExecutor(max_workers=len(windows)) as pool:
        return tuple(pool.map(lambda w: attribute_signups(posts, subscribers, w), windows))

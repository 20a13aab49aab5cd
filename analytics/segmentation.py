"""Subscriber segmentation: active / paid / free / churned."""
from collections import Counter
from typing import Iterable

from analytics.models import SubscriberSegments, SubscriberStats
from substack.models import Subscriber
from utils.helpers import month_key


def segment_subscribers(subscribers: Iterable[Subscriber]) -> SubscriberSegments:
    """
    Split the roster into overlapping segments. ``paid`` and ``free`` are both
    drawn from active subscribers only, so a churned payer is in neither.
    """
    everyone = tuple(subscribers)
    active = tuple(s for s in everyone if s.is_active)
    return SubscriberSegments(
        all=everyone,
        active=active,
        paid=tuple(s for s in active if s.is_paid),
        free=tuple(s for s in active if not s.is_paid),
        churned=tuple(s for s in everyone if s.is_churned),
    )


def calculate_subscriber_stats(subscribers: Iterable[Subscriber]) -> SubscriberStats:
    segments = segment_subscribers(subscribers)
    everyone = segments.all

    by_plan = Counter(s.plan for s in everyone)
    by_month = Counter(month_key(s.created_at) for s in everyone if s.created_at is not None)

    return SubscriberStats(
        total=len(everyone),
        active=len(segments.active),
        inactive=len(everyone) - len(segments.active),
        paid=len(segments.paid),
        free=len(segments.free),
        churned=len(segments.churned),
        email_disabled=sum(1 for s in everyone if s.email_disabled),
        by_plan=dict(by_plan),
        by_month=dict(sorted(by_month.items())),
    )

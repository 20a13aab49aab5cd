"""Derived analytics records. All frozen: components return new values, never patch inputs."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple

from substack.models import Post, Subscriber

HOURS_IN_DAY = 24
DAYS_IN_WEEK = 7


@dataclass(frozen=True)
class SubscriberSegments:
    all: Tuple[Subscriber, ...]
    active: Tuple[Subscriber, ...]
    paid: Tuple[Subscriber, ...]
    free: Tuple[Subscriber, ...]
    churned: Tuple[Subscriber, ...]

    def sizes(self) -> Dict[str, int]:
        return {
            "all": len(self.all),
            "active": len(self.active),
            "paid": len(self.paid),
            "free": len(self.free),
            "churned": len(self.churned),
        }


@dataclass(frozen=True)
class SubscriberStats:
    total: int
    active: int
    inactive: int
    paid: int
    free: int
    churned: int
    email_disabled: int
    by_plan: Dict[str, int]
    by_month: Dict[str, int]


@dataclass(frozen=True)
class MonthlyTrend:
    month: str
    posts: int = 0
    new_subscribers: int = 0
    cumulative_subscribers: int = 0
    delivered: int = 0
    opened: int = 0
    open_rate: float = 0.0


@dataclass(frozen=True)
class OpenDistribution:
    """
    Open tallies by dimension. Missing keys read as zero; a new key is
    inserted at zero and incremented, never pre-seeded.
    """
    countries: Dict[str, int] = field(default_factory=dict)
    devices: Dict[str, int] = field(default_factory=dict)
    clients: Dict[str, int] = field(default_factory=dict)
    hours: Tuple[int, ...] = (0,) * HOURS_IN_DAY
    weekdays: Tuple[int, ...] = (0,) * DAYS_IN_WEEK   # 0 = Sunday
    total_opens: int = 0


@dataclass(frozen=True)
class PostAnalytics:
    post_id: str
    title: str
    post_date: Optional[datetime]
    type: str
    audience: str
    delivered: int
    opened: int
    unique_openers: int
    open_rate: float
    distribution: OpenDistribution


@dataclass(frozen=True)
class EngagementSummary:
    total_posts: int
    posts_with_analytics: int
    total_delivered: int
    total_opened: int
    average_open_rate: float
    top_by_opens: Tuple[PostAnalytics, ...]
    top_by_open_rate: Tuple[PostAnalytics, ...]
    distribution: OpenDistribution


@dataclass(frozen=True)
class PostAttribution:
    post_id: str
    title: str
    post_date: datetime
    attributed_total: int
    attributed_paid: int
    attributed_free: int
    avg_days_to_signup: float


@dataclass(frozen=True)
class AttributionResult:
    window_days: int
    post_attributions: Tuple[PostAttribution, ...]
    organic_signups: int
    undated_signups: int
    total_attributed: int
    attribution_coverage: float


@dataclass(frozen=True)
class Overview:
    total_posts: int
    posts_with_analytics: int
    total_delivered: int
    total_opened: int
    average_open_rate: float
    total_subscribers: Optional[int] = None
    active_subscribers: Optional[int] = None
    paid_subscribers: Optional[int] = None
    free_subscribers: Optional[int] = None
    churned_subscribers: Optional[int] = None


@dataclass(frozen=True)
class AnalysisReport:
    publication: str
    overview: Overview
    posts: Tuple[Post, ...]
    post_analytics: Tuple[PostAnalytics, ...]
    monthly_trends: Tuple[MonthlyTrend, ...]
    top_posts_by_opens: Tuple[PostAnalytics, ...]
    top_posts_by_open_rate: Tuple[PostAnalytics, ...]
    distribution: OpenDistribution
    subscriber_stats: Optional[SubscriberStats]
    subscriber_segments: Optional[SubscriberSegments]
    attribution: Tuple[AttributionResult, ...]

    @property
    def has_subscribers(self) -> bool:
        return self.subscriber_stats is not None

"""Typed records normalised from the Substack export CSVs.

Every model is built from a raw string row with ``from_row``. Column values
go through the substitution table below before validation:

    ==================  =========================  ==================
    model               column                     empty / malformed
    ==================  =========================  ==================
    Post                post_id (required)         row skipped
    Post                post_date, email_sent_at   None
    Post                type                       "newsletter"
    Post                audience                   "everyone"
    Post                title, subtitle            ""
    Subscriber          plan                       "other"
    Subscriber          dates                      None
    OpenEvent           country ... client_type    "Unknown"
    any                 boolean flags              False unless "true"
    ==================  =========================  ==================
"""
from datetime import datetime
from typing import Annotated, ClassVar, Mapping, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from utils.helpers import parse_timestamp

PAID_PLANS = frozenset({"yearly", "monthly", "founding"})
UNKNOWN = "Unknown"


def parse_flag(value) -> bool:
    """Export booleans are the literal string "true"; "TRUE", "1", "" are all False."""
    if isinstance(value, bool):
        return value
    return value == "true"


def parse_post_id(value: str) -> Tuple[str, Optional[str]]:
    """Split '<id>.<slug>' on the first dot. Dots inside the slug are kept."""
    parts = (value or "").split(".")
    slug = ".".join(parts[1:])
    return parts[0], slug or None


def _text_or(default: str) -> BeforeValidator:
    def _coerce(value):
        if value is None or value == "":
            return default
        return value
    return BeforeValidator(_coerce)


Flag = Annotated[bool, BeforeValidator(parse_flag)]
Timestamp = Annotated[Optional[datetime], BeforeValidator(parse_timestamp)]
Category = Annotated[str, _text_or(UNKNOWN)]
RequiredId = Annotated[str, Field(min_length=1)]


class ExportRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def from_row(cls, row: Mapping[str, str]):
        return cls.model_validate(dict(row))


class Post(ExportRecord):
    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ("post_date", "email_sent_at")

    post_id: RequiredId
    slug: Optional[str] = None
    post_date: Timestamp = None
    is_published: Flag = False
    email_sent_at: Timestamp = None
    type: Annotated[str, _text_or("newsletter")] = "newsletter"
    audience: Annotated[str, _text_or("everyone")] = "everyone"
    title: Annotated[str, _text_or("")] = ""
    subtitle: Annotated[str, _text_or("")] = ""
    podcast_url: Annotated[str, _text_or("")] = ""
    html_content: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, str]) -> "Post":
        post_id, slug = parse_post_id(row.get("post_id") or "")
        return cls.model_validate({**row, "post_id": post_id, "slug": slug})


class Subscriber(ExportRecord):
    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ("expiry", "created_at", "first_payment_at")

    email: Annotated[str, _text_or("")] = ""
    active_subscription: Flag = False
    expiry: Timestamp = None
    plan: Annotated[str, _text_or("other")] = "other"
    email_disabled: Flag = False
    created_at: Timestamp = None
    first_payment_at: Timestamp = None

    @property
    def is_paid(self) -> bool:
        return self.first_payment_at is not None and self.plan in PAID_PLANS

    @property
    def is_active(self) -> bool:
        return self.active_subscription and not self.email_disabled

    @property
    def is_churned(self) -> bool:
        return self.is_paid and not self.active_subscription


class DeliverEvent(ExportRecord):
    DATE_FIELDS: ClassVar[Tuple[str, ...]] = ("timestamp",)

    post_id: RequiredId
    email: Annotated[str, _text_or("")] = ""
    timestamp: Timestamp = None
    post_type: Annotated[str, _text_or("")] = ""
    post_audience: Annotated[str, _text_or("")] = ""
    active_subscription: Flag = False

    @classmethod
    def from_row(cls, row: Mapping[str, str], post_id: Optional[str] = None):
        """``post_id`` is the id of the file the row came from; it wins over the row's column."""
        data = dict(row)
        if post_id is not None:
            data["post_id"] = post_id
        return cls.model_validate(data)


class OpenEvent(DeliverEvent):
    country: Category = UNKNOWN
    city: Category = UNKNOWN
    region: Category = UNKNOWN
    device_type: Category = UNKNOWN
    client_os: Category = UNKNOWN
    client_type: Category = UNKNOWN
    user_agent: Annotated[str, _text_or("")] = ""

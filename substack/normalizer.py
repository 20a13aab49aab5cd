"""Raw CSV rows → validated export records, one bad row never sinks a file."""
from typing import Iterable, List, Mapping, Optional, Type

from pydantic import ValidationError

from substack.models import DeliverEvent, ExportRecord, OpenEvent, Post, Subscriber
from utils.logger import get_logger

log = get_logger(__name__)


def _describe(exc: ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ())) or "row"
    return f"{field}: {err.get('msg', 'invalid')}"


def normalize_rows(model: Type[ExportRecord], rows: Iterable[Mapping[str, str]],
                   source: str, **kwargs) -> List[ExportRecord]:
    """
    Validate each row into ``model``. Rows missing a required field are
    skipped; unparsable dates become None. Both are logged with the row number.
    """
    records = []
    for index, row in enumerate(rows, 1):
        try:
            record = model.from_row(row, **kwargs)
        except ValidationError as exc:
            log.warning("%s row %d skipped (%s)", source, index, _describe(exc))
            continue
        for name in model.DATE_FIELDS:
            raw = row.get(name)
            if raw and getattr(record, name) is None:
                log.warning("%s row %d: unparsable %s %r treated as empty",
                            source, index, name, raw)
        records.append(record)
    return records


def normalize_posts(rows: Iterable[Mapping[str, str]], source: str = "posts.csv") -> List[Post]:
    """Normalise the posts listing; later duplicates of a post_id are dropped."""
    posts: List[Post] = []
    seen = set()
    for post in normalize_rows(Post, rows, source):
        if post.post_id in seen:
            log.warning("%s: duplicate post_id %s ignored", source, post.post_id)
            continue
        seen.add(post.post_id)
        posts.append(post)
    return posts


def normalize_subscribers(rows: Iterable[Mapping[str, str]],
                          source: str = "email_list.csv") -> List[Subscriber]:
    # Duplicate emails are kept: each roster row is its own signup.
    return normalize_rows(Subscriber, rows, source)


def normalize_opens(rows: Iterable[Mapping[str, str]], post_id: Optional[str] = None,
                    source: str = "opens.csv") -> List[OpenEvent]:
    return normalize_rows(OpenEvent, rows, source, post_id=post_id)


def normalize_delivers(rows: Iterable[Mapping[str, str]], post_id: Optional[str] = None,
                       source: str = "delivers.csv") -> List[DeliverEvent]:
    return normalize_rows(DeliverEvent, rows, source, post_id=post_id)

"""Substack export reader: directory or .zip bundle → normalised ExportData."""
import io
import threading
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from config.settings import PARTIAL_ID_MATCHING, READ_WORKERS
from substack.models import DeliverEvent, OpenEvent, Post, Subscriber, parse_post_id
from substack.normalizer import (
    normalize_delivers, normalize_opens, normalize_posts, normalize_subscribers,
)
from utils.logger import get_logger

log = get_logger(__name__)

POSTS_FILE = "posts.csv"
ROSTER_PREFIX = "email_list"
OPENS_SUFFIX = ".opens.csv"
DELIVERS_SUFFIX = ".delivers.csv"
HTML_SUFFIX = ".html"


class ArchiveError(Exception):
    """Raised when a mandatory export artifact is missing or unreadable."""


@dataclass(frozen=True)
class ExportData:
    """Everything the analytics core needs, already normalised."""
    source: str
    posts: Tuple[Post, ...]
    subscribers: Optional[Tuple[Subscriber, ...]]
    opens: Dict[str, Tuple[OpenEvent, ...]] = field(default_factory=dict)
    delivers: Dict[str, Tuple[DeliverEvent, ...]] = field(default_factory=dict)
    unmatched_opens: Tuple[OpenEvent, ...] = ()

    @property
    def has_subscribers(self) -> bool:
        return self.subscribers is not None


class ExportArchive:
    """Read-only view over an export folder or zip. Names are posix paths."""

    def __init__(self, path):
        self.path = Path(path)
        if not self.path.exists():
            raise ArchiveError(f"Archive path does not exist: {self.path}")
        self._lock = threading.Lock()
        self._zip: Optional[zipfile.ZipFile] = None
        if self.path.is_file():
            if not zipfile.is_zipfile(self.path):
                raise ArchiveError(f"Not a directory or zip file: {self.path}")
            self._zip = zipfile.ZipFile(self.path)
            names = [i.filename for i in self._zip.infolist() if not i.is_dir()]
        else:
            names = [p.relative_to(self.path).as_posix()
                     for p in self.path.rglob("*") if p.is_file()]
        self.names: List[str] = sorted(n.replace("\\", "/") for n in names)
        self.root = self._find_root()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def _find_root(self) -> Optional[PurePosixPath]:
        """Folder holding posts.csv; zips often wrap the export in one top folder."""
        candidates = [PurePosixPath(n) for n in self.names
                      if PurePosixPath(n).name == POSTS_FILE]
        if not candidates:
            return None
        return min(candidates, key=lambda p: (len(p.parts), str(p))).parent

    # ------------------------------------------------------------------
    # Locating artifacts
    # ------------------------------------------------------------------

    @property
    def posts_csv(self) -> Optional[str]:
        if self.root is None:
            return None
        return str(self.root / POSTS_FILE)

    @property
    def roster_csv(self) -> Optional[str]:
        if self.root is None:
            return None
        for name in self.names:
            p = PurePosixPath(name)
            if p.parent == self.root and p.name.startswith(ROSTER_PREFIX) and p.suffix == ".csv":
                return name
        return None

    def post_files(self, suffix: str) -> List[str]:
        """Files under <root>/posts/ ending with ``suffix``."""
        if self.root is None:
            return []
        folder = self.root / "posts"
        return [n for n in self.names
                if PurePosixPath(n).parent == folder and n.endswith(suffix)]

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_text(self, name: str) -> str:
        if self._zip is not None:
            with self._lock:
                data = self._zip.read(name)
        else:
            data = (self.path / name).read_bytes()
        return data.decode("utf-8-sig", errors="replace")

    def read_csv_rows(self, name: str) -> List[Dict[str, str]]:
        """
        Every cell as a string; empty and missing cells are "". Lines with
        more fields than the header are skipped with a warning.
        """
        text = self.read_text(name)
        if not text.strip():
            return []

        def _skip_bad_line(fields: List[str]) -> None:
            log.warning("%s: skipped malformed row with %d fields: %s",
                        name, len(fields), ",".join(fields)[:120])
            return None

        frame = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False,
                            engine="python", on_bad_lines=_skip_bad_line)
        return frame.fillna("").to_dict(orient="records")


def file_post_id(name: str, suffix: str) -> str:
    """'posts/123.my-slug.opens.csv' → '123'."""
    stem = PurePosixPath(name).name[: -len(suffix)]
    return parse_post_id(stem)[0]


def resolve_post_id(file_id: str, post_ids: Sequence[str], partial: bool = True) -> Optional[str]:
    """
    Exact match first. With ``partial`` on, fall back to posts whose id starts
    with ``file_id``, accepted only when exactly one post qualifies. A file id
    longer than every post id never matches.
    """
    if file_id in post_ids:
        return file_id
    if not partial or not file_id:
        return None
    candidates = [pid for pid in post_ids if pid.startswith(file_id)]
    if len(candidates) == 1:
        log.warning("Analytics file id %s matched post %s by prefix", file_id, candidates[0])
        return candidates[0]
    if candidates:
        log.warning("Analytics file id %s is ambiguous (%d posts share the prefix)",
                    file_id, len(candidates))
    return None


def _load_posts(archive: ExportArchive) -> List[Post]:
    name = archive.posts_csv
    if name is None:
        raise ArchiveError(
            f"{POSTS_FILE} not found in {archive.path}. Is this a valid Substack export?"
        )
    try:
        rows = archive.read_csv_rows(name)
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as exc:
        raise ArchiveError(f"Could not parse {name}: {exc}") from exc
    return normalize_posts(rows, source=name)


def _load_subscribers(archive: ExportArchive) -> Optional[List[Subscriber]]:
    name = archive.roster_csv
    if name is None:
        log.warning("No subscriber list (%s*.csv) in archive; continuing without it", ROSTER_PREFIX)
        return None
    try:
        rows = archive.read_csv_rows(name)
    except (pd.errors.ParserError, OSError) as exc:
        log.error("Could not parse %s, continuing without subscribers: %s", name, exc)
        return None
    return normalize_subscribers(rows, source=name)


def _attach_html(archive: ExportArchive, posts: List[Post], pool: ThreadPoolExecutor) -> List[Post]:
    html_files: Dict[str, str] = {}
    for name in archive.post_files(HTML_SUFFIX):
        html_files.setdefault(file_post_id(name, HTML_SUFFIX), name)

    wanted = [p for p in posts if p.post_id in html_files]
    bodies = dict(zip(
        (p.post_id for p in wanted),
        pool.map(lambda p: archive.read_text(html_files[p.post_id]), wanted),
    ))
    log.debug("Posts with HTML: %d, without: %d", len(bodies), len(posts) - len(bodies))
    return [p.model_copy(update={"html_content": bodies[p.post_id]}) if p.post_id in bodies else p
            for p in posts]


def _read_events(archive: ExportArchive, name: str, suffix: str, post_id: Optional[str]):
    try:
        rows = archive.read_csv_rows(name)
    except (pd.errors.ParserError, OSError) as exc:
        log.error("Skipping unreadable analytics file %s: %s", name, exc)
        return []
    if suffix == OPENS_SUFFIX:
        return normalize_opens(rows, post_id=post_id or file_post_id(name, suffix), source=name)
    return normalize_delivers(rows, post_id=post_id or file_post_id(name, suffix), source=name)


def _load_events(archive: ExportArchive, suffix: str, post_ids: Sequence[str],
                 partial: bool, pool: ThreadPoolExecutor):
    """Returns ({post_id: events}, unmatched events) for one file family."""
    names = archive.post_files(suffix)
    resolved = [resolve_post_id(file_post_id(n, suffix), post_ids, partial) for n in names]
    batches = pool.map(lambda item: _read_events(archive, item[0], suffix, item[1]),
                       zip(names, resolved))

    grouped: Dict[str, list] = {}
    unmatched: list = []
    for name, post_id, events in zip(names, resolved, batches):
        if post_id is None:
            log.warning("%s matches no post in %s", name, POSTS_FILE)
            unmatched.extend(events)
        else:
            grouped.setdefault(post_id, []).extend(events)
    missed = sum(1 for r in resolved if r is None)
    log.info("Loaded %d *%s files (%d unmatched)", len(names), suffix, missed)
    return {k: tuple(v) for k, v in grouped.items()}, tuple(unmatched)


def load_export(path, partial_matching: bool = PARTIAL_ID_MATCHING,
                workers: int = READ_WORKERS) -> ExportData:
    """
    Read and normalise a whole export. Raises ArchiveError when the posts
    listing is missing; a missing roster only disables subscriber outputs.
    """
    with ExportArchive(path) as archive, ThreadPoolExecutor(max_workers=workers) as pool:
        posts = _load_posts(archive)
        log.info("Loaded %d posts (%d published) from %s",
                 len(posts), sum(1 for p in posts if p.is_published), archive.path)
        posts = _attach_html(archive, posts, pool)
        subscribers = _load_subscribers(archive)
        if subscribers is not None:
            log.info("Loaded %d subscribers", len(subscribers))

        post_ids = [p.post_id for p in posts]
        opens, unmatched_opens = _load_events(archive, OPENS_SUFFIX, post_ids, partial_matching, pool)
        # Deliver files with no post feed no global tally, so they are dropped.
        delivers, _ = _load_events(archive, DELIVERS_SUFFIX, post_ids, partial_matching, pool)

    return ExportData(
        source=str(Path(path)),
        posts=tuple(posts),
        subscribers=tuple(subscribers) if subscribers is not None else None,
        opens=opens,
        delivers=delivers,
        unmatched_opens=unmatched_opens,
    )

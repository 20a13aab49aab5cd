"""
Shared fixtures for the export analytics test suite.

Builds a small but complete Substack export on disk (folder and zip) and
provides record factories so unit tests don't need CSV files at all.

Fixture export at a glance:

    posts      101 (2024-01-01, published)  102 (2024-01-05, published, only_paid)
               103 (undated draft)          104 (2024-02-10, podcast, no logs)
    opens      101: 3 rows / 2 unique       102: 1 row (no country)
               999: 1 orphan row (matches no post)
    delivers   101: 3 rows                  102: 2 rows
    roster     a paid monthly, b free, c churned yearly,
               d email-disabled, e undated with no plan
"""
import csv
import io
import zipfile
from pathlib import Path

import pytest

from substack.models import DeliverEvent, OpenEvent, Post, Subscriber

POST_COLUMNS = ["post_id", "post_date", "is_published", "email_sent_at", "inbox_sent_at",
                "type", "title", "subtitle", "podcast_url", "audience"]
ROSTER_COLUMNS = ["email", "active_subscription", "expiry", "plan",
                  "email_disabled", "created_at", "first_payment_at"]
OPEN_COLUMNS = ["post_id", "timestamp", "email", "post_type", "post_audience",
                "active_subscription", "country", "city", "region", "device_type",
                "client_os", "client_type", "user_agent"]
DELIVER_COLUMNS = ["post_id", "timestamp", "email", "post_type", "post_audience",
                   "active_subscription"]

POSTS = [
    ["101.first-post", "2024-01-01T10:00:00.000Z", "true", "2024-01-01T10:00:00.000Z", "",
     "newsletter", "First Post", "Sub one", "", "everyone"],
    ["102.second.post", "2024-01-05T10:00:00.000Z", "true", "2024-01-05T10:00:00.000Z", "",
     "newsletter", "Second Post", "", "", "only_paid"],
    ["103.draft", "", "false", "", "", "newsletter", "Draft", "", "", "everyone"],
    ["104.podcast-ep", "2024-02-10T10:00:00.000Z", "true", "", "",
     "podcast", "Episode 1", "", "https://cdn.example/ep1.mp3", "everyone"],
]

ROSTER = [
    ["a@example.com", "true", "", "monthly", "false", "2024-01-02T09:00:00.000Z", "2024-01-02T09:05:00.000Z"],
    ["b@example.com", "true", "", "free", "false", "2024-01-06T12:00:00.000Z", ""],
    ["c@example.com", "false", "", "yearly", "false", "2024-01-20T00:00:00.000Z", "2024-01-20T00:00:00.000Z"],
    ["d@example.com", "true", "", "free", "true", "2024-02-10T12:00:00.000Z", ""],
    ["e@example.com", "true", "", "", "false", "", ""],
]

OPENS = {
    "101.first-post": [
        ["101", "2024-01-01T15:00:00.000Z", "a@example.com", "newsletter", "everyone", "true",
         "US", "Austin", "TX", "desktop", "macos", "gmail", "Mozilla/5.0"],
        ["101", "2024-01-02T08:00:00.000Z", "a@example.com", "newsletter", "everyone", "true",
         "US", "Austin", "TX", "desktop", "macos", "gmail", "Mozilla/5.0"],
        ["101", "2024-01-01T20:00:00.000Z", "b@example.com", "newsletter", "everyone", "true",
         "GB", "London", "", "mobile", "ios", "apple-mail", ""],
    ],
    "102.second.post": [
        ["102", "2024-01-06T09:00:00.000Z", "c@example.com", "newsletter", "only_paid", "true",
         "", "", "", "", "", "", ""],
    ],
    "999.orphan": [
        ["999", "2024-01-03T11:00:00.000Z", "z@example.com", "newsletter", "everyone", "true",
         "FR", "Paris", "", "tablet", "android", "gmail", ""],
    ],
}

DELIVERS = {
    "101.first-post": [
        ["101", "2024-01-01T10:00:01.000Z", email, "newsletter", "everyone", "true"]
        for email in ("a@example.com", "b@example.com", "c@example.com")
    ],
    "102.second.post": [
        ["102", "2024-01-05T10:00:01.000Z", email, "newsletter", "only_paid", "true"]
        for email in ("a@example.com", "b@example.com")
    ],
}

POST_HTML = (
    '<p>Hello <strong>world</strong></p>'
    '<div class="captioned-image-container"><figure>'
    '<img src="https://img.example/x.png" alt="Pic"></figure></div>'
)


def _csv_text(columns, rows) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(columns)
    writer.writerows(rows)
    return buf.getvalue()


def write_export(root: Path, with_roster: bool = True) -> Path:
    posts_dir = root / "posts"
    posts_dir.mkdir(parents=True, exist_ok=True)
    (root / "posts.csv").write_text(_csv_text(POST_COLUMNS, POSTS), encoding="utf-8")
    if with_roster:
        (root / "email_list.my-pub.csv").write_text(_csv_text(ROSTER_COLUMNS, ROSTER), encoding="utf-8")
    for stem, rows in OPENS.items():
        (posts_dir / f"{stem}.opens.csv").write_text(_csv_text(OPEN_COLUMNS, rows), encoding="utf-8")
    for stem, rows in DELIVERS.items():
        (posts_dir / f"{stem}.delivers.csv").write_text(_csv_text(DELIVER_COLUMNS, rows), encoding="utf-8")
    (posts_dir / "101.first-post.html").write_text(POST_HTML, encoding="utf-8")
    return root


# ---------------------------------------------------------------------------
# Export fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def export_dir(tmp_path):
    """A complete export folder."""
    return write_export(tmp_path / "export")


@pytest.fixture
def export_dir_no_roster(tmp_path):
    """Export folder without email_list*.csv."""
    return write_export(tmp_path / "export-no-roster", with_roster=False)


@pytest.fixture
def export_zip(tmp_path, export_dir):
    """The same export zipped under a single top-level folder."""
    zip_path = tmp_path / "substack-export.zip"
    with zipfile.ZipFile(zip_path, "w") as zf:
        for path in sorted(export_dir.rglob("*")):
            if path.is_file():
                zf.write(path, arcname=f"substack-export/{path.relative_to(export_dir).as_posix()}")
    return zip_path


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_post():
    def _make(post_id="1", post_date="2024-01-01T00:00:00Z", published=True, **fields):
        row = {"post_id": post_id, "post_date": post_date or "",
               "is_published": "true" if published else "false"}
        row.update(fields)
        return Post.from_row(row)
    return _make


@pytest.fixture
def make_subscriber():
    def _make(created_at="2024-01-01T00:00:00Z", plan="free", active=True,
              email_disabled=False, paid_at="", email="s@example.com"):
        return Subscriber.from_row({
            "email": email,
            "active_subscription": "true" if active else "false",
            "plan": plan,
            "email_disabled": "true" if email_disabled else "false",
            "created_at": created_at or "",
            "first_payment_at": paid_at,
        })
    return _make


@pytest.fixture
def make_open():
    def _make(post_id="1", email="r@example.com", timestamp="2024-01-01T12:00:00Z", **fields):
        return OpenEvent.from_row({"email": email, "timestamp": timestamp, **fields}, post_id=post_id)
    return _make


@pytest.fixture
def make_deliver():
    def _make(post_id="1", email="r@example.com", timestamp="2024-01-01T12:00:00Z"):
        return DeliverEvent.from_row({"email": email, "timestamp": timestamp}, post_id=post_id)
    return _make

"""Post HTML → Markdown, one document per post and a consolidated archive."""
from datetime import datetime
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup
from markdownify import ATX, ASTERISK, MarkdownConverter

from config.settings import PUBLICATION_NAME
from content.rules import apply_rules, cleanup_markdown
from substack.models import Post
from utils.helpers import fmt_date, slugify

AUDIENCE_LABELS = {
    "everyone": "Everyone",
    "only_paid": "Paid subscribers",
    "only_free": "Free subscribers",
}

SEPARATOR = "\n\n---\n\n"


class SubstackConverter(MarkdownConverter):
    """markdownify with the archive's house style: ATX headings, '-' bullets, '*' emphasis."""

    def __init__(self, **options):
        defaults = dict(
            heading_style=ATX,
            bullets="-",
            strong_em_symbol=ASTERISK,
            escape_misc=False,
            sup_symbol="<sup>",
            sub_symbol="<sub>",
        )
        defaults.update(options)
        super().__init__(**defaults)


def html_to_markdown(html: str) -> str:
    if not html or not html.strip():
        return ""
    soup = BeautifulSoup(html, "lxml")
    apply_rules(soup, soup)
    return cleanup_markdown(SubstackConverter().convert_soup(soup))


def long_date(dt: Optional[datetime]) -> str:
    if dt is None:
        return "Unknown date"
    return f"{dt:%B} {dt.day}, {dt.year}"


def short_date(dt: Optional[datetime]) -> str:
    if dt is None:
        return "Unknown date"
    return f"{dt:%b} {dt.day}, {dt.year}"


def convert_post_to_markdown(post: Post) -> str:
    """Title block (date, type, audience, subtitle) followed by the converted body."""
    lines = [
        f"# {post.title or 'Untitled'}",
        f"**Date:** {long_date(post.post_date)}",
        f"**Type:** {post.type[:1].upper() + post.type[1:]}",
        f"**Audience:** {AUDIENCE_LABELS.get(post.audience, post.audience)}",
    ]
    header = "\n".join(lines) + "\n"
    if post.subtitle:
        header += f"\n*{post.subtitle}*\n"
    header += "\n---\n\n"
    return header + html_to_markdown(post.html_content or "")


def exportable_posts(posts: Iterable[Post]) -> List[Post]:
    """Published posts that have a body, newest first; undated posts last."""
    chosen = [p for p in posts if p.is_published and p.html_content]
    return sorted(chosen, key=lambda p: -p.post_date.timestamp() if p.post_date else float("inf"))


def post_filename(post: Post) -> str:
    """'<YYYY-MM-DD>-<slug>.md'; 'unknown' for undated posts, title slug when the id had none."""
    prefix = fmt_date(post.post_date, default="unknown")
    slug = post.slug or slugify(post.title or "untitled") or "untitled"
    return f"{prefix}-{slug}.md"


def post_filenames(posts: Iterable[Post]) -> List[str]:
    """post_filename for each post; a name already taken gets '-<post_id>' appended."""
    names = []
    taken = set()
    for post in posts:
        name = post_filename(post)
        if name in taken:
            name = f"{name[:-len('.md')]}-{post.post_id}.md"
        taken.add(name)
        names.append(name)
    return names


def table_of_contents(posts: List[Post]) -> str:
    out = "## Table of Contents\n\n"
    for i, post in enumerate(posts, 1):
        title = post.title or "Untitled"
        out += f"{i}. [{title}](#{slugify(title)}) - {short_date(post.post_date)}\n"
    return out


def render_archive(posts: Iterable[Post], publication: str = PUBLICATION_NAME) -> str:
    """All exportable posts in one Markdown document with a table of contents."""
    ordered = exportable_posts(posts)
    doc = f"# {publication} - Complete Archive\n\n"
    doc += f"**Total Posts:** {len(ordered)}{SEPARATOR}"
    doc += table_of_contents(ordered)
    doc += "\n---\n\n"
    for post in ordered:
        doc += convert_post_to_markdown(post) + SEPARATOR
    return doc

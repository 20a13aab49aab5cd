"""
Substack-specific clean-up applied to a post body before and after Markdown
conversion.

ELEMENT_RULES run top-down over the parsed tree; the first rule matching an
element rewrites it and its children are not visited again. MARKDOWN_CLEANUPS
are regex substitutions applied in order to the converted text.
"""
import json
import re
from dataclasses import dataclass
from typing import Callable, List, Tuple

from bs4 import BeautifulSoup, Tag

from utils.logger import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ElementRule:
    name: str
    matches: Callable[[Tag], bool]
    apply: Callable[[Tag, BeautifulSoup], None]


def _classes(el: Tag) -> List[str]:
    return el.get("class") or []


def _component(el: Tag) -> str:
    return el.get("data-component-name") or ""


def _placeholder(el: Tag, soup: BeautifulSoup, label: str) -> None:
    p = soup.new_tag("p")
    em = soup.new_tag("em")
    em.string = f"[{label}]"
    p.append(em)
    el.replace_with(p)


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------

def _is_ui_chrome(el: Tag) -> bool:
    if el.name in ("button", "svg", "script", "style", "noscript"):
        return True
    classes = _classes(el)
    return "image-link-expand" in classes or "button-wrapper" in classes


def _is_subscribe_button(el: Tag) -> bool:
    return "button" in _classes(el) and "subscribe" in (el.get("href") or "")


def _is_captioned_image(el: Tag) -> bool:
    return "captioned-image-container" in _classes(el)


def _is_pullquote(el: Tag) -> bool:
    return "pullquote" in _classes(el)


def _is_mention(el: Tag) -> bool:
    return "mention-wrap" in _classes(el)


def _is_podcast(el: Tag) -> bool:
    return "audio-embed" in _classes(el) or _component(el) == "AudioEmbed"


def _is_video(el: Tag) -> bool:
    return "video-container" in _classes(el) or el.name == "iframe"


def _is_tweet(el: Tag) -> bool:
    return "tweet" in _classes(el) or "Tweet" in _component(el)


def _is_empty_break(el: Tag) -> bool:
    if el.name != "p":
        return False
    children = [c for c in el.contents if not (isinstance(c, str) and not c.strip())]
    return len(children) == 1 and isinstance(children[0], Tag) and children[0].name == "br"


# ---------------------------------------------------------------------------
# Rewrites
# ---------------------------------------------------------------------------

def _drop(el: Tag, soup: BeautifulSoup) -> None:
    el.decompose()


def _image(el: Tag, soup: BeautifulSoup) -> None:
    img = el.find("img")
    if img is None:
        el.decompose()
        return
    p = soup.new_tag("p")
    p.append(soup.new_tag("img", src=img.get("src") or "", alt=img.get("alt") or "Image"))
    el.replace_with(p)


def _pullquote(el: Tag, soup: BeautifulSoup) -> None:
    text = el.get_text(" ", strip=True)
    quote = soup.new_tag("blockquote")
    p = soup.new_tag("p")
    strong = soup.new_tag("strong")
    strong.string = text
    p.append(strong)
    quote.append(p)
    el.replace_with(quote)


def _mention(el: Tag, soup: BeautifulSoup) -> None:
    name = None
    raw = el.get("data-attrs")
    if raw:
        try:
            name = json.loads(raw).get("name")
        except (ValueError, AttributeError):
            log.debug("Unreadable mention attrs: %r", raw)
    el.replace_with(name or el.get_text())


def _podcast(el: Tag, soup: BeautifulSoup) -> None:
    _placeholder(el, soup, "Podcast episode embedded")


def _video(el: Tag, soup: BeautifulSoup) -> None:
    src = el.get("src") or ""
    if "youtube" in src or "youtu.be" in src:
        _placeholder(el, soup, f"YouTube video: {src}")
    else:
        _placeholder(el, soup, "Video embedded")


def _tweet(el: Tag, soup: BeautifulSoup) -> None:
    _placeholder(el, soup, "Tweet embedded")


ELEMENT_RULES: Tuple[ElementRule, ...] = (
    ElementRule("ui_chrome", _is_ui_chrome, _drop),
    ElementRule("captioned_image", _is_captioned_image, _image),
    ElementRule("pullquote", _is_pullquote, _pullquote),
    ElementRule("mention", _is_mention, _mention),
    ElementRule("podcast_embed", _is_podcast, _podcast),
    ElementRule("video_embed", _is_video, _video),
    ElementRule("tweet_embed", _is_tweet, _tweet),
    ElementRule("empty_break", _is_empty_break, _drop),
    ElementRule("subscribe_button", _is_subscribe_button, _drop),
)


def apply_rules(node, soup: BeautifulSoup, rules=ELEMENT_RULES) -> None:
    """Rewrite ``node``'s descendants in place."""
    for child in list(node.children):
        if not isinstance(child, Tag):
            continue
        rule = next((r for r in rules if r.matches(child)), None)
        if rule is None:
            apply_rules(child, soup, rules)
        else:
            rule.apply(child, soup)


# ---------------------------------------------------------------------------
# Text clean-up
# ---------------------------------------------------------------------------

MARKDOWN_CLEANUPS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\n{4,}"), "\n\n\n"),
    (re.compile(r"[ \t]+$", re.M), ""),
    (re.compile(r"\[ +"), "["),
    (re.compile(r" +\]"), "]"),
    (re.compile(r"\[\]\([^)]*\)"), ""),
    (re.compile(r"&nbsp;"), " "),
    (re.compile(r"&amp;"), "&"),
    (re.compile(r"&lt;"), "<"),
    (re.compile(r"&gt;"), ">"),
    (re.compile(r"&quot;"), '"'),
    (re.compile(r"&#39;"), "'"),
    (re.compile(r'data-[a-z-]+="[^"]*"'), ""),
)


def cleanup_markdown(text: str) -> str:
    for pattern, replacement in MARKDOWN_CLEANUPS:
        text = pattern.sub(replacement, text)
    return text.strip()

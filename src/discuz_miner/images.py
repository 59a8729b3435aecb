"""
Image handling for post bodies.

Discuz lazy-loads attachments: ``src`` usually points at a ``none.gif``
placeholder and the real location sits in ``zoomfile``/``file`` or one of
the lazy-load plugin attributes. Full extraction promotes the real
location to ``src`` and makes it absolute; quick extraction drops images
altogether, working on the serialized markup.
"""

import re
from urllib.parse import urljoin

from bs4 import Tag

from .config import BASE_FORUM_URL

# Checked in this order; the first non-blank value wins over src
LAZY_ATTRS = ("zoomfile", "file", "data-src", "data-original", "data-ks-lazyload")

# Matches both <img ...> and <img .../>
IMG_TAG_RE = re.compile(r"<img[^>]*/?>", re.IGNORECASE)
SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)

_UNTOUCHED_PREFIXES = ("http://", "https://", "data:", "content://")


def is_placeholder_image(src: str) -> bool:
    return "none.gif" in src.lower()


def is_decorative_attachment_icon(src: str) -> bool:
    """Paperclip and file-type icons the forum puts next to attachments."""
    lower = src.lower()
    return "attachimg.gif" in lower or "/attachicons/" in lower or "attachicons\\" in lower


def absolutize_image_url(url: str, base_url: str = BASE_FORUM_URL) -> str:
    """
    Make an image reference absolute.

    Example:
        absolutize_image_url("//img.example.com/a.png")
        # "https://img.example.com/a.png"
        absolutize_image_url("attachments/day_240115/a.jpg")
        # "https://www.4d4y.com/forum/attachments/day_240115/a.jpg"
    """
    url = url.strip()
    if not url:
        return url
    if url.lower().startswith(_UNTOUCHED_PREFIXES):
        return url
    if url.startswith("//"):
        return "https:" + url
    return urljoin(base_url, url)


def strip_img_tags(html: str) -> str:
    """Remove every <img> tag from an HTML fragment."""
    return IMG_TAG_RE.sub("", html)


def strip_script_blocks(html: str) -> str:
    """Remove <script> and <style> elements, contents included."""
    return SCRIPT_STYLE_RE.sub("", html)


def sanitize_images(node: Tag, base_url: str = BASE_FORUM_URL) -> None:
    """
    Rewrite the images under ``node`` in place.

    Script and style elements are removed too. Call on a copy of the post
    body, never on the parsed tree shared with other posts.
    """
    for element in node.select("script, style"):
        element.decompose()

    for img in node.find_all("img"):
        src = (img.get("src") or "").strip()
        lazy_src = ""
        for attr in LAZY_ATTRS:
            value = (img.get(attr) or "").strip()
            if value:
                lazy_src = value
                break

        candidate = lazy_src or src
        is_placeholder = not candidate or (not lazy_src and is_placeholder_image(src))
        if is_placeholder or is_decorative_attachment_icon(candidate):
            img.decompose()
            continue

        img["src"] = absolutize_image_url(candidate, base_url)
        for attr in LAZY_ATTRS + ("onload",):
            if attr in img.attrs:
                del img[attr]

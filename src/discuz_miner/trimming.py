"""
Pre-parse trimming of thread documents.

A real thread page is 100-300 KB, most of it navigation, sidebars and
scripts. Cutting the post region out with plain string searches before
handing the document to the HTML parser makes parsing several times
cheaper. The pagination block and the reply form (which carries the
thread id) are kept alongside the post region.
"""

import logging
import re

from .config import TRIM_THRESHOLD

logger = logging.getLogger(__name__)

# ASCII-only case folding keeps every index valid in the original string
_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")

_FORM_END = "</form>"
_DIV_END = "</div>"
_TAG_NAME_RE = re.compile(r"<([a-z][a-z0-9]*)")


def _lower(text: str) -> str:
    return text.translate(_ASCII_LOWER)


def _form_snippet(html: str, lower: str) -> str:
    # The reply form when it can be found, else the first form on the page
    anchor = lower.find('id="postform"')
    start = lower.rfind("<form", 0, anchor) if anchor >= 0 else -1
    if start < 0:
        start = lower.find("<form")
    if start < 0:
        return ""
    end = lower.find(_FORM_END, start)
    if end < 0:
        return ""
    return html[start:end + len(_FORM_END)]


def _pages_snippet(html: str, lower: str) -> str:
    start = lower.find('<div class="pages"')
    if start < 0:
        attr = lower.find('class="pages"')
        start = lower.rfind("<", 0, attr) if attr >= 0 else -1
    if start < 0:
        return ""
    end = lower.find(_DIV_END, start)
    if end < 0:
        return ""
    return html[start:end + len(_DIV_END)]


def _post_root_start(lower: str, last_body: int) -> int:
    # Nearest element before the last body whose id marks a post wrapper
    anchor = max(lower.rfind('id="pid', 0, last_body), lower.rfind('id="post_', 0, last_body))
    if anchor >= 0:
        return lower.rfind("<", 0, anchor)
    return lower.rfind("<table", 0, last_body)


def _element_end(lower: str, start: int) -> int:
    """End of the element opened at ``start``, counting nested same-name tags, or -1."""
    name = _TAG_NAME_RE.match(lower, start)
    if name is None:
        return -1
    depth = 0
    tag_re = re.compile(r"<(/?)%s[\s>/]" % re.escape(name.group(1)))
    for tag in tag_re.finditer(lower, start):
        depth += -1 if tag.group(1) else 1
        if depth == 0:
            close = lower.find(">", tag.start())
            return close + 1 if close >= 0 else -1
    return -1


def _region_end(lower: str) -> int:
    """End of the last post's wrapper element, or -1 when it does not close."""
    last_body = lower.rfind("postmessage_")
    if last_body < 0:
        return -1
    root = _post_root_start(lower, last_body)
    if root < 0:
        return -1
    return _element_end(lower, root)


def _region_start(lower: str) -> int:
    # Preferred anchor: the post list container
    anchor = lower.find('id="postlist"')
    if anchor >= 0:
        start = lower.rfind("<", 0, anchor)
        if start >= 0:
            return start

    # Fallback: the table around the first post body
    first_body = lower.find("t_msgfont")
    if first_body >= 0:
        return lower.rfind("<table", 0, first_body)
    return -1


def trim_thread_document(html: str, threshold: int = TRIM_THRESHOLD) -> str:
    """
    Reduce a thread document to pagination, reply form and post region.

    Documents shorter than ``threshold`` and documents without a
    recognisable post region are returned unchanged, so trimming can never
    lose posts.
    """
    if len(html) < threshold:
        return html

    lower = _lower(html)
    start = _region_start(lower)
    end = _region_end(lower)
    if start < 0 or end < 0 or end <= start:
        logger.debug("No complete post region found, parsing full document (%d chars)", len(html))
        return html

    trimmed = "".join((
        "<html><body>",
        _pages_snippet(html, lower),
        _form_snippet(html, lower),
        html[start:end],
        "</body></html>",
    ))
    logger.debug("Trimmed thread document from %d to %d chars", len(html), len(trimmed))
    return trimmed

"""
Resilient HTML parsing helpers for Discuz pages.

Two building blocks used by the extraction engine:

- ``SelectorChain``: CSS selector fallback chain, so a small template change
  (an extra class, a renamed wrapper) does not take the whole page down
- ``FieldRule``: one named field of a row or post with its own default. A
  rule that fails falls back to its default instead of dropping the row.

The listing row and post field rules live here too, next to the selectors
they depend on.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple
from urllib.parse import parse_qs, parse_qsl, urlencode, urlsplit, urlunsplit

from bs4 import Tag

from .errors import FieldExtractionError
from .telemetry import ExtractionStats

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"\d+")


class SelectorChain:
    """
    CSS selector fallback chain for resilient parsing.

    Tries multiple selectors in order until one succeeds. A later selector
    is only consulted when every earlier one finds nothing.
    """

    def __init__(self, selectors: List[str], name: str = "unnamed"):
        """
        Initialize selector chain.

        Args:
            selectors: List of CSS selectors to try in order
            name: Descriptive name for this selector chain (for logging)
        """
        self.selectors = selectors
        self.name = name

    def select_one(self, node: Tag) -> Optional[Tag]:
        """Return the first element matched by the first selector that matches."""
        for i, selector in enumerate(self.selectors):
            result = node.select_one(selector)
            if result is not None:
                if i > 0:
                    logger.warning("%s: using fallback selector #%d: %s", self.name, i + 1, selector)
                return result

        logger.debug("%s: all selectors failed", self.name)
        return None

    def select(self, node: Tag) -> List[Tag]:
        """Return all elements matched by the first selector with any match."""
        for i, selector in enumerate(self.selectors):
            results = node.select(selector)
            if results:
                if i > 0:
                    logger.warning("%s: using fallback selector #%d: %s", self.name, i + 1, selector)
                return results

        logger.debug("%s: all selectors failed", self.name)
        return []


# -------------------------------------------------------
# SELECTOR CHAINS
# -------------------------------------------------------

LISTING_ROWS = SelectorChain([
    'tbody[id^="normalthread_"]',
    'tbody[id*="thread_"]',
], name="listing_rows")

POST_BODIES = SelectorChain([
    'td.t_msgfont[id^="postmessage_"]',
    '[id^="postmessage_"]',
], name="post_bodies")


# -------------------------------------------------------
# TEXT / URL HELPERS
# -------------------------------------------------------

def extract_last_int(text: Optional[str]) -> Optional[int]:
    """
    Return the last run of digits in ``text`` as an int.

    Example:
        extract_last_int("... 57")   # 57
        extract_last_int("共 3 页")   # 3
        extract_last_int("next")     # None
    """
    if not text:
        return None
    numbers = _INT_RE.findall(text)
    return int(numbers[-1]) if numbers else None


def leading_digits(value: str) -> str:
    """Digit prefix of ``value`` ("1001_abc" -> "1001")."""
    match = re.match(r"\d*", value)
    return match.group(0)


def extract_query_param(href: Optional[str], key: str) -> Optional[str]:
    """
    Read one query parameter from a (possibly relative) href.

    Example:
        extract_query_param("viewthread.php?tid=1001&page=2", "page")  # "2"
    """
    if not href:
        return None
    values = parse_qs(urlsplit(href).query, keep_blank_values=True).get(key)
    return values[0] if values else None


def with_query_param(href: str, key: str, value: str) -> str:
    """
    Return ``href`` with one query parameter replaced (or appended).

    Example:
        with_query_param("forumdisplay.php?fid=2&page=5", "page", "2")
        # "forumdisplay.php?fid=2&page=2"
    """
    parts = urlsplit(href)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != key]
    query.append((key, value))
    return urlunsplit(parts._replace(query=urlencode(query)))


def text_of(node: Optional[Tag]) -> Optional[str]:
    """Stripped text of ``node``, or None when the node is missing."""
    if node is None:
        return None
    return node.get_text().strip()


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def max_page_param(links: List[Tag]) -> Optional[int]:
    """Largest numeric ``page=`` value among ``links``."""
    pages = []
    for link in links:
        value = extract_query_param(link.get("href"), "page")
        if value and value.isdigit():
            pages.append(int(value))
    return max(pages) if pages else None


# -------------------------------------------------------
# FIELD RULES
# -------------------------------------------------------

# Lookups on a parsed tree fail with these; anything else is a bug
FIELD_ERRORS = (AttributeError, KeyError, IndexError, TypeError, ValueError)


@dataclass(frozen=True)
class FieldRule:
    """
    A named field extractor with a fallback value.

    ``extract`` returns None when the field is absent; that and any lookup
    error both yield ``default``. Failures are logged and counted, never
    raised to the caller.
    """
    name: str
    extract: Callable[[Tag], Any]
    default: Any

    def apply(self, node: Tag, item_id: str = "",
              stats: Optional[ExtractionStats] = None) -> Any:
        try:
            value = self.extract(node)
        except FIELD_ERRORS as e:
            error = FieldExtractionError(self.name, item_id, e)
            logger.debug("%s", error)
            if stats is not None:
                stats.record_field_failure(self.name)
            return self.default
        return self.default if value is None else value


def _row_title(row: Tag) -> Optional[str]:
    return text_of(row.select_one('span[id^="thread_"] a'))


def _row_author_link(row: Tag) -> Optional[Tag]:
    return row.select_one('td.author cite a[href^="space.php?uid="]')


def _row_author_name(row: Tag) -> Optional[str]:
    # Blank names fall back to the default as well
    return text_of(_row_author_link(row)) or None


def _row_author_uid(row: Tag) -> Optional[str]:
    link = _row_author_link(row)
    if link is None:
        return None
    return extract_query_param(link["href"], "uid") or None


def _row_post_date(row: Tag) -> Optional[str]:
    return text_of(row.select_one("td.author em"))


def _row_int(selector: str) -> Callable[[Tag], Optional[int]]:
    def extract(row: Tag) -> Optional[int]:
        value = text_of(row.select_one(selector))
        return int(value) if value else None
    return extract


def _row_last_poster(row: Tag) -> Optional[str]:
    return text_of(row.select_one("td.lastpost cite a"))


def _row_last_post_time(row: Tag) -> Optional[str]:
    return text_of(row.select_one('td.lastpost em a[href*="goto=lastpost"]'))


def _row_thread_page_count(row: Tag) -> Optional[int]:
    pages = max_page_param(row.select('span.threadpages a[href*="page="]'))
    return max(pages, 1) if pages else None


# Field name matches the ThreadSummary attribute it fills
ROW_FIELD_RULES: Tuple[FieldRule, ...] = (
    FieldRule("title", _row_title, ""),
    FieldRule("author_name", _row_author_name, "Unknown"),
    FieldRule("author_uid", _row_author_uid, "0"),
    FieldRule("post_date", _row_post_date, ""),
    FieldRule("reply_count", _row_int("td.nums strong"), 0),
    FieldRule("view_count", _row_int("td.nums em"), 0),
    FieldRule("last_poster_name", _row_last_poster, ""),
    FieldRule("last_post_time", _row_last_post_time, ""),
    FieldRule("thread_page_count", _row_thread_page_count, 1),
)


def find_post_root(body: Tag) -> Optional[Tag]:
    """
    Nearest ancestor (or self) that wraps a whole post.

    Discuz wraps each post in an element whose id is ``pid<N>`` or
    ``post_<N>``; the body cell itself is ``postmessage_<N>`` and must not
    count. Falls back to the direct parent.
    """
    current = body
    while isinstance(current, Tag):
        element_id = current.get("id") or ""
        if element_id.startswith("pid") or (
            element_id.startswith("post") and not element_id.startswith("postmessage_")
        ):
            return current
        current = current.parent
    return body.parent


def _post_author(root: Tag) -> Optional[str]:
    return text_of(root.select_one('td.postauthor a[href*="space.php?uid="]'))


def _post_time(root: Tag) -> Optional[str]:
    from_postinfo = text_of(root.select_one("div.postinfo em"))
    if from_postinfo:
        return from_postinfo
    return text_of(root.select_one("em"))


POST_FIELD_RULES: Tuple[FieldRule, ...] = (
    FieldRule("author_name", _post_author, ""),
    FieldRule("post_time", _post_time, ""),
)

"""
Extraction Engine: decoded Discuz documents -> typed pages.

Two entry points:

- ``extract_listing``: a ``forumdisplay.php`` page -> ``ListingPage``
- ``extract_thread``: a ``viewthread.php`` page -> ``ThreadPage`` in QUICK
  (first few posts, no images) or FULL (every post, images resolved) mode

Failures are layered. A failing field falls back to its default, a failing
row or post is skipped and counted, and only a page with no recognisable
content raises ``StructuralParseError``. A page that parses to nothing is
never returned as an empty success.

Both methods are synchronous and CPU-bound; the service runs them in a
worker thread.
"""

import copy
import logging
import time
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from .config import Settings
from .errors import StructuralParseError
from .images import sanitize_images, strip_img_tags, strip_script_blocks
from .models import ExtractMode, ListingPage, PostRecord, ThreadPage, ThreadSummary
from .parser import (
    FIELD_ERRORS,
    LISTING_ROWS,
    POST_BODIES,
    POST_FIELD_RULES,
    ROW_FIELD_RULES,
    collapse_whitespace,
    extract_last_int,
    extract_query_param,
    find_post_root,
    leading_digits,
    max_page_param,
    text_of,
    with_query_param,
)
from .telemetry import ExtractionStats
from .trimming import trim_thread_document

logger = logging.getLogger(__name__)


def _current_page(pages_div: Optional[Tag]) -> int:
    if pages_div is None:
        return 1
    value = text_of(pages_div.select_one("strong"))
    return int(value) if value and value.isdigit() else 1


class ExtractionEngine:
    """
    Turns decoded HTML into ``ListingPage`` / ``ThreadPage`` records.

    Usage:
        engine = ExtractionEngine()
        listing = engine.extract_listing(html)
        first_screen = engine.extract_thread(html, ExtractMode.QUICK)
    """

    def __init__(self, settings: Optional[Settings] = None,
                 stats: Optional[ExtractionStats] = None):
        self.settings = settings or Settings()
        self.stats = stats or ExtractionStats()

    # -------------------------------------------------------
    # LISTINGS
    # -------------------------------------------------------

    def extract_listing(self, html: str) -> ListingPage:
        """
        Parse a forum listing page.

        Raises:
            StructuralParseError: fewer thread rows than ``min_listing_rows``
        """
        started = time.perf_counter()
        soup = BeautifulSoup(html, "lxml")

        current, last, next_href = self._listing_pagination(soup.select_one("div.pages"))

        threads: List[ThreadSummary] = []
        for row in LISTING_ROWS.select(soup):
            summary = self._extract_row(row)
            if summary is not None:
                threads.append(summary)

        required = max(self.settings.min_listing_rows, 1)
        if len(threads) < required:
            raise StructuralParseError(
                f"Found {len(threads)} thread rows, expected at least {required}", html)

        logger.debug("Parsed listing page %d/%d: %d threads in %.1fms",
                     current, last, len(threads), (time.perf_counter() - started) * 1000)
        return ListingPage(
            threads=tuple(threads),
            current_page=current,
            next_page_locator=next_href,
            last_page=last,
        )

    def _listing_pagination(self, pages_div: Optional[Tag]) -> Tuple[int, int, Optional[str]]:
        """Return (current_page, last_page, next_href) with the page invariants applied."""
        current = _current_page(pages_div)
        if pages_div is None:
            return current, current, None

        page_links = pages_div.select('a[href*="page="]')
        last = extract_last_int(text_of(pages_div.select_one("a.last")))
        if last is None:
            last = max_page_param(page_links) or current
        last = max(last, current)

        next_link = pages_div.select_one("a.next")
        next_href = (next_link.get("href") or "").strip() if next_link is not None else ""

        if next_href and current >= last:
            # A next link means there is at least one more page
            last = current + 1
        elif not next_href and current < last:
            if page_links:
                next_href = self._synthesize_next(page_links, current)
            else:
                logger.debug("Last page %d but no page links to follow, stopping at %d", last, current)
                last = current

        return current, last, next_href or None

    @staticmethod
    def _synthesize_next(page_links: List[Tag], current: int) -> str:
        target = str(current + 1)
        for link in page_links:
            if extract_query_param(link.get("href"), "page") == target:
                return link["href"].strip()
        return with_query_param(page_links[0]["href"].strip(), "page", target)

    def _extract_row(self, row: Tag) -> Optional[ThreadSummary]:
        id_span = row.select_one('span[id^="thread_"]')
        if id_span is None:
            return None
        thread_id = leading_digits(id_span["id"][len("thread_"):])
        if not thread_id:
            return None

        fields = {rule.name: rule.apply(row, thread_id, self.stats) for rule in ROW_FIELD_RULES}
        try:
            return ThreadSummary(thread_id=thread_id, **fields)
        except (TypeError, ValueError) as e:
            logger.warning("Skipping thread row %s: %s", thread_id, e)
            self.stats.record_skipped_row()
            return None

    # -------------------------------------------------------
    # THREADS
    # -------------------------------------------------------

    def extract_thread(self, html: str, mode: ExtractMode = ExtractMode.FULL,
                       limit: Optional[int] = None,
                       thread_id: Optional[str] = None) -> ThreadPage:
        """
        Parse one page of a thread.

        Args:
            html: Decoded document
            mode: QUICK parses the first ``limit`` posts without images;
                  FULL parses every post and resolves images
            limit: Post cap for QUICK mode (defaults to ``quick_post_limit``)
            thread_id: Used when the page itself does not name its thread

        Raises:
            StructuralParseError: the document has no post bodies
        """
        started = time.perf_counter()
        document = trim_thread_document(html, self.settings.trim_threshold)
        soup = BeautifulSoup(document, "lxml")

        current, last = self._thread_pagination(soup.select_one("div.pages"))
        tid = self._thread_id(soup) or thread_id or "0"

        bodies = POST_BODIES.select(soup)
        if not bodies:
            raise StructuralParseError("No post bodies found", html)

        cap = None
        if mode is ExtractMode.QUICK:
            cap = limit if limit is not None else self.settings.quick_post_limit

        posts: List[PostRecord] = []
        for body in bodies:
            if cap is not None and len(posts) >= cap:
                break
            post_id = leading_digits(body["id"][len("postmessage_"):])
            if not post_id:
                continue
            try:
                posts.append(self._extract_post(body, post_id, tid, current, mode))
            except FIELD_ERRORS as e:
                logger.warning("Skipping post %s of thread %s: %s", post_id, tid, e)
                self.stats.record_skipped_post()

        logger.debug("Parsed thread %s page %d/%d (%s): %d posts in %.1fms",
                     tid, current, last, mode.value, len(posts),
                     (time.perf_counter() - started) * 1000)
        return ThreadPage(
            posts=tuple(posts),
            current_page=current,
            last_page=last,
            thread_id=tid,
            mode=mode,
        )

    @staticmethod
    def _thread_pagination(pages_div: Optional[Tag]) -> Tuple[int, int]:
        current = _current_page(pages_div)
        if pages_div is None:
            return current, current
        candidates = [
            current,
            extract_last_int(text_of(pages_div.select_one("a.last"))) or 0,
            max_page_param(pages_div.select('a[href*="page="]')) or 0,
        ]
        return current, max(candidates)

    @staticmethod
    def _thread_id(soup: BeautifulSoup) -> Optional[str]:
        form = soup.select_one('form[id="postform"]')
        if form is None:
            return None
        tid = extract_query_param(form.get("action"), "tid")
        return tid if tid and tid.isdigit() else None

    def _extract_post(self, body: Tag, post_id: str, thread_id: str,
                      page_number: int, mode: ExtractMode) -> PostRecord:
        root = find_post_root(body)
        fields = {}
        if root is not None:
            fields = {rule.name: rule.apply(root, post_id, self.stats) for rule in POST_FIELD_RULES}

        if mode is ExtractMode.QUICK:
            rich_content = strip_img_tags(strip_script_blocks(body.decode_contents()))
        else:
            # Sanitize a copy; the parsed tree is left as it was
            clone = copy.copy(body)
            sanitize_images(clone, self.settings.base_forum_url)
            rich_content = clone.decode_contents()

        return PostRecord(
            thread_id=thread_id,
            post_id=post_id,
            page_number=page_number,
            rich_content=rich_content,
            plain_text=collapse_whitespace(body.get_text()),
            **fields,
        )

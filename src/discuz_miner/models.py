"""
Data models for the Discuz Forums Miner.

This module defines typed, immutable records for everything that crosses a
component boundary: fetch outcomes, obstacle kinds, listing/thread pages and
the individual thread and post records they carry.

Records are frozen dataclasses holding tuples instead of lists. The caches
hand the same objects to every caller, so nothing may change them after
construction.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class ObstacleKind(str, Enum):
    """
    Known reasons a page cannot be parsed even though it was delivered.

    None of these are retried by the fetcher: sending the same request again
    produces the same page. Escalation (render fallback, re-login) is up to
    the caller.
    """
    ANTI_BOT_CHALLENGE = "anti_bot_challenge"
    AUTHENTICATION_REQUIRED = "authentication_required"
    HUMAN_VERIFICATION_REQUIRED = "human_verification_required"
    PERMISSION_DENIED = "permission_denied"


class ExtractMode(str, Enum):
    """Effort level for thread extraction."""
    QUICK = "quick"
    FULL = "full"


# -------------------------------------------------------
# FETCH OUTCOMES
# -------------------------------------------------------

@dataclass(frozen=True)
class FetchSuccess:
    """
    A decoded document that passed content classification.

    Attributes:
        document: Decoded page text
        url: URL that was requested
        final_url: URL after redirects
        status_code: Final HTTP status
        charset: Charset the Byte Decoder settled on (e.g. "GBK")
    """
    document: str
    url: str
    final_url: str = ""
    status_code: int = 200
    charset: str = ""


@dataclass(frozen=True)
class ObstacleDetected:
    """A delivered page that the Content Classifier recognised as an obstacle."""
    kind: ObstacleKind
    url: str = ""
    status_code: Optional[int] = None
    excerpt: str = ""


@dataclass(frozen=True)
class TransientError:
    """
    A failed attempt.

    ``retryable`` is True for connection/IO failures, 5xx responses and empty
    bodies. Client errors (4xx) use the same shape with ``retryable=False``
    so the fetcher returns them without spending retry budget.
    """
    detail: str
    url: str = ""
    status_code: Optional[int] = None
    excerpt: str = ""
    retryable: bool = True


FetchOutcome = Union[FetchSuccess, ObstacleDetected, TransientError]


# -------------------------------------------------------
# EXTRACTED RECORDS
# -------------------------------------------------------

@dataclass(frozen=True)
class ThreadSummary:
    """
    One row of a forum listing page.

    Attributes:
        thread_id: Numeric thread identifier (e.g. "1001")
        title: Thread subject line
        author_name: Thread starter, "Unknown" when the row has none
        author_uid: Starter's uid, "0" when unknown
        post_date: Creation date as shown by the forum (e.g. "2024-1-15")
        reply_count: Replies shown in the row (0 if unreadable)
        view_count: Views shown in the row (0 if unreadable)
        last_poster_name: Author of the most recent reply
        last_post_time: Time of the most recent reply as shown by the forum
        thread_page_count: Number of pages the thread spans (always >= 1)

    Example:
        summary = ThreadSummary(
            thread_id="1001",
            title="测试帖子标题一",
            author_name="作者甲",
            author_uid="501",
            reply_count=42,
            thread_page_count=3,
        )
    """
    thread_id: str
    title: str
    author_name: str = "Unknown"
    author_uid: str = "0"
    post_date: str = ""
    reply_count: int = 0
    view_count: int = 0
    last_poster_name: str = ""
    last_post_time: str = ""
    thread_page_count: int = 1

    def __post_init__(self):
        if not self.thread_id or not self.thread_id.isdigit():
            raise ValueError(f"thread_id must be a numeric string, got {self.thread_id!r}")
        if self.thread_page_count < 1:
            raise ValueError("thread_page_count must be >= 1")

    def to_dict(self) -> dict:
        """Convert the summary to a dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True)
class PostRecord:
    """
    A single post on a thread page.

    Attributes:
        thread_id: Thread the post belongs to
        post_id: Forum post identifier (the digits of ``postmessage_<pid>``)
        page_number: Thread page the post was read from
        rich_content: HTML of the post body only. Script/style are removed
                      and image sources absolutized in full mode; quick mode
                      strips images entirely.
        plain_text: Whitespace-normalised text of the post body
        author_name: Poster, empty when the post root has no author link
        post_time: Time text as shown by the forum
    """
    thread_id: str
    post_id: str
    page_number: int
    rich_content: str
    plain_text: str
    author_name: str = ""
    post_time: str = ""

    def __post_init__(self):
        if not self.post_id:
            raise ValueError("post_id must not be empty")

    def to_dict(self) -> dict:
        """Convert the post to a dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True)
class ListingPage:
    """
    A parsed forum listing page.

    ``next_page_locator`` is the forum's own (usually relative) href for the
    following page. It is present exactly when ``current_page < last_page``.
    """
    threads: Tuple[ThreadSummary, ...]
    current_page: int = 1
    next_page_locator: Optional[str] = None
    last_page: int = 1

    def __post_init__(self):
        if self.current_page > self.last_page:
            raise ValueError("current_page must not exceed last_page")
        if (self.next_page_locator is not None) != (self.current_page < self.last_page):
            raise ValueError("next_page_locator must be present iff current_page < last_page")

    @property
    def has_more(self) -> bool:
        return self.next_page_locator is not None

    def to_dict(self) -> dict:
        """Convert the page to a dictionary for JSON serialization."""
        d = asdict(self)
        d["threads"] = [t.to_dict() for t in self.threads]
        return d


@dataclass(frozen=True)
class ThreadPage:
    """A parsed page of a thread."""
    posts: Tuple[PostRecord, ...]
    current_page: int = 1
    last_page: int = 1
    thread_id: str = "0"
    mode: ExtractMode = ExtractMode.FULL

    def __post_init__(self):
        if self.current_page > self.last_page:
            raise ValueError("current_page must not exceed last_page")

    @property
    def has_more(self) -> bool:
        return self.current_page < self.last_page

    def to_dict(self) -> dict:
        """Convert the page to a dictionary for JSON serialization."""
        d = asdict(self)
        d["posts"] = [p.to_dict() for p in self.posts]
        d["mode"] = self.mode.value
        return d


@dataclass(frozen=True)
class RenderResult:
    """What the render-fallback collaborator hands back for a URL."""
    document: str
    final_url: str = ""
    http_status: int = 0

"""
Configuration for the Discuz Forums Miner.

Module-level constants document the defaults in one place; ``Settings``
bundles them into an object that can be overridden from ``DISCUZ_*``
environment variables and handed to the fetcher, engine and caches.
"""

import os
from dataclasses import dataclass
from typing import Optional


# -------------------------------------------------------
# FORUM LOCATION
# -------------------------------------------------------
BASE_DOMAIN = "https://www.4d4y.com"
BASE_FORUM_URL = f"{BASE_DOMAIN}/forum/"
DEFAULT_FORUM_ID = "2"

# -------------------------------------------------------
# REQUEST IDENTIFICATION
# -------------------------------------------------------
DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
ACCEPT_LANGUAGE = "zh-CN,zh;q=0.9"

# The forum serves GBK unless a page says otherwise
DEFAULT_CHARSET = "GBK"

# -------------------------------------------------------
# TIMEOUTS AND RETRY POLICY
# -------------------------------------------------------
CONNECT_TIMEOUT = 15.0
READ_TIMEOUT = 30.0

# Additional attempts after the first one (1 + MAX_RETRIES requests in total)
MAX_RETRIES = 2
# Seconds before the first retry; doubles on every retry (0.1 -> 0.2)
INITIAL_BACKOFF = 0.1

# -------------------------------------------------------
# CACHE SIZING AND STALENESS WINDOWS (seconds)
# -------------------------------------------------------
LISTING_CACHE_SIZE = 20
THREAD_CACHE_SIZE = 20
DOCUMENT_CACHE_SIZE = 20
LISTING_TTL = 45.0
THREAD_TTL = 60.0
DOCUMENT_TTL = 60.0

# -------------------------------------------------------
# EXTRACTION
# -------------------------------------------------------
# Documents shorter than this are parsed as-is
TRIM_THRESHOLD = 5000
# Posts parsed by the quick (first screen) mode
QUICK_POST_LIMIT = 3
# A listing with fewer rows than this is treated as a page we don't understand
MIN_LISTING_ROWS = 1
# Upper bound on document excerpts attached to errors
EXCERPT_LENGTH = 500

# -------------------------------------------------------
# RENDER FALLBACK
# -------------------------------------------------------
MAX_RENDER_SESSIONS = 2
RENDER_TIMEOUT_MS = 60_000


def build_forum_display_url(forum_id: str = DEFAULT_FORUM_ID, page: int = 1,
                            base_url: str = BASE_FORUM_URL) -> str:
    """Listing page URL; also the cache key for that page."""
    return f"{base_url}forumdisplay.php?fid={forum_id}&page={page}"


def build_view_thread_url(thread_id: str, page: int = 1,
                          base_url: str = BASE_FORUM_URL) -> str:
    """Thread page URL; also the cache key for that page."""
    return f"{base_url}viewthread.php?tid={thread_id}&page={page}"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass
class Settings:
    """
    Runtime settings for one miner instance.

    Every field defaults to the module constant of the same meaning, so
    ``Settings()`` reproduces the stock behaviour and tests can override
    a single knob without touching the environment.
    """
    base_forum_url: str = BASE_FORUM_URL
    user_agent: str = DESKTOP_USER_AGENT
    accept_language: str = ACCEPT_LANGUAGE
    default_charset: str = DEFAULT_CHARSET
    connect_timeout: float = CONNECT_TIMEOUT
    read_timeout: float = READ_TIMEOUT
    max_retries: int = MAX_RETRIES
    initial_backoff: float = INITIAL_BACKOFF
    listing_cache_size: int = LISTING_CACHE_SIZE
    thread_cache_size: int = THREAD_CACHE_SIZE
    document_cache_size: int = DOCUMENT_CACHE_SIZE
    listing_ttl: float = LISTING_TTL
    thread_ttl: float = THREAD_TTL
    document_ttl: float = DOCUMENT_TTL
    trim_threshold: int = TRIM_THRESHOLD
    quick_post_limit: int = QUICK_POST_LIMIT
    min_listing_rows: int = MIN_LISTING_ROWS
    max_render_sessions: int = MAX_RENDER_SESSIONS
    render_timeout_ms: int = RENDER_TIMEOUT_MS
    render_state_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``DISCUZ_*`` environment variables."""
        return cls(
            base_forum_url=os.getenv("DISCUZ_BASE_FORUM_URL", BASE_FORUM_URL),
            user_agent=os.getenv("DISCUZ_USER_AGENT", DESKTOP_USER_AGENT),
            accept_language=os.getenv("DISCUZ_ACCEPT_LANGUAGE", ACCEPT_LANGUAGE),
            default_charset=os.getenv("DISCUZ_DEFAULT_CHARSET", DEFAULT_CHARSET),
            connect_timeout=_env_float("DISCUZ_CONNECT_TIMEOUT", CONNECT_TIMEOUT),
            read_timeout=_env_float("DISCUZ_READ_TIMEOUT", READ_TIMEOUT),
            max_retries=_env_int("DISCUZ_MAX_RETRIES", MAX_RETRIES),
            initial_backoff=_env_float("DISCUZ_INITIAL_BACKOFF", INITIAL_BACKOFF),
            listing_cache_size=_env_int("DISCUZ_LISTING_CACHE_SIZE", LISTING_CACHE_SIZE),
            thread_cache_size=_env_int("DISCUZ_THREAD_CACHE_SIZE", THREAD_CACHE_SIZE),
            document_cache_size=_env_int("DISCUZ_DOCUMENT_CACHE_SIZE", DOCUMENT_CACHE_SIZE),
            listing_ttl=_env_float("DISCUZ_LISTING_TTL", LISTING_TTL),
            thread_ttl=_env_float("DISCUZ_THREAD_TTL", THREAD_TTL),
            document_ttl=_env_float("DISCUZ_DOCUMENT_TTL", DOCUMENT_TTL),
            trim_threshold=_env_int("DISCUZ_TRIM_THRESHOLD", TRIM_THRESHOLD),
            quick_post_limit=_env_int("DISCUZ_QUICK_POST_LIMIT", QUICK_POST_LIMIT),
            min_listing_rows=_env_int("DISCUZ_MIN_LISTING_ROWS", MIN_LISTING_ROWS),
            max_render_sessions=_env_int("DISCUZ_MAX_RENDER_SESSIONS", MAX_RENDER_SESSIONS),
            render_timeout_ms=_env_int("DISCUZ_RENDER_TIMEOUT_MS", RENDER_TIMEOUT_MS),
            render_state_path=os.getenv("DISCUZ_RENDER_STATE_PATH") or None,
        )

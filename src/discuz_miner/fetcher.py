"""
Resilient page retrieval for the Discuz forum.

``ResilientFetcher.fetch`` turns a URL into a ``FetchOutcome``:

1. GET the page with fixed identification headers and the session cookie
2. Decode the body (BOM / header / meta / GBK default)
3. Classify the text for obstacle pages
4. Retry with exponential backoff, but only for transient conditions

Transient conditions are connection/IO failures, HTTP 5xx and empty bodies.
Obstacles, 4xx responses and successes are returned straight away: sending
the same request again would not change them.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

import httpx

from .classifier import ContentClassifier
from .config import Settings
from .decoding import decode
from .errors import excerpt
from .models import FetchOutcome, FetchSuccess, ObstacleDetected, TransientError
from .session import SessionStore, StaticSessionStore
from .telemetry import ResponseStats

logger = logging.getLogger(__name__)

# Length of the document prefix attached to failed outcomes
SNIPPET_LENGTH = 300


class ResilientFetcher:
    """
    Async fetcher with retry/backoff, decoding and classification.

    The HTTP client, session store, classifier and sleep function are all
    constructor arguments so tests can swap in an ``httpx.MockTransport``
    and skip the real backoff.

    Usage:
        async with ResilientFetcher(session_store=EnvSessionStore()) as fetcher:
            outcome = await fetcher.fetch(url)
            if isinstance(outcome, FetchSuccess):
                ...
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        session_store: Optional[SessionStore] = None,
        settings: Optional[Settings] = None,
        classifier: Optional[ContentClassifier] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        stats: Optional[ResponseStats] = None,
    ):
        self.settings = settings or Settings()
        self.session_store = session_store or StaticSessionStore()
        self.classifier = classifier or ContentClassifier()
        self.stats = stats or ResponseStats()
        self._sleep = sleep
        self._own_client = client is None
        self.client = client or self._build_client()

    def _build_client(self) -> httpx.AsyncClient:
        # Separate connect/read budgets; write/pool share the read budget
        timeout = httpx.Timeout(self.settings.read_timeout, connect=self.settings.connect_timeout)
        return httpx.AsyncClient(
            http2=True,
            timeout=timeout,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "ResilientFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        """Close the HTTP client if this fetcher created it."""
        if self._own_client:
            await self.client.aclose()

    def _request_headers(self) -> Dict[str, str]:
        headers = {
            "User-Agent": self.settings.user_agent,
            "Accept-Language": self.settings.accept_language,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        }
        cookie = self.session_store.cookie_header()
        if cookie:
            headers["Cookie"] = cookie
        return headers

    async def fetch(self, url: str) -> FetchOutcome:
        """
        Fetch ``url`` with exponential backoff retry logic.

        Args:
            url: Page URL to fetch

        Returns:
            FetchSuccess, ObstacleDetected, or the last TransientError once
            the retry budget is spent.
        """
        backoff = self.settings.initial_backoff
        last_failure: Optional[TransientError] = None

        for attempt in range(self.settings.max_retries + 1):
            if attempt > 0:
                logger.debug("Retry %d for %s in %.2fs", attempt, url, backoff)
                self.stats.record_retry()
                await self._sleep(backoff)
                backoff *= 2

            outcome = await self.fetch_once(url)

            if not isinstance(outcome, TransientError) or not outcome.retryable:
                return outcome

            last_failure = outcome
            logger.warning("Attempt %d/%d failed for %s: %s",
                           attempt + 1, self.settings.max_retries + 1, url, outcome.detail)

        logger.error("All %d attempts failed for %s", self.settings.max_retries + 1, url)
        self.stats.record_retry_exhausted(last_failure.detail)
        return last_failure

    async def fetch_once(self, url: str) -> FetchOutcome:
        """Single request without retry: fetch, decode, classify."""
        try:
            response = await self.client.get(url, headers=self._request_headers())
        except httpx.RequestError as e:
            logger.debug("Request error for %s: %r", url, e)
            return TransientError(detail=f"{type(e).__name__}: {e}", url=url)

        status = response.status_code
        self.stats.record_response(status)

        text, charset = decode(
            response.content,
            response.headers.get("Content-Type"),
            self.settings.default_charset,
        )
        snippet = excerpt(text, SNIPPET_LENGTH)
        logger.debug("FinalUrl=%s Status=%d Charset=%s BodyLen=%d",
                     response.url, status, charset, len(response.content))

        # Challenge pages are often served as 403/503; classify before the
        # status check so they surface as obstacles instead of being retried.
        kind = self.classifier.classify(text)
        if kind is not None:
            logger.info("Obstacle %s detected for %s", kind.value, url)
            self.stats.record_obstacle(kind.value)
            return ObstacleDetected(kind=kind, url=url, status_code=status, excerpt=snippet)

        if status >= 500:
            return TransientError(detail=f"HTTP {status}", url=url, status_code=status, excerpt=snippet)

        if status >= 400:
            return TransientError(detail=f"HTTP {status}", url=url, status_code=status,
                                  excerpt=snippet, retryable=False)

        if not text.strip():
            return TransientError(detail="Empty body", url=url, status_code=status)

        return FetchSuccess(
            document=text,
            url=url,
            final_url=str(response.url),
            status_code=status,
            charset=charset,
        )

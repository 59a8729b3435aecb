"""
ForumService: the consumer-facing API.

Ties the pieces together for one forum:

    cache hit (fresh)  -> return it
    cache hit (stale)  -> return it and refresh in the background, or refresh
                          first, depending on ``stale_while_revalidate``
    miss               -> fetch -> (render fallback on challenge) -> parse
                          in a worker thread -> cache -> return

Every failure surfaces as one of ``ObstacleError``,
``TransientNetworkError`` or ``StructuralParseError``.
"""

import asyncio
import functools
import logging
import time
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from .cache import PageCaches, StalenessCache
from .classifier import ContentClassifier
from .config import DEFAULT_FORUM_ID, Settings, build_forum_display_url, build_view_thread_url
from .errors import ObstacleError, StructuralParseError, TransientNetworkError
from .extractor import ExtractionEngine
from .fetcher import ResilientFetcher
from .models import (
    ExtractMode,
    FetchSuccess,
    ListingPage,
    ObstacleDetected,
    ObstacleKind,
    ThreadPage,
)
from .render import RenderFetcher
from .session import SessionStore

logger = logging.getLogger(__name__)


class ForumService:
    """
    Cached, render-aware access to listing and thread pages.

    Usage:
        async with ForumService(session_store=EnvSessionStore()) as service:
            listing = await service.get_listing("2", page=1)
            for summary in listing.threads:
                thread = await service.get_thread(summary.thread_id)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        fetcher: Optional[ResilientFetcher] = None,
        engine: Optional[ExtractionEngine] = None,
        caches: Optional[PageCaches] = None,
        render_fetcher: Optional[RenderFetcher] = None,
        session_store: Optional[SessionStore] = None,
        stale_while_revalidate: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or Settings()
        self._own_fetcher = fetcher is None
        self.fetcher = fetcher or ResilientFetcher(session_store=session_store, settings=self.settings)
        self.engine = engine or ExtractionEngine(self.settings)
        self.caches = caches or PageCaches(self.settings, clock)
        self.render_fetcher = render_fetcher
        self.stale_while_revalidate = stale_while_revalidate
        self.classifier = ContentClassifier()

        self._render_slots = asyncio.Semaphore(self.settings.max_render_sessions)
        # One background refresh per cache key at a time
        self._refreshes: Dict[str, asyncio.Task] = {}

    async def __aenter__(self) -> "ForumService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        """Cancel background refreshes and close the fetcher if this service created it."""
        tasks = list(self._refreshes.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._refreshes.clear()

        if self._own_fetcher:
            await self.fetcher.aclose()

    # -------------------------------------------------------
    # URLS
    # -------------------------------------------------------

    def listing_url(self, forum_id: str = DEFAULT_FORUM_ID, page: int = 1) -> str:
        return build_forum_display_url(forum_id, page, self.settings.base_forum_url)

    def thread_url(self, thread_id: str, page: int = 1) -> str:
        return build_view_thread_url(thread_id, page, self.settings.base_forum_url)

    # -------------------------------------------------------
    # PUBLIC API
    # -------------------------------------------------------

    async def get_listing(self, forum_id: str = DEFAULT_FORUM_ID, page: int = 1,
                          force_refresh: bool = False) -> ListingPage:
        """
        Get one listing page of a forum.

        Raises:
            ObstacleError, TransientNetworkError, StructuralParseError
        """
        url = self.listing_url(forum_id, page)
        return await self._cached(self.caches.listings, url, self._load_listing, force_refresh)

    async def get_thread(self, thread_id: str, page: int = 1,
                         mode: ExtractMode = ExtractMode.FULL,
                         force_refresh: bool = False) -> ThreadPage:
        """
        Get one page of a thread.

        Only FULL pages are cached. A QUICK request is answered from a cached
        FULL page when there is one, otherwise from the cached document.

        Raises:
            ObstacleError, TransientNetworkError, StructuralParseError
        """
        url = self.thread_url(thread_id, page)
        load = functools.partial(self._load_thread, thread_id=thread_id)

        if mode is ExtractMode.FULL:
            return await self._cached(self.caches.threads, url, load, force_refresh)

        if not force_refresh:
            entry = self.caches.threads.get(url)
            if entry is not None and not self.caches.threads.is_stale(entry):
                return entry.value

        document = await self._document(url, force_refresh)
        return await self._parse(url, self.engine.extract_thread, document,
                                 ExtractMode.QUICK, None, thread_id)

    async def stream_listing(self, forum_id: str = DEFAULT_FORUM_ID,
                             page: int = 1) -> AsyncIterator[ListingPage]:
        """Yield the cached listing (even if stale), then a fresh one if needed."""
        url = self.listing_url(forum_id, page)
        entry = self.caches.listings.get(url)
        if entry is not None:
            yield entry.value
            if not self.caches.listings.is_stale(entry):
                return
        yield await self._load_listing(url, force_refresh=entry is not None)

    async def stream_thread(self, thread_id: str, page: int = 1) -> AsyncIterator[ThreadPage]:
        """
        Yield progressively better versions of a thread page.

        Cached: the cached FULL page, then a refreshed one if it was stale.
        Cold: a QUICK parse for the first screen, then the FULL parse of the
        same document.
        """
        url = self.thread_url(thread_id, page)
        entry = self.caches.threads.get(url)
        if entry is not None:
            yield entry.value
            if not self.caches.threads.is_stale(entry):
                return
            yield await self._load_thread(url, thread_id=thread_id, force_refresh=True)
            return

        document = await self._document(url)
        yield await self._parse(url, self.engine.extract_thread, document,
                                ExtractMode.QUICK, None, thread_id)
        full = await self._parse(url, self.engine.extract_thread, document,
                                 ExtractMode.FULL, None, thread_id)
        self.caches.threads.put(url, full)
        yield full

    # -------------------------------------------------------
    # CACHE POLICY
    # -------------------------------------------------------

    async def _cached(self, cache: StalenessCache, url: str,
                      load: Callable[..., Awaitable], force_refresh: bool):
        entry = None if force_refresh else cache.get(url)
        if entry is not None:
            if not cache.is_stale(entry):
                logger.debug("Cache hit: %s", url)
                return entry.value
            if self.stale_while_revalidate:
                logger.debug("Serving stale %s, refreshing in background", url)
                self._schedule_refresh(url, load)
                return entry.value
        # A cold miss may still reuse a fresh document; anything else refetches
        return await load(url, force_refresh=force_refresh or entry is not None)

    def _schedule_refresh(self, url: str, load: Callable[..., Awaitable]):
        if url in self._refreshes:
            return
        task = asyncio.create_task(load(url, force_refresh=True))
        self._refreshes[url] = task
        task.add_done_callback(functools.partial(self._refresh_done, url))

    def _refresh_done(self, url: str, task: asyncio.Task):
        self._refreshes.pop(url, None)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Background refresh of %s failed: %s", url, error)

    # -------------------------------------------------------
    # LOADING
    # -------------------------------------------------------

    async def _load_listing(self, url: str, force_refresh: bool = False) -> ListingPage:
        document = await self._document(url, force_refresh)
        listing = await self._parse(url, self.engine.extract_listing, document)
        self.caches.listings.put(url, listing)
        return listing

    async def _load_thread(self, url: str, thread_id: str,
                           force_refresh: bool = False) -> ThreadPage:
        document = await self._document(url, force_refresh)
        thread = await self._parse(url, self.engine.extract_thread, document,
                                   ExtractMode.FULL, None, thread_id)
        self.caches.threads.put(url, thread)
        return thread

    async def _parse(self, url: str, parse: Callable, *args):
        try:
            return await asyncio.to_thread(parse, *args)
        except StructuralParseError as e:
            logger.warning("Could not parse %s: %s", url, e)
            raise e.with_url(url)

    async def _document(self, url: str, force_refresh: bool = False) -> str:
        """Decoded document for ``url``, from the document cache when fresh."""
        if not force_refresh:
            entry = self.caches.documents.get(url)
            if entry is not None and not self.caches.documents.is_stale(entry):
                return entry.value

        outcome = await self.fetcher.fetch(url)

        if isinstance(outcome, FetchSuccess):
            document = outcome.document
        elif isinstance(outcome, ObstacleDetected):
            if outcome.kind is ObstacleKind.ANTI_BOT_CHALLENGE and self.render_fetcher is not None:
                document = await self._render(url)
            else:
                raise ObstacleError(outcome.kind, url, outcome.status_code)
        else:
            raise TransientNetworkError(outcome.detail, url, outcome.status_code, outcome.excerpt)

        self.caches.documents.put(url, document)
        return document

    async def _render(self, url: str) -> str:
        """Fetch ``url`` through the render fallback, holding a render slot."""
        logger.info("Challenge on %s, falling back to browser render", url)
        async with self._render_slots:
            try:
                result = await self.render_fetcher.render_fetch(url)
            except (ObstacleError, TransientNetworkError):
                raise
            except Exception as e:
                raise TransientNetworkError(f"Render failed: {e}", url) from e

        # The browser may still be looking at a challenge or a login wall
        kind = self.classifier.classify(result.document)
        if kind is not None:
            raise ObstacleError(kind, url, result.http_status or None)
        if not result.document.strip():
            raise TransientNetworkError("Empty rendered document", url, result.http_status or None)
        return result.document

"""
Render fallback: fetch a page through a real browser.

Used only when the plain HTTP fetch hits an anti-bot challenge. The service
bounds concurrency; a render fetcher only has to turn a URL into a
``RenderResult``.

``PlaywrightRenderFetcher`` needs the optional ``render`` extra:

    pip install discuz-forums-miner[render]
    python -m playwright install chromium
"""

import asyncio
import logging
import os
from typing import Optional, Protocol

from .config import RENDER_TIMEOUT_MS
from .models import RenderResult

logger = logging.getLogger(__name__)


class RenderFetcher(Protocol):
    """Anything that can load a URL in a browser and return its HTML."""

    async def render_fetch(self, url: str) -> RenderResult:
        ...


class PlaywrightRenderFetcher:
    """
    Shared headless Chromium with one fresh context per render.

    The browser is launched on first use and reused; each render gets its own
    context so cookies from one page never leak into the next. When
    ``storage_state_path`` points at an existing Playwright storage state
    file, every context starts from that logged-in session.

    Usage:
        async with PlaywrightRenderFetcher(storage_state_path=".state.json") as renderer:
            result = await renderer.render_fetch(url)
    """

    def __init__(self, storage_state_path: Optional[str] = None,
                 headless: bool = True, timeout_ms: int = RENDER_TIMEOUT_MS):
        self.storage_state_path = storage_state_path
        self.headless = headless
        self.timeout_ms = timeout_ms
        self._playwright = None
        self._browser = None
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "PlaywrightRenderFetcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def start(self):
        """Launch Playwright + Chromium once."""
        async with self._lock:
            if self._browser is not None:
                return
            try:
                from playwright.async_api import async_playwright
            except ImportError as e:
                raise RuntimeError(
                    "Playwright not installed. Run: pip install discuz-forums-miner[render] && "
                    "python -m playwright install chromium"
                ) from e

            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
            logger.info("Launched headless Chromium for render fallback")

    def _context_options(self) -> dict:
        if self.storage_state_path and os.path.exists(self.storage_state_path):
            logger.debug("Using saved session state %s", self.storage_state_path)
            return {"storage_state": self.storage_state_path}
        return {}

    async def render_fetch(self, url: str) -> RenderResult:
        await self.start()
        logger.info("Rendering %s in browser", url)

        context = await self._browser.new_context(**self._context_options())
        try:
            page = await context.new_page()
            response = await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
            document = await page.content()
            return RenderResult(
                document=document,
                final_url=page.url,
                http_status=response.status if response is not None else 0,
            )
        finally:
            # Close only the context; the browser stays up for the next render
            await context.close()

    async def aclose(self):
        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None

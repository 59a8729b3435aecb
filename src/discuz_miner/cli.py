"""CLI interface for Discuz Forums Miner."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click
from tqdm import tqdm

from .config import DEFAULT_FORUM_ID, Settings
from .errors import ObstacleError, StructuralParseError, TransientNetworkError
from .models import ExtractMode, ObstacleKind
from .render import PlaywrightRenderFetcher, RenderFetcher
from .service import ForumService
from .session import StaticSessionStore
from .utils import to_json_bytes, write_json

logger = logging.getLogger(__name__)


@dataclass
class CliOptions:
    settings: Settings
    cookie: Optional[str] = None
    render: bool = False


def build_service(options: CliOptions, render_fetcher: Optional[RenderFetcher] = None) -> ForumService:
    return ForumService(
        settings=options.settings,
        session_store=StaticSessionStore(options.cookie),
        render_fetcher=render_fetcher,
    )


@asynccontextmanager
async def open_service(options: CliOptions):
    """Service (plus browser, with --render) that is closed on exit."""
    renderer = None
    if options.render:
        renderer = PlaywrightRenderFetcher(
            storage_state_path=options.settings.render_state_path,
            timeout_ms=options.settings.render_timeout_ms,
        )
    service = build_service(options, renderer)
    try:
        yield service
    finally:
        await service.aclose()
        if renderer is not None:
            await renderer.aclose()


def run(coro):
    """Run a command coroutine, turning miner errors into a non-zero exit."""
    try:
        return asyncio.run(coro)
    except ObstacleError as e:
        hint = " (try --render)" if e.kind is ObstacleKind.ANTI_BOT_CHALLENGE else " (try --cookie)"
        raise click.ClickException(f"Blocked: {e}{hint}") from e
    except (TransientNetworkError, StructuralParseError) as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option('--cookie', envvar='DISCUZ_COOKIE', default=None,
              help='Cookie header of a logged-in session (or DISCUZ_COOKIE)')
@click.option('--render/--no-render', default=False,
              help='Fall back to a headless browser on anti-bot challenges')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
@click.pass_context
def main(ctx, cookie, render, verbose):
    """Discuz Forums Miner - resilient fetcher and parser for Discuz! forums."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    ctx.obj = CliOptions(settings=Settings.from_env(), cookie=cookie, render=render)


@main.command()
@click.option('--forum-id', default=DEFAULT_FORUM_ID, show_default=True, help='Forum id (fid)')
@click.option('--page', default=1, type=click.IntRange(min=1), show_default=True)
@click.pass_obj
def listing(options, forum_id, page):
    """Print one listing page as JSON."""
    async def _listing():
        async with open_service(options) as service:
            return await service.get_listing(forum_id, page)

    result = run(_listing())
    click.echo(to_json_bytes(result.to_dict()).decode('utf-8'))


@main.command()
@click.argument('thread_id')
@click.option('--page', default=1, type=click.IntRange(min=1), show_default=True)
@click.option('--mode', type=click.Choice(['quick', 'full']), default='full', show_default=True)
@click.pass_obj
def thread(options, thread_id, page, mode):
    """Print one page of thread THREAD_ID as JSON."""
    async def _thread():
        async with open_service(options) as service:
            return await service.get_thread(thread_id, page, ExtractMode(mode))

    result = run(_thread())
    click.echo(to_json_bytes(result.to_dict()).decode('utf-8'))


@main.command()
@click.option('--forum-id', default=DEFAULT_FORUM_ID, show_default=True, help='Forum id (fid)')
@click.option('--pages', default=1, type=click.IntRange(min=1), show_default=True,
              help='Maximum number of listing pages to fetch')
@click.option('--output', 'output_dir', default='output', show_default=True,
              type=click.Path(file_okay=False), help='Output directory')
@click.option('--threads', 'with_threads', is_flag=True,
              help='Also save the first page of every listed thread')
@click.pass_obj
def crawl(options, forum_id, pages, output_dir, with_threads):
    """Fetch listing pages 1..PAGES and save them as JSON files."""
    written = run(_crawl(options, forum_id, pages, Path(output_dir), with_threads))
    click.echo(f"Wrote {written} listing page(s) to {output_dir}")


async def _crawl(options: CliOptions, forum_id: str, pages: int,
                 output_dir: Path, with_threads: bool) -> int:
    """Async crawl implementation."""
    written = 0
    async with open_service(options) as service:
        with tqdm(total=pages, desc="Listing pages") as pbar:
            for page in range(1, pages + 1):
                result = await service.get_listing(forum_id, page)
                write_json(output_dir / f"listing_{page}.json", result.to_dict())
                written += 1
                pbar.update(1)

                if with_threads:
                    await _crawl_threads(service, result, output_dir / "threads")

                if not result.has_more:
                    logger.info("Reached last page (%d)", result.last_page)
                    break

        click.echo(service.fetcher.stats.get_summary(), err=True)
    return written


async def _crawl_threads(service: ForumService, result, threads_dir: Path):
    for summary in result.threads:
        try:
            page = await service.get_thread(summary.thread_id)
        except (ObstacleError, TransientNetworkError, StructuralParseError) as e:
            # One bad thread does not stop the crawl
            logger.warning("Skipping thread %s: %s", summary.thread_id, e)
            continue
        write_json(threads_dir / f"thread_{summary.thread_id}.json", page.to_dict())


if __name__ == '__main__':
    main()

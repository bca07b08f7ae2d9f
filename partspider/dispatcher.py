"""Page dispatch: run a vendor's ordered strategy list over one parsed page.

Strategies are plain functions ``func(ctx, page) -> bool`` returning True
when they handled the page. The first non-additive strategy that handles
a page suppresses the rest; additive strategies (related products, the
site navigation menu) always run.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from bs4 import BeautifulSoup, Tag

from partspider.breadcrumbs import CategoryTracker, page_breadcrumb
from partspider.catalog import ReferenceCatalog
from partspider.downloads import DownloadIndex
from partspider.emitter import Emitter
from partspider.frontier import Frontier
from partspider.logging_config import get_logger
from partspider.models import VendorTarget
from partspider.shutdown import ShutdownHandler

__all__ = [
    "Page",
    "Strategy",
    "CrawlContext",
    "build_page",
    "dispatch",
    "process_page",
]

logger = get_logger("dispatcher")


@dataclass
class Page:
    """A fetched page, parsed and labelled with its breadcrumb."""

    url: str
    soup: BeautifulSoup
    breadcrumb: str = ""
    discontinued: bool = False
    redirected: bool = False


@dataclass
class Strategy:
    name: str
    func: Callable[["CrawlContext", Page], bool]
    additive: bool = False

    def __call__(self, ctx: "CrawlContext", page: Page) -> bool:
        return self.func(ctx, page)


@dataclass
class CrawlContext:
    """State shared by every page of one crawl.

    ``lock`` is held for the whole of parsing and dispatching a page.
    """

    target: VendorTarget
    frontier: Frontier
    emitter: Emitter
    catalog: ReferenceCatalog
    categories: CategoryTracker = field(default_factory=CategoryTracker)
    single_only: bool = False
    shutdown: Optional[ShutdownHandler] = None
    lock: threading.RLock = field(default_factory=threading.RLock)

    @property
    def cancelled(self) -> bool:
        return self.shutdown is not None and self.shutdown.cancel_requested

    def enqueue(self, href: str, breadcrumb: str, base_url: str = "") -> bool:
        """Schedule a discovered link (never in single-page mode)."""
        if self.single_only or not href:
            return False
        return self.frontier.enqueue(href, breadcrumb, base_url)

    def collect_downloads(self, root: Tag, page_url: str) -> DownloadIndex:
        index = DownloadIndex(self.target.download_renames, self.target.download_generic_keys)
        if self.target.download_collector is not None:
            self.target.download_collector(index, root, page_url, self.emitter)
        return index

    def finish_downloads(self, index: DownloadIndex, page_url: str) -> None:
        index.report_unused(self.emitter, page_url)


def build_page(ctx: CrawlContext, url: str, text: str, redirected: bool = False) -> Page:
    soup = BeautifulSoup(text, "html.parser")
    breadcrumb = page_breadcrumb(ctx.target, soup, url, ctx.frontier, ctx.categories)
    discontinued = False
    if ctx.target.discontinued_selector:
        discontinued = soup.select_one(ctx.target.discontinued_selector) is not None
    ctx.frontier.mark_visited(url, breadcrumb)
    return Page(url=url, soup=soup, breadcrumb=breadcrumb, discontinued=discontinued, redirected=redirected)


def dispatch(ctx: CrawlContext, page: Page, strategies: Optional[List[Strategy]] = None) -> bool:
    """Run the strategy list over ``page``.

    Returns:
        True if some strategy handled the page
    """
    handled = False
    for strategy in ctx.target.strategies if strategies is None else strategies:
        if handled and not strategy.additive:
            continue
        try:
            if strategy(ctx, page):
                logger.debug(f"{strategy.name} handled {page.url}")
                handled = True
        except Exception as e:
            logger.exception(f"Strategy {strategy.name} failed on {page.url}")
            ctx.emitter.output_error(f"Exception processing {page.url}: {e}")
            handled = True

    if not handled:
        if page.url in ctx.target.root_urls or page.redirected:
            logger.info(f"Nothing to extract from {page.url}")
        else:
            ctx.emitter.output_error(f"Unable to process: {page.url}")
    return handled


def process_page(ctx: CrawlContext, url: str, text: str, redirected: bool = False) -> bool:
    """Parse and dispatch one fetched page under the crawl lock."""
    with ctx.lock:
        # Cancel can land while the page was being fetched; the output may be closed by now
        if ctx.cancelled:
            logger.debug(f"Crawl cancelled, not dispatching {url}")
            return False
        page = build_page(ctx, url, text, redirected)
        logger.debug(f"Dispatching {url} [{page.breadcrumb}]")
        return dispatch(ctx, page)

"""High-level crawl workflow.

Wires one vendor target into a complete run: output file, reference
catalog, frontier, scheduler, and the terminal pass for catalog parts the
crawl never reached.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import requests  # type: ignore[import-untyped]

from partspider.catalog import load_catalog
from partspider.config import DEFAULT_WORKERS, OUTPUT_DIR, REQUEST_DELAY
from partspider.dispatcher import CrawlContext
from partspider.emitter import Emitter
from partspider.frontier import Frontier
from partspider.logging_config import get_logger, log_spider_event
from partspider.memstats import MemStatsReporter
from partspider.models import VendorTarget
from partspider.reconcile import Reconciler
from partspider.scheduler import CrawlStats, Scheduler, create_session
from partspider.shutdown import ShutdownHandler
from partspider.url_validation import validate_seed_url
from partspider.vendors import ConfigurationError

__all__ = ["CrawlOptions", "CrawlResult", "build_seeds", "crawl_vendor"]

logger = get_logger("workflows")


@dataclass
class CrawlOptions:
    """Per-run overrides of a vendor target."""

    seed: Optional[str] = None
    outfile: Optional[str] = None
    spreadsheet_id: Optional[str] = None
    catalog_path: Optional[str] = None
    single: bool = False
    strip_sku: bool = False
    skip_catalog: bool = False
    stop_at: Optional[str] = None
    cancel_at: Optional[str] = None
    memstats_interval: Optional[float] = None
    workers: int = DEFAULT_WORKERS
    request_delay: float = REQUEST_DELAY


@dataclass
class CrawlResult:
    outfile: str
    stats: CrawlStats
    counts: Dict[str, int]
    unseen: int = 0


def build_seeds(target: VendorTarget, seed: Optional[str] = None) -> List[Tuple[str, str]]:
    """The seed URL followed by the vendor presets, all with an empty breadcrumb."""
    seeds = [(validate_seed_url(seed or target.seed), "")]
    seeds.extend((url, "") for url in target.presets)
    return seeds


def _output_path(target: VendorTarget, outfile: Optional[str]) -> str:
    return outfile or os.path.join(OUTPUT_DIR, target.outfile)


def crawl_vendor(
    target: VendorTarget,
    options: CrawlOptions,
    shutdown: ShutdownHandler,
    session: Optional[requests.Session] = None,
) -> CrawlResult:
    """Crawl one vendor site and write its reconciled product file.

    Args:
        target: Vendor rule set
        options: Command-line overrides
        shutdown: Stop/cancel controller, already armed with any timers
        session: HTTP session for both the catalog and the crawl

    Returns:
        CrawlResult with scheduler stats and per-status counts

    Raises:
        URLValidationError: If the seed URL is unusable
        CatalogError: If the reference catalog cannot be read
        ConfigurationError: If the output file cannot be opened
    """
    seeds = build_seeds(target, options.seed)
    session = session or create_session()
    catalog = load_catalog(
        spreadsheet_id=options.spreadsheet_id or target.spreadsheet_id,
        path=options.catalog_path,
        skip=options.skip_catalog,
        session=session,
    )
    log_spider_event("catalog_loaded", {
        "message": f"Catalog has {len(catalog)} parts ({len(catalog.excluded)} excluded from matching)",
        "parts": len(catalog),
        "excluded": len(catalog.excluded),
    })

    outfile = _output_path(target, options.outfile)
    try:
        stream = open(outfile, "w", encoding="utf-8", newline="")
    except OSError as e:
        raise ConfigurationError(f"Unable to create output file {outfile}: {e}") from e

    with stream:
        reconciler = Reconciler.for_target(catalog, target)
        emitter = Emitter(stream, reconciler)
        emitter.write_header()

        frontier = Frontier(
            seeds[0][0],
            strip_query=target.strip_sku or options.strip_sku,
            skip_pages=target.skip_pages,
        )
        ctx = CrawlContext(
            target=target,
            frontier=frontier,
            emitter=emitter,
            catalog=catalog,
            single_only=options.single,
            shutdown=shutdown,
        )
        scheduler = Scheduler(
            ctx,
            shutdown,
            workers=options.workers,
            session=session,
            stop_at=options.stop_at,
            cancel_at=options.cancel_at,
            request_delay=options.request_delay,
        )

        reporter = None
        if options.memstats_interval:
            reporter = MemStatsReporter(options.memstats_interval, scheduler.snapshot).start()
        try:
            stats = scheduler.run(seeds)
        finally:
            if reporter is not None:
                reporter.stop()

        unseen = 0
        with ctx.lock:
            if stats.cancelled:
                logger.warning("Crawl was cancelled, parts not found by the spider are not listed")
            elif not options.single:
                unseen = emitter.emit_unseen(catalog)
            counts = emitter.summary()

    logger.info(f"Finished writing {outfile}")
    return CrawlResult(outfile=outfile, stats=stats, counts=counts, unseen=unseen)

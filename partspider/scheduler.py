"""Fetch scheduler: a bounded worker pool driven by the frontier.

Workers fetch pages outside the crawl lock and dispatch them inside it.
The crawl ends when the frontier's pending count drains to zero. Just
before that, once and only once, every catalog URL the crawl has not
reached is enqueued so unseen parts still get a fetch attempt.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import requests  # type: ignore[import-untyped]

from partspider.config import (
    ACCEPTED_CONTENT_TYPES,
    DEFAULT_WORKERS,
    HEADERS,
    REQUEST_DELAY,
    REQUEST_TIMEOUT,
    WORKER_IDLE_TTL,
)
from partspider.dispatcher import CrawlContext, process_page
from partspider.logging_config import get_logger, log_spider_event
from partspider.shutdown import ShutdownHandler
from partspider.url_validation import same_host

__all__ = ["CrawlStats", "Scheduler", "create_session"]

logger = get_logger("scheduler")


def create_session() -> requests.Session:
    """Session with the crawler's User-Agent and a shared cookie jar."""
    session = requests.Session()
    session.headers.update(HEADERS)
    session.headers.setdefault("Accept-Encoding", "gzip, deflate")
    return session


@dataclass
class CrawlStats:
    fetched: int = 0
    failed: int = 0
    ignored: int = 0
    drained: bool = False
    stopped: bool = False
    cancelled: bool = False
    late_pass_urls: int = 0


class Scheduler:
    """Runs one crawl over ``ctx.frontier``.

    Args:
        ctx: Crawl context shared with the dispatcher
        shutdown: Stop/cancel controller
        workers: Worker thread count
        session: HTTP session (a fresh one is created if omitted)
        stop_at: Stop scheduling once this URL is reached (the page is still processed)
        cancel_at: Cancel the crawl once this URL is reached (the page is not processed)
        request_delay: Minimum spacing between requests, in seconds
        idle_ttl: Warn when no page completes for this many seconds
    """

    def __init__(
        self,
        ctx: CrawlContext,
        shutdown: ShutdownHandler,
        workers: int = DEFAULT_WORKERS,
        session: Optional[requests.Session] = None,
        stop_at: Optional[str] = None,
        cancel_at: Optional[str] = None,
        request_delay: float = REQUEST_DELAY,
        idle_ttl: float = WORKER_IDLE_TTL,
    ) -> None:
        self.ctx = ctx
        self.frontier = ctx.frontier
        self.shutdown = shutdown
        self.workers = max(1, workers)
        self.session = session or create_session()
        self.stop_at = self.frontier.canonicalize(stop_at) if stop_at else None
        self.cancel_at = self.frontier.canonicalize(cancel_at) if cancel_at else None
        self.request_delay = request_delay
        self.idle_ttl = idle_ttl

        self.stats = CrawlStats()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._drained = threading.Event()
        self._finish_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._throttle_lock = threading.Lock()
        self._next_request = 0.0
        self._late_pass_done = False
        self._last_progress = time.monotonic()
        self._active = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, seeds: Iterable[Tuple[str, str]]) -> CrawlStats:
        """Crawl from ``(url, breadcrumb)`` seeds until drained, stopped or cancelled."""
        self.frontier.bind(self._submit)
        self._executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="spider")
        log_spider_event("crawl_start", {
            "message": f"Crawling {self.frontier.host} with {self.workers} workers",
            "host": self.frontier.host,
            "workers": self.workers,
            "single": self.ctx.single_only,
        })

        # Hold the count above zero until every seed is queued
        self.frontier.hold()
        for i, (url, breadcrumb) in enumerate(seeds):
            if self.ctx.single_only and i > 0:
                break
            self.frontier.enqueue(url, breadcrumb)
        self._finish(None)

        try:
            self._wait()
        finally:
            cancelled = self.shutdown.cancel_requested
            self._executor.shutdown(wait=not cancelled, cancel_futures=cancelled)

        self.stats.drained = self._drained.is_set()
        self.stats.stopped = self.shutdown.stop_requested
        self.stats.cancelled = self.shutdown.cancel_requested
        log_spider_event("crawl_complete", {
            "message": (
                f"Crawl finished: {self.stats.fetched} fetched, {self.stats.failed} failed, "
                f"{self.stats.ignored} ignored, {len(self.frontier)} known URLs"
            ),
            "fetched": self.stats.fetched,
            "failed": self.stats.failed,
            "ignored": self.stats.ignored,
            "known": len(self.frontier),
            "drained": self.stats.drained,
            "stopped": self.stats.stopped,
            "cancelled": self.stats.cancelled,
        })
        return self.stats

    def snapshot(self) -> Dict[str, int]:
        """Counters for the memory reporter."""
        return {
            "pending": self.frontier.pending,
            "known": len(self.frontier),
            "workers": self._active,
        }

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _submit(self, url: str) -> bool:
        if self.shutdown.stop_requested or self._executor is None:
            return False
        try:
            self._executor.submit(self._run, url)
        except RuntimeError:
            # Executor already shut down
            return False
        return True

    def _throttle(self) -> None:
        with self._throttle_lock:
            wait = self._next_request - time.monotonic()
            if wait > 0:
                time.sleep(wait)
            self._next_request = time.monotonic() + self.request_delay

    def _count(self, field_name: str) -> None:
        with self._stats_lock:
            setattr(self.stats, field_name, getattr(self.stats, field_name) + 1)

    def _run(self, url: str) -> None:
        with self._stats_lock:
            self._active += 1
        try:
            if self.shutdown.cancel_requested:
                return
            if self.cancel_at and url == self.cancel_at:
                self.shutdown.request_cancel(f"reached {url}")
                return
            if self.stop_at and url == self.stop_at:
                self.shutdown.request_stop(f"reached {url}")
            self._fetch_and_process(url)
        except Exception:
            logger.exception(f"Unexpected failure handling {url}")
            self._count("failed")
        finally:
            with self._stats_lock:
                self._active -= 1
            self._finish(url)

    def _fetch_and_process(self, url: str) -> None:
        if self.request_delay > 0:
            self._throttle()

        try:
            resp = self.session.get(url, timeout=REQUEST_TIMEOUT, allow_redirects=True)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Error fetching {url}: {e}")
            log_spider_event("page_error", {"message": f"Fetch failed: {url}", "url": url, "error": str(e)},
                             level=logging.WARNING, logger_name="scheduler")
            self._count("failed")
            return

        content_type = resp.headers.get("Content-Type", "")
        logger.info(f"[{resp.status_code}] GET {url} - {content_type}")
        if resp.status_code >= 400:
            self._count("failed")
            return
        if content_type.split(";")[0].strip().lower() not in ACCEPTED_CONTENT_TYPES:
            self._count("ignored")
            return

        final_url = self.frontier.canonicalize(resp.url or url)
        redirected = final_url != url
        if redirected:
            if not same_host(final_url, self.frontier.host):
                logger.info(f"Not following off-host redirect {url} -> {final_url}")
                self._count("ignored")
                return
            self.frontier.mark_visited(final_url, self.frontier.breadcrumb_for(url) or "")

        if self.shutdown.cancel_requested:
            return
        self._count("fetched")
        process_page(self.ctx, final_url, resp.text, redirected)

    def _finish(self, url: Optional[str]) -> None:
        """Release one pending unit, running the late pass before the last one."""
        with self._finish_lock:
            if (
                not self.ctx.single_only
                and not self._late_pass_done
                and not self.shutdown.stop_requested
                and self.frontier.pending <= 1
            ):
                self._late_pass_done = True
                self._late_pass()
            remaining = self.frontier.complete()
            self._last_progress = time.monotonic()
            if remaining == 0:
                self._drained.set()
        if url is not None:
            logger.debug(f"Finished {url}, {remaining} pending")

    def _late_pass(self) -> None:
        queued = 0
        with self.ctx.lock:
            for part in self.ctx.catalog.unseen_urls():
                if self.frontier.is_known(part.url):
                    continue
                if self.frontier.enqueue(part.url, part.section):
                    queued += 1
        self.stats.late_pass_urls = queued
        log_spider_event("late_pass", {
            "message": f"Late pass queued {queued} catalog URLs the crawl had not reached",
            "queued": queued,
        })

    # ------------------------------------------------------------------
    # Main thread
    # ------------------------------------------------------------------

    def _wait(self) -> None:
        warned = False
        while not self._drained.wait(1.0):
            if self.shutdown.cancel_requested:
                logger.warning("Crawl cancelled, abandoning queued pages")
                return
            idle = time.monotonic() - self._last_progress
            if idle > self.idle_ttl and self.frontier.pending > 0:
                if not warned:
                    logger.warning(
                        f"No page completed in {idle:.0f}s with {self.frontier.pending} pending "
                        f"and {self._active} workers busy"
                    )
                    warned = True
            else:
                warned = False

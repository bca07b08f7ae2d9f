"""Crawl frontier: every URL the crawl has ever seen, and the pending-fetch count.

The frontier maps each canonical URL to the breadcrumb it was first
discovered under. Later discoveries never overwrite the label. A URL is
handed to the scheduler at most once for the lifetime of a crawl.
"""

import threading
from typing import Callable, Dict, Iterable, Optional

from partspider.logging_config import get_logger
from partspider.url_validation import canonicalize_url, host_of, is_crawlable, same_host

__all__ = ["Frontier"]

logger = get_logger("frontier")

SubmitFunc = Callable[[str], bool]


class Frontier:
    """Deduplicating URL set with an atomic pending counter.

    Args:
        seed_url: Any URL on the host being crawled; other hosts are dropped
        strip_query: Remove the whole query string during canonicalization
        skip_pages: URL prefixes that are recorded as known but never fetched
    """

    def __init__(
        self,
        seed_url: str,
        strip_query: bool = False,
        skip_pages: Iterable[str] = (),
    ) -> None:
        self.host = host_of(seed_url)
        self.strip_query = strip_query
        self.skip_pages = tuple(skip_pages)
        self._breadcrumbs: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._pending = 0
        self._submit: Optional[SubmitFunc] = None

    def bind(self, submit: SubmitFunc) -> None:
        """Attach the scheduler callback that starts a fetch.

        ``submit(url)`` returns False when the scheduler refuses new work
        (a stop was requested), in which case the pending count is rolled back.
        """
        self._submit = submit

    def canonicalize(self, href: str, base_url: str = "") -> str:
        return canonicalize_url(href, base_url, strip_query=self.strip_query)

    def enqueue(self, href: str, breadcrumb: str = "", base_url: str = "") -> bool:
        """Schedule ``href`` unless it is already known.

        Returns:
            True if a fetch was scheduled
        """
        url = self.canonicalize(href, base_url)
        if not is_crawlable(url):
            logger.debug(f"Ignoring non-crawlable link {href!r} on {base_url}")
            return False
        if not same_host(url, self.host):
            logger.debug(f"Dropping off-host link {url}")
            return False

        with self._lock:
            if url in self._breadcrumbs:
                return False
            self._breadcrumbs[url] = breadcrumb
            if self._is_skipped(url):
                logger.debug(f"Skipping configured page {url}")
                return False
            self._pending += 1

        if self._submit is None:
            raise RuntimeError("Frontier is not bound to a scheduler")
        if not self._submit(url):
            with self._lock:
                self._pending -= 1
            logger.debug(f"Not scheduled (crawl stopping): {url}")
            return False

        logger.debug(f"Enqueued {url} [{breadcrumb}]")
        return True

    def mark_visited(self, url: str, breadcrumb: str = "") -> None:
        """Record a URL reached through a redirect without scheduling it."""
        url = self.canonicalize(url)
        with self._lock:
            self._breadcrumbs.setdefault(url, breadcrumb)

    def is_known(self, url: str) -> bool:
        url = self.canonicalize(url)
        with self._lock:
            return url in self._breadcrumbs

    def breadcrumb_for(self, url: str) -> Optional[str]:
        """Breadcrumb the URL was first discovered under, or None if unknown."""
        url = self.canonicalize(url)
        with self._lock:
            return self._breadcrumbs.get(url)

    def _is_skipped(self, url: str) -> bool:
        return any(url.startswith(prefix) for prefix in self.skip_pages)

    # ------------------------------------------------------------------
    # Pending count
    # ------------------------------------------------------------------

    @property
    def pending(self) -> int:
        with self._lock:
            return self._pending

    def hold(self) -> None:
        """Add one pending unit that is not a fetch (released with complete())."""
        with self._lock:
            self._pending += 1

    def complete(self) -> int:
        """Mark one pending fetch as finished.

        Returns:
            The number of fetches still pending
        """
        with self._lock:
            if self._pending <= 0:
                logger.error("Pending count would go negative, ignoring completion")
                return 0
            self._pending -= 1
            return self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._breadcrumbs)

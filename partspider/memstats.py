"""Periodic memory and crawl-progress reports."""

import threading
from typing import Callable, Dict, Optional

import psutil

from partspider.logging_config import get_logger, log_spider_event

__all__ = ["MemStatsReporter", "memory_usage_mb"]

logger = get_logger("memstats")

BYTES_PER_MB = 1024 * 1024


def memory_usage_mb() -> Dict[str, float]:
    info = psutil.Process().memory_info()
    return {
        "rss_mb": round(info.rss / BYTES_PER_MB, 1),
        "vms_mb": round(info.vms / BYTES_PER_MB, 1),
    }


class MemStatsReporter:
    """Background thread that logs a ``memstats`` event every ``interval`` seconds.

    Reports once when started and once more when stopped.
    """

    def __init__(self, interval: float, snapshot: Optional[Callable[[], Dict[str, int]]] = None) -> None:
        self.interval = interval
        self.snapshot = snapshot
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def report(self) -> Dict[str, float]:
        data: Dict[str, float] = dict(memory_usage_mb())
        if self.snapshot is not None:
            data.update(self.snapshot())
        message = f"RSS {data['rss_mb']}MB VMS {data['vms_mb']}MB"
        if "pending" in data:
            message += f" | pending {data['pending']} known {data['known']} workers {data['workers']}"
        log_spider_event("memstats", {"message": message, **data})
        return data

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.report()

    def start(self) -> "MemStatsReporter":
        self.report()
        self._thread = threading.Thread(target=self._loop, name="memstats", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout=self.interval + 1)
        self._thread = None
        self.report()

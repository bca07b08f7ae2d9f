"""Stop and cancel handling for a crawl.

Two termination modes share one controller:

* stop   - no new fetches are scheduled; pages already in flight finish
* cancel - queued fetches are dropped and in-flight pages are not dispatched

Either can be fired by a signal, a wall-clock timer or by reaching a
nominated URL. Requests are idempotent: only the first one of each kind
takes effect.
"""

import signal
import threading
from typing import Callable, List, Optional

from partspider.logging_config import get_logger, log_spider_event

__all__ = ["ShutdownHandler"]

logger = get_logger("shutdown")


class ShutdownHandler:
    """Tracks stop/cancel requests for one crawl.

    Usage:
        handler = ShutdownHandler().install()
        handler.stop_after(600)

        while not handler.stop_requested:
            # Do work
            pass

        handler.cleanup()
    """

    def __init__(self) -> None:
        self._stop_requested = threading.Event()
        self._cancel_requested = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self._timers: List[threading.Timer] = []
        self._original_sigint = None
        self._original_sigterm = None
        self._installed = False
        self.reason: Optional[str] = None

    def install(self) -> "ShutdownHandler":
        """Install SIGINT/SIGTERM handlers (main thread only).

        Returns:
            Self for chaining
        """
        if self._installed:
            return self

        self._original_sigint = signal.getsignal(signal.SIGINT)
        self._original_sigterm = signal.getsignal(signal.SIGTERM)
        signal.signal(signal.SIGINT, self._handle_signal)
        signal.signal(signal.SIGTERM, self._handle_signal)
        self._installed = True
        return self

    def uninstall(self) -> None:
        """Restore original signal handlers."""
        if not self._installed:
            return

        if self._original_sigint is not None:
            signal.signal(signal.SIGINT, self._original_sigint)
        if self._original_sigterm is not None:
            signal.signal(signal.SIGTERM, self._original_sigterm)
        self._installed = False

    def _handle_signal(self, signum: int, frame) -> None:
        signal_name = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
        if self.stop_requested:
            self.request_cancel(f"second {signal_name}")
        else:
            logger.warning(f"Received {signal_name}, finishing pages in flight (repeat to cancel)")
            self.request_stop(signal_name)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def request_stop(self, reason: str) -> bool:
        """Stop scheduling new fetches. Returns False if already stopping."""
        with self._lock:
            if self._stop_requested.is_set():
                return False
            self._stop_requested.set()
            self.reason = reason
        log_spider_event("crawl_stop", {"message": f"Stop requested: {reason}", "reason": reason})
        self._run_callbacks()
        return True

    def request_cancel(self, reason: str) -> bool:
        """Abort the crawl. Implies stop. Returns False if already cancelled."""
        with self._lock:
            if self._cancel_requested.is_set():
                return False
            self._cancel_requested.set()
            self._stop_requested.set()
            self.reason = reason
        log_spider_event("crawl_cancel", {"message": f"Cancel requested: {reason}", "reason": reason})
        self._run_callbacks()
        return True

    def stop_after(self, seconds: float) -> None:
        self._start_timer(seconds, lambda: self.request_stop(f"stop after {seconds:g}s"))

    def cancel_after(self, seconds: float) -> None:
        self._start_timer(seconds, lambda: self.request_cancel(f"cancel after {seconds:g}s"))

    def _start_timer(self, seconds: float, action: Callable[[], bool]) -> None:
        timer = threading.Timer(seconds, action)
        timer.daemon = True
        timer.start()
        self._timers.append(timer)

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def register_callback(self, callback: Callable[[], None]) -> None:
        """Register a function to call whenever stop or cancel is first requested."""
        self._callbacks.append(callback)

    def _run_callbacks(self) -> None:
        for callback in list(self._callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Shutdown callback failed: {e}")

    def cleanup(self) -> None:
        """Cancel pending timers and restore signal handlers."""
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        self.uninstall()

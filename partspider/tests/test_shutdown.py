"""Tests for stop/cancel handling."""

import signal
import threading

from partspider.shutdown import ShutdownHandler


class TestRequests:
    def test_stop_is_idempotent(self):
        handler = ShutdownHandler()
        assert handler.request_stop("first")
        assert not handler.request_stop("second")
        assert handler.reason == "first"
        assert handler.stop_requested
        assert not handler.cancel_requested

    def test_cancel_implies_stop(self):
        handler = ShutdownHandler()
        assert handler.request_cancel("enough")
        assert handler.stop_requested and handler.cancel_requested
        assert not handler.request_cancel("again")

    def test_cancel_after_stop(self):
        handler = ShutdownHandler()
        handler.request_stop("stop")
        assert handler.request_cancel("cancel")
        assert handler.reason == "cancel"

    def test_callbacks_run_once_per_request(self):
        handler = ShutdownHandler()
        calls = []
        handler.register_callback(lambda: calls.append(1))
        handler.request_stop("a")
        handler.request_stop("b")
        handler.request_cancel("c")
        assert len(calls) == 2

    def test_failing_callback_does_not_block_others(self):
        handler = ShutdownHandler()
        calls = []

        def broken():
            raise RuntimeError("boom")

        handler.register_callback(broken)
        handler.register_callback(lambda: calls.append(1))
        handler.request_stop("a")
        assert calls == [1]


class TestTimersAndSignals:
    def test_stop_after_fires(self):
        handler = ShutdownHandler()
        fired = threading.Event()
        handler.register_callback(fired.set)
        handler.stop_after(0.05)
        assert fired.wait(5)
        assert handler.stop_requested
        assert handler.reason.startswith("stop after")
        handler.cleanup()

    def test_cleanup_cancels_pending_timers(self):
        handler = ShutdownHandler()
        handler.cancel_after(60)
        handler.cleanup()
        assert not handler.cancel_requested

    def test_install_and_restore(self):
        original = signal.getsignal(signal.SIGINT)
        handler = ShutdownHandler().install()
        assert signal.getsignal(signal.SIGINT) == handler._handle_signal
        handler.cleanup()
        assert signal.getsignal(signal.SIGINT) == original

    def test_second_signal_cancels(self):
        handler = ShutdownHandler()
        handler._handle_signal(signal.SIGINT, None)
        assert handler.stop_requested and not handler.cancel_requested
        handler._handle_signal(signal.SIGTERM, None)
        assert handler.cancel_requested

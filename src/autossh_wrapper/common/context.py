import logging
import signal
import socket
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from types import FrameType

from .exceptions import OperationCancelled

logger = logging.getLogger(__name__)


class CancelContext:
    """Thread-safe cancellation context with parent/child propagation.

    Cancelling a context cancels every child derived from it, never the
    parent. Waits on a context return as soon as it is cancelled, which is
    what lets an operator interrupt win against pending timers and probes.

    Example:
        root = CancelContext(name="main")
        cycle = root.child("ssh-cycle")

        # In worker thread
        while not cycle.wait(1.0):
            do_periodic_work()

        root.cancel("interrupted")  # wakes the worker
    """

    def __init__(self, parent: "CancelContext | None" = None, name: str = "root"):
        self.name = name
        self._parent = parent
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None
        self._callbacks: list[Callable[[], None]] = []

        if parent is not None:
            parent.on_cancel(self._cancel_from_parent)

    def child(self, name: str) -> "CancelContext":
        """Derive a context that is cancelled together with this one"""
        return CancelContext(parent=self, name=name)

    def cancel(self, reason: str = "context cancelled") -> None:
        """Request cancellation.

        Idempotent: only the first call records its reason and runs the
        registered callbacks.
        """
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()

        if self._parent is not None:
            self._parent._discard_callback(self._cancel_from_parent)

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in cancel callback of {self.name}: {e}")

    def _cancel_from_parent(self) -> None:
        parent_reason = self._parent.reason if self._parent else None
        self.cancel(parent_reason or "parent context cancelled")

    def _discard_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason given to the first cancel() call, None while active"""
        return self._reason

    @property
    def callback_count(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout expires.

        Returns:
            True if cancelled, False if the timeout expired first
        """
        return self._event.wait(timeout=timeout)

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelled if cancel() has been called"""
        if self._event.is_set():
            raise OperationCancelled(self._reason or "context cancelled")

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register a callback; runs immediately if already cancelled"""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def __repr__(self) -> str:
        state = f"cancelled: {self._reason}" if self.is_cancelled else "active"
        return f"<CancelContext {self.name} ({state})>"


def _ignore_signal(signum: int, frame: FrameType | None) -> None:
    # Delivery is handled through the wakeup fd
    pass


@contextmanager
def interrupt_context(
    signals: Sequence[signal.Signals] = (signal.SIGINT,),
    name: str = "main",
) -> Iterator[CancelContext]:
    """Yield a root context cancelled by the given operating system signals.

    The interpreter writes each delivered signal number to a wakeup socket
    and a watcher thread cancels the context from there. The Python-level
    handler does nothing, so a signal landing while the main thread holds a
    lock (for example inside Event.wait) cannot deadlock on it.

    Previous handlers and wakeup fd are restored on exit. Must be entered
    from the main thread, as required by signal.signal().
    """
    ctx = CancelContext(name=name)
    wanted = {int(sig) for sig in signals}
    reader, writer = socket.socketpair()
    writer.setblocking(False)

    def _watch() -> None:
        while True:
            try:
                data = reader.recv(64)
            except OSError:
                return
            if not data:
                return
            for signum in data:
                if signum in wanted:
                    signame = signal.Signals(signum).name
                    logger.info(f"Received {signame}, shutting down")
                    ctx.cancel(f"received {signame}")

    try:
        previous_fd = signal.set_wakeup_fd(writer.fileno(), warn_on_full_buffer=False)
    except ValueError:
        reader.close()
        writer.close()
        raise

    watcher = threading.Thread(target=_watch, name="signal-watch", daemon=True)
    watcher.start()
    previous = {sig: signal.signal(sig, _ignore_signal) for sig in signals}
    try:
        yield ctx
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        signal.set_wakeup_fd(previous_fd)
        # Closing the write end ends the watcher
        writer.close()
        watcher.join(timeout=1.0)
        reader.close()

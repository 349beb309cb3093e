"""Graceful-then-forced shutdown on SIGINT/SIGTERM for ``teleboot run``."""

from __future__ import annotations

import os
import signal
import sys
import threading
from collections.abc import Callable, Iterable

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_shutdown_handler(
    stop_event: threading.Event,
    *,
    on_first_signal: Callable[[], None] | None = None,
    signals: Iterable[signal.Signals] = SHUTDOWN_SIGNALS,
) -> Callable[[], None]:
    """Route *signals* to *stop_event*.

    The first signal runs *on_first_signal* and sets *stop_event* so the host
    can stop the heartbeat and flush telemetry. A second signal exits with
    status 1 without flushing.

    Returns a callable that puts the previous handlers back.
    """
    previous = {signum: signal.getsignal(signum) for signum in signals}
    received: list[int] = []

    def _handler(signum: int, frame: object) -> None:
        received.append(signum)
        if len(received) > 1:
            print("\nForce shutdown, telemetry not flushed.", file=sys.stderr, flush=True)
            os._exit(1)
        if on_first_signal is not None:
            on_first_signal()
        stop_event.set()

    for signum in previous:
        signal.signal(signum, _handler)

    def restore() -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)

    return restore

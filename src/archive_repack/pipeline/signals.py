"""Turn termination signals into exceptions so cleanup can run."""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from types import FrameType
from typing import Iterator

LOGGER = logging.getLogger(__name__)


class RunInterrupted(KeyboardInterrupt):
    """Raised in the main thread when a termination signal arrives."""

    def __init__(self, signum: int) -> None:
        super().__init__(f"received signal {signum}")
        self.signum = signum


def default_termination_signals() -> tuple[signal.Signals, ...]:
    names = ("SIGTERM", "SIGHUP")
    return tuple(getattr(signal, name) for name in names if hasattr(signal, name))


def interrupt_signal_number(exc: KeyboardInterrupt) -> int:
    """Signal number behind an interrupt; plain ``KeyboardInterrupt`` means SIGINT."""

    return getattr(exc, "signum", int(signal.SIGINT))


@contextmanager
def termination_handlers(
    signals: tuple[signal.Signals, ...] | None = None,
    logger: logging.Logger | None = None,
) -> Iterator[None]:
    """Raise :class:`RunInterrupted` on the given signals while the block runs.

    Previous handlers are restored on exit. Outside the main thread handlers
    cannot be installed, and the block runs without them.
    """

    effective_logger = logger or LOGGER
    selected = default_termination_signals() if signals is None else signals
    if threading.current_thread() is not threading.main_thread():
        effective_logger.debug("signals.skipped reason=not_main_thread")
        yield
        return

    def _handler(signum: int, frame: FrameType | None) -> None:
        effective_logger.warning("signals.received signal=%s", signum)
        raise RunInterrupted(signum)

    previous: dict[signal.Signals, object] = {}
    for sig in selected:
        previous[sig] = signal.getsignal(sig)
        signal.signal(sig, _handler)
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)  # type: ignore[arg-type]


@contextmanager
def held_signals(
    signals: tuple[signal.Signals, ...] | None = None,
    logger: logging.Logger | None = None,
) -> Iterator[list[int]]:
    """Record SIGINT and termination signals instead of acting on them while the block runs.

    Yields the list of received signal numbers, in arrival order, so the caller
    can treat the run as interrupted once the block has finished.
    """

    effective_logger = logger or LOGGER
    selected = (signal.SIGINT, *default_termination_signals()) if signals is None else signals
    received: list[int] = []
    if threading.current_thread() is not threading.main_thread():
        yield received
        return

    def _record(signum: int, frame: FrameType | None) -> None:
        effective_logger.warning("signals.held signal=%s", signum)
        received.append(signum)

    previous: dict[signal.Signals, object] = {}
    for sig in selected:
        previous[sig] = signal.getsignal(sig)
        signal.signal(sig, _record)
    try:
        yield received
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)  # type: ignore[arg-type]

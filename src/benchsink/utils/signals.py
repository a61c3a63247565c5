"""Signal helpers for graceful shutdown of the recording loop."""

from __future__ import annotations

import asyncio
import signal
from typing import Callable

from benchsink.utils.logging import get_logger

logger = get_logger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_shutdown_handlers(
    loop: asyncio.AbstractEventLoop, on_stop: Callable[[], None]
) -> list[signal.Signals]:
    """
    Register SIGINT/SIGTERM handlers on the running event loop.

    `on_stop` is invoked once per received signal from inside the loop, so it
    may safely set asyncio events. Returns the signals actually installed;
    platforms without `add_signal_handler` (Windows) install none.
    """

    def _handler(sig: signal.Signals) -> None:
        logger.info("received_signal", signal=sig.name)
        on_stop()

    installed: list[signal.Signals] = []
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, _handler, sig)
        except (NotImplementedError, RuntimeError, ValueError):
            logger.debug("signal_handler_unsupported", signal=sig.name)
            continue
        installed.append(sig)
    return installed


def remove_shutdown_handlers(
    loop: asyncio.AbstractEventLoop, signals: list[signal.Signals]
) -> None:
    for sig in signals:
        loop.remove_signal_handler(sig)

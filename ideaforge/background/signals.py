# ideaforge/background/signals.py
"""
SIGINT/SIGTERM handling for the long-running server.

The first signal starts lifecycle shutdown; repeats while shutdown is in
progress are logged and ignored. Windows event loops cannot register
loop signal handlers, so signal.signal() is used there instead.
"""

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ideaforge.background.lifecycle import ServiceLifecycle

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class _ShutdownTrigger:
    """Runs lifecycle.shutdown() at most once, whichever signal arrives first."""

    def __init__(self, loop: asyncio.AbstractEventLoop, lifecycle: "ServiceLifecycle") -> None:
        self._loop = loop
        self._lifecycle = lifecycle
        self.task: asyncio.Task | None = None

    def fire(self, sig: signal.Signals) -> None:
        if self.task is not None:
            logger.info(f"Received {sig.name} again, shutdown already in progress")
            return
        logger.info(f"Received {sig.name}, stopping generation service...")
        self.task = self._loop.create_task(self._lifecycle.shutdown(), name="signal-shutdown")

    def fire_threadsafe(self, sig_num: int, frame) -> None:
        self._loop.call_soon_threadsafe(self.fire, signal.Signals(sig_num))


def setup_signal_handlers(lifecycle: "ServiceLifecycle") -> _ShutdownTrigger:
    """
    Register shutdown handlers on the running loop.

    Args:
        lifecycle: ServiceLifecycle to shut down

    Returns:
        The trigger (its task is set once a signal arrived)
    """
    loop = asyncio.get_running_loop()
    trigger = _ShutdownTrigger(loop, lifecycle)

    try:
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, trigger.fire, sig)
        logger.info("Signal handlers registered (loop-based)")
    except NotImplementedError:
        for sig in SHUTDOWN_SIGNALS:
            signal.signal(sig, trigger.fire_threadsafe)
        logger.info("Signal handlers registered (signal.signal fallback)")

    return trigger

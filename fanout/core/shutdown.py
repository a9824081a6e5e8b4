"""Shutdown coordination.

On the first SIGINT/SIGTERM the listener is closed, then every route is
drained concurrently. The process may exit only once all routes report
zero forwards in flight. A second signal while draining aborts at once.
"""

import asyncio
import logging
import os
import signal
from collections.abc import Awaitable, Callable, Sequence

from .route_handler import RouteHandler

logger = logging.getLogger(__name__)


def terminate_process() -> None:
    """Exit immediately with status 1, skipping the drain."""
    logging.shutdown()
    os._exit(1)


class ShutdownCoordinator:
    """Per-route drain barriers plus the process-wide barrier."""

    def __init__(
        self,
        handlers: Sequence[RouteHandler],
        stop_listener: Callable[[], Awaitable[None]] | None = None,
        on_abort: Callable[[], None] = terminate_process,
    ):
        """Initialize the coordinator.

        Args:
            handlers: Route handlers whose forwards must be drained.
            stop_listener: Closes the HTTP listener; awaited before draining.
            on_abort: Called when a second shutdown signal arrives.
        """
        self.handlers = list(handlers)
        self.stop_listener = stop_listener
        self.on_abort = on_abort
        self._requested = asyncio.Event()
        self._drained = asyncio.Event()

    @property
    def shutdown_requested(self) -> bool:
        return self._requested.is_set()

    @property
    def drained(self) -> bool:
        return self._drained.is_set()

    def request_shutdown(self) -> None:
        """Signal callback.

        The first call starts the drain; any later call before the drain
        has finished triggers the abort action.
        """
        if not self._requested.is_set():
            logger.info("Shutting down...")
            self._requested.set()
            return
        if self._drained.is_set():
            return

        pending = sum(h.pending for h in self.handlers)
        logger.error(
            "Second signal received, terminating",
            extra={"pending_forwards": pending},
        )
        self.on_abort()

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Route SIGINT and SIGTERM to ``request_shutdown``."""
        loop = loop or asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGTERM, self.request_shutdown)
            loop.add_signal_handler(signal.SIGINT, self.request_shutdown)
        except NotImplementedError:
            # Signal handlers not available on Windows
            logger.debug("Signal handlers not available on this platform")
        except (RuntimeError, ValueError) as e:
            logger.warning(f"Failed to set up signal handlers: {e}")

    async def wait_for_shutdown(self) -> None:
        await self._requested.wait()

    async def drain(self) -> None:
        """Close the listener, then wait for every route to go idle."""
        if self.stop_listener is not None:
            try:
                await self.stop_listener()
            except Exception as e:
                logger.error(f"Failed to stop http server: {e}", exc_info=True)

        await asyncio.gather(*(self._drain_route(h) for h in self.handlers))
        self._drained.set()
        logger.info("All webhooks drained")

    async def run(self) -> None:
        """Wait for the shutdown signal, then drain."""
        await self.wait_for_shutdown()
        await self.drain()

    async def _drain_route(self, handler: RouteHandler) -> None:
        if handler.pending:
            logger.info(
                f"Waiting for {handler.pending} in-flight forwards on {handler.path}",
                extra={"webhook": handler.path},
            )
        await handler.wait_drained()
        logger.debug(f"Webhook {handler.path} drained", extra={"webhook": handler.path})

"""Forward worker: one fire-and-forget delivery to one target."""

import logging

from .inflight import InFlightCounter
from .models import HeaderPairs
from .ports import ForwardPort, MetricsSink

logger = logging.getLogger(__name__)


class ForwardWorker:
    """Sends one copy of an event to one target and reports the outcome.

    The worker is created after the route's counter has been incremented
    and decrements it exactly once when ``run`` exits, whatever happens.
    A failed attempt is final: it is logged and counted, never retried.
    """

    def __init__(
        self,
        route: str,
        target: str,
        method: str,
        headers: HeaderPairs,
        client_ip: str,
        body: bytes,
        port: ForwardPort,
        metrics: MetricsSink,
        counter: InFlightCounter,
    ):
        self.route = route
        self.target = target
        self.method = method
        self.headers = headers
        self.client_ip = client_ip
        self.body = body
        self.port = port
        self.metrics = metrics
        self.counter = counter

    async def run(self) -> bool:
        """Perform the attempt.

        Returns:
            True if the target accepted the event.
        """
        ok = False
        try:
            try:
                ok = await self.port.forward(
                    self.target, self.method, self.headers, self.client_ip, self.body
                )
            except Exception as e:
                logger.error(
                    f"Unexpected error forwarding event to {self.target}: {e}",
                    exc_info=True,
                    extra={"webhook": self.route, "target": self.target},
                )
            self.metrics.request_processed(self.route, self.target, ok)
        finally:
            self.counter.decrement()

        if ok:
            logger.debug(
                f"Event forwarded to {self.target}",
                extra={"webhook": self.route, "target": self.target},
            )
        return ok

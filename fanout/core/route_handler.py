"""Per-route request handling.

The handler answers the sender with the route's synthetic response and
then fans the event out to every target in the background. The sender
is never kept waiting on downstream latency.

Request states:
    Received -> MethodChecked -> BodyRead -> SignatureChecked
    -> Responded -> Dispatched
"""

import asyncio
import logging

from .forwarder import ForwardWorker
from .inflight import InFlightCounter
from .models import InboundRequest, RouteDefinition, SyntheticResponse
from .ports import ForwardPort, MetricsSink
from .signature import SignatureVerifier

logger = logging.getLogger(__name__)


class RouteHandler:
    """Orchestrates every request received on one route."""

    def __init__(
        self,
        route: RouteDefinition,
        forward_port: ForwardPort,
        metrics: MetricsSink,
        verifier: SignatureVerifier | None = None,
    ):
        """Initialize the handler.

        Args:
            route: Immutable route definition.
            forward_port: Transport used by the forward workers.
            metrics: Sink for request counters.
            verifier: Signature verifier. Built from ``route.signature``
                when omitted and the route is signed.

        Raises:
            ValueError: If the route is signed and its secret cannot be resolved.
        """
        self.route = route
        self.forward_port = forward_port
        self.metrics = metrics
        if verifier is None and route.signature is not None:
            verifier = SignatureVerifier(route.signature)
        self.verifier = verifier
        self.inflight = InFlightCounter()
        self._tasks: set[asyncio.Task[bool]] = set()

    @property
    def path(self) -> str:
        return self.route.path

    @property
    def pending(self) -> int:
        """Number of forwards started but not yet finished."""
        return self.inflight.value

    async def wait_drained(self) -> None:
        """Block until every forward of this route has finished."""
        await self.inflight.wait_idle()

    async def handle(self, request: InboundRequest) -> SyntheticResponse:
        """Answer one request and dispatch its forwards.

        Args:
            request: The request as seen by the listener.

        Returns:
            The response to write back to the sender.
        """
        if request.method != self.route.method:
            logger.error(
                f"Invalid request received on {self.route.path}: "
                f"method {request.method}, expected {self.route.method}",
                extra={
                    "webhook": self.route.path,
                    "received": request.method,
                    "expected": self.route.method,
                },
            )
            return self._reject(400)

        try:
            body = await request.read_body()
        except OSError as e:
            logger.error(
                f"Unable to read request body on {self.route.path}: {e}",
                extra={"webhook": self.route.path},
            )
            return self._reject(400)

        if self.verifier is not None:
            provided = request.header(self.verifier.header_name)
            if not self.verifier.verify(body, provided):
                logger.warning(
                    f"Rejected request on {self.route.path} with missing or invalid signature",
                    extra={"webhook": self.route.path, "client_ip": request.client_ip},
                )
                return self._reject(401)

        response = self._synthetic_response()
        self.metrics.request_received(self.route.path, response.status)

        for target in self.route.targets:
            self._dispatch(target, request, body)

        return response

    def _reject(self, status: int) -> SyntheticResponse:
        self.metrics.request_received(self.route.path, status)
        return SyntheticResponse(status=status)

    def _synthetic_response(self) -> SyntheticResponse:
        spec = self.route.response
        return SyntheticResponse(
            status=spec.code,
            headers=tuple((h.name, h.resolve()) for h in spec.headers),
            body=spec.body.encode(),
        )

    def _dispatch(self, target: str, request: InboundRequest, body: bytes) -> None:
        # Counted before the task exists so a drain can never miss it.
        self.inflight.increment()
        worker = ForwardWorker(
            route=self.route.path,
            target=target,
            method=request.method,
            headers=tuple(request.headers),
            client_ip=request.client_ip,
            body=body,
            port=self.forward_port,
            metrics=self.metrics,
            counter=self.inflight,
        )
        try:
            task = asyncio.create_task(worker.run())
        except BaseException:
            self.inflight.decrement()
            raise
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

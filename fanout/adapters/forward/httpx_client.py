"""httpx forward adapter.

Implements ForwardPort with a pooled httpx.AsyncClient. One instance is
created per route and shared by all of that route's forward workers.
"""

import logging

import httpx

from fanout.core.models import HeaderPairs
from fanout.core.ports import ForwardPort, MetricsSink

logger = logging.getLogger(__name__)

# Headers describing the inbound connection rather than the event.
_SKIPPED_HEADERS = frozenset(
    {
        "host",
        "content-length",
        "connection",
        "keep-alive",
        "proxy-connection",
        "transfer-encoding",
        "te",
        "trailer",
        "upgrade",
    }
)


class HttpxForwardClient(ForwardPort):
    """Delivers events to targets over HTTP."""

    def __init__(
        self,
        route: str,
        metrics: MetricsSink,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the forward client.

        Args:
            route: Path of the owning route, used as metrics label.
            metrics: Sink for the per-target status counter.
            timeout: Total timeout in seconds for one attempt.
            transport: Optional transport override (tests use httpx.MockTransport).
        """
        self.route = route
        self.metrics = metrics
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            follow_redirects=False,
        )

    async def __aenter__(self) -> "HttpxForwardClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the httpx client and clean up resources."""
        await self.client.aclose()

    async def forward(
        self,
        target: str,
        method: str,
        headers: HeaderPairs,
        client_ip: str,
        body: bytes,
    ) -> bool:
        outbound = [(k, v) for k, v in headers if k.lower() not in _SKIPPED_HEADERS]
        if client_ip:
            outbound.append(("X-Forwarded-For", client_ip))

        try:
            request = self.client.build_request(
                method, target, headers=outbound, content=body
            )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError) as e:
            logger.error(
                f"Unable to create request for {target}: {e}",
                extra={"webhook": self.route, "target": target},
            )
            return False

        try:
            response = await self.client.send(request)
            await response.aclose()
        except httpx.HTTPError as e:
            logger.error(
                f"Unable to send request to {target}: {e!r}",
                extra={"webhook": self.route, "target": target},
            )
            return False

        self.metrics.request_forwarded(self.route, target, response.status_code)

        if not response.is_success:
            logger.error(
                f"Unexpected status {response.status_code} received from {target}",
                extra={
                    "webhook": self.route,
                    "target": target,
                    "code": response.status_code,
                },
            )
            return False

        return True

"""Port interfaces for the webhook fan-out proxy.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - ForwardPort: Deliver one copy of an event to one target
   - MetricsSink: Count received, forwarded and processed requests
"""

from abc import ABC, abstractmethod

from .models import HeaderPairs


class ForwardPort(ABC):
    """Port for sending one event copy to one target URL.

    Implementations own their HTTP client (and its connection pool) and
    apply a fixed, bounded timeout to every attempt. They must never retry.
    """

    @abstractmethod
    async def forward(
        self,
        target: str,
        method: str,
        headers: HeaderPairs,
        client_ip: str,
        body: bytes,
    ) -> bool:
        """Send the event to ``target``.

        Args:
            target: Absolute URL of the destination.
            method: HTTP method of the original request.
            headers: Private copy of the original request headers.
            client_ip: Address of the original sender, '' when unknown.
            body: Raw body of the original request.

        Returns:
            True when the target answered with a 2xx status, False on
            transport failure or any other status.
        """

    async def close(self) -> None:
        """Release network resources held by the port."""


class MetricsSink(ABC):
    """Port for the request counters exposed on /metrics.

    Implementations must be safe to call from any thread.
    """

    @abstractmethod
    def request_received(self, route: str, status: int) -> None:
        """Count a request answered by a route with ``status``."""

    @abstractmethod
    def request_forwarded(self, route: str, target: str, status: int) -> None:
        """Count a response with ``status`` received from a target."""

    @abstractmethod
    def request_processed(self, route: str, target: str, success: bool) -> None:
        """Count one finished forward attempt and its outcome."""

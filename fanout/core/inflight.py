"""Per-route count of forwards that have started but not finished."""

import asyncio


class InFlightCounter:
    """Drain barrier for one route.

    Only touched from the event loop thread, so plain integer updates
    are atomic with respect to each other.
    """

    def __init__(self) -> None:
        self._count = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def value(self) -> int:
        return self._count

    def increment(self) -> None:
        self._count += 1
        self._idle.clear()

    def decrement(self) -> None:
        """Mark one forward as finished.

        Raises:
            RuntimeError: If no forward is in flight.
        """
        if self._count <= 0:
            raise RuntimeError("in-flight counter decremented below zero")
        self._count -= 1
        if self._count == 0:
            self._idle.set()

    async def wait_idle(self) -> None:
        """Block until no forward is in flight."""
        await self._idle.wait()

"""Domain models for the webhook fan-out proxy.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeAlias

HeaderPairs: TypeAlias = tuple[tuple[str, str], ...]


class DigestAlgorithm(Enum):
    """HMAC digest algorithms accepted for signed routes."""

    SHA256 = "sha256"
    SHA1 = "sha1"

    @classmethod
    def parse(cls, value: str | None) -> "DigestAlgorithm":
        """Map a configured algorithm name to a member.

        Anything that is not explicitly ``sha1`` selects SHA-256.
        """
        if value and value.strip().lower() == cls.SHA1.value:
            return cls.SHA1
        return cls.SHA256


@dataclass(frozen=True)
class SignatureSpec:
    """How a route authenticates its senders."""

    header_name: str
    secret_env: str
    algorithm: DigestAlgorithm = DigestAlgorithm.SHA256
    prefix: str = ""

    def __post_init__(self) -> None:
        """Validate signature invariants on creation."""
        if not self.header_name or not self.header_name.strip():
            raise ValueError("signature header_name must be a non-empty string")
        if not self.secret_env or not self.secret_env.strip():
            raise ValueError("signature secret_env must be a non-empty string")


@dataclass(frozen=True)
class ResponseHeader:
    """A header of the synthetic response.

    The literal ``value`` wins when set; otherwise the value is read from
    the environment variable ``value_from_env`` each time it is resolved.
    """

    name: str
    value: str = ""
    value_from_env: str = ""

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("response header name must be a non-empty string")

    def resolve(self) -> str:
        if self.value:
            return self.value
        if self.value_from_env:
            return os.environ.get(self.value_from_env, "")
        return ""


@dataclass(frozen=True)
class ResponseSpec:
    """Synthetic reply returned to every accepted sender."""

    headers: tuple[ResponseHeader, ...] = ()
    body: str = ""
    code: int = 204

    def __post_init__(self) -> None:
        """Apply the 204 default and validate the status code."""
        if not self.code:
            object.__setattr__(self, "code", 204)
        if self.code < 100 or self.code > 599:
            raise ValueError(f"response code must be between 100 and 599, got {self.code}")


@dataclass(frozen=True)
class RouteDefinition:
    """Static description of one webhook route.

    Created once at startup by the route loader and never mutated.
    """

    path: str
    method: str = "POST"
    signature: SignatureSpec | None = None
    response: ResponseSpec = field(default_factory=ResponseSpec)
    targets: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate route invariants on creation."""
        if not self.path:
            raise ValueError("route path must be a non-empty string")
        if not self.path.startswith("/"):
            raise ValueError(f"route path must start with '/': {self.path}")
        if not self.method or not self.method.strip():
            raise ValueError(f"route method must be a non-empty string: {self.path}")
        object.__setattr__(self, "method", self.method.strip().upper())
        if isinstance(self.targets, list):
            object.__setattr__(self, "targets", tuple(self.targets))


@dataclass(frozen=True)
class InboundRequest:
    """Transport-neutral view of one request received by the listener.

    ``read_body`` is awaited at most once; it raises ``OSError`` when the
    body cannot be read from the connection.
    """

    method: str
    path: str
    headers: HeaderPairs
    client_ip: str
    read_body: Callable[[], Awaitable[bytes]]

    def header(self, name: str) -> str:
        """Return the first value of a header (case-insensitive), or ''."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return ""


@dataclass(frozen=True)
class SyntheticResponse:
    """Reply written back to the original sender."""

    status: int
    headers: HeaderPairs = ()
    body: bytes = b""

"""Core domain logic for the webhook fan-out proxy.

This package contains zero external dependencies and represents
the pure request-handling and drain logic of the application. HTTP
transport, metrics export and config parsing are handled by the
adapters package.
"""

from .models import (
    DigestAlgorithm,
    InboundRequest,
    ResponseHeader,
    ResponseSpec,
    RouteDefinition,
    SignatureSpec,
    SyntheticResponse,
)

__all__ = [
    "DigestAlgorithm",
    "InboundRequest",
    "ResponseHeader",
    "ResponseSpec",
    "RouteDefinition",
    "SignatureSpec",
    "SyntheticResponse",
]

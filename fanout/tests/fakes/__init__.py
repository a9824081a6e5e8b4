"""Fake/mock implementations of core ports for testing.

These in-memory implementations allow core domain logic to be tested
without external dependencies:

- FakeForwardPort: Captured forward attempts with configurable outcomes
- FakeMetricsSink: Captured counter increments
"""

from .forward import ForwardCall, FakeForwardPort
from .metrics import FakeMetricsSink

__all__ = [
    "FakeForwardPort",
    "FakeMetricsSink",
    "ForwardCall",
]

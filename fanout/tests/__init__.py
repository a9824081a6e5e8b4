"""Test suite for the webhook fan-out proxy.

Organized into three categories:

1. core/: Unit tests for core domain logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Integration tests for adapter implementations
   - Tests against mocked transports or local HTTP servers
   - Validates adapter behavior and error handling

3. fakes/: Port implementations for testing
   - In-memory implementations of ForwardPort and MetricsSink
   - Used by core unit tests
"""

"""Webhook listener adapters.

Provides the HTTP endpoints senders post their events to, plus the
Prometheus metrics endpoint.
"""

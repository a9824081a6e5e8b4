"""Webhook fan-out proxy.

Receives webhook events over HTTP, answers the sender immediately and
forwards each event concurrently to every configured target.
"""

__version__ = "0.1.0"

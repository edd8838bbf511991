"""Ledger transport implementations."""

from trustbridge.transport.local import LocalTransport

__all__ = ["LocalTransport"]

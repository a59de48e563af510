"""
Exception hierarchy for the smart ticket queue.

Structured error handling with specific error types.
"""

from typing import Dict, Any, Optional


class SmartQueueError(Exception):
    """Base exception for all smart queue errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class StoreUnavailableError(SmartQueueError):
    """Raised when the ticket store is not configured."""

    def __init__(self, message: str = "Ticket store is not configured", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class TicketStoreError(SmartQueueError):
    """Raised when a ticket store read or write fails."""

    def __init__(self, operation: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        details = dict(details or {})
        details.setdefault("operation", operation)
        super().__init__(message, details)


class RecomputeTimeoutError(SmartQueueError):
    """Raised when a smart sort recompute pass exceeds its time budget."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Smart sort recompute did not finish within {timeout_seconds:g}s",
            {"timeout_seconds": timeout_seconds},
        )

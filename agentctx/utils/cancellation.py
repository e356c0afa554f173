"""Explicit cancellation token for suspending calls.

A token is created by the caller and threaded through every call that may
suspend on network I/O (the summarizer). Cancelling it never raises inside the
caller; it only signals the work that is holding the token.
"""

from __future__ import annotations

import asyncio


class CancellationToken:
    """Cooperative cancellation signal backed by an ``asyncio.Event``."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        """Signal cancellation. Calling it more than once keeps the first reason."""
        if not self._event.is_set():
            self._reason = reason or "cancelled"
            self._event.set()

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelledError(self._reason)


class OperationCancelledError(Exception):
    """Raised by collaborators that observe a cancelled token."""

    def __init__(self, reason: str | None = None):
        self.reason = reason
        super().__init__(f"Operation cancelled: {reason or 'cancelled'}")

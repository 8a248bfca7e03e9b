"""Cancellable delayed continuations for the polling drivers.

Every scheduled continuation receives the token of the run that scheduled
it. ``cancel()`` flips the flag and wakes any pending sleep, so a
continuation checks ``token.cancelled`` at its top and after each await,
and a late response is dropped instead of mutating driver state.
"""

from __future__ import annotations

import asyncio


class OperationCancelled(Exception):
    """Raised out of a retry loop whose token was cancelled mid-backoff."""


class CancellationToken:
    """Session-scoped cancelled flag with an awaitable wake-up."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def sleep(self, delay: float) -> bool:
        """Wait ``delay`` seconds unless cancelled first.

        Returns:
            True if the full delay elapsed, False if the token was cancelled.
        """
        if self.cancelled:
            return False
        if delay <= 0:
            # still yield so other continuations get a turn
            await asyncio.sleep(0)
            return not self.cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except TimeoutError:
            return True
        return False

    async def retry_sleep(self, delay: float) -> None:
        """Sleep hook for tenacity: aborts the retry loop once cancelled."""
        if not await self.sleep(delay):
            raise OperationCancelled

"""Cooperative cancellation for blocking writer operations."""

from __future__ import annotations

import asyncio
import threading


class OperationCancelled(asyncio.CancelledError):
    """Raised inside a writer operation once its token has been cancelled."""


class CancellationToken:
    """Thread-safe cancellation flag polled by the writer between units of work.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(writer.write_async(offset, requests, token=token))
        token.cancel()
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("Operation was cancelled.")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"

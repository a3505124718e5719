"""Deadline wrapper for external calls."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from .config import DEFAULT_CALL_TIMEOUT_SECONDS
from .errors import OperationTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _discard_late_result(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned call finished late with error: %s", exc)


async def with_timeout(
    operation: Awaitable[T],
    label: str,
    seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS,
) -> T:
    """Await ``operation`` for at most ``seconds``.

    This is a race between the operation and a deadline, not a cancellation
    guarantee. When the deadline wins the caller stops waiting at once and
    the operation is asked to cancel, but it is never awaited: an operation
    that ignores cancellation (or runs in a thread) may still complete in the
    background. Its late result is dropped.

    Raises:
        OperationTimeout: the deadline passed first; carries ``label``.
    """
    task = asyncio.ensure_future(operation)
    try:
        done, _ = await asyncio.wait({task}, timeout=seconds)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if task in done:
        return task.result()

    task.add_done_callback(_discard_late_result)
    task.cancel()
    raise OperationTimeout(label, seconds)

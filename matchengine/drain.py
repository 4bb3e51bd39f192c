"""Batch draining of a queue with a time budget."""

from __future__ import annotations

import queue
from typing import Callable, TypeVar

from matchengine.timeutil import epoch_nanos

T = TypeVar("T")
U = TypeVar("U")


def drain_with_timeout(
    rx: queue.Queue[T],
    mapper: Callable[[T], U],
    timeout_nanos: int,
    capacity: int,
) -> list[U]:
    """Pull mapped items from rx until capacity is reached or time runs out.

    Each wait for an item is bounded by timeout_nanos; the batch ends once
    the time since the call began reaches timeout_nanos, when capacity items
    have been gathered, or when no item arrives in time.
    """
    if capacity < 1:
        raise ValueError("capacity must be at least 1")
    if timeout_nanos < 0:
        raise ValueError("timeout_nanos must not be negative")

    start = epoch_nanos()
    wait_seconds = timeout_nanos / 1_000_000_000
    batch: list[U] = []
    while True:
        try:
            item = rx.get(timeout=wait_seconds)
        except queue.Empty:
            return batch
        elapsed = epoch_nanos() - start
        batch.append(mapper(item))
        if len(batch) == capacity or elapsed >= timeout_nanos:
            return batch
"""Clock helpers."""

import time


def epoch_nanos() -> int:
    """Nanoseconds since the Unix epoch."""
    return time.time_ns()


def wait_50_milli() -> None:
    """Sleep for fifty milliseconds."""
    time.sleep(0.05)
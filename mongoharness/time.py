"""
Timing helpers based on the monotonic clock.

Used to attach an ``after`` field to log records for network round trips:

    t = start()
    await db.command(cmd)
    lg.debug("command done", extra={"after": since(t)})
"""

import time


def start() -> float:
    """
    Get the current monotonic time for timing measurements.

    Returns:
        float: Current monotonic time in seconds
    """
    return time.monotonic()


def since(start_t: float) -> float:
    """
    Calculate elapsed time since a start time.

    Args:
        start_t: Start time from start()

    Returns:
        float: Elapsed time in seconds
    """
    return time.monotonic() - start_t


def delta_str(secs: float, precise: bool = False) -> str:
    """
    Format a duration for log output.

    Args:
        secs: Duration in seconds
        precise: Show microseconds instead of milliseconds

    Returns:
        Duration such as "12.345ms", "1.502s" or "2m05s"
    """
    if secs < 1:
        if precise:
            return f"{secs * 1_000_000:.0f}us"
        return f"{secs * 1000:.3f}ms"
    if secs < 60:
        return f"{secs:.3f}s"
    mins, rem = divmod(int(secs), 60)
    return f"{mins}m{rem:02d}s"

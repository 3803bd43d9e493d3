from __future__ import annotations


def backoff_delay(attempt: int, *, backoff_seconds: list[float], default: float) -> float:
    """
    Sleep to apply after `attempt` consecutive failures.
    attempt <= 0 means the last tick succeeded and the regular interval applies.
    """
    if attempt <= 0:
        return float(default)
    if not backoff_seconds:
        return float(default)
    delay = backoff_seconds[min(attempt - 1, len(backoff_seconds) - 1)]
    return max(float(default), float(delay))

from __future__ import annotations

from netactivity.sampling.sampler import CounterSample


def _clamped(previous: CounterSample, current: CounterSample) -> tuple[int, int]:
    if previous.interface != current.interface:
        raise ValueError(
            f"samples from different interfaces: {previous.interface} != {current.interface}"
        )
    # A decreasing counter means reset, wrap or restart; count nothing for it
    rx = max(0, current.rx_bytes - previous.rx_bytes)
    tx = max(0, current.tx_bytes - previous.tx_bytes)
    return rx, tx


def activity_delta(previous: CounterSample | None, current: CounterSample) -> int:
    if previous is None:
        return 0
    rx, tx = _clamped(previous, current)
    return rx + tx


def rate_bps(previous: CounterSample | None, current: CounterSample) -> float:
    if previous is None:
        return 0.0
    rx, tx = _clamped(previous, current)
    dt = max(current.timestamp - previous.timestamp, 1e-6)
    return float(rx + tx) / dt

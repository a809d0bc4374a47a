"""Trailing simple moving average for chart overlays.

Two entry points share one definition of the value at index ``i``: the mean of
``prices[max(0, i - period + 1) .. i]``, rounded to 4 decimals. Near the start
the window is simply shorter (warm-up uses whatever is available), so the
output is always the same length as the input and never undefined.

- ``compute_full`` derives the whole overlay for a bulk history.
- ``extend_one`` derives the next value when a single price is streamed in.

Both sum the window with ``math.fsum`` (exactly rounded, order independent), so
the incremental value is identical to the full recompute at the same index.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import List, Optional, Sequence

SMA_DECIMALS = 4


class Trend(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


def _check_period(period: int) -> None:
    if period < 2:
        raise ValueError("period must be >= 2")


def _window_mean(window: Sequence[float]) -> float:
    return round(math.fsum(window) / len(window), SMA_DECIMALS)


def compute_full(prices: Sequence[float], period: int) -> List[float]:
    """Moving average aligned with ``prices`` (same length, warm-up included)."""
    _check_period(period)
    values = [float(p) for p in prices]
    return [_window_mean(values[max(0, i - period + 1): i + 1]) for i in range(len(values))]


def extend_one(
    previous_prices: Sequence[float],
    previous_averages: Sequence[float],
    new_price: float,
    period: int,
) -> float:
    """Average at the index ``new_price`` will occupy once appended to ``previous_prices``.

    Equals ``compute_full(list(previous_prices) + [new_price], period)[-1]``.
    Only the trailing ``period - 1`` previous prices are read.
    """
    _check_period(period)
    if len(previous_averages) != len(previous_prices):
        raise ValueError("previous_averages must be aligned with previous_prices")
    n = len(previous_prices)
    tail = [float(previous_prices[i]) for i in range(max(0, n - period + 1), n)]
    tail.append(float(new_price))
    return _window_mean(tail)


def determine_trend(price: float, last_average: Optional[float]) -> Trend:
    """UP when price is at or above its moving average, DOWN otherwise.

    Without an average, the price is compared against itself (UP).
    """
    reference = price if last_average is None else last_average
    return Trend.UP if price >= reference else Trend.DOWN

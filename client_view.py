# client_view.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from indicators import Trend, compute_full, determine_trend, extend_one
from models import Quote, Sample


def format_time(timestamp_ms: int) -> str:
    """Local wall-clock label, e.g. ``14:03:07``."""
    return datetime.fromtimestamp(timestamp_ms / 1000.0).strftime("%H:%M:%S")


def clamp_period(value) -> int:
    return max(2, int(value))


@dataclass(frozen=True)
class RenderPoint:
    timestamp: int
    label: str
    price: float
    sma: float


class ClientView:
    """Capped sliding window of chart points for the selected symbol.

    Prices and moving averages stay index-aligned inside ``RenderPoint``.
    After a history load or an accepted tick, ``latest_price`` and ``trend``
    describe the most recent point.
    """

    def __init__(self, max_points: int = 120, period: int = 20,
                 label_fn: Callable[[int], str] = format_time):
        if max_points <= 0:
            raise ValueError("max_points must be > 0")
        self.max_points = max_points
        self.period = clamp_period(period)
        self.label_fn = label_fn
        self.selected_symbol: Optional[str] = None
        self._points: List[RenderPoint] = []

    @property
    def points(self) -> Tuple[RenderPoint, ...]:
        return tuple(self._points)

    @property
    def prices(self) -> List[float]:
        return [p.price for p in self._points]

    @property
    def averages(self) -> List[float]:
        return [p.sma for p in self._points]

    @property
    def latest_price(self) -> Optional[float]:
        return self._points[-1].price if self._points else None

    @property
    def trend(self) -> Optional[Trend]:
        if not self._points:
            return None
        last = self._points[-1]
        return determine_trend(last.price, last.sma)

    def __len__(self) -> int:
        return len(self._points)

    def select(self, symbol: str) -> None:
        """Switch symbols; the window stays empty until the next history load."""
        if symbol != self.selected_symbol:
            self._points.clear()
        self.selected_symbol = symbol

    def load_history(self, history: Iterable[Sample]) -> None:
        samples = list(history)
        averages = compute_full([s.price for s in samples], self.period)
        start = max(0, len(samples) - self.max_points)
        self._points = [
            RenderPoint(s.timestamp, self.label_fn(s.timestamp), s.price, sma)
            for s, sma in zip(samples[start:], averages[start:])
        ]

    def apply_tick(self, quote: Quote) -> bool:
        """Append ``quote`` if it is for the selected symbol; returns whether it was taken."""
        if self.selected_symbol is None or quote.symbol != self.selected_symbol:
            return False
        sma = extend_one(self.prices, self.averages, quote.price, self.period)
        self._points.append(RenderPoint(quote.timestamp, self.label_fn(quote.timestamp), quote.price, sma))
        overflow = len(self._points) - self.max_points
        if overflow > 0:
            del self._points[:overflow]
        return True

    def set_period(self, period) -> None:
        # Recomputes over the retained window only; history beyond it is not refetched
        self.period = clamp_period(period)
        averages = compute_full(self.prices, self.period)
        self._points = [
            RenderPoint(p.timestamp, p.label, p.price, sma) for p, sma in zip(self._points, averages)
        ]

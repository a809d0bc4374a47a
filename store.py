# store.py
"""Bounded in-memory time series, one per symbol.

The store is mutated only from the tick publisher task, strictly between
reads on the same event loop, so no locking is needed. ``history()`` still
returns a tuple snapshot so callers never observe a series mid-append.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, Iterable, Tuple

from errors import EmptySeriesError, OutOfOrderSampleError, UnknownSymbolError
from models import Sample


class TimeSeriesStore:
    def __init__(self, symbols: Iterable[str], max_length: int = 500):
        if max_length <= 0:
            raise ValueError("max_length must be > 0")
        self.max_length = max_length
        # Universe is fixed at construction; canonical case is upper
        self._universe: Tuple[str, ...] = tuple(dict.fromkeys(s.upper() for s in symbols))
        self._series: Dict[str, Deque[Sample]] = {s: deque() for s in self._universe}

    @property
    def symbols(self) -> Tuple[str, ...]:
        return self._universe

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.upper() in self._series

    def normalize(self, symbol: object) -> str:
        """Return the canonical spelling of ``symbol`` or raise UnknownSymbolError."""
        if not isinstance(symbol, str):
            raise UnknownSymbolError(symbol)
        canonical = symbol.strip().upper()
        if canonical not in self._series:
            raise UnknownSymbolError(symbol)
        return canonical

    def append(self, symbol: str, sample: Sample) -> None:
        series = self._series.get(symbol)
        if series is None:
            raise UnknownSymbolError(symbol)
        if series and sample.timestamp < series[-1].timestamp:
            raise OutOfOrderSampleError(
                f"{symbol}: sample at {sample.timestamp} precedes tail at {series[-1].timestamp}"
            )
        series.append(sample)
        while len(series) > self.max_length:
            series.popleft()

    def latest(self, symbol: str) -> Sample:
        series = self._series.get(symbol)
        if series is None:
            raise UnknownSymbolError(symbol)
        if not series:
            raise EmptySeriesError(symbol)
        return series[-1]

    def history(self, symbol: str) -> Tuple[Sample, ...]:
        series = self._series.get(symbol)
        if series is None:
            raise UnknownSymbolError(symbol)
        return tuple(series)

    def __len__(self) -> int:
        return len(self._universe)

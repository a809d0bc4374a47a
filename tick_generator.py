# tick_generator.py
# Simulated price feed: a bounded random walk per symbol, one batch per tick.
# Usage example:
#   import asyncio
#   async def main():
#       gen = TickGenerator(store, get_settings().feed)
#       async for batch in gen.stream():
#           print(batch)
#   asyncio.run(main())

from __future__ import annotations

import asyncio
import random
import time
from typing import AsyncIterator, List, Optional

from errors import DashboardError
from models import Quote, Sample, TickBatch
from settings import FeedSettings, get_logger
from store import TimeSeriesStore

log = get_logger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def next_price(
    last: float,
    volatility: float,
    floor: float = 0.01,
    decimals: int = 2,
    rng: Optional[random.Random] = None,
) -> float:
    """One random-walk step: move at most ``volatility * last`` either way, never below ``floor``."""
    rng = rng or random
    change = rng.uniform(-0.5, 0.5) * 2 * volatility * last
    return max(floor, round(last + change, decimals))


def seed_history(
    store: TimeSeriesStore,
    feed: FeedSettings,
    end_ms: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> None:
    """Fill every series with ``feed.history_points`` samples spaced 1000ms apart, ending at ``end_ms``."""
    end_ms = now_ms() if end_ms is None else end_ms
    rng = rng or random.Random()
    for symbol in store.symbols:
        price = feed.seed_price(symbol)
        for i in range(feed.history_points - 1, -1, -1):
            price = next_price(price, feed.seed_volatility, feed.price_floor, feed.price_decimals, rng)
            store.append(symbol, Sample(timestamp=end_ms - i * 1000, price=price))
    log.info(f"Seeded {feed.history_points} samples for {len(store)} symbols")


class TickGenerator:
    def __init__(self, store: TimeSeriesStore, feed: FeedSettings, rng: Optional[random.Random] = None):
        self.store = store
        self.feed = feed
        self.rng = rng or random.Random()
        self.ticks = 0

    def tick(self, timestamp: Optional[int] = None) -> TickBatch:
        """Append one sample per symbol, all sharing ``timestamp``, and return the batch of quotes."""
        t = now_ms() if timestamp is None else timestamp
        quotes: List[Quote] = []
        for symbol in self.store.symbols:
            try:
                last = self.store.latest(symbol).price
                price = next_price(last, self.feed.volatility, self.feed.price_floor,
                                   self.feed.price_decimals, self.rng)
                self.store.append(symbol, Sample(timestamp=t, price=price))
            except DashboardError as exc:
                # one bad symbol must not halt the others
                log.error(f"Skipping {symbol} on tick at {t}: {exc}")
                continue
            quotes.append(Quote(symbol=symbol, timestamp=t, price=price))
        self.ticks += 1
        return tuple(quotes)

    async def stream(self, interval_ms: Optional[int] = None) -> AsyncIterator[TickBatch]:
        """Yield one batch every ``interval_ms`` on a fixed-rate schedule.

        A consumer that runs late delays the next tick rather than overlapping it;
        the schedule then catches up without bursting.
        """
        period = (interval_ms or self.feed.tick_interval_ms) / 1000.0
        loop = asyncio.get_running_loop()
        deadline = loop.time() + period
        while True:
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            yield self.tick()
            deadline = max(deadline + period, loop.time())

# tests/conftest.py
import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]  # project root
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from settings import FeedSettings  # noqa: E402
from store import TimeSeriesStore  # noqa: E402
from tick_generator import seed_history  # noqa: E402

SYMBOLS = ("AAPL", "GOOG", "MSFT")
END_MS = 1_700_000_000_000


@pytest.fixture
def feed() -> FeedSettings:
    return FeedSettings(symbols=SYMBOLS, history_points=120, max_length=500)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def store(feed, rng) -> TimeSeriesStore:
    s = TimeSeriesStore(feed.symbols, max_length=feed.max_length)
    seed_history(s, feed, end_ms=END_MS, rng=rng)
    return s

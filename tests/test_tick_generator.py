("""Tests for the random-walk tick generator and history seeding.""")

import random

import pytest

from conftest import END_MS, SYMBOLS
from models import Quote, Sample
from settings import FeedSettings
from store import TimeSeriesStore
from tick_generator import TickGenerator, next_price, seed_history


def test_next_price_stays_positive_and_bounded():
	rng = random.Random(7)
	price = 150.0
	for _ in range(5000):
		nxt = next_price(price, volatility=0.01, floor=0.01, decimals=2, rng=rng)
		assert nxt > 0
		# within one volatility step, plus half a cent of rounding
		assert abs(nxt - price) <= 0.01 * price + 0.005 + 1e-9
		price = nxt


def test_next_price_never_drops_below_floor():
	rng = random.Random(3)
	price = 0.01
	for _ in range(1000):
		price = next_price(price, volatility=0.9, floor=0.01, decimals=2, rng=rng)
		assert price >= 0.01


def test_seed_history_spacing_and_length(store, feed):
	for symbol in SYMBOLS:
		history = store.history(symbol)
		assert len(history) == feed.history_points
		assert history[-1].timestamp == END_MS
		gaps = {b.timestamp - a.timestamp for a, b in zip(history, history[1:])}
		assert gaps == {1000}
		assert all(s.price >= feed.price_floor for s in history)


def test_tick_appends_one_sample_per_symbol_with_shared_timestamp(store, feed, rng):
	gen = TickGenerator(store, feed, rng=rng)
	before = {s: store.latest(s) for s in SYMBOLS}

	batch = gen.tick(timestamp=END_MS + 1000)

	assert isinstance(batch, tuple)
	assert [q.symbol for q in batch] == list(SYMBOLS)
	assert {q.timestamp for q in batch} == {END_MS + 1000}
	for quote in batch:
		assert store.latest(quote.symbol) == Sample(quote.timestamp, quote.price)
		assert len(store.history(quote.symbol)) == feed.history_points + 1
		prev = before[quote.symbol].price
		assert abs(quote.price - prev) <= feed.volatility * prev + 0.005 + 1e-9
	assert gen.ticks == 1


def test_tick_keeps_series_within_max_length(rng):
	feed = FeedSettings(symbols=("AAPL",), history_points=5, max_length=8)
	store = TimeSeriesStore(feed.symbols, max_length=feed.max_length)
	seed_history(store, feed, end_ms=END_MS, rng=rng)
	gen = TickGenerator(store, feed, rng=rng)
	for i in range(1, 20):
		gen.tick(timestamp=END_MS + i * 1000)
	history = store.history("AAPL")
	assert len(history) == 8
	assert [s.timestamp for s in history] == [END_MS + i * 1000 for i in range(12, 20)]


def test_tick_skips_a_failing_symbol_and_keeps_the_rest(feed, rng):
	store = TimeSeriesStore(SYMBOLS, max_length=feed.max_length)
	# GOOG is never seeded, so reading its last price fails
	store.append("AAPL", Sample(END_MS, 150.0))
	store.append("MSFT", Sample(END_MS, 300.0))
	gen = TickGenerator(store, feed, rng=rng)

	batch = gen.tick(timestamp=END_MS + 1000)

	assert [q.symbol for q in batch] == ["AAPL", "MSFT"]
	assert store.history("GOOG") == ()


@pytest.mark.asyncio
async def test_stream_yields_batches_on_schedule(store, feed, rng):
	gen = TickGenerator(store, feed, rng=rng)
	batches = []
	async for batch in gen.stream(interval_ms=10):
		batches.append(batch)
		if len(batches) == 3:
			break
	assert all(len(b) == len(SYMBOLS) for b in batches)
	assert all(isinstance(q, Quote) for b in batches for q in b)
	stamps = [b[0].timestamp for b in batches]
	assert stamps == sorted(stamps)


def test_next_price_floor_holds_after_rounding():
	# a floor finer than the rounding precision must not let the price round to zero
	rng = random.Random(9)
	price = 0.01
	for _ in range(500):
		price = next_price(price, volatility=0.9, floor=0.001, decimals=2, rng=rng)
		assert price >= 0.001


def test_ticks_at_the_floor_never_reach_zero(rng):
	feed = FeedSettings(symbols=("PENNY",), history_points=1, max_length=500,
						volatility=0.9, price_floor=0.001, price_decimals=3)
	store = TimeSeriesStore(feed.symbols, max_length=feed.max_length)
	store.append("PENNY", Sample(END_MS, 0.01))
	gen = TickGenerator(store, feed, rng=rng)
	for i in range(1, 200):
		gen.tick(timestamp=END_MS + i * 1000)
	assert min(s.price for s in store.history("PENNY")) > 0


def test_feed_settings_reject_floor_below_price_precision():
	with pytest.raises(ValueError):
		FeedSettings(symbols=("PENNY",), price_floor=0.001, price_decimals=2)
	with pytest.raises(ValueError):
		FeedSettings(symbols=("PENNY",), price_floor=0.0)
	assert FeedSettings(symbols=("PENNY",), price_floor=0.001, price_decimals=3).price_floor == 0.001

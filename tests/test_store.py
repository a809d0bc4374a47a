("""Tests for the bounded per-symbol time series store.""")

import pytest

from errors import EmptySeriesError, OutOfOrderSampleError, UnknownSymbolError
from models import Sample
from store import TimeSeriesStore


def test_append_evicts_oldest_beyond_max_length():
	store = TimeSeriesStore(["AAPL"], max_length=5)
	for i in range(12):
		store.append("AAPL", Sample(timestamp=i * 1000, price=100.0 + i))
		assert len(store.history("AAPL")) <= 5

	history = store.history("AAPL")
	assert [s.timestamp for s in history] == [7000, 8000, 9000, 10000, 11000]
	assert store.latest("AAPL") == Sample(timestamp=11000, price=111.0)


def test_fewer_than_max_length_are_all_retained():
	store = TimeSeriesStore(["AAPL"], max_length=5)
	store.append("AAPL", Sample(1000, 1.0))
	store.append("AAPL", Sample(2000, 2.0))
	assert [s.price for s in store.history("AAPL")] == [1.0, 2.0]


def test_unknown_symbol_is_rejected_everywhere():
	store = TimeSeriesStore(["AAPL"])
	with pytest.raises(UnknownSymbolError):
		store.append("ZZZZ", Sample(0, 1.0))
	with pytest.raises(UnknownSymbolError):
		store.latest("ZZZZ")
	with pytest.raises(UnknownSymbolError):
		store.history("ZZZZ")


def test_latest_of_unseeded_series():
	store = TimeSeriesStore(["AAPL"])
	with pytest.raises(EmptySeriesError):
		store.latest("AAPL")
	assert store.history("AAPL") == ()


def test_timestamps_never_go_backwards():
	store = TimeSeriesStore(["AAPL"])
	store.append("AAPL", Sample(2000, 1.0))
	# equal timestamps are allowed
	store.append("AAPL", Sample(2000, 1.5))
	with pytest.raises(OutOfOrderSampleError):
		store.append("AAPL", Sample(1999, 2.0))
	assert len(store.history("AAPL")) == 2


def test_normalize_is_case_insensitive():
	store = TimeSeriesStore(["aapl", "MSFT"])
	assert store.symbols == ("AAPL", "MSFT")
	assert store.normalize("aApL") == "AAPL"
	assert "msft" in store
	with pytest.raises(UnknownSymbolError):
		store.normalize("ZZZZ")
	with pytest.raises(UnknownSymbolError):
		store.normalize(42)


def test_history_is_a_snapshot(store):
	before = store.history("AAPL")
	store.append("AAPL", Sample(before[-1].timestamp + 1000, 99.0))
	assert len(store.history("AAPL")) == len(before) + 1
	assert before[-1] != store.latest("AAPL")

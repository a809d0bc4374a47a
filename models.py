# models.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Literal, Tuple

from pydantic import BaseModel

from errors import MalformedMessageError


# Internal records ------------------------------------------------------------

@dataclass(frozen=True)
class Sample:
    timestamp: int   # epoch milliseconds
    price: float


@dataclass(frozen=True)
class Quote:
    symbol: str
    timestamp: int   # epoch milliseconds
    price: float


# A tick batch is immutable once emitted
TickBatch = Tuple[Quote, ...]


# Wire protocol ---------------------------------------------------------------

class SamplePayload(BaseModel):
    t: int
    price: float

    @classmethod
    def from_sample(cls, sample: Sample) -> "SamplePayload":
        return cls(t=sample.timestamp, price=sample.price)

    def to_sample(self) -> Sample:
        return Sample(timestamp=self.t, price=self.price)


class QuotePayload(BaseModel):
    symbol: str
    t: int
    price: float

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuotePayload":
        return cls(symbol=quote.symbol, t=quote.timestamp, price=quote.price)

    def to_quote(self) -> Quote:
        return Quote(symbol=self.symbol, timestamp=self.t, price=self.price)


class SymbolsMessage(BaseModel):
    type: Literal["symbols"] = "symbols"
    payload: List[str]


class HistoryMessage(BaseModel):
    type: Literal["history"] = "history"
    symbol: str
    history: List[SamplePayload]

    @classmethod
    def build(cls, symbol: str, samples: Iterable[Sample]) -> "HistoryMessage":
        return cls(symbol=symbol, history=[SamplePayload.from_sample(s) for s in samples])


class TickMessage(BaseModel):
    type: Literal["tick"] = "tick"
    payload: List[QuotePayload]

    @classmethod
    def build(cls, batch: Iterable[Quote]) -> "TickMessage":
        return cls(payload=[QuotePayload.from_quote(q) for q in batch])


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    message: str


class SubscribeRequest(BaseModel):
    type: Literal["subscribe"]
    symbol: str


# Response model for GET /api/history
class HistoryResponse(BaseModel):
    symbol: str
    history: List[SamplePayload]


class StatusResponse(BaseModel):
    ok: bool
    symbols: List[str]
    clients: int
    ticks_published: int
    uptime_seconds: float


def parse_subscribe(raw: str | bytes) -> SubscribeRequest:
    """Parse an inbound client frame; anything but a subscribe request is malformed."""
    try:
        return SubscribeRequest.model_validate_json(raw)
    except ValueError as exc:  # ValidationError, bad UTF-8
        raise MalformedMessageError(str(exc)) from exc

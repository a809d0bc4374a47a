# hub.py
from __future__ import annotations

import asyncio
import itertools
from contextlib import suppress
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterable, Optional, Tuple

from errors import MalformedMessageError, TransportSendError, UnknownSymbolError
from models import ErrorMessage, HistoryMessage, Quote, Sample, SymbolsMessage, TickMessage, parse_subscribe
from settings import get_logger
from store import TimeSeriesStore

log = get_logger(__name__)

UNKNOWN_SYMBOL = "Unknown symbol"


class SessionState(str, Enum):
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"
    DISCONNECTED = "disconnected"


class ClientSession:
    """Per-connection subscription state plus its outbound channel.

    The hub only ever enqueues; a single writer (see ``pump``) drains the
    outbox onto the transport.
    """

    def __init__(self, session_id: int, outbox_size: int = 256):
        self.id = session_id
        self.state = SessionState.CONNECTED
        self.selected_symbol: Optional[str] = None
        self.outbox: "asyncio.Queue[str]" = asyncio.Queue(maxsize=outbox_size)
        self.dropped = 0

    @property
    def is_open(self) -> bool:
        return self.state is not SessionState.DISCONNECTED

    def subscribe(self, symbol: str) -> None:
        self.selected_symbol = symbol
        self.state = SessionState.SUBSCRIBED

    def offer(self, message: str) -> bool:
        """Enqueue without waiting; a full outbox drops the message (at-most-once)."""
        if not self.is_open:
            return False
        try:
            self.outbox.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    def close(self) -> None:
        self.state = SessionState.DISCONNECTED
        while not self.outbox.empty():
            self.outbox.get_nowait()

    def __repr__(self) -> str:
        return f"ClientSession(id={self.id}, state={self.state.value}, symbol={self.selected_symbol})"


class SubscriptionHub:
    def __init__(self, store: TimeSeriesStore, outbox_size: int = 256):
        self.store = store
        self.outbox_size = outbox_size
        self._sessions: Dict[int, ClientSession] = {}
        self._ids = itertools.count(1)
        self.ticks_published = 0

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def sessions(self) -> Tuple[ClientSession, ...]:
        return tuple(self._sessions.values())

    def register(self) -> ClientSession:
        session = ClientSession(next(self._ids), self.outbox_size)
        self._sessions[session.id] = session
        session.offer(SymbolsMessage(payload=list(self.store.symbols)).model_dump_json())
        log.info(f"Client {session.id} connected ({len(self)} total)")
        return session

    def unregister(self, session: ClientSession) -> None:
        if self._sessions.pop(session.id, None) is None:
            return
        session.close()
        log.info(f"Client {session.id} disconnected ({len(self)} total)")

    def history(self, symbol: object) -> Tuple[str, Tuple[Sample, ...]]:
        """Canonical symbol and its current history; raises UnknownSymbolError."""
        canonical = self.store.normalize(symbol)
        return canonical, self.store.history(canonical)

    def handle_message(self, session: ClientSession, raw: str | bytes) -> None:
        if not session.is_open:
            return
        try:
            request = parse_subscribe(raw)
        except MalformedMessageError as exc:
            log.debug(f"Client {session.id}: dropping malformed message: {exc}")
            return

        try:
            symbol, samples = self.history(request.symbol)
        except UnknownSymbolError:
            log.info(f"Client {session.id}: subscribe to unknown symbol {request.symbol!r}")
            session.offer(ErrorMessage(message=UNKNOWN_SYMBOL).model_dump_json())
            return

        # subscription only changes once its history is on the way
        if not session.offer(HistoryMessage.build(symbol, samples).model_dump_json()):
            log.warning(f"Client {session.id}: outbox full, history for {symbol} dropped")
            return
        session.subscribe(symbol)
        log.info(f"Client {session.id} subscribed to {symbol}")

    def broadcast(self, batch: Iterable[Quote]) -> int:
        """Offer one tick batch to every connected client; returns how many accepted it."""
        message = TickMessage.build(batch).model_dump_json()
        delivered = 0
        for session in self.sessions:
            if session.offer(message):
                delivered += 1
            else:
                log.debug(f"Client {session.id}: tick dropped")
        self.ticks_published += 1
        return delivered


async def pump(session: ClientSession, send: Callable[[str], Awaitable[None]]) -> None:
    """Drain ``session.outbox`` onto the transport until a send fails or the task is cancelled."""
    while True:
        message = await session.outbox.get()
        try:
            await send(message)
        except Exception as exc:
            raise TransportSendError(f"send to client {session.id} failed: {exc}") from exc


async def serve(
    hub: SubscriptionHub,
    session: ClientSession,
    receive_loop: Awaitable[None],
    send: Callable[[str], Awaitable[None]],
) -> None:
    """Run one connection until its reader returns or its writer fails, then unregister it."""
    reader = asyncio.ensure_future(receive_loop)
    writer = asyncio.create_task(pump(session, send))
    try:
        done, _ = await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if isinstance(exc, TransportSendError):
                log.debug(f"Client {session.id}: {exc}")
            elif exc is not None:
                log.warning(f"Client {session.id} closed on error: {exc!r}")
    finally:
        hub.unregister(session)
        for task in (reader, writer):
            task.cancel()
        for task in (reader, writer):
            with suppress(asyncio.CancelledError, Exception):
                await task

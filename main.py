# main.py
import asyncio
import time
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket, status

from errors import UnknownSymbolError
from hub import UNKNOWN_SYMBOL, ClientSession, SubscriptionHub, serve
from models import HistoryResponse, SamplePayload, StatusResponse
from settings import get_logger, get_settings, setup_logging
from store import TimeSeriesStore
from tick_generator import TickGenerator, seed_history

log = get_logger(__name__)


# --- 1) TICK PUBLISHER TASK (Runs in the background) ---

async def tick_publisher_task(generator: TickGenerator, hub: SubscriptionHub) -> None:
    """Append a tick per symbol and fan the batch out to every client, forever."""
    log.info(f"Starting tick publisher for symbols: {list(generator.store.symbols)}")
    try:
        async for batch in generator.stream():
            try:
                hub.broadcast(batch)
            except Exception:
                # keep ticking whatever happens to a single broadcast
                log.exception("Tick broadcast failed")
    except asyncio.CancelledError:
        log.info("Tick publisher cancelled.")
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    store = TimeSeriesStore(settings.feed.symbols, max_length=settings.feed.max_length)
    seed_history(store, settings.feed)

    app.state.started_at = time.time()
    app.state.store = store
    app.state.hub = SubscriptionHub(store, outbox_size=settings.hub.outbox_size)
    app.state.generator = TickGenerator(store, settings.feed)
    publisher = asyncio.create_task(tick_publisher_task(app.state.generator, app.state.hub))
    try:
        yield
    finally:
        publisher.cancel()
        with suppress(asyncio.CancelledError):
            await publisher


app = FastAPI(title="Realtime Price Dashboard", lifespan=lifespan)


# --- 2) REST fallback endpoints ---

@app.get("/api/history", response_model=HistoryResponse, tags=["History"])
async def get_history(request: Request, symbol: Optional[str] = None):
    """Full retained history for one symbol; the first symbol when none is given."""
    hub: SubscriptionHub = request.app.state.hub
    try:
        canonical, samples = hub.history(symbol or hub.store.symbols[0])
    except UnknownSymbolError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=UNKNOWN_SYMBOL)
    return HistoryResponse(symbol=canonical, history=[SamplePayload.from_sample(s) for s in samples])


@app.get("/api/symbols", tags=["History"])
async def get_symbols(request: Request):
    return {"symbols": list(request.app.state.store.symbols)}


@app.get("/api/status", response_model=StatusResponse, tags=["Status"])
async def get_status(request: Request):
    state = request.app.state
    return StatusResponse(
        ok=True,
        symbols=list(state.store.symbols),
        clients=len(state.hub),
        ticks_published=state.hub.ticks_published,
        uptime_seconds=round(time.time() - state.started_at, 1),
    )


# --- 3) WS /ws Endpoint ---

async def _read_loop(websocket: WebSocket, hub: SubscriptionHub, session: ClientSession) -> None:
    # One inbound message in flight at a time; returns on peer close
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        raw = message.get("text")
        if raw is None:
            raw = message.get("bytes")
        if raw is not None:
            hub.handle_message(session, raw)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Symbols on connect, history on subscribe, every tick batch as it is published."""
    await websocket.accept()
    hub: SubscriptionHub = websocket.app.state.hub
    session = hub.register()

    try:
        await serve(hub, session, _read_loop(websocket, hub, session), websocket.send_text)
    finally:
        # Attempt graceful close if still connected
        with suppress(Exception):
            await websocket.close()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    setup_logging(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)

# dashboard_client.py
"""Viewer side of the dashboard: consume the feed and keep a ClientView current.

Inbound messages are handled one at a time in arrival order. On transport loss
the client reconnects after a fixed delay, forever. While the socket is down,
selecting a symbol falls back to ``GET /api/history``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Callable, List, Optional, Sequence

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from client_view import ClientView, RenderPoint
from indicators import determine_trend
from models import HistoryResponse, QuotePayload, SamplePayload, SubscribeRequest
from settings import ClientSettings, get_logger, get_settings, setup_logging

log = get_logger(__name__)

RenderSink = Callable[[Sequence[RenderPoint]], None]


def log_sink(points: Sequence[RenderPoint]) -> None:
    if not points:
        return
    last = points[-1]
    trend = determine_trend(last.price, last.sma)
    log.info(f"{last.label}  price={last.price:.2f}  sma={last.sma:.4f}  {trend.value}  ({len(points)} pts)")


class DashboardClient:
    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        view: Optional[ClientView] = None,
        sink: RenderSink = log_sink,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        s = settings or get_settings().client
        self.ws_url = s.ws_url
        self.http_url = s.http_url
        self.reconnect_delay = s.reconnect_delay
        self.view = view or ClientView(max_points=s.max_points, period=s.sma_period)
        self.sink = sink
        self.http_transport = http_transport
        self.symbols: List[str] = []
        self.paused = False
        self.reconnects = 0
        self._ws = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def run(self) -> None:
        while True:
            try:
                async with websockets.connect(self.ws_url) as ws:
                    self._ws = ws
                    log.info(f"WS connected: {self.ws_url}")
                    async for raw in ws:
                        await self.handle_message(raw)
                log.info(f"WS closed, reconnecting in {self.reconnect_delay:.1f}s")
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                log.warning(f"WS connection error: {e}; reconnecting in {self.reconnect_delay:.1f}s")
            finally:
                self._ws = None
            self.reconnects += 1
            await asyncio.sleep(self.reconnect_delay)

    async def handle_message(self, raw) -> None:
        if self.paused:
            return
        try:
            msg = json.loads(raw)
            mtype = msg.get("type")
            if mtype == "symbols":
                await self._on_symbols([str(s) for s in msg["payload"]])
            elif mtype == "history":
                if msg.get("symbol") == self.view.selected_symbol:
                    self.view.load_history(SamplePayload.model_validate(h).to_sample() for h in msg["history"])
                    self.render()
            elif mtype == "tick":
                quotes = (QuotePayload.model_validate(q).to_quote() for q in msg["payload"])
                quote = next((q for q in quotes if q.symbol == self.view.selected_symbol), None)
                if quote is not None and self.view.apply_tick(quote):
                    self.render()
            elif mtype == "error":
                log.warning(f"Server error: {msg.get('message')}")
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            log.warning(f"bad ws data: {e}")

    async def _on_symbols(self, symbols: List[str]) -> None:
        self.symbols = symbols
        if self.view.selected_symbol is None:
            if symbols:
                await self.select(symbols[0])
        else:
            # reconnected: ask for a fresh history of the current symbol
            await self.select(self.view.selected_symbol)

    async def select(self, symbol: str) -> None:
        """Make ``symbol`` current: subscribe over the socket, or fetch history over HTTP."""
        self.view.select(symbol)
        if self._ws is not None:
            try:
                await self._ws.send(SubscribeRequest(type="subscribe", symbol=symbol).model_dump_json())
                return
            except ConnectionClosed as e:
                log.debug(f"subscribe over WS failed ({e}); falling back to HTTP")
        await self.fetch_history(symbol)

    async def fetch_history(self, symbol: str) -> None:
        try:
            async with httpx.AsyncClient(base_url=self.http_url, transport=self.http_transport) as client:
                resp = await client.get("/api/history", params={"symbol": symbol})
                resp.raise_for_status()
                data = HistoryResponse.model_validate(resp.json())
        except (httpx.HTTPError, ValueError) as e:
            log.warning(f"history fetch for {symbol} failed: {e}")
            return
        if data.symbol == self.view.selected_symbol:
            self.view.load_history(h.to_sample() for h in data.history)
            self.render()

    def set_period(self, value) -> None:
        self.view.set_period(value)
        self.render()

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        return self.paused

    def render(self) -> None:
        self.sink(self.view.points)


def main(argv: Optional[Sequence[str]] = None) -> None:
    s = get_settings()
    parser = argparse.ArgumentParser(description="Stream simulated prices with an SMA overlay")
    parser.add_argument("--ws-url", default=s.client.ws_url)
    parser.add_argument("--http-url", default=s.client.http_url)
    parser.add_argument("--period", type=int, default=s.client.sma_period)
    parser.add_argument("--max-points", type=int, default=s.client.max_points)
    parser.add_argument("--symbol", default=None, help="symbol to select instead of the first one")
    args = parser.parse_args(argv)

    setup_logging(s)
    settings = ClientSettings(
        ws_url=args.ws_url,
        http_url=args.http_url,
        max_points=args.max_points,
        sma_period=args.period,
        reconnect_delay=s.client.reconnect_delay,
    )
    client = DashboardClient(settings)
    if args.symbol:
        client.view.select(args.symbol.upper())
    asyncio.run(client.run())


if __name__ == "__main__":
    main()

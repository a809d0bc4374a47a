# settings.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional, Tuple

DEFAULT_SYMBOLS = ("AAPL", "GOOG", "MSFT", "TSLA", "AMZN")
DEFAULT_SEED_PRICES = {"AAPL": 150.0, "GOOG": 2800.0, "MSFT": 300.0, "TSLA": 700.0, "AMZN": 3500.0}
FALLBACK_SEED_PRICE = 100.0

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _symbols_from_env() -> Tuple[str, ...]:
    raw = os.getenv("SYMBOLS", "")
    parsed = tuple(s.strip().upper() for s in raw.split(",") if s.strip())
    return parsed or DEFAULT_SYMBOLS


@dataclass(frozen=True)
class LoggingConfig:
    level: str = os.getenv("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class FeedSettings:
    symbols: Tuple[str, ...] = field(default_factory=_symbols_from_env)
    seed_prices: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_SEED_PRICES))
    history_points: int = int(os.getenv("HISTORY_POINTS", "120"))   # seconds of seeded history
    max_length: int = int(os.getenv("MAX_LENGTH", "500"))           # retained samples per symbol
    tick_interval_ms: int = int(os.getenv("TICK_INTERVAL_MS", "1000"))
    volatility: float = float(os.getenv("VOLATILITY", "0.01"))      # max fractional move per tick
    seed_volatility: float = float(os.getenv("SEED_VOLATILITY", "0.001"))
    price_floor: float = float(os.getenv("PRICE_FLOOR", "0.01"))
    price_decimals: int = int(os.getenv("PRICE_DECIMALS", "2"))

    def __post_init__(self) -> None:
        if not self.symbols:
            raise ValueError("at least one symbol is required")
        if self.max_length <= 0:
            raise ValueError("MAX_LENGTH must be > 0")
        if not 0 < self.history_points <= self.max_length:
            raise ValueError("HISTORY_POINTS must be in (0, MAX_LENGTH]")
        if self.tick_interval_ms <= 0:
            raise ValueError("TICK_INTERVAL_MS must be > 0")
        if self.price_floor <= 0:
            raise ValueError("PRICE_FLOOR must be positive")
        if self.price_floor < 10 ** -self.price_decimals:
            # a smaller floor rounds to zero at PRICE_DECIMALS
            raise ValueError("PRICE_FLOOR must be at least one unit of PRICE_DECIMALS")

    def seed_price(self, symbol: str) -> float:
        return self.seed_prices.get(symbol, FALLBACK_SEED_PRICE)


@dataclass(frozen=True)
class HubSettings:
    outbox_size: int = int(os.getenv("OUTBOX_SIZE", "256"))


@dataclass(frozen=True)
class ClientSettings:
    ws_url: str = os.getenv("WS_URL", "ws://127.0.0.1:8080/ws")
    http_url: str = os.getenv("HTTP_URL", "http://127.0.0.1:8080")
    max_points: int = int(os.getenv("MAX_POINTS", "120"))
    sma_period: int = int(os.getenv("SMA_PERIOD", "20"))
    reconnect_delay: float = float(os.getenv("RECONNECT_DELAY", "1.0"))   # fixed, no backoff growth

    def __post_init__(self) -> None:
        if self.max_points <= 0:
            raise ValueError("MAX_POINTS must be > 0")
        if self.sma_period < 2:
            raise ValueError("SMA_PERIOD must be >= 2")


@dataclass(frozen=True)
class Settings:
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8080"))

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    feed: FeedSettings = field(default_factory=FeedSettings)
    hub: HubSettings = field(default_factory=HubSettings)
    client: ClientSettings = field(default_factory=ClientSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache settings exactly once per process."""
    return Settings()


def setup_logging(settings: Optional[Settings] = None) -> None:
    s = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(getattr(logging, s.logging.level.upper(), logging.INFO))
    # drop existing handlers to avoid duplicates on reload
    for h in list(root.handlers):
        root.removeHandler(h)

    ch = logging.StreamHandler()
    ch.setLevel(root.level)
    ch.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(ch)


def get_logger(name: str) -> logging.Logger:
    # Ensure logging is configured at first call
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)

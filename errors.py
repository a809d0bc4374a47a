# errors.py
"""Error taxonomy for the price dashboard.

None of these are fatal to the process: the hub turns ``UnknownSymbolError``
into an ``error`` message for the requesting client, drops
``MalformedMessageError`` silently, and stops only the affected connection on
``TransportSendError``.
"""


class DashboardError(Exception):
    """Base class for all dashboard errors."""


class UnknownSymbolError(DashboardError, LookupError):
    def __init__(self, symbol: object):
        super().__init__(f"Unknown symbol: {symbol!r}")
        self.symbol = symbol


class EmptySeriesError(DashboardError, LookupError):
    def __init__(self, symbol: str):
        super().__init__(f"No samples recorded for {symbol}")
        self.symbol = symbol


class OutOfOrderSampleError(DashboardError, ValueError):
    """A sample older than the series tail would break timestamp ordering."""


class MalformedMessageError(DashboardError, ValueError):
    """Inbound payload could not be parsed or has the wrong shape."""


class TransportSendError(DashboardError):
    """Writing to a closed or broken connection failed."""

"""Client for the Blocktap crypto market-data GraphQL API."""

from .client import AsyncBlocktapClient, BlocktapClient
from .errors import BlocktapError, NotFoundError, RequestError, ValidationError
from .settings import ClientConfig
from .types import (
    Candle,
    CandlePeriod,
    Currency,
    Exchange,
    Market,
    MarketStatus,
    MarketType,
    OptionType,
    QueryRequest,
    QueryResult,
    Trade,
    TradeSide,
)

__all__ = [
    "AsyncBlocktapClient",
    "BlocktapClient",
    "BlocktapError",
    "Candle",
    "CandlePeriod",
    "ClientConfig",
    "Currency",
    "Exchange",
    "Market",
    "MarketStatus",
    "MarketType",
    "NotFoundError",
    "OptionType",
    "QueryRequest",
    "QueryResult",
    "RequestError",
    "Trade",
    "TradeSide",
    "ValidationError",
]

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class MarketStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class MarketType(str, Enum):
    SPOT = "Spot"
    FUTURES = "Futures"
    SWAP = "Swap"
    OPTION = "Option"


class OptionType(str, Enum):
    CALL = "Call"
    PUT = "Put"


class TradeSide(str, Enum):
    BID = "Bid"
    ASK = "Ask"


class CandlePeriod(str, Enum):
    """OHLCV resolutions; values are the server's enum literals."""

    _1m = "_1m"
    _5m = "_5m"
    _15m = "_15m"
    _30m = "_30m"
    _1h = "_1h"
    _2h = "_2h"
    _4h = "_4h"
    _6h = "_6h"
    _12h = "_12h"
    _1d = "_1d"


# [unix_seconds, open, high, low, close, volume]
Candle = Tuple[str, str, str, str, str, str]


@dataclass(frozen=True)
class Currency:
    currency_symbol: str
    currency_name: str
    is_active: bool


@dataclass(frozen=True)
class Exchange:
    exchange_symbol: str
    exchange_name: str
    is_active: bool


@dataclass(frozen=True)
class Market:
    id: str
    market_symbol: str
    market_type: MarketType
    market_status: MarketStatus
    exchange_symbol: str
    base_symbol: str
    quote_symbol: str
    remote_id: str
    # populated only for MarketType.OPTION
    expiry_date: Optional[str] = None
    option_type: Optional[OptionType] = None
    option_strike: Optional[str] = None

    @property
    def is_option(self) -> bool:
        return self.market_type is MarketType.OPTION


@dataclass(frozen=True)
class Trade:
    id: str
    unix: int  # epoch ms
    side: TradeSide
    price: str
    amount: str


@dataclass(frozen=True)
class QueryRequest:
    query: str
    variables: Optional[Mapping[str, Any]] = None
    operation_name: Optional[str] = None

    def payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"query": self.query, "variables": dict(self.variables or {})}
        if self.operation_name:
            body["operationName"] = self.operation_name
        return body


@dataclass(frozen=True)
class QueryResult:
    """GraphQL response envelope, returned as received."""

    data: Optional[Dict[str, Any]] = None
    errors: Optional[List[Dict[str, Any]]] = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def error_messages(self) -> List[str]:
        messages: List[str] = []
        for err in self.errors or []:
            if isinstance(err, dict):
                messages.append(str(err.get("message") or "Unknown error"))
            else:
                messages.append(str(err))
        return messages

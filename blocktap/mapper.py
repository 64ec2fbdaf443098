from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar

from blocktap.errors import NotFoundError, RequestError
from blocktap.types import (
    Candle,
    Currency,
    Exchange,
    Market,
    MarketStatus,
    MarketType,
    OptionType,
    QueryResult,
    Trade,
    TradeSide,
)


T = TypeVar("T")
E = TypeVar("E", bound=Enum)


def raise_for_errors(result: QueryResult) -> None:
    if result.errors:
        messages = "; ".join(result.error_messages())
        raise RequestError(f"GraphQL errors: {messages}", errors=result.errors)


def root_field(result: QueryResult, name: str) -> Any:
    raise_for_errors(result)
    if result.data is None:
        raise RequestError(f"GraphQL response has no data for '{name}'")
    if name not in result.data:
        raise RequestError(f"GraphQL response is missing root field '{name}'")
    return result.data[name]


# -- field decoders; these raise ValueError and callers wrap it --


def _require(row: Mapping[str, Any], key: str) -> Any:
    if key not in row:
        raise ValueError(f"missing field '{key}'")
    return row[key]


def _str(row: Mapping[str, Any], key: str) -> str:
    value = _require(row, key)
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError(f"field '{key}' must be a string, got {value!r}")
    return str(value)


def _opt_str(row: Mapping[str, Any], key: str) -> Optional[str]:
    if row.get(key) is None:
        return None
    return _str(row, key)


def _bool(row: Mapping[str, Any], key: str) -> bool:
    value = _require(row, key)
    if not isinstance(value, bool):
        raise ValueError(f"field '{key}' must be a bool, got {value!r}")
    return value


def _decimal_str(value: Any, key: str) -> str:
    """Decimal-valued field as a string; floats are refused."""
    if isinstance(value, str):
        return value
    if isinstance(value, Decimal) or (isinstance(value, int) and not isinstance(value, bool)):
        return str(value)
    raise ValueError(f"field '{key}' must be a decimal string, got {value!r}")


def _int(row: Mapping[str, Any], key: str) -> int:
    value = _require(row, key)
    if isinstance(value, bool):
        raise ValueError(f"field '{key}' must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    raise ValueError(f"field '{key}' must be an integer, got {value!r}")


def _enum(enum_cls: Type[E], value: Any, key: str) -> E:
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValueError(f"field '{key}' has unknown value {value!r}") from exc


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be an object, got {type(value).__name__}")
    return value


def decode_currency(row: Any) -> Currency:
    row = _mapping(row, "currency")
    return Currency(
        currency_symbol=_str(row, "currencySymbol"),
        currency_name=_str(row, "currencyName"),
        is_active=_bool(row, "isActive"),
    )


def decode_exchange(row: Any) -> Exchange:
    row = _mapping(row, "exchange")
    return Exchange(
        exchange_symbol=_str(row, "exchangeSymbol"),
        exchange_name=_str(row, "exchangeName"),
        is_active=_bool(row, "isActive"),
    )


def decode_market(row: Any) -> Market:
    row = _mapping(row, "market")
    market_type = _enum(MarketType, _require(row, "marketType"), "marketType")
    expiry_date = option_type = option_strike = None
    if market_type is MarketType.OPTION:
        expiry_date = _opt_str(row, "expiryDate")
        if row.get("optionType") is not None:
            option_type = _enum(OptionType, row["optionType"], "optionType")
        if row.get("optionStrike") is not None:
            option_strike = _decimal_str(row["optionStrike"], "optionStrike")
    return Market(
        id=_str(row, "id"),
        market_symbol=_str(row, "marketSymbol"),
        market_type=market_type,
        market_status=_enum(MarketStatus, _require(row, "marketStatus"), "marketStatus"),
        exchange_symbol=_str(row, "exchangeSymbol"),
        base_symbol=_str(row, "baseSymbol"),
        quote_symbol=_str(row, "quoteSymbol"),
        remote_id=_str(row, "remoteId"),
        expiry_date=expiry_date,
        option_type=option_type,
        option_strike=option_strike,
    )


def decode_candle(row: Any) -> Candle:
    if not isinstance(row, list) or len(row) != 6:
        raise ValueError(f"candle must be a list of 6 values, got {row!r}")
    ts, open_, high, low, close, volume = (_decimal_str(v, "ohlcv") for v in row)
    return (ts, open_, high, low, close, volume)


def decode_trade(row: Any) -> Trade:
    row = _mapping(row, "trade")
    return Trade(
        id=_str(row, "id"),
        unix=_int(row, "unix"),
        side=_enum(TradeSide, _require(row, "side"), "side"),
        price=_decimal_str(_require(row, "price"), "price"),
        amount=_decimal_str(_require(row, "amount"), "amount"),
    )


def _decode_list(rows: Any, decode: Callable[[Any], T], what: str) -> List[T]:
    if not isinstance(rows, list):
        raise RequestError(f"Malformed {what} response: expected a list, got {type(rows).__name__}")
    try:
        return [decode(row) for row in rows]
    except ValueError as exc:
        raise RequestError(f"Malformed {what} response: {exc}") from exc


def map_currencies(result: QueryResult) -> List[Currency]:
    return _decode_list(root_field(result, "currencies"), decode_currency, "currencies")


def map_exchanges(result: QueryResult) -> List[Exchange]:
    return _decode_list(root_field(result, "exchanges"), decode_exchange, "exchanges")


def map_markets(result: QueryResult) -> List[Market]:
    return _decode_list(root_field(result, "markets"), decode_market, "markets")


def _market_node(result: QueryResult, market_id: str) -> Dict[str, Any]:
    node = root_field(result, "market")
    if node is None:
        raise NotFoundError(f"Market not found: {market_id}")
    if not isinstance(node, dict):
        raise RequestError(f"Malformed market response: expected an object, got {type(node).__name__}")
    return node


def map_market(result: QueryResult, market_id: str) -> Market:
    node = _market_node(result, market_id)
    try:
        return decode_market(node)
    except ValueError as exc:
        raise RequestError(f"Malformed market response: {exc}") from exc


def map_candles(result: QueryResult, market_id: str) -> Optional[List[Candle]]:
    """Candles for the market; None when the server withholds ohlcv (restricted field)."""
    node = _market_node(result, market_id)
    rows = node.get("ohlcv")
    if rows is None:
        return None
    return _decode_list(rows, decode_candle, "ohlcv")


def map_trades(result: QueryResult, market_id: str) -> Optional[List[Trade]]:
    node = _market_node(result, market_id)
    rows = node.get("trades")
    if rows is None:
        return None
    return _decode_list(rows, decode_trade, "trades")

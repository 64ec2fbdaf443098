from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import requests

from blocktap import mapper, queries
from blocktap.errors import ValidationError
from blocktap.settings import DEFAULT_ENDPOINT_URL, DEFAULT_TIMEOUT_S, ClientConfig
from blocktap.transport import HttpTransport
from blocktap.types import (
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
)
from blocktap.validation import (
    coerce_optional_bool,
    coerce_optional_enum,
    coerce_optional_str,
    coerce_period,
    require_id,
    validate_range,
)


log = logging.getLogger(__name__)

Prepared = Tuple[QueryRequest, Callable[[QueryResult], Any]]
RawRequest = Union[QueryRequest, Mapping[str, Any], str]

_CURRENCY_FILTERS = {
    "currencySymbol": "currency_symbol",
    "currencyName": "currency_name",
    "isActive": "is_active",
}
_MARKET_FILTERS = {
    "exchangeSymbol": "exchange_symbol",
    "baseSymbol": "base_symbol",
    "quoteSymbol": "quote_symbol",
    "marketStatus": "market_status",
    "marketType": "market_type",
    "optionType": "option_type",
}


def _merge_filter(
    flt: Optional[Mapping[str, Any]],
    names: Mapping[str, str],
    kwargs: Dict[str, Any],
) -> Dict[str, Any]:
    """Fold a camelCase filter mapping into snake_case keyword arguments."""
    unknown = sorted(set(kwargs) - set(names.values()))
    if unknown:
        raise ValidationError(f"Unknown filter argument(s): {', '.join(unknown)}")
    merged = {snake: kwargs.get(snake) for snake in names.values()}
    for key, value in (flt or {}).items():
        snake = names.get(key) or (key if key in merged else None)
        if snake is None:
            allowed = ", ".join(names)
            raise ValidationError(f"Unknown filter '{key}'; expected one of [{allowed}]")
        if value is not None:
            merged[snake] = value
    return merged


def _as_request(request: RawRequest, variables: Optional[Mapping[str, Any]]) -> QueryRequest:
    if isinstance(request, QueryRequest):
        return request
    if isinstance(request, str):
        return QueryRequest(query=request, variables=variables)
    if isinstance(request, Mapping):
        query = request.get("query")
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("request['query'] must be a non-empty string")
        return QueryRequest(
            query=query,
            variables=request.get("variables") or variables,
            operation_name=request.get("operationName"),
        )
    raise ValidationError(f"Unsupported request type: {type(request).__name__}")


class _ClientBase:
    """Configuration plus the validate -> build -> map steps shared by both facades."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        *,
        timeout_s: Optional[float] = None,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if config is None:
            config = ClientConfig(
                api_key=api_key or None,
                endpoint_url=endpoint_url or DEFAULT_ENDPOINT_URL,
                timeout_s=DEFAULT_TIMEOUT_S if timeout_s is None else float(timeout_s),
            )
        self.config = config
        self._transport = HttpTransport(config, session=session)
        log.debug("blocktap client configured: %r", config)

    @classmethod
    def from_env(cls, **kwargs: Any):
        """Build a client from BLOCKTAP_KEY / BLOCKTAP_URL / BLOCKTAP_TIMEOUT_S / BLOCKTAP_CONFIG."""
        session = kwargs.pop("session", None)
        return cls(config=ClientConfig.from_env(**kwargs), session=session)

    def close(self) -> None:
        self._transport.close()

    def _prepare_currencies(self, flt, kwargs) -> Prepared:
        args = _merge_filter(flt, _CURRENCY_FILTERS, kwargs)
        request = queries.currencies_query(
            currency_symbol=coerce_optional_str(args["currency_symbol"], "currency_symbol"),
            currency_name=coerce_optional_str(args["currency_name"], "currency_name"),
            is_active=coerce_optional_bool(args["is_active"], "is_active"),
        )
        return request, mapper.map_currencies

    def _prepare_exchanges(self) -> Prepared:
        return queries.exchanges_query(), mapper.map_exchanges

    def _prepare_markets(self, flt, kwargs) -> Prepared:
        args = _merge_filter(flt, _MARKET_FILTERS, kwargs)
        request = queries.markets_query(
            exchange_symbol=coerce_optional_str(args["exchange_symbol"], "exchange_symbol"),
            base_symbol=coerce_optional_str(args["base_symbol"], "base_symbol"),
            quote_symbol=coerce_optional_str(args["quote_symbol"], "quote_symbol"),
            market_status=coerce_optional_enum(MarketStatus, args["market_status"], "market_status"),
            market_type=coerce_optional_enum(MarketType, args["market_type"], "market_type"),
            option_type=coerce_optional_enum(OptionType, args["option_type"], "option_type"),
        )
        return request, mapper.map_markets

    def _prepare_market(self, market_id: str) -> Prepared:
        market_id = require_id(market_id, "id")
        return queries.market_query(market_id), lambda result: mapper.map_market(result, market_id)

    def _prepare_candles(self, market_id: str, start: str, end: str, period) -> Prepared:
        market_id = require_id(market_id)
        validate_range(start, end)
        resolution = coerce_period(period)
        request = queries.candles_query(market_id, start, end, resolution)
        return request, lambda result: mapper.map_candles(result, market_id)

    def _prepare_trades(self, market_id: str, start: str, end: str) -> Prepared:
        market_id = require_id(market_id)
        validate_range(start, end)
        request = queries.trades_query(market_id, start, end)
        return request, lambda result: mapper.map_trades(result, market_id)


class BlocktapClient(_ClientBase):
    """Blocking client for the Blocktap GraphQL API.

    Typed methods raise RequestError when the server reports GraphQL errors;
    ``query`` hands back the envelope untouched and only raises when the
    request itself fails.
    """

    def __enter__(self) -> "BlocktapClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _run(self, prepared: Prepared):
        request, mapping = prepared
        return mapping(self._transport.execute(request))

    def query(self, request: RawRequest, variables: Optional[Mapping[str, Any]] = None) -> QueryResult:
        return self._transport.execute(_as_request(request, variables))

    def currencies(self, filters: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> List[Currency]:
        """Currencies matching ``currency_symbol`` / ``currency_name`` (``%`` wildcards) and ``is_active``."""
        return self._run(self._prepare_currencies(filters, kwargs))

    def exchanges(self) -> List[Exchange]:
        return self._run(self._prepare_exchanges())

    def markets(self, filters: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> List[Market]:
        """Markets matching every supplied filter."""
        return self._run(self._prepare_markets(filters, kwargs))

    def market(self, id: str) -> Market:
        return self._run(self._prepare_market(id))

    def candles(
        self,
        market_id: str,
        start: str,
        end: str,
        period: Union[CandlePeriod, str],
    ) -> Optional[List[Candle]]:
        """OHLCV rows in ascending time; None when the API key does not grant ohlcv."""
        return self._run(self._prepare_candles(market_id, start, end, period))

    def trades(self, market_id: str, start: str, end: str) -> Optional[List[Trade]]:
        return self._run(self._prepare_trades(market_id, start, end))


class AsyncBlocktapClient(_ClientBase):
    """asyncio flavour of BlocktapClient.

    Each call runs the HTTP round trip in a worker thread, so several calls
    can be awaited concurrently from one event loop.
    """

    async def __aenter__(self) -> "AsyncBlocktapClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    async def _run(self, prepared: Prepared):
        request, mapping = prepared
        result = await asyncio.to_thread(self._transport.execute, request)
        return mapping(result)

    async def query(self, request: RawRequest, variables: Optional[Mapping[str, Any]] = None) -> QueryResult:
        return await asyncio.to_thread(self._transport.execute, _as_request(request, variables))

    async def currencies(self, filters: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> List[Currency]:
        return await self._run(self._prepare_currencies(filters, kwargs))

    async def exchanges(self) -> List[Exchange]:
        return await self._run(self._prepare_exchanges())

    async def markets(self, filters: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> List[Market]:
        return await self._run(self._prepare_markets(filters, kwargs))

    async def market(self, id: str) -> Market:
        return await self._run(self._prepare_market(id))

    async def candles(
        self,
        market_id: str,
        start: str,
        end: str,
        period: Union[CandlePeriod, str],
    ) -> Optional[List[Candle]]:
        return await self._run(self._prepare_candles(market_id, start, end, period))

    async def trades(self, market_id: str, start: str, end: str) -> Optional[List[Trade]]:
        return await self._run(self._prepare_trades(market_id, start, end))

from __future__ import annotations

import asyncio
from typing import Any, Dict

import pytest

from blocktap import AsyncBlocktapClient, BlocktapClient, CandlePeriod, MarketStatus, MarketType, OptionType
from blocktap.errors import NotFoundError, RequestError, ValidationError
from blocktap.types import QueryRequest, TradeSide
from tests._fakes import (
    COINBASE_BTC_USD,
    LEDGERX_CALL,
    FakeResponse,
    FakeSession,
    always,
    envelope,
    hourly_candles,
)

START = "2020-01-01T00:00:00.000Z"
END = "2020-01-02T00:00:00.000Z"


def _client(responder, api_key: str | None = "secret") -> tuple[BlocktapClient, FakeSession]:
    session = FakeSession(responder)
    return BlocktapClient(api_key, session=session), session


def test_query_returns_envelope_with_errors_without_raising() -> None:
    client, _ = _client(always(envelope(None, errors=[{"message": "Field 'market' must have a selection"}])))
    result = client.query({"query": "query price { market {} }"})
    assert result.data is None
    assert len(result.errors) > 0


def test_query_passes_restricted_null_through() -> None:
    client, session = _client(always(envelope({"market": {"id": "binance_btc_usdt", "ohlcv": None}})), api_key=None)
    result = client.query("query price { market(id: \"binance_btc_usdt\") { id ohlcv(resolution:_1m limit:5) } }")
    assert result.data["market"]["id"] == "binance_btc_usdt"
    assert result.data["market"]["ohlcv"] is None
    assert "Authorization" not in session.calls[0]["headers"]


def test_query_accepts_request_object_and_variables() -> None:
    client, session = _client(always(envelope({"market": {"id": "x"}})))
    client.query(QueryRequest(query="query m($id: String!) { market(id: $id) { id } }", variables={"id": "x"}))
    client.query("query m($id: String!) { market(id: $id) { id } }", {"id": "y"})
    assert session.calls[0]["json"]["variables"] == {"id": "x"}
    assert session.calls[1]["json"]["variables"] == {"id": "y"}


def test_query_raises_on_transport_failure() -> None:
    client, _ = _client(always(FakeResponse(status=404, text="Not Found")))
    with pytest.raises(RequestError):
        client.query({"query": "{ exchanges { exchangeSymbol } }"})


def test_currencies_filter_mapping_and_kwargs() -> None:
    rows = [{"currencySymbol": "BTC", "currencyName": "Bitcoin", "isActive": True}]
    client, session = _client(always(envelope({"currencies": rows})))

    result = client.currencies({"currencySymbol": "BTC"})
    assert result[0].currency_symbol == "BTC"
    assert result[0].currency_name == "Bitcoin"
    assert result[0].is_active is True

    client.currencies(currency_name="Bit%", is_active=False)
    assert session.calls[0]["json"]["variables"] == {"currencySymbol": "BTC"}
    assert session.calls[1]["json"]["variables"] == {"currencyName": "Bit%", "isActive": False}


def test_unknown_filter_is_rejected_before_request() -> None:
    client, session = _client(always(envelope({"currencies": []})))
    with pytest.raises(ValidationError):
        client.currencies({"symbol": "BTC"})
    with pytest.raises(ValidationError):
        client.markets(exchange="Binance")
    assert session.calls == []


def test_exchanges() -> None:
    rows = [
        {"exchangeSymbol": "Binance", "exchangeName": "Binance", "isActive": True},
        {"exchangeSymbol": "CoinbasePro", "exchangeName": "Coinbase Pro", "isActive": True},
    ]
    client, _ = _client(always(envelope({"exchanges": rows})))
    binance = next(e for e in client.exchanges() if e.exchange_symbol == "Binance")
    assert binance.exchange_name == "Binance"
    assert binance.is_active is True


def test_markets_option_filter() -> None:
    put = dict(LEDGERX_CALL, id="ledgerx_put", optionType="Put")
    client, session = _client(always(envelope({"markets": [put]})))
    result = client.markets(
        {"marketStatus": MarketStatus.ACTIVE, "marketType": "Option"},
        option_type=OptionType.PUT,
    )
    query = session.calls[0]["json"]["query"]
    assert "marketStatus: { _eq: Active }" in query
    assert "marketType: { _eq: Option }" in query
    assert "optionType: { _eq: Put }" in query
    assert all(m.market_type is MarketType.OPTION and m.option_type is OptionType.PUT for m in result)


def test_markets_bad_enum_rejected_before_request() -> None:
    client, session = _client(always(envelope({"markets": []})))
    with pytest.raises(ValidationError):
        client.markets(market_type="Perpetual")
    assert session.calls == []


def test_market_when_exists() -> None:
    client, session = _client(always(envelope({"market": COINBASE_BTC_USD})))
    market = client.market("coinbasepro_btc_usd")
    assert market.id == "coinbasepro_btc_usd"
    assert market.market_symbol == "CoinbasePro:BTC/USD"
    assert market.market_type == "Spot"
    assert market.market_status == "Active"
    assert market.exchange_symbol == "CoinbasePro"
    assert market.base_symbol == "BTC"
    assert market.quote_symbol == "USD"
    assert market.remote_id == "BTC-USD"
    assert session.calls[0]["json"]["variables"] == {"id": "coinbasepro_btc_usd"}


def test_market_with_option_data() -> None:
    client, _ = _client(always(envelope({"market": LEDGERX_CALL})))
    market = client.market("ledgerx_btc_usd_20925827")
    assert market.expiry_date == "2020-12-18"
    assert market.option_type == "Call"
    assert market.option_strike == "5000.00000000"


def test_market_when_missing_raises_not_found() -> None:
    client, _ = _client(always(envelope({"market": None})))
    with pytest.raises(NotFoundError):
        client.market("coinbaser_btc_usd")


def test_candles_hourly_day() -> None:
    client, session = _client(always(envelope({"market": {"ohlcv": hourly_candles()}})))
    result = client.candles("coinbasepro_btc_usd", START, END, CandlePeriod._1h)
    assert len(result) == 24
    assert result[0] == ("1577836800", "7165.72000000", "7165.72000000", "7136.05000000", "7150.35000000", "250.84981195")
    stamps = [int(row[0]) for row in result]
    assert stamps == sorted(stamps)
    assert "resolution: _1h" in session.calls[0]["json"]["query"]


def test_candles_invalid_market_rejects() -> None:
    client, _ = _client(always(envelope({"market": None})))
    with pytest.raises(RequestError):
        client.candles("coinbaser_btc_usd", START, END, CandlePeriod._1h)


@pytest.mark.parametrize(
    "start,end,period",
    [
        ("2020-01-01", END, CandlePeriod._1h),
        (START, "2020-01-02", CandlePeriod._1h),
        (START, END, "_1s"),
    ],
)
def test_candles_invalid_arguments_fail_before_request(start: str, end: str, period: Any) -> None:
    client, session = _client(always(envelope({"market": {"ohlcv": []}})))
    with pytest.raises(ValidationError):
        client.candles("coinbasepro_btc_usd", start, end, period)
    assert session.calls == []


def test_trades() -> None:
    rows = [
        {"id": "80350317", "unix": 1577836800222, "side": "Ask", "price": "7165.72000000", "amount": "0.01392747"},
        {"id": "80350318", "unix": 1577836801005, "side": "Bid", "price": "7165.73000000", "amount": "0.10000000"},
    ]
    client, session = _client(always(envelope({"market": {"trades": rows}})))
    result = client.trades("coinbasepro_btc_usd", START, "2020-01-01T00:01:00.000Z")
    assert result[0].id == "80350317"
    assert result[0].unix == 1577836800222
    assert result[0].side is TradeSide.ASK
    assert result[0].price == "7165.72000000"
    assert result[0].amount == "0.01392747"
    assert [t.unix for t in result] == sorted(t.unix for t in result)
    assert session.calls[0]["json"]["variables"]["end"] == "2020-01-01T00:01:00.000Z"


@pytest.mark.parametrize("start,end", [("2020-01-01", "2020-01-01T00:01:00.000Z"), (START, "2020-01-01")])
def test_trades_invalid_range_fails_before_request(start: str, end: str) -> None:
    client, session = _client(always(envelope({"market": {"trades": []}})))
    with pytest.raises(ValidationError):
        client.trades("coinbasepro_btc_usd", start, end)
    assert session.calls == []


def test_trades_graphql_error_raises() -> None:
    client, _ = _client(always(envelope(None, errors=[{"message": "Invalid start"}])))
    with pytest.raises(RequestError, match="Invalid start"):
        client.trades("coinbasepro_btc_usd", START, END)


def test_context_manager_leaves_caller_session_open() -> None:
    session = FakeSession(always(envelope({"exchanges": []})))
    with BlocktapClient(session=session) as client:
        client.exchanges()
    assert session.closed is False


def test_from_env_reads_key_and_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BLOCKTAP_KEY", "env-key")
    monkeypatch.setenv("BLOCKTAP_URL", "https://staging.example/graphql")
    monkeypatch.delenv("BLOCKTAP_CONFIG", raising=False)
    session = FakeSession(always(envelope({"exchanges": []})))
    client = BlocktapClient.from_env(session=session)
    client.exchanges()
    assert session.calls[0]["url"] == "https://staging.example/graphql"
    assert session.calls[0]["headers"]["Authorization"] == "env-key"


def _by_operation(payload: Dict[str, Any]) -> FakeResponse:
    if payload["query"].startswith("query market("):
        return envelope({"market": COINBASE_BTC_USD})
    if payload["query"].startswith("query candles("):
        return envelope({"market": {"ohlcv": hourly_candles()}})
    return envelope({"exchanges": []})


def test_async_client_runs_calls_concurrently() -> None:
    session = FakeSession(_by_operation)

    async def _main():
        async with AsyncBlocktapClient("secret", session=session) as client:
            return await asyncio.gather(
                client.market("coinbasepro_btc_usd"),
                client.candles("coinbasepro_btc_usd", START, END, "1h"),
                client.exchanges(),
            )

    market, candles, exchanges = asyncio.run(_main())
    assert market.remote_id == "BTC-USD"
    assert len(candles) == 24
    assert exchanges == []
    assert len(session.calls) == 3


def test_async_client_validation_and_raw_query() -> None:
    session = FakeSession(always(envelope(None, errors=[{"message": "bad"}])))
    client = AsyncBlocktapClient(session=session)

    result = asyncio.run(client.query({"query": "query price { market {} }"}))
    assert result.error_messages() == ["bad"]

    with pytest.raises(ValidationError):
        asyncio.run(client.trades("coinbasepro_btc_usd", "2020-01-01", END))
    with pytest.raises(NotFoundError):
        session_missing = FakeSession(always(envelope({"market": None})))
        asyncio.run(AsyncBlocktapClient(session=session_missing).market("coinbaser_btc_usd"))
    assert len(session.calls) == 1

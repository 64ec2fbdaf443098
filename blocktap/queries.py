"""GraphQL documents for the typed client methods.

Filters are rendered only for supplied arguments so server defaults apply to
the rest. Plain values travel as declared variables; enum values are written
inline as bare GraphQL enum literals (``marketType: { _eq: Option }``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from blocktap.types import CandlePeriod, MarketStatus, MarketType, OptionType, QueryRequest


CURRENCY_FIELDS: Sequence[str] = ("currencySymbol", "currencyName", "isActive")
EXCHANGE_FIELDS: Sequence[str] = ("exchangeSymbol", "exchangeName", "isActive")
MARKET_FIELDS: Sequence[str] = (
    "id",
    "marketSymbol",
    "marketType",
    "marketStatus",
    "exchangeSymbol",
    "baseSymbol",
    "quoteSymbol",
    "remoteId",
    "expiryDate",
    "optionType",
    "optionStrike",
)
TRADE_FIELDS: Sequence[str] = ("id", "unix", "side", "price", "amount")


@dataclass
class _Filter:
    var_defs: List[str] = field(default_factory=list)
    clauses: List[str] = field(default_factory=list)
    variables: Dict[str, Any] = field(default_factory=dict)

    def variable(self, name: str, op: str, gql_type: str, value: Any) -> None:
        if value is None:
            return
        self.var_defs.append(f"${name}: {gql_type}")
        self.clauses.append(f"{name}: {{ {op}: ${name} }}")
        self.variables[name] = value

    def enum(self, name: str, value: Optional[Enum]) -> None:
        if value is None:
            return
        self.clauses.append(f"{name}: {{ _eq: {value.value} }}")

    def arguments(self) -> str:
        if not self.clauses:
            return ""
        return "(filter: { " + ", ".join(self.clauses) + " })"

    def signature(self) -> str:
        if not self.var_defs:
            return ""
        return "(" + ", ".join(self.var_defs) + ")"


def _selection(fields: Sequence[str], indent: str) -> str:
    return "\n".join(f"{indent}{name}" for name in fields)


def _list_query(name: str, flt: _Filter, fields: Sequence[str]) -> QueryRequest:
    document = (
        f"query {name}{flt.signature()} {{\n"
        f"  {name}{flt.arguments()} {{\n"
        f"{_selection(fields, '    ')}\n"
        f"  }}\n"
        f"}}\n"
    )
    return QueryRequest(query=document, variables=flt.variables, operation_name=name)


def currencies_query(
    currency_symbol: Optional[str] = None,
    currency_name: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> QueryRequest:
    # symbol/name use _like so "%" wildcards are honoured server-side
    flt = _Filter()
    flt.variable("currencySymbol", "_like", "String", currency_symbol)
    flt.variable("currencyName", "_like", "String", currency_name)
    flt.variable("isActive", "_eq", "Boolean", is_active)
    return _list_query("currencies", flt, CURRENCY_FIELDS)


def exchanges_query() -> QueryRequest:
    return _list_query("exchanges", _Filter(), EXCHANGE_FIELDS)


def markets_query(
    exchange_symbol: Optional[str] = None,
    base_symbol: Optional[str] = None,
    quote_symbol: Optional[str] = None,
    market_status: Optional[MarketStatus] = None,
    market_type: Optional[MarketType] = None,
    option_type: Optional[OptionType] = None,
) -> QueryRequest:
    flt = _Filter()
    flt.variable("exchangeSymbol", "_eq", "String", exchange_symbol)
    flt.variable("baseSymbol", "_eq", "String", base_symbol)
    flt.variable("quoteSymbol", "_eq", "String", quote_symbol)
    flt.enum("marketStatus", market_status)
    flt.enum("marketType", market_type)
    flt.enum("optionType", option_type)
    return _list_query("markets", flt, MARKET_FIELDS)


def market_query(market_id: str) -> QueryRequest:
    document = (
        "query market($id: String!) {\n"
        "  market(id: $id) {\n"
        f"{_selection(MARKET_FIELDS, '    ')}\n"
        "  }\n"
        "}\n"
    )
    return QueryRequest(query=document, variables={"id": market_id}, operation_name="market")


def candles_query(market_id: str, start: str, end: str, period: CandlePeriod) -> QueryRequest:
    document = (
        "query candles($id: String!, $start: String!, $end: String!) {\n"
        "  market(id: $id) {\n"
        f"    ohlcv(resolution: {period.value}, start: $start, end: $end)\n"
        "  }\n"
        "}\n"
    )
    return QueryRequest(
        query=document,
        variables={"id": market_id, "start": start, "end": end},
        operation_name="candles",
    )


def trades_query(market_id: str, start: str, end: str) -> QueryRequest:
    document = (
        "query trades($id: String!, $start: String!, $end: String!) {\n"
        "  market(id: $id) {\n"
        "    trades(start: $start, end: $end) {\n"
        f"{_selection(TRADE_FIELDS, '      ')}\n"
        "    }\n"
        "  }\n"
        "}\n"
    )
    return QueryRequest(
        query=document,
        variables={"id": market_id, "start": start, "end": end},
        operation_name="trades",
    )

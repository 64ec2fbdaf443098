from __future__ import annotations

import logging
import os
from typing import Optional

from blocktap.client import BlocktapClient
from blocktap.errors import RequestError
from blocktap.logging_config import setup_logging


log = logging.getLogger("blocktap.smoke")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def main() -> None:
    market_id = _env("MARKET_ID", "coinbasepro_btc_usd")
    start = _env("START", "2020-01-01T00:00:00.000Z")
    end = _env("END", "2020-01-02T00:00:00.000Z")
    period = _env("PERIOD", "_1h")
    setup_logging(level=_env("LOG_LEVEL", "INFO"), log_dir=_env("LOG_DIR"))

    with BlocktapClient.from_env() as client:
        if not client.config.authenticated:
            log.warning("BLOCKTAP_KEY not set; restricted fields will come back null")
        try:
            market = client.market(market_id)
            candles = client.candles(market_id, start, end, period)
        except RequestError as exc:
            raise SystemExit(f"Smoke check failed: {exc}") from exc

    log.info("market %s (%s, %s)", market.market_symbol, market.market_type.value, market.market_status.value)
    if candles is None:
        log.info("ohlcv withheld for this key")
        return
    if not candles:
        raise SystemExit("No candles returned")
    log.info("candles: %d  first ts: %s  last ts: %s", len(candles), candles[0][0], candles[-1][0])


if __name__ == "__main__":
    main()

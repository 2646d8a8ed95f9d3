from __future__ import annotations

from typing import Any, Optional

import requests

from ticker_gateway.errors import FetchError
from ticker_gateway.schemas.ticker import QuoteRecord, find_duplicate_symbols
from ticker_gateway.utils.logger import get_logger

log = get_logger(__name__)


def _to_float(value: Any, *, field_name: str) -> float:
    # missing keys decode as zero; strings are not coerced
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"invalid numeric value for {field_name}: {value!r}")
    return float(value)


def parse_ticker(item: Any) -> QuoteRecord:
    """Decode one upstream ticker object into a QuoteRecord."""
    if not isinstance(item, dict):
        raise ValueError("ticker entry must be an object")

    symbol = item.get("symbol")
    if not isinstance(symbol, str) or not symbol:
        raise ValueError(f"missing symbol in ticker entry: {item!r}")

    return QuoteRecord(
        symbol=symbol,
        price=_to_float(item.get("price_24h"), field_name="price_24h"),
        volume=_to_float(item.get("volume_24h"), field_name="volume_24h"),
        last_trade=_to_float(item.get("last_trade_price"), field_name="last_trade_price"),
    )


class TickerSourceClient:
    """Single-attempt client for the upstream tickers endpoint."""

    def __init__(
        self,
        url: str,
        expected_count: int,
        *,
        timeout: float = 10.0,
        session: Optional[Any] = None,
    ) -> None:
        if expected_count < 1:
            raise ValueError("expected_count must be positive")
        self.url = url
        self.expected_count = expected_count
        self.timeout = timeout
        self.session = session or requests

    def fetch(self) -> list[QuoteRecord]:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"request to {self.url} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError("response body is not valid JSON") from exc

        if not isinstance(payload, list):
            raise FetchError(f"expected JSON array, got {type(payload).__name__}")
        if len(payload) != self.expected_count:
            raise FetchError(
                f"expected {self.expected_count} tickers, got {len(payload)}"
            )

        try:
            records = [parse_ticker(item) for item in payload]
        except ValueError as exc:
            raise FetchError(f"ticker decode failed: {exc}") from exc

        duplicates = find_duplicate_symbols(records)
        if duplicates:
            raise FetchError(f"duplicate symbols in batch: {','.join(duplicates)}")

        log.debug("[SOURCE][fetch_ok] url=%s count=%d", self.url, len(records))
        return records

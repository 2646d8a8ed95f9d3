from __future__ import annotations

from ticker_gateway.schemas.ticker import TickerData
from ticker_gateway.services.ticker_store import TickerStore


class TickerQueryService:
    """Read-only view of the current snapshot, keyed by symbol."""

    def __init__(self, *, ticker_store: TickerStore) -> None:
        self.ticker_store = ticker_store

    def snapshot(self) -> dict[str, dict[str, float]]:
        records = self.ticker_store.read_all()
        return {
            r.symbol: TickerData(price=r.price, volume=r.volume, last_trade=r.last_trade).model_dump()
            for r in records
        }

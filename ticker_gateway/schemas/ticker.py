from pydantic import BaseModel, Field


class QuoteRecord(BaseModel):
    symbol: str = Field(min_length=1)
    price: float
    volume: float
    last_trade: float


class TickerData(BaseModel):
    price: float
    volume: float
    last_trade: float


def find_duplicate_symbols(records: list[QuoteRecord]) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for record in records:
        if record.symbol in seen and record.symbol not in duplicates:
            duplicates.append(record.symbol)
        seen.add(record.symbol)
    return duplicates

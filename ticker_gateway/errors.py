from __future__ import annotations


class TickerGatewayError(Exception):
    """Base error for the ticker gateway."""


class FetchError(TickerGatewayError):
    """Upstream batch could not be fetched or decoded; no partial result."""


class TickerStoreError(TickerGatewayError):
    pass


class StoreInitError(TickerStoreError):
    pass


class BootstrapError(TickerStoreError):
    pass


class SnapshotSizeError(TickerStoreError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"SNAPSHOT_SIZE_MISMATCH expected={expected} actual={actual}")
        self.expected = expected
        self.actual = actual


class UnknownSymbolError(TickerStoreError):
    def __init__(self, symbols: list[str]) -> None:
        super().__init__(f"UNKNOWN_SYMBOLS {','.join(symbols)}")
        self.symbols = list(symbols)


class StorageIntegrityError(TickerStoreError):
    """Stored record count no longer matches the expected snapshot size."""


class DuplicateSymbolError(TickerStoreError):
    def __init__(self, symbols: list[str]) -> None:
        super().__init__(f"DUPLICATE_SYMBOLS {','.join(symbols)}")
        self.symbols = list(symbols)

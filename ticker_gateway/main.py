from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ticker_gateway.api.routes import router
from ticker_gateway.config.settings import Settings, get_settings
from ticker_gateway.errors import TickerGatewayError
from ticker_gateway.integrations.ticker_source import TickerSourceClient
from ticker_gateway.services.refresh_loop import RefreshLoop
from ticker_gateway.services.ticker_query import TickerQueryService
from ticker_gateway.services.ticker_store import TickerStore
from ticker_gateway.utils.logger import get_logger, setup_logger

log = get_logger(__name__)


def _ensure_components(app: FastAPI, settings: Settings) -> None:
    state = app.state
    if state.ticker_source is None:
        state.ticker_source = TickerSourceClient(
            settings.TICKERS_SOURCE_URL,
            settings.TICKERS_EXPECTED_COUNT,
            timeout=settings.TICKERS_FETCH_TIMEOUT_SEC,
        )
    if state.ticker_store is None:
        state.ticker_store = TickerStore(
            settings.TICKERS_DB_PATH,
            settings.TICKERS_EXPECTED_COUNT,
            strict_replace=settings.TICKERS_STRICT_REPLACE,
        )
    if state.refresh_loop is None:
        state.refresh_loop = RefreshLoop(
            fetcher=state.ticker_source,
            store=state.ticker_store,
            period_sec=settings.TICKERS_UPDATE_PERIOD_SEC,
            # an in-flight cycle may be waiting on the upstream GET
            stop_timeout_sec=settings.TICKERS_FETCH_TIMEOUT_SEC + 1.0,
        )
    if state.ticker_query_service is None:
        state.ticker_query_service = TickerQueryService(ticker_store=state.ticker_store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.get_settings()
    setup_logger(level=settings.LOG_LEVEL)
    _ensure_components(app, settings)

    # the snapshot must be complete before the first request is answered
    store = app.state.ticker_store
    try:
        store.initialize()
        store.bootstrap(app.state.ticker_source.fetch())
    except TickerGatewayError as exc:
        log.critical("[APP][startup_failed] error=%s", exc)
        raise

    refresh_loop = app.state.refresh_loop
    refresh_loop.start()
    try:
        yield
    finally:
        refresh_loop.stop()


app = FastAPI(title="Ticker Gateway", version="0.1.0", lifespan=lifespan)
app.include_router(router)

# NOTE: components are built lazily in lifespan so tests can swap them first.
app.state.get_settings = get_settings
app.state.ticker_source = None
app.state.ticker_store = None
app.state.refresh_loop = None
app.state.ticker_query_service = None


def run() -> None:
    settings = get_settings()
    setup_logger(level=settings.LOG_LEVEL)
    log.info("[APP][server_start] url=http://127.0.0.1:%d/", settings.HTTP_PORT)
    uvicorn.run(app, host=settings.HTTP_HOST, port=settings.HTTP_PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()

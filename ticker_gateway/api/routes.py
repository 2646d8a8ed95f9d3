import sqlite3

from fastapi import APIRouter, HTTPException, Request

from ticker_gateway.errors import TickerStoreError
from ticker_gateway.utils.logger import get_logger

router = APIRouter()

log = get_logger(__name__)


@router.get('/')
def get_tickers(request: Request):
    service = request.app.state.ticker_query_service
    try:
        return service.snapshot()
    except (TickerStoreError, sqlite3.Error) as exc:
        log.error('[API][snapshot_unavailable] error=%s', exc)
        raise HTTPException(status_code=500, detail='SNAPSHOT_UNAVAILABLE') from exc

from __future__ import annotations

import sqlite3
import threading
import time

from ticker_gateway.errors import FetchError, TickerGatewayError
from ticker_gateway.utils.logger import get_logger

log = get_logger(__name__)


class RefreshLoop:
    """Background fetch-then-replace worker.

    The next wait starts only after the previous cycle finished, so two
    cycles never overlap.
    """

    def __init__(
        self,
        *,
        fetcher,
        store,
        period_sec: float = 30.0,
        stop_timeout_sec: float = 1.0,
    ) -> None:
        self.fetcher = fetcher
        self.store = store
        self.period_sec = period_sec
        self.stop_timeout_sec = stop_timeout_sec
        self.state = "IDLE"
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._metrics = {
            "runs": 0,
            "succeeded": 0,
            "failed": 0,
            "unmatched_symbols": 0,
        }
        self.last_error: str | None = None
        self.last_success_ts: int | None = None

    def _fail(self, stage: str, exc: Exception) -> dict:
        self._metrics["failed"] += 1
        self.last_error = f"{stage}: {exc}"
        log.error("[REFRESH][cycle_failed] stage=%s error=%s", stage, exc)
        return {"ok": False, "stage": stage, "error": str(exc)}

    def refresh_once(self) -> dict:
        self.state = "REFRESHING"
        self._metrics["runs"] += 1
        log.info("[REFRESH][cycle_start] run=%d", self._metrics["runs"])
        try:
            try:
                records = self.fetcher.fetch()
            except FetchError as exc:
                return self._fail("fetch", exc)

            try:
                result = self.store.replace(records)
            except (TickerGatewayError, sqlite3.Error) as exc:
                return self._fail("replace", exc)

            self._metrics["succeeded"] += 1
            self._metrics["unmatched_symbols"] += len(result.unmatched)
            self.last_error = None
            self.last_success_ts = int(time.time())
            log.info(
                "[REFRESH][cycle_ok] updated=%d unmatched=%d",
                result.updated,
                len(result.unmatched),
            )
            return {
                "ok": True,
                "updated": result.updated,
                "unmatched": list(result.unmatched),
            }
        finally:
            self.state = "IDLE"

    def _loop(self) -> None:
        while not self._stop_event.wait(self.period_sec):
            try:
                self.refresh_once()
            except Exception:
                log.exception("[REFRESH][cycle_crashed]")

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="ticker-refresh-worker")
        self._thread.start()
        log.info("[REFRESH][worker_start] period_sec=%s", self.period_sec)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=self.stop_timeout_sec)
        if self._thread and self._thread.is_alive():
            log.warning(
                "[REFRESH][worker_stop_timeout] timeout_sec=%s state=%s",
                self.stop_timeout_sec,
                self.state,
            )
            return
        log.info("[REFRESH][worker_stop]")

    def metrics(self) -> dict:
        return {
            **self._metrics,
            "state": self.state,
            "last_error": self.last_error,
            "last_success_ts": self.last_success_ts,
        }

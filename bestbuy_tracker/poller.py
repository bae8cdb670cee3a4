"""Interactive polling controller.

Owns the dashboard's tracked set, the latest availability snapshot and the
auto-refresh countdown.  Nothing else writes them.

States: IDLE -> LOADING -> READY | FAILED, plus an auto-refresh on/off flag.
A failed fetch keeps the last good snapshot and records the error next to it.
Fetches are never cancelled or sequenced: whichever completes last wins.
"""

from __future__ import annotations

import datetime as _dt
import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from . import config
from .models import AvailabilityRecord, TrackedSet
from .utils import TrackerError

logger = logging.getLogger(__name__)

Fetcher = Callable[[TrackedSet], List[AvailabilityRecord]]
Dispatcher = Callable[[Callable[[], None]], None]


class PollState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class Snapshot:
    """Read-only view handed to the renderer."""

    state: PollState
    records: Sequence[AvailabilityRecord]
    error: Optional[str]
    last_updated: Optional[_dt.datetime]
    auto_refresh: bool
    remaining_seconds: int
    interval_seconds: int
    tracked: TrackedSet
    in_flight: int = 0


def thread_dispatcher(job: Callable[[], None]) -> None:
    threading.Thread(target=job, name="inventory-fetch", daemon=True).start()


def inline_dispatcher(job: Callable[[], None]) -> None:
    job()


@dataclass
class PollingController:
    fetcher: Fetcher
    tracked: TrackedSet
    interval_seconds: int = 30
    auto_refresh: bool = True
    dispatch: Dispatcher = thread_dispatcher
    clock: Callable[[], _dt.datetime] = field(default=_dt.datetime.now)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self.interval_seconds = self._clamp(self.interval_seconds)
        self.state = PollState.IDLE
        self.records: List[AvailabilityRecord] = []
        self.error: Optional[str] = None
        self.last_updated: Optional[_dt.datetime] = None
        self.remaining_seconds = self.interval_seconds if self.auto_refresh else 0
        self.fetch_count = 0
        self._in_flight = 0

    @staticmethod
    def _clamp(interval: int) -> int:
        return max(int(interval), config.MIN_REFRESH_INTERVAL_SECONDS)

    # ---- fetching -------------------------------------------------------------

    def refresh(self) -> None:
        """Start a fetch. Safe to call while another one is pending."""
        with self._lock:
            self.state = PollState.LOADING
            self.fetch_count += 1
            self._in_flight += 1
            tracked = TrackedSet(
                skus=list(self.tracked.skus),
                postal_code=self.tracked.postal_code,
                locations=list(self.tracked.locations),
            )
        self.dispatch(lambda: self._run_fetch(tracked))

    def _run_fetch(self, tracked: TrackedSet) -> None:
        try:
            records = self.fetcher(tracked)
        except TrackerError as e:
            logger.warning("Inventory fetch failed: %s", e)
            self._complete(error=str(e) or "Failed to fetch data")
        except Exception as e:
            logger.exception("Unexpected error during inventory fetch")
            self._complete(error=str(e) or "Failed to fetch data")
        else:
            self._complete(records=records)

    def _complete(self, records: Optional[List[AvailabilityRecord]] = None, error: Optional[str] = None) -> None:
        with self._lock:
            self._in_flight = max(0, self._in_flight - 1)
            if error is not None:
                # Keep the previous snapshot on screen.
                self.state = PollState.FAILED
                self.error = error
                return
            self.records = list(records or [])
            self.error = None
            self.last_updated = self.clock()
            self.state = PollState.READY

    # ---- countdown ------------------------------------------------------------

    def tick(self) -> bool:
        """Advance the countdown by one second. Returns True if it fired a fetch."""
        with self._lock:
            if not self.auto_refresh:
                return False
            if self.remaining_seconds <= 1:
                self.remaining_seconds = self.interval_seconds
                fire = True
            else:
                self.remaining_seconds -= 1
                fire = False
        if fire:
            logger.debug("Countdown elapsed; refreshing")
            self.refresh()
        return fire

    def set_auto_refresh(self, enabled: bool) -> None:
        with self._lock:
            self.auto_refresh = enabled
            self.remaining_seconds = self.interval_seconds if enabled else 0
        logger.info("Auto-refresh %s", "enabled" if enabled else "paused")

    def toggle_auto_refresh(self) -> bool:
        self.set_auto_refresh(not self.auto_refresh)
        return self.auto_refresh

    def set_interval(self, seconds: int) -> None:
        with self._lock:
            self.interval_seconds = self._clamp(seconds)
            if self.auto_refresh:
                self.remaining_seconds = self.interval_seconds

    # ---- configuration --------------------------------------------------------

    def update_settings(self, skus: Optional[str] = None, postal_code: Optional[str] = None) -> None:
        """Apply settings-form edits. Takes effect on the next fetch."""
        with self._lock:
            if skus is not None:
                self.tracked.skus = TrackedSet.parse_skus(skus)
            if postal_code is not None:
                self.tracked.postal_code = postal_code.strip()

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot(
                state=self.state,
                records=tuple(self.records),
                error=self.error,
                last_updated=self.last_updated,
                auto_refresh=self.auto_refresh,
                remaining_seconds=self.remaining_seconds,
                interval_seconds=self.interval_seconds,
                tracked=TrackedSet(
                    skus=list(self.tracked.skus),
                    postal_code=self.tracked.postal_code,
                    locations=list(self.tracked.locations),
                ),
                in_flight=self._in_flight,
            )


def ticker_loop(controller: PollingController, stop: threading.Event, period: float = 1.0) -> None:
    """Drive the countdown once per `period` seconds until `stop` is set."""
    logger.info("Starting countdown ticker (interval=%ss)", controller.interval_seconds)
    while not stop.is_set():
        try:
            controller.tick()
        except Exception:
            logger.exception("Error in ticker_loop")
        stop.wait(period)


def start_ticker(controller: PollingController, period: float = 1.0) -> tuple[threading.Thread, threading.Event]:
    stop = threading.Event()
    t = threading.Thread(target=ticker_loop, args=(controller, stop, period), name="countdown", daemon=True)
    t.start()
    return t, stop


__all__ = [
    "PollState",
    "Snapshot",
    "PollingController",
    "thread_dispatcher",
    "inline_dispatcher",
    "ticker_loop",
    "start_ticker",
]

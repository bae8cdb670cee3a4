from __future__ import annotations

import logging
import time
from typing import List

from . import config, inventory
from .dashboard import DashboardServer
from .models import AvailabilityRecord, TrackedSet
from .poller import PollingController, start_ticker
from .utils import setup_logging


def fetch_tracked(tracked: TrackedSet) -> List[AvailabilityRecord]:
    """Dashboard fetcher: same query as the browser client, proxy included."""
    proxy = config.CORS_PROXY_PREFIX if config.USE_CORS_PROXY else None
    return inventory.fetch_inventory(
        tracked.skus, tracked.postal_code, tracked.locations, proxy_prefix=proxy
    )


def build_controller() -> PollingController:
    tracked = TrackedSet(
        skus=list(config.SKUS),
        postal_code=config.POSTAL_CODE,
        locations=list(config.LOCATIONS),
    )
    return PollingController(
        fetcher=fetch_tracked,
        tracked=tracked,
        interval_seconds=config.REFRESH_INTERVAL_SECONDS,
        auto_refresh=config.AUTO_REFRESH,
    )


def main() -> None:
    """Initialise the controller, serve the dashboard and run the countdown."""
    setup_logging()
    logger = logging.getLogger(__name__)

    controller = build_controller()
    logger.info(
        "Tracking %d SKUs near %s (refresh every %ss, auto-refresh %s)",
        len(controller.tracked.skus),
        controller.tracked.postal_code,
        controller.interval_seconds,
        "on" if controller.auto_refresh else "off",
    )

    server = DashboardServer(controller)
    server.start()

    # Initial load, then the countdown takes over.
    controller.refresh()
    t_tick, stop = start_ticker(controller)

    try:
        while t_tick.is_alive():
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down…")
    finally:
        stop.set()
        server.stop()


if __name__ == "__main__":
    main()

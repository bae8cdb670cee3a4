#!/usr/bin/env python3
"""
Unattended stock check.

One linear run per invocation: fetch availability, evaluate it, and
e-mail an alert when anything is in stock.  Three entry points wrap the
same run and differ only in how the outcome reaches the caller:

- `main()`                 direct execution (cron, CI); exit code 0/1
- `handle_http_trigger()`  HTTP function; 200 / 403 / 500 (see TriggerServer)
- `handle_event()`         queue/event function; re-raises on failure

Every run with stock re-sends the alert; there is no memory between runs.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from dataclasses import asdict, dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from . import config, emailer, inventory
from .availability import evaluate_batch
from .models import AvailabilityRecord, Pickup, Shipping, StoreStock
from .utils import DeliveryError, ParseError, TransportError, setup_logging

logger = logging.getLogger(__name__)

TEST_SKU = "TEST-SKU"

# Errors that mean the inventory read itself failed.
CHECK_ERRORS = (TransportError, ParseError)


@dataclass
class CheckResult:
    success: bool
    items: int
    sent: bool = False


def synthetic_record() -> AvailabilityRecord:
    """An always-available record used to exercise the mail path."""
    return AvailabilityRecord(
        sku=TEST_SKU,
        shipping=Shipping(status="InStock", purchasable=True, quantity_remaining=1),
        pickup=Pickup(
            status="InStock",
            purchasable=True,
            locations=(
                StoreStock(
                    name="Test Store",
                    location_key="0",
                    quantity_on_hand=1,
                    has_inventory=True,
                    reservable=True,
                ),
            ),
        ),
    )


def run_check(test_mode: Optional[bool] = None, session=None) -> CheckResult:
    """Fetch, evaluate and (if anything is in stock) send one alert.

    Raises TransportError / ParseError when the inventory read fails.
    Delivery problems are logged and never change the result.
    """
    if test_mode is None:
        test_mode = config.TEST_MODE

    skus: List[str] = list(config.SKUS)
    logger.info("Starting inventory check for SKUs: %s", ", ".join(skus))

    # No CORS proxy outside the browser.
    records = inventory.fetch_inventory(
        skus, config.POSTAL_CODE, config.LOCATIONS, session=session
    )
    if test_mode:
        logger.info("Test mode: injecting synthetic record %s", TEST_SKU)
        records = records + [synthetic_record()]

    available = [d for d in evaluate_batch(records) if d.any_available]
    if not available:
        logger.info("No stock found for any SKU.")
        return CheckResult(success=True, items=0)

    logger.info("Stock found for %d SKU(s): %s", len(available), ", ".join(d.sku for d in available))
    msg = emailer.compose_alert(records)
    sent = False
    if msg is not None:
        try:
            sent = emailer.send_alert(msg)
        except DeliveryError:
            logger.exception("Alert delivery failed; inventory check still succeeded")
    return CheckResult(success=True, items=len(available), sent=sent)


# ---- Entry point: direct execution ------------------------------------------

def main() -> int:
    setup_logging()
    try:
        result = run_check()
    except CHECK_ERRORS as e:
        logger.error("Error fetching inventory: %s", e)
        return 1
    logger.info("Check complete: items=%d sent=%s", result.items, result.sent)
    return 0


# ---- Entry point: HTTP trigger -----------------------------------------------

def handle_http_trigger(query: Mapping[str, Any], test_mode: Optional[bool] = None) -> Tuple[int, Dict[str, Any]]:
    """Return (status_code, json_payload) for an HTTP-triggered check.

    `query` maps parameter names to a value or a list of values (parse_qs).
    """
    secret = config.TRIGGER_SECRET
    if secret:
        provided = query.get("secret")
        if isinstance(provided, (list, tuple)):
            provided = provided[0] if provided else None
        if provided != secret:
            logger.warning("Rejected HTTP trigger: secret mismatch")
            return 403, {"success": False, "error": "Forbidden"}

    try:
        result = run_check(test_mode=test_mode)
    except CHECK_ERRORS as e:
        logger.error("HTTP-triggered check failed: %s", e)
        return 500, {"success": False, "error": str(e)}
    return 200, {"success": result.success, "items": result.items}


class TriggerHandler(BaseHTTPRequestHandler):
    """GET /check?secret=... runs one check; GET /health answers liveness."""

    def log_message(self, format, *args):
        """Override to use Python logging instead of stderr."""
        logger.info("%s - %s", self.address_string(), format % args)

    def do_GET(self):
        try:
            parsed = urlparse(self.path)
            if parsed.path == "/check":
                status, payload = handle_http_trigger(parse_qs(parsed.query))
                self._send_json(status, payload)
            elif parsed.path in ("/", "/health"):
                self._send_json(200, {"status": "running", "timestamp": time.time()})
            else:
                self._send_json(404, {"error": "Not Found"})
        except Exception as e:
            logger.exception("Error handling trigger request")
            self._send_json(500, {"success": False, "error": str(e)})

    def _send_json(self, status: int, payload: Dict[str, Any]) -> None:
        body = json.dumps(payload).encode()
        self.send_response(status)
        self.send_header("Content-type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class TriggerServer:
    """Small HTTP front end for schedulers that can only call a URL."""

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None):
        self.host = host or config.TRIGGER_HOST
        self.port = config.TRIGGER_PORT if port is None else port
        self.server: Optional[HTTPServer] = None
        self.server_thread: Optional[threading.Thread] = None
        self.running = False

    def start(self) -> str:
        """Start the server and return the base URL."""
        if self.running:
            return f"http://{self.host}:{self.port}"
        self.server = HTTPServer((self.host, self.port), TriggerHandler)
        self.port = self.server.server_address[1]
        self.server_thread = threading.Thread(target=self.server.serve_forever, name="trigger-http", daemon=True)
        self.server_thread.start()
        self.running = True
        base_url = f"http://{self.host}:{self.port}"
        logger.info("Check trigger listening at %s/check", base_url)
        return base_url

    def stop(self) -> None:
        if self.server and self.running:
            self.server.shutdown()
            self.server.server_close()
            self.running = False
            logger.info("Check trigger stopped")


def serve() -> None:
    """Run the HTTP trigger in the foreground until interrupted."""
    setup_logging()
    server = TriggerServer()
    server.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopping trigger server…")
    finally:
        server.stop()


# ---- Entry point: queue / event trigger ---------------------------------------

def handle_event(event: Any = None, context: Any = None) -> Dict[str, Any]:
    """Event-style handler returning {statusCode, body}.

    Failures propagate so the platform's own retry / dead-letter policy applies.
    """
    try:
        result = run_check()
    except CHECK_ERRORS:
        logger.exception("Event-triggered check failed")
        raise
    return {"statusCode": 200, "body": json.dumps(asdict(result))}


if __name__ == "__main__":
    sys.exit(main())

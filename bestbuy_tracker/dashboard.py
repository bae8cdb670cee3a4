#!/usr/bin/env python3
"""
Browser dashboard for the interactive poller.

Lightweight `http.server` front end over a PollingController.  The page is
rendered server-side from a controller snapshot and reloads itself so the
countdown stays current; buttons are plain links/forms.

Endpoints:
    /            dashboard page (?settings=1 opens the configuration panel)
    /refresh     manual refresh, then back to /
    /toggle      pause/resume auto-refresh
    /settings    POST (or GET) skus, postal_code, interval
    /report      redirect to a mailto: stock report
    /status      snapshot as JSON
    /health      liveness page
"""

from __future__ import annotations

import html
import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from . import config
from .availability import batch_has_stock, evaluate, stores_with_stock
from .models import AvailabilityRecord, status_label
from .poller import PollingController, Snapshot
from .report import build_mailto_report, dashboard_link

logger = logging.getLogger(__name__)

_STYLE = """
body { font-family: Arial, sans-serif; background: #030712; color: #e5e7eb; margin: 0; padding: 24px; }
a { color: #60a5fa; }
header { display: flex; justify-content: space-between; flex-wrap: wrap; gap: 12px;
         border-bottom: 1px solid #1f2937; padding-bottom: 16px; }
.btn { display: inline-block; padding: 8px 14px; border-radius: 8px; background: #1f2937;
       color: #d1d5db; text-decoration: none; border: 1px solid #374151; margin-left: 6px; }
.btn.primary { background: #2563eb; color: #fff; border-color: #2563eb; }
.banner { border-radius: 12px; padding: 14px; margin: 16px 0; }
.banner.ok { background: rgba(34,197,94,.1); border: 1px solid rgba(34,197,94,.3); color: #4ade80; }
.banner.err { background: rgba(239,68,68,.1); border: 1px solid rgba(239,68,68,.2); color: #f87171; }
.grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(260px, 1fr)); gap: 20px; }
.card { border: 1px solid #1f2937; border-radius: 12px; padding: 18px; background: rgba(17,24,39,.5); }
.card.live { border-color: #4b5563; background: #111827; }
.badge { display: inline-block; padding: 4px 10px; border-radius: 8px; margin: 4px 4px 0 0;
         font-size: 13px; border: 1px solid #374151; color: #6b7280; }
.badge.on { color: #4ade80; border-color: rgba(34,197,94,.5); background: rgba(34,197,94,.2); }
.muted { color: #6b7280; font-size: 12px; }
footer { text-align: center; margin-top: 40px; }
"""


def _badge(label: str, active: bool) -> str:
    return '<span class="badge{cls}">{label}: {state}</span>'.format(
        cls=" on" if active else "",
        label=label,
        state="Available" if active else "Unavailable",
    )


def render_card(record: AvailabilityRecord) -> str:
    decision = evaluate(record)
    sku = html.escape(record.sku)
    stores = stores_with_stock(record)

    store_items = "".join(
        "<li>{name} ({qty})</li>".format(
            name=html.escape(loc.name or loc.location_key), qty=loc.quantity_on_hand
        )
        for loc in stores
    )
    stores_html = (
        f"<p>Stores with stock:</p><ul>{store_items}</ul>" if stores else '<p class="muted">No stores with stock</p>'
    )

    return (
        '<div class="card{live}" data-sku="{sku}">'
        '<span class="muted">SKU</span>'
        '<h2><a href="{url}" target="_blank" rel="noopener noreferrer">{sku}</a></h2>'
        "<div>{ship}{pick}</div>"
        '<p class="muted">Online: {ship_status} (qty {qty}) &middot; In store: {pick_status}</p>'
        "{stores}"
        "</div>"
    ).format(
        live=" live" if decision.any_available else "",
        sku=sku,
        url=html.escape(dashboard_link(record.sku), quote=True),
        ship=_badge("Shipping", decision.shipping_available),
        pick=_badge("Pickup", decision.pickup_available),
        ship_status=html.escape(status_label(record.shipping.status)),
        qty=record.shipping.quantity_remaining,
        pick_status=html.escape(status_label(record.pickup.status)),
        stores=stores_html,
    )


def _render_settings(snap: Snapshot) -> str:
    return (
        '<form class="banner" method="post" action="/settings" style="border:1px solid #1f2937">'
        "<h3>Configuration</h3>"
        '<label>Monitored SKUs (comma separated)<br><input name="skus" size="50" value="{skus}"></label><br><br>'
        '<label>Postal Code<br><input name="postal_code" value="{postal}"></label><br><br>'
        '<label>Refresh Interval (seconds)<br><input name="interval" type="number" min="{min}" value="{interval}"></label><br><br>'
        '<button class="btn primary" type="submit">Save</button>'
        "</form>"
    ).format(
        skus=html.escape(", ".join(snap.tracked.skus), quote=True),
        postal=html.escape(snap.tracked.postal_code, quote=True),
        min=config.MIN_REFRESH_INTERVAL_SECONDS,
        interval=snap.interval_seconds,
    )


def render_page(snap: Snapshot, show_settings: bool = False) -> str:
    loading = snap.in_flight > 0
    if snap.auto_refresh:
        countdown = f"Next update: {snap.remaining_seconds}s"
    else:
        countdown = "Auto-refresh paused"

    parts: List[str] = []
    if batch_has_stock(snap.records):
        parts.append(
            '<div class="banner ok"><strong>Stock Detected!</strong> '
            "One or more items are currently available for shipping or pickup.</div>"
        )
    if show_settings:
        parts.append(_render_settings(snap))
    if snap.error:
        parts.append(
            '<div class="banner err"><strong>Unable to fetch inventory</strong>'
            "<p>{}</p>"
            '<p class="muted">Requests go through a CORS proxy; if the proxy is down or '
            "Best Buy blocks it, requests will fail.</p></div>".format(html.escape(snap.error))
        )

    if not snap.records and not loading and not snap.error:
        cards = '<p class="muted" style="text-align:center;padding:60px">No data loaded. Click Refresh.</p>'
    else:
        cards = "".join(render_card(r) for r in snap.records)

    last = snap.last_updated.strftime("%H:%M:%S") if snap.last_updated else "Never"
    # Keep the page live except while the settings form is being edited.
    refresh_meta = "" if show_settings else '<meta http-equiv="refresh" content="1">'

    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        "<title>BestBuy Tracker</title>{meta}<style>{style}</style></head><body>"
        "<header><div><h1>BestBuy Tracker</h1>"
        '<p class="muted">Postal Code: {postal} | Monitoring {count} SKUs</p></div>'
        "<div>"
        '<span class="muted">{countdown}</span>'
        '<a class="btn" href="/report">Email Report</a>'
        '<a class="btn" href="/toggle">{toggle}</a>'
        '<a class="btn primary" href="/refresh">{refresh}</a>'
        '<a class="btn" href="{settings_href}">Settings</a>'
        "</div></header>"
        "{parts}"
        '<div class="grid">{cards}</div>'
        '<footer class="muted"><p>Last updated: {last}</p>'
        "<p>Data retrieved from Best Buy Canada via Public API</p></footer>"
        "</body></html>"
    ).format(
        meta=refresh_meta,
        style=_STYLE,
        postal=html.escape(snap.tracked.postal_code),
        count=len(snap.tracked.skus),
        countdown=countdown,
        toggle="Pause Auto-Refresh" if snap.auto_refresh else "Start Auto-Refresh",
        refresh="Refreshing..." if loading else "Refresh Now",
        settings_href="/" if show_settings else "/?settings=1",
        parts="".join(parts),
        cards=cards,
        last=last,
    )


def snapshot_to_dict(snap: Snapshot) -> Dict[str, object]:
    return {
        "state": snap.state.value,
        "error": snap.error,
        "last_updated": snap.last_updated.isoformat() if snap.last_updated else None,
        "auto_refresh": snap.auto_refresh,
        "remaining_seconds": snap.remaining_seconds,
        "interval_seconds": snap.interval_seconds,
        "skus": list(snap.tracked.skus),
        "postal_code": snap.tracked.postal_code,
        "any_available": batch_has_stock(snap.records),
        "items": [
            {
                "sku": d.sku,
                "shipping_available": d.shipping_available,
                "pickup_available": d.pickup_available,
                "any_available": d.any_available,
            }
            for d in (evaluate(r) for r in snap.records)
        ],
    }


class DashboardHandler(BaseHTTPRequestHandler):
    server: "_DashboardHTTPServer"

    def log_message(self, format, *args):
        """Override to use Python logging instead of stderr."""
        logger.debug("%s - %s", self.address_string(), format % args)

    @property
    def controller(self) -> PollingController:
        return self.server.controller

    def do_GET(self):
        try:
            parsed = urlparse(self.path)
            params = parse_qs(parsed.query)

            if parsed.path == "/":
                show = params.get("settings", ["0"])[0] == "1"
                self._send_html(render_page(self.controller.snapshot(), show_settings=show))
            elif parsed.path == "/refresh":
                self.controller.refresh()
                self._redirect("/")
            elif parsed.path == "/toggle":
                self.controller.toggle_auto_refresh()
                self._redirect("/")
            elif parsed.path == "/settings":
                self._apply_settings(params)
            elif parsed.path == "/report":
                self._redirect(build_mailto_report(self.controller.snapshot().records))
            elif parsed.path == "/status":
                self._send_json(snapshot_to_dict(self.controller.snapshot()))
            elif parsed.path == "/health":
                self._send_html("<html><body><h1>BestBuy Tracker</h1><p>Dashboard is running.</p></body></html>")
            else:
                self._send_404()
        except Exception as e:
            logger.exception("Error handling request")
            self._send_error(f"Server error: {e}")

    def do_POST(self):
        try:
            parsed = urlparse(self.path)
            if parsed.path != "/settings":
                self._send_404()
                return
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length).decode("utf-8") if length else ""
            self._apply_settings(parse_qs(body, keep_blank_values=True))
        except Exception as e:
            logger.exception("Error handling request")
            self._send_error(f"Server error: {e}")

    def _apply_settings(self, params: Dict[str, List[str]]) -> None:
        def first(name: str) -> Optional[str]:
            values = params.get(name)
            return values[0] if values else None

        raw_interval = first("interval")
        interval = None
        if raw_interval:
            try:
                interval = int(raw_interval)
            except ValueError:
                self._send_error(f"Invalid refresh interval: {raw_interval}")
                return
        self.controller.update_settings(skus=first("skus"), postal_code=first("postal_code"))
        if interval is not None:
            self.controller.set_interval(interval)
        logger.info("Settings updated: %s", snapshot_to_dict(self.controller.snapshot())["skus"])
        self._redirect("/")

    def _send_html(self, page: str, status: int = 200) -> None:
        body = page.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_json(self, payload: Dict[str, object]) -> None:
        body = json.dumps(payload).encode()
        self.send_response(200)
        self.send_header("Content-type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _redirect(self, location: str) -> None:
        self.send_response(303)
        self.send_header("Location", location)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _send_error(self, message: str) -> None:
        self._send_html(f"<html><body><h1>Error</h1><p>{html.escape(message)}</p></body></html>", status=400)

    def _send_404(self) -> None:
        self._send_html("<h1>404 Not Found</h1>", status=404)


class _DashboardHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address, controller: PollingController):
        super().__init__(address, DashboardHandler)
        self.controller = controller


class DashboardServer:
    """Serves the dashboard for one controller on a background thread."""

    def __init__(self, controller: PollingController, host: Optional[str] = None, port: Optional[int] = None):
        self.controller = controller
        self.host = host or config.DASHBOARD_HOST
        self.port = config.DASHBOARD_PORT if port is None else port
        self.server: Optional[_DashboardHTTPServer] = None
        self.server_thread: Optional[threading.Thread] = None
        self.running = False

    def start(self) -> str:
        """Start the server and return the base URL."""
        if self.running:
            return f"http://{self.host}:{self.port}"
        self.server = _DashboardHTTPServer((self.host, self.port), self.controller)
        self.port = self.server.server_address[1]
        self.server_thread = threading.Thread(target=self.server.serve_forever, name="dashboard-http", daemon=True)
        self.server_thread.start()
        self.running = True
        base_url = f"http://{self.host}:{self.port}"
        logger.info("Dashboard available at %s", base_url)
        return base_url

    def stop(self) -> None:
        if self.server and self.running:
            self.server.shutdown()
            self.server.server_close()
            self.running = False
            logger.info("Dashboard stopped")


__all__ = ["DashboardServer", "render_page", "render_card", "snapshot_to_dict"]

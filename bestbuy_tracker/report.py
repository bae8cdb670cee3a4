"""Shareable plain-text stock report, opened in the user's mail client."""

from __future__ import annotations

import datetime as _dt
from typing import Optional, Sequence
from urllib.parse import quote

from . import config
from .availability import evaluate
from .models import AvailabilityRecord


def dashboard_link(sku: str) -> str:
    return f"{config.PRODUCT_BASE_URL.rstrip('/')}/{sku}"


def build_report_body(records: Sequence[AvailabilityRecord], now: _dt.datetime) -> str:
    blocks = []
    for record in records:
        in_stock = evaluate(record).any_available
        blocks.append(
            f"SKU: {record.sku}\n"
            f"Status: {'IN STOCK' if in_stock else 'Out of Stock'}\n"
            f"Link: {dashboard_link(record.sku)}\n"
        )
    separator = "\n--------------------------------\n\n"
    return f"Current Inventory Status ({now:%Y-%m-%d %H:%M:%S}):\n\n{separator.join(blocks)}"


def build_mailto_report(records: Sequence[AvailabilityRecord], now: Optional[_dt.datetime] = None) -> str:
    now = now or _dt.datetime.now()
    subject = f"BestBuy Stock Report - {now:%H:%M:%S}"
    body = build_report_body(records, now)
    return f"mailto:?subject={quote(subject, safe='')}&body={quote(body, safe='')}"


__all__ = ["build_mailto_report", "build_report_body", "dashboard_link"]

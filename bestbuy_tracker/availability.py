"""Stock evaluation rule.

Every consumer (dashboard cards, the mailto report, the alert e-mail)
decides "is this in stock" through these functions and nowhere else.

Heuristics:
- Shipping is available if the channel is purchasable, or its status is
  "InStock" on its own.
- Pickup is available if the channel is purchasable, or any store has a
  positive on-hand quantity or reports inventory.
- Unrecognised status strings never make anything available by themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .models import AvailabilityRecord, AvailabilityStatus, StoreStock


@dataclass(frozen=True)
class Decision:
    sku: str
    shipping_available: bool
    pickup_available: bool

    @property
    def any_available(self) -> bool:
        return self.shipping_available or self.pickup_available


def store_has_stock(location: StoreStock) -> bool:
    return location.quantity_on_hand > 0 or location.has_inventory


def stores_with_stock(record: AvailabilityRecord) -> List[StoreStock]:
    return [loc for loc in record.pickup.locations if store_has_stock(loc)]


def is_shipping_available(record: AvailabilityRecord) -> bool:
    shipping = record.shipping
    return shipping.purchasable or shipping.status == AvailabilityStatus.IN_STOCK.value


def is_pickup_available(record: AvailabilityRecord) -> bool:
    pickup = record.pickup
    return pickup.purchasable or any(store_has_stock(loc) for loc in pickup.locations)


def evaluate(record: AvailabilityRecord) -> Decision:
    return Decision(
        sku=record.sku,
        shipping_available=is_shipping_available(record),
        pickup_available=is_pickup_available(record),
    )


def evaluate_batch(records: Iterable[AvailabilityRecord]) -> List[Decision]:
    return [evaluate(r) for r in records]


def batch_has_stock(records: Iterable[AvailabilityRecord]) -> bool:
    """True if any record is available through either channel. Empty => False."""
    return any(evaluate(r).any_available for r in records)


__all__ = [
    "Decision",
    "store_has_stock",
    "stores_with_stock",
    "is_shipping_available",
    "is_pickup_available",
    "evaluate",
    "evaluate_batch",
    "batch_has_stock",
]

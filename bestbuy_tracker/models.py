"""Availability data model.

Mirrors the JSON returned by the availability endpoint (simplified):

{
    "availabilities": [
        {
            "sku": "18391208",
            "sellerId": "",
            "shipping": {"status": "SoldOutOnline", "quantityRemaining": 0,
                         "purchasable": false, "isBackorderable": false},
            "pickup": {"status": "OutOfStock", "purchasable": false,
                       "locations": [{"name": "...", "locationKey": "600",
                                      "quantityOnHand": 0, "hasInventory": false,
                                      "isReservable": false}]}
        }
    ]
}

Records are immutable and rebuilt from scratch on every fetch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .utils import ParseError


class AvailabilityStatus(str, Enum):
    """Status values we know how to label.

    Upstream sends free-form strings; anything outside this set is still a
    valid status and is shown as-is.
    """

    IN_STOCK = "InStock"
    OUT_OF_STOCK = "OutOfStock"
    COMING_SOON = "ComingSoon"
    SOLD_OUT_ONLINE = "SoldOutOnline"
    BACK_ORDER = "BackOrder"


_STATUS_LABELS = {
    AvailabilityStatus.IN_STOCK: "In Stock",
    AvailabilityStatus.OUT_OF_STOCK: "Out of Stock",
    AvailabilityStatus.COMING_SOON: "Coming Soon",
    AvailabilityStatus.SOLD_OUT_ONLINE: "Sold Out Online",
    AvailabilityStatus.BACK_ORDER: "Back Order",
}


def status_label(status: str) -> str:
    try:
        return _STATUS_LABELS[AvailabilityStatus(status)]
    except ValueError:
        return status or "Unknown"


# ---- field helpers -----------------------------------------------------------

def _require(obj: Mapping[str, Any], key: str, kind: type, where: str) -> Any:
    if key not in obj:
        raise ParseError(f"{where}: missing '{key}'")
    return _check(obj[key], kind, f"{where}.{key}")


def _optional(obj: Mapping[str, Any], key: str, kind: type, where: str, default: Any) -> Any:
    value = obj.get(key)
    if value is None:
        return default
    return _check(value, kind, f"{where}.{key}")


def _check(value: Any, kind: type, where: str) -> Any:
    # bool is a subclass of int; a count of True is a shape error.
    if kind is int and isinstance(value, bool):
        raise ParseError(f"{where}: expected int, got bool")
    if not isinstance(value, kind):
        raise ParseError(f"{where}: expected {kind.__name__}, got {type(value).__name__}")
    if kind is int and value < 0:
        raise ParseError(f"{where}: negative value {value}")
    return value


def _as_mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, dict):
        raise ParseError(f"{where}: expected object, got {type(value).__name__}")
    return value


# ---- records -----------------------------------------------------------------

@dataclass(frozen=True)
class StoreStock:
    name: str
    location_key: str
    quantity_on_hand: int
    has_inventory: bool
    reservable: bool
    fulfillment_key: Optional[str] = None
    supports_fulfillment: Optional[bool] = None

    @classmethod
    def from_dict(cls, raw: Any, where: str = "location") -> "StoreStock":
        obj = _as_mapping(raw, where)
        return cls(
            name=_optional(obj, "name", str, where, ""),
            location_key=_optional(obj, "locationKey", str, where, ""),
            quantity_on_hand=_optional(obj, "quantityOnHand", int, where, 0),
            has_inventory=_optional(obj, "hasInventory", bool, where, False),
            reservable=_optional(obj, "isReservable", bool, where, False),
            fulfillment_key=_optional(obj, "fulfillmentKey", str, where, None),
            supports_fulfillment=_optional(obj, "supportsFulfillment", bool, where, None),
        )


@dataclass(frozen=True)
class Shipping:
    status: str
    purchasable: bool
    quantity_remaining: int = 0
    backorderable: bool = False

    @classmethod
    def from_dict(cls, raw: Any, where: str = "shipping") -> "Shipping":
        obj = _as_mapping(raw, where)
        return cls(
            status=_require(obj, "status", str, where),
            purchasable=_require(obj, "purchasable", bool, where),
            quantity_remaining=_optional(obj, "quantityRemaining", int, where, 0),
            backorderable=_optional(obj, "isBackorderable", bool, where, False),
        )


@dataclass(frozen=True)
class Pickup:
    status: str
    purchasable: bool
    locations: Tuple[StoreStock, ...] = ()

    @classmethod
    def from_dict(cls, raw: Any, where: str = "pickup") -> "Pickup":
        obj = _as_mapping(raw, where)
        locations = _require(obj, "locations", list, where)
        return cls(
            status=_require(obj, "status", str, where),
            purchasable=_require(obj, "purchasable", bool, where),
            locations=tuple(
                StoreStock.from_dict(loc, f"{where}.locations[{i}]")
                for i, loc in enumerate(locations)
            ),
        )


@dataclass(frozen=True)
class AvailabilityRecord:
    sku: str
    shipping: Shipping
    pickup: Pickup
    seller_id: str = ""
    sale_channel_exclusivity: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any, where: str = "availability") -> "AvailabilityRecord":
        obj = _as_mapping(raw, where)
        sku = obj.get("sku")
        # SKUs are opaque; the API has been seen to send them as numbers too.
        if isinstance(sku, int) and not isinstance(sku, bool):
            sku = str(sku)
        if not isinstance(sku, str) or not sku:
            raise ParseError(f"{where}: missing or invalid 'sku'")
        return cls(
            sku=sku,
            shipping=Shipping.from_dict(obj.get("shipping"), f"{where}.shipping"),
            pickup=Pickup.from_dict(obj.get("pickup"), f"{where}.pickup"),
            seller_id=_optional(obj, "sellerId", str, where, ""),
            sale_channel_exclusivity=_optional(obj, "saleChannelExclusivity", str, where, None),
        )


def parse_availabilities(payload: Any) -> List[AvailabilityRecord]:
    """Parse a decoded response body into records, preserving order.

    Raises ParseError when the top-level shape is wrong or any record is
    malformed; a partially valid batch is rejected as a whole.
    """
    if not isinstance(payload, dict):
        raise ParseError(f"Expected a JSON object, got {type(payload).__name__}")
    if "availabilities" not in payload:
        raise ParseError("Response is missing 'availabilities'")
    items = payload["availabilities"]
    if not isinstance(items, list):
        raise ParseError(f"'availabilities' must be a list, got {type(items).__name__}")
    return [
        AvailabilityRecord.from_dict(item, f"availabilities[{i}]")
        for i, item in enumerate(items)
    ]


@dataclass
class TrackedSet:
    """What the dashboard is watching. Edited in place from the settings form."""

    skus: List[str]
    postal_code: str
    locations: List[str] = field(default_factory=list)

    @staticmethod
    def parse_skus(raw: str) -> List[str]:
        """Split a comma-separated SKU string; trims, drops empties, de-duplicates."""
        seen: Dict[str, None] = {}
        for part in (raw or "").split(","):
            part = part.strip()
            if part:
                seen.setdefault(part, None)
        return list(seen)


__all__ = [
    "AvailabilityStatus",
    "status_label",
    "StoreStock",
    "Shipping",
    "Pickup",
    "AvailabilityRecord",
    "TrackedSet",
    "parse_availabilities",
]

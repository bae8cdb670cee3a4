"""Builders and HTTP stubs shared by the test modules."""

from typing import Any, Dict, List, Optional

from bestbuy_tracker.models import AvailabilityRecord, Pickup, Shipping, StoreStock


def make_store(qty: int = 0, has_inventory: bool = False, name: str = "Burnaby") -> StoreStock:
    return StoreStock(
        name=name,
        location_key="600",
        quantity_on_hand=qty,
        has_inventory=has_inventory,
        reservable=False,
    )


def make_record(
    sku: str = "18391208",
    ship_status: str = "SoldOutOnline",
    ship_purchasable: bool = False,
    pick_status: str = "OutOfStock",
    pick_purchasable: bool = False,
    locations=(),
    quantity_remaining: int = 0,
) -> AvailabilityRecord:
    return AvailabilityRecord(
        sku=sku,
        shipping=Shipping(
            status=ship_status,
            purchasable=ship_purchasable,
            quantity_remaining=quantity_remaining,
        ),
        pickup=Pickup(status=pick_status, purchasable=pick_purchasable, locations=tuple(locations)),
    )


def raw_record(
    sku: str = "18391208",
    ship_status: str = "SoldOutOnline",
    ship_purchasable: bool = False,
    pick_purchasable: bool = False,
    locations: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    return {
        "sku": sku,
        "sellerId": "",
        "shipping": {
            "status": ship_status,
            "quantityRemaining": 0,
            "purchasable": ship_purchasable,
            "isBackorderable": False,
        },
        "pickup": {
            "status": "OutOfStock",
            "purchasable": pick_purchasable,
            "locations": locations or [],
        },
    }


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, reason: str = "OK", json_error: bool = False):
        self.status_code = status_code
        self.reason = reason
        self._payload = payload
        self._json_error = json_error

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if self._json_error:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; records every GET."""

    def __init__(self, response: Optional[FakeResponse] = None, exc: Optional[Exception] = None):
        self.response = response or FakeResponse(payload={"availabilities": []})
        self.exc = exc
        self.calls: List[str] = []
        self.closed = False

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append(url)
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self) -> None:
        self.closed = True


# Fixture batch shared by the agreement tests.
FIXTURES: List[AvailabilityRecord] = [
    make_record("A"),
    make_record("B", ship_purchasable=True),
    make_record("C", ship_status="InStock"),
    make_record("D", pick_purchasable=True),
    make_record("E", locations=[make_store(qty=3)]),
    make_record("F", locations=[make_store(has_inventory=True)]),
    make_record("G", locations=[make_store(), make_store(name="Richmond")]),
    make_record("H", ship_status="BackOrder", pick_status="ComingSoon"),
    make_record("I", ship_status="SomethingNew", pick_status="Limited"),
]



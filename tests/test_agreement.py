"""Every consumer of the stock rule must reach the same verdict."""

import datetime as dt

from bestbuy_tracker import emailer
from bestbuy_tracker.availability import evaluate
from bestbuy_tracker.dashboard import render_card
from bestbuy_tracker.report import build_report_body

from tests.helpers import make_record


def test_fixture_batch_covers_both_outcomes(fixtures):
    verdicts = {evaluate(r).any_available for r in fixtures}
    assert verdicts == {True, False}


def test_dashboard_badges_match_evaluator(fixtures):
    for record in fixtures:
        d = evaluate(record)
        card = render_card(record)
        assert ("Shipping: Available" in card) == d.shipping_available, record.sku
        assert ("Pickup: Available" in card) == d.pickup_available, record.sku
        assert (' class="card live"' in card) == d.any_available, record.sku


def test_mailto_report_matches_evaluator(fixtures):
    body = build_report_body(fixtures, dt.datetime(2024, 1, 1))
    for record in fixtures:
        expected = "IN STOCK" if evaluate(record).any_available else "Out of Stock"
        assert f"SKU: {record.sku}\nStatus: {expected}\n" in body


def test_alert_email_matches_evaluator(fixtures):
    msg = emailer.compose_alert(fixtures)
    plain = msg.get_body(preferencelist=("plain",)).get_content()
    for record in fixtures:
        d = evaluate(record)
        if d.any_available:
            ship = "Available" if d.shipping_available else "Out of Stock"
            pick = "Available" if d.pickup_available else "Out of Stock"
            assert f"SKU: {record.sku}\nShipping: {ship}\nPickup: {pick}\n" in plain
        else:
            assert f"SKU: {record.sku}\n" not in plain


def test_inventory_flag_without_purchasable_counts_everywhere():
    # The cases where hand-rolled copies of the rule tend to drift.
    for record in (
        make_record("Q", locations=[]),
        make_record("R", ship_status="InStock"),
    ):
        d = evaluate(record)
        assert ("Shipping: Available" in render_card(record)) == d.shipping_available
        msg = emailer.compose_alert([record])
        assert (msg is not None) == d.any_available

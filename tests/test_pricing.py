from __future__ import annotations

import pytest

from order_engine.inventory.catalog_store import CatalogStore, CatalogUnavailableError, JsonCatalogFile
from order_engine.matcher import ProductMatcher
from order_engine.models import ItemMention, OrderLine, StorePolicy
from order_engine.pricing import PricingEngine, describe_summary, format_money, summarize_order

POLICY = StorePolicy(tax_rate=0.21, shipping_cost=4.95, free_shipping_threshold=50.0)


def test_two_p1_priced_with_tax_and_shipping(pricing):
    summary = pricing.evaluate([ItemMention(query="2x P1", quantity=2)])
    assert summary.status == "available"
    assert summary.subtotal == pytest.approx(20.00)
    assert summary.tax == pytest.approx(4.20)
    assert summary.shipping == pytest.approx(4.95)
    assert summary.total == pytest.approx(29.15)
    assert summary.unavailable_items is None
    assert [(line.product_id, line.quantity) for line in summary.items] == [("P1", 2)]


def test_quantity_read_from_query_when_missing(pricing):
    summary = pricing.evaluate([ItemMention(query="3x P1")])
    assert summary.items[0].quantity == 3


def test_insufficient_stock_is_unavailable(pricing):
    summary = pricing.evaluate([ItemMention(query="P1", quantity=10)])
    assert summary.status == "unavailable"
    assert summary.items == []
    assert len(summary.unavailable_items) == 1
    assert "5 available, 10 requested" in summary.unavailable_items[0]


def test_unknown_product_is_a_reason_not_an_error(pricing):
    summary = pricing.evaluate([ItemMention(query="P1", quantity=1), ItemMention(query="rocket ship", quantity=1)])
    assert summary.status == "partial"
    assert summary.unavailable_items == ['Product not found: "rocket ship"']


def test_free_shipping_at_threshold():
    lines = [OrderLine(product_id="x", product_name="X", quantity=5, unit_price=10.0, subtotal=50.0)]
    summary = summarize_order(lines, [], POLICY)
    assert summary.shipping == 0.0
    assert summary.total == pytest.approx(60.5)


def test_empty_mentions_are_unavailable(pricing):
    summary = pricing.evaluate([])
    assert summary.status == "unavailable"
    assert summary.subtotal == 0.0


def test_evaluate_does_not_mutate_stock(pricing, store, disk_stock):
    before = disk_stock()
    pricing.evaluate([ItemMention(query="P1", quantity=2)])
    pricing.evaluate([ItemMention(query="P1", quantity=2)])
    assert disk_stock() == before
    assert store.get("P1").stock == 5


def test_check_reports_stock_checks_and_message(pricing):
    check = pricing.check([ItemMention(query="lego technic jeep", quantity=1)])
    assert check.success
    assert check.stock_checks[0].product.id == "lego-technic-02"
    assert check.stock_checks[0].available
    assert check.message.startswith("All 1 items are available! Total: €")


def test_check_partial_message(pricing):
    check = pricing.check([ItemMention(query="P1", quantity=1), ItemMention(query="solo kite", quantity=2)])
    assert check.order_summary.status == "partial"
    assert check.message == "1 items available, 1 items unavailable or insufficient stock"


def test_check_reports_unavailable_catalog(tmp_path):
    store = CatalogStore(JsonCatalogFile(tmp_path / "missing.json"))
    engine = PricingEngine(store, ProductMatcher(store))
    check = engine.check([ItemMention(query="P1", quantity=1)])
    assert not check.success
    assert check.order_summary is None
    assert check.message == "Inventory system unavailable"
    with pytest.raises(CatalogUnavailableError):
        engine.evaluate([ItemMention(query="P1", quantity=1)])


def test_describe_unavailable_summary():
    summary = summarize_order([], ["gone"], POLICY)
    assert describe_summary(summary, "EUR") == "None of the requested items are available in sufficient quantities"


def test_format_money_unknown_currency():
    assert format_money(3.5, "CHF") == "CHF 3.50"
    assert format_money(3.5, "eur") == "€3.50"


def test_repeated_product_lines_share_stock(pricing):
    summary = pricing.evaluate([ItemMention(query="P1", quantity=3), ItemMention(query="P1", quantity=3)])
    assert summary.status == "partial"
    assert [line.quantity for line in summary.items] == [3]
    assert summary.unavailable_items == ["P1 Puzzle Box: insufficient stock, 2 available, 3 requested"]


def test_repeated_product_lines_within_stock(pricing):
    summary = pricing.evaluate([ItemMention(query="P1", quantity=2), ItemMention(query="p1 puzzle box", quantity=3)])
    assert summary.status == "available"
    assert sum(line.quantity for line in summary.items) == 5

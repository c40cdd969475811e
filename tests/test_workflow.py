from __future__ import annotations

from order_engine.intent import Classification, IntentClassifier
from order_engine.inventory.catalog_store import CatalogStore, JsonCatalogFile
from order_engine.inventory.reservation import ReservationEngine
from order_engine.matcher import ProductMatcher
from order_engine.pricing import PricingEngine
from order_engine.step_runner import Step, StepRunner
from order_engine.workflow import OrderWorkflow


def test_step_runner_honors_skip_and_always_run():
    seen = []
    runner = StepRunner(
        [
            Step("a", lambda ctx: seen.append("a")),
            Step("b", lambda ctx: seen.append("b"), skip_if=lambda ctx: True),
            Step("c", lambda ctx: seen.append("c"), skip_if=lambda ctx: True, always_run=True),
        ]
    )
    assert runner.run(object()) == ["a", "c"]
    assert seen == ["a", "c"]


def test_availability_check_available(workflow, disk_stock):
    before = disk_stock()
    result = workflow.process("Do you have 2x P1 puzzle in stock?")
    assert result.success
    assert result.metadata.action_performed == "order_availability_check"
    assert result.metadata.intent == "check_availability"
    assert result.metadata.components_used == ["intent-classifier", "pricing-engine"]
    assert result.order_summary.status == "available"
    assert result.next_actions[0] == 'Reply "CONFIRM ORDER" to place this order'
    assert result.result.startswith("Order check complete! All 1 items are available!")
    assert disk_stock() == before


def test_availability_check_partial_next_actions(workflow):
    result = workflow.process("I want to buy 1 P1 puzzle and 3 solo kite")
    assert result.order_summary.status == "partial"
    assert result.next_actions == [
        'Reply "CONFIRM PARTIAL" to order available items only',
        'Reply "WAIT RESTOCK" to be notified when all items are available',
    ]


def test_place_order_reserves(workflow, disk_stock):
    result = workflow.process("Please confirm my order of 2 P1 puzzle")
    assert result.success
    assert result.metadata.action_performed == "order_placed_and_reserved"
    assert result.metadata.components_used == ["intent-classifier", "pricing-engine", "reservation-engine"]
    assert [(d.product_id, d.new_stock) for d in result.metadata.reservation] == [("P1", 3)]
    assert "Total: €" in result.result
    assert disk_stock()["P1"] == 3


def test_place_order_partial_is_rejected(workflow, disk_stock):
    before = disk_stock()
    result = workflow.process("Confirm order: 1 P1 puzzle and 3 solo kite")
    assert not result.success
    assert result.metadata.action_performed == "order_placement_unavailable"
    assert result.order_summary.status == "partial"
    assert result.next_actions
    assert disk_stock() == before


def test_place_order_reservation_failure_keeps_summary(workflow, store, reservations, monkeypatch):
    def _drained(summary):
        reservations.apply_deltas([("P1", -5)])
        return type(reservations).reserve(reservations, summary)

    monkeypatch.setattr(reservations, "reserve", _drained)
    result = workflow.process("Place order for 2 P1 puzzle")
    assert not result.success
    assert result.metadata.action_performed == "order_reservation_failed"
    assert result.order_summary is not None
    assert "Insufficient stock" in result.result


def test_product_inquiry_with_mentions(workflow):
    result = workflow.process("Tell me about the lego technic jeep")
    assert result.success
    assert result.metadata.action_performed == "specific_product_inquiry"
    assert result.next_actions == ["Place an order"]
    assert "LEGO Technic Jeep" in result.result


def test_general_question_skips_pricing(workflow):
    result = workflow.process("What are your opening hours?")
    assert result.success
    assert result.metadata.components_used == ["intent-classifier"]
    assert result.order_summary is None
    assert result.next_actions == ["Ask about specific products", "Browse our toy categories", "Place an order"]


def test_unexpected_error_returns_generic_envelope(workflow, pricing, monkeypatch):
    def _boom(mentions):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(pricing, "check", _boom)
    result = workflow.process("Is 1 P1 puzzle available?")
    assert not result.success
    assert result.result == "Sorry, I encountered an error processing your request. Please try again."
    assert result.metadata.action_performed == "error_handling"


def test_inventory_outage_is_reported_in_band(tmp_path):
    store = CatalogStore(JsonCatalogFile(tmp_path / "missing.json"))
    flow = OrderWorkflow(store, IntentClassifier(), PricingEngine(store, ProductMatcher(store)), ReservationEngine(store))
    result = flow.process("Is 1 P1 puzzle available?")
    assert not result.success
    assert result.metadata.action_performed == "inventory_check_failed"


def test_store_status(workflow):
    status = workflow.store_status()
    assert status.total_products == 5
    assert [alert.product_id for alert in status.low_stock_alerts] == ["solo-kite-01"]
    assert status.store_info.name == "Toy Corner"
    assert status.timestamp


class BrowseClassifier(IntentClassifier):
    def classify(self, prompt):
        return Classification(intent="product_inquiry", mentions=[], confidence=0.7)


def test_mentionless_inquiry_returns_browse_list(store, pricing, reservations):
    flow = OrderWorkflow(store, BrowseClassifier(), pricing, reservations, browse_limit=3)
    result = flow.process("show me what you have")
    assert result.success
    assert result.metadata.action_performed == "product_browsing"
    assert result.metadata.components_used == ["intent-classifier"]
    assert result.metadata.browse_product_ids == ["lego-creator-01", "lego-technic-02", "P1"]


def test_place_order_with_repeated_product_is_not_oversold(workflow, disk_stock):
    before = disk_stock()
    result = workflow.process("Please confirm my order of 3 P1 puzzle and 3 P1 puzzle")
    assert not result.success
    assert result.metadata.action_performed == "order_placement_unavailable"
    assert result.order_summary.status == "partial"
    assert disk_stock() == before

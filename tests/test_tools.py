from __future__ import annotations

import json

import pytest

from order_engine.tools import TOOL_DECLARATIONS


def test_declarations_cover_dispatcher(dispatcher):
    assert [declaration["name"] for declaration in TOOL_DECLARATIONS] == dispatcher.tool_names


def test_check_inventory_from_json_string(dispatcher):
    result = dispatcher.dispatch("check_inventory", json.dumps({"items": [{"product_query": "P1", "quantity": 2}]}))
    assert result["success"]
    assert result["order_summary"]["status"] == "available"
    assert result["order_summary"]["total"] == pytest.approx(29.15)


def test_unknown_tool(dispatcher):
    assert dispatcher.dispatch("generate_email", {}) == {"success": False, "message": "Unknown function: generate_email"}


def test_malformed_arguments(dispatcher):
    result = dispatcher.dispatch("check_inventory", "not json at all")
    assert result == {"success": False, "message": "Arguments must be a JSON object"}


def test_invalid_arguments_are_not_raised(dispatcher):
    result = dispatcher.dispatch("check_inventory", {"items": "P1"})
    assert not result["success"]
    assert result["message"].startswith("Invalid arguments for check_inventory")


def test_store_info_is_structured(dispatcher):
    shipping = dispatcher.dispatch("get_store_info", {"info_type": "shipping"})
    assert shipping["info"] == {"shipping_cost": 4.95, "free_shipping_threshold": 50.0, "currency": "EUR"}
    contact = dispatcher.dispatch("get_store_info", {"info_type": "contact"})
    assert contact["info"]["phone"] == "+31 123 456 789"
    assert dispatcher.dispatch("get_store_info", {"info_type": "returns"})["info"]["return_days"] == 14


def test_store_info_rejects_unknown_type(dispatcher):
    assert not dispatcher.dispatch("get_store_info", {"info_type": "weather"})["success"]


def test_reserve_and_cancel_round_trip(dispatcher, disk_stock):
    before = disk_stock()
    check = dispatcher.dispatch("check_inventory", {"items": [{"product_query": "P1", "quantity": 2}]})
    reserved = dispatcher.dispatch("update_inventory", {"action": "reserve", "order_summary": check["order_summary"]})
    assert reserved["success"]
    assert disk_stock()["P1"] == 3
    cancelled = dispatcher.dispatch("update_inventory", {"action": "cancel", "order_summary": check["order_summary"]})
    assert cancelled["success"]
    assert disk_stock() == before


def test_restock_action(dispatcher, disk_stock):
    result = dispatcher.dispatch("update_inventory", {"action": "restock", "product_id": "solo-kite-01", "quantity": 3})
    assert result["success"]
    assert disk_stock()["solo-kite-01"] == 4


def test_update_requires_order_summary(dispatcher):
    result = dispatcher.dispatch("update_inventory", {"action": "reserve"})
    assert result == {"success": False, "message": "Order summary required for reservation"}


def test_unknown_action(dispatcher):
    result = dispatcher.dispatch("update_inventory", {"action": "refund"})
    assert not result["success"]

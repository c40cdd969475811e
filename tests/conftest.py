from __future__ import annotations

import json
from pathlib import Path
from typing import Dict

import pytest

from order_engine.intent import IntentClassifier
from order_engine.inventory.catalog_store import CatalogStore, JsonCatalogFile
from order_engine.inventory.reservation import ReservationEngine
from order_engine.matcher import ProductMatcher
from order_engine.pricing import PricingEngine
from order_engine.tools import ToolDispatcher
from order_engine.workflow import OrderWorkflow


def _product(product_id: str, name: str, price: float, stock: int, category: str = "toys") -> Dict[str, object]:
    return {
        "id": product_id,
        "name": name,
        "price": price,
        "stock": stock,
        "category": category,
        "age_range": "6+",
        "description": f"{name} description",
    }


def catalog_payload() -> Dict[str, object]:
    products = [
        _product("lego-creator-01", "LEGO Creator Townhouse", 49.99, 12, "building"),
        _product("lego-technic-02", "LEGO Technic Jeep", 59.99, 4, "building"),
        _product("P1", "P1 Puzzle Box", 10.0, 5, "puzzles"),
        _product("solo-kite-01", "Solo Kite", 15.0, 1, "outdoor"),
        _product("monopoly-01", "Monopoly Classic", 29.99, 20, "games"),
    ]
    return {
        "products": {product["id"]: product for product in products},
        "store_info": {
            "name": "Toy Corner",
            "location": "Alphen aan den Rijn",
            "phone": "+31 123 456 789",
            "email": "info@toycorner.test",
            "currency": "EUR",
            "tax_rate": 0.21,
            "shipping_cost": 4.95,
            "free_shipping_threshold": 50.0,
        },
    }


def read_stock(path: Path) -> Dict[str, int]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return {product_id: product["stock"] for product_id, product in data["products"].items()}


@pytest.fixture
def catalog_path(tmp_path: Path) -> Path:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog_payload(), indent=2), encoding="utf-8")
    return path


@pytest.fixture
def store(catalog_path: Path) -> CatalogStore:
    return CatalogStore(JsonCatalogFile(catalog_path))


@pytest.fixture
def matcher(store: CatalogStore) -> ProductMatcher:
    return ProductMatcher(store)


@pytest.fixture
def pricing(store: CatalogStore, matcher: ProductMatcher) -> PricingEngine:
    return PricingEngine(store, matcher)


@pytest.fixture
def reservations(store: CatalogStore) -> ReservationEngine:
    return ReservationEngine(store)


@pytest.fixture
def workflow(store: CatalogStore, pricing: PricingEngine, reservations: ReservationEngine) -> OrderWorkflow:
    return OrderWorkflow(store, IntentClassifier(), pricing, reservations, browse_limit=3, status_threshold=3)


@pytest.fixture
def dispatcher(store: CatalogStore, pricing: PricingEngine, reservations: ReservationEngine) -> ToolDispatcher:
    return ToolDispatcher(store, pricing, reservations)


@pytest.fixture
def disk_stock(catalog_path: Path):
    return lambda: read_stock(catalog_path)

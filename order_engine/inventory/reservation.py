from __future__ import annotations

"""Stock reservation, compensating cancellation, and out-of-band adjustments.

Every mutating call runs inside CatalogStore.edit(), which holds the store-wide lock
across load, verification, mutation, and persist. A reservation verifies every line
before touching any stock, so a batch either commits whole or not at all.
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from ..models import LowStockAlert, OrderSummary, ReservationResult, StockDelta
from .catalog_store import CatalogPersistError, CatalogStore, CatalogUnavailableError

logger = logging.getLogger("order_engine.reservation")

UNAVAILABLE_MESSAGE = "Inventory system unavailable"
SAVE_FAILED_MESSAGE = "Failed to save inventory updates"


class ReservationEngine:
    """Apply order-driven and administrative stock changes to the catalog."""

    def __init__(self, store: CatalogStore, low_stock_threshold: int = 5) -> None:
        self._store = store
        self._low_stock_threshold = low_stock_threshold

    def reserve(self, summary: OrderSummary) -> ReservationResult:
        """Purpose: Atomically decrement stock for every line of a priced order.
        Inputs/Outputs: Input is an OrderSummary; output is a ReservationResult with one
            StockDelta per product on success; repeated lines for a product are summed.
        Side Effects / State: Persists the catalog once when every line passes.
        Dependencies: Uses CatalogStore.edit for the load-verify-write cycle.
        Failure Modes: "unavailable" orders are rejected without loading the catalog;
            a missing product or short stock on any line aborts with no write;
            load/save failures return success=False.
        If Removed: Placed orders never reduce stock.
        Testing Notes: Make one line short and confirm no product's stock changed.
        """
        # Reject orders that priced nothing before touching storage.
        if summary.status not in ("available", "partial"):
            return ReservationResult(success=False, message="Cannot reserve items - order not available")

        # Lines naming the same product draw on one stock figure.
        requested: Counter = Counter()
        names: Dict[str, str] = {}
        for line in summary.items:
            requested[line.product_id] += line.quantity
            names.setdefault(line.product_id, line.product_name)

        try:
            with self._store.edit() as edit:
                products = edit.state.products
                for product_id, quantity in requested.items():
                    product = products.get(product_id)
                    if product is None:
                        edit.discard()
                        return ReservationResult(success=False, message=f"Product {product_id} not found")
                    if product.stock < quantity:
                        edit.discard()
                        logger.warning(
                            "reserve rejected product=%s stock=%d requested=%d",
                            product_id,
                            product.stock,
                            quantity,
                        )
                        return ReservationResult(
                            success=False,
                            message=(
                                f"Insufficient stock for {names[product_id]}: "
                                f"{product.stock} available, {quantity} requested"
                            ),
                        )

                deltas: List[StockDelta] = []
                for product_id, quantity in requested.items():
                    product = products[product_id]
                    old_stock = product.stock
                    product.stock = old_stock - quantity
                    deltas.append(StockDelta(product_id=product_id, old_stock=old_stock, new_stock=product.stock))
                    logger.info("reserved product=%s qty=%d stock=%d->%d", product_id, quantity, old_stock, product.stock)
        except CatalogUnavailableError:
            logger.exception("reserve could not load catalog")
            return ReservationResult(success=False, message=UNAVAILABLE_MESSAGE)
        except CatalogPersistError:
            logger.exception("reserve could not persist catalog")
            return ReservationResult(success=False, message=SAVE_FAILED_MESSAGE)

        return ReservationResult(
            success=True,
            updated_products=deltas,
            message=f"Successfully reserved {len(summary.items)} items",
        )

    def cancel(self, summary: OrderSummary) -> ReservationResult:
        """Purpose: Return a reserved order's quantities to stock.
        Inputs/Outputs: Input is the OrderSummary that was reserved; output is a
            ReservationResult listing the restored products.
        Side Effects / State: Persists the catalog unconditionally.
        Dependencies: Uses CatalogStore.edit.
        Failure Modes: Products no longer in the catalog are skipped; no upper bound on
            stock is checked; load/save failures return success=False.
        If Removed: Cancelled orders keep their stock locked up.
        Testing Notes: Reserve, cancel, and compare stock to the pre-reserve values.
        """
        # Add each line back to whatever the catalog holds now.
        deltas: List[StockDelta] = []
        try:
            with self._store.edit() as edit:
                products = edit.state.products
                for line in summary.items:
                    product = products.get(line.product_id)
                    if product is None:
                        continue
                    old_stock = product.stock
                    product.stock = old_stock + line.quantity
                    deltas.append(StockDelta(product_id=line.product_id, old_stock=old_stock, new_stock=product.stock))
                    logger.info("cancelled product=%s qty=%d stock=%d->%d", line.product_id, line.quantity, old_stock, product.stock)
        except CatalogUnavailableError:
            logger.exception("cancel could not load catalog")
            return ReservationResult(success=False, message=UNAVAILABLE_MESSAGE)
        except CatalogPersistError:
            logger.exception("cancel could not persist catalog")
            return ReservationResult(success=False, message=SAVE_FAILED_MESSAGE)

        return ReservationResult(
            success=True,
            updated_products=deltas,
            message=f"Successfully cancelled reservation for {len(summary.items)} items",
        )

    def apply_deltas(self, changes: Iterable[Tuple[str, int]]) -> ReservationResult:
        """Purpose: Apply signed stock changes to several products in one write.
        Inputs/Outputs: Input is (product_id, quantity_change) pairs; output is a
            ReservationResult with the products actually changed.
        Side Effects / State: Persists the catalog once.
        Dependencies: Uses CatalogStore.update.
        Failure Modes: Unknown ids are skipped; results clamp at zero stock;
            load/save failures return success=False.
        If Removed: Bulk restocking and manual corrections need one write per product.
        Testing Notes: Mix a missing id, a restock, and an over-large decrement.
        """
        # Each change stands alone; one bad id never blocks the others.
        changes = list(changes)

        def _apply(state) -> List[StockDelta]:
            applied: List[StockDelta] = []
            for product_id, quantity_change in changes:
                product = state.products.get(product_id)
                if product is None:
                    logger.warning("batch update skipped unknown product=%s", product_id)
                    continue
                old_stock = product.stock
                product.stock = max(0, old_stock + quantity_change)
                applied.append(StockDelta(product_id=product_id, old_stock=old_stock, new_stock=product.stock))
            return applied

        try:
            deltas = self._store.update(_apply)
        except CatalogUnavailableError:
            logger.exception("batch update could not load catalog")
            return ReservationResult(success=False, message=UNAVAILABLE_MESSAGE)
        except CatalogPersistError:
            logger.exception("batch update could not persist catalog")
            return ReservationResult(success=False, message="Failed to save batch updates")

        logger.info("batch update applied=%d requested=%d", len(deltas), len(changes))
        return ReservationResult(
            success=True,
            updated_products=deltas,
            message=f"Successfully updated {len(deltas)} products",
        )

    def restock(self, product_id: str, quantity: int) -> ReservationResult:
        """Increase one product's stock; unknown products and non-positive quantities are rejected."""
        if quantity <= 0:
            return ReservationResult(success=False, message=f"Restock quantity must be positive, got {quantity}")
        try:
            with self._store.edit() as edit:
                product = edit.state.products.get(product_id)
                if product is None:
                    edit.discard()
                    return ReservationResult(success=False, message=f"Product {product_id} not found")
                old_stock = product.stock
                product.stock = old_stock + quantity
                name = product.name
        except CatalogUnavailableError:
            logger.exception("restock could not load catalog")
            return ReservationResult(success=False, message=UNAVAILABLE_MESSAGE)
        except CatalogPersistError:
            logger.exception("restock could not persist catalog")
            return ReservationResult(success=False, message=SAVE_FAILED_MESSAGE)

        logger.info("restocked product=%s qty=%d stock=%d->%d", product_id, quantity, old_stock, old_stock + quantity)
        return ReservationResult(
            success=True,
            updated_products=[StockDelta(product_id=product_id, old_stock=old_stock, new_stock=old_stock + quantity)],
            message=f"Successfully restocked {name} with {quantity} units",
        )

    def low_stock(self, threshold: Optional[int] = None) -> List[LowStockAlert]:
        """Purpose: List products whose stock is at or below a threshold.
        Inputs/Outputs: Input is the threshold (the engine default when None); output is a
            list of LowStockAlert.
        Side Effects / State: Reads the catalog snapshot; logs a warning when any match.
        Dependencies: Uses CatalogStore.all.
        Failure Modes: An unreadable catalog yields an empty list.
        If Removed: Store status and restock planning lose their alert feed.
        Testing Notes: Threshold equal to a product's stock must include it.
        """
        # Inclusive threshold, catalog order.
        if threshold is None:
            threshold = self._low_stock_threshold
        try:
            products = self._store.all()
        except CatalogUnavailableError:
            logger.exception("low stock check could not load catalog")
            return []
        alerts = [
            LowStockAlert(
                product_id=product.id,
                product_name=product.name,
                current_stock=product.stock,
                threshold=threshold,
            )
            for product in products
            if product.stock <= threshold
        ]
        if alerts:
            logger.warning(
                "low stock count=%d items=%s",
                len(alerts),
                ", ".join(f"{alert.product_name} ({alert.current_stock})" for alert in alerts),
            )
        return alerts

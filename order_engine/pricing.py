from __future__ import annotations

"""Availability checks and order pricing.

Evaluation is read-only: it resolves mentions, compares requested quantities with
current stock, and prices the lines that can be served. Stock may still change
before a reservation runs; the reservation engine re-checks under its lock.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .inventory.catalog_store import CatalogError, CatalogStore
from .matcher import ProductMatcher
from .models import InventoryCheck, ItemMention, OrderLine, OrderSummary, StockCheck, StorePolicy
from .quantity import extract_quantity

logger = logging.getLogger("order_engine.pricing")

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£"}


def format_money(amount: float, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{symbol}{amount:.2f}"
    return f"{currency} {amount:.2f}"


def summarize_order(lines: Sequence[OrderLine], reasons: Sequence[str], policy: StorePolicy) -> OrderSummary:
    """Purpose: Compute totals and status for priced lines and unavailability reasons.
    Inputs/Outputs: Inputs are order lines, reason strings, and store policy; output is
        an OrderSummary.
    Side Effects / State: None; pure function.
    Dependencies: Uses StorePolicy tax/shipping fields.
    Failure Modes: None; an empty line list yields an "unavailable" zero-value summary
        that still carries shipping cost, matching the threshold rule.
    If Removed: Pricing invariants (tax, shipping, total, status) have no single owner.
    Testing Notes: Check the free-shipping boundary at exactly the threshold.
    """
    # Shipping is free only at or above the threshold; tax applies to the subtotal only.
    subtotal = sum(line.subtotal for line in lines)
    tax = subtotal * policy.tax_rate
    shipping = 0.0 if subtotal >= policy.free_shipping_threshold else policy.shipping_cost
    total = subtotal + tax + shipping

    if not lines:
        status = "unavailable"
    elif reasons:
        status = "partial"
    else:
        status = "available"

    return OrderSummary(
        items=list(lines),
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        total=total,
        status=status,
        unavailable_items=list(reasons) if reasons else None,
    )


def describe_summary(summary: OrderSummary, currency: str) -> str:
    """One-line status text for an order summary."""
    if summary.status == "available":
        return f"All {len(summary.items)} items are available! Total: {format_money(summary.total, currency)}"
    if summary.status == "partial":
        unavailable = len(summary.unavailable_items or [])
        return f"{len(summary.items)} items available, {unavailable} items unavailable or insufficient stock"
    return "None of the requested items are available in sufficient quantities"


class PricingEngine:
    """Resolve mentions against the catalog and build priced order summaries."""

    def __init__(self, store: CatalogStore, matcher: ProductMatcher) -> None:
        self._store = store
        self._matcher = matcher

    def check_item(self, mention: ItemMention, claimed: Optional[Mapping[str, int]] = None) -> Optional[StockCheck]:
        """Purpose: Resolve one mention and compare its quantity with current stock.
        Inputs/Outputs: Inputs are an ItemMention and the units per product that earlier
            lines of the same order already claimed; output is a StockCheck or None
            when no product matches.
        Side Effects / State: Reads the catalog snapshot.
        Dependencies: Uses ProductMatcher.match and extract_quantity.
        Failure Modes: Missing or non-positive explicit quantities fall back to the
            quantity found in the query text (default 1).
        If Removed: evaluate() has no per-item availability signal.
        Testing Notes: Pass a mention with and without quantity and compare; a claimed
            count equal to the stock must make the item unavailable.
        """
        # Prefer the explicit quantity; otherwise read it from the query text.
        product = self._matcher.match(mention.query)
        if product is None:
            return None
        if mention.quantity is not None and mention.quantity > 0:
            quantity = mention.quantity
        else:
            quantity = extract_quantity(mention.query)
        return StockCheck(
            product=product,
            requested_quantity=quantity,
            current_stock=product.stock,
            available=product.stock - (claimed or {}).get(product.id, 0) >= quantity,
        )

    def _evaluate(self, mentions: Sequence[ItemMention]) -> Tuple[OrderSummary, List[StockCheck]]:
        stock_checks: List[StockCheck] = []
        lines: List[OrderLine] = []
        reasons: List[str] = []
        claimed: Dict[str, int] = {}

        for mention in mentions:
            stock_check = self.check_item(mention, claimed)
            if stock_check is None:
                reasons.append(f'Product not found: "{mention.query}"')
                continue
            stock_checks.append(stock_check)
            product = stock_check.product
            if stock_check.available:
                claimed[product.id] = claimed.get(product.id, 0) + stock_check.requested_quantity
                lines.append(
                    OrderLine(
                        product_id=product.id,
                        product_name=product.name,
                        quantity=stock_check.requested_quantity,
                        unit_price=product.price,
                        subtotal=product.price * stock_check.requested_quantity,
                    )
                )
            else:
                remaining = stock_check.current_stock - claimed.get(product.id, 0)
                reasons.append(
                    f"{product.name}: insufficient stock, {remaining} available, "
                    f"{stock_check.requested_quantity} requested"
                )

        summary = summarize_order(lines, reasons, self._store.policy())
        logger.info(
            "mentions=%d lines=%d unavailable=%d status=%s total=%.2f",
            len(mentions),
            len(lines),
            len(reasons),
            summary.status,
            summary.total,
        )
        return summary, stock_checks

    def evaluate(self, mentions: Sequence[ItemMention]) -> OrderSummary:
        """Price the mentions; raises CatalogError when the catalog cannot be read."""
        summary, _ = self._evaluate(mentions)
        return summary

    def check(self, mentions: Sequence[ItemMention]) -> InventoryCheck:
        """Purpose: Price mentions and report stock checks plus a status line.
        Inputs/Outputs: Input is a mention list; output is an InventoryCheck.
        Side Effects / State: Reads the catalog snapshot only; never mutates stock.
        Dependencies: Uses _evaluate and describe_summary.
        Failure Modes: Catalog read errors return success=False with no summary.
        If Removed: The workflow and tool front end lose their availability answer.
        Testing Notes: Break the catalog file and expect "Inventory system unavailable".
        """
        # Convert catalog failures into an in-band result.
        try:
            summary, stock_checks = self._evaluate(mentions)
            currency = self._store.policy().currency
        except CatalogError:
            logger.exception("inventory check failed")
            return InventoryCheck(success=False, message="Inventory system unavailable")
        return InventoryCheck(
            success=True,
            order_summary=summary,
            stock_checks=stock_checks,
            message=describe_summary(summary, currency),
        )

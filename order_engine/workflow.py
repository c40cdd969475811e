"""Order workflow: classify, price, reserve, finalize.

Role:
    Sequences the intent classifier, the pricing engine, and (conditionally) the
    reservation engine for one prompt and packs the outcome into a WorkflowResult.
    Each call starts from a fresh WorkflowContext; nothing is carried between calls.

State progression:
    START -> CLASSIFIED      classify step, always runs.
    CLASSIFIED -> PRICED     price step, skipped for general questions and for
                             product inquiries without mentions.
    PRICED -> RESERVED       reserve step, only for place_order with an
                             "available" summary.
    * -> DONE                finalize step, always runs and builds the envelope.

Failure policy:
    Catalog failures surface in-band from the engines. Anything else raised by a
    step is logged and replaced by one generic error envelope.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .inventory.catalog_store import CatalogStore
from .inventory.reservation import ReservationEngine
from .intent import Classification, IntentClassifier
from .models import InventoryCheck, ReservationResult, StoreStatus, WorkflowMetadata, WorkflowResult
from .pricing import PricingEngine, format_money
from .step_runner import Step, StepRunner

logger = logging.getLogger("order_engine.workflow")

GENERIC_ERROR_MESSAGE = "Sorry, I encountered an error processing your request. Please try again."

NEXT_ACTIONS_BY_STATUS: Dict[str, List[str]] = {
    "available": [
        'Reply "CONFIRM ORDER" to place this order',
        "Ask questions about shipping or returns",
    ],
    "partial": [
        'Reply "CONFIRM PARTIAL" to order available items only',
        'Reply "WAIT RESTOCK" to be notified when all items are available',
    ],
    "unavailable": [
        "Browse our available products",
        "Ask for alternative product suggestions",
    ],
}
GENERAL_NEXT_ACTIONS = ["Ask about specific products", "Browse our toy categories", "Place an order"]
RESERVED_NEXT_ACTIONS = ["Items reserved in inventory", "Shipping notification will follow"]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class WorkflowContext:
    """Mutable context passed through each workflow step."""
    prompt: str
    customer: Dict[str, str] = field(default_factory=dict)
    started: float = field(default_factory=time.perf_counter)
    components: List[str] = field(default_factory=list)
    classification: Optional[Classification] = None
    inventory: Optional[InventoryCheck] = None
    reservation: Optional[ReservationResult] = None
    result: Optional[WorkflowResult] = None

    @property
    def intent(self) -> str:
        return self.classification.intent if self.classification else "general_question"

    def needs_pricing(self) -> bool:
        if self.classification is None:
            return False
        if self.intent in ("check_availability", "place_order"):
            return True
        return self.intent == "product_inquiry" and bool(self.classification.mentions)

    def should_reserve(self) -> bool:
        if self.intent != "place_order" or self.inventory is None:
            return False
        summary = self.inventory.order_summary
        return self.inventory.success and summary is not None and summary.status == "available"

    def metadata(self, action: str) -> WorkflowMetadata:
        return WorkflowMetadata(
            components_used=list(self.components),
            action_performed=action,
            intent=self.classification.intent if self.classification else None,
            confidence=self.classification.confidence if self.classification else None,
            execution_ms=round((time.perf_counter() - self.started) * 1000, 3),
            timestamp=_timestamp(),
        )


class OrderWorkflow:
    def __init__(
        self,
        store: CatalogStore,
        classifier: IntentClassifier,
        pricing: PricingEngine,
        reservations: ReservationEngine,
        browse_limit: int = 6,
        status_threshold: int = 3,
    ) -> None:
        """Purpose: Wire the engines into an ordered step runner.
        Inputs/Outputs: Inputs are the catalog store, the three engines, the browse list
            size, and the store-status low-stock threshold; no return value.
        Side Effects / State: Constructs a StepRunner with ordered steps.
        Dependencies: Uses StepRunner/Step and the step methods on this class.
        Failure Modes: None at init; runtime errors occur within step functions.
        If Removed: Callers must sequence the engines themselves.
        Testing Notes: Build over a tmp catalog and verify step order.
        """
        # Store dependencies and build the step runner.
        self._store = store
        self._classifier = classifier
        self._pricing = pricing
        self._reservations = reservations
        self._browse_limit = browse_limit
        self._status_threshold = status_threshold
        self._runner = StepRunner(
            steps=[
                Step("classify", self._step_classify),
                Step("price", self._step_price, skip_if=lambda ctx: not ctx.needs_pricing()),
                Step("reserve", self._step_reserve, skip_if=lambda ctx: not ctx.should_reserve()),
                Step("finalize", self._step_finalize, always_run=True),
            ]
        )

    def process(self, prompt: str, customer: Optional[Dict[str, str]] = None) -> WorkflowResult:
        """Purpose: Run the full workflow for one prompt and return its envelope.
        Inputs/Outputs: Inputs are the raw prompt and optional customer identity (name,
            email); output is a WorkflowResult.
        Side Effects / State: May decrement persisted stock for place_order prompts.
        Dependencies: Uses StepRunner.run and WorkflowContext.
        Failure Modes: Unexpected exceptions are logged and converted to the generic
            error envelope with action_performed="error_handling".
        If Removed: The transport layer has no single entry point into the engine.
        Testing Notes: Patch a step to raise and assert the error envelope.
        """
        # Run the steps; any escaped exception becomes the generic envelope.
        context = WorkflowContext(prompt=prompt or "", customer=dict(customer or {}))
        logger.info("prompt=%r customer=%s", context.prompt, context.customer.get("name", "-"))
        try:
            executed = self._runner.run(context)
        except Exception:
            logger.exception("workflow failed prompt=%r", context.prompt)
            return WorkflowResult(
                success=False,
                result=GENERIC_ERROR_MESSAGE,
                metadata=WorkflowMetadata(
                    components_used=["workflow"],
                    action_performed="error_handling",
                    execution_ms=round((time.perf_counter() - context.started) * 1000, 3),
                    timestamp=_timestamp(),
                ),
            )
        result = context.result
        logger.info(
            "intent=%s action=%s success=%s steps=%s",
            context.intent,
            result.metadata.action_performed,
            result.success,
            ",".join(executed),
        )
        return result

    def _step_classify(self, context: WorkflowContext) -> None:
        context.components.append("intent-classifier")
        context.classification = self._classifier.classify(context.prompt)

    def _step_price(self, context: WorkflowContext) -> None:
        context.components.append("pricing-engine")
        context.inventory = self._pricing.check(context.classification.mentions)

    def _step_reserve(self, context: WorkflowContext) -> None:
        context.components.append("reservation-engine")
        context.reservation = self._reservations.reserve(context.inventory.order_summary)

    def _step_finalize(self, context: WorkflowContext) -> None:
        """Purpose: Translate the context into the terminal WorkflowResult.
        Inputs/Outputs: Input is WorkflowContext; sets context.result.
        Side Effects / State: Reads the catalog for the browse list only.
        Dependencies: Uses NEXT_ACTIONS_BY_STATUS and the per-intent builders below.
        Failure Modes: Catalog read errors on the browse path propagate to process().
        If Removed: process() has nothing to return.
        Testing Notes: Cover one prompt per intent and per order status.
        """
        # Route on intent; pricing outcome decides the rest.
        if context.intent == "general_question":
            context.result = self._general_result(context)
        elif context.intent == "product_inquiry":
            context.result = self._inquiry_result(context)
        elif context.intent == "check_availability":
            context.result = self._availability_result(context)
        else:
            context.result = self._order_result(context)

    def _general_result(self, context: WorkflowContext) -> WorkflowResult:
        return WorkflowResult(
            success=True,
            result="I can check availability, place orders, and share store information.",
            next_actions=list(GENERAL_NEXT_ACTIONS),
            metadata=context.metadata("general_inquiry_response"),
        )

    def _inquiry_result(self, context: WorkflowContext) -> WorkflowResult:
        if context.inventory is None:
            # No mentions: hand back a browse list instead of pricing.
            products = self._store.all()[: self._browse_limit]
            metadata = context.metadata("product_browsing")
            metadata.browse_product_ids = [product.id for product in products]
            return WorkflowResult(
                success=True,
                result=f"Here are {len(products)} of our popular toys.",
                next_actions=["Ask about specific products", "Place an order"],
                metadata=metadata,
            )
        inventory = context.inventory
        if not inventory.success:
            return WorkflowResult(
                success=False,
                result="Sorry, I could not check inventory at this time. Please try again later.",
                metadata=context.metadata("inventory_check_failed"),
            )
        if not inventory.stock_checks:
            return WorkflowResult(
                success=False,
                result="I could not find information about those products. Could you be more specific?",
                order_summary=inventory.order_summary,
                metadata=context.metadata("product_not_found"),
            )
        names = ", ".join(check.product.name for check in inventory.stock_checks if check.product)
        return WorkflowResult(
            success=True,
            result=f"Here's what I found: {names}",
            order_summary=inventory.order_summary,
            next_actions=["Place an order"],
            metadata=context.metadata("specific_product_inquiry"),
        )

    def _availability_result(self, context: WorkflowContext) -> WorkflowResult:
        inventory = context.inventory
        if inventory is None or not inventory.success or inventory.order_summary is None:
            return WorkflowResult(
                success=False,
                result="Sorry, I could not check inventory at this time. Please try again later.",
                metadata=context.metadata("inventory_check_failed"),
            )
        summary = inventory.order_summary
        return WorkflowResult(
            success=True,
            result=f"Order check complete! {inventory.message}",
            order_summary=summary,
            next_actions=list(NEXT_ACTIONS_BY_STATUS[summary.status]),
            metadata=context.metadata("order_availability_check"),
        )

    def _order_result(self, context: WorkflowContext) -> WorkflowResult:
        """Purpose: Build the envelope for a place_order prompt.
        Inputs/Outputs: Input is WorkflowContext after pricing/reservation; output is a
            WorkflowResult.
        Side Effects / State: None.
        Dependencies: Uses context.inventory and context.reservation.
        Failure Modes: Pricing failure yields order_placement_failed; a rejected
            reservation yields order_reservation_failed with the summary attached.
        If Removed: Placed orders have no terminal envelope.
        Testing Notes: Force a reservation failure by draining stock between pricing and reserve.
        """
        # Reserved, reservation failed, or rejected before reserving.
        inventory = context.inventory
        if inventory is None or not inventory.success or inventory.order_summary is None:
            return WorkflowResult(
                success=False,
                result="Sorry, I could not process your order at this time.",
                metadata=context.metadata("order_placement_failed"),
            )
        summary = inventory.order_summary
        reservation = context.reservation
        if reservation is None:
            return WorkflowResult(
                success=False,
                result=f"Order cannot be completed: {inventory.message}",
                order_summary=summary,
                next_actions=list(NEXT_ACTIONS_BY_STATUS[summary.status]),
                metadata=context.metadata("order_placement_unavailable"),
            )
        if not reservation.success:
            return WorkflowResult(
                success=False,
                result=f"Order could not be completed: {reservation.message}",
                order_summary=summary,
                metadata=context.metadata("order_reservation_failed"),
            )
        metadata = context.metadata("order_placed_and_reserved")
        metadata.reservation = list(reservation.updated_products)
        currency = self._store.policy().currency
        return WorkflowResult(
            success=True,
            result=(
                "Order placed successfully! Items have been reserved. "
                f"Total: {format_money(summary.total, currency)}"
            ),
            order_summary=summary,
            next_actions=list(RESERVED_NEXT_ACTIONS),
            metadata=metadata,
        )

    def store_status(self, threshold: Optional[int] = None) -> StoreStatus:
        """Snapshot of store policy, low-stock alerts, and product count."""
        limit = self._status_threshold if threshold is None else threshold
        return StoreStatus(
            store_info=self._store.policy(),
            low_stock_alerts=self._reservations.low_stock(limit),
            total_products=len(self._store.stock_levels()),
            timestamp=_timestamp(),
        )

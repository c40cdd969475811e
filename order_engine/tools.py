from __future__ import annotations

"""Function-calling surface over the pricing and reservation engines.

TOOL_DECLARATIONS describes each tool as a JSON-schema dict that an external
model-driven front end can register. ToolDispatcher validates the arguments it
receives back and routes them to the engines; every outcome is a plain dict.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from .inventory.catalog_store import CatalogError, CatalogStore
from .inventory.reservation import ReservationEngine
from .models import ItemMention, OrderSummary
from .pricing import PricingEngine
from .utils import load_json_object

logger = logging.getLogger("order_engine.tools")

RETURN_POLICY = {"return_days": 14, "condition": "Items must be in original packaging"}
DEFAULT_OPENING_HOURS = "Monday to Friday: 9:00 - 18:00"

TOOL_DECLARATIONS: List[Dict[str, Any]] = [
    {
        "name": "check_inventory",
        "description": "Check product availability and calculate order totals",
        "parameters": {
            "type": "object",
            "properties": {
                "items": {
                    "type": "array",
                    "description": "List of items to check",
                    "items": {
                        "type": "object",
                        "properties": {
                            "product_query": {
                                "type": "string",
                                "description": "Product name or description (e.g. 'LEGO Creator set')",
                            },
                            "quantity": {"type": "integer", "description": "Quantity requested", "default": 1},
                        },
                        "required": ["product_query"],
                    },
                }
            },
            "required": ["items"],
        },
    },
    {
        "name": "get_store_info",
        "description": "Get store information like hours, contact details, policies",
        "parameters": {
            "type": "object",
            "properties": {
                "info_type": {
                    "type": "string",
                    "enum": ["hours", "contact", "shipping", "returns", "general"],
                    "description": "Type of store information requested",
                }
            },
            "required": ["info_type"],
        },
    },
    {
        "name": "update_inventory",
        "description": "Reserve or cancel an order, or restock a single product",
        "parameters": {
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["reserve", "cancel", "restock"],
                    "description": "Action to perform on inventory",
                },
                "order_summary": {"type": "object", "description": "Order details for reserve/cancel"},
                "product_id": {"type": "string", "description": "Product to restock"},
                "quantity": {"type": "integer", "description": "Units to add when restocking"},
            },
            "required": ["action"],
        },
    },
]


class ToolItem(BaseModel):
    product_query: str = Field(min_length=1)
    quantity: Optional[int] = None


class CheckInventoryArgs(BaseModel):
    items: List[ToolItem]


class StoreInfoArgs(BaseModel):
    info_type: Literal["hours", "contact", "shipping", "returns", "general"] = "general"


class UpdateInventoryArgs(BaseModel):
    action: Literal["reserve", "cancel", "restock"]
    order_summary: Optional[OrderSummary] = None
    product_id: Optional[str] = None
    quantity: Optional[int] = None


def _failure(message: str) -> Dict[str, Any]:
    return {"success": False, "message": message}


class ToolDispatcher:
    """Route tool calls by name to the engines and return JSON-ready dicts."""

    def __init__(self, store: CatalogStore, pricing: PricingEngine, reservations: ReservationEngine) -> None:
        self._store = store
        self._pricing = pricing
        self._reservations = reservations
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            "check_inventory": self._check_inventory,
            "get_store_info": self._get_store_info,
            "update_inventory": self._update_inventory,
        }

    @property
    def tool_names(self) -> List[str]:
        return list(self._handlers)

    def dispatch(self, name: str, args: Union[Dict[str, Any], str, None]) -> Dict[str, Any]:
        """Purpose: Execute one tool call and return its result dict.
        Inputs/Outputs: Inputs are the tool name and its arguments as a dict or JSON
            string; output is a dict that always carries "success".
        Side Effects / State: update_inventory mutates persisted stock.
        Dependencies: Uses load_json_object and the per-tool pydantic argument models.
        Failure Modes: Unknown tools, unparsable JSON, and invalid arguments return
            {"success": False, "message": ...}; nothing is raised.
        If Removed: A model-driven front end has no way to reach the engines.
        Testing Notes: Pass a JSON string, a dict, and a malformed payload.
        """
        # Normalize arguments, then hand off to the named handler.
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("tool=%s unknown", name)
            return _failure(f"Unknown function: {name}")
        if args is None:
            payload: Optional[Dict[str, Any]] = {}
        elif isinstance(args, str):
            payload = load_json_object(args) if args.strip() else {}
        else:
            payload = dict(args)
        if payload is None:
            logger.warning("tool=%s args_unparsable=%r", name, args)
            return _failure("Arguments must be a JSON object")

        logger.info("tool=%s args=%s", name, json.dumps(payload, ensure_ascii=True, default=str))
        try:
            return handler(payload)
        except ValidationError as exc:
            logger.warning("tool=%s invalid_args errors=%d", name, exc.error_count())
            return _failure(f"Invalid arguments for {name}: {exc.errors()[0]['msg']}")

    def _check_inventory(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        args = CheckInventoryArgs.model_validate(payload)
        mentions = [ItemMention(query=item.product_query, quantity=item.quantity) for item in args.items]
        check = self._pricing.check(mentions)
        return check.model_dump(mode="json")

    def _get_store_info(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Purpose: Return structured store fields for one info category.
        Inputs/Outputs: Input is {"info_type": ...}; output is a dict with "info" holding
            the category fields and "store_details" holding the full policy.
        Side Effects / State: Reads the catalog snapshot.
        Dependencies: Uses CatalogStore.policy.
        Failure Modes: An unreadable catalog returns "Store information not available".
        If Removed: Hours/contact/shipping questions cannot be answered from data.
        Testing Notes: Request each info_type and check the keys.
        """
        # Pick the subset of policy fields for the requested category.
        args = StoreInfoArgs.model_validate(payload)
        try:
            policy = self._store.policy()
        except CatalogError:
            logger.exception("store info unavailable")
            return _failure("Store information not available")
        hours = policy.opening_hours or DEFAULT_OPENING_HOURS
        if args.info_type == "hours":
            info: Dict[str, Any] = {"opening_hours": hours}
        elif args.info_type == "contact":
            info = {"phone": policy.phone, "email": policy.email, "location": policy.location}
        elif args.info_type == "shipping":
            info = {
                "shipping_cost": policy.shipping_cost,
                "free_shipping_threshold": policy.free_shipping_threshold,
                "currency": policy.currency,
            }
        elif args.info_type == "returns":
            info = dict(RETURN_POLICY)
        else:
            info = {"name": policy.name, "location": policy.location, "phone": policy.phone, "opening_hours": hours}
        return {
            "success": True,
            "info_type": args.info_type,
            "info": info,
            "store_details": policy.model_dump(mode="json"),
        }

    def _update_inventory(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        args = UpdateInventoryArgs.model_validate(payload)
        if args.action == "restock":
            if not args.product_id or args.quantity is None:
                return _failure("product_id and quantity required for restock")
            result = self._reservations.restock(args.product_id, args.quantity)
        elif args.order_summary is None:
            label = "reservation" if args.action == "reserve" else "cancellation"
            return _failure(f"Order summary required for {label}")
        elif args.action == "reserve":
            result = self._reservations.reserve(args.order_summary)
        else:
            result = self._reservations.cancel(args.order_summary)
        return result.model_dump(mode="json")

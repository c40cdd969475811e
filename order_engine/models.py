from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

OrderStatus = Literal["available", "partial", "unavailable"]
IntentLabel = Literal["check_availability", "place_order", "product_inquiry", "general_question"]


class Product(BaseModel):
    """Catalog product record as persisted in the catalog file."""
    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    category: str = ""
    age_range: str = ""
    description: str = ""


class StorePolicy(BaseModel):
    """Store contact fields and pricing policy constants."""
    name: str = ""
    location: str = ""
    phone: str = ""
    email: str = ""
    currency: str = "EUR"
    tax_rate: float = Field(ge=0)
    shipping_cost: float = Field(ge=0)
    free_shipping_threshold: float = Field(ge=0)
    opening_hours: Optional[str] = None


class CatalogState(BaseModel):
    """Full persisted catalog: products keyed by id in declaration order plus store policy."""
    products: Dict[str, Product] = Field(default_factory=dict)
    store_info: StorePolicy

    @model_validator(mode="after")
    def _check_product_keys(self) -> "CatalogState":
        for key, product in self.products.items():
            if key != product.id:
                raise ValueError(f"product key {key!r} does not match id {product.id!r}")
        return self


class ItemMention(BaseModel):
    """Prompt fragment referring to one product, with an optional explicit quantity."""
    query: str
    quantity: Optional[int] = None


class StockCheck(BaseModel):
    """Stock comparison for one resolved mention."""
    product: Optional[Product] = None
    requested_quantity: int
    current_stock: int
    available: bool


class OrderLine(BaseModel):
    """Priced line for an in-stock product."""
    model_config = ConfigDict(frozen=True)

    product_id: str
    product_name: str
    quantity: int = Field(gt=0)
    unit_price: float = Field(ge=0)
    subtotal: float = Field(ge=0)


class OrderSummary(BaseModel):
    """Priced, status-tagged result of evaluating one request's mentions."""
    model_config = ConfigDict(frozen=True)

    items: List[OrderLine] = Field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    shipping: float = 0.0
    total: float = 0.0
    status: OrderStatus
    unavailable_items: Optional[List[str]] = None


class InventoryCheck(BaseModel):
    """Pricing engine answer: summary, per-mention stock checks, and a status line."""
    success: bool
    order_summary: Optional[OrderSummary] = None
    stock_checks: List[StockCheck] = Field(default_factory=list)
    message: str


class StockDelta(BaseModel):
    """Stock change applied to one product by a committed catalog update."""
    product_id: str
    old_stock: int
    new_stock: int


class ReservationResult(BaseModel):
    """Outcome of a reserve/cancel/restock/batch update."""
    success: bool
    updated_products: List[StockDelta] = Field(default_factory=list)
    message: str


class LowStockAlert(BaseModel):
    """Product at or below the restock threshold."""
    product_id: str
    product_name: str
    current_stock: int
    threshold: int


class WorkflowMetadata(BaseModel):
    """Trace of which components ran and what the workflow did."""
    components_used: List[str]
    action_performed: str
    intent: Optional[IntentLabel] = None
    confidence: Optional[float] = None
    execution_ms: float = 0.0
    timestamp: str = ""
    reservation: Optional[List[StockDelta]] = None
    browse_product_ids: Optional[List[str]] = None


class WorkflowResult(BaseModel):
    """Uniform envelope returned to the transport layer for every request."""
    success: bool
    result: str
    order_summary: Optional[OrderSummary] = None
    next_actions: Optional[List[str]] = None
    metadata: WorkflowMetadata


class StoreStatus(BaseModel):
    """Store snapshot: policy, low-stock alerts, and product count."""
    store_info: StorePolicy
    low_stock_alerts: List[LowStockAlert]
    total_products: int
    timestamp: str

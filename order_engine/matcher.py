from __future__ import annotations

"""Tiered resolution of free-text product queries to catalog products.

Tiers run in order over the whole catalog and the first hit wins:
exact id, exact name, brand plus line qualifier, then a loose fragment test.
"""

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .inventory.catalog_store import CatalogStore
from .models import Product
from .utils import normalize_text

logger = logging.getLogger("order_engine.matcher")

# Brand token -> line qualifiers. A brand with no qualifiers matches on the brand alone.
BRAND_LINES: Dict[str, Tuple[str, ...]] = {
    "lego": ("creator", "technic"),
    "playmobil": ("castle",),
    "monopoly": (),
    "barbie": (),
    "hot wheels": (),
}


def matches_id(query: str, product: Product, brand_lines: Mapping[str, Sequence[str]]) -> bool:
    return query == product.id.lower()


def matches_name(query: str, product: Product, brand_lines: Mapping[str, Sequence[str]]) -> bool:
    return query == normalize_text(product.name)


def matches_brand_line(query: str, product: Product, brand_lines: Mapping[str, Sequence[str]]) -> bool:
    """Purpose: Match on a shared brand token plus, when the brand has lines, a shared line.
    Inputs/Outputs: Inputs are the normalized query, a product, and the brand table;
        output is True when the brand (and a qualifier, if any are configured) appears
        in both the query and the product name.
    Side Effects / State: None; pure function.
    Dependencies: Uses normalize_text on the product name.
    Failure Modes: Brands absent from the table never match at this tier.
    If Removed: "lego technic jeep" falls through to the fragment tier and resolves to
        the first LEGO product in the catalog.
    Testing Notes: Catalog with Creator before Technic; query for Technic must pick Technic.
    """
    # Check every brand shared by query and name; a brand with lines needs a shared line too.
    name = normalize_text(product.name)
    for brand, lines in brand_lines.items():
        if brand not in query or brand not in name:
            continue
        if not lines:
            return True
        if any(line in query and line in name for line in lines):
            return True
    return False


def matches_fragment(query: str, product: Product, brand_lines: Mapping[str, Sequence[str]]) -> bool:
    # Name contains the whole query, or the query contains the name's first word.
    name = normalize_text(product.name)
    if query in name:
        return True
    words = name.split()
    return bool(words) and words[0] in query


MATCH_TIERS: List[Tuple[str, Callable[[str, Product, Mapping[str, Sequence[str]]], bool]]] = [
    ("id", matches_id),
    ("name", matches_name),
    ("brand", matches_brand_line),
    ("fragment", matches_fragment),
]


def match_product(
    query: str,
    products: Iterable[Product],
    brand_lines: Optional[Mapping[str, Sequence[str]]] = None,
) -> Optional[Product]:
    """Purpose: Resolve a query to at most one product using the ordered match tiers.
    Inputs/Outputs: Inputs are query text, products in declaration order, and an optional
        brand table; output is the first matching Product or None.
    Side Effects / State: None; pure function.
    Dependencies: Uses MATCH_TIERS and normalize_text.
    Failure Modes: Blank queries and unmatched queries return None.
    If Removed: Pricing cannot turn mentions into products.
    Testing Notes: Verify each tier in isolation and that earlier tiers win over later ones.
    """
    # Scan the whole catalog per tier so a stronger tier always beats a weaker one.
    normalized = normalize_text(query)
    if not normalized:
        return None
    table = BRAND_LINES if brand_lines is None else brand_lines
    candidates = list(products)
    for tier_name, tier in MATCH_TIERS:
        for product in candidates:
            if tier(normalized, product, table):
                logger.debug("query=%s product=%s tier=%s", normalized, product.id, tier_name)
                return product
    return None


class ProductMatcher:
    """Resolve queries against the live catalog."""

    def __init__(self, store: CatalogStore, brand_lines: Optional[Mapping[str, Sequence[str]]] = None) -> None:
        self._store = store
        self._brand_lines = dict(BRAND_LINES if brand_lines is None else brand_lines)

    def match(self, query: str) -> Optional[Product]:
        return match_product(query, self._store.all(), self._brand_lines)

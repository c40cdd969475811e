from __future__ import annotations

import re

# First digit run, optionally followed by an "x" multiplier ("3x", "3 x").
QUANTITY_RE = re.compile(r"(\d+)\s*x?", re.IGNORECASE)

DEFAULT_QUANTITY = 1


def extract_quantity(text: str) -> int:
    """Purpose: Derive a requested quantity from a query fragment.
    Inputs/Outputs: Input is free text; output is a positive int.
    Side Effects / State: None; pure function.
    Dependencies: Uses QUANTITY_RE.
    Failure Modes: No digits, zero, or unparsable digits fall back to DEFAULT_QUANTITY.
    If Removed: Mentions without an explicit quantity cannot be priced.
    Testing Notes: Validate "2x lego", "lego x 3", "0 barbie" and plain "barbie".
    """
    # Use the first digit run only; anything non-positive counts as absent.
    match = QUANTITY_RE.search(text or "")
    if not match:
        return DEFAULT_QUANTITY
    try:
        value = int(match.group(1))
    except ValueError:
        return DEFAULT_QUANTITY
    return value if value > 0 else DEFAULT_QUANTITY

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    """Configuration container for catalog location, stock thresholds, and logging."""
    catalog_path: Path
    low_stock_threshold: int
    status_low_stock_threshold: int
    browse_limit: int
    log_level: str


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for the default catalog path.
    Failure Modes: Invalid LOW_STOCK_THRESHOLD/STATUS_LOW_STOCK_THRESHOLD/BROWSE_LIMIT
        env values raise ValueError.
    If Removed: The service cannot locate the catalog and fails at startup.
    Testing Notes: Verify defaults and overrides via environment variables.
    """
    # Resolve the catalog path, then build Settings.
    catalog_path = os.getenv("CATALOG_PATH")
    if catalog_path:
        catalog_file = Path(catalog_path)
    else:
        catalog_file = (BASE_DIR / ".." / "data" / "catalog.json").resolve()

    return Settings(
        catalog_path=catalog_file,
        low_stock_threshold=int(os.getenv("LOW_STOCK_THRESHOLD", "5")),
        status_low_stock_threshold=int(os.getenv("STATUS_LOW_STOCK_THRESHOLD", "3")),
        browse_limit=int(os.getenv("BROWSE_LIMIT", "6")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

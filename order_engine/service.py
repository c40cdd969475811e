from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import BASE_DIR, Settings, load_settings
from .intent import IntentClassifier
from .inventory.catalog_store import CatalogStore, JsonCatalogFile
from .inventory.reservation import ReservationEngine
from .matcher import ProductMatcher
from .pricing import PricingEngine
from .tools import ToolDispatcher
from .workflow import OrderWorkflow

ENV_PATH = BASE_DIR / ".env"

logger = logging.getLogger("order_engine.service")


def configure_logging(level_name: str) -> None:
    """Apply LOG_LEVEL to the root handler (only if none exists) and the package logger."""
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    logging.getLogger("order_engine").setLevel(log_level)


@dataclass
class OrderService:
    """Wired engine components sharing one catalog store."""
    settings: Settings
    store: CatalogStore
    matcher: ProductMatcher
    classifier: IntentClassifier
    pricing: PricingEngine
    reservations: ReservationEngine
    workflow: OrderWorkflow
    tools: ToolDispatcher


def build_service(settings: Optional[Settings] = None, env_path: Optional[Path] = None) -> OrderService:
    """Purpose: Build the catalog store and every engine on top of it.
    Inputs/Outputs: Optional Settings (loaded from env when omitted) and .env path;
        returns an OrderService.
    Side Effects / State: Loads the .env file into os.environ when present and configures
        logging. The catalog itself loads lazily on first use.
    Dependencies: Uses python-dotenv, load_settings, and all engine constructors.
    Failure Modes: Invalid integer env values raise ValueError from load_settings.
    If Removed: Callers would have to wire the store and engines by hand.
    Testing Notes: Pass Settings pointing at a tmp catalog and run a prompt end to end.
    """
    # Env first, then settings, then components bottom-up.
    if settings is None:
        dotenv_path = env_path or ENV_PATH
        if dotenv_path.exists():
            load_dotenv(dotenv_path, override=True)
        settings = load_settings()
    configure_logging(settings.log_level)

    store = CatalogStore(JsonCatalogFile(settings.catalog_path))
    matcher = ProductMatcher(store)
    classifier = IntentClassifier()
    pricing = PricingEngine(store, matcher)
    reservations = ReservationEngine(store, low_stock_threshold=settings.low_stock_threshold)
    workflow = OrderWorkflow(
        store,
        classifier,
        pricing,
        reservations,
        browse_limit=settings.browse_limit,
        status_threshold=settings.status_low_stock_threshold,
    )
    logger.info("service ready catalog=%s", settings.catalog_path)
    return OrderService(
        settings=settings,
        store=store,
        matcher=matcher,
        classifier=classifier,
        pricing=pricing,
        reservations=reservations,
        workflow=workflow,
        tools=ToolDispatcher(store, pricing, reservations),
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="order-engine", description="Run one prompt through the order workflow.")
    parser.add_argument("prompt", nargs="?", help="customer prompt; omit with --status")
    parser.add_argument("--customer-name", default=None)
    parser.add_argument("--status", action="store_true", help="print store status instead")
    args = parser.parse_args(argv)

    service = build_service()
    if args.status:
        output = service.workflow.store_status()
    elif args.prompt:
        customer = {"name": args.customer_name} if args.customer_name else None
        output = service.workflow.process(args.prompt, customer=customer)
    else:
        parser.error("a prompt is required unless --status is given")
    sys.stdout.write(output.model_dump_json(indent=2) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())

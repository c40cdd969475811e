from __future__ import annotations

"""Catalog persistence and the single critical section for stock mutations.

The catalog lives in one JSON file holding every product and the store policy.
Reads are served from an in-memory snapshot; every write reloads the whole file,
applies the change, and writes the whole file back while holding one process-wide
lock, so two writers never interleave.
"""

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, TypeVar

from pydantic import ValidationError

from ..models import CatalogState, Product, StorePolicy

logger = logging.getLogger("order_engine.catalog")

T = TypeVar("T")


class CatalogError(Exception):
    """Base error for catalog persistence failures."""


class CatalogUnavailableError(CatalogError):
    """The persisted catalog is missing, unreadable, or invalid."""


class CatalogPersistError(CatalogError):
    """Writing the catalog back to its persisted source failed."""


class JsonCatalogFile:
    """Load/save collaborator for a catalog stored as one JSON document."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> CatalogState:
        """Purpose: Read and validate the full catalog from disk.
        Inputs/Outputs: No inputs; returns a CatalogState.
        Side Effects / State: Reads the catalog file.
        Dependencies: Uses json and the CatalogState pydantic model.
        Failure Modes: Missing file, bad encoding, bad JSON, or schema violations raise
            CatalogUnavailableError with the original error chained.
        If Removed: The store has no source of products or store policy.
        Testing Notes: Load a valid file, then a truncated one, and check the error type.
        """
        # Read bytes first so a BOM-prefixed file still decodes.
        try:
            raw_bytes = self._path.read_bytes()
        except OSError as exc:
            raise CatalogUnavailableError(f"cannot read catalog {self._path}: {exc}") from exc
        try:
            data = json.loads(raw_bytes.decode("utf-8-sig"))
            return CatalogState.model_validate(data)
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            raise CatalogUnavailableError(f"invalid catalog {self._path}: {exc}") from exc

    def save(self, state: CatalogState) -> None:
        """Purpose: Persist the full catalog to disk.
        Inputs/Outputs: Input is a CatalogState; no return value.
        Side Effects / State: Writes a sibling temp file and renames it over the catalog.
        Dependencies: Uses json.dumps, Path.write_text and os.replace.
        Failure Modes: IO errors raise CatalogPersistError; the original file is left intact.
        If Removed: Stock changes never survive a restart.
        Testing Notes: Save then load and compare; point at a read-only dir to see the error.
        """
        # Write to a temp file first so a failed write cannot truncate the catalog.
        payload = json.dumps(state.model_dump(mode="json", exclude_none=True), ensure_ascii=False, indent=2)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            tmp_path.write_text(payload + "\n", encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise CatalogPersistError(f"cannot write catalog {self._path}: {exc}") from exc


class CatalogEdit:
    """Working copy handed to an edit block; call discard() to skip the write."""

    def __init__(self, state: CatalogState) -> None:
        self.state = state
        self.discarded = False

    def discard(self) -> None:
        self.discarded = True


class CatalogStore:
    """Read access to products/policy and the load-modify-persist update primitive."""

    def __init__(self, source: JsonCatalogFile) -> None:
        """Purpose: Wrap a persistence collaborator with a snapshot cache and write lock.
        Inputs/Outputs: Input is the load/save collaborator; no return value.
        Side Effects / State: Creates the process-wide lock; the catalog loads lazily.
        Dependencies: Uses JsonCatalogFile-compatible load()/save().
        Failure Modes: None at init; reads raise CatalogUnavailableError on bad data.
        If Removed: Matcher, pricing, and reservation have no catalog to work on.
        Testing Notes: Construct over a tmp file and read products without calling load.
        """
        self._source = source
        self._state: Optional[CatalogState] = None
        self._lock = threading.Lock()

    def _snapshot(self) -> CatalogState:
        state = self._state
        if state is None:
            state = self._source.load()
            self._state = state
            logger.info("catalog loaded products=%d", len(state.products))
        return state

    def reload(self) -> None:
        """Drop the cached snapshot and read the persisted catalog again."""
        self._state = None
        self._snapshot()

    def get(self, product_id: str) -> Optional[Product]:
        product = self._snapshot().products.get(product_id)
        return product.model_copy() if product else None

    def all(self) -> List[Product]:
        """Return copies of every product in catalog declaration order."""
        return [product.model_copy() for product in self._snapshot().products.values()]

    def policy(self) -> StorePolicy:
        return self._snapshot().store_info.model_copy()

    def by_category(self, category: str) -> List[Product]:
        """Purpose: List products whose category equals the given label.
        Inputs/Outputs: Input is a category string; output is a list of Product copies.
        Side Effects / State: May load the catalog on first use.
        Dependencies: Uses all().
        Failure Modes: Unknown categories return an empty list.
        If Removed: Category browsing from the tool front end stops working.
        Testing Notes: Query with different casing and verify the same products return.
        """
        # Compare case-insensitively against each product's category.
        wanted = category.strip().lower()
        return [product for product in self.all() if product.category.lower() == wanted]

    def stock_levels(self) -> Dict[str, int]:
        return {product_id: product.stock for product_id, product in self._snapshot().products.items()}

    @contextmanager
    def edit(self) -> Iterator[CatalogEdit]:
        """Purpose: Run one load-modify-persist cycle inside the global critical section.
        Inputs/Outputs: Yields a CatalogEdit whose state is a freshly loaded catalog.
        Side Effects / State: Holds the store lock for the whole block, writes the catalog
            unless the block calls discard() or raises, then refreshes the snapshot.
        Dependencies: Uses the source collaborator's load()/save().
        Failure Modes: Load failure raises CatalogUnavailableError before the block runs;
            save failure drops the snapshot and raises CatalogPersistError.
        If Removed: Concurrent reservations could both commit against the same stock.
        Testing Notes: Discard inside the block and confirm the file is unchanged.
        """
        # Reload from the source under the lock so writes never build on a stale snapshot.
        with self._lock:
            edit = CatalogEdit(self._source.load())
            yield edit
            if edit.discarded:
                return
            try:
                self._source.save(edit.state)
            except CatalogPersistError:
                self._state = None
                logger.error("catalog persist failed; snapshot dropped")
                raise
            self._state = edit.state.model_copy(deep=True)

    def update(self, mutator: Callable[[CatalogState], T]) -> T:
        """Apply mutator to a fresh catalog copy and always persist the result."""
        with self.edit() as edit:
            return mutator(edit.state)

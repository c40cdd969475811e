from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger("order_engine.workflow")


@dataclass
class Step:
    """One named stage of the order workflow."""
    name: str
    fn: Callable[[object], None]
    skip_if: Optional[Callable[[object], bool]] = None
    always_run: bool = False


class StepRunner:
    """Ordered, synchronous runner for the classify/price/reserve/finalize stages."""

    def __init__(self, steps: List[Step]) -> None:
        self._steps = steps

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self._steps]

    def run(self, context: object) -> List[str]:
        """Purpose: Execute steps in order, honoring skip_if and always_run.
        Inputs/Outputs: Input is a mutable context object; output is the names of the
            steps that actually ran.
        Side Effects / State: Invokes step functions that mutate the context.
        Dependencies: Depends on Step.fn and Step.skip_if semantics.
        Failure Modes: Exceptions in step functions propagate to the caller; later
            steps do not run.
        If Removed: The workflow has no state progression between stages.
        Testing Notes: Build three steps with one skipped and assert the returned names.
        """
        # always_run wins over skip_if.
        executed: List[str] = []
        for step in self._steps:
            if not step.always_run and step.skip_if and step.skip_if(context):
                logger.debug("step=%s skipped", step.name)
                continue
            step.fn(context)
            executed.append(step.name)
        return executed

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np

from mipsat.model.models import MipModel
from mipsat.model.types import PresolveStatus
from mipsat.utils.solver_log import SolverLogger

from .steps import PresolveStep

log = logging.getLogger(__name__)


class PresolveStack:
    """
    Ordered record of the presolve steps applied during one solve call.

    Steps are applied front to back and recovered back to front. The stack is
    owned by a single call and never handed out step by step.
    """

    def __init__(self):
        self._steps: list[PresolveStep] = []

    def __len__(self) -> int:
        return len(self._steps)

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self._steps]

    def apply(
        self,
        model: MipModel,
        steps: Iterable[PresolveStep],
        logger: Optional[SolverLogger] = None,
    ) -> PresolveStatus:
        """Run *steps* in order, stopping at the first one that is not CONTINUE."""
        for step in steps:
            status = step.apply(model)
            if status != PresolveStatus.CONTINUE:
                log.debug("Presolve step %s stopped with %s", step.name, status.value)
                return status
            self._steps.append(step)
            if logger is not None:
                logger.log(step.summary())
        return PresolveStatus.CONTINUE

    def recover(self, values: np.ndarray) -> np.ndarray:
        """Map presolved-space values to the space before the first step. Does not mutate the stack."""
        values = np.asarray(values, dtype=np.float64)
        for step in reversed(self._steps):
            values = step.recover(values)
        return values

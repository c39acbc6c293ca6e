"""
Engine space -> original space.

An engine value x'_i is first unscaled (x_i = x'_i / factor_i), then passed
back through the presolve stack from the last applied step to the first.
Nothing here mutates the scaling vector or the stack, so the same
reconstructor serves live solutions during the search and the final ones.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from mipsat.error_handling.types import PipelineInvariantError
from mipsat.model.integer_model import IntegerModel
from mipsat.model.models import Solution
from mipsat.model.types import EngineStatus, SolutionSpace
from mipsat.presolve.stack import PresolveStack
from mipsat.solver.protocol import EngineResponse

log = logging.getLogger(__name__)


def declared_objective(model: IntegerModel, values: Sequence[int]) -> float:
    """Objective from the integer terms and their declared scaling factor, falling back to the exact terms"""
    if model.objective is not None:
        return model.objective.evaluate(values)
    return model.evaluate_objective(values)


class PostsolveReconstructor:

    def __init__(self, scaling: np.ndarray, stack: PresolveStack):
        self.scaling = np.asarray(scaling, dtype=np.float64)
        self.stack = stack

    def postsolve_values(self, values: Sequence[float]) -> list[float]:
        values = np.asarray(values, dtype=np.float64)
        if len(values) != len(self.scaling):
            raise PipelineInvariantError("postsolve", len(self.scaling), len(values))
        return self.stack.recover(values / self.scaling).tolist()

    def postsolve(self, solution: Solution) -> Solution:
        """Map one engine-space solution to the original space. The objective carries over unchanged."""
        if solution.space != SolutionSpace.ENGINE:
            raise ValueError(f"Expected an engine-space solution, got {solution.space.value}")
        return Solution(
            values=self.postsolve_values(solution.values),
            objective_value=solution.objective_value,
            space=SolutionSpace.ORIGINAL,
        )

    def postsolve_additional(
        self, engine_response: EngineResponse, model: IntegerModel
    ) -> list[Solution]:
        """
        Alternate solutions in the original space, in engine order

        Vectors identical to the primary solution are skipped
        """
        solutions = []
        for raw in engine_response.additional_solutions:
            if list(raw) == list(engine_response.solution):
                continue
            solutions.append(Solution(
                values=self.postsolve_values(raw),
                objective_value=declared_objective(model, raw),
                space=SolutionSpace.ORIGINAL,
            ))
        return solutions

    def finalize(
        self, engine_response: EngineResponse, model: IntegerModel
    ) -> Tuple[Optional[Solution], list[Solution]]:
        """Primary solution (None when the engine found none) and the additional ones"""
        if engine_response.status not in (EngineStatus.OPTIMAL, EngineStatus.FEASIBLE):
            return None, []
        primary = self.postsolve(Solution(
            values=engine_response.solution,
            objective_value=engine_response.objective_value,
            space=SolutionSpace.ENGINE,
        ))
        additional = self.postsolve_additional(engine_response, model)
        log.debug("Postsolved primary solution and %d additional solutions", len(additional))
        return primary, additional

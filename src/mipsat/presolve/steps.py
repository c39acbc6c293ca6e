"""
Reversible MIP presolve steps.

Each step rewrites the model in place through apply() and remembers just
enough to map a solution of the rewritten model back to the model it was
given, through recover(). Steps only ever tighten bounds or remove rows and
columns, so a solution of the presolved model is always feasible for the
original once recovered.

Integer bounds are expected to be integral already (integerization runs
before presolve).
"""
from __future__ import annotations

import abc
import math
from typing import Dict, List

import numpy as np

from mipsat.model.models import MipModel, SolutionHint
from mipsat.model.types import PresolveStatus

DEFAULT_TOLERANCE = 1e-9


class PresolveStep(abc.ABC):
    """One reversible simplification of a MipModel."""

    name: str = "presolve_step"

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE):
        self.tolerance = tolerance
        self.removed_rows = 0
        self.removed_columns = 0

    @abc.abstractmethod
    def apply(self, model: MipModel) -> PresolveStatus:
        """Rewrite *model* in place."""

    def recover(self, values: np.ndarray) -> np.ndarray:
        """Map primal values from after this step to before it. Rows only: identity."""
        return values

    def summary(self) -> str:
        return f"[{self.name}] removed {self.removed_rows} rows, {self.removed_columns} columns"


class SingletonRowStep(PresolveStep):
    """lb <= a * x <= ub becomes a bound on x, and the row goes away."""

    name = "singleton_rows"

    def apply(self, model: MipModel) -> PresolveStatus:
        kept = []
        for constraint in model.constraints:
            if len(constraint.var_index) != 1 or constraint.coefficient[0] == 0.0:
                kept.append(constraint)
                continue

            j = constraint.var_index[0]
            a = constraint.coefficient[0]
            low, high = constraint.lower_bound / a, constraint.upper_bound / a
            if a < 0:
                low, high = high, low

            var = model.variables[j]
            new_lb = max(var.lower_bound, low)
            new_ub = min(var.upper_bound, high)
            if var.is_integer:
                if math.isfinite(new_lb):
                    new_lb = float(math.ceil(new_lb - self.tolerance))
                if math.isfinite(new_ub):
                    new_ub = float(math.floor(new_ub + self.tolerance))

            if new_lb > new_ub + self.tolerance:
                return PresolveStatus.PROVEN_INFEASIBLE
            # Crossed only by round-off
            new_ub = max(new_lb, new_ub)

            model.variables[j] = var.model_copy(
                update={"lower_bound": new_lb, "upper_bound": new_ub}
            )
            self.removed_rows += 1

        model.constraints = kept
        return PresolveStatus.CONTINUE


class EmptyRowStep(PresolveStep):
    """Checks row bounds and drops rows without terms."""

    name = "empty_rows"

    def apply(self, model: MipModel) -> PresolveStatus:
        for constraint in model.constraints:
            if constraint.lower_bound == math.inf or constraint.upper_bound == -math.inf:
                return PresolveStatus.PROVEN_INVALID

        kept = []
        for constraint in model.constraints:
            if constraint.lower_bound > constraint.upper_bound + self.tolerance:
                return PresolveStatus.PROVEN_INFEASIBLE
            if constraint.var_index:
                kept.append(constraint)
                continue
            if constraint.lower_bound > self.tolerance or constraint.upper_bound < -self.tolerance:
                return PresolveStatus.PROVEN_INFEASIBLE
            self.removed_rows += 1

        model.constraints = kept
        return PresolveStatus.CONTINUE


class _ColumnRemovalStep(PresolveStep):
    """
    Shared machinery for steps that fix columns at a value and drop them.

    Fixed values are substituted into row bounds and the objective offset;
    surviving columns and hint entries are renumbered.
    """

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE):
        super().__init__(tolerance)
        self._num_columns_before = 0
        self._kept = np.zeros(0, dtype=np.int64)
        self._removed = np.zeros(0, dtype=np.int64)
        self._removed_values = np.zeros(0, dtype=np.float64)

    def _remove_columns(self, model: MipModel, fixed: Dict[int, float]) -> None:
        n = model.num_variables
        kept: List[int] = [i for i in range(n) if i not in fixed]
        new_index = {old: new for new, old in enumerate(kept)}

        for constraint in model.constraints:
            shift = 0.0
            var_index, coefficient = [], []
            for v, a in zip(constraint.var_index, constraint.coefficient):
                if v in fixed:
                    shift += a * fixed[v]
                else:
                    var_index.append(new_index[v])
                    coefficient.append(a)
            constraint.var_index = var_index
            constraint.coefficient = coefficient
            constraint.lower_bound -= shift
            constraint.upper_bound -= shift

        model.objective_offset += sum(
            model.variables[i].objective_coefficient * value for i, value in fixed.items()
        )

        hint = model.solution_hint
        if hint is not None:
            pairs = [
                (new_index[v], x) for v, x in zip(hint.var_index, hint.var_value) if v in new_index
            ]
            model.solution_hint = SolutionHint(
                var_index=[v for v, _ in pairs], var_value=[x for _, x in pairs]
            )

        model.variables = [model.variables[i] for i in kept]

        removed = sorted(fixed)
        self._num_columns_before = n
        self._kept = np.asarray(kept, dtype=np.int64)
        self._removed = np.asarray(removed, dtype=np.int64)
        self._removed_values = np.asarray([fixed[i] for i in removed], dtype=np.float64)
        self.removed_columns += len(removed)

    def recover(self, values: np.ndarray) -> np.ndarray:
        out = np.empty(self._num_columns_before, dtype=np.float64)
        out[self._kept] = values
        out[self._removed] = self._removed_values
        return out


class FixedColumnStep(_ColumnRemovalStep):
    """Columns with lb == ub are constants."""

    name = "fixed_columns"

    def apply(self, model: MipModel) -> PresolveStatus:
        fixed = {
            i: var.lower_bound
            for i, var in enumerate(model.variables)
            if var.lower_bound == var.upper_bound
        }
        self._remove_columns(model, fixed)
        return PresolveStatus.CONTINUE


class EmptyColumnStep(_ColumnRemovalStep):
    """
    Columns in no row only matter to the objective: fix each at its best bound.

    If the best bound is infinite the model is unbounded unless the remaining
    rows are infeasible, which this step cannot tell.
    """

    name = "empty_columns"

    def apply(self, model: MipModel) -> PresolveStatus:
        used = set()
        for constraint in model.constraints:
            used.update(constraint.var_index)

        sense = -1.0 if model.maximize else 1.0
        fixed: Dict[int, float] = {}
        for i, var in enumerate(model.variables):
            if i in used:
                continue
            cost = sense * var.objective_coefficient
            if cost > 0:
                if var.lower_bound == -math.inf:
                    return PresolveStatus.INFEASIBLE_OR_UNBOUNDED
                fixed[i] = var.lower_bound
            elif cost < 0:
                if var.upper_bound == math.inf:
                    return PresolveStatus.INFEASIBLE_OR_UNBOUNDED
                fixed[i] = var.upper_bound
            else:
                fixed[i] = min(max(0.0, var.lower_bound), var.upper_bound)

        self._remove_columns(model, fixed)
        return PresolveStatus.CONTINUE


def default_steps(level: int, tolerance: float = DEFAULT_TOLERANCE) -> list[PresolveStep]:
    """Steps for a given mip_presolve_level, in application order."""
    if level <= 0:
        return []
    steps: list[PresolveStep] = [
        SingletonRowStep(tolerance),
        FixedColumnStep(tolerance),
        EmptyRowStep(tolerance),
    ]
    if level >= 2:
        steps.append(EmptyColumnStep(tolerance))
    return steps

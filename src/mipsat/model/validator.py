"""
Minimal structural validation of a MipModel.

Returns False when the call must stop right here, together with the status
the response should carry. Besides malformed input this also closes trivial
models (no variables and no constraints) as OPTIMAL and variables whose
declared bounds are already crossed as INFEASIBLE.
"""
from __future__ import annotations

import math
from typing import Tuple

from .models import MipModel
from .types import ResponseStatus


def _find_error(model: MipModel) -> str:
    n = model.num_variables
    for i, var in enumerate(model.variables):
        if math.isnan(var.lower_bound) or math.isnan(var.upper_bound):
            return f"Variable #{i} has a NaN bound"
        if var.lower_bound == math.inf or var.upper_bound == -math.inf:
            return f"Variable #{i} has an unsatisfiable infinite bound [{var.lower_bound}, {var.upper_bound}]"
        if not math.isfinite(var.objective_coefficient):
            return f"Variable #{i} has a non-finite objective coefficient"

    for c, constraint in enumerate(model.constraints):
        if len(constraint.var_index) != len(constraint.coefficient):
            return f"Constraint #{c} has {len(constraint.var_index)} indices but {len(constraint.coefficient)} coefficients"
        if math.isnan(constraint.lower_bound) or math.isnan(constraint.upper_bound):
            return f"Constraint #{c} has a NaN bound"
        if constraint.lower_bound == math.inf or constraint.upper_bound == -math.inf:
            return (
                f"Constraint #{c} has an unsatisfiable infinite bound "
                f"[{constraint.lower_bound}, {constraint.upper_bound}]"
            )
        seen = set()
        for var, coeff in zip(constraint.var_index, constraint.coefficient):
            if var < 0 or var >= n:
                return f"Constraint #{c} references variable #{var} (model has {n} variables)"
            if var in seen:
                return f"Constraint #{c} references variable #{var} twice"
            seen.add(var)
            if not math.isfinite(coeff):
                return f"Constraint #{c} has a non-finite coefficient for variable #{var}"

    if not math.isfinite(model.objective_offset):
        return "Objective offset is not finite"

    hint = model.solution_hint
    if hint is not None:
        if len(hint.var_index) != len(hint.var_value):
            return "Solution hint index and value lists differ in length"
        # Indices past the end are dropped later, negative ones are malformed.
        if any(v < 0 for v in hint.var_index):
            return "Solution hint contains a negative variable index"
        if any(not math.isfinite(x) for x in hint.var_value):
            return "Solution hint contains a non-finite value"
    return ""


def validate_model(model: MipModel) -> Tuple[bool, ResponseStatus, str]:
    """
    Returns (ok, status, message). When ok is False the caller must answer
    with *status* and *message* without going further.
    """
    error = _find_error(model)
    if error:
        return False, ResponseStatus.MODEL_INVALID, error

    if model.num_variables == 0 and model.num_constraints == 0:
        return False, ResponseStatus.OPTIMAL, "Empty model"

    for i, var in enumerate(model.variables):
        if var.lower_bound > var.upper_bound:
            return (
                False,
                ResponseStatus.INFEASIBLE,
                f"Variable #{i} has an empty domain [{var.lower_bound}, {var.upper_bound}]",
            )
    return True, ResponseStatus.NOT_SOLVED, ""

"""
Conversion of a presolved, scaled MipModel into an IntegerModel.

Variables:
    bounds rounded inward, infinite or oversized bounds clamped to +/- mip_max_bound

Rows:
    lb <= sum(a_k x_k) <= ub is multiplied by the smallest power of two s for which every s * a_k rounds to an
    integer with a relative activity error (sum |s a_k - round(s a_k)| * |x_k|max over sum |s a_k| * |x_k|max)
    within mip_wanted_precision, while the max activity sum |round(s a_k)| * |x_k|max stays below
    2^mip_max_activity_exponent. When no such s exists the most precise candidate under the activity limit is
    kept and a warning is logged. A row is only rejected when all of its coefficients round to zero.

Objective:
    scaled the same way; the integer objective records scaling_factor = 1 / s so that
    objective = scaling_factor * (sum + offset)
"""
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np

from mipsat.model.integer_model import (
    FloatingPointObjective,
    IntegerConstraint,
    IntegerModel,
    IntegerObjective,
    IntegerVariable,
)
from mipsat.model.models import MipModel
from mipsat.solver.config import SolverParameters
from mipsat.utils.solver_log import SolverLogger

log = logging.getLogger(__name__)

ONLY_SOLVE_IP_MESSAGE = (
    "The model contains non-integer variables but the parameter "
    "'only_solve_ip' was set. Change this parameter if you "
    "still want to solve a more constrained version of the original MIP "
    "where non-integer variables can only take a finite set of values."
)

_BOUND_TOLERANCE = 1e-9


def _round_bound_up(value: float, limit: float) -> Optional[int]:
    """ceil() with a relative tolerance, capped at +/- limit; None when the side is unconstrained"""
    if value <= -limit:
        return None
    if value >= limit:
        return int(limit)
    return int(math.ceil(value - _BOUND_TOLERANCE * max(1.0, abs(value))))


def _round_bound_down(value: float, limit: float) -> Optional[int]:
    if value >= limit:
        return None
    if value <= -limit:
        return -int(limit)
    return int(math.floor(value + _BOUND_TOLERANCE * max(1.0, abs(value))))


def find_integer_scaling(
    coefficients: Sequence[float],
    magnitudes: Sequence[float],
    params: SolverParameters,
) -> Optional[float]:
    """
    Power of two that turns *coefficients* into integers (see module docstring)

    magnitudes[k] is the largest absolute value the k-th variable can take in the integer model
    Returns None only when every coefficient rounds to zero before the activity limit is reached
    """
    if len(coefficients) == 0:
        return 1.0

    coeffs = np.asarray(coefficients, dtype=np.float64)
    mags = np.maximum(np.asarray(magnitudes, dtype=np.float64), 1.0)
    max_activity = 2.0 ** params.mip_max_activity_exponent

    best: Optional[Tuple[float, float]] = None
    for exponent in range(params.mip_max_activity_exponent + 1):
        scale = 2.0 ** exponent
        scaled = coeffs * scale
        rounded = np.round(scaled)
        if float(np.sum(np.abs(rounded) * mags)) > max_activity:
            break
        if not np.any(rounded):
            continue
        error = float(np.sum(np.abs(scaled - rounded) * mags)) / float(np.sum(np.abs(scaled) * mags))
        if best is None or error < best[1]:
            best = (scale, error)
        if error <= params.mip_wanted_precision:
            return scale

    if best is None:
        return None
    if best[1] > params.mip_wanted_precision:
        log.warning(
            "Integer scaling %g has relative activity error %g, above mip_wanted_precision %g",
            best[0], best[1], params.mip_wanted_precision,
        )
    return best[0]


def check_only_ip(params: SolverParameters, model: MipModel) -> str:
    """Returns the refusal message when only_solve_ip is set and some variable is continuous, else an empty string"""
    if params.only_solve_ip and any(not var.is_integer for var in model.variables):
        return ONLY_SOLVE_IP_MESSAGE
    return ""


def validate_before_conversion(
    params: SolverParameters, model: MipModel, logger: Optional[SolverLogger] = None
) -> bool:
    """
    Checks this conversion needs on top of structural validation:
        - finite integer bounds must fit in +/- mip_max_bound
        - coefficients and finite bounds must not exceed mip_max_valid_magnitude
    """
    def reject(message: str, *args) -> bool:
        if logger is not None:
            logger.log(message, *args)
        log.info(message, *args)
        return False

    for i, var in enumerate(model.variables):
        for bound in (var.lower_bound, var.upper_bound):
            if math.isfinite(bound) and abs(bound) > params.mip_max_valid_magnitude:
                return reject("Variable #%d has a bound of magnitude %g, larger than mip_max_valid_magnitude", i, abs(bound))
            if var.is_integer and math.isfinite(bound) and abs(bound) > params.mip_max_bound:
                return reject("Integer variable #%d has a bound of magnitude %g, larger than mip_max_bound", i, abs(bound))
        if abs(var.objective_coefficient) > params.mip_max_valid_magnitude:
            return reject("Variable #%d has an objective coefficient larger than mip_max_valid_magnitude", i)

    for c, constraint in enumerate(model.constraints):
        for a in constraint.coefficient:
            if abs(a) > params.mip_max_valid_magnitude:
                return reject("Constraint #%d has a coefficient of magnitude %g, larger than mip_max_valid_magnitude", c, abs(a))
    return True


class ModelConverter:
    """Builds the IntegerModel. Variable i of the result is variable i of the input."""

    def __init__(self, params: SolverParameters, logger: Optional[SolverLogger] = None):
        self.params = params
        self.logger = logger

    def _log(self, message: str, *args) -> None:
        if self.logger is not None:
            self.logger.log(message, *args)

    def convert(self, model: MipModel) -> Tuple[Optional[IntegerModel], str]:
        """Returns (integer_model, "") or (None, reason)"""
        max_bound = self.params.mip_max_bound

        variables: list[IntegerVariable] = []
        num_continuous = 0
        for i, var in enumerate(model.variables):
            lb = _round_bound_up(var.lower_bound, max_bound)
            ub = _round_bound_down(var.upper_bound, max_bound)
            lb = -int(max_bound) if lb is None else max(lb, -int(max_bound))
            ub = int(max_bound) if ub is None else min(ub, int(max_bound))
            if lb > ub:
                return None, f"Variable #{i} has an empty integer domain after scaling [{var.lower_bound}, {var.upper_bound}]"
            if not var.is_integer:
                num_continuous += 1
            variables.append(IntegerVariable(lower_bound=lb, upper_bound=ub, name=var.name))
        if num_continuous:
            self._log("Rounded the domain of %d continuous variables to integers", num_continuous)

        magnitudes = [max(abs(v.lower_bound), abs(v.upper_bound)) for v in variables]

        constraints: list[IntegerConstraint] = []
        for c, constraint in enumerate(model.constraints):
            if constraint.lower_bound == math.inf or constraint.upper_bound == -math.inf:
                return None, f"Constraint #{c} ('{constraint.name}') has malformed bounds"
            scale = find_integer_scaling(
                constraint.coefficient, [magnitudes[v] for v in constraint.var_index], self.params
            )
            if scale is None:
                return None, f"Constraint #{c} ('{constraint.name}') cannot be represented with integer coefficients"
            max_activity = 2.0 ** self.params.mip_max_activity_exponent
            constraints.append(IntegerConstraint(
                var_index=list(constraint.var_index),
                coefficient=[int(round(a * scale)) for a in constraint.coefficient],
                lower_bound=_round_bound_up(constraint.lower_bound * scale, max_activity),
                upper_bound=_round_bound_down(constraint.upper_bound * scale, max_activity),
                name=constraint.name,
            ))

        objective, fp_objective = None, None
        terms = [(i, v.objective_coefficient) for i, v in enumerate(model.variables) if v.objective_coefficient != 0.0]
        if terms or model.objective_offset != 0.0:
            var_index = [i for i, _ in terms]
            coefficient = [a for _, a in terms]
            scale = find_integer_scaling(coefficient, [magnitudes[i] for i in var_index], self.params)
            if scale is None:
                return None, "The objective cannot be represented with integer coefficients"
            objective = IntegerObjective(
                var_index=var_index,
                coefficient=[int(round(a * scale)) for a in coefficient],
                offset=model.objective_offset * scale,
                scaling_factor=1.0 / scale,
                maximize=model.maximize,
            )
            fp_objective = FloatingPointObjective(
                var_index=var_index,
                coefficient=coefficient,
                offset=model.objective_offset,
                maximize=model.maximize,
            )

        integer_model = IntegerModel(
            variables=variables,
            constraints=constraints,
            objective=objective,
            floating_point_objective=fp_objective,
        )
        self._log(
            "Converted model: %d variables, %d constraints", integer_model.num_variables, len(constraints)
        )
        return integer_model, ""

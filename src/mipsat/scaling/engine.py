"""
Scaling of a mixed real/integer model into a pure integer one.

A scaling vector holds one factor per variable: the model variable x_i is
replaced by x'_i = factor_i * x_i. Bounds are multiplied by the factor and
every coefficient of the variable (rows and objective) is divided by it, so
activities and objective values are unchanged. Solutions map back with
x_i = x'_i / factor_i.

Two sources of factors are combined by elementwise multiplication:
    (1) implied integers: the smallest multiplier that makes a continuous variable integral given its equality rows
    (2) a uniform mip_var_scaling applied to the remaining continuous variables, capped by the max bound
"""
from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import Optional, Sequence

import numpy as np

from mipsat.error_handling.types import PipelineInvariantError
from mipsat.model.models import MipModel
from mipsat.solver.config import SolverParameters
from mipsat.utils.solver_log import SolverLogger

log = logging.getLogger(__name__)

# Implied integer multipliers above this are not worth the loss in range
_MAX_IMPLIED_MULTIPLIER = 1 << 10
_RATIONAL_TOLERANCE = 1e-9


# ── Pure helper functions (importable for unit tests) ─────────────────────────

def _variable_magnitude(lower: float, upper: float) -> float:
    return max(abs(lower), abs(upper))


def integer_multiplier(ratios: Sequence[float], max_multiplier: int = _MAX_IMPLIED_MULTIPLIER) -> Optional[int]:
    """
    Smallest positive integer m such that m * r is integral for every r, or None if m would exceed max_multiplier
    """
    multiplier = 1
    for r in ratios:
        frac = Fraction(r).limit_denominator(max_multiplier)
        if abs(float(frac) - r) > _RATIONAL_TOLERANCE * max(1.0, abs(r)):
            return None
        multiplier = math.lcm(multiplier, frac.denominator)
        if multiplier > max_multiplier:
            return None
    return multiplier


def apply_var_scaling(factors: np.ndarray, model: MipModel) -> None:
    """Rewrite *model* in place for x'_i = factors[i] * x_i. The hint is left in the caller's space."""
    if len(factors) != model.num_variables:
        raise PipelineInvariantError("apply_var_scaling", model.num_variables, len(factors))

    for i, factor in enumerate(factors):
        if factor == 1.0:
            continue
        var = model.variables[i]
        model.variables[i] = var.model_copy(update={
            "lower_bound": var.lower_bound * factor,
            "upper_bound": var.upper_bound * factor,
            "objective_coefficient": var.objective_coefficient / factor,
        })

    for constraint in model.constraints:
        constraint.coefficient = [
            a / factors[v] for v, a in zip(constraint.var_index, constraint.coefficient)
        ]


def make_bounds_of_integer_variables_integer(
    params: SolverParameters, model: MipModel, logger: Optional[SolverLogger] = None
) -> bool:
    """
    Round integer bounds inward. Returns False when some integer domain becomes empty
    """
    tolerance = params.mip_check_precision * 1e-2
    num_changes = 0
    for i, var in enumerate(model.variables):
        if not var.is_integer:
            continue
        lb, ub = var.lower_bound, var.upper_bound
        new_lb = float(math.ceil(lb - tolerance)) if math.isfinite(lb) else lb
        new_ub = float(math.floor(ub + tolerance)) if math.isfinite(ub) else ub
        if new_lb > new_ub:
            if logger is not None:
                logger.log("Empty domain for integer variable #%d: [%g, %g]", i, lb, ub)
            return False
        if new_lb != lb or new_ub != ub:
            num_changes += 1
            model.variables[i] = var.model_copy(update={"lower_bound": new_lb, "upper_bound": new_ub})

    if num_changes and logger is not None:
        logger.log("Changed domain of %d integer variables to integral bounds", num_changes)
    return True


def remove_near_zero_terms(
    params: SolverParameters, model: MipModel, logger: Optional[SolverLogger] = None
) -> int:
    """Drop row terms whose largest possible contribution is below mip_drop_tolerance"""
    num_removed = 0
    for constraint in model.constraints:
        var_index, coefficient = [], []
        for v, a in zip(constraint.var_index, constraint.coefficient):
            var = model.variables[v]
            magnitude = min(_variable_magnitude(var.lower_bound, var.upper_bound), params.mip_max_bound)
            if abs(a) * max(magnitude, 1.0) < params.mip_drop_tolerance or a == 0.0:
                num_removed += 1
                continue
            var_index.append(v)
            coefficient.append(a)
        constraint.var_index = var_index
        constraint.coefficient = coefficient

    if num_removed and logger is not None:
        logger.log("Removed %d near-zero terms", num_removed)
    return num_removed


def detect_implied_integers(
    params: SolverParameters, model: MipModel, logger: Optional[SolverLogger] = None
) -> np.ndarray:
    """
    Find continuous variables that can only take integral values once scaled

    A continuous x is implied integer when it is the only continuous term of an equality row
    c * x + sum(a_k * y_k) = b with integer y_k: x = (b - sum(a_k * y_k)) / c, so m * x is integral as soon as
    m * a_k / c and m * b / c all are. The model is rescaled in place, x is marked integer, and the
    multipliers are returned. Runs to a fixpoint since a newly detected integer can unlock further rows.
    """
    factors = np.ones(model.num_variables, dtype=np.float64)
    num_detected = 0
    changed = True
    while changed:
        changed = False
        for constraint in model.constraints:
            if constraint.lower_bound != constraint.upper_bound or not math.isfinite(constraint.lower_bound):
                continue
            continuous = [
                k for k, v in enumerate(constraint.var_index) if not model.variables[v].is_integer
            ]
            if len(continuous) != 1:
                continue

            k = continuous[0]
            j = constraint.var_index[k]
            c = constraint.coefficient[k]
            ratios = [a / c for pos, a in enumerate(constraint.coefficient) if pos != k]
            ratios.append(constraint.lower_bound / c)
            multiplier = integer_multiplier(ratios)
            if multiplier is None:
                continue

            var = model.variables[j]
            magnitude = _variable_magnitude(var.lower_bound, var.upper_bound)
            if math.isfinite(magnitude) and magnitude * multiplier > params.mip_max_bound:
                continue

            step = np.ones(model.num_variables, dtype=np.float64)
            step[j] = float(multiplier)
            apply_var_scaling(step, model)
            model.variables[j] = model.variables[j].model_copy(update={"is_integer": True})
            factors[j] *= multiplier
            num_detected += 1
            changed = True

    if num_detected and logger is not None:
        logger.log("Detected %d implied integer variables", num_detected)
    return factors


def scale_continuous_variables(scaling: float, max_bound: float, model: MipModel) -> np.ndarray:
    """
    Multiply every continuous variable by *scaling*, reduced so that its scaled magnitude stays within max_bound

    Variables whose magnitude already exceeds max_bound, or is zero, keep a factor of 1
    """
    factors = np.ones(model.num_variables, dtype=np.float64)
    for i, var in enumerate(model.variables):
        if var.is_integer:
            continue
        magnitude = _variable_magnitude(var.lower_bound, var.upper_bound)
        if magnitude == 0.0 or magnitude > max_bound:
            continue
        factors[i] = min(scaling, max_bound / magnitude)
    apply_var_scaling(factors, model)
    return factors


class ScalingEngine:
    """
    Computes the scaling vector for one (presolved) model and rewrites the model accordingly
    """

    def __init__(self, params: SolverParameters, logger: Optional[SolverLogger] = None):
        self.params = params
        self.logger = logger

    def compute(self, model: MipModel) -> Optional[np.ndarray]:
        """Returns the scaling vector, or None when a detected integer has an empty domain"""
        params = self.params
        scaling = np.ones(model.num_variables, dtype=np.float64)

        if params.mip_automatically_scale_variables:
            scaling = detect_implied_integers(params, model, self.logger)
            if not make_bounds_of_integer_variables_integer(params, model, self.logger):
                return None

        if params.mip_var_scaling != 1.0:
            max_bound = math.inf if params.mip_scale_large_domain else params.mip_max_bound
            other = scale_continuous_variables(params.mip_var_scaling, max_bound, model)
            scaling = scaling * other

        if len(scaling) != model.num_variables:
            raise PipelineInvariantError("scaling", model.num_variables, len(scaling))
        log.debug("Scaling vector: min=%s max=%s", scaling.min(initial=1.0), scaling.max(initial=1.0))
        return scaling

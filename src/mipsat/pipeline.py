"""
solve_request: one MIP request in, one SolveResponse out.

    configure -> validate -> integerize bounds -> drop near-zero terms -> presolve -> drop near-zero terms
    -> scale -> only-IP check -> convert -> project hint -> engine -> postsolve -> assemble

Every stage after configuration reports failures through the response status.
Only InvalidConfigError leaves this function as an exception, and it does so
before the model is looked at.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from mipsat.convert.converter import ModelConverter, check_only_ip, validate_before_conversion
from mipsat.model.models import MipModel, Solution, SolveRequest, SolveResponse
from mipsat.model.types import PresolveStatus, ResponseStatus
from mipsat.model.validator import validate_model
from mipsat.postsolve import PostsolveReconstructor
from mipsat.presolve.stack import PresolveStack
from mipsat.presolve.steps import default_steps
from mipsat.response import ResponseAssembler
from mipsat.scaling.engine import ScalingEngine, make_bounds_of_integer_variables_integer, remove_near_zero_terms
from mipsat.scaling.hint import project_hint
from mipsat.settings import settings
from mipsat.solver import EngineFactory, IntegerEngine, SolverParameters
from mipsat.solver.configurator import ParameterConfigurator
from mipsat.solver.invoker import SolverInvoker

log = logging.getLogger(__name__)

_PRESOLVE_OUTCOMES = {
    PresolveStatus.PROVEN_INFEASIBLE: (
        ResponseStatus.INFEASIBLE, "Problem proven infeasible during MIP presolve"
    ),
    PresolveStatus.PROVEN_INVALID: (
        ResponseStatus.MODEL_INVALID, "Problem detected invalid during MIP presolve"
    ),
    PresolveStatus.INFEASIBLE_OR_UNBOUNDED: (
        ResponseStatus.UNKNOWN, "Problem proven infeasible or unbounded during MIP presolve"
    ),
}


@dataclass
class _SolveContext:
    """Working state of a single call. Never shared between calls."""

    model: Optional[MipModel]
    maximize: bool
    stack: PresolveStack = field(default_factory=PresolveStack)
    scaling: Optional[np.ndarray] = None


def _resolve_engine(engine: IntegerEngine | str | None) -> IntegerEngine:
    if engine is None:
        return EngineFactory.create(settings.default_engine)
    if isinstance(engine, str):
        return EngineFactory.create(engine)
    return engine


def solve_request(
    request: SolveRequest,
    parameters: Optional[SolverParameters] = None,
    interrupt: Optional[threading.Event] = None,
    logging_callback: Optional[Callable[[str], None]] = None,
    solution_callback: Optional[Callable[[Solution], None]] = None,
    engine: IntegerEngine | str | None = None,
) -> SolveResponse:
    """
    Solve *request* with an integer engine

    parameters: base SolverParameters, overridden by the request's blob and time limit
    interrupt: set it from any thread to stop the search early
    logging_callback: receives every search log line when logging is enabled
    solution_callback: receives each improving solution, already in the original space
    engine: an IntegerEngine, a registry name, or None for settings.default_engine
    """
    configuration = ParameterConfigurator().configure(request, parameters, logging_callback)
    params, logger = configuration.parameters, configuration.logger
    assembler = ResponseAssembler(logger)

    ok, status, message = validate_model(request.model)
    if not ok:
        objective = request.model.objective_offset if status == ResponseStatus.OPTIMAL else None
        return assembler.early_exit(status, message, objective_value=objective)

    # Direction is read before the working model is released
    ctx = _SolveContext(model=request.model.model_copy(deep=True), maximize=request.model.maximize)

    if not validate_before_conversion(params, ctx.model, logger):
        return assembler.early_exit(ResponseStatus.MODEL_INVALID, "Extra CP-SAT validation failed.")

    if not make_bounds_of_integer_variables_integer(params, ctx.model, logger):
        return assembler.early_exit(ResponseStatus.INFEASIBLE, "An integer variable has an empty domain")

    remove_near_zero_terms(params, ctx.model, logger)

    if params.mip_presolve_level > 0 and not params.enumerate_all_solutions:
        presolve_status = ctx.stack.apply(ctx.model, default_steps(params.mip_presolve_level), logger)
        if presolve_status != PresolveStatus.CONTINUE:
            return assembler.early_exit(*_PRESOLVE_OUTCOMES[presolve_status])
        log.debug("Presolve applied steps: %s", ctx.stack.step_names)
        remove_near_zero_terms(params, ctx.model, logger)

    ctx.scaling = ScalingEngine(params, logger).compute(ctx.model)
    if ctx.scaling is None:
        return assembler.early_exit(ResponseStatus.INFEASIBLE, "A detected integer variable has an empty domain")

    refusal = check_only_ip(params, ctx.model)
    if refusal:
        return assembler.early_exit(ResponseStatus.MODEL_INVALID, refusal)

    integer_model, reason = ModelConverter(params, logger).convert(ctx.model)
    if integer_model is None:
        log.info("Conversion failed: %s", reason)
        logger.log(reason)
        return assembler.early_exit(ResponseStatus.MODEL_INVALID, "Failed to convert model into CP-SAT model")

    hint = project_hint(ctx.model.solution_hint, ctx.scaling, params.mip_max_bound)
    integer_model = integer_model.with_hint(hint)
    ctx.model = None

    postsolver = PostsolveReconstructor(ctx.scaling, ctx.stack)
    invoker = SolverInvoker(_resolve_engine(engine), postsolver, logger)
    engine_response = invoker.solve(integer_model, params, interrupt, solution_callback)

    primary, additional = postsolver.finalize(engine_response, integer_model)
    return assembler.assemble(engine_response, primary, additional, ctx.maximize)

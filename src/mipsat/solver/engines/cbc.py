"""
PuLP with CBC backend, kept as a second integer engine.

CBC runs as a subprocess, so there is no progress stream: only the final
solution reaches the observer, and an interrupt is honoured only if it is
already set when solve() is entered.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from typing import Optional

import pulp

from mipsat.model.integer_model import IntegerModel
from mipsat.model.models import Solution
from mipsat.model.types import EngineStatus, SolutionSpace

from ..config import SolverParameters
from ..protocol import EngineResponse, LogCallback, SolutionObserver

log = logging.getLogger(__name__)

_STATUS_MAP = {
    pulp.LpSolutionOptimal: EngineStatus.OPTIMAL,
    pulp.LpSolutionIntegerFeasible: EngineStatus.FEASIBLE,
    pulp.LpSolutionInfeasible: EngineStatus.INFEASIBLE,
}


def build_lp_problem(model: IntegerModel) -> tuple[pulp.LpProblem, list[pulp.LpVariable]]:
    sense = pulp.LpMaximize if model.maximize else pulp.LpMinimize
    prob = pulp.LpProblem("mipsat", sense)

    x = [
        pulp.LpVariable(f"x_{i}", lowBound=v.lower_bound, upBound=v.upper_bound, cat=pulp.LpInteger)
        for i, v in enumerate(model.variables)
    ]

    # Objective: raw integer terms; the user-scale value is recomputed from the solution
    objective = model.objective
    if objective is not None and objective.var_index:
        prob += pulp.lpSum(c * x[v] for v, c in zip(objective.var_index, objective.coefficient))
    else:
        prob += pulp.lpSum([])

    for k, constraint in enumerate(model.constraints):
        expr = pulp.lpSum(c * x[v] for v, c in zip(constraint.var_index, constraint.coefficient))
        lb, ub = constraint.lower_bound, constraint.upper_bound
        if lb is not None and lb == ub:
            prob += expr == lb, f"c_{k}_eq"
            continue
        if lb is not None:
            prob += expr >= lb, f"c_{k}_lb"
        if ub is not None:
            prob += expr <= ub, f"c_{k}_ub"

    if model.solution_hint is not None:
        for v, value in zip(model.solution_hint.var_index, model.solution_hint.var_value):
            x[v].setInitialValue(value)
    return prob, x


class CbcEngine:
    """Integer engine backed by CBC through PuLP."""

    @property
    def name(self) -> str:
        return "cbc"

    def solve(
        self,
        model: IntegerModel,
        parameters: SolverParameters,
        interrupt: Optional[threading.Event] = None,
        solution_observer: Optional[SolutionObserver] = None,
        log_callback: Optional[LogCallback] = None,
    ) -> EngineResponse:
        if interrupt is not None and interrupt.is_set():
            log.info("Interrupt set before CBC started, skipping search")
            return EngineResponse(status=EngineStatus.UNKNOWN)

        prob, x = build_lp_problem(model)

        time_limit = parameters.max_time_in_seconds
        command = pulp.PULP_CBC_CMD(
            msg=bool(parameters.log_search_progress and parameters.log_to_stdout),
            timeLimit=time_limit if math.isfinite(time_limit) else None,
            threads=parameters.num_workers or None,
            warmStart=model.solution_hint is not None,
        )

        wall_start, user_start = time.perf_counter(), time.process_time()
        prob.solve(command)
        wall_time = time.perf_counter() - wall_start
        user_time = time.process_time() - user_start

        status = _STATUS_MAP.get(prob.sol_status, EngineStatus.UNKNOWN)
        if log_callback is not None and parameters.log_search_progress:
            log_callback(f"CBC finished: {pulp.LpStatus[prob.status]} in {wall_time:.3f}s")

        if status not in (EngineStatus.OPTIMAL, EngineStatus.FEASIBLE):
            return EngineResponse(status=status, wall_time=wall_time, user_time=user_time)

        solution = [int(round(var.varValue or 0.0)) for var in x]
        objective_value = model.evaluate_objective(solution)
        if solution_observer is not None:
            solution_observer(Solution(values=solution, objective_value=objective_value, space=SolutionSpace.ENGINE))

        return EngineResponse(
            status=status,
            solution=solution,
            objective_value=objective_value,
            # CBC does not report its dual bound through PuLP
            best_objective_bound=objective_value,
            wall_time=wall_time,
            user_time=user_time,
        )

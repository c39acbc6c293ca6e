"""
OR-Tools CP-SAT back-end.

Translates an IntegerModel into a cp_model.CpModel one to one: variable i of
the IntegerModel is the i-th CP-SAT variable. Every solution CP-SAT finds is
relayed to the observer from inside CP-SAT's callback, so the search waits for
the observer to return.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from ortools.sat.python import cp_model

from mipsat.model.integer_model import IntegerModel
from mipsat.model.models import Solution
from mipsat.model.types import EngineStatus, SolutionSpace

from ..config import SolverParameters
from ..protocol import EngineResponse, LogCallback, SolutionObserver

log = logging.getLogger(__name__)

_STATUS_MAP = {
    cp_model.UNKNOWN: EngineStatus.UNKNOWN,
    cp_model.MODEL_INVALID: EngineStatus.MODEL_INVALID,
    cp_model.FEASIBLE: EngineStatus.FEASIBLE,
    cp_model.INFEASIBLE: EngineStatus.INFEASIBLE,
    cp_model.OPTIMAL: EngineStatus.OPTIMAL,
}

# CP-SAT cannot watch an external flag, so a thread polls it and calls stop_search
_INTERRUPT_POLL_SECONDS = 0.05


class _SolutionRelay(cp_model.CpSolverSolutionCallback):
    """Forwards each solution to the observer and optionally keeps all of them."""

    def __init__(
        self,
        variables: list,
        model: IntegerModel,
        observer: Optional[SolutionObserver],
        keep_solutions: bool,
    ):
        super().__init__()
        self._variables = variables
        self._model = model
        self._observer = observer
        self._keep_solutions = keep_solutions
        self.solutions: list[list[int]] = []

    def on_solution_callback(self) -> None:
        values = [self.value(v) for v in self._variables]
        if self._keep_solutions:
            self.solutions.append(values)
        if self._observer is not None:
            self._observer(Solution(
                values=values,
                objective_value=self._model.evaluate_objective(values),
                space=SolutionSpace.ENGINE,
            ))


def build_cp_model(model: IntegerModel) -> tuple[cp_model.CpModel, list]:
    """Returns the CpModel and its variables, index-aligned with *model*"""
    cp = cp_model.CpModel()
    variables = [
        cp.new_int_var(v.lower_bound, v.upper_bound, v.name or f"x{i}")
        for i, v in enumerate(model.variables)
    ]

    for constraint in model.constraints:
        if constraint.lower_bound is None and constraint.upper_bound is None:
            continue
        expr = cp_model.LinearExpr.weighted_sum(
            [variables[v] for v in constraint.var_index], constraint.coefficient
        )
        cp.add_linear_constraint(
            expr,
            cp_model.INT_MIN if constraint.lower_bound is None else constraint.lower_bound,
            cp_model.INT_MAX if constraint.upper_bound is None else constraint.upper_bound,
        )

    objective = model.objective
    if objective is not None and objective.var_index:
        expr = cp_model.LinearExpr.weighted_sum(
            [variables[v] for v in objective.var_index], objective.coefficient
        )
        if objective.maximize:
            cp.maximize(expr)
        else:
            cp.minimize(expr)

    if model.solution_hint is not None:
        for v, value in zip(model.solution_hint.var_index, model.solution_hint.var_value):
            cp.add_hint(variables[v], value)
    return cp, variables


def apply_parameters(target, parameters: SolverParameters) -> None:
    """Copies every set SatParameters field onto *target* one by one.

    Newer ortools releases expose CpSolver.parameters as a wrapper without
    CopyFrom, so fields are assigned individually.
    """
    for field, value in parameters.to_proto().ListFields():
        if isinstance(value, (str, bytes, bool, int, float)):
            if field.enum_type is not None:
                value = type(getattr(target, field.name))(value)
            setattr(target, field.name, value)
        elif field.message_type is None:
            repeated = getattr(target, field.name)
            for item in value:
                repeated.append(item)
        else:
            log.warning("Skipping message-valued parameter %s", field.name)


class CpSatEngine:
    """Integer engine backed by CP-SAT."""

    @property
    def name(self) -> str:
        return "cp_sat"

    def solve(
        self,
        model: IntegerModel,
        parameters: SolverParameters,
        interrupt: Optional[threading.Event] = None,
        solution_observer: Optional[SolutionObserver] = None,
        log_callback: Optional[LogCallback] = None,
    ) -> EngineResponse:
        cp, variables = build_cp_model(model)

        solver = cp_model.CpSolver()
        apply_parameters(solver.parameters, parameters)
        if log_callback is not None and parameters.log_search_progress:
            # The caller's logger owns stdout echo
            solver.parameters.log_to_stdout = False
            solver.log_callback = log_callback

        keep_solutions = (
            parameters.enumerate_all_solutions or parameters.fill_additional_solutions_in_response
        )
        relay = _SolutionRelay(variables, model, solution_observer, keep_solutions)

        done = threading.Event()
        watcher = None
        if interrupt is not None:
            def _watch() -> None:
                while not done.wait(_INTERRUPT_POLL_SECONDS):
                    if interrupt.is_set():
                        log.info("Interrupt requested, stopping CP-SAT search")
                        solver.stop_search()
                        return
            watcher = threading.Thread(target=_watch, name="cp-sat-interrupt", daemon=True)
            watcher.start()

        try:
            status = solver.solve(cp, relay)
        finally:
            done.set()
            if watcher is not None:
                watcher.join()

        engine_status = _STATUS_MAP.get(status, EngineStatus.UNKNOWN)
        solution: list[int] = []
        objective_value = 0.0
        best_bound = 0.0
        if engine_status in (EngineStatus.OPTIMAL, EngineStatus.FEASIBLE):
            solution = [solver.value(v) for v in variables]
            objective_value = model.evaluate_objective(solution)
            best_bound = objective_value
            if model.objective is not None and model.objective.var_index:
                best_bound = model.objective.scale(solver.best_objective_bound)

        return EngineResponse(
            status=engine_status,
            solution=solution,
            objective_value=objective_value,
            best_objective_bound=best_bound,
            additional_solutions=relay.solutions,
            wall_time=solver.wall_time,
            user_time=solver.user_time,
        )

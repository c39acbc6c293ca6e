"""
Tests for the built-in integer engines (CP-SAT and CBC) and their registry.

Engine tests skip when the backend is not available.
"""
import threading
import types

import pulp
import pytest
from ortools.sat.python import cp_model

from mipsat.model.integer_model import IntegerConstraint, IntegerHint, IntegerModel, IntegerObjective, IntegerVariable
from mipsat.model.models import LinearConstraint, MipModel, SolveRequest, Variable
from mipsat.model.types import EngineStatus, ResponseStatus, SolutionSpace
from mipsat.pipeline import solve_request
from mipsat.solver import EngineFactory, IntegerEngine, SolverParameters
from mipsat.solver.engines.cbc import CbcEngine
from mipsat.solver.engines.cp_sat import CpSatEngine, apply_parameters

requires_cbc = pytest.mark.skipif(not pulp.PULP_CBC_CMD().available(), reason="CBC not available")


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def knapsack():
    """maximize 2x + 3y, x + y <= 4, x, y in [0, 10]"""
    return IntegerModel(
        variables=[IntegerVariable(lower_bound=0, upper_bound=10), IntegerVariable(lower_bound=0, upper_bound=10)],
        constraints=[IntegerConstraint(var_index=[0, 1], coefficient=[1, 1], upper_bound=4)],
        objective=IntegerObjective(var_index=[0, 1], coefficient=[2, 3], maximize=True),
    )


@pytest.fixture
def infeasible():
    return IntegerModel(
        variables=[IntegerVariable(lower_bound=0, upper_bound=3)],
        constraints=[IntegerConstraint(var_index=[0], coefficient=[1], lower_bound=5)],
    )


@pytest.fixture
def params():
    return SolverParameters(num_workers=1)


# ── Registry ──────────────────────────────────────────────────────────────────

class TestEngineFactory:
    def test_builtins_registered(self):
        assert {"cp_sat", "cbc"} <= set(EngineFactory.available())

    def test_create(self):
        engine = EngineFactory.create("cp_sat")
        assert isinstance(engine, IntegerEngine)
        assert engine.name == "cp_sat"

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown engine"):
            EngineFactory.create("does_not_exist")

    def test_register_rejects_non_engine(self):
        with pytest.raises(TypeError):
            EngineFactory.register("broken", object)


# ── CP-SAT ────────────────────────────────────────────────────────────────────

class TestApplyParameters:
    def test_fields_copied_one_by_one(self):
        target = types.SimpleNamespace(subsolvers=[])
        apply_parameters(target, SolverParameters(num_workers=1, subsolvers=["default_lp"]))
        assert target.num_workers == 1
        assert target.subsolvers == ["default_lp"]
        assert not hasattr(target, "max_time_in_seconds")

    def test_onto_solver_parameters(self):
        solver = cp_model.CpSolver()
        apply_parameters(solver.parameters, SolverParameters(num_workers=2, max_time_in_seconds=5.0))
        assert solver.parameters.num_workers == 2
        assert solver.parameters.max_time_in_seconds == 5.0


class TestCpSatEngine:
    def test_optimal(self, knapsack, params):
        response = CpSatEngine().solve(knapsack, params)
        assert response.status == EngineStatus.OPTIMAL
        assert response.solution == [0, 4]
        assert response.objective_value == pytest.approx(12.0)
        assert response.best_objective_bound == pytest.approx(12.0)

    def test_infeasible(self, infeasible, params):
        assert CpSatEngine().solve(infeasible, params).status == EngineStatus.INFEASIBLE

    def test_observer_gets_engine_space_solutions(self, knapsack, params):
        seen = []
        CpSatEngine().solve(knapsack, params, solution_observer=seen.append)
        assert seen
        assert all(s.space == SolutionSpace.ENGINE for s in seen)
        assert seen[-1].objective_value == pytest.approx(12.0)

    def test_enumerate_all_solutions(self, params):
        model = IntegerModel(variables=[IntegerVariable(lower_bound=0, upper_bound=2)])
        response = CpSatEngine().solve(
            model, params.model_copy(update={"enumerate_all_solutions": True})
        )
        assert sorted(s[0] for s in response.additional_solutions) == [0, 1, 2]

    def test_hint_is_accepted(self, knapsack, params):
        hinted = knapsack.with_hint(IntegerHint(var_index=[0, 1], var_value=[1, 3]))
        assert CpSatEngine().solve(hinted, params).status == EngineStatus.OPTIMAL

    def test_unset_interrupt_does_not_block(self, knapsack, params):
        interrupt = threading.Event()
        response = CpSatEngine().solve(knapsack, params, interrupt=interrupt)
        assert response.status == EngineStatus.OPTIMAL

    def test_log_callback(self, knapsack):
        lines = []
        params = SolverParameters(num_workers=1, log_search_progress=True)
        CpSatEngine().solve(knapsack, params, log_callback=lines.append)
        assert lines


# ── CBC ───────────────────────────────────────────────────────────────────────

@requires_cbc
class TestCbcEngine:
    def test_optimal(self, knapsack, params):
        seen = []
        response = CbcEngine().solve(knapsack, params, solution_observer=seen.append)
        assert response.status == EngineStatus.OPTIMAL
        assert response.solution == [0, 4]
        assert response.objective_value == pytest.approx(12.0)
        assert len(seen) == 1

    def test_infeasible(self, infeasible, params):
        assert CbcEngine().solve(infeasible, params).status == EngineStatus.INFEASIBLE

    def test_interrupt_set_before_start(self, knapsack, params):
        interrupt = threading.Event()
        interrupt.set()
        assert CbcEngine().solve(knapsack, params, interrupt=interrupt).status == EngineStatus.UNKNOWN


# ── End to end ────────────────────────────────────────────────────────────────

class TestEndToEnd:
    def test_mixed_model_with_cp_sat(self):
        model = MipModel(
            variables=[
                Variable(lower_bound=0, upper_bound=10, is_integer=True, objective_coefficient=2.0),
                Variable(lower_bound=0, upper_bound=10, is_integer=True, objective_coefficient=3.0),
                Variable(lower_bound=1.5, upper_bound=1.5, objective_coefficient=1.0),
            ],
            constraints=[LinearConstraint(var_index=[0, 1], coefficient=[1.0, 1.0], upper_bound=4)],
            maximize=True,
        )
        response = solve_request(SolveRequest(model=model, solver_specific_parameters="num_workers: 1"), engine="cp_sat")
        assert response.status == ResponseStatus.OPTIMAL
        assert response.variable_value == pytest.approx([0.0, 4.0, 1.5])
        assert response.objective_value == pytest.approx(13.5)

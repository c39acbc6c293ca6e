"""
Tests for mipsat.postsolve and mipsat.response.
"""
import numpy as np
import pytest

from mipsat.convert.converter import ModelConverter
from mipsat.error_handling.types import PipelineInvariantError
from mipsat.model.integer_model import IntegerModel, IntegerObjective, IntegerVariable
from mipsat.model.models import LinearConstraint, MipModel, Solution, Variable
from mipsat.model.types import EngineStatus, ResponseStatus, SolutionSpace
from mipsat.postsolve import PostsolveReconstructor
from mipsat.presolve import FixedColumnStep, PresolveStack, default_steps
from mipsat.response import ResponseAssembler, rank_solutions
from mipsat.scaling.engine import ScalingEngine
from mipsat.solver.config import SolverParameters
from mipsat.solver.protocol import EngineResponse


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def reconstructor():
    """x0 fixed at 5 by presolve; survivors scaled by [2, 1]."""
    model = MipModel(variables=[
        Variable(lower_bound=5, upper_bound=5),
        Variable(upper_bound=10),
        Variable(upper_bound=10),
    ])
    stack = PresolveStack()
    stack.apply(model, [FixedColumnStep()])
    return PostsolveReconstructor(np.array([2.0, 1.0]), stack)


@pytest.fixture
def integer_model():
    return IntegerModel(
        variables=[IntegerVariable(lower_bound=0, upper_bound=10), IntegerVariable(lower_bound=0, upper_bound=10)],
        objective=IntegerObjective(var_index=[0, 1], coefficient=[1, 1], scaling_factor=0.5, maximize=True),
    )


def _engine_solution(values, objective=0.0):
    return Solution(values=values, objective_value=objective, space=SolutionSpace.ENGINE)


# ── PostsolveReconstructor ────────────────────────────────────────────────────

class TestPostsolve:
    def test_unscale_then_recover(self, reconstructor):
        solution = reconstructor.postsolve(_engine_solution([6, 3], objective=4.0))
        assert solution.space == SolutionSpace.ORIGINAL
        assert solution.values == [5.0, 3.0, 3.0]
        assert solution.objective_value == 4.0

    def test_original_space_input_rejected(self, reconstructor):
        with pytest.raises(ValueError):
            reconstructor.postsolve(Solution(values=[1, 1]))

    def test_length_mismatch_raises(self, reconstructor):
        with pytest.raises(PipelineInvariantError):
            reconstructor.postsolve(_engine_solution([1, 2, 3]))

    def test_postsolve_is_repeatable(self, reconstructor):
        first = reconstructor.postsolve(_engine_solution([6, 3]))
        second = reconstructor.postsolve(_engine_solution([6, 3]))
        assert first == second


class TestAdditionalSolutions:
    def test_primary_duplicate_skipped_and_objective_recomputed(self, reconstructor, integer_model):
        response = EngineResponse(
            status=EngineStatus.OPTIMAL,
            solution=[6, 3],
            objective_value=4.5,
            additional_solutions=[[6, 3], [2, 1]],
        )
        primary, additional = reconstructor.finalize(response, integer_model)
        assert primary.values == [5.0, 3.0, 3.0]
        assert len(additional) == 1
        assert additional[0].values == [5.0, 1.0, 1.0]
        assert additional[0].objective_value == pytest.approx(1.5)

    def test_no_solution(self, reconstructor, integer_model):
        primary, additional = reconstructor.finalize(EngineResponse(status=EngineStatus.INFEASIBLE), integer_model)
        assert primary is None
        assert additional == []


class TestObjectiveRecomputation:
    def test_declared_objective_matches_original_objective(self):
        original = MipModel(
            variables=[
                Variable(lower_bound=0, upper_bound=10, is_integer=True, objective_coefficient=1.0),
                Variable(lower_bound=2, upper_bound=2, objective_coefficient=3.0),
                Variable(lower_bound=0, upper_bound=4, objective_coefficient=0.5),
            ],
            constraints=[LinearConstraint(var_index=[0, 2], coefficient=[1.0, 1.0], upper_bound=8)],
        )
        params = SolverParameters(mip_var_scaling=2.0)
        working = original.model_copy(deep=True)

        stack = PresolveStack()
        stack.apply(working, default_steps(2))
        scaling = ScalingEngine(params).compute(working)
        integer_model, _ = ModelConverter(params).convert(working)

        engine_values = [3, 5]
        declared = integer_model.objective.evaluate(engine_values)
        solution = PostsolveReconstructor(scaling, stack).postsolve(
            _engine_solution(engine_values, objective=declared)
        )
        assert solution.values == pytest.approx([3.0, 2.0, 2.5])
        assert original.objective_value(solution.values) == pytest.approx(declared)


# ── ResponseAssembler ─────────────────────────────────────────────────────────

class TestResponseAssembler:
    def test_rank_maximize_descending_stable(self):
        a, b, c = (Solution(values=[i], objective_value=obj) for i, obj in enumerate([7.0, 10.0, 7.0]))
        ranked = rank_solutions([a, b, c], maximize=True)
        assert ranked == [b, a, c]

    def test_rank_minimize_ascending(self):
        solutions = [Solution(values=[0], objective_value=v) for v in (3.0, 1.0, 2.0)]
        assert [s.objective_value for s in rank_solutions(solutions, maximize=False)] == [1.0, 2.0, 3.0]

    def test_early_exit(self):
        response = ResponseAssembler().early_exit(ResponseStatus.INFEASIBLE, "nope")
        assert response.status == ResponseStatus.INFEASIBLE
        assert response.status_str == "nope"
        assert response.variable_value == []

    def test_unknown_engine_status_is_not_solved(self):
        response = ResponseAssembler().assemble(EngineResponse(status=EngineStatus.UNKNOWN), None, [], False)
        assert response.status == ResponseStatus.NOT_SOLVED
        assert response.objective_value is None

    def test_assemble_solution(self):
        primary = Solution(values=[1.0, 2.0], objective_value=3.0)
        engine_response = EngineResponse(
            status=EngineStatus.FEASIBLE, objective_value=3.0, best_objective_bound=5.0, wall_time=0.25,
        )
        response = ResponseAssembler().assemble(engine_response, primary, [], True)
        assert response.status == ResponseStatus.FEASIBLE
        assert response.variable_value == [1.0, 2.0]
        assert response.best_objective_bound == 5.0
        assert response.solve_info.solve_wall_time_seconds == 0.25

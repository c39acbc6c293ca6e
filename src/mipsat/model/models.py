"""
Request/response surface of the solve pipeline.

MipModel is deliberately NOT frozen: presolve and scaling rewrite it in
place. The pipeline always works on a deep copy, so the caller's request is
never touched. Everything the caller gets back is frozen.
"""
from __future__ import annotations

import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import ResponseStatus, SolutionSpace


class Variable(BaseModel):
    lower_bound: float = 0.0
    upper_bound: float = math.inf
    is_integer: bool = False
    objective_coefficient: float = 0.0
    name: str = ""


class LinearConstraint(BaseModel):
    """lower_bound <= sum(coefficient[k] * x[var_index[k]]) <= upper_bound"""

    var_index: list[int] = Field(default_factory=list)
    coefficient: list[float] = Field(default_factory=list)
    lower_bound: float = -math.inf
    upper_bound: float = math.inf
    name: str = ""


class SolutionHint(BaseModel):
    """Sparse advisory assignment: parallel index/value lists."""

    var_index: list[int] = Field(default_factory=list)
    var_value: list[float] = Field(default_factory=list)


class MipModel(BaseModel):
    """Mixed-integer linear model, in the caller's variable space."""

    variables: list[Variable] = Field(default_factory=list)
    constraints: list[LinearConstraint] = Field(default_factory=list)
    maximize: bool = False
    objective_offset: float = 0.0
    solution_hint: Optional[SolutionHint] = None
    name: str = ""

    @property
    def num_variables(self) -> int:
        return len(self.variables)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    def objective_value(self, values) -> float:
        """Evaluate the linear objective at *values* (original space)."""
        return self.objective_offset + sum(
            v.objective_coefficient * float(x) for v, x in zip(self.variables, values)
        )


class SolveRequest(BaseModel):
    """
    Everything one solve call consumes.

    solver_specific_parameters is an opaque SatParameters blob: bytes for the
    binary encoding, str for the text encoding. Which one is accepted depends
    on the encoding flag in mipsat.settings.
    """

    model: MipModel = Field(default_factory=MipModel)
    enable_internal_solver_output: bool = False
    solver_time_limit_seconds: Optional[float] = None
    solver_specific_parameters: Optional[bytes | str] = None


class Solution(BaseModel):
    """One assignment plus its objective, tagged with the space it lives in."""

    model_config = ConfigDict(frozen=True)

    values: list[float]
    objective_value: float = 0.0
    space: SolutionSpace = SolutionSpace.ORIGINAL


class SolveInfo(BaseModel):
    """Time spent inside the engine only (pipeline overhead is not reported)."""

    model_config = ConfigDict(frozen=True)

    solve_wall_time_seconds: float = 0.0
    solve_user_time_seconds: float = 0.0


class SolveResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ResponseStatus = ResponseStatus.NOT_SOLVED
    status_str: str = ""
    objective_value: Optional[float] = None
    best_objective_bound: Optional[float] = None
    variable_value: list[float] = Field(default_factory=list)
    additional_solutions: list[Solution] = Field(default_factory=list)
    solve_info: SolveInfo = Field(default_factory=SolveInfo)

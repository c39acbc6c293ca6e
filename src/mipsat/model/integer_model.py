"""
Integer-only model handed to the engines.

Variable i of an IntegerModel is variable i of the presolved, scaled MipModel.
Objective semantics follow CP-SAT's objective proto:

    objective = scaling_factor * (sum(coeffs[k] * x[vars[k]]) + offset)

with a zero scaling_factor read as 1.
"""
from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class IntegerVariable(BaseModel):
    model_config = ConfigDict(frozen=True)

    lower_bound: int
    upper_bound: int
    name: str = ""


class IntegerConstraint(BaseModel):
    """A missing bound means the side is unconstrained."""

    model_config = ConfigDict(frozen=True)

    var_index: list[int]
    coefficient: list[int]
    lower_bound: Optional[int] = None
    upper_bound: Optional[int] = None
    name: str = ""


class IntegerObjective(BaseModel):
    model_config = ConfigDict(frozen=True)

    var_index: list[int] = Field(default_factory=list)
    coefficient: list[int] = Field(default_factory=list)
    offset: float = 0.0
    scaling_factor: float = 1.0
    maximize: bool = False

    def scale(self, raw: float) -> float:
        """Convert a raw integer objective (without offset) to the user scale."""
        factor = self.scaling_factor if self.scaling_factor != 0.0 else 1.0
        return factor * (raw + self.offset)

    def evaluate(self, values: Sequence[int]) -> float:
        raw = sum(c * values[v] for v, c in zip(self.var_index, self.coefficient))
        return self.scale(raw)


class FloatingPointObjective(BaseModel):
    """Exact objective in the scaled variable space."""

    model_config = ConfigDict(frozen=True)

    var_index: list[int] = Field(default_factory=list)
    coefficient: list[float] = Field(default_factory=list)
    offset: float = 0.0
    maximize: bool = False

    def evaluate(self, values: Sequence[int]) -> float:
        return self.offset + sum(c * values[v] for v, c in zip(self.var_index, self.coefficient))


class IntegerHint(BaseModel):
    model_config = ConfigDict(frozen=True)

    var_index: list[int] = Field(default_factory=list)
    var_value: list[int] = Field(default_factory=list)


class IntegerModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    variables: list[IntegerVariable] = Field(default_factory=list)
    constraints: list[IntegerConstraint] = Field(default_factory=list)
    objective: Optional[IntegerObjective] = None
    floating_point_objective: Optional[FloatingPointObjective] = None
    solution_hint: Optional[IntegerHint] = None

    @property
    def num_variables(self) -> int:
        return len(self.variables)

    @property
    def maximize(self) -> bool:
        if self.objective is not None:
            return self.objective.maximize
        if self.floating_point_objective is not None:
            return self.floating_point_objective.maximize
        return False

    def evaluate_objective(self, values: Sequence[int]) -> float:
        """
        Objective of an engine-space assignment.

        Uses the exact floating point terms when present, otherwise the
        integer terms with their declared scaling factor.
        """
        if self.floating_point_objective is not None:
            return self.floating_point_objective.evaluate(values)
        if self.objective is not None:
            return self.objective.evaluate(values)
        return 0.0

    def with_hint(self, hint: Optional[IntegerHint]) -> "IntegerModel":
        return self.model_copy(update={"solution_hint": hint})

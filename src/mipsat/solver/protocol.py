import threading
from typing import Callable, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from mipsat.model.integer_model import IntegerModel
from mipsat.model.models import Solution
from mipsat.model.types import EngineStatus

from .config import SolverParameters

SolutionObserver = Callable[[Solution], None]
LogCallback = Callable[[str], None]


class EngineResponse(BaseModel):
    """
    What an engine hands back, entirely in engine space

    additional_solutions are raw value vectors; their objectives are recomputed by the postsolve stage
    """
    model_config = ConfigDict(frozen=True)

    status: EngineStatus
    solution: list[int] = Field(default_factory=list)
    objective_value: float = 0.0
    best_objective_bound: float = 0.0
    additional_solutions: list[list[int]] = Field(default_factory=list)
    wall_time: float = 0.0
    user_time: float = 0.0


@runtime_checkable
class IntegerEngine(Protocol):
    """
    Contract for all integer solving back-ends

    solution_observer and log_callback run on the engine's own call stack: the engine waits for them to return,
    so they must be cheap and must never call back into solve_request
    interrupt is observed by the engine at its own granularity
    """

    def solve(
        self,
        model: IntegerModel,
        parameters: SolverParameters,
        interrupt: Optional[threading.Event] = None,
        solution_observer: Optional[SolutionObserver] = None,
        log_callback: Optional[LogCallback] = None,
    ) -> EngineResponse:
        """Solve *model* and report every improving solution to *solution_observer*."""
        ...

    @property
    def name(self) -> str:
        """Human-readable engine name for logging and diagnostics."""
        ...


class EngineFactory:
    """
    Constructs engines by registry name

    The pipeline receives an IntegerEngine (the protocol) and never imports concrete back-ends directly
    Adding a back-end requires only: (1) implementing the class (2) registering it in mipsat.solver
    """

    _registry: dict[str, type] = {}

    @classmethod
    def register(cls, name: str, engine_class: type) -> None:
        """Register an engine implementation"""
        # issubclass() is not available on protocols with property members
        if not isinstance(engine_class, type) or not callable(getattr(engine_class, "solve", None)):
            raise TypeError(f"{engine_class} does not implement IntegerEngine protocol")
        cls._registry[name] = engine_class

    @classmethod
    def available(cls) -> list[str]:
        return list(cls._registry)

    @classmethod
    def create(cls, name: str) -> IntegerEngine:
        """Instantiate an engine by name"""
        if name not in cls._registry:
            raise ValueError(
                f"Unknown engine '{name}'. "
                f"Available: {list(cls._registry.keys())}"
            )
        return cls._registry[name]()

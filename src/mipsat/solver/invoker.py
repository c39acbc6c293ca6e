from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable, Optional

from mipsat.model.integer_model import IntegerModel
from mipsat.model.models import Solution
from mipsat.utils.solver_log import SolverLogger

from .config import SolverParameters
from .protocol import EngineResponse, IntegerEngine

if TYPE_CHECKING:
    from mipsat.postsolve import PostsolveReconstructor

log = logging.getLogger(__name__)


class SolverInvoker:
    """
    Runs one engine call

    Live solutions are postsolved and handed to the caller's consumer one at a time, on the engine's own
    call stack. Engine log lines go to the SolverLogger.
    """

    def __init__(
        self,
        engine: IntegerEngine,
        postsolver: "PostsolveReconstructor",
        logger: Optional[SolverLogger] = None,
    ):
        self.engine = engine
        self.postsolver = postsolver
        self.logger = logger

    def solve(
        self,
        model: IntegerModel,
        parameters: SolverParameters,
        interrupt: Optional[threading.Event] = None,
        solution_callback: Optional[Callable[[Solution], None]] = None,
    ) -> EngineResponse:
        observer = None
        if solution_callback is not None:
            def observer(solution: Solution) -> None:
                solution_callback(self.postsolver.postsolve(solution))

        log_callback = None
        if self.logger is not None and self.logger.enabled:
            log_callback = self.logger.log

        log.info(
            "Solving integer model with %s: %d variables, %d constraints",
            self.engine.name, model.num_variables, len(model.constraints),
        )
        response = self.engine.solve(
            model,
            parameters,
            interrupt=interrupt,
            solution_observer=observer,
            log_callback=log_callback,
        )
        log.info("Engine %s finished with %s", self.engine.name, response.status.value)
        return response

from __future__ import annotations

import logging
from typing import Optional, Sequence

from mipsat.model.models import Solution, SolveInfo, SolveResponse
from mipsat.model.types import EngineStatus, ResponseStatus, to_engine_status, to_response_status
from mipsat.solver.protocol import EngineResponse
from mipsat.utils.solver_log import SolverLogger, format_response_stats

log = logging.getLogger(__name__)


def rank_solutions(solutions: Sequence[Solution], maximize: bool) -> list[Solution]:
    """Best objective first; ties keep their order"""
    return sorted(solutions, key=lambda s: s.objective_value, reverse=maximize)


class ResponseAssembler:
    """Builds every SolveResponse the pipeline returns, early exits included."""

    def __init__(self, logger: Optional[SolverLogger] = None):
        self.logger = logger

    def early_exit(
        self,
        status: ResponseStatus,
        message: str,
        objective_value: Optional[float] = None,
    ) -> SolveResponse:
        """Response for a call that stopped before the engine ran"""
        log.info("Early exit with %s: %s", status.value, message)
        if self.logger is not None and self.logger.enabled:
            self.logger.log(message)
            self.logger.log(format_response_stats(
                to_engine_status(status).value,
                objective=objective_value,
                best_bound=objective_value,
            ))
        return SolveResponse(
            status=status,
            status_str=message,
            objective_value=objective_value,
            best_objective_bound=objective_value,
        )

    def assemble(
        self,
        engine_response: EngineResponse,
        primary: Optional[Solution],
        additional: Sequence[Solution],
        maximize: bool,
    ) -> SolveResponse:
        status = to_response_status(engine_response.status)
        solve_info = SolveInfo(
            solve_wall_time_seconds=engine_response.wall_time,
            solve_user_time_seconds=engine_response.user_time,
        )

        if self.logger is not None and self.logger.enabled:
            self.logger.log(format_response_stats(
                engine_response.status.value,
                objective=engine_response.objective_value if primary is not None else None,
                best_bound=engine_response.best_objective_bound if primary is not None else None,
                wall_time=engine_response.wall_time,
                user_time=engine_response.user_time,
            ))

        if primary is None:
            status_str = "" if engine_response.status != EngineStatus.UNKNOWN else "No solution found"
            return SolveResponse(status=status, status_str=status_str, solve_info=solve_info)

        return SolveResponse(
            status=status,
            objective_value=primary.objective_value,
            best_objective_bound=engine_response.best_objective_bound,
            variable_value=primary.values,
            additional_solutions=rank_solutions(additional, maximize),
            solve_info=solve_info,
        )

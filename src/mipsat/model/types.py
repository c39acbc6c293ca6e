"""
Status and tagging enums shared by every pipeline stage.

These types form the contract between the request/response surface, the
pipeline and the integer engines. Engines speak EngineStatus, callers see
ResponseStatus; the two mappings below are the only place they meet.
"""
from __future__ import annotations

from enum import Enum


class ResponseStatus(str, Enum):
    """Final status reported to the caller."""

    NOT_SOLVED = "NOT_SOLVED"       # Engine stopped before proving anything
    MODEL_INVALID = "MODEL_INVALID"
    FEASIBLE = "FEASIBLE"
    INFEASIBLE = "INFEASIBLE"
    OPTIMAL = "OPTIMAL"
    ABNORMAL = "ABNORMAL"           # Engine status we do not recognize
    UNKNOWN = "UNKNOWN"             # Presolve could not separate infeasible from unbounded


class EngineStatus(str, Enum):
    """Status reported by an integer engine (CP-SAT vocabulary)."""

    UNKNOWN = "UNKNOWN"
    MODEL_INVALID = "MODEL_INVALID"
    FEASIBLE = "FEASIBLE"
    INFEASIBLE = "INFEASIBLE"
    OPTIMAL = "OPTIMAL"


class SolutionSpace(str, Enum):
    """Which variable space a Solution lives in."""

    ENGINE = "engine"       # integer, scaled, presolved
    ORIGINAL = "original"   # floating, unscaled, pre-presolve


class PresolveStatus(str, Enum):
    """Outcome of a presolve step, in priority order."""

    CONTINUE = "continue"
    PROVEN_INFEASIBLE = "proven_infeasible"
    PROVEN_INVALID = "proven_invalid"
    INFEASIBLE_OR_UNBOUNDED = "infeasible_or_unbounded"


_ENGINE_TO_RESPONSE = {
    EngineStatus.UNKNOWN: ResponseStatus.NOT_SOLVED,
    EngineStatus.MODEL_INVALID: ResponseStatus.MODEL_INVALID,
    EngineStatus.FEASIBLE: ResponseStatus.FEASIBLE,
    EngineStatus.INFEASIBLE: ResponseStatus.INFEASIBLE,
    EngineStatus.OPTIMAL: ResponseStatus.OPTIMAL,
}

_RESPONSE_TO_ENGINE = {
    ResponseStatus.OPTIMAL: EngineStatus.OPTIMAL,
    ResponseStatus.INFEASIBLE: EngineStatus.INFEASIBLE,
    ResponseStatus.MODEL_INVALID: EngineStatus.MODEL_INVALID,
}


def to_response_status(status: EngineStatus | str) -> ResponseStatus:
    """Map an engine status to a response status; unrecognized values are ABNORMAL."""
    try:
        return _ENGINE_TO_RESPONSE[EngineStatus(status)]
    except (ValueError, KeyError):
        return ResponseStatus.ABNORMAL


def to_engine_status(status: ResponseStatus) -> EngineStatus:
    """Reverse mapping used for synthetic status lines on early exits."""
    return _RESPONSE_TO_ENGINE.get(status, EngineStatus.UNKNOWN)

"""
Turns the request's raw configuration into validated SolverParameters and a SolverLogger.

Precedence, lowest first:
    1. enable_internal_solver_output -> log_search_progress
    2. solver_specific_parameters blob (may override 1)
    3. solver_time_limit_seconds -> max_time_in_seconds
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from google.protobuf import text_format
from google.protobuf.message import DecodeError
from ortools.sat import sat_parameters_pb2
from pydantic import ValidationError

from mipsat.error_handling.types import InvalidConfigError
from mipsat.model.models import SolveRequest
from mipsat.settings import settings
from mipsat.utils.solver_log import SolverLogger

from .config import SolverParameters, first_invalid_field, validate_parameters

log = logging.getLogger(__name__)


def decode_parameters(
    blob: bytes | str,
    base: Optional[SolverParameters] = None,
    encoding: Optional[str] = None,
) -> SolverParameters:
    """
    Decode a SatParameters blob in the active encoding and merge it onto *base*

    Both encodings produce the same SolverParameters type
    Raises InvalidConfigError when the blob is not valid in the active encoding
    """
    encoding = encoding or settings.params_encoding
    proto = sat_parameters_pb2.SatParameters()

    if encoding == "binary":
        if isinstance(blob, str):
            raise InvalidConfigError(
                "solver_specific_parameters is not a valid binary stream of the "
                "SatParameters proto (got text)"
            )
        try:
            proto.MergeFromString(blob)
        except DecodeError as e:
            raise InvalidConfigError(
                "solver_specific_parameters is not a valid binary stream of the "
                f"SatParameters proto: {e}"
            ) from e
    else:
        if isinstance(blob, bytes):
            try:
                blob = blob.decode("utf-8")
            except UnicodeDecodeError as e:
                raise InvalidConfigError(
                    "solver_specific_parameters is not a valid textual representation "
                    "of the SatParameters proto"
                ) from e
        try:
            text_format.Merge(blob, proto)
        except text_format.ParseError as e:
            raise InvalidConfigError(
                "solver_specific_parameters is not a valid textual representation "
                f"of the SatParameters proto: {e}"
            ) from e

    try:
        return SolverParameters.from_proto(proto, base=base)
    except ValidationError as e:
        raise InvalidConfigError(f"solver_specific_parameters rejected: {e}") from e


def encode_parameters(params: SolverParameters, encoding: Optional[str] = None) -> bytes | str:
    """Inverse of decode_parameters for the active encoding"""
    encoding = encoding or settings.params_encoding
    proto = params.to_proto()
    if encoding == "binary":
        return proto.SerializeToString()
    return text_format.MessageToString(proto, as_one_line=True)


@dataclass
class Configuration:
    parameters: SolverParameters
    logger: SolverLogger


class ParameterConfigurator:
    """Builds the per-call configuration. Raises InvalidConfigError before any model work."""

    def __init__(self, encoding: Optional[str] = None):
        self.encoding = encoding or settings.params_encoding

    def configure(
        self,
        request: SolveRequest,
        parameters: Optional[SolverParameters] = None,
        logging_callback: Optional[Callable[[str], None]] = None,
    ) -> Configuration:
        base = parameters or SolverParameters()
        base = base.model_copy(update={
            "log_search_progress": base.log_search_progress or request.enable_internal_solver_output
        })

        if request.solver_specific_parameters is not None:
            params = decode_parameters(
                request.solver_specific_parameters, base=base, encoding=self.encoding
            )
        else:
            params = base

        if request.solver_time_limit_seconds is not None:
            params = params.model_copy(
                update={"max_time_in_seconds": request.solver_time_limit_seconds}
            )

        error = validate_parameters(params)
        if error:
            raise InvalidConfigError(
                f"Invalid CP-SAT parameters: {error}", field=first_invalid_field(error)
            )

        logger = SolverLogger(
            enabled=params.log_search_progress,
            log_to_stdout=params.log_to_stdout,
        )
        if logging_callback is not None:
            logger.add_callback(logging_callback)

        log.debug(
            "Configured solve: encoding=%s time_limit=%s presolve_level=%d",
            self.encoding, params.max_time_in_seconds, params.mip_presolve_level,
        )
        return Configuration(parameters=params, logger=logger)

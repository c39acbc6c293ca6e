"""
Solver configuration
 - SolverParameters mirrors the SatParameters fields the pipeline itself reads
 - Any other SatParameters field coming from a blob is kept as an extra and forwarded to CP-SAT untouched

Field names are the SatParameters proto field names so the two can be converted without a mapping table.
"""
import math

from ortools.sat import sat_parameters_pb2
from pydantic import BaseModel, ConfigDict


class SolverParameters(BaseModel):
    """Configuration for one solve call. Defaults follow SatParameters."""

    model_config = ConfigDict(extra="allow")

    # Logging
    log_search_progress: bool = False
    log_to_stdout: bool = True

    # Search limits
    max_time_in_seconds: float = math.inf
    num_workers: int = 0                    # 0 lets the engine decide
    random_seed: int = 1

    # Multiple solutions
    enumerate_all_solutions: bool = False
    fill_additional_solutions_in_response: bool = False

    # MIP presolve: 0 disables it, 1 runs row/fixed-column steps, 2 also removes empty columns
    mip_presolve_level: int = 2

    # Scaling to a pure integer problem
    mip_automatically_scale_variables: bool = True
    mip_var_scaling: float = 1.0
    mip_scale_large_domain: bool = False
    mip_max_bound: float = 1e7              # Max magnitude of any scaled variable
    only_solve_ip: bool = False

    # Numerics
    mip_drop_tolerance: float = 1e-16       # Terms with |coef| * |bound| below this are dropped
    mip_wanted_precision: float = 1e-6      # Target relative activity error when integerizing rows
    mip_max_activity_exponent: int = 53     # Max row activity after scaling is 2^exponent
    mip_check_precision: float = 1e-4       # Integer bounds closer than 1e-2 times this to an integer snap to it
    mip_max_valid_magnitude: float = 1e20   # Larger coefficients/bounds make the model invalid

    @classmethod
    def from_proto(cls, proto: sat_parameters_pb2.SatParameters, base: "SolverParameters | None" = None) -> "SolverParameters":
        """Merge the fields explicitly set in *proto* onto *base*."""
        values = base.model_dump() if base is not None else {}
        for field, value in proto.ListFields():
            # Repeated fields come back as protobuf containers
            if not isinstance(value, (str, bytes)) and hasattr(value, "__iter__"):
                value = list(value)
            values[field.name] = value
        return cls.model_validate(values)

    def to_proto(self) -> sat_parameters_pb2.SatParameters:
        """Every field SatParameters knows; unknown extras are skipped."""
        known = sat_parameters_pb2.SatParameters.DESCRIPTOR.fields_by_name
        proto = sat_parameters_pb2.SatParameters()
        for name, value in self.model_dump().items():
            if name not in known:
                continue
            if isinstance(value, list):
                getattr(proto, name).extend(value)
            elif name == "max_time_in_seconds" and math.isinf(value):
                continue
            else:
                setattr(proto, name, value)
        return proto


# Allowed ranges, checked in this order. The first violation is reported.
PARAMETER_RANGES: dict[str, tuple[float, float]] = {
    "max_time_in_seconds": (0.0, math.inf),
    "num_workers": (0, 10_000),
    "mip_presolve_level": (0, 2),
    "mip_max_bound": (0.0, 1e17),
    "mip_drop_tolerance": (0.0, 1e-3),
    "mip_wanted_precision": (0.0, 1.0),
    "mip_max_activity_exponent": (1, 62),
    "mip_check_precision": (0.0, 1.0),
    "mip_max_valid_magnitude": (0.0, 1e30),
}

# Must be strictly positive and finite.
POSITIVE_PARAMETERS: tuple[str, ...] = ("mip_var_scaling",)


def validate_parameters(params: SolverParameters) -> str:
    """
    Range check against PARAMETER_RANGES

    Returns an error message naming the first violated field, or "" when every field is valid
    """
    for name, (low, high) in PARAMETER_RANGES.items():
        value = getattr(params, name)
        if isinstance(value, float) and math.isnan(value):
            return f"parameter '{name}' is NaN"
        if value < low or value > high:
            return f"parameter '{name}' should be in [{low:g},{high:g}]. Current value is {value}"

    for name in POSITIVE_PARAMETERS:
        value = getattr(params, name)
        if math.isnan(value) or math.isinf(value) or value <= 0:
            return f"parameter '{name}' should be positive and finite. Current value is {value}"
    return ""


def first_invalid_field(message: str) -> str | None:
    """Extract the field name from a validate_parameters() message"""
    if "'" not in message:
        return None
    return message.split("'")[1]

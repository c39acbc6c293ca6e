"""
mipsat: solve mixed-integer linear models with an integer-only engine.

Entry point is solve_request(); engines are registered in mipsat.solver.
"""
from .pipeline import solve_request
from .utils.solver_log import setup_logging

__all__ = ["solve_request", "setup_logging"]

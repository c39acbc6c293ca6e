"""
Solver package initialization : registers all built-in engines.

To add a new engine:
  1. Implement the IntegerEngine protocol in a new module under engines/
  2. Register it here with EngineFactory.register()
"""
from .config import SolverParameters
from .protocol import EngineFactory, EngineResponse, IntegerEngine

__all__ = [
    "EngineFactory",
    "EngineResponse",
    "IntegerEngine",
    "SolverParameters",
]

from .engines.cp_sat import CpSatEngine
from .engines.cbc import CbcEngine

EngineFactory.register("cp_sat", CpSatEngine)
EngineFactory.register("cbc", CbcEngine)

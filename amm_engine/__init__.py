"""Constant-product AMM engine."""

from amm_engine.engine import AMMEngine, EngineState
from amm_engine.errors import AMMError, ErrorKind
from amm_engine.results import OperationResult
from amm_engine.simulation import Simulation, build_simulation

__version__ = "0.1.0"
__all__ = [
    "AMMEngine",
    "EngineState",
    "AMMError",
    "ErrorKind",
    "OperationResult",
    "Simulation",
    "build_simulation",
    "__version__",
]

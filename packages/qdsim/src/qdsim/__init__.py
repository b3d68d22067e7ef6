"""
qdsim - open quantum system dynamics with a persistent result cache

A small orchestration package for reduced-density-matrix simulations:

- System/bath and simulation recipes read from YAML configs
- Primary dynamics (Bare, Bloch-Redfield, HEOM) producing dynamical maps and
  transfer tensors, plus exact equilibrium quantities
- Replay of cached transfer tensors (TTM) and a transfer-tensor derived GQME
  with optional Lindblad dissipation
- One HDF5 output file per recipe, written insert-if-absent

Main subpackages:
- config: units, system, bath and recipe parsing
- store: HDF5 access and cache path resolution
- engines: primary computations
"""

__version__ = "0.1.0"


# EXPLICIT IMPORTS ONLY (no lazy imports)

from .errors import (
    QDSimError,
    ConfigurationError,
    UnsupportedCalculation,
    UnsupportedMethod,
    NotFoundError,
    DimensionMismatch,
    LengthMismatch,
    InsufficientTransferTensors,
)
from .config import (
    Units,
    System,
    Bath,
    DrudeLorentz,
    Ohmic,
    CalculationKind,
    Method,
    SimulationSpec,
    PropagateSpec,
    parse_system_bath,
    parse_sim,
    parse_propagate,
)
from .propagators import Trajectory, calculate_bare_propagators
from .ttm import get_Ts_from_propagators, derive_propagators, apply_propagators
from .gqme import derive_kernel, propagate
from .dispatch import dispatch
from .workflows import run, propagate_using_tmats, propagate_using_gqme


# PUBLIC API - MOST COMMONLY USED
__all__ = [
    "__version__",
    # Errors
    "QDSimError",
    "ConfigurationError",
    "UnsupportedCalculation",
    "UnsupportedMethod",
    "NotFoundError",
    "DimensionMismatch",
    "LengthMismatch",
    "InsufficientTransferTensors",
    # Model objects
    "Units",
    "System",
    "Bath",
    "DrudeLorentz",
    "Ohmic",
    "CalculationKind",
    "Method",
    "SimulationSpec",
    "PropagateSpec",
    "parse_system_bath",
    "parse_sim",
    "parse_propagate",
    # Propagation
    "Trajectory",
    "calculate_bare_propagators",
    "get_Ts_from_propagators",
    "derive_propagators",
    "apply_propagators",
    "derive_kernel",
    "propagate",
    # Workflows
    "dispatch",
    "run",
    "propagate_using_tmats",
    "propagate_using_gqme",
]

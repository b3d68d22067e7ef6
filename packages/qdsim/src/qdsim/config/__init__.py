"""Configuration package.

Exposes the immutable model objects (units, system, bath, simulation recipes)
and the loaders that build them from YAML config files.
"""

from __future__ import annotations

from .units import Units, parse_units, temperature_to_beta
from .bath import Bath, DrudeLorentz, Ohmic, SpectralDensity
from .operators import load_matrix, parse_operator
from .simulation import (
    CalculationKind,
    Method,
    SimulationSpec,
    SimulationSpecBuilder,
    PropagateSpec,
    parse_sim,
    parse_propagate,
)
from .system_bath import System, parse_system_bath, load_simulation_file

__all__ = [
    # units
    "Units",
    "parse_units",
    "temperature_to_beta",
    # bath
    "Bath",
    "DrudeLorentz",
    "Ohmic",
    "SpectralDensity",
    # operators
    "load_matrix",
    "parse_operator",
    # simulation recipes
    "CalculationKind",
    "Method",
    "SimulationSpec",
    "SimulationSpecBuilder",
    "PropagateSpec",
    "parse_sim",
    "parse_propagate",
    # loaders
    "System",
    "parse_system_bath",
    "load_simulation_file",
]

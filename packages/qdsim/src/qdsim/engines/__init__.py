"""
Primary computation engines.

These run the expensive first pass of a recipe and write its results into
the store; the replay engines (:mod:`qdsim.ttm`, :mod:`qdsim.gqme`) reuse
what they leave behind.
"""

from __future__ import annotations

from .dynamics import MAP_BUILDERS, dynamics
from .equilibrium import CORR_ENGINES, RHO_ENGINES, complex_time_correlation_function, rho

__all__ = [
    "MAP_BUILDERS",
    "RHO_ENGINES",
    "CORR_ENGINES",
    "dynamics",
    "rho",
    "complex_time_correlation_function",
]

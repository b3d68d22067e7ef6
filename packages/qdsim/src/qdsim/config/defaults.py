"""Central defaults for :mod:`qdsim.config`.

Consolidates the supported option lists and the method-specific option
defaults in one place.
"""

from __future__ import annotations

# --- Supported methods per calculation kind ---
SUPPORTED_METHODS = {
    "dynamics": ["Bare", "Redfield", "HEOM"],
    "equilibrium_rho": ["Exact"],
    "complex_corr": ["Exact"],
}

# calculation kinds whose cache location is keyed on the time step
TIME_STEP_CALCULATIONS = ["dynamics", "complex_corr"]

# --- Method option defaults ---
METHOD_OPTIONS = {
    "Bare": {},
    "Redfield": {
        "sec_cutoff": 0.1,
        "atol": 1e-8,
        "rtol": 1e-6,
        "nsteps": 200000,
    },
    "HEOM": {
        "max_depth": 3,
        "num_pade": 2,
        "atol": 1e-8,
        "rtol": 1e-6,
        "nsteps": 200000,
    },
    "Exact": {},
}

# --- Propagation defaults ---
NUM_TMATS_ALL = -1  # use every stored transfer tensor

__all__ = [
    "SUPPORTED_METHODS",
    "TIME_STEP_CALCULATIONS",
    "METHOD_OPTIONS",
    "NUM_TMATS_ALL",
]

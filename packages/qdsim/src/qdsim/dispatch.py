"""Route a recipe to its primary computation.

Each calculation kind maps to exactly one calc function, and each calc
function has a fixed table of methods. Kind and method are both checked
before anything is created in the store. ``dry`` is passed through: the
engine then only locates the data group of an earlier run instead of
computing.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

import h5py

from .config.bath import Bath
from .config.simulation import CalculationKind, Method, SimulationSpec
from .config.system_bath import System
from .config.units import Units
from .engines.dynamics import MAP_BUILDERS, dynamics
from .engines.equilibrium import (
    CORR_ENGINES,
    RHO_ENGINES,
    complex_time_correlation_function,
    rho,
)
from .errors import ConfigurationError, UnsupportedCalculation, UnsupportedMethod
from .store.h5store import group
from .store.paths import data_segments

__all__ = ["CALCULATIONS", "METHODS", "check_supported", "dispatch"]


def _data_group(
    method_group: h5py.Group, sim: SimulationSpec, dry: bool
) -> h5py.Group:
    segments = data_segments(sim.calculation, dt=sim.dt_config, nsteps=sim.nsteps)
    return group(method_group, segments, create=not dry)


def _calc_dynamics(system, bath, sim, units, sim_node, method_group, dry, logger) -> h5py.Group:
    data_group = _data_group(method_group, sim, dry)
    return dynamics(sim.method, units, system, bath, sim, data_group, sim_node, dry=dry, logger=logger)


def _calc_equilibrium_rho(system, bath, sim, units, sim_node, method_group, dry, logger) -> h5py.Group:
    data_group = _data_group(method_group, sim, dry)
    return rho(sim.method, units, system, bath, sim, data_group, sim_node, dry=dry, logger=logger)


def _calc_complex_corr(system, bath, sim, units, sim_node, method_group, dry, logger) -> h5py.Group:
    data_group = _data_group(method_group, sim, dry)
    return complex_time_correlation_function(
        sim.method, units, system, bath, sim, data_group, sim_node, dry=dry, logger=logger
    )


CALCULATIONS: dict[CalculationKind, Callable[..., h5py.Group]] = {
    CalculationKind.DYNAMICS: _calc_dynamics,
    CalculationKind.EQUILIBRIUM_RHO: _calc_equilibrium_rho,
    CalculationKind.COMPLEX_CORR: _calc_complex_corr,
}

METHODS: dict[CalculationKind, Mapping[Method, Any]] = {
    CalculationKind.DYNAMICS: MAP_BUILDERS,
    CalculationKind.EQUILIBRIUM_RHO: RHO_ENGINES,
    CalculationKind.COMPLEX_CORR: CORR_ENGINES,
}


def check_supported(calculation_kind: CalculationKind | str, method: Method | str) -> tuple[CalculationKind, Method]:
    """Validate a (kind, method) pair against the registries."""
    if isinstance(calculation_kind, CalculationKind):
        kind = calculation_kind
    else:
        kind = CalculationKind.parse(calculation_kind)
    if kind not in CALCULATIONS:
        raise UnsupportedCalculation(f"no calculation registered for '{kind.value}'")
    methods = METHODS[kind]
    try:
        method = Method(getattr(method, "value", method))
    except ValueError:
        raise UnsupportedMethod(f"unknown method '{method}'") from None
    if method not in methods:
        raise UnsupportedMethod(
            f"method '{method.value}' is not available for calculation '{kind.value}'; "
            f"supported: {[m.value for m in methods]}"
        )
    return kind, method


def dispatch(
    calculation_kind: CalculationKind | str,
    system: System,
    bath: Bath,
    sim: SimulationSpec,
    units: Units,
    sim_node: Mapping[str, Any],
    method_group: h5py.Group,
    dry: bool = False,
    logger: logging.Logger | None = None,
) -> h5py.Group:
    """Run (or, with ``dry``, locate) the calculation and return its data group."""
    kind, _ = check_supported(calculation_kind, sim.method)
    if kind != sim.calculation:
        raise ConfigurationError(
            f"dispatching '{kind.value}' for a '{sim.calculation.value}' simulation"
        )
    return CALCULATIONS[kind](system, bath, sim, units, sim_node, method_group, dry, logger)

"""Equilibrium engines: thermal density and complex-time correlation functions."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

import h5py
import numpy as np

from ..config.bath import Bath
from ..config.operators import parse_operator
from ..config.simulation import Method, SimulationSpec
from ..config.system_bath import System
from ..config.units import Units
from ..errors import ConfigurationError
from ..store import paths
from ..store.h5store import write_if_absent

__all__ = [
    "exact_thermal_rho",
    "exact_complex_corr",
    "RHO_ENGINES",
    "CORR_ENGINES",
    "rho",
    "complex_time_correlation_function",
]

CORR_KEY = "corr"
PARTITION_KEY = "Z"


def _boltzmann_weights(hamiltonian: np.ndarray, beta: float) -> tuple[np.ndarray, np.ndarray, float]:
    """Eigen-decomposition with weights exp(-beta (E - E0)) and the true Z."""
    energies, vecs = np.linalg.eigh(np.asarray(hamiltonian, dtype=complex))
    e0 = energies[0]
    weights = np.exp(-beta * (energies - e0))
    Z = float(np.sum(weights) * np.exp(-beta * e0))
    return energies, vecs, Z


def exact_thermal_rho(system: System, beta: float) -> tuple[np.ndarray, float]:
    """Gibbs state exp(-beta H) / Z of the bare system."""
    energies, vecs, Z = _boltzmann_weights(system.Hamiltonian, beta)
    weights = np.exp(-beta * (energies - energies[0]))
    weights /= weights.sum()
    rho_eq = (vecs * weights) @ vecs.conj().T
    return rho_eq, Z


def exact_complex_corr(
    system: System, beta: float, A: np.ndarray, B: np.ndarray, dt: float, nsteps: int
) -> tuple[np.ndarray, np.ndarray, float]:
    """G(t) = Tr[exp(i H tc*) B exp(-i H tc) A] / Z with tc = t - i beta / 2.

    Returns (time, G, Z) for t = n dt, n = 0..nsteps.
    """
    energies, vecs, Z = _boltzmann_weights(system.Hamiltonian, beta)
    shifted = energies - energies[0]
    A_e = vecs.conj().T @ A @ vecs
    B_e = vecs.conj().T @ B @ vecs
    half = np.exp(-0.5 * beta * shifted)
    norm = np.sum(np.exp(-beta * shifted))

    time = np.arange(nsteps + 1) * dt
    corr = np.empty(nsteps + 1, dtype=complex)
    for n, t in enumerate(time):
        left = half * np.exp(1j * energies * t)  # exp(i E_m tc*)
        right = half * np.exp(-1j * energies * t)  # exp(-i E_n tc)
        corr[n] = np.einsum("m,mn,n,nm->", left, B_e, right, A_e) / norm
    return time, corr, Z


def _exact_rho_engine(system, bath, sim, sim_node, data_group, units, logger) -> None:
    rho_eq, Z = exact_thermal_rho(system, bath.beta)
    write_if_absent(data_group, paths.RHO_KEY, rho_eq)
    write_if_absent(data_group, PARTITION_KEY, Z)


def _exact_corr_engine(system, bath, sim, sim_node, data_group, units, logger) -> None:
    missing = [key for key in ("A", "B") if key not in sim_node]
    if missing:
        raise ConfigurationError(f"complex_corr needs operator(s) {missing}")
    A = parse_operator(sim_node["A"], system.Hamiltonian, sim.base_dir)
    B = parse_operator(sim_node["B"], system.Hamiltonian, sim.base_dir)
    time, corr, Z = exact_complex_corr(system, bath.beta, A, B, sim.dt, sim.nsteps)
    write_if_absent(data_group, paths.TIME_KEY, time / units.time_unit)
    write_if_absent(data_group, CORR_KEY, corr)
    write_if_absent(data_group, PARTITION_KEY, Z)


RHO_ENGINES: dict[Method, Callable[..., None]] = {
    Method.EXACT: _exact_rho_engine,
}

CORR_ENGINES: dict[Method, Callable[..., None]] = {
    Method.EXACT: _exact_corr_engine,
}


def _run(
    engines: Mapping[Method, Callable[..., None]],
    label: str,
    method: Method,
    units: Units,
    system: System,
    bath: Bath,
    sim: SimulationSpec,
    data_group: h5py.Group,
    sim_node: Mapping[str, Any],
    dry: bool,
    logger: logging.Logger | None,
) -> h5py.Group:
    logger = logger or logging.getLogger(__name__)
    if dry:
        logger.debug("dry run: reusing %s", data_group.name)
        return data_group
    logger.info("Computing %s with method %s.", label, method.value)
    engines[method](system, bath, sim, sim_node, data_group, units, logger)
    return data_group


def rho(
    method: Method,
    units: Units,
    system: System,
    bath: Bath,
    sim: SimulationSpec,
    data_group: h5py.Group,
    sim_node: Mapping[str, Any],
    *,
    dry: bool = False,
    logger: logging.Logger | None = None,
) -> h5py.Group:
    """Equilibrium density matrix of the recipe's system."""
    return _run(
        RHO_ENGINES, "equilibrium density", method, units, system, bath, sim,
        data_group, sim_node, dry, logger,
    )


def complex_time_correlation_function(
    method: Method,
    units: Units,
    system: System,
    bath: Bath,
    sim: SimulationSpec,
    data_group: h5py.Group,
    sim_node: Mapping[str, Any],
    *,
    dry: bool = False,
    logger: logging.Logger | None = None,
) -> h5py.Group:
    """Complex-time correlation function <A(tc) B(0)> of the recipe's system."""
    return _run(
        CORR_ENGINES, "complex-time correlation function", method, units, system, bath,
        sim, data_group, sim_node, dry, logger,
    )

"""Primary dynamics engines.

Every method produces the reduced dynamical maps E_1..E_nsteps by
propagating each operator basis element |i><j| through the solver, then
derives transfer tensors from them. Results are written into the data group
with insert-if-absent semantics:

    time  (config time unit)
    U0e   (nsteps, d^2, d^2) dynamical maps
    T0e   (rmax, d^2, d^2)   transfer tensors
    rho   (nsteps + 1, d, d) only when the recipe gives an initial density
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

import h5py
import numpy as np
from qutip import Qobj, brmesolve
from qutip.solver.heom import DrudeLorentzPadeBath, HEOMSolver

from ..config.bath import Bath, DrudeLorentz
from ..config.defaults import METHOD_OPTIONS
from ..config.operators import parse_operator
from ..config.simulation import Method, SimulationSpec
from ..config.system_bath import System
from ..config.units import Units
from ..errors import ConfigurationError
from ..propagators import calculate_bare_propagators, operator_basis, vec
from ..store import paths
from ..store.h5store import read, write_if_absent
from ..ttm import apply_propagators, get_Ts_from_propagators

__all__ = [
    "references",
    "method_options",
    "maps_from_states",
    "bare_maps",
    "redfield_maps",
    "heom_maps",
    "MAP_BUILDERS",
    "dynamics",
]

references = {
    Method.BARE: [],
    Method.REDFIELD: ["A. G. Redfield, Adv. Magn. Reson. 1, 1 (1965)."],
    Method.HEOM: ["Y. Tanimura and R. Kubo, J. Phys. Soc. Jpn. 58, 101 (1989)."],
}

# ODE options understood by the QuTiP solvers
_ODE_KEYS = ("atol", "rtol", "nsteps", "method", "max_step")


def method_options(method: Method, sim_node: Mapping[str, Any]) -> dict[str, Any]:
    """Method defaults updated with the keys the recipe node overrides."""
    options = dict(METHOD_OPTIONS.get(method.value, {}))
    for key in list(options):
        if key in sim_node and key != "nsteps":
            options[key] = sim_node[key]
    # the recipe's nsteps is the step count; ODE nsteps comes from ode_nsteps
    if "ode_nsteps" in sim_node and "nsteps" in options:
        options["nsteps"] = int(sim_node["ode_nsteps"])
    return options


def _ode_options(options: Mapping[str, Any]) -> dict[str, Any]:
    ode = {k: options[k] for k in _ODE_KEYS if k in options}
    ode["store_states"] = True
    return ode


def maps_from_states(states: list[list], dim: int, nsteps: int) -> np.ndarray:
    """Dynamical maps from solver states.

    ``states[k][n]`` is the state at step n (n = 0..nsteps) started from the
    k-th basis element of :func:`operator_basis`.
    """
    D = dim * dim
    E = np.zeros((nsteps, D, D), dtype=complex)
    for k, trajectory in enumerate(states):
        if len(trajectory) < nsteps + 1:
            raise RuntimeError(f"solver returned {len(trajectory)} states, expected {nsteps + 1}")
        for n in range(1, nsteps + 1):
            state = trajectory[n]
            E[n - 1][:, k] = vec(state.full() if isinstance(state, Qobj) else state)
    return E


# MAP BUILDERS


def bare_maps(system: System, bath: Bath, sim: SimulationSpec, options: Mapping) -> np.ndarray:
    """System-only propagation; the bath is ignored."""
    return calculate_bare_propagators(system.Hamiltonian, sim.dt, sim.nsteps)


def redfield_maps(system: System, bath: Bath, sim: SimulationSpec, options: Mapping) -> np.ndarray:
    """Bloch-Redfield propagation, one bosonic environment per spectral density."""
    if not bath.Jw:
        raise ConfigurationError("Redfield needs at least one bath spectral density")
    H = Qobj(system.Hamiltonian)
    a_ops = [(jw.coupling_op(), jw.to_environment(bath.beta)) for jw in bath.Jw]
    tlist = np.arange(sim.nsteps + 1) * sim.dt
    ode = _ode_options(options)

    states = []
    for rho_basis in operator_basis(system.dimension):
        result = brmesolve(
            H,
            Qobj(rho_basis),
            tlist,
            a_ops=a_ops,
            sec_cutoff=float(options.get("sec_cutoff", 0.1)),
            options=ode,
        )
        states.append(result.states)
    return maps_from_states(states, system.dimension, sim.nsteps)


def heom_maps(system: System, bath: Bath, sim: SimulationSpec, options: Mapping) -> np.ndarray:
    """Hierarchical equations of motion with Pade-decomposed Drude-Lorentz baths."""
    if not bath.Jw:
        raise ConfigurationError("HEOM needs at least one bath spectral density")
    unsupported = [jw.model for jw in bath.Jw if not isinstance(jw, DrudeLorentz)]
    if unsupported:
        raise ConfigurationError(
            f"HEOM supports drude_lorentz spectral densities only, got {unsupported}"
        )
    num_pade = int(options.get("num_pade", 2))
    max_depth = int(options.get("max_depth", 3))
    heom_baths = [
        DrudeLorentzPadeBath(jw.coupling_op(), jw.lam, jw.gamma, 1.0 / bath.beta, num_pade)
        for jw in bath.Jw
    ]
    solver = HEOMSolver(
        Qobj(system.Hamiltonian), heom_baths, max_depth, options=_ode_options(options)
    )
    tlist = np.arange(sim.nsteps + 1) * sim.dt

    states = []
    for rho_basis in operator_basis(system.dimension):
        result = solver.run(Qobj(rho_basis), tlist)
        states.append(result.states)
    return maps_from_states(states, system.dimension, sim.nsteps)


MAP_BUILDERS: dict[Method, Callable[..., np.ndarray]] = {
    Method.BARE: bare_maps,
    Method.REDFIELD: redfield_maps,
    Method.HEOM: heom_maps,
}


def dynamics(
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
    """Compute (or, with ``dry``, just locate) the dynamics data of one recipe.

    A data group that already holds transfer tensors is reused: its maps must
    cover ``sim.nsteps`` and only a missing ``rho`` is filled in.
    """
    logger = logger or logging.getLogger(__name__)
    if dry:
        logger.debug("dry run: reusing %s", data_group.name)
        return data_group

    if paths.TRANSFER_TENSORS_KEY in data_group:
        E = np.asarray(read(data_group, paths.PROPAGATORS_KEY))
        if len(E) < sim.nsteps:
            raise ConfigurationError(
                f"{data_group.name} caches {len(E)} step(s) but the recipe asks for "
                f"{sim.nsteps}; use propagate_using_tmats or a new output file"
            )
        logger.info(
            "Dynamical maps already present in %s (%d steps), reusing them.", data_group.name, len(E)
        )
        E = E[: sim.nsteps]
    else:
        builder = MAP_BUILDERS[method]
        options = method_options(method, sim_node)
        logger.info("Running %s dynamics for %d steps (options: %s).", method.value, sim.nsteps, options)
        E = builder(system, bath, sim, options)

        rmax = int(sim_node.get("rmax", sim.nsteps))
        Ts = get_Ts_from_propagators(E, rmax)
        time = np.arange(sim.nsteps + 1) * sim.dt

        write_if_absent(data_group, paths.TIME_KEY, time / units.time_unit)
        write_if_absent(data_group, paths.PROPAGATORS_KEY, E)
        write_if_absent(data_group, paths.TRANSFER_TENSORS_KEY, Ts)

    if sim_node.get("rho0") is not None:
        rho0 = parse_operator(sim_node["rho0"], system.Hamiltonian, sim.base_dir)
        U = np.concatenate([np.eye(E.shape[1], dtype=complex)[np.newaxis], E])
        trajectory = apply_propagators(U, rho0, sim.dt)
        if not write_if_absent(data_group, paths.RHO_KEY, trajectory.rho):
            logger.warning("%s/%s already present, kept the stored trajectory.", data_group.name, paths.RHO_KEY)
    return data_group

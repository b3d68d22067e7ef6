"""Top-level workflows behind the command line interface.

    run                    first pass: write the system/bath record and run
                           the primary computation of one recipe
    propagate_using_tmats  replay cached transfer tensors for new initial densities
    propagate_using_gqme   derive a memory kernel from the cached transfer tensors
                           and integrate the GQME (optionally with Lindblad terms)

Each workflow takes the two config paths and an optional logger owned by the
caller. Any failure aborts the whole invocation; the error message names the
simulation (and initial density) it came from.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence

import h5py
import numpy as np

from . import gqme, ttm
from .config.operators import parse_operator
from .config.simulation import PropagateSpec, parse_propagate, parse_sim
from .config.system_bath import load_simulation_file, parse_system_bath
from .config.units import Units
from .dispatch import check_supported, dispatch
from .errors import ConfigurationError, NotFoundError, QDSimError
from .log import LOGGER_NAME, blas_info, log_banner, log_citation
from .propagators import Trajectory, calculate_bare_propagators
from .store import paths
from .store.h5store import group, open_store, read, write_if_absent

__all__ = ["run", "propagate_using_tmats", "propagate_using_gqme", "save_trajectory"]


# HELPERS


@contextmanager
def _failure_context(label: str) -> Iterator[None]:
    """Prefix qdsim errors raised inside the block with ``label``."""
    try:
        yield
    except QDSimError as exc:
        raise type(exc)(f"{label}: {exc}") from exc


def _get_logger(logger: logging.Logger | None) -> logging.Logger:
    return logger if logger is not None else logging.getLogger(LOGGER_NAME)


def _propagate_nodes(sim_file: Mapping[str, Any]) -> Sequence[Mapping[str, Any]]:
    prop_node = sim_file.get("propagate")
    if not isinstance(prop_node, Mapping) or "simulation" not in prop_node:
        raise ConfigurationError("simulation config needs a 'propagate.simulation' list")
    nodes = prop_node["simulation"]
    if isinstance(nodes, Mapping):
        nodes = [nodes]
    if not nodes:
        raise ConfigurationError("'propagate.simulation' is empty")
    return nodes


def _require_output(prop: PropagateSpec) -> None:
    if not prop.sim.output.is_file():
        raise NotFoundError(f"output file not present: {prop.sim.output}")


def save_trajectory(
    data_node: h5py.Group,
    outgroup: str,
    trajectory: Trajectory,
    units: Units,
    logger: logging.Logger,
) -> h5py.Group:
    """Write a replay result under ``data_node/outgroup``; existing keys are kept."""
    if outgroup in data_node and not isinstance(data_node[outgroup], h5py.Group):
        raise ConfigurationError(
            f"output group '{outgroup}' collides with dataset {data_node[outgroup].name}"
        )
    logger.info("Saving the data in %s.", outgroup)
    out = group(data_node, outgroup, create=True)
    written = [
        write_if_absent(out, paths.TIME_KEY, trajectory.time / units.time_unit),
        write_if_absent(out, paths.TIME_UNIT_KEY, units.time_unit),
        write_if_absent(out, paths.RHO_KEY, trajectory.rho),
    ]
    if not any(written):
        logger.info("Output group %s already complete, left unchanged.", out.name)
    return out


def _parse_densities(prop: PropagateSpec, hamiltonian: np.ndarray) -> list[np.ndarray]:
    densities = []
    for nr, ref in enumerate(prop.rho0, start=1):
        with _failure_context(f"rho0 #{nr}"):
            densities.append(parse_operator(ref, hamiltonian, prop.sim.base_dir))
    return densities


# WORKFLOWS


def run(system_input: str | Path, simulate_input: str | Path, logger: logging.Logger | None = None) -> str:
    """Run the recipe in ``simulate_input`` on the system in ``system_input``.

    Returns the store path of the data group that holds the results.
    """
    logger = _get_logger(logger)
    log_banner(logger, "qdsim: run")
    logger.info("Using %s for linear algebra.", blas_info())

    units, system, bath = parse_system_bath(system_input)
    logger.info("Units: %s", units.summary())
    sim_file, base_dir = load_simulation_file(simulate_input)
    sim_node = sim_file.get("simulation")
    if not isinstance(sim_node, Mapping):
        raise ConfigurationError("simulation config needs a 'simulation' mapping")

    with _failure_context("simulation"):
        sim = parse_sim(sim_node, units, base_dir)
        check_supported(sim.calculation, sim.method)
    logger.info("\n%s", sim.summary())

    with open_store(sim.output, "a") as out:
        sim_out = group(out, sim.name)
        write_if_absent(sim_out, paths.HAMILTONIAN_KEY, system.Hamiltonian / units.energy_unit)
        write_if_absent(sim_out, paths.ENERGY_UNIT_KEY, units.energy_unit)
        write_if_absent(sim_out, paths.BETA_KEY, bath.beta)
        for i, jw in enumerate(bath.Jw, start=1):
            omega, j = jw.tabulate()
            write_if_absent(sim_out, paths.bath_key(i), np.vstack([omega, j]))

        method_group = group(sim_out, [sim.calculation.value, sim.method.value])
        data_node = dispatch(
            sim.calculation, system, bath, sim, units, sim_node, method_group, logger=logger
        )
        logger.info("Results stored in %s:%s", sim.output, data_node.name)
        return data_node.name


def propagate_using_tmats(
    system_input: str | Path, simulate_input: str | Path, logger: logging.Logger | None = None
) -> list[str]:
    """Propagate initial densities with the transfer tensors of an earlier run."""
    logger = _get_logger(logger)
    log_banner(logger, "qdsim: propagate_using_tmats")
    logger.info("Using %s for linear algebra.", blas_info())
    logger.info("Using transfer tensors to propagate the reduced density matrices:")
    log_citation(logger, ttm.references)

    units, system, bath = parse_system_bath(system_input)
    logger.info("Units: %s", units.summary())
    sim_file, base_dir = load_simulation_file(simulate_input)

    written: list[str] = []
    for ns, sim_node in enumerate(_propagate_nodes(sim_file), start=1):
        logger.info("Processing simulation number %d.", ns)
        with _failure_context(f"simulation #{ns}"):
            prop = parse_propagate(sim_node, units, base_dir)
            sim = prop.sim
            _require_output(prop)
            densities = _parse_densities(prop, system.Hamiltonian)

            with open_store(sim.output, "r+") as out:
                method_group = group(
                    out, paths.method_path(sim.name, sim.calculation.value, sim.method.value), create=False
                )
                data_node = dispatch(
                    sim.calculation, system, bath, sim, units, sim_node, method_group, dry=True, logger=logger
                )
                Ts = read(data_node, paths.TRANSFER_TENSORS_KEY)
                U = ttm.derive_propagators(Ts, sim.nsteps, prop.num_tmats_used)
                logger.info(
                    "Using %d of %d transfer tensors for %d steps.",
                    len(ttm.truncate(Ts, prop.num_tmats_used)), len(Ts), sim.nsteps,
                )

                for nr, (rho0, outgroup) in enumerate(zip(densities, prop.outgroup), start=1):
                    logger.info("Processing initial density number %d.", nr)
                    with _failure_context(f"rho0 #{nr}"):
                        trajectory = ttm.apply_propagators(U, rho0, sim.dt)
                        written.append(save_trajectory(data_node, outgroup, trajectory, units, logger).name)
    return written


def propagate_using_gqme(
    system_input: str | Path, simulate_input: str | Path, logger: logging.Logger | None = None
) -> list[str]:
    """Propagate initial densities with a GQME whose memory kernel comes from cached transfer tensors."""
    logger = _get_logger(logger)
    log_banner(logger, "qdsim: propagate_using_gqme")
    logger.info("Using %s for linear algebra.", blas_info())
    logger.info("Using a transfer-tensor derived memory kernel to propagate the reduced density matrices:")
    log_citation(logger, gqme.references)

    units, system, bath = parse_system_bath(system_input)
    logger.info("Units: %s", units.summary())
    sim_file, base_dir = load_simulation_file(simulate_input)

    written: list[str] = []
    for ns, sim_node in enumerate(_propagate_nodes(sim_file), start=1):
        logger.info("Processing simulation number %d.", ns)
        with _failure_context(f"simulation #{ns}"):
            prop = parse_propagate(sim_node, units, base_dir)
            sim = prop.sim
            _require_output(prop)

            with open_store(sim.output, "r+") as out:
                sim_group = group(out, sim.name, create=False)
                hamiltonian = read(sim_group, paths.HAMILTONIAN_KEY) * units.energy_unit
                densities = _parse_densities(prop, hamiltonian)

                dissipators = None
                rates = None
                if prop.has_lindblad:
                    dissipators = []
                    for nl, ref in enumerate(prop.lindblad, start=1):
                        with _failure_context(f"lindblad #{nl}"):
                            dissipators.append(parse_operator(ref, hamiltonian, sim.base_dir))
                    # decay constants are lifetimes in the config time unit
                    rates = [1.0 / (c * units.time_unit) for c in prop.decay_constant]

                method_group = group(
                    sim_group, [sim.calculation.value, sim.method.value], create=False
                )
                data_node = dispatch(
                    sim.calculation, system, bath, sim, units, sim_node, method_group, dry=True, logger=logger
                )
                ts = np.asarray(read(data_node, paths.TIME_KEY), dtype=float) * units.time_unit
                dt = float(ts[1] - ts[0]) if len(ts) > 1 else sim.dt
                U_bare = calculate_bare_propagators(hamiltonian, dt)[0]
                Ts = read(data_node, paths.TRANSFER_TENSORS_KEY)
                K = gqme.derive_kernel(Ts, U_bare, dt, prop.num_tmats_used)
                logger.info("Derived a memory kernel of length %d (dt = %.6g au).", len(K), dt)

                for nr, (rho0, outgroup) in enumerate(zip(densities, prop.outgroup), start=1):
                    logger.info("Processing initial density number %d.", nr)
                    with _failure_context(f"rho0 #{nr}"):
                        trajectory = gqme.propagate(
                            K, U_bare, rho0, sim.nsteps, dt,
                            dissipators=dissipators, decay_constants=rates,
                        )
                        written.append(save_trajectory(data_node, outgroup, trajectory, units, logger).name)
    return written

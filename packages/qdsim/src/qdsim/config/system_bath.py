"""System/bath config → (Units, System, Bath).

Usage:
    from qdsim.config import parse_system_bath
    units, sys, bath = parse_system_bath("system.yaml")

YAML schema (all sections):

    units:
      energy_unit: cm^-1
      time_unit: fs
    system:
      Hamiltonian: hamiltonian.txt      # or an inline matrix
    bath:
      beta: 0.01                        # 1/energy_unit; or temperature: 300 (K)
      spectral_density:
        - model: drude_lorentz
          lambda: 100.0
          gamma: 50.0
          svec: [1.0, -1.0]
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import numpy as np
import yaml

from ..errors import ConfigurationError, NotFoundError
from .bath import Bath, parse_spectral_densities
from .operators import load_matrix
from .units import Units, parse_units, temperature_to_beta

__all__ = ["System", "read_yaml", "get_section", "parse_system_bath", "load_simulation_file"]


@dataclass(frozen=True)
class System:
    """Coherent part of the problem; Hamiltonian in atomic units."""

    Hamiltonian: np.ndarray

    @property
    def dimension(self) -> int:
        return int(self.Hamiltonian.shape[0])


# HELPERS
def read_yaml(path: Path) -> Mapping[str, Any]:
    path = Path(path)
    if not path.exists():
        raise NotFoundError(f"config file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Top-level YAML of {path} must be a mapping/dict")
    return data


def get_section(cfg: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    sec = cfg.get(name, {})
    return sec if isinstance(sec, Mapping) else {}


def _parse_hamiltonian(system_cfg: Mapping[str, Any], units: Units, base_dir: Path) -> np.ndarray:
    if "Hamiltonian" not in system_cfg:
        raise ConfigurationError("system.Hamiltonian is required")
    H = load_matrix(system_cfg["Hamiltonian"], base_dir)
    if H.ndim != 2 or H.shape[0] != H.shape[1]:
        raise ConfigurationError(f"system.Hamiltonian must be square, got shape {H.shape}")
    if not np.allclose(H, H.conj().T):
        raise ConfigurationError("system.Hamiltonian must be Hermitian")
    return units.energy(H)


def _parse_beta(bath_cfg: Mapping[str, Any], units: Units) -> float:
    if "beta" in bath_cfg:
        beta = float(bath_cfg["beta"])
        if beta <= 0:
            raise ConfigurationError("bath.beta must be positive")
        # beta is given in 1 / energy_unit
        return beta / units.energy_unit
    if "temperature" in bath_cfg:
        return temperature_to_beta(float(bath_cfg["temperature"]))
    raise ConfigurationError("bath needs either 'beta' or 'temperature'")


def parse_system_bath(path: str | Path) -> tuple[Units, System, Bath]:
    """Load the system config file and build the immutable model objects."""
    path = Path(path)
    cfg_root = read_yaml(path)
    base_dir = path.resolve().parent

    units = parse_units(get_section(cfg_root, "units"))
    system = System(Hamiltonian=_parse_hamiltonian(get_section(cfg_root, "system"), units, base_dir))

    bath_cfg = get_section(cfg_root, "bath")
    bath = Bath(
        beta=_parse_beta(bath_cfg, units),
        Jw=parse_spectral_densities(bath_cfg.get("spectral_density"), units),
    )
    bath.check_dimension(system.dimension)
    return units, system, bath


def load_simulation_file(path: str | Path) -> tuple[Mapping[str, Any], Optional[Path]]:
    """Read a simulation config and return it with the directory to resolve paths against."""
    path = Path(path)
    return read_yaml(path), path.resolve().parent

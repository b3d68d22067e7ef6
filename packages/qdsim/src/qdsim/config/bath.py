"""
Bath descriptions: spectral densities and the harmonic bath they define.

Spectral densities are evaluated in atomic units and are compatible with
scalar and array inputs. The helpers mirror the structure of the QuTiP bath
functions so the same descriptor can be handed to QuTiP solvers through
:meth:`SpectralDensity.to_environment`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Sequence

import numpy as np
from numpy.typing import ArrayLike
from qutip import DrudeLorentzEnvironment, OhmicEnvironment, Qobj
from qutip.core.environment import BosonicEnvironment

from ..errors import ConfigurationError
from .units import Units

__all__ = [
    "spectral_density_func_drude_lorentz",
    "spectral_density_func_ohmic",
    "SpectralDensity",
    "DrudeLorentz",
    "Ohmic",
    "Bath",
    "parse_spectral_density",
    "parse_spectral_densities",
    "SUPPORTED_SPECTRAL_DENSITIES",
]


# SPECTRAL DENSITY FUNCTIONS


def spectral_density_func_drude_lorentz(
    w: float | ArrayLike, lam: float, gamma: float
) -> float | ArrayLike:
    """J(w) = 2 lam gamma w / (w^2 + gamma^2)."""
    w_input = w
    w = np.asarray(w, dtype=float)
    result = (2 * lam * gamma * w) / (w**2 + gamma**2)
    if np.isscalar(w_input):
        return float(result)
    return result


def spectral_density_func_ohmic(
    w: float | ArrayLike, xi: float, omegac: float, n: float = 1.0
) -> float | ArrayLike:
    """J(w) = pi/2 xi w^n wc^(1-n) exp(-w/wc) for w > 0, zero otherwise."""
    w = np.asarray(w, dtype=float)
    result = np.zeros_like(w)

    positive_mask = w > 0
    w_mask = w[positive_mask]
    result[positive_mask] = (
        0.5 * np.pi * xi * w_mask**n * omegac ** (1 - n) * np.exp(-w_mask / omegac)
    )
    return result.item() if w.ndim == 0 else result


# DESCRIPTORS


@dataclass(frozen=True)
class SpectralDensity:
    """Common part of every spectral-density descriptor (atomic units)."""

    svec: tuple[float, ...] = field(default=(1.0, -1.0))
    npoints: int = 10000
    omega_max: float | None = None

    model: ClassVar[str] = ""

    def __call__(self, w: float | ArrayLike) -> float | ArrayLike:
        raise NotImplementedError

    @property
    def cutoff(self) -> float:
        raise NotImplementedError

    @property
    def wmax(self) -> float:
        return float(self.omega_max) if self.omega_max is not None else 30.0 * self.cutoff

    def tabulate(self) -> tuple[np.ndarray, np.ndarray]:
        """Return (omega, J(omega)) on a uniform grid from 0 to ``wmax``."""
        omega = np.linspace(0.0, self.wmax, int(self.npoints))
        return omega, np.asarray(self(omega), dtype=float)

    def coupling_op(self) -> Qobj:
        """Diagonal system operator coupled to this bath."""
        return Qobj(np.diag(np.asarray(self.svec, dtype=complex)))

    def to_environment(self, beta: float) -> BosonicEnvironment:
        raise NotImplementedError


@dataclass(frozen=True)
class DrudeLorentz(SpectralDensity):
    lam: float = 0.0
    gamma: float = 1.0

    model: ClassVar[str] = "drude_lorentz"

    def __call__(self, w):
        return spectral_density_func_drude_lorentz(w, self.lam, self.gamma)

    @property
    def cutoff(self) -> float:
        return float(self.gamma)

    def to_environment(self, beta: float) -> BosonicEnvironment:
        return DrudeLorentzEnvironment(T=1.0 / beta, lam=self.lam, gamma=self.gamma, tag=self.model)


@dataclass(frozen=True)
class Ohmic(SpectralDensity):
    xi: float = 0.0
    omegac: float = 1.0
    n: float = 1.0

    model: ClassVar[str] = "ohmic"

    def __call__(self, w):
        return spectral_density_func_ohmic(w, self.xi, self.omegac, self.n)

    @property
    def cutoff(self) -> float:
        return float(self.omegac)

    def to_environment(self, beta: float) -> BosonicEnvironment:
        # QuTiP: J(w) = alpha w^s / wc^(s-1) exp(-w/wc)
        return OhmicEnvironment(
            T=1.0 / beta,
            alpha=0.5 * np.pi * self.xi,
            wc=self.omegac,
            s=self.n,
            tag=self.model,
        )


SUPPORTED_SPECTRAL_DENSITIES = {
    DrudeLorentz.model: DrudeLorentz,
    Ohmic.model: Ohmic,
}


@dataclass(frozen=True)
class Bath:
    """Inverse temperature and the ordered spectral densities of the environment."""

    beta: float
    Jw: tuple[SpectralDensity, ...] = ()

    def check_dimension(self, dim: int) -> None:
        for i, jw in enumerate(self.Jw, start=1):
            if len(jw.svec) != dim:
                raise ConfigurationError(
                    f"bath spectral density #{i}: svec has {len(jw.svec)} entries, "
                    f"Hamiltonian dimension is {dim}"
                )


# PARSING


def parse_spectral_density(node: dict, units: Units) -> SpectralDensity:
    """Build one descriptor from a ``bath.spectral_density`` entry."""
    model = str(node.get("model", "")).lower()
    if model not in SUPPORTED_SPECTRAL_DENSITIES:
        raise ConfigurationError(
            f"spectral density model '{model}' not in {sorted(SUPPORTED_SPECTRAL_DENSITIES)}"
        )
    common = dict(
        svec=tuple(float(s) for s in node.get("svec", (1.0, -1.0))),
        npoints=int(node.get("npoints", 10000)),
        omega_max=(
            units.energy(float(node["omega_max"])) if node.get("omega_max") is not None else None
        ),
    )
    try:
        if model == DrudeLorentz.model:
            return DrudeLorentz(
                lam=units.energy(float(node["lambda"])),
                gamma=units.energy(float(node["gamma"])),
                **common,
            )
        return Ohmic(
            xi=float(node["xi"]),
            omegac=units.energy(float(node["omegac"])),
            n=float(node.get("n", 1.0)),
            **common,
        )
    except KeyError as exc:
        raise ConfigurationError(f"spectral density '{model}' is missing field {exc}") from exc


def parse_spectral_densities(nodes: Sequence[dict] | dict | None, units: Units) -> tuple:
    if nodes is None:
        return ()
    if isinstance(nodes, dict):
        nodes = [nodes]
    return tuple(parse_spectral_density(node, units) for node in nodes)

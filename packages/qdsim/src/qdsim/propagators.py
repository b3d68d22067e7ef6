"""Superoperator helpers shared by the engines.

Densities are vectorized by stacking columns, the same convention QuTiP uses
for its superoperators, so ``Qobj.full()`` of a superoperator can be applied
directly to :func:`vec` output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from qutip import Qobj, liouvillian, lindblad_dissipator

from .errors import DimensionMismatch, LengthMismatch

__all__ = [
    "Trajectory",
    "check_density",
    "vec",
    "unvec",
    "identity_superop",
    "calculate_bare_propagators",
    "lindblad_superop",
    "operator_basis",
]


@dataclass(frozen=True)
class Trajectory:
    """Density matrices rho[n] on the time grid n * dt (atomic units)."""

    time: np.ndarray
    rho: np.ndarray

    def __len__(self) -> int:
        return len(self.time)

    def populations(self) -> np.ndarray:
        return np.real(np.diagonal(self.rho, axis1=-2, axis2=-1))


def check_density(rho0: np.ndarray, dim: int) -> np.ndarray:
    rho0 = np.asarray(rho0, dtype=complex)
    if rho0.shape != (dim, dim):
        raise DimensionMismatch(f"initial density has shape {rho0.shape}, expected {(dim, dim)}")
    return rho0


def vec(rho: np.ndarray) -> np.ndarray:
    """Column-stacked vector of a square matrix."""
    return np.asarray(rho, dtype=complex).reshape(-1, order="F")


def unvec(v: np.ndarray, dim: int | None = None) -> np.ndarray:
    """Inverse of :func:`vec`; ``v`` may carry leading batch axes."""
    v = np.asarray(v)
    if dim is None:
        dim = int(round(np.sqrt(v.shape[-1])))
    if dim * dim != v.shape[-1]:
        raise DimensionMismatch(f"vector of length {v.shape[-1]} is not a vectorized square matrix")
    # column stacking == row stacking of the transpose
    return np.swapaxes(v.reshape(*v.shape[:-1], dim, dim), -1, -2)


def identity_superop(dim: int) -> np.ndarray:
    return np.eye(dim * dim, dtype=complex)


def operator_basis(dim: int) -> list[np.ndarray]:
    """Matrix units |i><j| ordered like the entries of :func:`vec`."""
    basis = []
    for k in range(dim * dim):
        e = np.zeros(dim * dim, dtype=complex)
        e[k] = 1.0
        basis.append(unvec(e, dim))
    return basis


def calculate_bare_propagators(hamiltonian: np.ndarray, dt: float, nsteps: int = 1) -> np.ndarray:
    """System-only propagators exp(L n dt) for n = 1..nsteps, shape (nsteps, d^2, d^2)."""
    L = liouvillian(Qobj(np.asarray(hamiltonian, dtype=complex)))
    U1 = (L * dt).expm().full()
    props = np.empty((nsteps, *U1.shape), dtype=complex)
    props[0] = U1
    for n in range(1, nsteps):
        props[n] = U1 @ props[n - 1]
    return props


def lindblad_superop(operators: Sequence[np.ndarray], rates: Sequence[float] | None = None) -> np.ndarray:
    """Sum over channels of rate * D[L], D[L] rho = L rho L^+ - 1/2 {L^+ L, rho}.

    Without ``rates`` every channel enters with unit weight (the operators are
    assumed to carry their own scaling).
    """
    if rates is None:
        rates = [1.0] * len(operators)
    if len(rates) != len(operators):
        raise LengthMismatch(
            f"{len(operators)} dissipator(s) but {len(rates)} decay constant(s)"
        )
    if not operators:
        raise ValueError("lindblad_superop needs at least one operator")

    dim = np.shape(operators[0])[0]
    D = np.zeros((dim * dim, dim * dim), dtype=complex)
    for op, rate in zip(operators, rates):
        op = np.asarray(op, dtype=complex)
        if op.shape != (dim, dim):
            raise DimensionMismatch(f"dissipator of shape {op.shape}, expected {(dim, dim)}")
        D += float(rate) * lindblad_dissipator(Qobj(op)).full()
    return D

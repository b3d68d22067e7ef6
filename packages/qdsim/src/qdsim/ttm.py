"""
Transfer tensor method (TTM).

Transfer tensors T_k (k = 1..r) encode the reduced dynamical maps E_n of a
non-Markovian simulation up to a memory length r:

    E_n = sum_{k=1}^{min(n, r)} T_k E_{n-k},     E_0 = identity

Beyond r the same finite set of tensors keeps being applied, i.e. the memory
is exact up to r steps and stationary afterwards. All tensors are Liouville
space superoperators of shape (d^2, d^2) acting on column-stacked densities.

Arrays of tensors are stored 0-based: ``Ts[k - 1]`` holds T_k and
``U[n]`` holds E_n.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .errors import ConfigurationError, DimensionMismatch, InsufficientTransferTensors
from .propagators import Trajectory, check_density, identity_superop, unvec, vec

__all__ = [
    "references",
    "as_tensor_stack",
    "truncate",
    "get_Ts_from_propagators",
    "derive_propagators",
    "apply_propagators",
]

log = logging.getLogger(__name__)

references = [
    "J. Cerrillo and J. Cao, Phys. Rev. Lett. 112, 110401 (2014).",
]


def as_tensor_stack(Ts: np.ndarray) -> np.ndarray:
    """Validate a sequence of square superoperators, shape (r, D, D)."""
    Ts = np.asarray(Ts, dtype=complex)
    if Ts.ndim == 2:
        Ts = Ts[np.newaxis]
    if Ts.ndim != 3 or Ts.shape[1] != Ts.shape[2]:
        raise DimensionMismatch(f"expected a stack of square matrices, got shape {Ts.shape}")
    if Ts.shape[0] == 0:
        raise InsufficientTransferTensors("transfer tensor sequence is empty")
    dim = int(round(np.sqrt(Ts.shape[1])))
    if dim * dim != Ts.shape[1]:
        raise DimensionMismatch(f"tensor size {Ts.shape[1]} is not the square of a dimension")
    return Ts


def truncate(Ts: np.ndarray, num_tmats_used: Optional[int] = None) -> np.ndarray:
    """Keep the first ``num_tmats_used`` tensors (``None`` or -1 keeps all)."""
    Ts = as_tensor_stack(Ts)
    if num_tmats_used is None or num_tmats_used == -1:
        return Ts
    if num_tmats_used < 1:
        raise InsufficientTransferTensors(f"num_tmats_used must be >= 1, got {num_tmats_used}")
    if num_tmats_used > len(Ts):
        raise InsufficientTransferTensors(
            f"requested {num_tmats_used} transfer tensors, only {len(Ts)} are stored"
        )
    return Ts[:num_tmats_used]


def get_Ts_from_propagators(U: np.ndarray, rmax: Optional[int] = None) -> np.ndarray:
    """Transfer tensors from dynamical maps E_1..E_n (``U[n - 1]`` = E_n).

        T_n = E_n - sum_{m=1}^{n-1} T_m E_{n-m}
    """
    U = as_tensor_stack(U)
    r = len(U) if rmax is None else min(int(rmax), len(U))
    Ts = np.zeros((r, *U.shape[1:]), dtype=complex)
    for k in range(r):
        Ts[k] = U[k]
        for m in range(k):
            Ts[k] -= Ts[m] @ U[k - m - 1]
    return Ts


def derive_propagators(
    Ts: np.ndarray, nsteps: int, num_tmats_used: Optional[int] = None
) -> np.ndarray:
    """Dynamical maps E_0..E_nsteps, shape (nsteps + 1, D, D), with E_0 = identity.

    The tensors are truncated to ``num_tmats_used`` before composing.
    """
    Ts = truncate(Ts, num_tmats_used)
    if nsteps < 0:
        raise ConfigurationError(f"nsteps must be >= 0, got {nsteps}")
    r = len(Ts)
    D = Ts.shape[1]
    if nsteps > r:
        log.debug("extending %d transfer tensors to %d steps", r, nsteps)

    U = np.zeros((nsteps + 1, D, D), dtype=complex)
    U[0] = identity_superop(int(round(np.sqrt(D))))
    for n in range(1, nsteps + 1):
        for k in range(1, min(n, r) + 1):
            U[n] += Ts[k - 1] @ U[n - k]
    return U


def apply_propagators(
    U: np.ndarray, rho0: np.ndarray, dt: float, nsteps: Optional[int] = None
) -> Trajectory:
    """Apply E_0..E_nsteps to ``rho0``; time grid is n * dt."""
    U = as_tensor_stack(U)
    if nsteps is None:
        nsteps = len(U) - 1
    if nsteps + 1 > len(U):
        raise InsufficientTransferTensors(
            f"{len(U)} propagators cannot cover {nsteps} steps"
        )
    dim = int(round(np.sqrt(U.shape[1])))
    rho0 = check_density(rho0, dim)

    v0 = vec(rho0)
    rhos = unvec(np.einsum("nij,j->ni", U[: nsteps + 1], v0), dim)
    time = np.arange(nsteps + 1) * dt
    return Trajectory(time=time, rho=rhos)

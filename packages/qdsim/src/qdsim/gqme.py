"""
Generalized quantum master equation (GQME) with a discrete memory kernel.

The reduced density is advanced as

    rho[n+1] = U rho[n] + dt^2 sum_{k=1}^{min(n+1, M)} K_k rho[n+1-k] + dt D rho[n]

with U the bare (system-only) one-step propagator, K_1..K_M the memory kernel
and D an optional Lindblad superoperator. The kernel is recovered from
transfer tensors so that, without D, the GQME reproduces the transfer tensor
propagation exactly. Past M steps the memory sum is cut at M, which is the
same stationary extension the transfer tensor method uses.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from .errors import ConfigurationError, DimensionMismatch, LengthMismatch
from .propagators import Trajectory, check_density, lindblad_superop, unvec, vec
from .ttm import as_tensor_stack, derive_propagators, truncate

__all__ = ["references", "derive_kernel", "propagate"]

log = logging.getLogger(__name__)

references = [
    "J. Cerrillo and J. Cao, Phys. Rev. Lett. 112, 110401 (2014).",
    "Q. Shi and E. Geva, J. Chem. Phys. 119, 12063 (2003).",
]


def _check_bare(U_bare: np.ndarray, D: int) -> np.ndarray:
    U_bare = np.asarray(U_bare, dtype=complex)
    if U_bare.shape != (D, D):
        raise DimensionMismatch(f"bare propagator has shape {U_bare.shape}, expected {(D, D)}")
    return U_bare


def derive_kernel(
    Ts: np.ndarray, U_bare: np.ndarray, dt: float, num_tmats_used: Optional[int] = None
) -> np.ndarray:
    """Memory kernel K_1..K_r from r transfer tensors, shape (r, D, D).

    The dynamical maps E_n are rebuilt from the tensors and the discrete
    Volterra equation is inverted order by order:

        K_n = (E_n - U E_{n-1} - dt^2 sum_{k=1}^{n-1} K_k E_{n-k}) / dt^2

    K_n needs every K_k with k < n, so the sequence is built in increasing order.
    """
    Ts = truncate(Ts, num_tmats_used)
    r, D = len(Ts), Ts.shape[1]
    U_bare = _check_bare(U_bare, D)
    if dt <= 0:
        raise ConfigurationError(f"dt must be > 0, got {dt}")

    E = derive_propagators(Ts, r)
    dt2 = dt * dt
    K = np.zeros((r, D, D), dtype=complex)
    for n in range(1, r + 1):
        acc = E[n] - U_bare @ E[n - 1]
        for k in range(1, n):
            acc -= dt2 * (K[k - 1] @ E[n - k])
        K[n - 1] = acc / dt2
    return K


def propagate(
    K: np.ndarray,
    U_bare: np.ndarray,
    rho0: np.ndarray,
    nsteps: int,
    dt: float,
    dissipators: Optional[Sequence[np.ndarray]] = None,
    decay_constants: Optional[Sequence[float]] = None,
) -> Trajectory:
    """Integrate the GQME from ``rho0`` for ``nsteps`` steps.

    ``dissipators`` are Lindblad operators, each weighted by the matching
    entry of ``decay_constants`` (a rate; defaults to 1 per channel).
    """
    K = as_tensor_stack(K)
    M, D = len(K), K.shape[1]
    U_bare = _check_bare(U_bare, D)
    dim = int(round(np.sqrt(D)))
    rho0 = check_density(rho0, dim)

    L = None
    if dissipators is not None and len(dissipators) > 0:
        if decay_constants is not None and len(decay_constants) != len(dissipators):
            raise LengthMismatch(
                f"{len(dissipators)} dissipator(s) but {len(decay_constants)} decay constant(s)"
            )
        L = lindblad_superop(dissipators, decay_constants)
        if L.shape != (D, D):
            raise DimensionMismatch(f"dissipator superoperator {L.shape} vs propagator {(D, D)}")
    elif decay_constants is not None and len(decay_constants) > 0:
        raise LengthMismatch(f"{len(decay_constants)} decay constant(s) given without dissipators")

    if nsteps > M:
        log.debug("memory kernel of length %d cut off beyond step %d", M, M)

    dt2 = dt * dt
    v = np.zeros((nsteps + 1, D), dtype=complex)
    v[0] = vec(rho0)
    for n in range(nsteps):
        nxt = U_bare @ v[n]
        for k in range(1, min(n + 1, M) + 1):
            nxt += dt2 * (K[k - 1] @ v[n + 1 - k])
        if L is not None:
            nxt += dt * (L @ v[n])
        v[n + 1] = nxt

    time = np.arange(nsteps + 1) * dt
    return Trajectory(time=time, rho=unvec(v, dim))

"""
Declarative description of where results live inside the output file.

    <name>/Hamiltonian, <name>/energy_unit, <name>/beta, <name>/bath #<i>
    <name>/<calculation>/<method>[/dt=<dt>][/nsteps=<n>]/...
    .../<outgroup>/{time, time_unit, rho}

Two recipes with identical (name, calculation, method, dt, nsteps) resolve to
the same location, which is how a replay finds the data of an earlier run.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..config.defaults import TIME_STEP_CALCULATIONS

__all__ = [
    "HAMILTONIAN_KEY",
    "ENERGY_UNIT_KEY",
    "BETA_KEY",
    "TIME_KEY",
    "TIME_UNIT_KEY",
    "RHO_KEY",
    "TRANSFER_TENSORS_KEY",
    "PROPAGATORS_KEY",
    "bath_key",
    "dt_segment",
    "nsteps_segment",
    "method_path",
    "data_segments",
    "resolve",
    "as_key",
]

HAMILTONIAN_KEY = "Hamiltonian"
ENERGY_UNIT_KEY = "energy_unit"
BETA_KEY = "beta"
TIME_KEY = "time"
TIME_UNIT_KEY = "time_unit"
RHO_KEY = "rho"
TRANSFER_TENSORS_KEY = "T0e"
PROPAGATORS_KEY = "U0e"


def bath_key(index: int) -> str:
    """Dataset name of the tabulated spectral density ``index`` (1-based)."""
    return f"bath #{index}"


def dt_segment(dt: float) -> str:
    return f"dt={float(dt)!r}"


def nsteps_segment(nsteps: int) -> str:
    return f"nsteps={int(nsteps)}"


def method_path(name: str, calculation: str, method: str) -> tuple[str, ...]:
    return (str(name), str(calculation), str(method))


def data_segments(
    calculation: str, dt: Optional[float] = None, nsteps: Optional[int] = None
) -> tuple[str, ...]:
    """Segments below the method group that key one calculation.

    dynamics        -> dt=<dt>
    complex_corr    -> dt=<dt>/nsteps=<n>
    equilibrium_rho -> nsteps=<n>
    """
    calculation = str(getattr(calculation, "value", calculation))
    segments: list[str] = []
    if calculation in TIME_STEP_CALCULATIONS:
        if dt is None:
            raise ValueError(f"calculation '{calculation}' is keyed on dt but dt is None")
        segments.append(dt_segment(dt))
    if calculation != "dynamics":
        if nsteps is None:
            raise ValueError(f"calculation '{calculation}' is keyed on nsteps but nsteps is None")
        segments.append(nsteps_segment(nsteps))
    return tuple(segments)


def resolve(
    name: str,
    calculation: str,
    method: str,
    dt: Optional[float] = None,
    nsteps: Optional[int] = None,
) -> tuple[str, ...]:
    """Full path of the data group for one recipe.

    ``dt`` is the time step in the config time unit (not atomic units), so
    the path stays human-legible and is stable across unit-factor round-off.
    """
    calculation = str(getattr(calculation, "value", calculation))
    method = str(getattr(method, "value", method))
    return method_path(name, calculation, method) + data_segments(calculation, dt, nsteps)


def as_key(path: Sequence[str]) -> str:
    return "/".join(path)

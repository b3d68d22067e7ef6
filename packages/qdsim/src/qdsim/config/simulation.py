"""Simulation recipe data structures.

A recipe node from the simulation config is turned into an immutable
:class:`SimulationSpec` by :class:`SimulationSpecBuilder`; the builder
collects and converts every field first and only then creates the record.
Propagate records additionally carry the replay inputs (:class:`PropagateSpec`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

from ..errors import ConfigurationError, LengthMismatch, UnsupportedCalculation, UnsupportedMethod
from .defaults import NUM_TMATS_ALL, SUPPORTED_METHODS, TIME_STEP_CALCULATIONS
from .units import Units

__all__ = [
    "CalculationKind",
    "Method",
    "SimulationSpec",
    "SimulationSpecBuilder",
    "PropagateSpec",
    "parse_sim",
    "parse_propagate",
]


class CalculationKind(str, Enum):
    DYNAMICS = "dynamics"
    EQUILIBRIUM_RHO = "equilibrium_rho"
    COMPLEX_CORR = "complex_corr"

    @classmethod
    def parse(cls, value: Any) -> "CalculationKind":
        try:
            return cls(str(value))
        except ValueError:
            raise UnsupportedCalculation(
                f"unknown calculation '{value}'; supported: {[k.value for k in cls]}"
            ) from None

    @property
    def time_step_keyed(self) -> bool:
        return self.value in TIME_STEP_CALCULATIONS


class Method(str, Enum):
    BARE = "Bare"
    REDFIELD = "Redfield"
    HEOM = "HEOM"
    EXACT = "Exact"

    @classmethod
    def parse(cls, value: Any, calculation: CalculationKind) -> "Method":
        allowed = SUPPORTED_METHODS[calculation.value]
        if str(value) not in allowed:
            raise UnsupportedMethod(
                f"method '{value}' is not available for calculation "
                f"'{calculation.value}'; supported: {allowed}"
            )
        return cls(str(value))


@dataclass(frozen=True)
class SimulationSpec:
    """One simulation recipe, all times in atomic units.

    ``dt_config`` keeps the step in the config time unit; it is what the cache
    path is keyed on.
    """

    name: str
    calculation: CalculationKind
    method: Method
    output: Path
    nsteps: int
    dt: Optional[float] = None
    dt_config: Optional[float] = None
    base_dir: Optional[Path] = field(default=None, compare=False)

    def summary(self) -> str:
        lines = [
            f"Simulation         : {self.name}\n",
            f"Calculation        : {self.calculation.value}\n",
            f"Method             : {self.method.value}\n",
            f"Output             : {self.output}\n",
            f"Steps              : {self.nsteps}\n",
        ]
        if self.dt_config is not None:
            lines.append(f"Time Step (dt)     : {self.dt_config}\n")
        return "".join(lines)

    def __str__(self) -> str:
        return self.summary()


class SimulationSpecBuilder:
    """Collect the fields of a recipe node, then finalize a :class:`SimulationSpec`."""

    _REQUIRED = ("name", "calculation", "method", "output", "nsteps")

    def __init__(self, units: Units, base_dir: Path | None = None) -> None:
        self.units = units
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self._fields: dict[str, Any] = {}

    def update(self, node: Mapping[str, Any]) -> "SimulationSpecBuilder":
        for key in (*self._REQUIRED, "dt"):
            if key in node:
                self._fields[key] = node[key]
        return self

    def with_dt(self, dt: float) -> "SimulationSpecBuilder":
        self._fields["dt"] = dt
        return self

    def build(self) -> SimulationSpec:
        missing = [key for key in self._REQUIRED if key not in self._fields]
        if missing:
            raise ConfigurationError(f"simulation is missing required field(s) {missing}")

        name = str(self._fields["name"])
        if not name or "/" in name:
            raise ConfigurationError(f"simulation name {name!r} must be non-empty and contain no '/'")

        calculation = CalculationKind.parse(self._fields["calculation"])
        method = Method.parse(self._fields["method"], calculation)

        nsteps = int(self._fields["nsteps"])
        if nsteps < 1:
            raise ConfigurationError("nsteps must be >= 1")

        dt_config = self._fields.get("dt")
        if dt_config is None:
            if calculation.time_step_keyed:
                raise ConfigurationError(f"dt is required for calculation '{calculation.value}'")
            dt = None
        else:
            dt_config = float(dt_config)
            if dt_config <= 0:
                raise ConfigurationError("dt must be > 0")
            dt = self.units.time(dt_config)

        output = Path(str(self._fields["output"])).expanduser()
        if not output.is_absolute() and self.base_dir is not None:
            output = self.base_dir / output

        return SimulationSpec(
            name=name,
            calculation=calculation,
            method=method,
            output=output,
            nsteps=nsteps,
            dt=dt,
            dt_config=dt_config,
            base_dir=self.base_dir,
        )


def parse_sim(node: Mapping[str, Any], units: Units, base_dir: Path | None = None) -> SimulationSpec:
    return SimulationSpecBuilder(units, base_dir).update(node).build()


@dataclass(frozen=True)
class PropagateSpec:
    """A propagate record: the recipe that produced the cache plus replay inputs."""

    sim: SimulationSpec
    rho0: tuple = ()
    outgroup: tuple[str, ...] = ()
    num_tmats_used: int = NUM_TMATS_ALL
    lindblad: tuple = ()
    decay_constant: tuple[float, ...] = ()

    @property
    def has_lindblad(self) -> bool:
        return len(self.lindblad) > 0


def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _operator_refs(value: Any) -> tuple:
    """Operator references; a bare inline matrix (list of rows) counts as one."""
    if (
        isinstance(value, list)
        and value
        and all(isinstance(row, list) and row and not isinstance(row[0], list) for row in value)
    ):
        return (value,)
    return _as_tuple(value)


def parse_propagate(
    node: Mapping[str, Any], units: Units, base_dir: Path | None = None
) -> PropagateSpec:
    """Parse one entry of ``propagate.simulation``."""
    sim = parse_sim(node, units, base_dir)

    rho0 = _operator_refs(node.get("rho0"))
    outgroup = tuple(str(g) for g in _as_tuple(node.get("outgroup")))
    if not rho0:
        raise ConfigurationError("propagate simulation needs at least one 'rho0'")
    if len(rho0) != len(outgroup):
        raise LengthMismatch(
            f"'rho0' has {len(rho0)} entries but 'outgroup' has {len(outgroup)}"
        )
    bad = [g for g in outgroup if not g or "/" in g]
    if bad:
        raise ConfigurationError(f"output group name(s) {bad} must be non-empty and contain no '/'")
    duplicates = sorted({g for g in outgroup if outgroup.count(g) > 1})
    if duplicates:
        raise ConfigurationError(f"duplicate output group(s) {duplicates}")

    num_tmats_used = int(node.get("num_tmats_used", NUM_TMATS_ALL))
    if num_tmats_used != NUM_TMATS_ALL and num_tmats_used < 1:
        raise ConfigurationError("num_tmats_used must be >= 1")

    lindblad = _operator_refs(node.get("lindblad"))
    decay_constant = tuple(float(c) for c in _as_tuple(node.get("decay_constant")))
    if len(lindblad) != len(decay_constant):
        raise LengthMismatch(
            f"'lindblad' has {len(lindblad)} entries but 'decay_constant' has "
            f"{len(decay_constant)}"
        )
    if any(c <= 0 for c in decay_constant):
        raise ConfigurationError("decay_constant entries must be > 0")

    return PropagateSpec(
        sim=sim,
        rho0=rho0,
        outgroup=outgroup,
        num_tmats_used=num_tmats_used,
        lindblad=lindblad,
        decay_constant=decay_constant,
    )

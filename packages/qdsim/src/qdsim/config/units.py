"""Unit system and conversion helpers.

Everything inside qdsim is in atomic units (hbar = 1, energies in Hartree,
times in hbar/Hartree). A :class:`Units` instance holds the two factors that
take config values to atomic units; conversions are applied once while parsing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from ..errors import ConfigurationError

__all__ = [
    "HBAR",
    "BOLTZMANN_AU",
    "ENERGY_UNITS",
    "TIME_UNITS",
    "Units",
    "parse_units",
    "temperature_to_beta",
]


# FUNDAMENTAL CONSTANTS (atomic units inside project)

HBAR: float = 1.0
BOLTZMANN_AU: float = 3.166811563e-6  # Hartree / Kelvin

# unit name -> multiply by this to get atomic units
ENERGY_UNITS: dict[str, float] = {
    "au": 1.0,
    "Ha": 1.0,
    "eV": 1.0 / 27.211386245988,
    "meV": 1.0e-3 / 27.211386245988,
    "cm^-1": 4.556335252912088e-6,
    "K": BOLTZMANN_AU,
}
TIME_UNITS: dict[str, float] = {
    "au": 1.0,
    "fs": 41.341373335,
    "ps": 41341.373335,
}


@dataclass(frozen=True)
class Units:
    """Conversion factors of the config unit system into atomic units."""

    time_unit: float = 1.0
    energy_unit: float = 1.0
    time_unit_name: str = "au"
    energy_unit_name: str = "au"

    def energy(self, obj: Any) -> Any:
        """Config energy value(s) -> atomic units."""
        return _apply_conversion(obj, self.energy_unit)

    def time(self, obj: Any) -> Any:
        """Config time value(s) -> atomic units."""
        return _apply_conversion(obj, self.time_unit)

    def summary(self) -> str:
        return (
            f"energy unit: {self.energy_unit_name} ({self.energy_unit:.6g} Ha), "
            f"time unit: {self.time_unit_name} ({self.time_unit:.6g} au)"
        )


def _apply_conversion(obj: Any, factor: float) -> Any:
    """Multiply scalars, arrays or sequences by ``factor``.

    Complex input stays complex (Hamiltonians may carry complex couplings).
    """
    if isinstance(obj, (int, float, np.integer, np.floating)):
        return float(obj) * factor
    if isinstance(obj, (complex, np.complexfloating)):
        return complex(obj) * factor
    if isinstance(obj, np.ndarray):
        return obj * factor
    if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes)):
        return np.asarray(obj) * factor
    raise TypeError(f"Unsupported type for conversion: {type(obj)!r}")


def parse_units(section: dict | None) -> Units:
    """Build :class:`Units` from the ``units`` section of a system config."""
    section = section or {}
    energy_name = str(section.get("energy_unit", "au"))
    time_name = str(section.get("time_unit", "au"))
    if energy_name not in ENERGY_UNITS:
        raise ConfigurationError(
            f"units.energy_unit '{energy_name}' not in {sorted(ENERGY_UNITS)}"
        )
    if time_name not in TIME_UNITS:
        raise ConfigurationError(f"units.time_unit '{time_name}' not in {sorted(TIME_UNITS)}")
    return Units(
        time_unit=TIME_UNITS[time_name],
        energy_unit=ENERGY_UNITS[energy_name],
        time_unit_name=time_name,
        energy_unit_name=energy_name,
    )


def temperature_to_beta(temperature_k: float) -> float:
    """Inverse temperature in 1/Hartree for a temperature in Kelvin."""
    if temperature_k <= 0:
        raise ConfigurationError("bath.temperature must be positive")
    return 1.0 / (BOLTZMANN_AU * float(temperature_k))

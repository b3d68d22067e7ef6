from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import numpy as np
import pytest
import yaml

H_TLS = [[0.0, 0.1], [0.1, 0.5]]


def write_yaml(path: Path, data: Any) -> Path:
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


def exact_unitary_rho(hamiltonian: np.ndarray, rho0: np.ndarray, time: np.ndarray) -> np.ndarray:
    """exp(-iHt) rho0 exp(iHt) via eigendecomposition."""
    energies, vecs = np.linalg.eigh(np.asarray(hamiltonian, dtype=complex))
    out = []
    for t in time:
        U = (vecs * np.exp(-1j * energies * t)) @ vecs.conj().T
        out.append(U @ rho0 @ U.conj().T)
    return np.array(out)


@pytest.fixture
def logger() -> logging.Logger:
    log = logging.getLogger("qdsim.tests")
    log.setLevel(logging.DEBUG)
    return log


@pytest.fixture
def system_file(tmp_path: Path) -> Path:
    return write_yaml(
        tmp_path / "system.yaml",
        {
            "units": {"energy_unit": "au", "time_unit": "au"},
            "system": {"Hamiltonian": H_TLS},
            "bath": {
                "beta": 1.0,
                "spectral_density": [
                    {
                        "model": "drude_lorentz",
                        "lambda": 0.05,
                        "gamma": 0.2,
                        "svec": [1.0, -1.0],
                        "npoints": 64,
                    }
                ],
            },
        },
    )


@pytest.fixture
def recipe() -> dict:
    return {
        "name": "tls",
        "calculation": "dynamics",
        "method": "Bare",
        "output": "out.h5",
        "dt": 0.5,
        "nsteps": 8,
    }


@pytest.fixture
def run_file(tmp_path: Path, recipe: dict) -> Callable[..., Path]:
    def _make(**overrides) -> Path:
        return write_yaml(tmp_path / "run.yaml", {"simulation": {**recipe, **overrides}})

    return _make


@pytest.fixture
def propagate_file(tmp_path: Path, recipe: dict) -> Callable[..., Path]:
    def _make(*entries: dict, name: str = "propagate.yaml") -> Path:
        records = [{**recipe, **entry} for entry in entries]
        return write_yaml(tmp_path / name, {"propagate": {"simulation": records}})

    return _make

"""Operator references used in simulation configs (initial densities, Lindblad ops)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np

from ..errors import ConfigurationError, DimensionMismatch, NotFoundError

__all__ = ["load_matrix", "parse_operator"]


def _to_complex(value: Any) -> complex:
    if isinstance(value, str):
        return complex(value.replace(" ", "").replace("i", "j"))
    return complex(value)


def load_matrix(ref: Any, base_dir: Path | None = None) -> np.ndarray:
    """Return the complex matrix referenced by ``ref``.

    ``ref`` is either an inline nested list (entries may be numbers or strings
    such as ``"0.5-0.5j"``) or a path to a ``.npy`` / whitespace separated text
    file. Relative paths are resolved against ``base_dir``.
    """
    if isinstance(ref, (list, tuple, np.ndarray)):
        try:
            matrix = np.array([[_to_complex(x) for x in row] for row in ref], dtype=complex)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"cannot parse inline matrix {ref!r}") from exc
        return matrix

    path = Path(str(ref)).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = Path(base_dir) / path
    if not path.exists():
        raise NotFoundError(f"operator file not found: {path}")
    if path.suffix == ".npy":
        matrix = np.load(path, allow_pickle=False)
    else:
        matrix = np.loadtxt(path, dtype=complex, ndmin=2)
    return np.asarray(matrix, dtype=complex)


def parse_operator(ref: Any, hamiltonian: np.ndarray, base_dir: Path | None = None) -> np.ndarray:
    """Load an operator and check it matches the Hamiltonian dimension."""
    op = load_matrix(ref, base_dir)
    dim = np.shape(hamiltonian)[0]
    if op.shape != (dim, dim):
        raise DimensionMismatch(
            f"operator {ref!r} has shape {op.shape}, Hamiltonian is {dim}x{dim}"
        )
    return op

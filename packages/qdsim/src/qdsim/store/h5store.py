"""
HDF5 store operations for qdsim.

The output file is a hierarchy of groups addressed by path segments (see
:mod:`qdsim.store.paths`). Writes never replace existing datasets: a second
write to the same key is skipped, so re-running a command only fills in what
is missing.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

import h5py
import numpy as np

from ..errors import NotFoundError

__all__ = ["MODES", "open_store", "group", "exists", "write_if_absent", "read"]

log = logging.getLogger(__name__)

# read-only | read-write (must exist) | create (truncate) | read-write, create if absent
MODES = ("r", "r+", "w", "a")


@contextmanager
def open_store(target: str | Path, mode: str = "r") -> Iterator[h5py.File]:
    """Open the HDF5 file ``target`` and close it on every exit path."""
    if mode not in MODES:
        raise ValueError(f"store mode '{mode}' not in {MODES}")
    path = Path(target)
    if mode in {"r", "r+"} and not path.is_file():
        raise NotFoundError(f"output file not found: {path}")
    if mode in {"w", "a"}:
        path.parent.mkdir(parents=True, exist_ok=True)

    log.debug("opening store %s (mode=%s)", path, mode)
    with h5py.File(path, mode) as handle:
        yield handle
        handle.flush()


def _writable(handle: h5py.Group) -> bool:
    return handle.file.mode != "r"


def group(parent: h5py.Group, path: str | Sequence[str], create: bool | None = None) -> h5py.Group:
    """Return the group at ``path`` below ``parent``.

    Missing segments are created when ``create`` is true (default: whenever
    the file is writable) and raise :class:`NotFoundError` otherwise.
    """
    if create is None:
        create = _writable(parent)
    segments = [path] if isinstance(path, str) else list(path)

    current = parent
    for segment in segments:
        if segment in current:
            node = current[segment]
            if not isinstance(node, h5py.Group):
                raise NotFoundError(f"'{node.name}' is a dataset, expected a group")
            current = node
        elif create:
            current = current.create_group(segment)
        else:
            raise NotFoundError(f"group '{current.name.rstrip('/')}/{segment}' not found")
    return current


def exists(handle: h5py.Group, key: str) -> bool:
    return key in handle


def write_if_absent(handle: h5py.Group, key: str, value: Any) -> bool:
    """Write ``value`` under ``key`` unless the key is already present.

    Returns True if the dataset was written, False if it was already there.
    """
    if key in handle:
        log.debug("%s/%s already present, keeping stored value", handle.name, key)
        return False
    # str -> variable-length utf-8 dataset
    data = value if isinstance(value, str) else np.asarray(value)
    handle.create_dataset(key, data=data)
    return True


def read(handle: h5py.Group, key: str) -> Any:
    """Read the dataset ``key``; scalars come back as Python numbers."""
    if key not in handle:
        raise NotFoundError(f"dataset '{handle.name.rstrip('/')}/{key}' not found")
    node = handle[key]
    if not isinstance(node, h5py.Dataset):
        raise NotFoundError(f"'{node.name}' is a group, expected a dataset")
    value = node[()]
    if isinstance(value, bytes):
        return value.decode("utf-8")
    if isinstance(value, np.generic):
        return value.item()
    return value

"""Persisted store (HDF5) and cache path resolution."""

from __future__ import annotations

from .h5store import open_store, group, exists, write_if_absent, read
from .paths import resolve, as_key, data_segments, method_path, bath_key

__all__ = [
    # store
    "open_store",
    "group",
    "exists",
    "write_if_absent",
    "read",
    # paths
    "resolve",
    "as_key",
    "data_segments",
    "method_path",
    "bath_key",
]

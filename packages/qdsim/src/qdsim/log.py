"""Logger factory and the banner/citation blocks printed by the commands.

Each command invocation owns one logger obtained from :func:`get_logger` and
hands it down to the workflow functions. Only the named ``qdsim`` logger gets a
handler; the root logger is left alone.
"""

from __future__ import annotations

import logging
import sys
from typing import Sequence

import numpy as np

LOGGER_NAME = "qdsim"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_RULE = "=" * 80

__all__ = ["LOGGER_NAME", "get_logger", "log_banner", "log_citation", "blas_info"]


def get_logger(verbosity: int = 0, stream=None) -> logging.Logger:
    """Return the ``qdsim`` logger configured for one invocation.

    ``verbosity`` 0 -> INFO, >= 1 -> DEBUG. Calling this again replaces the
    handler installed by a previous call instead of stacking a second one.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_qdsim_owned", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._qdsim_owned = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbosity >= 1 else logging.INFO)
    logger.propagate = False
    return logger


def log_banner(logger: logging.Logger, title: str) -> None:
    logger.info(_RULE)
    logger.info(title)
    logger.info(_RULE)


def log_citation(logger: logging.Logger, references: Sequence[str]) -> None:
    """Log the references a method is built on."""
    if not references:
        return
    logger.info("Please cite:")
    for ref in references:
        logger.info("  - %s", ref)


def blas_info() -> str:
    """Best-effort name of the BLAS library numpy is linked against."""
    try:
        config = np.show_config(mode="dicts")
    except TypeError:  # numpy < 1.25 has no mode argument
        return "unknown BLAS"
    blas = (config or {}).get("Build Dependencies", {}).get("blas", {})
    return str(blas.get("name", "unknown BLAS"))

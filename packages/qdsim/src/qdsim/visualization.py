"""Quick-look plots of stored trajectories.

The backend is left to the caller; the ``plot`` command selects Agg.
"""

from __future__ import annotations

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes

from .errors import DimensionMismatch
from .propagators import Trajectory

__all__ = ["plot_populations"]

LINE_STYLES = ["solid", "dashed", "dashdot", "dotted"]


def plot_populations(
    time: np.ndarray,
    rho: np.ndarray,
    time_unit_label: str = "au",
    ax: Axes | None = None,
    show_legend: bool = True,
):
    """
    Plot the site populations Re rho_ii(t) of a density-matrix trajectory.

    Parameters:
        time (np.ndarray): Time grid, shape (n,).
        rho (np.ndarray): Densities, shape (n, d, d).
        time_unit_label (str): Label of the time axis unit.
        ax (matplotlib.axes.Axes, optional): Axes to draw on. Defaults to None.

    Returns:
        tuple: (fig, ax)
    """
    time = np.asarray(time, dtype=float)
    rho = np.asarray(rho)
    if rho.ndim != 3 or rho.shape[1] != rho.shape[2] or rho.shape[0] != len(time):
        raise DimensionMismatch(
            f"expected rho of shape ({len(time)}, d, d), got {rho.shape}"
        )

    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    populations = Trajectory(time=time, rho=rho).populations()
    for i in range(populations.shape[1]):
        ax.plot(
            time,
            populations[:, i],
            label=rf"$\rho_{{{i + 1}{i + 1}}}$",
            linestyle=LINE_STYLES[i % len(LINE_STYLES)],
        )

    ax.set_xlabel(rf"Time $t$ [{time_unit_label}]")
    ax.set_ylabel(r"Population")
    if show_legend:
        ax.legend(loc="best")
    fig.tight_layout()
    return fig, ax

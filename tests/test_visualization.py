import importlib

import matplotlib
import numpy as np
import pytest

from qdsim.errors import DimensionMismatch

from conftest import H_TLS, exact_unitary_rho


def test_import_leaves_backend_alone():
    import qdsim.visualization

    before = matplotlib.get_backend()
    importlib.reload(qdsim.visualization)
    assert matplotlib.get_backend() == before


def test_plot_populations_draws_one_line_per_site():
    import matplotlib.pyplot as plt

    from qdsim.visualization import plot_populations

    time = 0.5 * np.arange(9)
    rho0 = np.array([[1, 0], [0, 0]], dtype=complex)
    rho = exact_unitary_rho(np.array(H_TLS), rho0, time)

    fig, ax = plot_populations(time, rho, time_unit_label="fs")
    try:
        lines = ax.get_lines()
        assert len(lines) == 2
        for i, line in enumerate(lines):
            np.testing.assert_allclose(line.get_xdata(), time)
            np.testing.assert_allclose(line.get_ydata(), np.real(rho[:, i, i]))
        assert "fs" in ax.get_xlabel()
    finally:
        plt.close(fig)


def test_plot_populations_checks_shapes():
    from qdsim.visualization import plot_populations

    with pytest.raises(DimensionMismatch):
        plot_populations(np.arange(3), np.zeros((4, 2, 2)))

import numpy as np
import pytest
from qutip import Qobj

from qdsim.config import System
from qdsim.engines.equilibrium import exact_complex_corr, exact_thermal_rho


@pytest.fixture
def system():
    return System(Hamiltonian=np.array([[0.0, 0.1], [0.1, 0.5]], dtype=complex))


def test_thermal_rho_is_boltzmann_in_eigenbasis(system):
    beta = 3.0
    rho, Z = exact_thermal_rho(system, beta)
    energies, vecs = np.linalg.eigh(system.Hamiltonian)

    assert np.trace(rho) == pytest.approx(1.0)
    np.testing.assert_allclose(rho, rho.conj().T, atol=1e-14)
    populations = np.real(np.diag(vecs.conj().T @ rho @ vecs))
    np.testing.assert_allclose(populations, np.exp(-beta * energies) / Z)
    assert Z == pytest.approx(np.sum(np.exp(-beta * energies)))


def test_high_temperature_limit_is_maximally_mixed(system):
    rho, _ = exact_thermal_rho(system, 1e-9)
    np.testing.assert_allclose(rho, np.eye(2) / 2, atol=1e-8)


def test_identity_correlation_is_constant(system):
    time, corr, _ = exact_complex_corr(system, 2.0, np.eye(2), np.eye(2), dt=0.5, nsteps=6)
    np.testing.assert_allclose(time, 0.5 * np.arange(7))
    np.testing.assert_allclose(corr, 1.0, atol=1e-12)


def test_correlation_at_zero_time(system):
    beta = 2.0
    sz = np.diag([1.0, -1.0]).astype(complex)
    _, corr, Z = exact_complex_corr(system, beta, sz, sz, dt=0.1, nsteps=1)

    energies, vecs = np.linalg.eigh(system.Hamiltonian)
    half = (vecs * np.exp(-0.5 * beta * energies)) @ vecs.conj().T
    expected = np.trace(half @ sz @ half @ sz) / Z
    assert corr[0] == pytest.approx(expected)


def test_correlation_at_finite_times_matches_matrix_exponentials(system):
    beta, dt, nsteps = 1.5, 0.7, 5
    sx = np.array([[0, 1], [1, 0]], dtype=complex)
    sz = np.diag([1.0, -1.0]).astype(complex)
    time, corr, Z = exact_complex_corr(system, beta, sx, sz, dt=dt, nsteps=nsteps)

    H = Qobj(system.Hamiltonian)
    for n in range(1, nsteps + 1):
        tc = time[n] - 0.5j * beta
        left = (1j * np.conj(tc) * H).expm().full()
        right = (-1j * tc * H).expm().full()
        expected = np.trace(left @ sz @ right @ sx) / Z
        assert corr[n] == pytest.approx(expected, abs=1e-10)
    # non-commuting A, B make the correlation time dependent
    assert np.ptp(np.real(corr)) > 1e-4

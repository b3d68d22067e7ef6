import numpy as np
import pytest

from qdsim.errors import ConfigurationError, DimensionMismatch, LengthMismatch
from qdsim.gqme import derive_kernel, propagate
from qdsim.propagators import calculate_bare_propagators, identity_superop
from qdsim.ttm import apply_propagators, derive_propagators

from conftest import H_TLS, exact_unitary_rho

DT = 0.5


def _bare():
    return calculate_bare_propagators(np.array(H_TLS), DT)[0]


def test_markovian_tensor_gives_vanishing_kernel():
    U = _bare()
    K = derive_kernel([U], U, DT)
    assert K.shape == (1, 4, 4)
    np.testing.assert_allclose(K, 0.0, atol=1e-10)


def test_vanishing_kernel_reproduces_bare_dynamics():
    U = _bare()
    K = derive_kernel([U], U, DT)
    rho0 = np.array([[1, 0], [0, 0]], dtype=complex)
    traj = propagate(K, U, rho0, nsteps=12, dt=DT)

    assert len(traj) == 13
    expected = exact_unitary_rho(np.array(H_TLS), rho0, traj.time)
    np.testing.assert_allclose(traj.rho, expected, atol=1e-10)


def test_gqme_matches_transfer_tensor_propagation():
    rng = np.random.default_rng(3)
    U = _bare()
    Ts = 0.05 * (rng.standard_normal((3, 4, 4)) + 1j * rng.standard_normal((3, 4, 4)))
    Ts[0] += U
    rho0 = np.array([[0.5, 0.5], [0.5, 0.5]], dtype=complex)

    K = derive_kernel(Ts, U, DT)
    via_gqme = propagate(K, U, rho0, nsteps=10, dt=DT)
    via_ttm = apply_propagators(derive_propagators(Ts, 10), rho0, DT)
    np.testing.assert_allclose(via_gqme.rho, via_ttm.rho, atol=1e-9)


def test_kernel_respects_num_tmats_used():
    U = _bare()
    Ts = np.stack([U, 0.01 * np.eye(4), 0.01 * np.eye(4)])
    assert len(derive_kernel(Ts, U, DT, num_tmats_used=2)) == 2


def test_lindblad_decay_without_coherent_dynamics():
    gamma = 0.2
    lowering = np.array([[0, 1], [0, 0]], dtype=complex)
    rho0 = np.array([[0, 0], [0, 1]], dtype=complex)
    K = np.zeros((1, 4, 4), dtype=complex)

    traj = propagate(
        K, identity_superop(2), rho0, nsteps=5, dt=DT,
        dissipators=[lowering], decay_constants=[gamma],
    )
    excited = np.real(traj.rho[:, 1, 1])
    np.testing.assert_allclose(excited, (1 - gamma * DT) ** np.arange(6), atol=1e-12)
    np.testing.assert_allclose(np.real(np.trace(traj.rho, axis1=1, axis2=2)), 1.0, atol=1e-12)


def test_mismatched_dissipators_and_rates_rejected():
    U = _bare()
    K = derive_kernel([U], U, DT)
    with pytest.raises(LengthMismatch):
        propagate(K, U, np.eye(2) / 2, 3, DT, dissipators=[np.eye(2), np.eye(2)], decay_constants=[1.0])
    with pytest.raises(LengthMismatch):
        propagate(K, U, np.eye(2) / 2, 3, DT, decay_constants=[1.0])


def test_dimension_mismatches_rejected():
    U = _bare()
    K = derive_kernel([U], U, DT)
    with pytest.raises(DimensionMismatch):
        propagate(K, U, np.eye(3) / 3, 3, DT)
    with pytest.raises(DimensionMismatch):
        propagate(K, U, np.eye(2) / 2, 3, DT, dissipators=[np.eye(3)], decay_constants=[1.0])
    with pytest.raises(DimensionMismatch):
        derive_kernel([U], np.eye(9), DT)


def test_decay_constant_array_without_dissipators_rejected():
    U = _bare()
    K = derive_kernel([U], U, DT)
    with pytest.raises(LengthMismatch):
        propagate(K, U, np.eye(2) / 2, 3, DT, decay_constants=np.array([1.0]))
    with pytest.raises(LengthMismatch):
        propagate(K, U, np.eye(2) / 2, 3, DT, dissipators=[], decay_constants=np.array([1.0, 2.0]))


def test_empty_decay_constant_array_is_accepted():
    U = _bare()
    K = derive_kernel([U], U, DT)
    traj = propagate(K, U, np.eye(2) / 2, 3, DT, decay_constants=np.array([]))
    assert len(traj) == 4


@pytest.mark.parametrize("dt", [0.0, -DT])
def test_non_positive_time_step_is_a_configuration_error(dt):
    U = _bare()
    with pytest.raises(ConfigurationError, match="dt"):
        derive_kernel([U], U, dt)

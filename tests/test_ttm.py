import numpy as np
import pytest

from qdsim.errors import ConfigurationError, DimensionMismatch, InsufficientTransferTensors
from qdsim.propagators import calculate_bare_propagators, identity_superop, unvec, vec
from qdsim.ttm import (
    apply_propagators,
    derive_propagators,
    get_Ts_from_propagators,
    truncate,
)

from conftest import H_TLS


def _memory_tensors(r=4, D=4, seed=7):
    rng = np.random.default_rng(seed)
    Ts = 0.1 * (rng.standard_normal((r, D, D)) + 1j * rng.standard_normal((r, D, D)))
    Ts[0] += 0.8 * np.eye(D)
    return Ts


def test_identity_tensor_keeps_density_constant():
    rho0 = np.array([[0.6, 0.2j], [-0.2j, 0.4]])
    U = derive_propagators([identity_superop(2)], nsteps=6)
    traj = apply_propagators(U, rho0, dt=0.25)

    assert len(traj) == 7
    np.testing.assert_allclose(traj.time, 0.25 * np.arange(7))
    for rho in traj.rho:
        np.testing.assert_allclose(rho, rho0)


def test_first_map_is_identity_and_length_is_nsteps_plus_one():
    U = derive_propagators(_memory_tensors(), nsteps=10)
    assert U.shape == (11, 4, 4)
    np.testing.assert_array_equal(U[0], np.eye(4))


def test_markovian_tensor_reproduces_powers():
    U1 = calculate_bare_propagators(np.array(H_TLS), 0.5)[0]
    U = derive_propagators([U1], nsteps=5)
    for n in range(6):
        np.testing.assert_allclose(U[n], np.linalg.matrix_power(U1, n), atol=1e-12)


def test_tensors_from_bare_maps_have_no_memory():
    E = calculate_bare_propagators(np.array(H_TLS), 0.5, nsteps=6)
    Ts = get_Ts_from_propagators(E)
    np.testing.assert_allclose(Ts[0], E[0], atol=1e-12)
    np.testing.assert_allclose(Ts[1:], 0.0, atol=1e-10)


def test_tensors_recover_the_maps_they_came_from():
    Ts = _memory_tensors(r=3)
    E = derive_propagators(Ts, nsteps=3)[1:]
    np.testing.assert_allclose(get_Ts_from_propagators(E), Ts, atol=1e-12)


def test_rmax_limits_tensor_count():
    E = calculate_bare_propagators(np.array(H_TLS), 0.5, nsteps=6)
    assert len(get_Ts_from_propagators(E, rmax=2)) == 2
    assert len(get_Ts_from_propagators(E, rmax=100)) == 6


def test_truncation_equals_shorter_sequence():
    Ts = _memory_tensors(r=5)
    np.testing.assert_allclose(
        derive_propagators(Ts, nsteps=12, num_tmats_used=3),
        derive_propagators(Ts[:3], nsteps=12),
    )
    np.testing.assert_array_equal(truncate(Ts, -1), Ts)


def test_extension_beyond_memory_uses_stored_tensors():
    Ts = _memory_tensors(r=2)
    U = derive_propagators(Ts, nsteps=6)
    rho0 = np.array([[1, 0], [0, 0]], dtype=complex)
    traj = apply_propagators(U, rho0, dt=1.0)
    v = [vec(rho0)]
    for n in range(1, 7):
        v.append(sum(Ts[k - 1] @ v[n - k] for k in range(1, min(n, 2) + 1)))
    np.testing.assert_allclose(traj.rho, unvec(np.array(v), 2), atol=1e-12)


def test_empty_tensor_sequence_rejected():
    with pytest.raises(InsufficientTransferTensors):
        derive_propagators(np.zeros((0, 4, 4)), nsteps=3)


def test_requesting_more_tensors_than_stored_rejected():
    with pytest.raises(InsufficientTransferTensors):
        derive_propagators(_memory_tensors(r=2), nsteps=3, num_tmats_used=5)


def test_non_square_tensors_rejected():
    with pytest.raises(DimensionMismatch):
        derive_propagators(np.zeros((2, 4, 3)), nsteps=3)
    with pytest.raises(DimensionMismatch):
        derive_propagators(np.zeros((2, 3, 3)), nsteps=3)


def test_initial_density_dimension_checked():
    U = derive_propagators([identity_superop(2)], nsteps=2)
    with pytest.raises(DimensionMismatch):
        apply_propagators(U, np.eye(3), dt=1.0)


def test_negative_step_count_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="nsteps"):
        derive_propagators(_memory_tensors(), nsteps=-1)

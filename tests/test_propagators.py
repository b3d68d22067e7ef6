import numpy as np
import pytest

from qdsim.errors import DimensionMismatch, LengthMismatch
from qdsim.propagators import (
    calculate_bare_propagators,
    identity_superop,
    lindblad_superop,
    operator_basis,
    unvec,
    vec,
)

from conftest import H_TLS, exact_unitary_rho


def test_vec_stacks_columns():
    rho = np.array([[1, 2], [3, 4]])
    np.testing.assert_array_equal(vec(rho), [1, 3, 2, 4])
    np.testing.assert_array_equal(unvec(vec(rho)), rho)


def test_unvec_handles_batches():
    rhos = np.arange(12).reshape(3, 2, 2)
    batch = np.stack([vec(r) for r in rhos])
    np.testing.assert_array_equal(unvec(batch, 2), rhos)


def test_unvec_rejects_non_square_length():
    with pytest.raises(DimensionMismatch):
        unvec(np.zeros(3))


def test_operator_basis_follows_vec_order():
    for k, e in enumerate(operator_basis(3)):
        expected = np.zeros(9)
        expected[k] = 1
        np.testing.assert_array_equal(vec(e), expected)


def test_bare_propagators_match_unitary_evolution():
    H = np.array(H_TLS)
    dt, nsteps = 0.3, 4
    props = calculate_bare_propagators(H, dt, nsteps)
    assert props.shape == (nsteps, 4, 4)

    rho0 = np.array([[1, 0], [0, 0]], dtype=complex)
    expected = exact_unitary_rho(H, rho0, dt * np.arange(1, nsteps + 1))
    for n in range(nsteps):
        np.testing.assert_allclose(unvec(props[n] @ vec(rho0)), expected[n], atol=1e-10)


def test_zero_hamiltonian_gives_identity():
    props = calculate_bare_propagators(np.zeros((2, 2)), 1.0)
    np.testing.assert_allclose(props[0], identity_superop(2), atol=1e-14)


def test_lindblad_superop_matches_dissipator():
    L = np.array([[0, 1], [0, 0]], dtype=complex)
    rho = np.array([[0.3, 0.1 - 0.2j], [0.1 + 0.2j, 0.7]])
    rate = 0.4
    expected = rate * (L @ rho @ L.conj().T - 0.5 * (L.conj().T @ L @ rho + rho @ L.conj().T @ L))
    D = lindblad_superop([L], [rate])
    np.testing.assert_allclose(unvec(D @ vec(rho)), expected, atol=1e-12)


def test_lindblad_superop_validates_inputs():
    L = np.eye(2)
    with pytest.raises(LengthMismatch):
        lindblad_superop([L, L], [1.0])
    with pytest.raises(DimensionMismatch):
        lindblad_superop([L, np.eye(3)])

import numpy as np
import pytest
from numpy.testing import assert_allclose
from pynav import kalman
from pynav.errors import SingularMatrixError


def test_kalman_correct():
    # As the implementation of standard Kalman correction formulas is
    # straightforward we use a sanity check, when the correct answer is
    # computed without complete formulas.
    P0 = np.array([[2, 0], [0, 1]], dtype=float)
    x0 = np.array([0, 0], dtype=float)

    z = np.array([1, 2])
    R = np.array([[3, 0], [0, 2]])
    H = np.identity(2)

    x_true = np.array([1 * 2 / (2 + 3), 2 * 1 / (1 + 2)])
    P_true = np.diag([1 / (1/2 + 1/3), 1 / (1/1 + 1/2)])

    x, P, innovation = kalman.correct(x0, P0, z, H, R)
    assert_allclose(x, x_true)
    assert_allclose(P, P_true)
    assert_allclose(innovation, [1 / 5 ** 0.5, 2 / 3 ** 0.5])


def test_kalman_correct_partial_observation():
    rng = np.random.RandomState(0)
    A = rng.randn(4, 4)
    P = A @ A.T + np.eye(4)
    x = rng.randn(4)
    H = np.array([[1.0, 0, 0, 0], [0, 0, 1.0, -1.0]])
    R = np.diag([0.5, 0.2])
    z = rng.randn(2)

    x_new, P_new, _ = kalman.correct(x, P, z, H, R)
    S = H @ P @ H.T + R
    K = P @ H.T @ np.linalg.inv(S)
    assert_allclose(x_new, x + K @ (z - H @ x))
    assert_allclose(P_new, (np.eye(4) - K @ H) @ P, atol=1e-12)
    assert_allclose(P_new, P_new.T)
    assert np.all(np.linalg.eigvalsh(P_new) > 0)


def test_kalman_correct_singular():
    P = np.zeros((3, 3))
    x = np.zeros(3)
    H = np.eye(3)
    with pytest.raises(SingularMatrixError):
        kalman.correct(x, P, np.ones(3), H, np.zeros((3, 3)))
    with pytest.raises(SingularMatrixError):
        kalman.correct(x, np.eye(3), np.ones(2), np.zeros((2, 3)), np.zeros((2, 2)))
    with pytest.raises(SingularMatrixError):
        kalman.correct(x, np.eye(3), np.ones(3), H, np.diag([1, 1, np.nan]))
    with pytest.raises(np.linalg.LinAlgError):
        kalman.correct(x, np.eye(3), np.ones(3), H, -2 * np.eye(3))


def test_kalman_propagate():
    rng = np.random.RandomState(1)
    A = rng.randn(5, 5)
    P = A @ A.T
    Phi = np.eye(5) + 0.1 * rng.randn(5, 5)
    Q = np.diag(rng.uniform(0, 1, 5))

    P_new = kalman.propagate(P, Phi, Q)
    assert_allclose(P_new, Phi @ P @ Phi.T + Q, rtol=1e-12)
    assert np.all(P_new == P_new.T)

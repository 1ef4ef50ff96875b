r"""Kalman filter functions.

Module contains abstract functions for linear Kalman filter operations.
Refer to [1]_ for the theory of Kalman filters.

Constants
---------
.. autosummary::
    :toctree: generated/

    MAX_CONDITION_NUMBER

Functions
---------
.. autosummary::
    :toctree: generated/

    propagate
    correct

References
----------
.. [1] P\. S\. Maybeck, "Stochastic Models, Estimation and Control", volume 1
"""
import numpy as np
from scipy.linalg import cholesky, cho_solve, solve_triangular, LinAlgError
from .errors import SingularMatrixError

#: Innovation covariance with a larger condition number is considered singular.
MAX_CONDITION_NUMBER = 1e12


def propagate(P, Phi, Q):
    """Propagate covariance matrix.

    Parameters
    ----------
    P : ndarray, shape (n_states, n_states)
        Covariance matrix.
    Phi : ndarray, shape (n_states, n_states)
        State transition matrix.
    Q : ndarray, shape (n_states, n_states)
        Discrete process noise matrix.

    Returns
    -------
    ndarray, shape (n_states, n_states)
        Propagated symmetric covariance matrix.
    """
    P = Phi @ P @ Phi.T + Q
    return 0.5 * (P + P.T)


def correct(x, P, z, H, R):
    """Perform Kalman correction.

    The correction obtains a posteriori state and covariance given measurement
    of the form::

        z = H @ x + v, with v ~ N(0, R)

    Parameters
    ----------
    x : ndarray, shape (n_states,)
        State vector.
    P : ndarray, shape (n_states, n_states)
        Covariance matrix.
    z : ndarray, shape (n_obs,)
        Observation vector.
    H : ndarray, shape (n_obs, n_states)
        Matrix which relates state and measurement vectors.
    R : ndarray, shape (n_obs, n_obs)
        Positive semi-definite measurement noise matrix.

    Returns
    -------
    x : ndarray, shape (n_states,)
        Corrected state vector.
    P : ndarray, shape (n_states, n_states)
        A posteriori covariance matrix.
    innovation : ndarray, shape (n_obs,)
        Standardized innovation vector with theoretical zero mean and identity
        covariance matrix.

    Raises
    ------
    SingularMatrixError
        If the innovation covariance is singular or ill-conditioned.
    """
    HP = H @ P
    S = HP @ H.T + R

    if not np.all(np.isfinite(S)) or np.linalg.cond(S) > MAX_CONDITION_NUMBER:
        raise SingularMatrixError("Innovation covariance is ill-conditioned")
    try:
        L = cholesky(S, lower=True)
    except LinAlgError as error:
        raise SingularMatrixError(
            "Innovation covariance is not positive definite") from error

    e = z - H @ x
    K = cho_solve((L, True), HP).T
    P = (np.eye(len(x)) - K @ H) @ P

    return x + K @ e, 0.5 * (P + P.T), solve_triangular(L, e, lower=True)

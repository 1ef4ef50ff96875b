"""GNSS measurement models for navigation Kalman filters.

A measurement is processed by forming a difference between the measured and
the predicted vectors and linearly relating it to the error state vector::

    z = Z - Z_ins = H @ x + v

Where

    - ``Z`` - measured vector
    - ``Z_ins`` - predicted vector using the current navigation solution
    - ``z`` - innovation vector
    - ``x`` - error state vector
    - ``H`` - measurement Jacobian
    - ``v`` - noise vector, assumed to have zero mean and known variance

Position and velocity errors in the state vector are defined as estimated minus
true values, the clock errors are defined as true minus estimated values.

The module provides a base class `Measurement` which abstracts this concept and
implementations for loosely and tightly coupled GNSS integration. Refer to
chapter 14 of [1]_ for the details.

Classes
-------
.. autosummary::
    :toctree: generated/

    Measurement
    GnssFix
    GnssRanging

References
----------
.. [1] P. D. Groves, "Principles of GNSS, Inertial, and Multisensor Integrated
       Navigation Systems", 2nd edition
"""
import numpy as np
from .errors import InvalidArgumentError
from . import earth, util


#: Number of error states without and with receiver clock states.
N_BASE_STATES = 15
N_CLOCK_STATES = 17
#: Slices and indices of error states.
ATT = slice(0, 3)
VEL = slice(3, 6)
POS = slice(6, 9)
ACCEL_BIAS = slice(9, 12)
GYRO_BIAS = slice(12, 15)
CLOCK = slice(15, 17)
CLOCK_OFFSET = 15
CLOCK_DRIFT = 16


class Measurement:
    """Base class for measurement epochs.

    To introduce a new measurement `compute_matrices` method needs to be implemented.

    Parameters
    ----------
    time : float
        Time of the measurement.

    See Also
    --------
    GnssFix
    GnssRanging
    """
    def __init__(self, time):
        self.time = time

    def compute_matrices(self, solution, n_states):
        """Compute matrices for a linearized measurement.

        Parameters
        ----------
        solution : `pynav.filters.NavigationSolution`
            Navigation solution predicted to the measurement time.
        n_states : int
            Number of states in the filter.

        Returns
        -------
        z : ndarray, shape (n_obs,)
            Innovation vector. A difference between the observed value and the
            value derived from `solution`.
        H : ndarray, shape (n_obs, n_states)
            Observation model matrix. It relates the vector `z` to the error states.
        R : ndarray, shape (n_obs, n_obs)
            Covariance matrix of the measurement error.
        """
        raise NotImplementedError


class GnssFix(Measurement):
    """GNSS position and velocity solution in ECEF for loosely coupled integration.

    Parameters
    ----------
    time : float
        Time of the fix.
    position_e : array_like, shape (3,)
        Position in ECEF.
    velocity_e : array_like, shape (3,)
        Velocity resolved in ECEF.
    position_sd : float, optional
        Position accuracy in meters for each axis. Default is 5.
    velocity_sd : float, optional
        Velocity accuracy in m/s for each axis. Default is 0.1.
    covariance : array_like, shape (6, 6) or None, optional
        Full covariance of position and velocity errors. If provided,
        `position_sd` and `velocity_sd` are ignored.
    """
    def __init__(self, time, position_e, velocity_e, position_sd=5.0, velocity_sd=0.1,
                 covariance=None):
        super(GnssFix, self).__init__(time)
        self.position_e = np.asarray(position_e, dtype=float)
        self.velocity_e = np.asarray(velocity_e, dtype=float)
        if self.position_e.shape != (3,) or self.velocity_e.shape != (3,):
            raise InvalidArgumentError("Position and velocity must have shape (3,)")

        if covariance is None:
            self.R = np.diag(np.hstack([np.full(3, position_sd ** 2),
                                        np.full(3, velocity_sd ** 2)]))
        else:
            self.R = np.asarray(covariance, dtype=float)
            if self.R.shape != (6, 6):
                raise InvalidArgumentError("`covariance` must have shape (6, 6)")

    def compute_matrices(self, solution, n_states):
        frame = solution.frame
        z = np.hstack([self.position_e - frame.position,
                       self.velocity_e - frame.velocity])
        H = np.zeros((6, n_states))
        H[:3, POS] = -np.eye(3)
        H[3:, VEL] = -np.eye(3)
        return z, H, self.R


class GnssRanging(Measurement):
    """GNSS pseudoranges and pseudorange rates for tightly coupled integration.

    The Sagnac effect is accounted for when computing predicted values.

    Parameters
    ----------
    time : float
        Time of the measurements.
    satellite_position_e : array_like, shape (n_satellites, 3)
        Satellite positions in ECEF at the time of signal transmission.
    satellite_velocity_e : array_like, shape (n_satellites, 3)
        Satellite velocities resolved in ECEF.
    pseudorange : array_like, shape (n_satellites,)
        Measured pseudoranges in meters.
    pseudorange_rate : array_like, shape (n_satellites,)
        Measured pseudorange rates in m/s.
    pseudorange_sd : float, optional
        Pseudorange accuracy in meters. Default is 2.5.
    pseudorange_rate_sd : float, optional
        Pseudorange rate accuracy in m/s. Default is 0.1.
    """
    def __init__(self, time, satellite_position_e, satellite_velocity_e,
                 pseudorange, pseudorange_rate, pseudorange_sd=2.5,
                 pseudorange_rate_sd=0.1):
        super(GnssRanging, self).__init__(time)
        self.satellite_position_e = np.atleast_2d(
            np.asarray(satellite_position_e, dtype=float))
        self.satellite_velocity_e = np.atleast_2d(
            np.asarray(satellite_velocity_e, dtype=float))
        self.pseudorange = np.atleast_1d(np.asarray(pseudorange, dtype=float))
        self.pseudorange_rate = np.atleast_1d(np.asarray(pseudorange_rate, dtype=float))

        n = len(self.pseudorange)
        if (self.satellite_position_e.shape != (n, 3) or
                self.satellite_velocity_e.shape != (n, 3) or
                self.pseudorange_rate.shape != (n,)):
            raise InvalidArgumentError("Inconsistent shapes of satellite data")
        self.pseudorange_sd = pseudorange_sd
        self.pseudorange_rate_sd = pseudorange_rate_sd

    @property
    def n_satellites(self):
        return len(self.pseudorange)

    def compute_matrices(self, solution, n_states):
        if n_states != N_CLOCK_STATES:
            raise InvalidArgumentError(
                "Ranging measurements require receiver clock states")

        frame = solution.frame
        r_e = frame.position
        velocity_e = frame.velocity
        clock_offset, clock_drift = solution.clock
        omega_ie = util.skew_matrix([0, 0, earth.RATE])

        n = self.n_satellites
        z = np.empty(2 * n)
        H = np.zeros((2 * n, n_states))
        for i, (r_s, v_s) in enumerate(zip(self.satellite_position_e,
                                           self.satellite_velocity_e)):
            approx_range = np.linalg.norm(r_s - r_e)
            sagnac = earth.RATE * approx_range / earth.SPEED_OF_LIGHT
            mat_sagnac = np.array([[1, sagnac, 0],
                                   [-sagnac, 1, 0],
                                   [0, 0, 1]])
            delta_r = mat_sagnac @ r_s - r_e
            distance = np.linalg.norm(delta_r)
            u = delta_r / distance
            range_rate = u @ (mat_sagnac @ (v_s + omega_ie @ r_s)
                              - (velocity_e + omega_ie @ r_e))

            z[i] = self.pseudorange[i] - distance - clock_offset
            z[n + i] = self.pseudorange_rate[i] - range_rate - clock_drift
            H[i, POS] = u
            H[i, CLOCK_OFFSET] = 1
            H[n + i, VEL] = u
            H[n + i, CLOCK_DRIFT] = 1

        R = np.diag(np.hstack([np.full(n, self.pseudorange_sd ** 2),
                               np.full(n, self.pseudorange_rate_sd ** 2)]))
        return z, H, R

"""Strapdown INS mechanization in ECEF frame.

This module provides the forward mechanization, which propagates position,
velocity and attitude by given kinematics, and its inverse, which estimates
kinematics (specific force and angular rate) from two consecutive frames.
Both operate in ECEF frame with precise attitude update and account for
Earth rotation, Coriolis acceleration and J2 gravity. The implementation follows
chapter 5 of [1]_.

Constants
---------
.. autosummary::
    :toctree: generated/

    SCALING_THRESHOLD
    ALPHA_THRESHOLD
    GRAVITY_ITERATIONS

Functions
---------
.. autosummary::
    :toctree: generated/

    estimate_kinematics_ecef
    estimate_kinematics
    estimate_kinematics_from_pva
    propagate_ecef
    propagate_frame

Classes
-------
.. autosummary::
    :toctree: generated/

    Kinematics
    Integrator

References
----------
.. [1] P. D. Groves, "Principles of GNSS, Inertial, and Multisensor Integrated
       Navigation Systems", 2nd edition
"""
import numpy as np
import pandas as pd
from .errors import InvalidArgumentError
from .frames import CoordinateTransformation, Frame, FrameType
from .util import GYRO_COLS, ACCEL_COLS, IMU_COLS, TRAJECTORY_COLS
from . import converters, earth, util

#: Rotation angle above which the rotation vector extracted from the attitude
#: change matrix is rescaled by ``theta / sin(theta)``.
SCALING_THRESHOLD = 2e-5
#: Rotation angle below which first order approximations of the attitude
#: update are used.
ALPHA_THRESHOLD = 1e-8
#: Number of passes re-evaluating gravity at the propagated position.
GRAVITY_ITERATIONS = 2


class Kinematics:
    """Specific force and angular rate in body frame.

    Parameters
    ----------
    specific_force : array_like, shape (3,), optional
        Specific force in m/s^2. Zero by default.
    angular_rate : array_like, shape (3,), optional
        Angular rate with respect to the inertial frame in rad/s.
        Zero by default.
    """
    def __init__(self, specific_force=None, angular_rate=None):
        self.specific_force = self._read_only(specific_force, 'specific_force')
        self.angular_rate = self._read_only(angular_rate, 'angular_rate')

    @staticmethod
    def _read_only(value, name):
        value = np.zeros(3) if value is None else np.array(value, dtype=float)
        if value.shape != (3,):
            raise InvalidArgumentError(f"`{name}` must have shape (3,)")
        value.flags.writeable = False
        return value

    @classmethod
    def from_series(cls, imu_row):
        """Create from a single row of Imu DataFrame."""
        return cls(imu_row[ACCEL_COLS], imu_row[GYRO_COLS])

    def to_series(self, name=None):
        """Convert to a Series with Imu columns."""
        return pd.Series(np.hstack([self.angular_rate, self.specific_force]),
                         index=IMU_COLS, name=name)

    def is_close(self, other, atol=0.0):
        """Check equality with given absolute tolerance."""
        return (np.allclose(self.specific_force, other.specific_force,
                            rtol=0, atol=atol) and
                np.allclose(self.angular_rate, other.angular_rate, rtol=0, atol=atol))

    def __repr__(self):
        return (f"Kinematics(specific_force={self.specific_force.tolist()}, "
                f"angular_rate={self.angular_rate.tolist()})")


def _check_dt(dt):
    if dt < 0:
        raise InvalidArgumentError("Time interval must be non-negative")


def _body_to_ecef_matrix(mat_eb, name):
    if isinstance(mat_eb, CoordinateTransformation):
        if (mat_eb.source != FrameType.BODY or
                mat_eb.destination != FrameType.ECEF):
            raise InvalidArgumentError(
                f"`{name}` must be BODY to ECEF transformation")
        return mat_eb.matrix
    mat_eb = np.asarray(mat_eb, dtype=float)
    if mat_eb.shape != (3, 3):
        raise InvalidArgumentError(f"`{name}` must have shape (3, 3)")
    return mat_eb


def _vector(value, name):
    value = np.asarray(value, dtype=float)
    if value.shape != (3,):
        raise InvalidArgumentError(f"`{name}` must have shape (3,)")
    return value


def _mat_earth(dt):
    alpha_ie = earth.RATE * dt
    sin = np.sin(alpha_ie)
    cos = np.cos(alpha_ie)
    return np.array([[cos, sin, 0],
                     [-sin, cos, 0],
                     [0, 0, 1]])


def _average_attitude(mat_eb_old, alpha, dt):
    alpha_ie = earth.RATE * dt
    earth_correction = 0.5 * util.skew_matrix([0, 0, alpha_ie]) @ mat_eb_old
    norm = np.linalg.norm(alpha)
    if norm > ALPHA_THRESHOLD:
        skew = util.skew_matrix(alpha)
        return (mat_eb_old @ (np.eye(3) + (1 - np.cos(norm)) / norm ** 2 * skew
                              + (1 - np.sin(norm) / norm) / norm ** 2 * skew @ skew)
                - earth_correction)
    return mat_eb_old - earth_correction


def estimate_kinematics_ecef(dt, mat_eb, mat_eb_old, velocity_e, velocity_e_old, r_e):
    """Estimate kinematics from two consecutive attitudes and velocities in ECEF.

    This is the inverse of `propagate_ecef`.

    Parameters
    ----------
    dt : float
        Time interval between the states.
    mat_eb, mat_eb_old : array_like, shape (3, 3) or CoordinateTransformation
        Current and previous body to ECEF rotation matrices.
        `CoordinateTransformation` objects must have BODY source and ECEF
        destination.
    velocity_e, velocity_e_old : array_like, shape (3,)
        Current and previous velocity resolved in ECEF.
    r_e : array_like, shape (3,)
        Current position in ECEF.

    Returns
    -------
    Kinematics
        Average specific force and angular rate over the interval.
        Zero for zero `dt`.

    Raises
    ------
    InvalidArgumentError
        If `dt` is negative or arguments have wrong types or shapes.
    """
    _check_dt(dt)
    mat_eb = _body_to_ecef_matrix(mat_eb, 'mat_eb')
    mat_eb_old = _body_to_ecef_matrix(mat_eb_old, 'mat_eb_old')
    velocity_e = _vector(velocity_e, 'velocity_e')
    velocity_e_old = _vector(velocity_e_old, 'velocity_e_old')
    r_e = _vector(r_e, 'r_e')
    if dt == 0:
        return Kinematics()

    mat_old_new = mat_eb.T @ _mat_earth(dt) @ mat_eb_old
    alpha = 0.5 * np.array([mat_old_new[1, 2] - mat_old_new[2, 1],
                            mat_old_new[2, 0] - mat_old_new[0, 2],
                            mat_old_new[0, 1] - mat_old_new[1, 0]])
    theta = np.arccos(np.clip(0.5 * (np.trace(mat_old_new) - 1), -1, 1))
    if theta > SCALING_THRESHOLD:
        alpha *= theta / np.sin(theta)

    angular_rate = alpha / dt

    omega_ie = util.skew_matrix([0, 0, earth.RATE])
    specific_force_e = ((velocity_e - velocity_e_old) / dt - earth.gravity_ecef(r_e)
                        + 2 * omega_ie @ velocity_e_old)

    mat_average = _average_attitude(mat_eb_old, alpha, dt)
    specific_force = np.linalg.solve(mat_average, specific_force_e)

    return Kinematics(specific_force, angular_rate)


def estimate_kinematics(dt, frame, frame_old, time=0):
    """Estimate kinematics from two consecutive frames.

    Frames can be of any type, they are converted to ECEF first.

    Parameters
    ----------
    dt : float
        Time interval between the frames.
    frame, frame_old : Frame
        Current and previous frames.
    time : float, optional
        Time of `frame` since coincidence of ECEF and ECI frames, `frame_old`
        is taken at ``time - dt``. Used only for ECI frames. Default is 0.

    Returns
    -------
    Kinematics
    """
    _check_dt(dt)
    frame = converters.to_frame_type(frame, FrameType.ECEF, time)
    frame_old = converters.to_frame_type(frame_old, FrameType.ECEF, time - dt)
    return estimate_kinematics_ecef(dt, frame.attitude, frame_old.attitude,
                                    frame.velocity, frame_old.velocity,
                                    frame.position)


def estimate_kinematics_from_pva(dt, pva, pva_old):
    """Estimate kinematics from two consecutive position-velocity-attitudes.

    Parameters
    ----------
    dt : float
        Time interval between the states.
    pva, pva_old : Pva
        Current and previous position-velocity-attitude.

    Returns
    -------
    Kinematics
    """
    return estimate_kinematics(dt, converters.frame_from_pva(pva),
                               converters.frame_from_pva(pva_old))


def propagate_ecef(dt, r_e, velocity_e, mat_eb, kinematics):
    """Propagate position, velocity and attitude in ECEF by given kinematics.

    Gravity is evaluated at the propagated position refined by
    `GRAVITY_ITERATIONS` fixed point passes, so the function inverts
    `estimate_kinematics_ecef` for any time interval.

    Parameters
    ----------
    dt : float
        Time interval.
    r_e : array_like, shape (3,)
        Position in ECEF.
    velocity_e : array_like, shape (3,)
        Velocity resolved in ECEF.
    mat_eb : array_like, shape (3, 3) or CoordinateTransformation
        Body to ECEF rotation matrix.
    kinematics : Kinematics
        Average specific force and angular rate over the interval.

    Returns
    -------
    r_e, velocity_e : ndarray, shape (3,)
        Propagated position and velocity.
    mat_eb : ndarray, shape (3, 3)
        Propagated attitude.

    Raises
    ------
    InvalidArgumentError
        If `dt` is negative or arguments have wrong types or shapes.
    """
    _check_dt(dt)
    r_e = _vector(r_e, 'r_e')
    velocity_e = _vector(velocity_e, 'velocity_e')
    mat_eb = _body_to_ecef_matrix(mat_eb, 'mat_eb')
    if dt == 0:
        return r_e.copy(), velocity_e.copy(), mat_eb.copy()

    alpha = kinematics.angular_rate * dt
    norm = np.linalg.norm(alpha)
    skew = util.skew_matrix(alpha)
    if norm > ALPHA_THRESHOLD:
        mat_new_old = (np.eye(3) + np.sin(norm) / norm * skew
                       + (1 - np.cos(norm)) / norm ** 2 * skew @ skew)
    else:
        mat_new_old = np.eye(3) + skew

    mat_eb_new = _mat_earth(dt) @ mat_eb @ mat_new_old
    specific_force_e = _average_attitude(mat_eb, alpha, dt) @ kinematics.specific_force

    omega_ie = util.skew_matrix([0, 0, earth.RATE])
    acceleration_e = specific_force_e - 2 * omega_ie @ velocity_e
    r_e_new = r_e
    for _ in range(GRAVITY_ITERATIONS + 1):
        velocity_e_new = velocity_e + dt * (acceleration_e + earth.gravity_ecef(r_e_new))
        r_e_new = r_e + 0.5 * (velocity_e_new + velocity_e) * dt

    return r_e_new, velocity_e_new, mat_eb_new


def propagate_frame(frame_old, kinematics, dt, time=0):
    """Propagate frame by given kinematics.

    Parameters
    ----------
    frame_old : Frame
        Frame at the start of the interval, any type.
    kinematics : Kinematics
        Average specific force and angular rate over the interval.
    dt : float
        Time interval.
    time : float, optional
        Time of `frame_old` since coincidence of ECEF and ECI frames.
        Used only for ECI frames. Default is 0.

    Returns
    -------
    Frame
        Propagated frame of the same type as `frame_old`. For zero `dt`
        `frame_old` itself is returned.
    """
    _check_dt(dt)
    if dt == 0:
        return frame_old
    frame = converters.to_frame_type(frame_old, FrameType.ECEF, time)
    r_e, velocity_e, mat_eb = propagate_ecef(dt, frame.position, frame.velocity,
                                             frame.attitude, kinematics)
    frame = Frame(FrameType.ECEF, r_e, velocity_e, mat_eb)
    return converters.to_frame_type(frame, frame_old.frame_type, time + dt)


class Integrator:
    """Strapdown INS integration of kinematics time series.

    The kinematics in a row of `Imu` with time ``t[k]`` are considered to be
    average values over the interval from ``t[k - 1]`` to ``t[k]``.

    Parameters
    ----------
    initial : Pva or Frame
        Initial position-velocity-attitude.
    time : float, optional
        Initial time. If None (default), the name of `initial` Series is used
        or 0 for a Frame.

    Attributes
    ----------
    trajectory : Trajectory
        Computed trajectory so far.
    """
    def __init__(self, initial, time=None):
        if isinstance(initial, pd.Series):
            if time is None:
                time = 0 if initial.name is None else initial.name
            initial = converters.frame_from_pva(initial)
        elif time is None:
            time = 0

        frame = converters.to_frame_type(initial, FrameType.ECEF)
        self.r_e = frame.position.copy()
        self.velocity_e = frame.velocity.copy()
        self.mat_eb = frame.attitude.copy()
        self.trajectory = converters.frame_to_pva(frame, name=time).to_frame().transpose()
        self.trajectory.index.name = 'time'

    def _integrate(self, imu, mode):
        time = self.get_time()
        r_e = self.r_e
        velocity_e = self.velocity_e
        mat_eb = self.mat_eb

        rows = []
        for t, (gyro, accel) in zip(imu.index, zip(imu[GYRO_COLS].values,
                                                   imu[ACCEL_COLS].values)):
            r_e, velocity_e, mat_eb = propagate_ecef(t - time, r_e, velocity_e, mat_eb,
                                                     Kinematics(accel, gyro))
            time = t
            rows.append(converters.frame_to_pva(
                Frame(FrameType.ECEF, r_e, velocity_e, mat_eb)).values)
        trajectory = pd.DataFrame(rows, index=imu.index, columns=TRAJECTORY_COLS)

        if mode == 'integrate':
            self.r_e = r_e
            self.velocity_e = velocity_e
            self.mat_eb = mat_eb
            self.trajectory = pd.concat([self.trajectory, trajectory])
            self.trajectory.index.name = 'time'
            return self.trajectory.iloc[-len(imu) - 1:]
        elif mode == 'predict':
            return trajectory
        else:
            assert False

    def integrate(self, imu):
        """Update trajectory by given kinematics.

        The integration continues from the last computed values.

        Parameters
        ----------
        imu : Imu
            Specific force and angular rate.

        Returns
        -------
        Trajectory
            Added chunk of the trajectory including the last point before
            `imu` was integrated.
        """
        return self._integrate(imu, 'integrate')

    def predict(self, imu_row):
        """Predict position-velocity-attitude given a single row of kinematics.

        The stored trajectory is not updated.

        Parameters
        ----------
        imu_row : Series
            Single row of Imu DataFrame, its name is time.

        Returns
        -------
        Pva
            Predicted position-velocity-attitude.
        """
        return self._integrate(imu_row.to_frame().transpose(), 'predict').iloc[0]

    def get_time(self):
        """Get time of the latest position-velocity-attitude."""
        return self.trajectory.index[-1]

    def get_frame(self):
        """Get the latest state as ECEF frame."""
        return Frame(FrameType.ECEF, self.r_e, self.velocity_e, self.mat_eb)

    def set_frame(self, frame):
        """Set (overwrite) the latest state."""
        frame = converters.to_frame_type(frame, FrameType.ECEF)
        self.r_e = frame.position.copy()
        self.velocity_e = frame.velocity.copy()
        self.mat_eb = frame.attitude.copy()
        self.trajectory.iloc[-1] = converters.frame_to_pva(frame).values

"""Navigation Kalman filters for INS/GNSS integration.

Module provides error-state Kalman filters in closed-loop (feedback) form for
loosely coupled integration with GNSS position-velocity fixes and tightly coupled
integration with GNSS pseudoranges and pseudorange rates. The error state is
resolved in ECEF frame and contains:

    - 0:3 - attitude errors
    - 3:6 - velocity errors
    - 6:9 - position errors
    - 9:12 - accelerometer bias estimate corrections
    - 12:15 - gyro bias estimate corrections
    - 15:17 - receiver clock offset and drift errors (tightly coupled only)

After each correction the estimated errors are fed back to the navigation solution
and the error state is reset to zero.

Refer to [1]_ for the discussion of Kalman filtering in context of inertial
navigation.

Functions
---------
.. autosummary::
    :toctree: generated/

    compute_transition_matrix
    compute_noise_matrix
    propagate
    propagate_solution
    correct
    run_loosely_coupled_filter
    run_tightly_coupled_filter

Classes
-------
.. autosummary::
    :toctree: generated/

    FilterStatus
    KalmanState
    NavigationSolution
    LooselyCoupledFilter
    TightlyCoupledFilter

References
----------
.. [1] P. D. Groves, "Principles of GNSS, Inertial, and Multisensor Integrated
       Navigation Systems", 2nd edition
"""
from enum import Enum
import logging
import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation
from . import converters, earth, kalman, strapdown, transform, util
from .errors import (EpochError, FilterStatusError, InvalidArgumentError,
                     NotReadyError, SingularMatrixError)
from .frames import Frame, FrameType
from .inertial_sensor import NoiseModel
from .measurements import (N_BASE_STATES, N_CLOCK_STATES, ATT, VEL, POS, ACCEL_BIAS,
                           GYRO_BIAS, CLOCK, CLOCK_OFFSET, CLOCK_DRIFT)
from .util import BIAS_COLS, CLOCK_COLS, NED_COLS, VEL_COLS


logger = logging.getLogger(__name__)


class FilterStatus(Enum):
    """Status of a navigation filter.

    Allowed transitions are UNINITIALIZED -> PROPAGATING (``initialize``),
    PROPAGATING -> CORRECTING -> PROPAGATING (``correct``) and any status ->
    UNINITIALIZED (``reset``). CORRECTING is transient: it is set only while
    ``correct`` runs, so outside of the call a filter is never observed in it.
    """
    UNINITIALIZED = 0
    PROPAGATING = 1
    CORRECTING = 2


class KalmanState:
    """Error state vector and its covariance.

    Parameters
    ----------
    x : array_like, shape (n_states,)
        Error state vector.
    P : array_like, shape (n_states, n_states)
        Covariance matrix.
    innovation : ndarray or None, optional
        Normalized innovation of the correction which produced this state.

    Attributes
    ----------
    n_states : int
        Number of states.
    """
    def __init__(self, x, P, innovation=None):
        x = np.array(x, dtype=float)
        P = np.array(P, dtype=float)
        if x.ndim != 1 or P.shape != (len(x), len(x)):
            raise InvalidArgumentError("Inconsistent shapes of `x` and `P`")
        x.flags.writeable = False
        P.flags.writeable = False
        self.x = x
        self.P = P
        self.innovation = innovation

    @property
    def n_states(self):
        return len(self.x)


class NavigationSolution:
    """Navigation solution corrected by a filter.

    Parameters
    ----------
    time : float
        Time of the solution.
    frame : Frame
        Position, velocity and attitude. Converted to ECEF if necessary.
    accel_bias, gyro_bias : array_like, shape (3,) or None, optional
        Accelerometer and gyro bias estimates. None (default) means zero.
    clock : array_like, shape (2,) or None, optional
        Receiver clock offset and drift in m and m/s. None (default) means zero.
    """
    def __init__(self, time, frame, accel_bias=None, gyro_bias=None, clock=None):
        self.time = time
        self.frame = converters.to_frame_type(frame, FrameType.ECEF, time)
        self.accel_bias = self._read_only(accel_bias, 3)
        self.gyro_bias = self._read_only(gyro_bias, 3)
        self.clock = self._read_only(clock, 2)

    @staticmethod
    def _read_only(value, size):
        value = np.zeros(size) if value is None else np.array(value, dtype=float)
        if value.shape != (size,):
            raise InvalidArgumentError(f"Expected array with shape ({size},)")
        value.flags.writeable = False
        return value

    def correct_kinematics(self, kinematics):
        """Compensate kinematics for estimated biases."""
        return strapdown.Kinematics(kinematics.specific_force - self.accel_bias,
                                    kinematics.angular_rate - self.gyro_bias)

    def __repr__(self):
        return (f"NavigationSolution(time={self.time}, frame={self.frame!r}, "
                f"clock={self.clock.tolist()})")


def compute_transition_matrix(dt, solution, specific_force_b, n_states):
    """Compute the state transition matrix of the error state.

    First order approximation is used.

    Parameters
    ----------
    dt : float
        Time interval.
    solution : NavigationSolution
        Navigation solution at the start of the interval.
    specific_force_b : array_like, shape (3,)
        Bias compensated specific force.
    n_states : int
        Number of states, 15 or 17.

    Returns
    -------
    ndarray, shape (n_states, n_states)
        Transition matrix.
    """
    mat_eb = solution.frame.attitude
    r_e = solution.frame.position
    omega_ie = util.skew_matrix([0, 0, earth.RATE])

    lat = transform.ecef_to_lla(r_e)[0]
    r_norm = np.linalg.norm(r_e)
    gravity_gradient = (2 * np.outer(earth.gravity_ecef(r_e), r_e)
                        / (earth.geocentric_radius(lat) * r_norm))

    Phi = np.eye(n_states)
    Phi[ATT, ATT] -= omega_ie * dt
    Phi[ATT, GYRO_BIAS] = mat_eb * dt
    Phi[VEL, ATT] = -dt * util.skew_matrix(mat_eb @ specific_force_b)
    Phi[VEL, VEL] -= 2 * omega_ie * dt
    Phi[VEL, POS] = -dt * gravity_gradient
    Phi[VEL, ACCEL_BIAS] = mat_eb * dt
    Phi[POS, VEL] = np.eye(3) * dt
    if n_states == N_CLOCK_STATES:
        Phi[CLOCK_OFFSET, CLOCK_DRIFT] = dt
    return Phi


def compute_noise_matrix(dt, noise_model, n_states):
    """Compute the process noise matrix accumulated over an interval.

    Parameters
    ----------
    dt : float
        Time interval.
    noise_model : `pynav.inertial_sensor.NoiseModel`
        Noise intensities.
    n_states : int
        Number of states, 15 or 17.

    Returns
    -------
    ndarray, shape (n_states, n_states)
        Diagonal noise matrix.
    """
    q = np.zeros(n_states)
    q[ATT] = noise_model.gyro_noise ** 2
    q[VEL] = noise_model.accel_noise ** 2
    q[ACCEL_BIAS] = noise_model.accel_bias_walk ** 2
    q[GYRO_BIAS] = noise_model.gyro_bias_walk ** 2
    if n_states == N_CLOCK_STATES:
        q[CLOCK_OFFSET] = noise_model.clock_phase ** 2
        q[CLOCK_DRIFT] = noise_model.clock_frequency ** 2
    return np.diag(q * dt)


def propagate(state, dt, solution, kinematics, noise_model=None):
    """Propagate Kalman state over a time interval.

    Parameters
    ----------
    state : KalmanState
        State at the start of the interval.
    dt : float
        Time interval.
    solution : NavigationSolution
        Navigation solution at the start of the interval.
    kinematics : `pynav.strapdown.Kinematics`
        Measured kinematics, the bias compensation is applied internally.
    noise_model : `pynav.inertial_sensor.NoiseModel` or None, optional
        Noise intensities. If None (default), the default model is used.

    Returns
    -------
    KalmanState
        Propagated state.
    """
    if dt < 0:
        raise InvalidArgumentError("Time interval must be non-negative")
    if noise_model is None:
        noise_model = NoiseModel()

    n_states = state.n_states
    kinematics = solution.correct_kinematics(kinematics)
    Phi = compute_transition_matrix(dt, solution, kinematics.specific_force, n_states)
    Q = compute_noise_matrix(dt, noise_model, n_states)
    Qd = 0.5 * (Phi @ Q @ Phi.T + Q)
    return KalmanState(Phi @ state.x, kalman.propagate(state.P, Phi, Qd))


def propagate_solution(solution, kinematics, dt):
    """Propagate navigation solution over a time interval.

    Kinematics are compensated for estimated biases and the strapdown mechanization
    is applied. The receiver clock offset is propagated with the estimated drift.

    Parameters
    ----------
    solution : NavigationSolution
        Solution at the start of the interval.
    kinematics : `pynav.strapdown.Kinematics`
        Measured kinematics.
    dt : float
        Time interval.

    Returns
    -------
    NavigationSolution
        Propagated solution.
    """
    frame = solution.frame
    r_e, velocity_e, mat_eb = strapdown.propagate_ecef(
        dt, frame.position, frame.velocity, frame.attitude,
        solution.correct_kinematics(kinematics))
    clock = solution.clock + np.array([solution.clock[1] * dt, 0])
    return NavigationSolution(solution.time + dt, Frame(FrameType.ECEF, r_e,
                                                        velocity_e, mat_eb),
                              solution.accel_bias, solution.gyro_bias, clock)


def _apply_correction(solution, x):
    frame = solution.frame
    mat_eb = Rotation.from_rotvec(-x[ATT]).as_matrix() @ frame.attitude
    frame = Frame(FrameType.ECEF, frame.position - x[POS], frame.velocity - x[VEL],
                  mat_eb)
    clock = solution.clock
    if len(x) == N_CLOCK_STATES:
        clock = clock + x[CLOCK]
    return NavigationSolution(solution.time, frame,
                              solution.accel_bias + x[ACCEL_BIAS],
                              solution.gyro_bias + x[GYRO_BIAS], clock)


def correct(state, solution, epoch):
    """Correct Kalman state and navigation solution by a measurement epoch.

    The estimated errors are fed back into the navigation solution and the error
    state is reset to zero.

    Parameters
    ----------
    state : KalmanState
        State predicted to the measurement time.
    solution : NavigationSolution
        Navigation solution predicted to the measurement time.
    epoch : `pynav.measurements.Measurement`
        Measurement epoch.

    Returns
    -------
    state : KalmanState
        Corrected state with zero error vector. Its `innovation` attribute
        contains the normalized innovation.
    solution : NavigationSolution
        Corrected navigation solution.

    Raises
    ------
    SingularMatrixError
        If the innovation covariance is singular.
    """
    z, H, R = epoch.compute_matrices(solution, state.n_states)
    x, P, innovation = kalman.correct(np.array(state.x), state.P, z, H, R)
    return (KalmanState(np.zeros_like(x), P, innovation),
            _apply_correction(solution, x))


class _NavigationFilter:
    N_STATES = None

    def __init__(self, noise_model=None):
        if noise_model is None:
            noise_model = NoiseModel()
        self.noise_model = noise_model
        self.status = FilterStatus.UNINITIALIZED
        self.rejected_epochs = []
        self._state = None
        self._solution = None

    def _check_ready(self):
        if self.status == FilterStatus.UNINITIALIZED:
            raise NotReadyError("Filter is not initialized")

    @property
    def state(self):
        """Current `KalmanState`."""
        self._check_ready()
        return self._state

    @property
    def solution(self):
        """Current `NavigationSolution`."""
        self._check_ready()
        return self._solution

    def _initialize(self, solution, sd):
        if self.status != FilterStatus.UNINITIALIZED:
            raise FilterStatusError(
                f"Can't initialize filter in {self.status.name} status, call `reset` first")
        if not isinstance(solution, NavigationSolution):
            raise InvalidArgumentError("`solution` must be NavigationSolution")
        self._solution = solution
        self._state = KalmanState(np.zeros(self.N_STATES), np.diag(np.square(sd)))
        self.rejected_epochs = []
        self.status = FilterStatus.PROPAGATING
        logger.info("%s initialized at time %s", type(self).__name__, solution.time)

    @staticmethod
    def _base_sd(position_sd, velocity_sd, attitude_sd, accel_bias_sd,
                 gyro_bias_sd):
        return np.hstack([np.full(3, np.deg2rad(attitude_sd)),
                          np.full(3, velocity_sd),
                          np.full(3, position_sd),
                          np.full(3, accel_bias_sd),
                          np.full(3, gyro_bias_sd)])

    def propagate(self, kinematics, dt):
        """Propagate the filter over a time interval.

        Parameters
        ----------
        kinematics : `pynav.strapdown.Kinematics`
            Measured kinematics over the interval.
        dt : float
            Time interval.
        """
        self._check_ready()
        self.status = FilterStatus.PROPAGATING
        state = propagate(self._state, dt, self._solution, kinematics, self.noise_model)
        self._solution = propagate_solution(self._solution, kinematics, dt)
        self._state = state

    def correct(self, epoch):
        """Correct the filter by a measurement epoch.

        When the innovation covariance is singular, the epoch is skipped and
        recorded in `rejected_epochs`, the state remains unchanged.
        The status is CORRECTING only for the duration of the call.

        Parameters
        ----------
        epoch : `pynav.measurements.Measurement`
            Measurement epoch.

        Returns
        -------
        bool
            Whether the correction was applied.
        """
        self._check_ready()
        self.status = FilterStatus.CORRECTING
        try:
            state, solution = correct(self._state, self._solution, epoch)
        except SingularMatrixError as error:
            logger.warning("Skipping %s epoch at time %s: %s",
                           type(epoch).__name__, epoch.time, error)
            self.rejected_epochs.append(
                EpochError(epoch.time, type(epoch).__name__, str(error)))
            return False
        finally:
            self.status = FilterStatus.PROPAGATING

        self._state = state
        self._solution = solution
        logger.debug("Applied %s epoch at time %s", type(epoch).__name__, epoch.time)
        return True

    def reset(self):
        """Reset the filter to the uninitialized status."""
        self._state = None
        self._solution = None
        self.status = FilterStatus.UNINITIALIZED
        logger.info("%s reset", type(self).__name__)


class LooselyCoupledFilter(_NavigationFilter):
    """INS/GNSS filter processing position-velocity fixes.

    The filter estimates 15 error states.

    Parameters
    ----------
    noise_model : `pynav.inertial_sensor.NoiseModel` or None, optional
        Noise intensities. If None (default), the default model is used.

    Attributes
    ----------
    status : FilterStatus
        Current status.
    rejected_epochs : list of `pynav.errors.EpochError`
        Epochs skipped due to singular innovation covariance.
    """
    N_STATES = N_BASE_STATES

    def initialize(self, solution, position_sd, velocity_sd, attitude_sd,
                   accel_bias_sd=0.0, gyro_bias_sd=0.0):
        """Initialize the filter.

        Parameters
        ----------
        solution : NavigationSolution
            Initial navigation solution.
        position_sd : float
            Initial position standard deviation in meters.
        velocity_sd : float
            Initial velocity standard deviation in m/s.
        attitude_sd : float
            Initial attitude standard deviation in degrees.
        accel_bias_sd : float, optional
            Accelerometer bias standard deviation in m/s^2. Default is 0.
        gyro_bias_sd : float, optional
            Gyro bias standard deviation in rad/s. Default is 0.

        Raises
        ------
        FilterStatusError
            If the filter is already initialized.
        """
        self._initialize(solution, self._base_sd(position_sd, velocity_sd, attitude_sd,
                                                 accel_bias_sd, gyro_bias_sd))


class TightlyCoupledFilter(_NavigationFilter):
    """INS/GNSS filter processing pseudoranges and pseudorange rates.

    The filter estimates 17 error states including receiver clock offset and
    drift.

    Parameters
    ----------
    noise_model : `pynav.inertial_sensor.NoiseModel` or None, optional
        Noise intensities. If None (default), the default model is used.

    Attributes
    ----------
    status : FilterStatus
        Current status.
    rejected_epochs : list of `pynav.errors.EpochError`
        Epochs skipped due to singular innovation covariance.
    """
    N_STATES = N_CLOCK_STATES

    def initialize(self, solution, position_sd, velocity_sd, attitude_sd,
                   accel_bias_sd=0.0, gyro_bias_sd=0.0, clock_offset_sd=0.0,
                   clock_drift_sd=0.0):
        """Initialize the filter.

        Parameters
        ----------
        solution : NavigationSolution
            Initial navigation solution including clock estimates.
        position_sd : float
            Initial position standard deviation in meters.
        velocity_sd : float
            Initial velocity standard deviation in m/s.
        attitude_sd : float
            Initial attitude standard deviation in degrees.
        accel_bias_sd : float, optional
            Accelerometer bias standard deviation in m/s^2. Default is 0.
        gyro_bias_sd : float, optional
            Gyro bias standard deviation in rad/s. Default is 0.
        clock_offset_sd : float, optional
            Receiver clock offset standard deviation in meters. Default is 0.
        clock_drift_sd : float, optional
            Receiver clock drift standard deviation in m/s. Default is 0.
        """
        sd = self._base_sd(position_sd, velocity_sd, attitude_sd, accel_bias_sd,
                           gyro_bias_sd)
        self._initialize(solution, np.hstack([sd, clock_offset_sd, clock_drift_sd]))


def _compute_sd(P, frame):
    lla = transform.ecef_to_lla(frame.position)
    mat_en = transform.mat_en_from_ll(lla[0], lla[1])
    position_sd = np.diag(mat_en.T @ P[POS, POS] @ mat_en) ** 0.5
    velocity_sd = np.diag(mat_en.T @ P[VEL, VEL] @ mat_en) ** 0.5
    return np.hstack([position_sd, velocity_sd])


def _run_filter(nav_filter, initial, imu, measurements, time, initialize_kwargs,
                clock=None):
    if isinstance(initial, pd.Series):
        if time is None:
            time = 0 if initial.name is None else initial.name
        initial = converters.frame_from_pva(initial)
    elif time is None:
        time = 0

    nav_filter.initialize(NavigationSolution(time, initial, clock=clock),
                          **initialize_kwargs)

    end_time = imu.index[-1]
    measurements = sorted([measurement for measurement in measurements
                           if time <= measurement.time <= end_time],
                          key=lambda measurement: measurement.time)

    times = []
    trajectory = []
    trajectory_sd = []
    accel_bias = []
    gyro_bias = []
    clock_result = []
    innovations = {}

    def record(t):
        solution = nav_filter.solution
        times.append(t)
        trajectory.append(converters.frame_to_pva(solution.frame).values)
        trajectory_sd.append(_compute_sd(nav_filter.state.P, solution.frame))
        accel_bias.append(solution.accel_bias)
        gyro_bias.append(solution.gyro_bias)
        clock_result.append(solution.clock)

    measurement_index = 0
    current_time = time
    record(current_time)
    for t, imu_row in imu.iterrows():
        if t <= current_time:
            continue
        kinematics = strapdown.Kinematics.from_series(imu_row)
        while (measurement_index < len(measurements) and
               measurements[measurement_index].time <= t):
            epoch = measurements[measurement_index]
            nav_filter.propagate(kinematics, epoch.time - current_time)
            current_time = epoch.time
            if nav_filter.correct(epoch):
                innovations[epoch.time] = nav_filter.state.innovation
            measurement_index += 1
        nav_filter.propagate(kinematics, t - current_time)
        current_time = t
        record(t)

    index = pd.Index(times, name='time')
    return util.Bunch(
        trajectory=pd.DataFrame(trajectory, index=index,
                                columns=util.TRAJECTORY_COLS),
        trajectory_sd=pd.DataFrame(trajectory_sd, index=index,
                                   columns=NED_COLS + VEL_COLS),
        accel_bias=pd.DataFrame(accel_bias, index=index, columns=BIAS_COLS),
        gyro_bias=pd.DataFrame(gyro_bias, index=index, columns=BIAS_COLS),
        clock=pd.DataFrame(clock_result, index=index, columns=CLOCK_COLS),
        innovations=pd.Series(innovations, dtype=object),
        rejected_epochs=list(nav_filter.rejected_epochs))


def run_loosely_coupled_filter(initial, imu, fixes, position_sd, velocity_sd,
                               attitude_sd, accel_bias_sd=0.0, gyro_bias_sd=0.0,
                               noise_model=None, time=None):
    """Run loosely coupled INS/GNSS filter over recorded data.

    Parameters
    ----------
    initial : Pva or Frame
        Initial position-velocity-attitude.
    imu : Imu
        Kinematics. A row with time ``t[k]`` contains average values over
        the interval from the previous time.
    fixes : list of `pynav.measurements.GnssFix`
        GNSS fixes.
    position_sd, velocity_sd, attitude_sd : float
        Initial position (m), velocity (m/s) and attitude (deg) standard deviations.
    accel_bias_sd, gyro_bias_sd : float, optional
        Initial bias standard deviations. Default is 0.
    noise_model : `pynav.inertial_sensor.NoiseModel` or None, optional
        Noise intensities. If None (default), the default model is used.
    time : float or None, optional
        Initial time. If None (default), the name of `initial` Series is used or
        0 for a Frame.

    Returns
    -------
    Bunch with the following fields:

        trajectory : Trajectory
            Estimated trajectory at the initial time and each IMU time.
        trajectory_sd : DataFrame
            Standard deviations of position (in meters) and velocity errors
            resolved in NED.
        accel_bias, gyro_bias : DataFrame
            Estimated sensor biases.
        clock : DataFrame
            Receiver clock estimates, stay zero for this filter.
        innovations : Series
            Normalized innovation vectors indexed by epoch time.
        rejected_epochs : list of `pynav.errors.EpochError`
            Epochs skipped due to singular innovation covariance.
    """
    return _run_filter(LooselyCoupledFilter(noise_model), initial, imu, fixes, time,
                       dict(position_sd=position_sd, velocity_sd=velocity_sd,
                            attitude_sd=attitude_sd, accel_bias_sd=accel_bias_sd,
                            gyro_bias_sd=gyro_bias_sd))


def run_tightly_coupled_filter(initial, imu, epochs, position_sd, velocity_sd,
                               attitude_sd, accel_bias_sd=0.0, gyro_bias_sd=0.0,
                               clock_offset_sd=0.0, clock_drift_sd=0.0, clock=None,
                               noise_model=None, time=None):
    """Run tightly coupled INS/GNSS filter over recorded data.

    Parameters
    ----------
    initial : Pva or Frame
        Initial position-velocity-attitude.
    imu : Imu
        Kinematics. A row with time ``t[k]`` contains average values over
        the interval from the previous time.
    epochs : list of `pynav.measurements.GnssRanging`
        Ranging epochs.
    position_sd, velocity_sd, attitude_sd : float
        Initial position (m), velocity (m/s) and attitude (deg) standard deviations.
    accel_bias_sd, gyro_bias_sd : float, optional
        Initial bias standard deviations. Default is 0.
    clock_offset_sd, clock_drift_sd : float, optional
        Initial receiver clock offset (m) and drift (m/s) standard deviations.
        Default is 0.
    clock : array_like, shape (2,) or None, optional
        Initial receiver clock offset and drift estimates. None (default) means
        zero.
    noise_model : `pynav.inertial_sensor.NoiseModel` or None, optional
        Noise intensities. If None (default), the default model is used.
    time : float or None, optional
        Initial time. If None (default), the name of `initial` Series is used or
        0 for a Frame.

    Returns
    -------
    Bunch
        Same fields as returned by `run_loosely_coupled_filter`, `clock` contains
        receiver clock offset and drift estimates.
    """
    return _run_filter(TightlyCoupledFilter(noise_model), initial, imu, epochs, time,
                       dict(position_sd=position_sd, velocity_sd=velocity_sd,
                            attitude_sd=attitude_sd, accel_bias_sd=accel_bias_sd,
                            gyro_bias_sd=gyro_bias_sd,
                            clock_offset_sd=clock_offset_sd,
                            clock_drift_sd=clock_drift_sd),
                       clock=clock)

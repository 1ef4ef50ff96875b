"""Simulation of navigation sensors.

The main functionality is synthesis of kinematics (ideal IMU readings) from a given
trajectory and generation of GNSS measurements. It also contains some utility
functions useful for aided INS simulation.

IMU data generated here follows the convention of `pynav.strapdown`: a row with
time ``t[k]`` contains average specific force and angular rate over the interval
from ``t[k - 1]`` to ``t[k]``.

Constants
---------
.. autosummary::
    :toctree: generated/

    N_SATELLITES
    ORBIT_RADIUS
    INCLINATION

Functions
---------
.. autosummary::
    :toctree: generated/

    generate_imu
    generate_sine_velocity_motion
    generate_gnss_fixes
    compute_satellite_positions_and_velocities
    generate_gnss_ranging
    generate_pva_error
    perturb_pva
"""
import numpy as np
import pandas as pd
from scipy._lib._util import check_random_state
from . import earth, strapdown, transform, util
from .errors import InvalidArgumentError
from .measurements import GnssFix, GnssRanging
from .util import (LLA_COLS, VEL_COLS, RPH_COLS, NED_COLS, IMU_COLS, TRAJECTORY_COLS,
                   TRAJECTORY_ERROR_COLS)

#: Number of satellites in the simulated constellation.
N_SATELLITES = 30
#: Orbit radius of the simulated constellation in meters.
ORBIT_RADIUS = 2.656175e7
#: Orbit inclination of the simulated constellation in degrees.
INCLINATION = 55.0


def generate_imu(trajectory):
    """Generate kinematics from the trajectory.

    Kinematics are computed between consecutive rows of `trajectory` by inverse
    strapdown mechanization.

    Parameters
    ----------
    trajectory : Trajectory
        Trajectory indexed by time.

    Returns
    -------
    Imu
        Kinematics with one row less than `trajectory`, indexed by the end time
        of each interval.
    """
    time = np.asarray(trajectory.index, dtype=float)
    r_e = transform.lla_to_ecef(trajectory[LLA_COLS].values)
    mat_en = transform.mat_en_from_ll(trajectory['lat'].values,
                                      trajectory['lon'].values)
    velocity_e = util.mv_prod(mat_en, trajectory[VEL_COLS].values)
    mat_eb = util.mm_prod(mat_en, transform.mat_from_rph(trajectory[RPH_COLS].values))
    return _compute_imu(time, r_e, velocity_e, mat_eb)


def _compute_imu(time, r_e, velocity_e, mat_eb):
    readings = np.empty((len(time) - 1, 6))
    for k in range(1, len(time)):
        kinematics = strapdown.estimate_kinematics_ecef(
            time[k] - time[k - 1], mat_eb[k], mat_eb[k - 1],
            velocity_e[k], velocity_e[k - 1], r_e[k])
        readings[k - 1, :3] = kinematics.angular_rate
        readings[k - 1, 3:] = kinematics.specific_force
    return pd.DataFrame(readings, index=pd.Index(time[1:], name='time'),
                        columns=IMU_COLS)


def generate_sine_velocity_motion(dt, total_time, lla0, velocity_mean,
                                  velocity_change_amplitude=0,
                                  velocity_change_period=60,
                                  velocity_change_phase_offset=[0, 90, 0]):
    """Generate trajectory with NED velocity changing as sine.

    The NED velocity changes as::

        V = V_mean + V_ampl * sin(2 * pi * t / period + phase_offset)

    Roll is set to zero, pitch and heading angles are computed with zero
    lateral and vertical velocity assumptions.

    The position is integrated in ECEF with the trapezoid rule such that the
    trajectory is consistent with the strapdown mechanization.

    Parameters
    ----------
    dt : float
        Time step.
    total_time : float
        Total motion time.
    lla0 : array_like, shape (3,)
        Initial latitude, longitude and altitude.
    velocity_mean : array_like, shape (3,)
        Mean velocity resolved in NED.
    velocity_change_amplitude : array_like, optional
        Velocity change amplitude. Default is 0.
    velocity_change_period : float, optional
        Period of sinusoidal velocity change in seconds. Default is 60.
    velocity_change_phase_offset : array_like, shape (3,), optional
        Phase offset for sinusoid part in degrees. Default is [0, 90, 0]
        which will create an ellipse for latitude-longitude trajectory when
        the mean velocity is zero.

    Returns
    -------
    trajectory : Trajectory
        Trajectory dataframe with n rows.
    imu : Imu
        Kinematics dataframe with n - 1 rows.
    """
    time = np.arange(0, total_time, dt)
    phase = (2 * np.pi * time[:, None] / velocity_change_period +
             np.deg2rad(velocity_change_phase_offset))
    velocity_n = (np.atleast_2d(velocity_mean) +
                  np.atleast_2d(velocity_change_amplitude) * np.sin(phase))
    rph = np.zeros_like(velocity_n)
    rph[:, 1] = np.rad2deg(np.arctan2(
        velocity_n[:, 2], np.hypot(velocity_n[:, 0], velocity_n[:, 1])))
    rph[:, 2] = np.rad2deg(np.arctan2(velocity_n[:, 1], velocity_n[:, 0]))
    mat_nb = transform.mat_from_rph(rph)

    n_points = len(time)
    lla = np.empty((n_points, 3))
    r_e = np.empty((n_points, 3))
    velocity_e = np.empty((n_points, 3))
    mat_eb = np.empty((n_points, 3, 3))

    lla[0] = lla0
    r_e[0] = transform.lla_to_ecef(lla0)
    mat_en = transform.mat_en_from_ll(lla[0, 0], lla[0, 1])
    velocity_e[0] = mat_en @ velocity_n[0]
    mat_eb[0] = mat_en @ mat_nb[0]
    for k in range(1, n_points):
        step = time[k] - time[k - 1]
        lla_predicted = transform.ecef_to_lla(r_e[k - 1] + velocity_e[k - 1] * step)
        velocity_e[k] = (transform.mat_en_from_ll(lla_predicted[0], lla_predicted[1])
                         @ velocity_n[k])
        r_e[k] = r_e[k - 1] + 0.5 * (velocity_e[k - 1] + velocity_e[k]) * step
        lla[k] = transform.ecef_to_lla(r_e[k])
        mat_eb[k] = transform.mat_en_from_ll(lla[k, 0], lla[k, 1]) @ mat_nb[k]

    mat_en = transform.mat_en_from_ll(lla[:, 0], lla[:, 1])
    velocity_n = util.mv_prod(mat_en, velocity_e, at=True)
    rph = transform.mat_to_rph(util.mm_prod(mat_en, mat_eb, at=True))

    index = pd.Index(time, name='time')
    trajectory = pd.DataFrame(np.hstack([lla, velocity_n, rph]), index=index,
                              columns=TRAJECTORY_COLS)
    return trajectory, _compute_imu(time, r_e, velocity_e, mat_eb)


def generate_gnss_fixes(trajectory, position_sd, velocity_sd, rng=None):
    """Generate GNSS position-velocity fixes.

    The fixes are computed as true values perturbed by normal random errors
    in ECEF.

    Parameters
    ----------
    trajectory : Trajectory
        Trajectory rows at which the fixes are generated.
    position_sd : float
        Standard deviation of position errors in meters.
    velocity_sd : float
        Standard deviation of velocity errors in m/s.
    rng : None, int or `numpy.random.RandomState`, optional
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.

    Returns
    -------
    list of `pynav.measurements.GnssFix`
        Fixes with accuracies set to `position_sd` and `velocity_sd`.
    """
    rng = check_random_state(rng)
    r_e = transform.lla_to_ecef(trajectory[LLA_COLS].values)
    mat_en = transform.mat_en_from_ll(trajectory['lat'].values,
                                      trajectory['lon'].values)
    velocity_e = util.mv_prod(mat_en, trajectory[VEL_COLS].values)

    r_e = r_e + position_sd * rng.randn(*r_e.shape)
    velocity_e = velocity_e + velocity_sd * rng.randn(*velocity_e.shape)
    return [GnssFix(time, r, v, position_sd, velocity_sd)
            for time, r, v in zip(trajectory.index, r_e, velocity_e)]


def compute_satellite_positions_and_velocities(time, n_satellites=N_SATELLITES,
                                               orbit_radius=ORBIT_RADIUS,
                                               inclination=INCLINATION,
                                               longitude_offset=0, time_offset=0):
    """Compute positions and velocities of satellites on circular orbits.

    Satellites are evenly distributed along orbits in 6 planes.

    Parameters
    ----------
    time : float
        Time in seconds.
    n_satellites : int, optional
        Number of satellites. Default is `N_SATELLITES`.
    orbit_radius : float, optional
        Orbit radius in meters. Default is `ORBIT_RADIUS`.
    inclination : float, optional
        Orbit inclination in degrees. Default is `INCLINATION`.
    longitude_offset : float, optional
        Longitude offset of the constellation in degrees. Default is 0.
    time_offset : float, optional
        Timing offset of the constellation in seconds. Default is 0.

    Returns
    -------
    position_e : ndarray, shape (n_satellites, 3)
        Satellite positions in ECEF.
    velocity_e : ndarray, shape (n_satellites, 3)
        Satellite velocities resolved in ECEF.
    """
    j = np.arange(1, n_satellites + 1)
    omega_is = np.sqrt(earth.MU / orbit_radius ** 3)
    inclination = np.deg2rad(inclination)

    u = 2 * np.pi * (j - 1) / n_satellites + omega_is * (time + time_offset)
    omega = (np.pi * np.mod(j, 6) / 3 + np.deg2rad(longitude_offset)
             - earth.RATE * time)

    r_o = orbit_radius * np.column_stack([np.cos(u), np.sin(u)])
    v_o = orbit_radius * omega_is * np.column_stack([-np.sin(u), np.cos(u)])

    def to_ecef(vec_o):
        return np.column_stack([
            vec_o[:, 0] * np.cos(omega) - vec_o[:, 1] * np.cos(inclination) * np.sin(omega),
            vec_o[:, 0] * np.sin(omega) + vec_o[:, 1] * np.cos(inclination) * np.cos(omega),
            vec_o[:, 1] * np.sin(inclination)
        ])

    position_e = to_ecef(r_o)
    velocity_e = to_ecef(v_o)
    velocity_e[:, 0] += earth.RATE * position_e[:, 1]
    velocity_e[:, 1] -= earth.RATE * position_e[:, 0]
    return position_e, velocity_e


def generate_gnss_ranging(time, r_e, velocity_e, pseudorange_sd, pseudorange_rate_sd,
                          clock_offset=0, clock_drift=0, mask_angle=10,
                          range_bias=None, rng=None, **constellation):
    """Generate pseudorange and pseudorange rate measurements.

    Satellites below the elevation mask are not tracked. The Sagnac effect is
    included in the generated values.

    Parameters
    ----------
    time : float
        Time of the measurements.
    r_e : array_like, shape (3,)
        True user position in ECEF.
    velocity_e : array_like, shape (3,)
        True user velocity resolved in ECEF.
    pseudorange_sd : float
        Standard deviation of pseudorange tracking noise in meters.
    pseudorange_rate_sd : float
        Standard deviation of pseudorange rate tracking noise in m/s.
    clock_offset : float, optional
        Receiver clock offset at time 0 in meters. Default is 0.
    clock_drift : float, optional
        Receiver clock drift in m/s. Default is 0.
    mask_angle : float, optional
        Elevation mask angle in degrees. Default is 10.
    range_bias : array_like, shape (n_satellites,) or None, optional
        Constant pseudorange errors for each satellite. None (default) means zero.
    rng : None, int or `numpy.random.RandomState`, optional
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.
    **constellation
        Passed to `compute_satellite_positions_and_velocities`.

    Returns
    -------
    `pynav.measurements.GnssRanging`
        Measurements from the visible satellites.
    """
    rng = check_random_state(rng)
    r_e = np.asarray(r_e, dtype=float)
    velocity_e = np.asarray(velocity_e, dtype=float)
    satellite_r, satellite_v = compute_satellite_positions_and_velocities(
        time, **constellation)
    if range_bias is None:
        range_bias = np.zeros(len(satellite_r))
    range_bias = np.asarray(range_bias, dtype=float)
    if range_bias.shape != (len(satellite_r),):
        raise InvalidArgumentError("`range_bias` must have one value per satellite")

    lla = transform.ecef_to_lla(r_e)
    mat_en = transform.mat_en_from_ll(lla[0], lla[1])
    omega_ie = util.skew_matrix([0, 0, earth.RATE])

    visible = []
    pseudorange = []
    pseudorange_rate = []
    for i, (r_s, v_s) in enumerate(zip(satellite_r, satellite_v)):
        delta_r = r_s - r_e
        u = delta_r / np.linalg.norm(delta_r)
        elevation = -np.arcsin(mat_en[:, 2] @ u)
        if elevation < np.deg2rad(mask_angle):
            continue

        sagnac = earth.RATE * np.linalg.norm(delta_r) / earth.SPEED_OF_LIGHT
        mat_sagnac = np.array([[1, sagnac, 0],
                               [-sagnac, 1, 0],
                               [0, 0, 1]])
        delta_r = mat_sagnac @ r_s - r_e
        distance = np.linalg.norm(delta_r)
        u = delta_r / distance
        range_rate = u @ (mat_sagnac @ (v_s + omega_ie @ r_s)
                          - (velocity_e + omega_ie @ r_e))

        visible.append(i)
        pseudorange.append(distance + range_bias[i] + clock_offset
                           + clock_drift * time + pseudorange_sd * rng.randn())
        pseudorange_rate.append(range_rate + clock_drift
                                + pseudorange_rate_sd * rng.randn())

    return GnssRanging(time, satellite_r[visible].reshape(-1, 3),
                       satellite_v[visible].reshape(-1, 3), pseudorange,
                       pseudorange_rate, pseudorange_sd, pseudorange_rate_sd)


def generate_pva_error(position_sd, velocity_sd, level_sd, azimuth_sd, rng=None):
    """Generate random position-velocity-attitude error.

    All errors are generated as independent and normally distributed.

    Parameters
    ----------
    position_sd : float
        Position error standard deviation in meters.
    velocity_sd : float
        Velocity error standard deviation in m/s.
    level_sd : float
        Roll and pitch standard deviation in degrees.
    azimuth_sd : float
        Heading standard deviation in degrees.
    rng : None, int or `numpy.random.RandomState`, optional
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.

    Returns
    -------
    PvaError
        Series containing 9 elements with position-velocity-attitude errors.
    """
    rng = check_random_state(rng)
    return pd.Series(np.hstack([position_sd * rng.randn(3),
                                velocity_sd * rng.randn(3),
                                [level_sd, level_sd, azimuth_sd] * rng.randn(3)]),
                     index=TRAJECTORY_ERROR_COLS)


def perturb_pva(pva, pva_error):
    """Apply errors to position-velocity-attitude.

    Parameters
    ----------
    pva : Pva
        Position-velocity-attitude.
    pva_error : PvaError
        Errors of position-velocity-attitude.

    Returns
    -------
    Pva
        Position-velocity-attitude with applied errors.
    """
    result = pva.copy()
    result[LLA_COLS] = transform.perturb_lla(result[LLA_COLS].values,
                                             pva_error[NED_COLS].values)
    result[VEL_COLS] += pva_error[VEL_COLS].values
    result[RPH_COLS] += pva_error[RPH_COLS].values
    return result

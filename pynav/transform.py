"""Coordinate and attitude transformations.

Constants
----------
.. autosummary::
    :toctree: generated

    DEG_TO_RAD
    RAD_TO_DEG
    DH_TO_RS
    DRH_TO_RRS
    ORTHONORMALITY_THRESHOLD

Functions
---------
.. autosummary::
    :toctree: generated

    lla_to_ecef
    ecef_to_lla
    perturb_lla
    compute_lla_difference
    compute_state_difference
    mat_en_from_ll
    mat_from_rph
    mat_to_rph
    verify_rotation_matrix
    quat_from_mat
    quat_to_mat
    quat_inverse
    quat_combine
"""
import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation
from .errors import InvalidArgumentError, InvalidRotationError
from .util import LLA_COLS, RPH_COLS
from . import earth, util

#: Degrees to radians.
DEG_TO_RAD = np.pi / 180
#: Radians to degrees.
RAD_TO_DEG = 1 / DEG_TO_RAD
#: Degrees per hour to radians per second.
DH_TO_RS = DEG_TO_RAD / 3600
#: Degrees per root-hour to radians per root-second.
DRH_TO_RRS = DEG_TO_RAD / 60
#: Maximum deviation of ``mat.T @ mat`` from identity and of the determinant from 1
#: for a matrix to be considered a rotation matrix.
ORTHONORMALITY_THRESHOLD = 1e-6


def lla_to_ecef(lla):
    """Convert latitude, longitude, altitude into ECEF Cartesian coordinates.

    Parameters
    ----------
    lla : array_like, shape (3,) or (n, 3)
        Latitude, longitude and altitude values.

    Returns
    -------
    r_e : ndarray, shape (3,) or (n, 3)
        Cartesian coordinates in ECEF frame.
    """
    lat, lon, alt = np.asarray(lla, dtype=float).T

    sin_lat = np.sin(np.deg2rad(lat))
    cos_lat = np.cos(np.deg2rad(lat))
    sin_lon = np.sin(np.deg2rad(lon))
    cos_lon = np.cos(np.deg2rad(lon))

    _, re, _ = earth.principal_radii(lat, 0)
    r_e = np.empty((3,) + lat.shape)
    r_e[0] = (re + alt) * cos_lat * cos_lon
    r_e[1] = (re + alt) * cos_lat * sin_lon
    r_e[2] = ((1 - earth.E2) * re + alt) * sin_lat

    return r_e.transpose()


def ecef_to_lla(r_e):
    """Convert ECEF Cartesian coordinates into latitude, longitude, altitude.

    Closed form solution by Borkowski is used, see [1]_. The conversion is not
    defined on the polar axis.

    Parameters
    ----------
    r_e : array_like, shape (3,) or (n, 3)
        Cartesian coordinates in ECEF frame.

    Returns
    -------
    lla : ndarray, shape (3,) or (n, 3)
        Latitude, longitude and altitude values.

    References
    ----------
    .. [1] K. M. Borkowski, "Accurate Algorithms to Transform Geocentric to Geodetic
           Coordinates", Bulletin Geodesique 63, 1989
    """
    x, y, z = np.asarray(r_e, dtype=float).T

    lon = np.arctan2(y, x)

    k1 = np.sqrt(1 - earth.E2) * np.abs(z)
    k2 = earth.E2 * earth.A
    beta = np.hypot(x, y)
    E = (k1 - k2) / beta
    F = (k1 + k2) / beta
    P = 4 / 3 * (E * F + 1)
    Q = 2 * (E ** 2 - F ** 2)
    D = P ** 3 + Q ** 2
    V = np.cbrt(np.sqrt(D) - Q) - np.cbrt(np.sqrt(D) + Q)
    G = 0.5 * (np.sqrt(E ** 2 + V) + E)
    T = np.sqrt(G ** 2 + (F - V * G) / (2 * G - E)) - G

    lat = np.sign(z) * np.arctan((1 - T ** 2) / (2 * T * np.sqrt(1 - earth.E2)))
    alt = ((beta - earth.A * T) * np.cos(lat) +
           (z - np.sign(z) * earth.A * np.sqrt(1 - earth.E2)) * np.sin(lat))

    lla = np.empty((3,) + lat.shape)
    lla[0] = np.rad2deg(lat)
    lla[1] = np.rad2deg(lon)
    lla[2] = alt
    return lla.transpose()


def perturb_lla(lla, dr_n):
    """Perturb latitude, longitude and altitude.

    This function recomputes linear displacements in meters to changes in a
    latitude and longitude considering Earth curvature.

    Note that this computation is approximate in nature and makes a good
    sense only if displacements are significantly less than Earth radius.

    Parameters
    ----------
    lla : array_like, shape (3,) or (n, 3)
        Latitude, longitude and altitude.
    dr_n : array_like, shape (3,) or (n, 3)
        Perturbation values in meters resolved in NED frame.

    Returns
    -------
    lla_new : ndarray, shape (3,) or (n, 3)
        Perturbed values of latitude, longitude and altitude.
    """
    lla = np.asarray(lla, dtype=float)
    dr_n = np.asarray(dr_n)
    return_single = lla.ndim == 1 and dr_n.ndim == 1

    lla = np.atleast_2d(lla).copy()
    dr_n = np.atleast_2d(dr_n)

    rn, _, rp = earth.principal_radii(lla[:, 0], lla[:, 2])

    lla[:, 0] += np.rad2deg(dr_n[:, 0] / rn)
    lla[:, 1] += np.rad2deg(dr_n[:, 1] / rp)
    lla[:, 2] -= dr_n[:, 2]

    return lla[0] if return_single else lla


def compute_lla_difference(lla1, lla2):
    """Compute difference between lla points resolved in NED in meters.

    Parameters
    ----------
    lla1, lla2 : array_like
        Points with latitude, longitude and altitude.

    Returns
    -------
    dr_n : ndarray
        Difference in meters resolved in NED.
    """
    lla1 = np.asarray(lla1)
    lla2 = np.asarray(lla2)
    single = lla1.ndim == 1 and lla2.ndim == 1
    lla1 = np.atleast_2d(lla1)
    lla2 = np.atleast_2d(lla2)
    rn, _, rp = earth.principal_radii(0.5 * (lla1[:, 0] + lla2[:, 0]),
                                      0.5 * (lla1[:, 2] + lla2[:, 2]))
    diff = lla1 - lla2
    result = np.empty_like(diff)
    result[:, 0] = np.deg2rad(diff[:, 0]) * rn
    result[:, 1] = np.deg2rad(diff[:, 1]) * rp
    result[:, 2] = -diff[:, 2]
    return result[0] if single else result


def compute_state_difference(first, second):
    """Compute difference between two state data frames indexed by time.

    DataFrames are compared at their common time index only.

    For columns 'lat', 'lon', 'alt', the difference is computed in meters
    resolved in NED frame. For columns 'roll', 'pitch' and 'heading' the difference
    is reduced to [-180, 180] range.

    Parameters
    ----------
    first, second : DataFrame or Series
        State data to compute the difference between.

    Returns
    -------
    DataFrame or Series
        Computed difference.
    """
    if isinstance(first, pd.DataFrame) and isinstance(second, pd.DataFrame):
        index = first.index.intersection(second.index)
        columns = first.columns.intersection(second.columns)
        first = first.loc[index, columns]
        second = second.loc[index, columns]
    elif not (isinstance(first, pd.Series) and isinstance(second, pd.Series)):
        raise InvalidArgumentError("Both inputs must be either DataFrame or Series")

    difference = first - second
    if all(col in difference for col in LLA_COLS):
        dr_n = compute_lla_difference(first[LLA_COLS].values, second[LLA_COLS].values)
        difference['lat'] = dr_n[..., 0]
        difference['lon'] = dr_n[..., 1]
        difference['alt'] = dr_n[..., 2]
        difference = difference.rename(
            {'lat': 'north', 'lon': 'east', 'alt': 'down'},
            axis=1 if isinstance(difference, pd.DataFrame) else 0)

    if all(col in difference for col in RPH_COLS):
        difference[RPH_COLS] = util.to_180_range(difference[RPH_COLS])

    return difference


def mat_en_from_ll(lat, lon):
    """Create a rotation matrix projecting from NED to ECEF frame.

    Parameters
    ----------
    lat, lon : float or array_like, shape (n,)
        Latitude and longitude.

    Returns
    -------
    ndarray, shape (3, 3) or (n, 3, 3)
        Rotation matrices.
    """
    lat = np.asarray(lat)
    lon = np.asarray(lon)

    if lat.ndim == 0 and lon.ndim == 0:
        return Rotation.from_euler('ZY', [lon, -90 - lat], degrees=True).as_matrix()

    lat = np.atleast_1d(lat)
    lon = np.atleast_1d(lon)

    n = max(len(lat), len(lon))
    angles = np.empty((n, 2))
    angles[:, 0] = lon
    angles[:, 1] = -90 - lat
    return Rotation.from_euler('ZY', angles, degrees=True).as_matrix()


def mat_from_rph(rph):
    """Create a rotation matrix from roll, pitch and heading.

    Parameters
    ----------
    rph : array_like, shape (3,) or (n, 3)
        Roll, pitch and heading.

    Returns
    -------
    ndarray, shape (3, 3) or (n, 3, 3)
        Rotation matrices.
    """
    return Rotation.from_euler('xyz', rph, degrees=True).as_matrix()


def mat_to_rph(mat):
    """Convert a rotation matrix to roll, pitch and heading angles.

    Parameters
    ----------
    mat : array_like, shape (3, 3) or (n, 3, 3)
        Rotation matrices.

    Returns
    -------
    ndarray, with shape (3,) or (n, 3)
        Roll, pitch and heading angles.
    """
    return Rotation.from_matrix(mat).as_euler('xyz', degrees=True)


def verify_rotation_matrix(mat, threshold=ORTHONORMALITY_THRESHOLD):
    """Verify that a matrix is a proper rotation matrix.

    Parameters
    ----------
    mat : array_like, shape (3, 3)
        Matrix to verify.
    threshold : float, optional
        Allowed deviation of ``mat.T @ mat`` from identity (element-wise) and of
        the determinant from 1. Default is `ORTHONORMALITY_THRESHOLD`.

    Returns
    -------
    ndarray, shape (3, 3)
        Verified matrix as float array.

    Raises
    ------
    InvalidRotationError
        If the matrix is not orthonormal within `threshold` or contains
        non-finite values.
    """
    mat = np.asarray(mat, dtype=float)
    if mat.shape != (3, 3):
        raise InvalidArgumentError("Rotation matrix must have shape (3, 3)")
    if not np.all(np.isfinite(mat)):
        raise InvalidRotationError("Rotation matrix contains non-finite values")
    if np.max(np.abs(mat.T @ mat - np.eye(3))) > threshold:
        raise InvalidRotationError("Matrix is not orthonormal")
    if abs(np.linalg.det(mat) - 1) > threshold:
        raise InvalidRotationError("Matrix determinant is not 1")
    return mat


def quat_from_mat(mat):
    """Extract a unit quaternion from a rotation matrix.

    Parameters
    ----------
    mat : array_like, shape (3, 3)
        Rotation matrix.

    Returns
    -------
    ndarray, shape (4,)
        Quaternion in scalar-last format.

    Raises
    ------
    InvalidRotationError
        If `mat` is not numerically orthonormal.
    """
    return Rotation.from_matrix(verify_rotation_matrix(mat)).as_quat()


def quat_to_mat(quat):
    """Convert a quaternion in scalar-last format to a rotation matrix."""
    return Rotation.from_quat(quat).as_matrix()


def quat_inverse(quat):
    """Compute inverse of a unit quaternion.

    Under unit norm assumption the inverse is the conjugate.
    """
    quat = np.asarray(quat, dtype=float)
    result = -quat
    result[..., 3] = quat[..., 3]
    return result


def quat_combine(a, b):
    """Combine two rotations represented by quaternions.

    The result represents applying `b` first and then `a`, i.e. it is the
    Hamilton product ``a * b``. The operation is not commutative.

    Parameters
    ----------
    a, b : array_like, shape (4,)
        Quaternions in scalar-last format.

    Returns
    -------
    ndarray, shape (4,)
        Combined quaternion.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    a_vec = a[:3]
    b_vec = b[:3]
    result = np.empty(4)
    result[:3] = a[3] * b_vec + b[3] * a_vec + np.cross(a_vec, b_vec)
    result[3] = a[3] * b[3] - np.dot(a_vec, b_vec)
    return result

"""Earth geometry and gravity models.

This module defines constants and computation models for ellipsoidal Earth using
WGS84 parameters. All definitions and explanations for used models can be found in [1]_.

Constants
---------
.. autosummary::
    :toctree: generated

    RATE
    A
    E2
    MU
    J2
    SPEED_OF_LIGHT

Functions
---------
.. autosummary::
    :toctree: generated/

    principal_radii
    geocentric_radius
    gravity_ecef

References
----------
.. [1] P. D. Groves, "Principles of GNSS, Inertial, and Multisensor Integrated
       Navigation Systems", 2nd edition
"""
import numpy as np


#: Rotation rate of Earth in rad/s.
RATE = 7.292115e-5
#: Semi major axis of Earth ellipsoid.
A = 6378137.0
#: Squared eccentricity of Earth ellipsoid
E2 = 6.6943799901413e-3
#: Earth gravitational constant in m^3/s^2.
MU = 3.986004418e14
#: Second gravitational constant (J2 zonal harmonic).
J2 = 1.082627e-3
#: Speed of light in m/s.
SPEED_OF_LIGHT = 299792458.0


def principal_radii(lat, alt):
    """Compute the principal radii of curvature of Earth ellipsoid.

    Parameters
    ----------
    lat, alt : array_like
        Latitude and altitude.

    Returns
    -------
    rn : float or ndarray
        Principle radius in North direction.
    re : float or ndarray
        Principle radius in East direction.
    rp : float or ndarray
        Radius of cross-section along the parallel.
    """
    sin_lat = np.sin(np.deg2rad(lat))
    cos_lat = np.sqrt(1 - sin_lat**2)

    x = 1 - E2 * sin_lat ** 2
    re = A / np.sqrt(x)
    rn = re * (1 - E2) / x

    return rn + alt, re + alt, (re + alt) * cos_lat


def geocentric_radius(lat):
    """Compute distance from Earth center to the ellipsoid surface.

    Parameters
    ----------
    lat : array_like
        Geodetic latitude.

    Returns
    -------
    float or ndarray
        Geocentric radius at the surface in meters.
    """
    sin_lat = np.sin(np.deg2rad(lat))
    cos_lat = np.cos(np.deg2rad(lat))
    re = A / np.sqrt(1 - E2 * sin_lat ** 2)
    return re * np.sqrt(cos_lat ** 2 + (1 - E2) ** 2 * sin_lat ** 2)


def gravity_ecef(r_e):
    """Compute gravity vector resolved in ECEF frame.

    The gravitational attraction is computed with J2 model of the Earth potential
    and then the centrifugal acceleration due to Earth rotation is added.
    Gravity is zero at the Earth center.

    Parameters
    ----------
    r_e : array_like, shape (3,) or (n, 3)
        Cartesian coordinates in ECEF frame.

    Returns
    -------
    g_e : ndarray, shape (3,) or (n, 3)
        Gravity vectors resolved in ECEF frame.
    """
    r_e = np.asarray(r_e, dtype=float)
    single = r_e.ndim == 1
    r_e = np.atleast_2d(r_e)

    result = np.zeros_like(r_e)
    norm = np.linalg.norm(r_e, axis=1)
    valid = norm > 0
    r = r_e[valid]
    norm = norm[valid, None]

    z_scale = 5 * (r[:, 2:] / norm) ** 2
    gamma = -MU / norm ** 3 * (r + 1.5 * J2 * (A / norm) ** 2 * np.hstack([
        (1 - z_scale) * r[:, :1], (1 - z_scale) * r[:, 1:2], (3 - z_scale) * r[:, 2:]
    ]))
    gamma[:, :2] += RATE ** 2 * r[:, :2]
    result[valid] = gamma

    return result[0] if single else result

r"""pynav: navigation state estimation in Python.

The package converts between spatial frames of reference, derives inertial sensor
kinematics from motion history, propagates navigation state by strapdown
mechanization and fuses it with GNSS measurements in error-state Kalman filters.

Type naming conventions
-----------------------
Tabular data are represented as pandas DataFrame or Series. The same kinds of data
have the same set of columns (or index in case of Series). In this sense we define
the following "types":

    - `Trajectory` - DataFrame containing trajectory with columns 'lat', 'lon',
      'alt', 'VN', 'VE', 'VD', 'roll', 'pitch', 'heading'. These comprise geodetic
      position, velocity resolved in North-East-Down frame and Euler angles for
      the attitude
    - `Pva` - Series representing position-velocity-attitude - a single row of
      `Trajectory`
    - `Imu` - DataFrame containing kinematics with columns 'gyro_x', 'gyro_y',
      'gyro_z', 'accel_x, 'accel_y', 'accel_z' for angular rate and specific force
      averaged over the interval ending at the row time
    - `TrajectoryError` - DataFrame with trajectory errors with columns 'north',
      'east', 'down' for the position error in meters resolved in North-East-Down
      frame, 'VN', 'VE', 'VD' for the errors of North-East-Down velocity components,
      'roll', 'pitch, 'heading' for the Euler angle errors
    - `PvaError` - Series representing errors of position-velocity-attitude - a single
      row of `TrajectoryError`

Single states are represented by `pynav.frames.Frame` objects tagged with
a frame type.

All data are indexed by time in seconds measured by a common clock.

Variable naming convention
--------------------------
Geometric vectors and rotation matrices are associated with frames of reference.
A vector ``vec`` expressed in a frame ``a`` is typically denoted as ``vec_a``.
A rotation matrix projecting from frame ``b`` to frame ``a`` is denoted as ``mat_ab``.

The following one-letter notation for the frames of reference is used:

    - e - Earth-centered Earth-fixed frame (ECEF)
    - i - Earth-centered inertial frame (ECI)
    - n - North-East-Down local horizon frame
    - b - frame associated with IMU axes also known as "body frame"

Refer to [1]_ for detailed definitions of the aforementioned frames.

Units of measurement
--------------------
Generally all parameters are measured in International System of Units.
Gyro readings and associated quantities (noise, bias, etc.) are based on radians
(like rad/s, etc.) Angle parameters (latitude, longitude, roll, pitch, heading) are
measured in degrees. Receiver clock offset and drift are expressed in meters and m/s.

A continuous white noise intensity is expressed as root of power spectral density
(root PSD). Refer to [2]_ for the discussion of continuous white noise process and its
power spectral density.

Modules
-------
.. autosummary::
   :toctree: generated/

   converters
   earth
   errors
   filters
   frames
   inertial_sensor
   kalman
   measurements
   sim
   strapdown
   transform
   util

References
----------
.. [1] P. D. Groves, "Principles of GNSS, Inertial, and Multisensor Integrated
       Navigation Systems", 2nd edition
.. [2] P\. S\. Maybeck, "Stochastic Models, Estimation and Control", volume 1
"""
from . import (converters, earth, errors, filters, frames, inertial_sensor, kalman,
               measurements, sim, strapdown, transform, util)

__version__ = "0.1"

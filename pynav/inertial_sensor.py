"""Description of inertial sensors and receiver clock noise.

Module contains a class to describe noise intensities assumed by navigation filters
and a class to define sensor errors for simulation.

Gyroscopes and accelerometers are treated as independent blocks, that is two
`Parameters` objects are required to describe a full IMU.

Classes
-------
.. autosummary::
    :toctree: generated/

    NoiseModel
    Parameters

Functions
---------
.. autosummary::
    :toctree: generated/

    apply_imu_parameters
"""
import pandas as pd
import numpy as np
from scipy._lib._util import check_random_state
from .errors import InvalidArgumentError
from .transform import DRH_TO_RRS
from .util import GYRO_COLS, ACCEL_COLS, BIAS_COLS


class NoiseModel:
    """Noise intensities used in the navigation filter process model.

    All values are intensities of continuous white noise (root PSD).
    The default values correspond to a tactical grade IMU and a TCXO receiver clock.

    Parameters
    ----------
    gyro_noise : float, optional
        Angular random walk in rad/s/sqrt(Hz).
    accel_noise : float, optional
        Velocity random walk in m/s^2/sqrt(Hz).
    accel_bias_walk : float, optional
        Accelerometer bias random walk in m/s^3/sqrt(Hz).
    gyro_bias_walk : float, optional
        Gyro bias random walk in rad/s^2/sqrt(Hz).
    clock_phase : float, optional
        Receiver clock phase noise in m/s/sqrt(Hz).
    clock_frequency : float, optional
        Receiver clock frequency noise in m/s^2/sqrt(Hz).
    """
    def __init__(self, gyro_noise=0.01 * DRH_TO_RRS, accel_noise=1e-3,
                 accel_bias_walk=3e-4, gyro_bias_walk=1.5e-6,
                 clock_phase=1.0, clock_frequency=1.0):
        for name, value in [('gyro_noise', gyro_noise), ('accel_noise', accel_noise),
                            ('accel_bias_walk', accel_bias_walk),
                            ('gyro_bias_walk', gyro_bias_walk),
                            ('clock_phase', clock_phase),
                            ('clock_frequency', clock_frequency)]:
            if value < 0:
                raise InvalidArgumentError(f"`{name}` must be non-negative")
        self.gyro_noise = gyro_noise
        self.accel_noise = accel_noise
        self.accel_bias_walk = accel_bias_walk
        self.gyro_bias_walk = gyro_bias_walk
        self.clock_phase = clock_phase
        self.clock_frequency = clock_frequency

    def __repr__(self):
        return (f"NoiseModel(gyro_noise={self.gyro_noise}, "
                f"accel_noise={self.accel_noise}, "
                f"accel_bias_walk={self.accel_bias_walk}, "
                f"gyro_bias_walk={self.gyro_bias_walk}, "
                f"clock_phase={self.clock_phase}, "
                f"clock_frequency={self.clock_frequency})")


class Parameters:
    """Parameters of inertial sensor triad (gyros or accelerometers).

    The following basic model is used::

        x_out = x + b + n

    where

        - ``x`` is a true kinematic vector
        - ``x_out`` is a measured vector
        - ``b`` is a bias vector, possibly slowly changing with time
        - ``n`` is a noise vector modeled as white Gaussian random process

    Parameters
    ----------
    bias : array_like, shape (3,) or None, optional
        Bias vector. None (default) corresponds to zero.
    noise : float, array_like of shape (3,) or None, optional
        Intensity of noise (root PSD). None (default) corresponds to zero.
    bias_walk : float, array_like of shape (3,) or None, optional
        Intensity of noise (root PSD) integrated into bias.
        None (default) corresponds to zero.
    rng : None, int or `numpy.random.RandomState`, optional
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.

    Attributes
    ----------
    data_frame : DataFrame or None
        After calling `apply` will contain DataFrame indexed by time with the
        actual bias values.
    """
    def __init__(self, bias=None, noise=None, bias_walk=None, rng=None):
        self.bias = self._verify_parameter(bias, 'bias', False)
        self.noise = self._verify_parameter(noise, 'noise', True)
        self.bias_walk = self._verify_parameter(bias_walk, 'bias_walk', True)
        self.rng = check_random_state(rng)
        self.data_frame = None

    @staticmethod
    def _verify_parameter(parameter, name, allow_float):
        if parameter is None:
            parameter = np.zeros(3)
        else:
            parameter = np.asarray(parameter, dtype=float)
        if allow_float and parameter.ndim == 0:
            parameter = np.resize(parameter, 3)
        if parameter.shape != (3,):
            raise InvalidArgumentError(f"`{name}` is expected to have shape (3,)")
        return parameter

    def apply(self, readings):
        """Apply parameters to the readings.

        The readings are assumed to be average rates over intervals between
        consecutive time stamps.

        Parameters
        ----------
        readings : DataFrame
            Either gyro or accelerometer readings, must contain only 3 columns.

        Returns
        -------
        DataFrame
            Readings after the errors were applied.
        """
        dt = np.hstack([0, np.diff(readings.index)])[:, None]
        bias = self.bias + self.bias_walk * np.cumsum(
            self.rng.randn(*readings.shape) * dt ** 0.5, axis=0)

        if len(dt) > 1:
            dt[0, 0] = dt[1, 0]
        result = readings.values + bias
        result = result + self.noise * dt ** -0.5 * self.rng.randn(*readings.shape)

        self.data_frame = pd.DataFrame(bias, index=readings.index, columns=BIAS_COLS)
        return pd.DataFrame(data=result, index=readings.index, columns=readings.columns)


def apply_imu_parameters(imu, gyro_parameters=None, accel_parameters=None):
    """Apply IMU errors.

    Parameters
    ----------
    imu : Imu
        IMU data.
    gyro_parameters : `Parameters` or None, optional
        Gyro parameters. None (default) calls default constructors.
    accel_parameters : `Parameters` or None, optional
        Accelerometer parameters. None (default) calls default constructor.

    Returns
    -------
    DataFrame
        IMU data after application of the parameters.
    """
    if gyro_parameters is None:
        gyro_parameters = Parameters()
    if accel_parameters is None:
        accel_parameters = Parameters()

    return pd.concat([gyro_parameters.apply(imu[GYRO_COLS]),
                      accel_parameters.apply(imu[ACCEL_COLS])],
                     axis='columns')

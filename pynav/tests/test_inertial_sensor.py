import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose
from pynav import transform
from pynav.errors import InvalidArgumentError
from pynav.inertial_sensor import NoiseModel, Parameters, apply_imu_parameters
from pynav.util import GYRO_COLS, ACCEL_COLS, BIAS_COLS, IMU_COLS


def test_NoiseModel():
    model = NoiseModel()
    assert model.gyro_noise == 0.01 * transform.DRH_TO_RRS
    assert model.accel_noise > 0
    assert model.clock_phase > 0
    assert isinstance(repr(model), str)

    model = NoiseModel(gyro_noise=0, accel_noise=0, accel_bias_walk=0,
                       gyro_bias_walk=0, clock_phase=0, clock_frequency=0)
    assert model.clock_frequency == 0

    with pytest.raises(InvalidArgumentError):
        NoiseModel(accel_noise=-1)
    with pytest.raises(InvalidArgumentError):
        NoiseModel(clock_frequency=-0.1)


def test_Parameters():
    rng = np.random.RandomState(0)
    readings = pd.DataFrame(data=rng.randn(100, 3), index=0.1 * np.arange(100))
    parameters = Parameters(bias=[-0.1, 0.2, 0.3])
    assert_allclose(parameters.apply(readings), readings + [-0.1, 0.2, 0.3],
                    rtol=1e-15)
    assert list(parameters.data_frame.columns) == BIAS_COLS
    assert_allclose(parameters.data_frame, np.tile([-0.1, 0.2, 0.3], (100, 1)))

    parameters = Parameters()
    assert (parameters.apply(readings) == readings).all(axis=None)

    parameters = Parameters(bias_walk=0.1, rng=0)
    readings_with_error = parameters.apply(readings)
    diff = readings - readings_with_error
    n_readings = len(readings)
    assert (diff.iloc[:n_readings // 2].abs().mean() <
            diff.iloc[n_readings // 2:].abs().mean()).all()
    assert_allclose(parameters.data_frame.values, -diff.values, atol=1e-14)

    parameters = Parameters(noise=[0.0, 0.0, 0.1])
    readings_with_error = parameters.apply(readings)
    assert (readings_with_error[[0, 1]] == readings[[0, 1]]).all(axis=None)
    assert (readings_with_error[2] != readings[2]).all()

    with pytest.raises(InvalidArgumentError):
        Parameters(bias=[1, 2])
    with pytest.raises(InvalidArgumentError):
        Parameters(bias=1)
    with pytest.raises(InvalidArgumentError):
        Parameters(noise=[1, 2, 3, 4])


def test_Parameters_noise_level():
    dt = 0.01
    readings = pd.DataFrame(np.zeros((10000, 3)), index=dt * np.arange(10000))
    parameters = Parameters(noise=0.02, rng=1)
    readings_with_error = parameters.apply(readings)
    assert_allclose(readings_with_error.std(), 0.02 / dt ** 0.5, rtol=0.05)


def test_apply_imu_parameters():
    rng = np.random.RandomState(2)
    imu = pd.DataFrame(rng.randn(50, 6), index=pd.Index(0.1 * np.arange(50),
                                                        name='time'),
                       columns=IMU_COLS)
    result = apply_imu_parameters(imu)
    assert list(result.columns) == IMU_COLS
    assert_allclose(result, imu)

    gyro_parameters = Parameters(bias=[0.01, 0, 0])
    accel_parameters = Parameters(bias=[0, 0, -0.5])
    result = apply_imu_parameters(imu, gyro_parameters, accel_parameters)
    assert_allclose(result[GYRO_COLS], imu[GYRO_COLS] + [0.01, 0, 0])
    assert_allclose(result[ACCEL_COLS], imu[ACCEL_COLS] + [0, 0, -0.5])
    assert_allclose(gyro_parameters.data_frame.values[:, 0], 0.01)

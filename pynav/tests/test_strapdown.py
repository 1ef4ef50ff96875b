import numpy as np
import pytest
from numpy.testing import assert_allclose
from pynav import converters, earth, sim, strapdown, transform
from pynav.errors import InvalidArgumentError
from pynav.frames import Frame, FrameType
from pynav.strapdown import Kinematics
from pynav.util import IMU_COLS, NED_COLS, VEL_COLS, RPH_COLS


LAT = 41.3825
LON = 2.176944


def make_frame_old():
    return Frame.from_rph(FrameType.NED, [LAT, LON, 100], [1.5, -2, 0.1],
                          [1, 2, 30])


def test_kinematics():
    kinematics = Kinematics()
    assert_allclose(kinematics.specific_force, 0)
    assert_allclose(kinematics.angular_rate, 0)

    kinematics = Kinematics([1, 2, 3], [-0.1, 0.2, -0.3])
    series = kinematics.to_series(name=1.5)
    assert list(series.index) == IMU_COLS
    assert series.name == 1.5
    assert_allclose(series.values, [-0.1, 0.2, -0.3, 1, 2, 3])
    assert Kinematics.from_series(series).is_close(kinematics)
    assert not Kinematics([1, 2, 3.1], [-0.1, 0.2, -0.3]).is_close(kinematics,
                                                                   atol=1e-3)
    assert isinstance(repr(kinematics), str)

    with pytest.raises(ValueError):
        kinematics.specific_force[0] = 0
    with pytest.raises(InvalidArgumentError):
        Kinematics([1, 2])


def test_round_trip():
    dt = 0.01
    frame_old = make_frame_old()
    kinematics = Kinematics([0.5, -0.3, -9.7], [0.01, -0.02, 0.03])
    frame = strapdown.propagate_frame(frame_old, kinematics, dt)
    assert frame.frame_type == FrameType.NED
    estimated = strapdown.estimate_kinematics(dt, frame, frame_old)
    assert_allclose(estimated.specific_force, kinematics.specific_force, atol=1e-5)
    assert_allclose(estimated.angular_rate, kinematics.angular_rate, atol=1e-9)


def test_round_trip_random():
    rng = np.random.RandomState(1)
    for _ in range(100):
        dt = rng.uniform(0.01, 1)
        lla = [rng.uniform(-80, 80), rng.uniform(-180, 180), rng.uniform(0, 1000)]
        mat_en = transform.mat_en_from_ll(lla[0], lla[1])
        r_e_old = transform.lla_to_ecef(lla)
        velocity_e_old = mat_en @ rng.normal(0, 30, 3)
        velocity_e = velocity_e_old + rng.normal(0, 1, 3)
        r_e = r_e_old + 0.5 * (velocity_e_old + velocity_e) * dt
        mat_eb_old = mat_en @ transform.mat_from_rph(
            [rng.uniform(-30, 30), rng.uniform(-30, 30), rng.uniform(0, 360)])
        mat_eb = mat_eb_old @ transform.mat_from_rph(rng.normal(0, 3, 3))

        frame_old = Frame(FrameType.ECEF, r_e_old, velocity_e_old, mat_eb_old)
        frame = Frame(FrameType.ECEF, r_e, velocity_e, mat_eb)
        kinematics = strapdown.estimate_kinematics(dt, frame, frame_old)
        propagated = strapdown.propagate_frame(frame_old, kinematics, dt)
        assert_allclose(propagated.position, frame.position, rtol=0, atol=1e-5)
        assert_allclose(propagated.velocity, frame.velocity, rtol=0, atol=1e-5)
        assert_allclose(propagated.attitude, frame.attitude, rtol=0, atol=1e-10)


def test_zero_and_negative_dt():
    frame_old = make_frame_old()
    frame = Frame.from_rph(FrameType.NED, [LAT, LON, 101], [1, 2, 3], [3, 2, 1])
    kinematics = strapdown.estimate_kinematics(0, frame, frame_old)
    assert np.all(kinematics.specific_force == 0)
    assert np.all(kinematics.angular_rate == 0)

    kinematics = Kinematics([1, 2, 3], [0.1, 0.2, 0.3])
    assert strapdown.propagate_frame(frame_old, kinematics, 0) is frame_old

    frame_e = converters.ned_to_ecef(frame_old)
    r_e, velocity_e, mat_eb = strapdown.propagate_ecef(
        0, frame_e.position, frame_e.velocity, frame_e.attitude, kinematics)
    assert np.all(r_e == frame_e.position)
    assert np.all(velocity_e == frame_e.velocity)
    assert np.all(mat_eb == frame_e.attitude)

    with pytest.raises(InvalidArgumentError):
        strapdown.estimate_kinematics(-0.01, frame, frame_old)
    with pytest.raises(InvalidArgumentError):
        strapdown.propagate_frame(frame_old, kinematics, -0.01)
    with pytest.raises(InvalidArgumentError):
        strapdown.propagate_ecef(-0.01, frame_e.position, frame_e.velocity,
                                 frame_e.attitude, kinematics)


def test_estimate_kinematics_arguments():
    rng = np.random.RandomState(0)
    dt = 0.02
    time = 1000
    for _ in range(10):
        velocity = rng.uniform(-2, 2, 3)
        rph_old = rng.uniform(-5, 5, 3)
        frame_old = Frame.from_rph(FrameType.NED, [LAT, LON, 0], velocity, rph_old)
        lla = transform.perturb_lla([LAT, LON, 0],
                                    velocity * dt + rng.normal(0, 0.01, 3))
        frame = Frame.from_rph(FrameType.NED, lla, velocity + rng.normal(0, 0.1, 3),
                               rph_old + rng.normal(0, 0.1, 3))

        frame_e = converters.ned_to_ecef(frame)
        frame_old_e = converters.ned_to_ecef(frame_old)
        expected = strapdown.estimate_kinematics_ecef(
            dt, frame_e.attitude, frame_old_e.attitude, frame_e.velocity,
            frame_old_e.velocity, frame_e.position)
        frame_i = converters.to_frame_type(frame, FrameType.ECI, time)
        frame_old_i = converters.to_frame_type(frame_old, FrameType.ECI, time - dt)
        results = [
            strapdown.estimate_kinematics(dt, frame, frame_old),
            strapdown.estimate_kinematics(dt, frame_e, frame_old_e),
            strapdown.estimate_kinematics_ecef(
                dt, frame_e.coordinate_transformation,
                frame_old_e.coordinate_transformation, frame_e.velocity,
                frame_old_e.velocity, frame_e.position),
            strapdown.estimate_kinematics_from_pva(
                dt, converters.frame_to_pva(frame),
                converters.frame_to_pva(frame_old)),
            strapdown.estimate_kinematics(dt, frame_i, frame_old_i, time),
        ]
        for result in results:
            assert_allclose(result.specific_force, expected.specific_force, atol=1e-5)
            assert_allclose(result.angular_rate, expected.angular_rate, atol=1e-5)

    with pytest.raises(InvalidArgumentError):
        strapdown.estimate_kinematics_ecef(
            dt, frame.coordinate_transformation, frame_old_e.attitude,
            frame_e.velocity, frame_old_e.velocity, frame_e.position)
    with pytest.raises(InvalidArgumentError):
        strapdown.estimate_kinematics_ecef(
            dt, np.eye(2), frame_old_e.attitude,
            frame_e.velocity, frame_old_e.velocity, frame_e.position)
    with pytest.raises(InvalidArgumentError):
        strapdown.estimate_kinematics_ecef(
            dt, frame_e.attitude, frame_old_e.attitude,
            frame_e.velocity[:2], frame_old_e.velocity, frame_e.position)


@pytest.mark.parametrize("angle", [strapdown.ALPHA_THRESHOLD,
                                   strapdown.SCALING_THRESHOLD])
def test_thresholds(angle):
    dt = 0.01
    frame_old = converters.ned_to_ecef(make_frame_old())
    direction = np.array([1, -2, 2]) / 3
    for factor in [0.5, 0.999, 1.001, 2]:
        kinematics = Kinematics([0.1, -0.2, -9.8], factor * angle / dt * direction)
        frame = strapdown.propagate_frame(frame_old, kinematics, dt)
        estimated = strapdown.estimate_kinematics(dt, frame, frame_old)
        assert_allclose(estimated.angular_rate, kinematics.angular_rate,
                        rtol=1e-6, atol=1e-11)
        assert_allclose(estimated.specific_force, kinematics.specific_force,
                        atol=1e-6)


def test_stationary():
    dt = 0.1
    trajectory, imu = sim.generate_sine_velocity_motion(dt, 10, [LAT, LON, 0],
                                                        [0, 0, 0])
    assert len(imu) == len(trajectory) - 1
    assert_allclose(trajectory[VEL_COLS], 0, atol=1e-12)

    mat_eb = (transform.mat_en_from_ll(LAT, LON) @
              transform.mat_from_rph(trajectory[RPH_COLS].iloc[0].values))
    assert_allclose(imu[IMU_COLS[:3]].values,
                    np.tile(mat_eb.T @ [0, 0, earth.RATE], (len(imu), 1)),
                    atol=1e-10)

    g_e = earth.gravity_ecef(transform.lla_to_ecef([LAT, LON, 0]))
    assert_allclose(imu[IMU_COLS[3:]].values,
                    np.tile(-mat_eb.T @ g_e, (len(imu), 1)), atol=1e-6)
    assert_allclose(np.linalg.norm(imu[IMU_COLS[3:]].values, axis=1),
                    np.linalg.norm(g_e), rtol=1e-6)


def test_integrator():
    dt = 0.1
    trajectory, imu = sim.generate_sine_velocity_motion(
        dt, 60, [LAT, LON, 50], [10, -5, 0], velocity_change_amplitude=[1, 1, 0])

    integrator = strapdown.Integrator(trajectory.iloc[0])
    assert integrator.get_time() == 0
    result = integrator.integrate(imu.iloc[:200])
    assert len(result) == 201
    result = integrator.integrate(imu.iloc[200:])
    assert len(result) == len(imu) - 199
    assert integrator.get_time() == trajectory.index[-1]
    assert len(integrator.trajectory) == len(trajectory)

    difference = transform.compute_state_difference(integrator.trajectory,
                                                     trajectory)
    assert (difference[NED_COLS].abs() < 0.05).all(axis=None)
    assert (difference[VEL_COLS].abs() < 1e-3).all(axis=None)
    assert (difference[RPH_COLS].abs() < 1e-6).all(axis=None)

    frame = integrator.get_frame()
    assert frame.frame_type == FrameType.ECEF
    pva = converters.frame_to_pva(frame)
    assert_allclose(pva.values, integrator.trajectory.iloc[-1].values)


def test_integrator_predict_and_set_frame():
    dt = 0.1
    trajectory, imu = sim.generate_sine_velocity_motion(
        dt, 5, [LAT, LON, 50], [5, 5, 0])
    integrator = strapdown.Integrator(converters.frame_from_pva(trajectory.iloc[0]),
                                      time=trajectory.index[0])
    integrator.integrate(imu.iloc[:10])

    prediction = integrator.predict(imu.iloc[10])
    assert len(integrator.trajectory) == 11
    integrator.integrate(imu.iloc[10:11])
    assert_allclose(prediction.values, integrator.trajectory.iloc[-1].values)

    frame = converters.frame_from_pva(trajectory.iloc[11])
    integrator.set_frame(frame)
    assert len(integrator.trajectory) == 12
    assert_allclose(integrator.trajectory.iloc[-1, :6], trajectory.iloc[11, :6],
                    atol=1e-4)
    assert integrator.get_frame().is_close(converters.ned_to_ecef(frame), atol=1e-6)

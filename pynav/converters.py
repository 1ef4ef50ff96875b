"""Conversion of frames between frame types.

ECEF and ECI frames coincide at time 0. The ``time`` arguments are seconds
elapsed since that epoch.

Functions
---------
.. autosummary::
    :toctree: generated/

    ned_to_ecef
    ecef_to_ned
    ecef_to_eci
    eci_to_ecef
    to_frame_type
    convert
    frame_from_pva
    frame_to_pva
"""
import numpy as np
import pandas as pd
from .errors import InvalidArgumentError
from .frames import Frame, FrameType
from .util import LLA_COLS, VEL_COLS, RPH_COLS, TRAJECTORY_COLS
from . import earth, transform


def _check_type(frame, frame_type):
    if frame.frame_type != frame_type:
        raise InvalidArgumentError(
            f"Expected {frame_type.name} frame, got {frame.frame_type.name}")


def mat_ie_from_time(time):
    """Create a rotation matrix projecting from ECEF to ECI at a given time."""
    angle = earth.RATE * time
    cos = np.cos(angle)
    sin = np.sin(angle)
    return np.array([[cos, -sin, 0],
                     [sin, cos, 0],
                     [0, 0, 1]])


def ned_to_ecef(frame):
    """Convert NED frame to ECEF frame."""
    _check_type(frame, FrameType.NED)
    lat, lon, _ = frame.position
    mat_en = transform.mat_en_from_ll(lat, lon)
    return Frame(FrameType.ECEF, transform.lla_to_ecef(frame.position),
                 mat_en @ frame.velocity, mat_en @ frame.attitude)


def ecef_to_ned(frame):
    """Convert ECEF frame to NED frame.

    The conversion is not defined on the polar axis.
    """
    _check_type(frame, FrameType.ECEF)
    lla = transform.ecef_to_lla(frame.position)
    mat_en = transform.mat_en_from_ll(lla[0], lla[1])
    return Frame(FrameType.NED, lla, mat_en.T @ frame.velocity,
                 mat_en.T @ frame.attitude)


def ecef_to_eci(frame, time):
    """Convert ECEF frame to ECI frame at a given time.

    Parameters
    ----------
    frame : Frame
        ECEF frame.
    time : float
        Time since coincidence of ECEF and ECI frames.

    Returns
    -------
    Frame
        ECI frame.
    """
    _check_type(frame, FrameType.ECEF)
    mat_ie = mat_ie_from_time(time)
    x, y, _ = frame.position
    velocity_i = mat_ie @ (frame.velocity + earth.RATE * np.array([-y, x, 0]))
    return Frame(FrameType.ECI, mat_ie @ frame.position, velocity_i,
                 mat_ie @ frame.attitude)


def eci_to_ecef(frame, time):
    """Convert ECI frame to ECEF frame at a given time.

    Parameters
    ----------
    frame : Frame
        ECI frame.
    time : float
        Time since coincidence of ECEF and ECI frames.

    Returns
    -------
    Frame
        ECEF frame.
    """
    _check_type(frame, FrameType.ECI)
    mat_ei = mat_ie_from_time(time).T
    x, y, _ = frame.position
    velocity_e = mat_ei @ (frame.velocity - earth.RATE * np.array([-y, x, 0]))
    return Frame(FrameType.ECEF, mat_ei @ frame.position, velocity_e,
                 mat_ei @ frame.attitude)


def to_frame_type(frame, frame_type, time=0):
    """Convert frame to a given frame type.

    Parameters
    ----------
    frame : Frame
        Frame to convert.
    frame_type : FrameType
        Desired frame type.
    time : float, optional
        Time since coincidence of ECEF and ECI frames. Used only when ECI frame
        is involved. Default is 0.

    Returns
    -------
    Frame
        Converted frame. The same object if no conversion is required.
    """
    if frame_type == FrameType.BODY:
        raise InvalidArgumentError("Can't convert to BODY frame type")
    if frame.frame_type == frame_type:
        return frame

    if frame.frame_type == FrameType.NED:
        frame = ned_to_ecef(frame)
    elif frame.frame_type == FrameType.ECI:
        frame = eci_to_ecef(frame, time)

    if frame_type == FrameType.NED:
        return ecef_to_ned(frame)
    if frame_type == FrameType.ECI:
        return ecef_to_eci(frame, time)
    return frame


def convert(current, reference, time=0):
    """Compute pose of a frame relative to a reference frame.

    Both frames are taken to ECEF and the translation is computed as
    a difference of Cartesian positions, i.e. the Earth curvature between the
    frames is neglected.

    Parameters
    ----------
    current, reference : Frame
        Frames of any type.
    time : float, optional
        Time since coincidence of ECEF and ECI frames, required only for ECI
        frames. Default is 0.

    Returns
    -------
    translation : ndarray, shape (3,)
        Position of `current` minus position of `reference` resolved in ECEF.
    quat : ndarray, shape (4,)
        Rotation from the reference body to the current body attitude as a
        quaternion in scalar-last format.
    """
    current = to_frame_type(current, FrameType.ECEF, time)
    reference = to_frame_type(reference, FrameType.ECEF, time)
    translation = current.position - reference.position
    quat = transform.quat_combine(current.as_quat(),
                                  transform.quat_inverse(reference.as_quat()))
    return translation, quat


def frame_from_pva(pva):
    """Create NED frame from position-velocity-attitude.

    Parameters
    ----------
    pva : Pva
        Position-velocity-attitude.

    Returns
    -------
    Frame
        NED frame.
    """
    return Frame.from_rph(FrameType.NED, pva[LLA_COLS], pva[VEL_COLS], pva[RPH_COLS])


def frame_to_pva(frame, time=0, name=None):
    """Create position-velocity-attitude from a frame of any type.

    Parameters
    ----------
    frame : Frame
        Frame to convert.
    time : float, optional
        Time since coincidence of ECEF and ECI frames, used for ECI frames.
    name : hashable, optional
        Name of the returned Series, typically time.

    Returns
    -------
    Pva
        Position-velocity-attitude.
    """
    frame = to_frame_type(frame, FrameType.NED, time)
    return pd.Series(np.hstack([frame.position, frame.velocity,
                                transform.mat_to_rph(frame.attitude)]),
                     index=TRAJECTORY_COLS, name=name)

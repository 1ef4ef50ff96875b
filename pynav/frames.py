"""Frames of reference and coordinate transformations between them.

A `Frame` describes position, velocity and attitude of a body with respect to
one of the supported frames of reference. A `CoordinateTransformation` is a
rotation matrix tagged with its source and destination frame types. Both
are immutable values.

Position and velocity meaning depends on the frame type:

    - ECEF and ECI: Cartesian position in meters and velocity in m/s resolved
      in the frame axes
    - NED: latitude, longitude (in degrees) and altitude in meters,
      velocity resolved in North-East-Down axes

The attitude is always a rotation matrix projecting from the body frame to the
frame of reference (``mat_eb``, ``mat_ib`` or ``mat_nb``).

Classes
-------
.. autosummary::
    :toctree: generated/

    FrameType
    CoordinateTransformation
    Frame
"""
from enum import Enum
import numpy as np
from .errors import InvalidArgumentError, InvalidFrameTypePairError
from .transform import ORTHONORMALITY_THRESHOLD
from . import transform


class FrameType(Enum):
    """Supported frames of reference."""
    ECEF = 'e'
    ECI = 'i'
    NED = 'n'
    BODY = 'b'


#: Pairs (source, destination) allowed for coordinate transformations.
ALLOWED_PAIRS = frozenset([
    (FrameType.BODY, FrameType.ECEF), (FrameType.ECEF, FrameType.BODY),
    (FrameType.BODY, FrameType.NED), (FrameType.NED, FrameType.BODY),
    (FrameType.BODY, FrameType.ECI), (FrameType.ECI, FrameType.BODY),
    (FrameType.ECEF, FrameType.NED), (FrameType.NED, FrameType.ECEF),
    (FrameType.ECEF, FrameType.ECI), (FrameType.ECI, FrameType.ECEF),
])


def verify_frame_type_pair(source, destination):
    """Verify that transformation from `source` to `destination` is allowed.

    Raises
    ------
    InvalidFrameTypePairError
        If the pair is not in `ALLOWED_PAIRS`.
    """
    if (source, destination) not in ALLOWED_PAIRS:
        raise InvalidFrameTypePairError(source, destination)


def _read_only(array, shape, name):
    array = np.array(array, dtype=float)
    if array.shape != shape:
        raise InvalidArgumentError(f"`{name}` must have shape {shape}")
    array.flags.writeable = False
    return array


class CoordinateTransformation:
    """Rotation between two frames of reference.

    The matrix projects vectors resolved in `source` frame to `destination` frame.

    Parameters
    ----------
    matrix : array_like, shape (3, 3)
        Rotation matrix.
    source, destination : FrameType
        Source and destination frame types.

    Raises
    ------
    InvalidFrameTypePairError
        If the pair is not allowed.
    InvalidRotationError
        If `matrix` is not orthonormal.
    """
    __slots__ = ('_matrix', '_source', '_destination')

    def __init__(self, matrix, source, destination):
        verify_frame_type_pair(source, destination)
        self._source = source
        self._destination = destination
        self._matrix = _read_only(transform.verify_rotation_matrix(matrix), (3, 3),
                                  'matrix')

    @property
    def matrix(self):
        """Rotation matrix, read-only."""
        return self._matrix

    @property
    def source(self):
        return self._source

    @property
    def destination(self):
        return self._destination

    def inverse(self):
        """Return transformation in the opposite direction."""
        return CoordinateTransformation(self.matrix.T, self.destination, self.source)

    def as_quat(self):
        """Return the rotation as a quaternion in scalar-last format."""
        return transform.quat_from_mat(self.matrix)

    def __matmul__(self, other):
        """Chain transformations: ``a @ b`` applies `b` first and then `a`."""
        if not isinstance(other, CoordinateTransformation):
            return NotImplemented
        if other.destination != self.source:
            raise InvalidArgumentError(
                f"Can't chain {other.source.name}->{other.destination.name} with "
                f"{self.source.name}->{self.destination.name}")
        return CoordinateTransformation(self.matrix @ other.matrix, other.source,
                                        self.destination)

    def is_close(self, other, atol=0.0):
        """Check equality with given absolute tolerance."""
        return (self.source == other.source and
                self.destination == other.destination and
                np.allclose(self.matrix, other.matrix, rtol=0, atol=atol))

    def __repr__(self):
        return (f"CoordinateTransformation({self.source.name}->"
                f"{self.destination.name}, {self.matrix.tolist()})")


class Frame:
    """Position, velocity and attitude of a body in a frame of reference.

    Parameters
    ----------
    frame_type : FrameType
        Frame of reference. BODY is not allowed.
    position : array_like, shape (3,)
        Cartesian position in meters for ECEF and ECI, latitude, longitude and
        altitude for NED.
    velocity : array_like, shape (3,)
        Velocity resolved in the frame axes.
    attitude : array_like with shape (3, 3) or CoordinateTransformation
        Rotation matrix projecting from body to the frame. A transformation
        object must have BODY source and `frame_type` destination.

    Raises
    ------
    InvalidFrameTypePairError
        If `frame_type` is BODY or attitude transformation has wrong types.
    InvalidRotationError
        If attitude matrix is not orthonormal.
    """
    __slots__ = ('_frame_type', '_position', '_velocity', '_attitude')

    def __init__(self, frame_type, position, velocity, attitude):
        if isinstance(attitude, CoordinateTransformation):
            if (attitude.source != FrameType.BODY or
                    attitude.destination != frame_type):
                raise InvalidFrameTypePairError(attitude.source, frame_type)
            attitude = attitude.matrix
        verify_frame_type_pair(FrameType.BODY, frame_type)

        self._frame_type = frame_type
        self._position = _read_only(position, (3,), 'position')
        self._velocity = _read_only(velocity, (3,), 'velocity')
        self._attitude = _read_only(transform.verify_rotation_matrix(attitude), (3, 3),
                                    'attitude')

    @property
    def frame_type(self):
        return self._frame_type

    @property
    def position(self):
        """Position, read-only."""
        return self._position

    @property
    def velocity(self):
        """Velocity, read-only."""
        return self._velocity

    @property
    def attitude(self):
        """Body to frame rotation matrix, read-only."""
        return self._attitude

    @classmethod
    def from_rph(cls, frame_type, position, velocity, rph):
        """Create frame with attitude given by roll, pitch and heading in degrees."""
        return cls(frame_type, position, velocity, transform.mat_from_rph(rph))

    @property
    def coordinate_transformation(self):
        """Attitude as body to frame `CoordinateTransformation`."""
        return CoordinateTransformation(self.attitude, FrameType.BODY, self.frame_type)

    def as_quat(self):
        """Attitude as a quaternion in scalar-last format."""
        return transform.quat_from_mat(self.attitude)

    def is_close(self, other, atol=0.0):
        """Check equality with given absolute tolerance.

        Note that for NED frames the tolerance applies to latitude and longitude
        in degrees as well.
        """
        return (self.frame_type == other.frame_type and
                np.allclose(self.position, other.position, rtol=0, atol=atol) and
                np.allclose(self.velocity, other.velocity, rtol=0, atol=atol) and
                np.allclose(self.attitude, other.attitude, rtol=0, atol=atol))

    def __repr__(self):
        return (f"Frame({self.frame_type.name}, position={self.position.tolist()}, "
                f"velocity={self.velocity.tolist()})")

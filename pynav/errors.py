"""Exceptions raised by pynav.

Classes
-------
.. autosummary::
    :toctree: generated/

    NavigationError
    InvalidArgumentError
    InvalidFrameTypePairError
    InvalidRotationError
    SingularMatrixError
    FilterStatusError
    NotReadyError
    EpochError
"""
import numpy as np


class NavigationError(Exception):
    """Base class for all pynav errors."""


class InvalidArgumentError(NavigationError, ValueError):
    """Argument value is not allowed (negative time interval, wrong shape, etc.)"""


class InvalidFrameTypePairError(InvalidArgumentError):
    """Transformation between the given pair of frame types is not allowed."""
    def __init__(self, source, destination):
        super(InvalidFrameTypePairError, self).__init__(
            f"Transformation from {source.name} to {destination.name} is not allowed")
        self.source = source
        self.destination = destination


class InvalidRotationError(NavigationError, ValueError):
    """Matrix is not a numerically valid rotation matrix."""


class SingularMatrixError(NavigationError, np.linalg.LinAlgError):
    """Matrix inversion required by Kalman correction failed."""


class FilterStatusError(NavigationError, RuntimeError):
    """Operation is not allowed in the current filter status."""


class NotReadyError(FilterStatusError):
    """Filter is used before initialization."""


class EpochError:
    """Record of a measurement epoch skipped by a filter.

    Parameters
    ----------
    time : float
        Time of the epoch.
    measurement : str
        Name of the measurement class.
    message : str
        Reason why the correction was skipped.
    """
    def __init__(self, time, measurement, message):
        self.time = time
        self.measurement = measurement
        self.message = message

    def __repr__(self):
        return (f"EpochError(time={self.time!r}, measurement={self.measurement!r}, "
                f"message={self.message!r})")

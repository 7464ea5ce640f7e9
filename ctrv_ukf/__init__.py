"""CTRV Unscented Kalman Filter for laser/radar object tracking.

Quick start::

    from ctrv_ukf import Measurement, RmseMeter, UnscentedKalmanFilter

    ukf = UnscentedKalmanFilter()
    meter = RmseMeter()
    for measurement, truth in records:
        ukf.process(measurement)
        meter.update(ukf.cartesian_state(), truth)
"""

from .core import (
    RmseInputWarning,
    RmseToleranceWarning,
    UkfError,
    UkfMathError,
    UkfParameterError,
    UkfWarning,
    UninitializedFilterWarning,
    UnscentedKalmanFilter,
)
from .measurement import Measurement, SensorKind, parse_line, read_measurements
from .rmse import RmseMeter, rmse
from .utils import normalize_angle
from .version import __version__, __version_info__

__all__ = [
    "UnscentedKalmanFilter",
    "Measurement",
    "SensorKind",
    "RmseMeter",
    "rmse",
    "normalize_angle",
    "parse_line",
    "read_measurements",
    "UkfError",
    "UkfParameterError",
    "UkfMathError",
    "UkfWarning",
    "UninitializedFilterWarning",
    "RmseInputWarning",
    "RmseToleranceWarning",
    "__version__",
    "__version_info__",
]

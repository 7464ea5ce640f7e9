"""Geometry and validation helpers for the CTRV filter.

Angles are radians throughout and wrap to the half-open interval
``(-pi, pi]``.
"""

from __future__ import annotations

import math

import numpy as np

TWO_PI = 2.0 * math.pi

# ---------------------------------------------------------------------------
# Angles
# ---------------------------------------------------------------------------


def normalize_angle(angle):
    """Wrap *angle* into ``(-pi, pi]`` in constant time.

    Works on scalars and arrays.  Values already inside the interval are
    returned unchanged, so the operation is idempotent.

    Parameters
    ----------
    angle : float or array_like
        Angle(s) in radians.

    Returns
    -------
    numpy.float64 or numpy.ndarray
        Wrapped angle(s), same shape as the input.

    Examples
    --------
    >>> float(normalize_angle(3 * np.pi / 2))
    -1.5707963267948966
    >>> float(normalize_angle(-np.pi))
    3.141592653589793
    """
    angle = np.asarray(angle, dtype=np.float64)
    wrapped = angle - TWO_PI * np.round(angle / TWO_PI)
    # round() leaves the endpoints on either side depending on ties
    wrapped = np.where(wrapped > np.pi, wrapped - TWO_PI, wrapped)
    wrapped = np.where(wrapped <= -np.pi, wrapped + TWO_PI, wrapped)
    return wrapped[()]


# ---------------------------------------------------------------------------
# Coordinate conversions
# ---------------------------------------------------------------------------


def polar_to_cartesian(rho: float, phi: float, rho_dot: float) -> np.ndarray:
    """Convert a radar reading to ``(px, py, vx, vy)``.

    The velocity is the radial component only; the tangential part is
    unobservable from a single radar return.
    """
    cos_phi = math.cos(phi)
    sin_phi = math.sin(phi)
    return np.array(
        [rho * cos_phi, rho * sin_phi, rho_dot * cos_phi, rho_dot * sin_phi]
    )


def state_to_cartesian(x: np.ndarray) -> np.ndarray:
    """Project a CTRV state ``(px, py, v, yaw, yaw_rate)`` to ``(px, py, vx, vy)``.

    Parameters
    ----------
    x : array_like
        CTRV state vector of length 5.

    Returns
    -------
    numpy.ndarray
        Cartesian position/velocity 4-vector.
    """
    x = validate_vector(x, 5, "state")
    v, yaw = x[2], x[3]
    return np.array([x[0], x[1], v * math.cos(yaw), v * math.sin(yaw)])


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def validate_square(arr: np.ndarray, name: str = "matrix") -> np.ndarray:
    """Ensure *arr* is a square 2-D float64 array.

    Parameters
    ----------
    arr : array_like
        Input to validate.
    name : str
        Human-readable name for error messages.

    Returns
    -------
    numpy.ndarray
        Validated array (may be a new object if dtype conversion occurred).

    Raises
    ------
    ValueError
        If the array is not 2-D or not square.
    """
    arr = np.asarray(arr, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise ValueError(
            f"{name} must be a square 2-D array, got shape {arr.shape}"
        )
    return arr


def validate_vector(arr: np.ndarray, length: int, name: str = "vector") -> np.ndarray:
    """Ensure *arr* is a 1-D float64 array of the given length.

    Parameters
    ----------
    arr : array_like
        Input to validate.
    length : int
        Expected number of elements.
    name : str
        Human-readable name for error messages.

    Returns
    -------
    numpy.ndarray
        Validated 1-D array.

    Raises
    ------
    ValueError
        If shape does not match.
    """
    arr = np.asarray(arr, dtype=np.float64).ravel()
    if arr.shape[0] != length:
        raise ValueError(
            f"{name} must have {length} elements, got {arr.shape[0]}"
        )
    return arr

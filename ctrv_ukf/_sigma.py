"""Low-level sigma-point primitives for the CTRV Unscented Kalman Filter.

This module handles:
- Sigma-point weights for the ``lambda = 3 - n_aug`` spreading rule
- Augmentation of the state with longitudinal / yaw acceleration noise
- Propagation of augmented sigma points through the CTRV motion model
- Laser and radar measurement models
- Weighted mean / covariance / cross-covariance reconstruction

Sigma sets are stored column-wise: column *i* is one sigma point.
Users should prefer the high-level API in ``ctrv_ukf.core`` instead of
using this module directly.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .utils import normalize_angle

# ---------------------------------------------------------------------------
# State layout
# ---------------------------------------------------------------------------

PX, PY, V, YAW, YAW_RATE, NU_A, NU_YAWDD = range(7)

#: Bearing row of a radar measurement sigma set.
PHI = 1

#: Below this yaw rate the CTRV position update uses the straight-line form.
EPS = 1e-5

#: Floor applied to the range before dividing by it in the radar model.
MIN_RANGE = 1e-9


# ---------------------------------------------------------------------------
# Weights and sigma generation
# ---------------------------------------------------------------------------


def spreading(n_aug: int) -> float:
    """Return the spreading parameter ``lambda = 3 - n_aug``."""
    return 3.0 - n_aug


def sigma_weights(n_aug: int, lam: Optional[float] = None) -> np.ndarray:
    """Mean/covariance weights for ``2 * n_aug + 1`` sigma points.

    ``w0 = lam / (lam + n_aug)`` and ``wi = 1 / (2 (lam + n_aug))``.
    They sum to one for any *lam* with ``lam + n_aug != 0``.
    """
    if n_aug < 1:
        raise ValueError(f"n_aug must be positive, got {n_aug}")
    if lam is None:
        lam = spreading(n_aug)
    weights = np.full(2 * n_aug + 1, 0.5 / (lam + n_aug))
    weights[0] = lam / (lam + n_aug)
    return weights


def augmented_sqrt(P: np.ndarray, std_a: float, std_yawdd: float) -> np.ndarray:
    """Lower Cholesky factor of ``blockdiag(P, diag(std_a**2, std_yawdd**2))``.

    The factor of a block-diagonal matrix is the block-diagonal of the
    factors, so the noise block is filled in directly.  This keeps zero
    process noise usable.

    Raises
    ------
    numpy.linalg.LinAlgError
        If *P* is not positive definite.
    """
    n_x = P.shape[0]
    sqrt_aug = np.zeros((n_x + 2, n_x + 2))
    sqrt_aug[:n_x, :n_x] = np.linalg.cholesky(P)
    sqrt_aug[n_x, n_x] = std_a
    sqrt_aug[n_x + 1, n_x + 1] = std_yawdd
    return sqrt_aug


def sigma_points(
    mean: np.ndarray,
    sqrt_cov: np.ndarray,
    lam: float,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Generate the symmetric sigma set around *mean*.

    Column 0 is *mean*; columns ``1..n`` and ``n+1..2n`` are
    ``mean +/- sqrt(lam + n) * sqrt_cov[:, i]``.
    """
    n = mean.shape[0]
    if out is None:
        out = np.empty((n, 2 * n + 1))
    spread = np.sqrt(lam + n) * sqrt_cov
    out[:, 0] = mean
    out[:, 1:n + 1] = mean[:, None] + spread
    out[:, n + 1:] = mean[:, None] - spread
    return out


# ---------------------------------------------------------------------------
# Process model
# ---------------------------------------------------------------------------


def ctrv_predict(
    xsig_aug: np.ndarray,
    dt: float,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Propagate augmented sigma points through the CTRV model.

    Parameters
    ----------
    xsig_aug : numpy.ndarray
        Augmented sigma set, shape ``(7, k)``; rows 5 and 6 carry the
        longitudinal and yaw acceleration noise samples.
    dt : float
        Time step in seconds.
    out : numpy.ndarray, optional
        Destination of shape ``(5, k)``.

    Returns
    -------
    numpy.ndarray
        Predicted sigma set of shape ``(5, k)``.
    """
    px, py, v, yaw, yawd, nu_a, nu_yawdd = xsig_aug
    if out is None:
        out = np.empty((5, xsig_aug.shape[1]))

    turning = np.abs(yawd) > EPS
    safe_yawd = np.where(turning, yawd, 1.0)
    yaw_next = yaw + yawd * dt
    ratio = v / safe_yawd
    px_p = np.where(
        turning,
        px + ratio * (np.sin(yaw_next) - np.sin(yaw)),
        px + v * dt * np.cos(yaw),
    )
    py_p = np.where(
        turning,
        py + ratio * (np.cos(yaw) - np.cos(yaw_next)),
        py + v * dt * np.sin(yaw),
    )

    half_dt2 = 0.5 * dt * dt
    out[PX] = px_p + half_dt2 * nu_a * np.cos(yaw)
    out[PY] = py_p + half_dt2 * nu_a * np.sin(yaw)
    out[V] = v + nu_a * dt
    out[YAW] = yaw_next + half_dt2 * nu_yawdd
    out[YAW_RATE] = yawd + nu_yawdd * dt
    return out


# ---------------------------------------------------------------------------
# Measurement models
# ---------------------------------------------------------------------------


def laser_model(xsig: np.ndarray) -> np.ndarray:
    """Project sigma points to laser space ``(px, py)``."""
    return xsig[PX:PY + 1].copy()


def radar_model(xsig: np.ndarray) -> np.ndarray:
    """Project sigma points to radar space ``(rho, phi, rho_dot)``."""
    px, py, v, yaw = xsig[PX], xsig[PY], xsig[V], xsig[YAW]
    rho = np.hypot(px, py)
    phi = np.arctan2(py, px)
    rho_dot = (px * np.cos(yaw) * v + py * np.sin(yaw) * v) / np.maximum(rho, MIN_RANGE)
    return np.vstack((rho, phi, rho_dot))


# ---------------------------------------------------------------------------
# Moment reconstruction
# ---------------------------------------------------------------------------


def _residuals(sigmas: np.ndarray, mean: np.ndarray, angle_row: Optional[int]) -> np.ndarray:
    diff = sigmas - mean[:, None]
    if angle_row is not None:
        diff[angle_row] = normalize_angle(diff[angle_row])
    return diff


def unscented_moments(
    sigmas: np.ndarray,
    weights: np.ndarray,
    angle_row: Optional[int] = None,
    noise: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Weighted mean and covariance of a sigma set.

    When *angle_row* is given, that component of the mean and of every
    residual is wrapped into ``(-pi, pi]``.  The angular mean is taken
    over wrapped offsets from the central sigma point so that sets
    straddling the +/-pi seam average correctly.  *noise* is added to
    the covariance (the sensor ``R`` for measurement sets).
    """
    mean = sigmas @ weights
    if angle_row is not None:
        ref = sigmas[angle_row, 0]
        offsets = normalize_angle(sigmas[angle_row] - ref)
        mean[angle_row] = normalize_angle(ref + offsets @ weights)
    diff = _residuals(sigmas, mean, angle_row)
    cov = (diff * weights) @ diff.T
    if noise is not None:
        cov += noise
    return mean, cov


def cross_covariance(
    xsig: np.ndarray,
    x_mean: np.ndarray,
    zsig: np.ndarray,
    z_mean: np.ndarray,
    weights: np.ndarray,
    x_angle_row: Optional[int] = YAW,
    z_angle_row: Optional[int] = None,
) -> np.ndarray:
    """Cross-correlation ``T = sum_i w_i (X_i - x)(Z_i - z)^T``."""
    x_diff = _residuals(xsig, x_mean, x_angle_row)
    z_diff = _residuals(zsig, z_mean, z_angle_row)
    return (x_diff * weights) @ z_diff.T

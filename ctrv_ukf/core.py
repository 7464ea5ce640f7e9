"""Unscented Kalman Filter over a Constant Turn Rate and Velocity model.

The state is ``x = (px, py, v, yaw, yaw_rate)``.  Laser readings observe
``(px, py)``; radar readings observe ``(rho, phi, rho_dot)``.

Example
-------
>>> from ctrv_ukf import Measurement, UnscentedKalmanFilter
>>>
>>> ukf = UnscentedKalmanFilter()
>>> ukf.process(Measurement.laser(1_000_000, 1.0, 2.0))
>>> ukf.process(Measurement.radar(1_050_000, 2.24, 1.107, 0.5))
>>> print(ukf.x)
"""

from __future__ import annotations

import logging
import math
import warnings
from contextlib import contextmanager
from typing import Iterator

import numpy as np

from . import _sigma
from .measurement import Measurement, SensorKind
from .utils import (
    normalize_angle,
    polar_to_cartesian,
    state_to_cartesian,
    validate_square,
    validate_vector,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class UkfError(RuntimeError):
    """Base exception for filter errors."""


class UkfParameterError(UkfError, ValueError):
    """Raised for invalid configuration or a violated call precondition."""


class UkfMathError(UkfError):
    """Raised when a step fails numerically (non-PD covariance, singular S)."""


class UkfWarning(UserWarning):
    """Base category for operator-visible warnings."""


class UninitializedFilterWarning(UkfWarning):
    """The belief was read before any measurement seeded it."""


class RmseInputWarning(UkfWarning):
    """The RMSE meter was fed inconsistent or empty input."""


class RmseToleranceWarning(UkfWarning):
    """A running RMSE component exceeded its tolerance."""


@contextmanager
def _numeric(context: str) -> Iterator[None]:
    """Translate linear-algebra failures into :class:`UkfMathError`."""
    try:
        yield
    except np.linalg.LinAlgError as exc:
        raise UkfMathError(f"{context}: {exc}") from exc


def _check_finite(x: np.ndarray, P: np.ndarray, context: str) -> None:
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(P))):
        raise UkfMathError(f"{context}: non-finite state or covariance")


def _noise_std(value: float, name: str, allow_zero: bool = False) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise UkfParameterError(f"{name} must be finite and {bound}, got {value}")
    return value


# ---------------------------------------------------------------------------
# Main class
# ---------------------------------------------------------------------------


class UnscentedKalmanFilter:
    """CTRV Unscented Kalman Filter fusing laser and radar measurements.

    Parameters
    ----------
    use_laser : bool, optional
        If *False*, laser measurements are ignored after initialization.
    use_radar : bool, optional
        If *False*, radar measurements are ignored after initialization.
    std_a : float, optional
        Process noise std of the longitudinal acceleration in m/s^2.
    std_yawdd : float, optional
        Process noise std of the yaw acceleration in rad/s^2.
    std_laspx, std_laspy : float, optional
        Laser noise stds in m.
    std_radr : float, optional
        Radar range noise std in m.
    std_radphi : float, optional
        Radar bearing noise std in rad.
    std_radrd : float, optional
        Radar range-rate noise std in m/s.

    Raises
    ------
    UkfParameterError
        If a noise std is negative or non-finite, or a measurement noise
        std is zero.

    Examples
    --------
    >>> ukf = UnscentedKalmanFilter(use_radar=False, std_a=1.5)
    >>> ukf.is_initialized
    False
    """

    STATE_DIM = 5
    AUG_DIM = 7
    LAMBDA = 3 - AUG_DIM
    EPS = _sigma.EPS

    def __init__(
        self,
        use_laser: bool = True,
        use_radar: bool = True,
        std_a: float = 3.0,
        std_yawdd: float = 0.5,
        std_laspx: float = 0.15,
        std_laspy: float = 0.15,
        std_radr: float = 0.3,
        std_radphi: float = 0.03,
        std_radrd: float = 0.3,
    ) -> None:
        self._use_laser = bool(use_laser)
        self._use_radar = bool(use_radar)
        self._std_a = _noise_std(std_a, "std_a", allow_zero=True)
        self._std_yawdd = _noise_std(std_yawdd, "std_yawdd", allow_zero=True)

        self._R_laser = np.diag(
            [
                _noise_std(std_laspx, "std_laspx") ** 2,
                _noise_std(std_laspy, "std_laspy") ** 2,
            ]
        )
        self._R_radar = np.diag(
            [
                _noise_std(std_radr, "std_radr") ** 2,
                _noise_std(std_radphi, "std_radphi") ** 2,
                _noise_std(std_radrd, "std_radrd") ** 2,
            ]
        )

        n_sigma = 2 * self.AUG_DIM + 1
        self._weights = _sigma.sigma_weights(self.AUG_DIM, self.LAMBDA)
        self._x_aug = np.zeros(self.AUG_DIM)
        self._xsig_aug = np.zeros((self.AUG_DIM, n_sigma))
        self._xsig_pred = np.zeros((self.STATE_DIM, n_sigma))

        self._x = np.zeros(self.STATE_DIM)
        self._P = np.zeros((self.STATE_DIM, self.STATE_DIM))
        self._initialized = False
        self._predicted = False
        self._time_us = None

    # -- Properties ---------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        """Whether a measurement (or an explicit state) has seeded the belief."""
        return self._initialized

    @property
    def timestamp(self):
        """Timestamp in microseconds of the last processed measurement, or *None*."""
        return self._time_us

    @property
    def use_laser(self) -> bool:
        return self._use_laser

    @property
    def use_radar(self) -> bool:
        return self._use_radar

    @property
    def std_a(self) -> float:
        return self._std_a

    @property
    def std_yawdd(self) -> float:
        return self._std_yawdd

    @property
    def R_laser(self) -> np.ndarray:
        """Laser measurement noise covariance (2 x 2)."""
        return self._R_laser.copy()

    @property
    def R_radar(self) -> np.ndarray:
        """Radar measurement noise covariance (3 x 3)."""
        return self._R_radar.copy()

    @property
    def weights(self) -> np.ndarray:
        """Sigma-point weights, length ``2 * AUG_DIM + 1``."""
        return self._weights.copy()

    @property
    def sigma_points_augmented(self) -> np.ndarray:
        """Augmented sigma set from the last prediction (7 x 15)."""
        return self._xsig_aug.copy()

    @property
    def sigma_points_predicted(self) -> np.ndarray:
        """Propagated sigma set from the last prediction (5 x 15)."""
        return self._xsig_pred.copy()

    @property
    def x(self) -> np.ndarray:
        """State estimate ``(px, py, v, yaw, yaw_rate)``.

        Reading it before the filter is seeded warns and returns zeros.
        Setting it marks the filter initialized, with unit covariance if it
        was not seeded yet; yaw is wrapped into ``(-pi, pi]``.
        """
        self._warn_uninitialized("state", stacklevel=3)
        return self._x.copy()

    @x.setter
    def x(self, value: np.ndarray) -> None:
        value = validate_vector(value, self.STATE_DIM, "state")
        self._x = value.copy()
        self._x[_sigma.YAW] = normalize_angle(self._x[_sigma.YAW])
        if not self._initialized:
            self._P = np.eye(self.STATE_DIM)
        self._initialized = True
        self._predicted = False

    @property
    def P(self) -> np.ndarray:
        """State covariance (5 x 5)."""
        self._warn_uninitialized("covariance", stacklevel=3)
        return self._P.copy()

    @P.setter
    def P(self, value: np.ndarray) -> None:
        value = validate_square(value, "P")
        if value.shape[0] != self.STATE_DIM:
            raise UkfParameterError(
                f"P shape {value.shape} does not match state_dim={self.STATE_DIM}"
            )
        self._P = value.copy()
        self._predicted = False

    def state(self) -> np.ndarray:
        """Return a copy of the state estimate."""
        self._warn_uninitialized("state", stacklevel=3)
        return self._x.copy()

    def covariance(self) -> np.ndarray:
        """Return a copy of the state covariance."""
        self._warn_uninitialized("covariance", stacklevel=3)
        return self._P.copy()

    def cartesian_state(self) -> np.ndarray:
        """Current estimate projected to ``(px, py, vx, vy)``."""
        self._warn_uninitialized("state", stacklevel=3)
        return state_to_cartesian(self._x)

    def _warn_uninitialized(self, what: str, stacklevel: int) -> None:
        if not self._initialized:
            warnings.warn(
                f"{what} read before the filter was initialized",
                UninitializedFilterWarning,
                stacklevel=stacklevel,
            )

    # -- Methods ------------------------------------------------------------

    def process(self, measurement: Measurement) -> None:
        """Advance the filter by one measurement.

        The first measurement seeds the belief.  Every later one runs a
        prediction over the elapsed time and, if its sensor is enabled,
        the matching update.

        Parameters
        ----------
        measurement : Measurement
            Laser or radar reading with a microsecond timestamp.

        Raises
        ------
        UkfMathError
            If the covariance stops being positive definite or the
            innovation covariance is singular.
        """
        if not self._initialized:
            self.initialize(measurement)
            return

        if self._time_us is None:
            dt = 0.0
        else:
            dt = (measurement.timestamp - self._time_us) / 1e6
        self.predict(dt)
        self._time_us = measurement.timestamp

        kind = measurement.kind
        if kind is SensorKind.RADAR:
            if self._use_radar:
                self.update_radar(measurement.raw)
            else:
                logger.debug("radar disabled, skipping update at %d", measurement.timestamp)
        elif kind is SensorKind.LASER:
            if self._use_laser:
                self.update_laser(measurement.raw)
            else:
                logger.debug("laser disabled, skipping update at %d", measurement.timestamp)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "%s t=%d dt=%.6f x=%s trace(P)=%.6g",
                kind.name, measurement.timestamp, dt,
                np.array2string(self._x, precision=4), np.trace(self._P),
            )

    def initialize(self, measurement: Measurement) -> "UnscentedKalmanFilter":
        """Seed the belief from *measurement* with unit covariance.

        Radar readings are converted from polar coordinates; the seeded
        speed is the magnitude of the radial velocity.

        Returns
        -------
        UnscentedKalmanFilter
            *self*, for method chaining.
        """
        raw = measurement.raw
        if measurement.kind is SensorKind.RADAR:
            px, py, vx, vy = polar_to_cartesian(raw[0], raw[1], raw[2])
            self._x = np.array([px, py, math.hypot(vx, vy), 0.0, 0.0])
        else:
            self._x = np.array([raw[0], raw[1], 0.0, 0.0, 0.0])
        self._P = np.eye(self.STATE_DIM)
        self._time_us = measurement.timestamp
        self._initialized = True
        self._predicted = False
        logger.info(
            "initialized from %s at t=%d: x=%s",
            measurement.kind.name, measurement.timestamp, self._x,
        )
        return self

    def predict(self, dt: float) -> "UnscentedKalmanFilter":
        """Run the prediction step over *dt* seconds.

        Generates augmented sigma points, propagates them through the
        CTRV model and rebuilds the mean and covariance.

        Returns
        -------
        UnscentedKalmanFilter
            *self*, for method chaining.

        Raises
        ------
        UkfParameterError
            If the filter has not been initialized.
        UkfMathError
            If the covariance is not positive definite.
        """
        if not self._initialized:
            raise UkfParameterError("predict called before the filter was initialized")

        self._predicted = False
        with _numeric("predict"):
            sqrt_aug = _sigma.augmented_sqrt(self._P, self._std_a, self._std_yawdd)
        self._x_aug[:self.STATE_DIM] = self._x
        self._x_aug[self.STATE_DIM:] = 0.0
        _sigma.sigma_points(self._x_aug, sqrt_aug, self.LAMBDA, out=self._xsig_aug)
        _sigma.ctrv_predict(self._xsig_aug, dt, out=self._xsig_pred)

        x, P = _sigma.unscented_moments(
            self._xsig_pred, self._weights, angle_row=_sigma.YAW
        )
        _check_finite(x, P, "predict")
        self._x = x
        self._P = P
        self._predicted = True
        return self

    def update_laser(self, z: np.ndarray) -> "UnscentedKalmanFilter":
        """Correct the predicted belief with a laser reading ``(px, py)``.

        Returns
        -------
        UnscentedKalmanFilter
            *self*, for method chaining.
        """
        z = validate_vector(z, 2, "laser measurement")
        zsig = _sigma.laser_model(self._require_sigma("update_laser"))
        z_pred, S = _sigma.unscented_moments(zsig, self._weights, noise=self._R_laser)
        T = _sigma.cross_covariance(
            self._xsig_pred, self._x, zsig, z_pred, self._weights
        )
        self._correct(T, S, z - z_pred, "update_laser")
        return self

    def update_radar(self, z: np.ndarray) -> "UnscentedKalmanFilter":
        """Correct the predicted belief with a radar reading ``(rho, phi, rho_dot)``.

        The bearing is wrapped in the predicted mean, in every sigma
        residual and in the innovation.

        Returns
        -------
        UnscentedKalmanFilter
            *self*, for method chaining.
        """
        z = validate_vector(z, 3, "radar measurement")
        zsig = _sigma.radar_model(self._require_sigma("update_radar"))
        z_pred, S = _sigma.unscented_moments(
            zsig, self._weights, angle_row=_sigma.PHI, noise=self._R_radar
        )
        T = _sigma.cross_covariance(
            self._xsig_pred, self._x, zsig, z_pred, self._weights,
            z_angle_row=_sigma.PHI,
        )
        innovation = z - z_pred
        innovation[_sigma.PHI] = normalize_angle(innovation[_sigma.PHI])
        self._correct(T, S, innovation, "update_radar")
        return self

    def _require_sigma(self, context: str) -> np.ndarray:
        if not self._predicted:
            raise UkfParameterError(f"{context} requires a preceding predict")
        return self._xsig_pred

    def _correct(self, T: np.ndarray, S: np.ndarray, innovation: np.ndarray, context: str) -> None:
        with _numeric(context):
            # K = T S^-1, with S symmetric
            K = np.linalg.solve(S, T.T).T
        x = self._x + K @ innovation
        x[_sigma.YAW] = normalize_angle(x[_sigma.YAW])
        P = self._P - K @ S @ K.T
        _check_finite(x, P, context)
        self._x = x
        self._P = P
        self._predicted = False

    def reset(self) -> "UnscentedKalmanFilter":
        """Return to the uninitialized state with a zero belief.

        Returns
        -------
        UnscentedKalmanFilter
            *self*, for method chaining.
        """
        self._x = np.zeros(self.STATE_DIM)
        self._P = np.zeros((self.STATE_DIM, self.STATE_DIM))
        self._initialized = False
        self._predicted = False
        self._time_us = None
        return self

    # -- Representation -----------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"UnscentedKalmanFilter(use_laser={self._use_laser}, "
            f"use_radar={self._use_radar}, initialized={self._initialized})"
        )

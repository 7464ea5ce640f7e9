"""Running root-mean-square error between estimates and ground truth.

:class:`RmseMeter` keeps a Kahan-compensated sum of squared residuals so
each update is O(1) and long runs do not drift.  :func:`rmse` is the
plain batch computation over whole sequences.
"""

from __future__ import annotations

import logging
import warnings
from typing import Sequence

import numpy as np

from .core import RmseInputWarning, RmseToleranceWarning, UkfParameterError

logger = logging.getLogger(__name__)

#: Default per-component tolerances for ``(px, py, vx, vy)``.
DEFAULT_TOLERANCES = (0.09, 0.10, 0.40, 0.30)


class RmseMeter:
    """Incremental component-wise RMSE over ``(px, py, vx, vy)`` pairs.

    Parameters
    ----------
    tolerances : sequence of float, optional
        Per-component thresholds.  The first update that pushes any
        component above its threshold emits one
        :class:`~ctrv_ukf.core.RmseToleranceWarning`; the meter warns
        again only after every component has come back under.

    Examples
    --------
    >>> meter = RmseMeter()
    >>> meter.update([1.0, 2.0, 0.5, 0.1], [1.0, 2.0, 0.5, 0.1])
    array([0., 0., 0., 0.])
    """

    def __init__(self, tolerances: Sequence[float] = DEFAULT_TOLERANCES) -> None:
        tolerances = np.asarray(tolerances, dtype=np.float64).ravel()
        if tolerances.shape[0] == 0 or np.any(~(tolerances > 0)):
            raise UkfParameterError(
                f"tolerances must be a non-empty sequence of positive values, got {tolerances}"
            )
        self._tolerances = tolerances
        self.reset()

    @property
    def dim(self) -> int:
        return self._tolerances.shape[0]

    @property
    def tolerances(self) -> np.ndarray:
        return self._tolerances.copy()

    @property
    def count(self) -> int:
        """Number of samples accumulated since the last reset."""
        return self._count

    @property
    def value(self) -> np.ndarray:
        """Most recent RMSE vector (zeros before the first sample)."""
        return self._value.copy()

    def reset(self) -> "RmseMeter":
        """Forget all accumulated samples."""
        n = self.dim
        self._sum = np.zeros(n)
        self._compensation = np.zeros(n)
        self._value = np.zeros(n)
        self._count = 0
        self._breached = False
        return self

    def update(self, estimate: Sequence[float], truth: Sequence[float]) -> np.ndarray:
        """Add one ``(estimate, truth)`` pair and return the running RMSE.

        Inputs of the wrong size, or that yield a non-finite residual,
        are reported with :class:`~ctrv_ukf.core.RmseInputWarning` and
        not counted; the previous value is returned instead.
        """
        estimate = np.asarray(estimate, dtype=np.float64).ravel()
        truth = np.asarray(truth, dtype=np.float64).ravel()
        if estimate.shape != truth.shape or estimate.shape[0] != self.dim:
            warnings.warn(
                f"RMSE input sizes do not match: estimate {estimate.shape[0]}, "
                f"truth {truth.shape[0]}, expected {self.dim}",
                RmseInputWarning,
                stacklevel=2,
            )
            return self._value.copy()

        residual = estimate - truth
        squared = residual * residual
        if not np.all(np.isfinite(squared)):
            warnings.warn(
                f"non-finite RMSE residual {residual}", RmseInputWarning, stacklevel=2
            )
            return self._value.copy()

        # Kahan step: carry the low-order bits lost by the previous add
        compensated = squared + self._compensation
        total = self._sum + compensated
        self._compensation = compensated - (total - self._sum)
        self._sum = total
        self._count += 1

        self._value = np.sqrt(self._sum / self._count)
        self._check_tolerances()
        logger.debug("rmse step %d: %s", self._count, self._value)
        return self._value.copy()

    def _check_tolerances(self) -> None:
        exceeded = self._value > self._tolerances
        if not np.any(exceeded):
            self._breached = False
            return
        if self._breached:
            return
        self._breached = True
        values = ", ".join(f"{v:.4f}" for v in self._value)
        limits = ", ".join(f"{t:.2f}" for t in self._tolerances)
        warnings.warn(
            f"at step {self._count}: rmse = [{values}] exceeds tolerances [{limits}]",
            RmseToleranceWarning,
            stacklevel=3,
        )

    def __repr__(self) -> str:
        return f"RmseMeter(count={self._count}, value={self._value})"


def rmse(estimates: Sequence[Sequence[float]], truths: Sequence[Sequence[float]]) -> np.ndarray:
    """Batch RMSE ``sqrt(mean((estimates - truths) ** 2, axis=0))``.

    Returns zeros (with a warning) for empty or mismatched input.
    """
    estimates = np.asarray(estimates, dtype=np.float64)
    truths = np.asarray(truths, dtype=np.float64)
    if estimates.size == 0 or estimates.shape != truths.shape:
        warnings.warn(
            f"invalid RMSE input: estimates {estimates.shape}, truths {truths.shape}",
            RmseInputWarning,
            stacklevel=2,
        )
        width = estimates.shape[-1] if estimates.ndim > 1 else 0
        return np.zeros(width or len(DEFAULT_TOLERANCES))
    residual = estimates - truths
    return np.sqrt(np.mean(residual * residual, axis=0))

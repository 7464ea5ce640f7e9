"""Synthetic CTRV scenarios with noisy laser and radar readings."""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

import numpy as np

from . import _sigma
from .measurement import Measurement
from .utils import normalize_angle, state_to_cartesian


def ctrv_step(state: np.ndarray, dt: float) -> np.ndarray:
    """Noise-free CTRV propagation of a single state by *dt* seconds."""
    column = np.zeros((7, 1))
    column[:5, 0] = state
    out = _sigma.ctrv_predict(column, dt)[:, 0]
    out[_sigma.YAW] = normalize_angle(out[_sigma.YAW])
    return out


def simulate_ctrv(
    n_steps: int = 200,
    dt: float = 0.05,
    initial_state: Tuple[float, ...] = (5.0, 1.0, 2.0, 0.3, 0.2),
    t0_us: int = 1_000_000,
    std_laser: float = 0.15,
    std_radr: float = 0.3,
    std_radphi: float = 0.03,
    std_radrd: float = 0.3,
    rng: Optional[np.random.Generator] = None,
) -> List[Tuple[Measurement, np.ndarray]]:
    """Drive a target along a constant-turn path and sample it.

    Sensors alternate laser, radar, laser, ...  Readings carry Gaussian
    noise with the given stds; pass zero stds for exact readings.

    Returns
    -------
    list of tuple
        ``(measurement, truth)`` pairs where *truth* is the
        ``(px, py, vx, vy)`` ground truth at the measurement time.
    """
    if rng is None:
        rng = np.random.default_rng()
    step_us = int(round(dt * 1e6))
    state = np.asarray(initial_state, dtype=np.float64).copy()

    records = []
    for k in range(n_steps):
        if k:
            state = ctrv_step(state, dt)
        timestamp = t0_us + k * step_us
        truth = state_to_cartesian(state)
        px, py, vx, vy = truth
        if k % 2 == 0:
            m = Measurement.laser(
                timestamp,
                px + rng.normal(0.0, std_laser),
                py + rng.normal(0.0, std_laser),
            )
        else:
            rho = math.hypot(px, py)
            phi = math.atan2(py, px)
            rho_dot = (px * vx + py * vy) / max(rho, _sigma.MIN_RANGE)
            m = Measurement.radar(
                timestamp,
                rho + rng.normal(0.0, std_radr),
                float(normalize_angle(phi + rng.normal(0.0, std_radphi))),
                rho_dot + rng.normal(0.0, std_radrd),
            )
        records.append((m, truth))
    return records

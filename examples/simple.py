#!/usr/bin/env python3
"""Minimal CTRV UKF example: track a turning target from laser and radar."""

import numpy as np

from ctrv_ukf import RmseMeter, UnscentedKalmanFilter
from ctrv_ukf.simulation import simulate_ctrv

ukf = UnscentedKalmanFilter()
meter = RmseMeter()

rng = np.random.default_rng(42)
for measurement, truth in simulate_ctrv(n_steps=100, rng=rng):
    ukf.process(measurement)
    error = meter.update(ukf.cartesian_state(), truth)

    x = ukf.x
    print(
        f"t={measurement.timestamp / 1e6:6.2f}  "
        f"{measurement.kind.name:5s}  "
        f"px={x[0]:7.3f}  py={x[1]:7.3f}  v={x[2]:6.3f}  "
        f"yaw={x[3]:6.3f}  rmse_px={error[0]:.3f}"
    )

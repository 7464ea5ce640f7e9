#!/usr/bin/env python3
"""Laser/radar object tracking with the CTRV UKF.

Reads a record file (``L``/``R`` lines with ground truth) or simulates a
constant-turn target, then reports the running RMSE.  Optionally
generates a matplotlib plot if matplotlib is installed.

Usage:
    python tracking.py                          # synthetic scenario
    python tracking.py --input data.txt         # recorded measurements
    python tracking.py --no-radar --plot        # laser only, with plot
"""

import argparse
import logging

import numpy as np

from ctrv_ukf import RmseMeter, UnscentedKalmanFilter, read_measurements
from ctrv_ukf.simulation import simulate_ctrv

# ---------------------------------------------------------------------------
# Tracking loop
# ---------------------------------------------------------------------------


def run(records, use_laser=True, use_radar=True, plot=False):
    ukf = UnscentedKalmanFilter(use_laser=use_laser, use_radar=use_radar)
    meter = RmseMeter()

    times, estimates, truths, raw_xy = [], [], [], []
    error = meter.value
    n = len(records)

    for step, (measurement, truth) in enumerate(records):
        ukf.process(measurement)
        estimate = ukf.cartesian_state()
        if truth is not None:
            error = meter.update(estimate, truth)
            truths.append(truth)
        times.append(measurement.timestamp / 1e6)
        estimates.append(estimate)
        raw_xy.append(_raw_position(measurement))

        if n >= 10 and step % (n // 10) == 0:
            print(f"  {step * 100 // n:3d}%  "
                  f"t={times[-1]:.2f}  px={estimate[0]:.3f}  py={estimate[1]:.3f}  "
                  f"rmse={np.array2string(error, precision=3)}")

    print("\nResults:")
    print(f"  Samples graded: {meter.count}")
    print(f"  RMSE (px, py, vx, vy): {np.array2string(meter.value, precision=4)}")
    print(f"  Final P trace: {np.trace(ukf.P):.6f}")

    if plot:
        _plot(np.array(times), np.array(estimates), np.array(truths), np.array(raw_xy))
    return meter.value


def _raw_position(measurement):
    raw = measurement.raw
    if measurement.kind.dim == 2:
        return raw[0], raw[1]
    return raw[0] * np.cos(raw[1]), raw[0] * np.sin(raw[1])


def _plot(times, estimates, truths, raw_xy):
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        print("\nInstall matplotlib for plotting: pip install matplotlib")
        return

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 6))

    ax1.scatter(raw_xy[:, 0], raw_xy[:, 1], c="red", s=8, alpha=0.5,
                label="Measurements", zorder=5)
    if len(truths):
        ax1.plot(truths[:, 0], truths[:, 1], "g-", alpha=0.8, label="Ground truth")
    ax1.plot(estimates[:, 0], estimates[:, 1], "b-", lw=2, label="UKF estimate")
    ax1.set_xlabel("px (m)")
    ax1.set_ylabel("py (m)")
    ax1.set_title("CTRV Tracking with UKF")
    ax1.axis("equal")
    ax1.legend(loc="upper right")
    ax1.grid(True, alpha=0.3)

    if len(truths) == len(estimates):
        error = np.hypot(estimates[:, 0] - truths[:, 0], estimates[:, 1] - truths[:, 1])
        ax2.plot(times, error, "r-", alpha=0.7)
    ax2.set_xlabel("Time (s)")
    ax2.set_ylabel("Position Error (m)")
    ax2.set_title("Tracking Error")
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig("tracking_python.svg", dpi=150)
    print("\nSaved: tracking_python.svg")
    plt.show()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Laser/radar tracking with a CTRV UKF")
    parser.add_argument("--input", help="record file with L/R lines and ground truth")
    parser.add_argument("--steps", type=int, default=400)
    parser.add_argument("--dt", type=float, default=0.05)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--no-laser", action="store_true")
    parser.add_argument("--no-radar", action="store_true")
    parser.add_argument("--plot", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.input:
        records = list(read_measurements(args.input))
    else:
        records = simulate_ctrv(
            n_steps=args.steps, dt=args.dt, rng=np.random.default_rng(args.seed)
        )

    print("CTRV Tracking with UKF (Python)")
    print("=" * 45)
    run(records, use_laser=not args.no_laser, use_radar=not args.no_radar, plot=args.plot)

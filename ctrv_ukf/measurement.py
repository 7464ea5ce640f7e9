"""Sensor measurement value objects and the text record reader.

A record line is whitespace separated::

    L  px   py    timestamp  [gt_px gt_py gt_vx gt_vy ...]
    R  rho  phi   rho_dot    timestamp  [gt_px gt_py gt_vx gt_vy ...]

Timestamps are integer microseconds.  Ground-truth columns past the
fourth (e.g. yaw and yaw rate) are ignored.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple, Union

import numpy as np


class SensorKind(Enum):
    """The two supported sensor modalities, keyed by their record tag."""

    LASER = "L"
    RADAR = "R"

    @property
    def dim(self) -> int:
        """Length of the raw measurement vector."""
        return 2 if self is SensorKind.LASER else 3


@dataclass(frozen=True, eq=False)
class Measurement:
    """One timestamped sensor reading.

    Attributes
    ----------
    kind : SensorKind
        Which sensor produced the reading.
    timestamp : int
        Microseconds, monotonically increasing across a stream.
    raw : numpy.ndarray
        ``(px, py)`` for laser or ``(rho, phi, rho_dot)`` for radar.
        Stored read-only.
    """

    kind: SensorKind
    timestamp: int
    raw: np.ndarray

    def __post_init__(self) -> None:
        kind = SensorKind(self.kind)
        raw = np.array(self.raw, dtype=np.float64).ravel()
        if raw.shape[0] != kind.dim:
            raise ValueError(
                f"{kind.name} measurement must have {kind.dim} elements, "
                f"got {raw.shape[0]}"
            )
        timestamp = int(self.timestamp)
        if timestamp < 0:
            raise ValueError(f"timestamp must be non-negative, got {timestamp}")
        raw.setflags(write=False)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "timestamp", timestamp)
        object.__setattr__(self, "raw", raw)

    @classmethod
    def laser(cls, timestamp: int, px: float, py: float) -> "Measurement":
        return cls(SensorKind.LASER, timestamp, np.array([px, py]))

    @classmethod
    def radar(cls, timestamp: int, rho: float, phi: float, rho_dot: float) -> "Measurement":
        return cls(SensorKind.RADAR, timestamp, np.array([rho, phi, rho_dot]))

    def __repr__(self) -> str:
        values = ", ".join(f"{v:.6g}" for v in self.raw)
        return f"Measurement({self.kind.name}, t={self.timestamp}, raw=[{values}])"


def parse_line(line: str) -> Tuple[Measurement, Optional[np.ndarray]]:
    """Parse one record line.

    Returns
    -------
    tuple
        ``(measurement, truth)`` where *truth* is the ``(px, py, vx, vy)``
        ground truth, or *None* when the line carries none.

    Raises
    ------
    ValueError
        On an unknown sensor tag or a malformed line.
    """
    fields = line.split()
    if not fields:
        raise ValueError("empty measurement line")
    try:
        kind = SensorKind(fields[0])
    except ValueError:
        raise ValueError(f"unknown sensor tag {fields[0]!r}") from None

    n = kind.dim
    if len(fields) < n + 2:
        raise ValueError(f"truncated {kind.name} line: {line.strip()!r}")
    raw = np.array([float(v) for v in fields[1:n + 1]])
    timestamp = int(fields[n + 1])

    truth = None
    gt = fields[n + 2:n + 6]
    if gt:
        if len(gt) != 4:
            raise ValueError(f"ground truth needs 4 values, got {len(gt)}")
        truth = np.array([float(v) for v in gt])
    return Measurement(kind, timestamp, raw), truth


def read_measurements(
    path: Union[str, os.PathLike],
) -> Iterator[Tuple[Measurement, Optional[np.ndarray]]]:
    """Yield ``(measurement, truth)`` pairs from a record file, skipping blank lines."""
    with open(path, "r") as fh:
        for line in fh:
            if line.strip():
                yield parse_line(line)

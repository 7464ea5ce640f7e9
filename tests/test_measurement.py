"""Tests for measurement value objects and record parsing."""

import dataclasses

import numpy as np
import pytest

from ctrv_ukf import Measurement, SensorKind, parse_line, read_measurements


class TestMeasurement:
    def test_laser_constructor(self):
        m = Measurement.laser(1_000_000, 1.0, 2.0)
        assert m.kind is SensorKind.LASER
        assert m.timestamp == 1_000_000
        np.testing.assert_array_equal(m.raw, [1.0, 2.0])

    def test_radar_constructor(self):
        m = Measurement.radar(5, 5.0, 0.1, -2.0)
        assert m.kind is SensorKind.RADAR
        np.testing.assert_array_equal(m.raw, [5.0, 0.1, -2.0])

    def test_kind_from_tag(self):
        m = Measurement("R", 0, [1.0, 0.0, 0.0])
        assert m.kind is SensorKind.RADAR

    def test_dimensions(self):
        assert SensorKind.LASER.dim == 2
        assert SensorKind.RADAR.dim == 3

    @pytest.mark.parametrize(
        "kind, raw",
        [(SensorKind.LASER, [1.0, 2.0, 3.0]), (SensorKind.RADAR, [1.0, 2.0])],
    )
    def test_wrong_length(self, kind, raw):
        with pytest.raises(ValueError, match="elements"):
            Measurement(kind, 0, raw)

    @pytest.mark.parametrize("timestamp", [-1, -1_000_000])
    def test_negative_timestamp(self, timestamp):
        with pytest.raises(ValueError, match="non-negative"):
            Measurement.laser(timestamp, 1.0, 2.0)

    def test_zero_timestamp_allowed(self):
        assert Measurement.radar(0, 1.0, 0.0, 0.0).timestamp == 0

    def test_raw_is_read_only(self):
        m = Measurement.laser(0, 1.0, 2.0)
        with pytest.raises(ValueError):
            m.raw[0] = 5.0

    def test_raw_is_copied(self):
        source = np.array([1.0, 2.0])
        m = Measurement(SensorKind.LASER, 0, source)
        source[0] = 9.0
        assert m.raw[0] == 1.0

    def test_frozen(self):
        m = Measurement.laser(0, 1.0, 2.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            m.timestamp = 10

    def test_repr(self):
        r = repr(Measurement.radar(42, 1.5, 0.25, 0.0))
        assert "RADAR" in r
        assert "t=42" in r


class TestParseLine:
    def test_laser_with_truth(self):
        m, truth = parse_line("L\t3.12\t0.61\t1477010443050000\t3.11\t0.6\t5.2\t0.0\t0.0\t0.006\n")
        assert m.kind is SensorKind.LASER
        assert m.timestamp == 1477010443050000
        np.testing.assert_allclose(m.raw, [3.12, 0.61])
        np.testing.assert_allclose(truth, [3.11, 0.6, 5.2, 0.0])

    def test_radar_with_truth(self):
        m, truth = parse_line("R 1.01 0.55 2.0 1477010443000000 0.6 0.6 5.2 0.001")
        assert m.kind is SensorKind.RADAR
        np.testing.assert_allclose(m.raw, [1.01, 0.55, 2.0])
        assert m.timestamp == 1477010443000000
        np.testing.assert_allclose(truth, [0.6, 0.6, 5.2, 0.001])

    def test_without_truth(self):
        m, truth = parse_line("L 1 2 100")
        assert truth is None
        assert m.timestamp == 100

    def test_unknown_tag(self):
        with pytest.raises(ValueError, match="unknown sensor"):
            parse_line("X 1 2 3")

    def test_truncated(self):
        with pytest.raises(ValueError, match="truncated"):
            parse_line("R 1 2 3")

    def test_partial_truth(self):
        with pytest.raises(ValueError, match="ground truth"):
            parse_line("L 1 2 100 0.5 0.5")

    def test_empty(self):
        with pytest.raises(ValueError):
            parse_line("   ")


class TestReadMeasurements:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "data.txt"
        path.write_text(
            "L 1.0 2.0 1000000 1.0 2.0 0.0 0.0\n"
            "\n"
            "R 2.2 1.1 0.5 1050000 1.0 2.0 0.0 0.0\n"
        )
        records = list(read_measurements(path))
        assert [m.kind for m, _ in records] == [SensorKind.LASER, SensorKind.RADAR]
        assert records[1][0].timestamp == 1_050_000

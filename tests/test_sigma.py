"""Tests for the sigma-point primitives."""

import math

import numpy as np
import pytest

from ctrv_ukf import _sigma


def _random_spd(rng, n):
    a = rng.standard_normal((n, n))
    return a @ a.T + 0.1 * np.eye(n)


class TestWeights:
    @pytest.mark.parametrize("n_aug", range(1, 11))
    def test_weights_sum_to_one(self, n_aug):
        w = _sigma.sigma_weights(n_aug)
        assert w.shape == (2 * n_aug + 1,)
        assert abs(w.sum() - 1.0) < 1e-12

    def test_explicit_lambda(self):
        w = _sigma.sigma_weights(2, lam=1.0)
        assert w[0] == pytest.approx(1.0 / 3.0)
        np.testing.assert_allclose(w[1:], 1.0 / 6.0)

    def test_invalid_dimension(self):
        with pytest.raises(ValueError):
            _sigma.sigma_weights(0)


class TestSigmaGeneration:
    def test_column_layout(self):
        mean = np.array([1.0, 2.0])
        sqrt_cov = np.diag([0.5, 2.0])
        sig = _sigma.sigma_points(mean, sqrt_cov, lam=1.0)
        assert sig.shape == (2, 5)
        np.testing.assert_array_equal(sig[:, 0], mean)
        spread = math.sqrt(3.0)
        np.testing.assert_allclose(sig[:, 1], [1.0 + 0.5 * spread, 2.0])
        np.testing.assert_allclose(sig[:, 4], [1.0, 2.0 - 2.0 * spread])

    def test_writes_into_out(self):
        out = np.empty((7, 15))
        result = _sigma.sigma_points(np.zeros(7), np.eye(7), -4.0, out=out)
        assert result is out

    def test_augmented_sqrt_block_structure(self):
        rng = np.random.default_rng(7)
        P = _random_spd(rng, 5)
        L = _sigma.augmented_sqrt(P, 3.0, 0.5)
        expected = np.zeros((7, 7))
        expected[:5, :5] = P
        expected[5, 5] = 9.0
        expected[6, 6] = 0.25
        np.testing.assert_allclose(L @ L.T, expected, atol=1e-12)
        np.testing.assert_array_equal(np.triu(L, 1), np.zeros((7, 7)))

    def test_augmented_sqrt_zero_noise(self):
        L = _sigma.augmented_sqrt(np.eye(5), 0.0, 0.0)
        assert L[5, 5] == 0.0 and L[6, 6] == 0.0

    def test_augmented_sqrt_rejects_indefinite(self):
        with pytest.raises(np.linalg.LinAlgError):
            _sigma.augmented_sqrt(-np.eye(5), 1.0, 1.0)

    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_reconstruction_identity(self, seed):
        rng = np.random.default_rng(seed)
        n_aug = 7
        x_aug = rng.standard_normal(n_aug)
        P_aug = _random_spd(rng, n_aug)
        lam = _sigma.spreading(n_aug)
        w = _sigma.sigma_weights(n_aug)

        sig = _sigma.sigma_points(x_aug, np.linalg.cholesky(P_aug), lam)
        mean, cov = _sigma.unscented_moments(sig, w)

        np.testing.assert_allclose(sig @ w, x_aug, atol=1e-10)
        np.testing.assert_allclose(mean, x_aug, atol=1e-10)
        np.testing.assert_allclose(cov, P_aug, atol=1e-8)


class TestCtrvModel:
    @staticmethod
    def _column(px, py, v, yaw, yawd, nu_a=0.0, nu_yawdd=0.0):
        return np.array([[px], [py], [v], [yaw], [yawd], [nu_a], [nu_yawdd]])

    def test_straight_line(self):
        out = _sigma.ctrv_predict(self._column(1.0, 2.0, 2.0, math.pi / 2, 0.0), 0.5)
        np.testing.assert_allclose(out[:, 0], [1.0, 3.0, 2.0, math.pi / 2, 0.0], atol=1e-12)

    def test_quarter_turn(self):
        # v = 1, yaw rate pi/2 for 1 s traces a quarter circle of radius 2/pi
        r = 2.0 / math.pi
        out = _sigma.ctrv_predict(self._column(0.0, 0.0, 1.0, 0.0, math.pi / 2), 1.0)
        np.testing.assert_allclose(out[:, 0], [r, r, 1.0, math.pi / 2, math.pi / 2], atol=1e-12)

    def test_noise_terms(self):
        dt = 0.2
        out = _sigma.ctrv_predict(self._column(0.0, 0.0, 1.0, 0.0, 0.0, 2.0, 3.0), dt)
        expected = [
            1.0 * dt + 0.5 * 2.0 * dt ** 2,
            0.0,
            1.0 + 2.0 * dt,
            0.5 * 3.0 * dt ** 2,
            3.0 * dt,
        ]
        np.testing.assert_allclose(out[:, 0], expected, atol=1e-12)

    @pytest.mark.parametrize("dt", [0.01, 0.05, 0.1])
    @pytest.mark.parametrize("v", [0.5, 2.0, 5.0])
    @pytest.mark.parametrize("yaw", [-2.5, 0.0, 1.2])
    def test_straight_line_limit(self, dt, v, yaw):
        yawd = 2.0 * _sigma.EPS
        out = _sigma.ctrv_predict(self._column(1.0, -1.0, v, yaw, yawd), dt)
        assert abs(out[0, 0] - (1.0 + v * dt * math.cos(yaw))) < 1e-6
        assert abs(out[1, 0] - (-1.0 + v * dt * math.sin(yaw))) < 1e-6

    def test_continuous_across_threshold(self):
        above = _sigma.ctrv_predict(self._column(0.0, 0.0, 1.0, 0.3, 1.01 * _sigma.EPS), 0.1)
        below = _sigma.ctrv_predict(self._column(0.0, 0.0, 1.0, 0.3, 0.99 * _sigma.EPS), 0.1)
        np.testing.assert_allclose(above, below, atol=1e-6)

    def test_vectorized_over_columns(self):
        rng = np.random.default_rng(3)
        xsig = rng.standard_normal((7, 15))
        out = _sigma.ctrv_predict(xsig, 0.1)
        for i in range(15):
            single = _sigma.ctrv_predict(xsig[:, i:i + 1], 0.1)
            np.testing.assert_allclose(out[:, i], single[:, 0], atol=1e-12)


class TestMeasurementModels:
    def test_laser_model(self):
        xsig = np.arange(10.0).reshape(5, 2)
        np.testing.assert_array_equal(_sigma.laser_model(xsig), xsig[:2])

    def test_radar_model(self):
        heading = math.atan2(4.0, 3.0)
        xsig = np.array([[3.0], [4.0], [5.0], [heading], [0.0]])
        z = _sigma.radar_model(xsig)[:, 0]
        np.testing.assert_allclose(z, [5.0, heading, 5.0], atol=1e-12)

    def test_radar_model_at_origin_is_finite(self):
        z = _sigma.radar_model(np.array([[0.0], [0.0], [1.0], [0.5], [0.0]]))
        assert np.all(np.isfinite(z))


class TestMoments:
    def test_angle_mean_across_seam(self):
        angles = np.array([[math.pi - 0.1, math.pi + 0.3]])
        mean, cov = _sigma.unscented_moments(angles, np.array([0.5, 0.5]), angle_row=0)
        assert mean[0] == pytest.approx(-math.pi + 0.1, abs=1e-12)
        assert cov[0, 0] == pytest.approx(0.04, abs=1e-12)

    def test_wrapped_bearings_average_near_pi(self):
        angles = np.array([[math.pi - 0.01, -math.pi + 0.01, math.pi - 0.03]])
        w = np.array([-1.0, 1.0, 1.0])
        mean, _ = _sigma.unscented_moments(angles, w, angle_row=0)
        assert abs(abs(mean[0]) - math.pi) < 0.1

    def test_noise_added(self):
        sig = np.zeros((2, 3))
        _, cov = _sigma.unscented_moments(sig, np.full(3, 1 / 3), noise=np.eye(2))
        np.testing.assert_array_equal(cov, np.eye(2))

    def test_cross_covariance(self):
        xsig = np.array([[0.0, 1.0, -1.0]] * 5)
        zsig = np.array([[0.0, 2.0, -2.0]])
        w = np.array([0.0, 0.5, 0.5])
        T = _sigma.cross_covariance(xsig, np.zeros(5), zsig, np.zeros(1), w)
        np.testing.assert_allclose(T, np.full((5, 1), 2.0))

"""
线性卡尔曼滤波器测试 / Linear Kalman Filter Tests
================================================

Construction checks, belief management and the shared measurement update.
"""

import pytest
import jax
import jax.numpy as jnp
import numpy as np

from ekfjax.core import MvNormal, InnovationCovarianceError
from ekfjax.filters import KalmanFilter, kalman_correction
from ekfjax.filters import kalman as kalman_module

jax.config.update('jax_enable_x64', True)


@pytest.fixture
def linear_filter() -> KalmanFilter:
    """二维常速度模型 / 2-D constant velocity model"""
    A = jnp.array([[1.0, 0.1], [0.0, 1.0]])
    B = jnp.array([[0.0], [0.1]])
    C = jnp.array([[1.0, 0.0]])
    D = jnp.zeros((1, 1))
    R1 = 0.01 * jnp.eye(2)
    R2 = jnp.array([[0.1]])
    d0 = MvNormal(jnp.array([0.0, 1.0]), jnp.eye(2))
    return KalmanFilter(A, B, C, D, R1, R2, d0, Ts=0.1)


class TestConstruction:
    """测试构造检查 / Test construction checks"""

    def test_dimensions(self, linear_filter):
        assert (linear_filter.nx, linear_filter.nu, linear_filter.ny) == (2, 1, 1)
        assert linear_filter.index() == 0
        assert jnp.array_equal(linear_filter.state(), jnp.array([0.0, 1.0]))
        assert jnp.array_equal(linear_filter.covariance(), jnp.eye(2))

    def test_default_prior(self):
        R1 = 0.5 * jnp.eye(2)
        kf = KalmanFilter(jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.zeros((2, 1)), R1, jnp.eye(2))
        assert jnp.array_equal(kf.x, jnp.zeros(2))
        assert jnp.array_equal(kf.R, R1)

    def test_vector_input_matrix(self):
        kf = KalmanFilter(jnp.eye(2), jnp.array([0.0, 1.0]), jnp.eye(2), jnp.zeros(2), jnp.eye(2), jnp.eye(2))
        assert kf.B.shape == (2, 1)
        assert kf.nu == 1

    def test_asymmetric_noise(self):
        R1 = jnp.array([[1.0, 0.2], [0.0, 1.0]])
        with pytest.raises(ValueError, match="R1 must be symmetric"):
            KalmanFilter(jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.zeros((2, 1)), R1, jnp.eye(2))

    def test_noise_shape(self):
        with pytest.raises(ValueError, match="R2"):
            KalmanFilter(jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.eye(3), ny=2)

    def test_prior_dimension(self):
        d0 = MvNormal(jnp.zeros(3), jnp.eye(3))
        with pytest.raises(ValueError, match="prior"):
            KalmanFilter(jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.eye(2), d0)

    def test_measurement_matrix_shape(self):
        with pytest.raises(ValueError, match="C must have shape"):
            KalmanFilter(jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(3), jnp.zeros((2, 1)), jnp.eye(2), jnp.eye(2))

    def test_check_disabled(self):
        R1 = jnp.array([[1.0, 0.2], [0.0, 1.0]])
        kf = KalmanFilter(jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.zeros((2, 1)), R1, jnp.eye(2), check=False)
        assert kf.nx == 2

    def test_callable_noise_requires_prior(self):
        def R1(x, u, p, t):
            return jnp.eye(2)
        with pytest.raises(ValueError, match="d0"):
            KalmanFilter(jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.zeros((2, 1)), R1, jnp.eye(2))

    def test_continuous_time_warning(self, monkeypatch):
        """大特征值警告 / Large eigenvalues log a warning"""
        messages = []
        monkeypatch.setattr(kalman_module.logger, "warning", lambda msg, *a, **k: messages.append(msg))
        KalmanFilter(-3.0 * jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.eye(2))
        assert len(messages) == 1
        assert "discrete-time" in messages[0]

    def test_no_warning_for_stable_model(self, monkeypatch, linear_filter):
        messages = []
        monkeypatch.setattr(kalman_module.logger, "warning", lambda msg, *a, **k: messages.append(msg))
        KalmanFilter(0.9 * jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.zeros((2, 1)), jnp.eye(2), jnp.eye(2))
        assert messages == []


class TestLinearFiltering:
    """测试线性滤波 / Test linear filtering"""

    def test_predict(self, linear_filter):
        kf = linear_filter
        x0, R0 = kf.x, kf.R
        kf.predict(jnp.array([2.0]))
        assert jnp.allclose(kf.x, kf.A @ x0 + kf.B @ jnp.array([2.0]))
        assert jnp.allclose(kf.R, kf.A @ R0 @ kf.A.T + kf.R1)
        assert jnp.array_equal(kf.R, kf.R.T)
        assert kf.index() == 1

    def test_predict_inflation(self, linear_filter):
        kf = linear_filter
        R0 = kf.R
        kf.predict(alpha=1.5)
        assert jnp.allclose(kf.R, 1.5 * kf.A @ R0 @ kf.A.T + kf.R1)

    def test_correct_closed_form(self, linear_filter):
        kf = linear_filter
        x0, R0 = kf.x, kf.R
        y = jnp.array([0.4])
        result = kf.correct(jnp.zeros(1), y)

        S = kf.C @ R0 @ kf.C.T + kf.R2
        K = R0 @ kf.C.T @ jnp.linalg.inv(S)
        assert jnp.allclose(result.S, S)
        assert jnp.allclose(result.K, K)
        assert jnp.allclose(kf.x, x0 + K @ (y - kf.C @ x0))
        assert jnp.allclose(kf.R, (jnp.eye(2) - K @ kf.C) @ R0)
        assert jnp.allclose(result.Sc @ result.Sc.T, S)
        assert kf.index() == 0

    def test_update(self, linear_filter):
        kf = linear_filter
        result = kf.update(jnp.array([1.0]), jnp.array([0.2]))
        assert kf.index() == 1
        assert jnp.isfinite(result.ll)

    def test_reset(self, linear_filter):
        kf = linear_filter
        kf.update(jnp.array([1.0]), jnp.array([0.2]))
        kf.reset()
        assert kf.index() == 0
        assert jnp.array_equal(kf.x, kf.d0.mean)
        assert jnp.array_equal(kf.R, kf.d0.cov)


class TestKalmanCorrection:
    """测试共享测量更新 / Test the shared measurement update"""

    def test_failure_raises(self):
        with pytest.raises(InnovationCovarianceError) as excinfo:
            kalman_correction(jnp.zeros(2), jnp.eye(2), jnp.eye(2), jnp.ones(2), -2.0 * jnp.eye(2))
        np.testing.assert_allclose(excinfo.value.S, -np.eye(2))

    def test_matrix_product_not_elementwise(self):
        """(I - K C) R 为矩阵乘积 / (I - K C) R is a matrix product"""
        x = jnp.zeros(2)
        R = jnp.array([[2.0, 0.5], [0.5, 1.0]])
        C = jnp.array([[1.0, 1.0]])
        _, R_new, result = kalman_correction(x, R, C, jnp.array([0.0]), jnp.array([[0.5]]))
        expected = (jnp.eye(2) - result.K @ C) @ R
        assert jnp.allclose(R_new, 0.5 * (expected + expected.T))
        assert jnp.array_equal(R_new, R_new.T)

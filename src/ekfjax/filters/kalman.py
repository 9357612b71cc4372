"""
Linear Kalman Filter / 线性卡尔曼滤波器
======================================

Owns the Gaussian belief (mean ``x``, covariance ``R``, time index ``t``)
together with the noise model, the prior ``d0``, the sampling period ``Ts``
and the user parameters ``p``. The extended filter keeps one of these as
its inner filter and mutates its belief.

Model / 模型:
    x(t+1) = A x(t) + B u(t) + w,   w ~ N(0, R1)
    y(t)   = C x(t) + D u(t) + e,   e ~ N(0, R2)
    x(0)  ~ d0
"""

from typing import Optional, Tuple

import jax.numpy as jnp
import numpy as np
import chex

from ..constants import (
    DEFAULT_INFLATION,
    DEFAULT_SAMPLE_TIME,
    DISCRETE_EIGENVALUE_WARNING,
    SYMMETRY_TOLERANCE,
)
from ..core.distributions import MvNormal
from ..core.exceptions import InnovationCovarianceError
from ..core.types import CorrectionResult, NoiseSpec, Parameters
from ..numerics import (
    checked_cholesky,
    cholesky_right_solve,
    evaluate_noise,
    gaussian_logpdf_cholesky,
    is_symmetric,
    symmetrize,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


def as_matrix(value) -> chex.Array:
    """Float 2-D array, or the callable unchanged / 转为二维浮点数组（函数原样返回）"""
    if callable(value):
        return value
    return jnp.atleast_2d(jnp.asarray(value, dtype=float))


def as_input_matrix(value, n_rows: int) -> chex.Array:
    """B or D as a 2-D array with n_rows rows; a vector is one input column"""
    value = jnp.asarray(value, dtype=float)
    if value.ndim < 2:
        value = value.reshape(n_rows, -1)
    return value


def kalman_correction(
    x: chex.Array,
    R: chex.Array,
    C: chex.Array,
    e: chex.Array,
    R2: chex.Array,
) -> Tuple[chex.Array, chex.Array, CorrectionResult]:
    """
    Measurement update shared by the linear and extended filters.
    线性与扩展滤波器共用的测量更新。

    Nothing is written anywhere: the caller commits the returned belief.
    If S is not positive definite, InnovationCovarianceError is raised and
    the caller's belief is left as it was.

    Args:
        x: 预测均值 / predicted mean
        R: 预测协方差 / predicted covariance
        C: 观测矩阵或其雅可比 / measurement matrix or Jacobian
        e: 新息 / innovation
        R2: 观测噪声协方差 / measurement noise covariance

    Returns:
        (x_new, R_new, result)
    """
    S = symmetrize(C @ R @ C.T) + R2
    Sc, ok = checked_cholesky(S)
    if not bool(ok):
        logger.error("Innovation covariance is not positive definite / 新息协方差非正定")
        raise InnovationCovarianceError(S)

    K = cholesky_right_solve(R @ C.T, Sc)
    x_new = x + K @ e
    # (I - K C) R as a matrix product, not an elementwise difference
    R_new = symmetrize((jnp.eye(x.shape[0]) - K @ C) @ R)

    ll = gaussian_logpdf_cholesky(e, Sc)
    return x_new, R_new, CorrectionResult(ll=ll, e=e, S=S, Sc=Sc, K=K)


class KalmanFilter:
    """
    线性卡尔曼滤波器 / Linear Kalman filter and belief store

    Args:
        A, B, C, D: 系统矩阵 / system matrices
        R1: 过程噪声协方差或 (x,u,p,t) 函数 / process noise, matrix or function
        R2: 观测噪声协方差或函数 / measurement noise, matrix or function
        d0: 初始状态先验，默认 N(0, R1) / prior over x(0), defaults to N(0, R1)
        Ts: 采样周期 / sampling period
        p: 用户参数，原样透传 / parameters passed through to user functions
        alpha: 协方差膨胀因子 / covariance inflation factor
        check: 是否进行构造检查 / run shape and symmetry checks
        ny: R2 为函数时的观测维度 / measurement dimension when R2 is a function
        symmetry_tolerance: 对称检查容差 / symmetry check tolerance
    """

    def __init__(
        self,
        A,
        B,
        C,
        D,
        R1: NoiseSpec,
        R2: NoiseSpec,
        d0: Optional[MvNormal] = None,
        *,
        Ts: float = DEFAULT_SAMPLE_TIME,
        p: Parameters = None,
        alpha: float = DEFAULT_INFLATION,
        check: bool = True,
        ny: Optional[int] = None,
        symmetry_tolerance: float = SYMMETRY_TOLERANCE,
    ):
        self.A = as_matrix(A)
        self.B = as_input_matrix(B, self.A.shape[0])
        self.C = as_matrix(C)
        self.R1 = as_matrix(R1)
        self.R2 = as_matrix(R2)

        if d0 is None:
            if callable(self.R1):
                raise ValueError("A prior d0 is required when R1 is a function")
            d0 = MvNormal.zero_mean(self.R1)
        self.d0 = d0

        self._nx = self.A.shape[0]
        self._nu = self.B.shape[1]
        if ny is None:
            if callable(self.R2):
                ny = self.C.shape[0]
            else:
                ny = self.R2.shape[0]
        self._ny = ny
        self.D = as_input_matrix(D, self._ny)

        self.Ts = Ts
        self.p = p
        self.alpha = alpha

        if check:
            self._validate(symmetry_tolerance)

        self.reset()

    # ------------------------------------------------------------------
    # Construction checks / 构造检查
    # ------------------------------------------------------------------

    def _validate(self, tol: float) -> None:
        nx, nu, ny = self._nx, self._nu, self._ny
        if self.A.shape != (nx, nx):
            raise ValueError(f"A must be square, got shape {self.A.shape}")
        if self.C.shape != (ny, nx):
            raise ValueError(f"C must have shape ({ny}, {nx}), got {self.C.shape}")
        if self.D.shape != (ny, nu):
            raise ValueError(f"D must have shape ({ny}, {nu}), got {self.D.shape}")

        for name, noise, n in (("R1", self.R1, nx), ("R2", self.R2, ny)):
            if callable(noise):
                continue
            if noise.shape != (n, n):
                raise ValueError(f"{name} must have shape ({n}, {n}), got {noise.shape}")
            if not is_symmetric(noise, tol):
                raise ValueError(f"{name} must be symmetric, got {name} = {np.asarray(noise)}")

        if self.d0.mean.shape != (nx,):
            raise ValueError(
                f"The prior d0 has dimension {self.d0.mean.shape[0]}, the state has dimension {nx}"
            )
        if self.d0.cov.shape != (nx, nx):
            raise ValueError(f"The prior covariance must have shape ({nx}, {nx}), got {self.d0.cov.shape}")

        if nx > 0 and bool(jnp.any(self.A != 0)):
            max_abs_eig = float(np.max(np.abs(np.linalg.eigvals(np.asarray(self.A)))))
            if max_abs_eig >= DISCRETE_EIGENVALUE_WARNING:
                logger.warning(
                    f"A has an eigenvalue of magnitude {max_abs_eig:.3g}, "
                    "is this a discrete-time model? / 是否为离散时间模型？"
                )

    # ------------------------------------------------------------------
    # Belief access / 置信状态访问
    # ------------------------------------------------------------------

    @property
    def nx(self) -> int:
        return self._nx

    @property
    def nu(self) -> int:
        return self._nu

    @property
    def ny(self) -> int:
        return self._ny

    def reset(self) -> None:
        """重置为先验 / Reset the belief to the prior and the index to 0"""
        self.x = jnp.asarray(self.d0.mean, dtype=float)
        self.R = jnp.asarray(self.d0.cov, dtype=float)
        self.t = 0

    def index(self) -> int:
        return self.t

    def parameters(self) -> Parameters:
        return self.p

    def state(self) -> chex.Array:
        return self.x

    def covariance(self) -> chex.Array:
        return self.R

    def input_vector(self, u) -> chex.Array:
        """输入转为向量，None 表示零输入 / None means a zero input"""
        if u is None:
            return jnp.zeros(self._nu)
        return jnp.atleast_1d(jnp.asarray(u, dtype=float))

    # ------------------------------------------------------------------
    # Linear filtering / 线性滤波
    # ------------------------------------------------------------------

    def predict(self, u=None, p: Parameters = None, t: Optional[float] = None, *, R1=None, alpha=None) -> None:
        """
        时间更新 / Time update
        x <- A x + B u,  R <- sym(α A R Aᵀ) + R1,  t <- t + 1
        """
        p = self.p if p is None else p
        t = self.t * self.Ts if t is None else t
        u = self.input_vector(u)
        if R1 is None:
            R1 = evaluate_noise(self.R1, self.x, u, p, t)
        alpha = self.alpha if alpha is None else alpha

        A = self.A
        self.x = A @ self.x + self.B @ u
        if alpha == 1:
            self.R = symmetrize(A @ self.R @ A.T) + R1
        else:
            self.R = symmetrize(alpha * A @ self.R @ A.T) + R1
        self.t += 1

    def correct(self, u, y, p: Parameters = None, t: Optional[float] = None, *, R2=None) -> CorrectionResult:
        """测量更新 / Measurement update with the linear measurement model"""
        p = self.p if p is None else p
        t = self.t if t is None else t
        u = self.input_vector(u)
        y = jnp.atleast_1d(jnp.asarray(y, dtype=float))
        if R2 is None:
            R2 = evaluate_noise(self.R2, self.x, u, p, t)

        e = y - (self.C @ self.x + self.D @ u)
        x_new, R_new, result = kalman_correction(self.x, self.R, self.C, e, R2)
        self.x, self.R = x_new, R_new
        return result

    def update(self, u, y, p: Parameters = None, t: Optional[float] = None) -> CorrectionResult:
        """校正后预测 / Correct, then predict"""
        result = self.correct(u, y, p, t)
        self.predict(u, p, t)
        return result

    def __repr__(self) -> str:
        return f"{type(self).__name__}(nx={self.nx}, nu={self.nu}, ny={self.ny}, t={self.t})"

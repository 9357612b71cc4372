"""
扩展卡尔曼滤波器 / Extended Kalman Filter
========================================

A nonlinear state estimator propagating uncertainty through local
linearizations of the dynamics and measurement functions:

    x(t+1) = dynamics(x, u, p, t) + w,      w ~ N(0, R1)
    y      = measurement(x, u, p, t) + e,   e ~ N(0, R2)
    x(0)   ~ d0

The belief is stored in an inner :class:`KalmanFilter`, which the extended
filter owns and exposes through explicit forwarding properties.
置信状态保存在内部线性滤波器中，通过显式属性转发访问。

Predict and correct mutate the belief in place and must be called
alternately from one thread. A correct step either commits fully or raises
before touching the belief.
"""

from typing import Optional, Union

import jax
import jax.numpy as jnp
import chex

from ..constants import DEFAULT_INFLATION, DEFAULT_SAMPLE_TIME
from ..core.distributions import MvNormal
from ..core.types import (
    CallConvention,
    CorrectionResult,
    InplaceModelFn,
    JacobianFn,
    ModelFn,
    NoiseSpec,
    OptionalKey,
    Parameters,
    SmoothedTrajectory,
)
from ..numerics import evaluate_noise, symmetrize
from ..utils.logger import get_logger
from .config import EKFConfig
from .jacobians import ModelFunction, make_jacobian
from .kalman import KalmanFilter, as_matrix, kalman_correction
from .smoother import forward_smooth

logger = get_logger(__name__)


class _InnerAttribute:
    """
    Attribute stored on the inner filter ``kf``.
    存储在内部滤波器上的属性。
    """

    def __init__(self, doc: str = "", readonly: bool = False):
        self.__doc__ = doc
        self.readonly = readonly

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return getattr(obj.kf, self.name)

    def __set__(self, obj, value):
        if self.readonly:
            raise AttributeError(f"'{self.name}' is read-only")
        setattr(obj.kf, self.name, value)


class ExtendedKalmanFilter:
    """
    扩展卡尔曼滤波器 / Extended Kalman filter

    By default the Jacobians are computed with JAX forward-mode autodiff of
    the model functions with respect to ``x``; buffer-writing models
    ``f(out, x, u, p, t)`` are linearized by central differences. User
    Jacobians ``Ajac(x,u,p,t)`` and ``Cjac(x,u,p,t)`` take precedence.

    Args:
        dynamics: 动力学函数 / ``dynamics(x,u,p,t)`` or ``dynamics(out,x,u,p,t)``
        measurement: 观测函数 / ``measurement(x,u,p,t)`` or ``measurement(out,x,u,p,t)``
        R1: 过程噪声协方差或 (x,u,p,t) 函数 / process noise, matrix or function
        R2: 观测噪声协方差或函数 / measurement noise, matrix or function
        d0: 初始状态先验，默认 N(0, R1) / prior, defaults to N(0, R1)
        nu: 输入维度 / number of inputs
        ny: 观测维度，R2 为函数时必需 / number of outputs, required when R2 is a function
        Ts: 采样周期 / sampling period
        p: 用户参数 / parameters passed unchanged to all user functions
        alpha: 协方差膨胀因子 / covariance inflation factor
        check: 构造检查 / shape and symmetry checks
        Ajac: 用户动力学雅可比 / user dynamics Jacobian
        Cjac: 用户观测雅可比 / user measurement Jacobian
        dynamics_convention: 动力学调用约定，None 自动检测 / None detects from the signature
        measurement_convention: 观测调用约定 / measurement calling convention
        config: 数值配置 / numerical configuration
    """

    x = _InnerAttribute("状态均值 / state mean")
    R = _InnerAttribute("状态协方差 / state covariance")
    t = _InnerAttribute("时间索引 / integer time index")
    Ts = _InnerAttribute("采样周期 / sampling period")
    p = _InnerAttribute("用户参数 / user parameters")
    alpha = _InnerAttribute("协方差膨胀因子 / covariance inflation")
    R1 = _InnerAttribute("过程噪声 / process noise")
    R2 = _InnerAttribute("观测噪声 / measurement noise")
    d0 = _InnerAttribute("初始先验 / prior over the initial state")
    nx = _InnerAttribute("状态维度 / state dimension", readonly=True)
    nu = _InnerAttribute("输入维度 / input dimension", readonly=True)
    ny = _InnerAttribute("观测维度 / output dimension", readonly=True)

    def __init__(
        self,
        dynamics: Union[ModelFn, InplaceModelFn],
        measurement: Union[ModelFn, InplaceModelFn],
        R1: NoiseSpec,
        R2: NoiseSpec,
        d0: Optional[MvNormal] = None,
        *,
        nu: int,
        ny: Optional[int] = None,
        Ts: float = DEFAULT_SAMPLE_TIME,
        p: Parameters = None,
        alpha: float = DEFAULT_INFLATION,
        check: bool = True,
        Ajac: Optional[JacobianFn] = None,
        Cjac: Optional[JacobianFn] = None,
        dynamics_convention: Optional[CallConvention] = None,
        measurement_convention: Optional[CallConvention] = None,
        config: Optional[EKFConfig] = None,
    ):
        config = config if config is not None else EKFConfig()

        R1 = as_matrix(R1)
        R2 = as_matrix(R2)
        if callable(R1):
            if d0 is None:
                raise ValueError("A prior d0 is required when R1 is a function")
            nx = d0.dim
        else:
            nx = R1.shape[0]
        if ny is None:
            if callable(R2):
                raise ValueError("ny must be given when R2 is a function")
            ny = R2.shape[0]

        # The linear matrices are never used by the extended filter
        kf = KalmanFilter(
            jnp.zeros((nx, nx)),
            jnp.zeros((nx, nu)),
            jnp.zeros((ny, nx)),
            jnp.zeros((ny, nu)),
            R1,
            R2,
            d0,
            Ts=Ts,
            p=p,
            alpha=alpha,
            check=check,
            ny=ny,
            symmetry_tolerance=config.symmetry_tolerance,
        )
        self._attach(kf, dynamics, measurement, Ajac, Cjac, dynamics_convention, measurement_convention, config)

    @classmethod
    def from_kalman_filter(
        cls,
        kf: KalmanFilter,
        dynamics: Union[ModelFn, InplaceModelFn],
        measurement: Union[ModelFn, InplaceModelFn],
        *,
        Ajac: Optional[JacobianFn] = None,
        Cjac: Optional[JacobianFn] = None,
        dynamics_convention: Optional[CallConvention] = None,
        measurement_convention: Optional[CallConvention] = None,
        config: Optional[EKFConfig] = None,
    ) -> "ExtendedKalmanFilter":
        """
        Wrap an existing linear filter; its A, B, C, D are ignored.
        基于已有线性滤波器构造，其系统矩阵不被使用。
        """
        ekf = cls.__new__(cls)
        ekf._attach(
            kf, dynamics, measurement, Ajac, Cjac, dynamics_convention, measurement_convention,
            config if config is not None else EKFConfig(),
        )
        return ekf

    def _attach(self, kf, dynamics, measurement, Ajac, Cjac, dynamics_convention, measurement_convention, config):
        self.kf = kf
        self.config = config
        self._dynamics = ModelFunction(dynamics, kf.nx, dynamics_convention)
        self._measurement = ModelFunction(measurement, kf.ny, measurement_convention)
        self.Ajac = make_jacobian(self._dynamics, kf.nx, Ajac, config.jacobian_backend, step=config.fd_step)
        self.Cjac = make_jacobian(self._measurement, kf.nx, Cjac, config.jacobian_backend, step=config.fd_step)
        self._key = jax.random.PRNGKey(config.seed)
        logger.debug(
            f"Created {type(self).__name__} nx={kf.nx} nu={kf.nu} ny={kf.ny}, "
            f"dynamics {self._dynamics.convention.value}, measurement {self._measurement.convention.value}"
        )

    # ------------------------------------------------------------------
    # Belief access, forwarded to the inner filter / 置信状态访问
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """重置为先验 / Reset mean and covariance to the prior, index to 0"""
        self.kf.reset()

    def index(self) -> int:
        return self.kf.index()

    def parameters(self) -> Parameters:
        return self.kf.parameters()

    def state(self) -> chex.Array:
        return self.kf.state()

    def covariance(self) -> chex.Array:
        return self.kf.covariance()

    @property
    def dynamics(self):
        """原始动力学函数 / The user's dynamics function, unwrapped"""
        return self._dynamics.fn

    @property
    def measurement(self):
        """原始观测函数 / The user's measurement function, unwrapped"""
        return self._measurement.fn

    @property
    def dynamics_convention(self) -> CallConvention:
        return self._dynamics.convention

    @property
    def measurement_convention(self) -> CallConvention:
        return self._measurement.convention

    # ------------------------------------------------------------------
    # Predict / Correct / 预测与校正
    # ------------------------------------------------------------------

    def predict(self, u=None, p: Parameters = None, t: Optional[float] = None, *, R1=None, alpha=None) -> None:
        """
        EKF预测步骤 / EKF prediction step

        A = Ajac(x,u,p,t)
        x <- dynamics(x,u,p,t)
        R <- sym(α A R Aᵀ) + R1(x,u,p,t)
        t <- t + 1

        Args:
            u: 输入 / input, None for a zero input
            p: 参数，默认为滤波器参数 / parameters, defaults to the filter's
            t: 时间，默认 index·Ts / time, defaults to index·Ts
            R1: 过程噪声覆盖 / process noise override, evaluated at the current belief otherwise
            alpha: 膨胀因子覆盖 / inflation override
        """
        kf = self.kf
        p = kf.p if p is None else p
        t = kf.t * kf.Ts if t is None else t
        u = kf.input_vector(u)
        x, R = kf.x, kf.R
        if R1 is None:
            R1 = evaluate_noise(kf.R1, x, u, p, t)
        alpha = kf.alpha if alpha is None else alpha

        A = self.Ajac(x, u, p, t)
        x_new = self._dynamics(x, u, p, t)
        if alpha == 1:
            R_new = symmetrize(A @ R @ A.T) + R1
        else:
            R_new = symmetrize(alpha * A @ R @ A.T) + R1

        kf.x = x_new
        kf.R = R_new
        kf.t += 1

    def correct(self, u, y, p: Parameters = None, t: Optional[float] = None, *, R2=None) -> CorrectionResult:
        """
        EKF校正步骤 / EKF correction step

        C = Cjac(x,u,p,t),  e = y - measurement(x,u,p,t),  S = sym(C R Cᵀ) + R2
        K = R Cᵀ S⁻¹ (solved against chol(S)),  x <- x + K e,  R <- sym((I - K C) R)

        Args:
            u: 输入 / input
            y: 观测 / measurement
            p: 参数 / parameters, defaults to the filter's
            t: 时间，默认当前索引 / time, defaults to the current index
            R2: 观测噪声覆盖 / measurement noise override

        Returns:
            CorrectionResult(ll, e, S, Sc, K)

        Raises:
            InnovationCovarianceError: S 非正定，置信状态未改变 / S is not positive
                definite; x and R are left unchanged.
        """
        kf = self.kf
        p = kf.p if p is None else p
        t = kf.t if t is None else t
        u = kf.input_vector(u)
        y = jnp.atleast_1d(jnp.asarray(y, dtype=float))
        x, R = kf.x, kf.R
        if R2 is None:
            R2 = evaluate_noise(kf.R2, x, u, p, t)

        C = self.Cjac(x, u, p, t)
        e = y - self._measurement(x, u, p, t)
        x_new, R_new, result = kalman_correction(x, R, C, e, R2)

        kf.x = x_new
        kf.R = R_new
        return result

    def update(self, u, y, p: Parameters = None, t: Optional[float] = None) -> CorrectionResult:
        """校正后预测 / Correct with y, then predict with u"""
        result = self.correct(u, y, p, t)
        self.predict(u, p, t)
        return result

    def smooth(self, u, y, p: Parameters = None) -> SmoothedTrajectory:
        """
        Reset, filter forward over (u, y), then run the RTS smoother.
        重置、前向滤波并执行RTS平滑。
        """
        return forward_smooth(self, u, y, p)

    # ------------------------------------------------------------------
    # Sampling / 采样
    # ------------------------------------------------------------------

    def _next_key(self, key: OptionalKey) -> chex.PRNGKey:
        if key is not None:
            return key
        self._key, subkey = jax.random.split(self._key)
        return subkey

    def sample_state(
        self,
        x=None,
        u=None,
        p: Parameters = None,
        t: Optional[float] = None,
        *,
        noise: bool = True,
        key: OptionalKey = None,
    ) -> chex.Array:
        """
        Sample an initial state, or a successor of ``x``.
        采样初始状态，或给定 x 的下一状态。

        Without ``x``: a draw from the prior d0, or its mean if ``noise`` is False.
        With ``x``: dynamics(x,u,p,t), plus a draw from N(0, R1(x,u,p,t)) if ``noise``.
        """
        kf = self.kf
        if x is None:
            if not noise:
                return kf.d0.mean
            return kf.d0.sample(self._next_key(key))

        p = kf.p if p is None else p
        t = kf.t * kf.Ts if t is None else t
        u = kf.input_vector(u)
        x_next = self._dynamics(x, u, p, t)
        if noise:
            R1 = evaluate_noise(kf.R1, x, u, p, t)
            x_next = x_next + MvNormal.zero_mean(R1).sample(self._next_key(key))
        return x_next

    def sample_measurement(
        self,
        x,
        u=None,
        p: Parameters = None,
        t: Optional[float] = None,
        *,
        noise: bool = True,
        key: OptionalKey = None,
    ) -> chex.Array:
        """
        measurement(x,u,p,t), plus a draw from N(0, R2(x,u,p,t)) if ``noise``.
        采样观测。
        """
        kf = self.kf
        p = kf.p if p is None else p
        t = kf.t * kf.Ts if t is None else t
        u = kf.input_vector(u)
        y = self._measurement(x, u, p, t)
        if noise:
            R2 = evaluate_noise(kf.R2, x, u, p, t)
            y = y + MvNormal.zero_mean(R2).sample(self._next_key(key))
        return y

    def __repr__(self) -> str:
        return f"{type(self).__name__}(nx={self.nx}, nu={self.nu}, ny={self.ny}, t={self.t})"

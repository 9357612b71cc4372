"""
Core type definitions for ekfjax
ekfjax核心类型定义

This module defines the core data types and type annotations used throughout the project.
本模块定义项目中使用的核心数据类型和类型注解。
"""

import enum
from typing import Any, Callable, NamedTuple, Optional, Protocol, Union

from jax import Array
from jaxtyping import Float
import chex

# Type aliases for clarity / 类型别名
Scalar = Union[float, Float[Array, ""]]
Vector = Float[Array, "n"]
Matrix = Float[Array, "n m"]

# Estimation-specific aliases / 估计专用类型
StateVector = Float[Array, "nx"]  # 状态 x / state x
InputVector = Float[Array, "nu"]  # 输入 u / input u
OutputVector = Float[Array, "ny"]  # 观测 y / measurement y
Covariance = Float[Array, "n n"]  # 协方差 / covariance
StateSequence = Float[Array, "T nx"]  # 状态序列 / state sequence
CovarianceSequence = Float[Array, "T nx nx"]  # 协方差序列 / covariance sequence
Parameters = Any  # 用户参数对象，原样透传 / opaque user parameters, passed through

# Function types / 函数类型
# x(t+1) = dynamics(x, u, p, t),  y = measurement(x, u, p, t)
ModelFn = Callable[[Vector, Vector, Parameters, Scalar], Vector]
# dynamics(out, x, u, p, t) -> None, writes into `out`
InplaceModelFn = Callable[[Any, Vector, Vector, Parameters, Scalar], None]
JacobianFn = Callable[[Vector, Vector, Parameters, Scalar], Matrix]
# Noise: fixed covariance or function of (x, u, p, t) / 噪声：固定矩阵或函数
NoiseSpec = Union[Matrix, Callable[[Vector, Vector, Parameters, Scalar], Matrix]]


class CallConvention(enum.Enum):
    """
    User function calling convention, fixed at construction.
    用户函数调用约定，构造时确定。
    """
    OUT_OF_PLACE = "out_of_place"  # f(x,u,p,t) -> new array / 返回新数组
    IN_PLACE = "in_place"  # f(out,x,u,p,t) writes into out / 写入调用者缓冲区


# ============================================================================
# Data Structures / 数据结构
# ============================================================================

class CorrectionResult(NamedTuple):
    """
    Diagnostics returned by a measurement correction.
    测量校正返回的诊断量。

    Attributes:
        ll: 新息对数似然 / log-likelihood of the innovation under N(0, S)
        e: 新息 y - h(x) / innovation
        S: 新息协方差 / innovation covariance
        Sc: S 的下三角 Cholesky 因子 / lower Cholesky factor of S
        K: 卡尔曼增益 / Kalman gain
    """
    ll: chex.Scalar
    e: chex.Array
    S: chex.Array
    Sc: chex.Array
    K: chex.Array


@chex.dataclass
class ForwardTrajectoryRecord:
    """
    Record of a forward filtering pass, index k = 0..T-1.
    前向滤波记录

    ``x[k], R[k]`` are the beliefs before the correction at step k,
    ``xt[k], Rt[k]`` the beliefs after it.
    """
    x: StateSequence  # 校正前均值 / pre-update means
    xt: StateSequence  # 校正后均值 / post-update means
    R: CovarianceSequence  # 校正前协方差 / pre-update covariances
    Rt: CovarianceSequence  # 校正后协方差 / post-update covariances
    ll: Scalar  # 累积对数似然 / cumulative log-likelihood
    e: Float[Array, "T ny"]  # 新息序列 / innovations
    u: Float[Array, "T nu"]  # 输入序列 / inputs used
    y: Float[Array, "T ny"]  # 观测序列 / measurements used

    @property
    def length(self) -> int:
        """Number of recorded steps T / 记录步数"""
        return self.xt.shape[0]


class SmoothedTrajectory(NamedTuple):
    """RTS平滑结果 / Result of the backward smoothing pass"""
    xT: StateSequence  # 平滑均值 / smoothed means
    RT: CovarianceSequence  # 平滑协方差 / smoothed covariances
    ll: Scalar  # 前向对数似然（不变） / forward-pass log-likelihood, unchanged


# ============================================================================
# Protocols for Extensibility / 扩展性协议
# ============================================================================

class JacobianProvider(Protocol):
    """
    Protocol for Jacobian providers
    雅可比提供者协议

    Any differentiation or finite-difference backend evaluating ∂f/∂x at
    (x, u, p, t) with u, p, t held fixed.
    """
    def __call__(self, x: Vector, u: Vector, p: Parameters, t: Scalar) -> Matrix:
        ...


class Distribution(Protocol):
    """
    Protocol for the prior over the initial state
    初始状态先验分布协议
    """
    @property
    def mean(self) -> Vector:
        ...

    @property
    def cov(self) -> Matrix:
        ...

    def sample(self, key: chex.PRNGKey, sample_shape: tuple = ()) -> chex.Array:
        ...


OptionalKey = Optional[chex.PRNGKey]

"""
Forward filtering and simulation drivers / 前向滤波与仿真驱动
==========================================================

External loops alternating correct and predict over a sequence of inputs
and measurements. Any filter with ``x``, ``R``, ``Ts``, ``nu``,
``correct`` and ``predict`` can be driven; simulation additionally needs the
sampler of :class:`ExtendedKalmanFilter`.
"""

from typing import Tuple

import jax
import jax.numpy as jnp
import chex

from ..core.types import ForwardTrajectoryRecord, OptionalKey, Parameters
from ..utils.logger import get_logger

logger = get_logger(__name__)


def as_sequence(values, n: int) -> chex.Array:
    """
    Sequence of vectors as a [T, n] array; a 1-D array is T scalars when n == 1.
    将序列转为 [T, n] 数组。
    """
    values = jnp.asarray(values, dtype=float)
    if values.ndim == 1:
        values = values.reshape(-1, n)
    return values


def input_sequence(u, T: int, nu: int) -> chex.Array:
    """输入序列，None 表示零输入 / None means T zero inputs"""
    if u is None:
        return jnp.zeros((T, nu))
    return as_sequence(u, nu)


def forward_trajectory(kf, u, y, p: Parameters = None) -> ForwardTrajectoryRecord:
    """
    前向滤波 / Forward filtering pass starting from the current belief

    For each step k with time k·Ts: record (x, R), correct with (u[k], y[k]),
    record (xt, Rt), predict with u[k]. The belief is not reset first.

    Args:
        kf: 滤波器 / filter
        u: 输入序列 [T, nu] / inputs, None for zero inputs
        y: 观测序列 [T, ny] / measurements
        p: 参数 / parameters, defaults to the filter's

    Returns:
        ForwardTrajectoryRecord with the cumulative log-likelihood

    Raises:
        InnovationCovarianceError: 若某步新息协方差非正定 / from the failing step
    """
    y = as_sequence(y, kf.ny)
    T = y.shape[0]
    u = input_sequence(u, T, kf.nu)
    if u.shape[0] != T:
        raise ValueError(f"u has {u.shape[0]} steps but y has {T}")

    x, xt, R, Rt, e = [], [], [], [], []
    ll = jnp.array(0.0)
    for k in range(T):
        t = k * kf.Ts
        x.append(kf.x)
        R.append(kf.R)
        result = kf.correct(u[k], y[k], p, t)
        ll = ll + result.ll
        e.append(result.e)
        xt.append(kf.x)
        Rt.append(kf.R)
        kf.predict(u[k], p, t)

    logger.debug(f"Forward pass over {T} steps, ll = {float(ll):.6g}")
    return ForwardTrajectoryRecord(
        x=jnp.stack(x),
        xt=jnp.stack(xt),
        R=jnp.stack(R),
        Rt=jnp.stack(Rt),
        ll=ll,
        e=jnp.stack(e),
        u=u,
        y=y,
    )


def loglik(kf, u, y, p: Parameters = None) -> chex.Scalar:
    """
    对数似然 / Log-likelihood of y given u

    Resets the filter to its prior and runs a forward pass.
    """
    kf.reset()
    return forward_trajectory(kf, u, y, p).ll


def simulate(
    kf,
    u,
    p: Parameters = None,
    *,
    key: OptionalKey = None,
    dynamics_noise: bool = True,
    measurement_noise: bool = True,
) -> Tuple[chex.Array, chex.Array, chex.Array]:
    """
    轨迹仿真 / Simulate a trajectory of the filter's model

    x[0] is drawn from the prior (its mean without dynamics noise). For each
    step k at time k·Ts: y[k] = sample_measurement(x[k], u[k]) and
    x[k+1] = sample_state(x[k], u[k]).

    Args:
        kf: 具有采样器的滤波器 / filter with sample_state and sample_measurement
        u: 输入序列 [T, nu] / inputs, their length sets T
        p: 参数 / parameters, defaults to the filter's
        key: 随机数密钥，None 使用滤波器自身密钥 / None uses the filter's own key
        dynamics_noise: 是否加入过程噪声 / add process noise and draw x[0]
        measurement_noise: 是否加入观测噪声 / add measurement noise

    Returns:
        (x, u, y) with shapes [T, nx], [T, nu], [T, ny]
    """
    u = as_sequence(u, kf.nu)
    T = u.shape[0]
    if key is not None:
        keys = list(jax.random.split(key, 2 * T + 1))
    else:
        keys = [None] * (2 * T + 1)

    x = kf.sample_state(noise=dynamics_noise, key=keys[0])
    xs, ys = [], []
    for k in range(T):
        t = k * kf.Ts
        xs.append(x)
        ys.append(kf.sample_measurement(x, u[k], p, t, noise=measurement_noise, key=keys[2 * k + 1]))
        x = kf.sample_state(x, u[k], p, t, noise=dynamics_noise, key=keys[2 * k + 2])

    return jnp.stack(xs), u, jnp.stack(ys)

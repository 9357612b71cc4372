"""
Rauch-Tung-Striebel smoother / RTS平滑器
========================================

Backward recursion over a stored forward pass. The dynamics are
re-linearized at the smoothed future state:

    A    = Ajac(xT[k+1], u[k+1], p, (k+1)·Ts)
    G    = Rt[k] Aᵀ R[k+1]⁻¹                    (linear solve)
    xT[k] = xt[k] + G (xT[k+1] - x[k+1])
    RT[k] = Rt[k] + sym(G (RT[k+1] - R[k+1]) Gᵀ)

with xT[T-1] = xt[T-1] and RT[T-1] = Rt[T-1].
"""

import jax.numpy as jnp

from ..core.types import ForwardTrajectoryRecord, Parameters, SmoothedTrajectory
from ..numerics import right_solve, symmetrize
from ..utils.logger import get_logger
from .trajectory import as_sequence, forward_trajectory

logger = get_logger(__name__)


def _dynamics_jacobian(kf):
    """Ajac of an extended filter, or the constant A of a linear one"""
    if hasattr(kf, "Ajac"):
        return kf.Ajac
    return lambda x, u, p, t: kf.A


def smooth(sol: ForwardTrajectoryRecord, kf, u=None, p: Parameters = None) -> SmoothedTrajectory:
    """
    RTS后向平滑 / Backward RTS pass over a forward trajectory

    Args:
        sol: 前向滤波记录 / record of the forward pass
        kf: 生成该记录的滤波器 / filter that produced the record
        u: 输入序列，默认为记录中的输入 / inputs, defaults to ``sol.u``
        p: 参数 / parameters, defaults to the filter's

    Returns:
        SmoothedTrajectory(xT, RT, ll) with ll unchanged from the forward pass
    """
    x, xt, R, Rt = sol.x, sol.xt, sol.R, sol.Rt
    T = sol.length
    u = sol.u if u is None else as_sequence(u, kf.nu)
    p = kf.p if p is None else p
    Ajac = _dynamics_jacobian(kf)

    xT = [None] * T
    RT = [None] * T
    xT[-1] = xt[-1]
    RT[-1] = Rt[-1]
    for k in range(T - 2, -1, -1):
        A = Ajac(xT[k + 1], u[k + 1], p, (k + 1) * kf.Ts)
        G = right_solve(Rt[k] @ A.T, R[k + 1])
        xT[k] = xt[k] + G @ (xT[k + 1] - x[k + 1])
        RT[k] = Rt[k] + symmetrize(G @ (RT[k + 1] - R[k + 1]) @ G.T)

    logger.info(f"Smoothed {T} steps / 平滑完成")
    return SmoothedTrajectory(xT=jnp.stack(xT), RT=jnp.stack(RT), ll=sol.ll)


def forward_smooth(kf, u, y, p: Parameters = None) -> SmoothedTrajectory:
    """
    重置、前向滤波并平滑 / Reset, filter forward over (u, y), then smooth
    """
    kf.reset()
    sol = forward_trajectory(kf, u, y, p)
    return smooth(sol, kf, sol.u, p)

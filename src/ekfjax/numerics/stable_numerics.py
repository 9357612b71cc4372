"""
Numerically Stable Linear Algebra for Kalman Filtering / 卡尔曼滤波数值稳定线性代数
==================================================================================

Dense small-matrix helpers shared by the linear and extended filters.

Unlike jitter-based regularization, nothing here modifies a matrix to make
it factorizable: a failed Cholesky factorization is reported to the caller,
which decides how to fail.
此模块不做正则化：Cholesky失败由调用者决定如何处理。

Key Features:
- Symmetrization to cancel floating-point drift
- Cholesky factorization with an explicit success flag (no exception, NaNs detected)
- Gains computed by triangular solves against the factorization, never by inversion
- Gaussian log-density reusing an existing factorization
"""

from typing import Tuple

import jax.numpy as jnp
from jax import jit
from jax.scipy.linalg import cho_solve, solve_triangular
import chex

from ..constants import LOG_2PI
from ..core.types import NoiseSpec, Parameters, Scalar, Vector

# ============================================================================
# Symmetry / 对称化
# ============================================================================

@jit
def symmetrize(matrix: chex.Array) -> chex.Array:
    """
    Return (M + Mᵀ)/2.
    对称化矩阵，消除浮点漂移。
    """
    return 0.5 * (matrix + matrix.T)


# ============================================================================
# Cholesky Factorization / Cholesky分解
# ============================================================================

@jit
def checked_cholesky(matrix: chex.Array) -> Tuple[chex.Array, chex.Array]:
    """
    Lower Cholesky factor plus a success flag.
    带成功标志的下三角Cholesky分解。

    JAX does not raise on non positive-definite input, it fills the factor
    with NaNs. A zero pivot (semi-definite input) also counts as failure.

    Args:
        matrix: Symmetric matrix [N, N].

    Returns:
        Tuple of (L, ok) with ``L @ L.T == matrix`` when ``ok``.
    """
    L = jnp.linalg.cholesky(symmetrize(matrix))
    ok = jnp.all(jnp.isfinite(L)) & jnp.all(jnp.diag(L) > 0)
    return L, ok


# ============================================================================
# Linear System Solving / 线性方程组求解
# ============================================================================

@jit
def cholesky_right_solve(B: chex.Array, L: chex.Array) -> chex.Array:
    """
    Compute B S⁻¹ given the lower Cholesky factor L of S.
    给定 S 的Cholesky因子，计算 B S⁻¹。

    S is symmetric, so B S⁻¹ = (S⁻¹ Bᵀ)ᵀ.
    """
    return cho_solve((L, True), B.T).T


@jit
def right_solve(B: chex.Array, M: chex.Array) -> chex.Array:
    """
    Compute B M⁻¹ as a linear solve, M square.
    以线性方程组求解 B M⁻¹。
    """
    return jnp.linalg.solve(M.T, B.T).T


# ============================================================================
# Gaussian Log-Density / 高斯对数密度
# ============================================================================

@jit
def gaussian_logpdf_cholesky(e: chex.Array, L: chex.Array) -> chex.Scalar:
    """
    log N(e; 0, S) from the lower Cholesky factor L of S.
    利用已有的Cholesky因子计算零均值高斯对数密度。

    log p(e) = -0.5 * [n log(2π) + log|S| + eᵀ S⁻¹ e],  log|S| = 2 Σ log Lᵢᵢ
    """
    z = solve_triangular(L, e, lower=True)
    n = e.shape[0]
    return -0.5 * (n * LOG_2PI + jnp.sum(z ** 2)) - jnp.sum(jnp.log(jnp.diag(L)))


# ============================================================================
# Noise Evaluation / 噪声求值
# ============================================================================

def evaluate_noise(noise: NoiseSpec, x: Vector, u: Vector, p: Parameters, t: Scalar) -> chex.Array:
    """
    Evaluate a noise covariance that is either fixed or a function of (x,u,p,t).
    求值噪声协方差：固定矩阵或 (x,u,p,t) 的函数。
    """
    if callable(noise):
        return jnp.atleast_2d(jnp.asarray(noise(x, u, p, t), dtype=float))
    return noise


def is_symmetric(matrix: chex.Array, tol: float) -> bool:
    """对称性检查 / Symmetry check used at construction"""
    matrix = jnp.asarray(matrix)
    scale = jnp.maximum(1.0, jnp.max(jnp.abs(matrix)))
    return bool(jnp.max(jnp.abs(matrix - matrix.T)) <= tol * scale)

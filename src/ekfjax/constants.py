"""
Constants for ekfjax
ekfjax常量定义

This module contains the numerical constants and default parameters.
本模块包含所有数值常量和默认参数。
"""

import math

import jax.numpy as jnp

# ============================================================================
# Numerical Constants / 数值常量
# ============================================================================

MACHINE_EPSILON = jnp.finfo(jnp.float64).eps  # 机器精度 / Machine epsilon
LOG_2PI = math.log(2.0 * math.pi)  # log(2π)

# Construction-time symmetry check / 构造时对称性检查容差
SYMMETRY_TOLERANCE = 1e-10

# Linear models whose A has |λ| >= this are suspected to be continuous-time
# 特征值模长超过该值的线性模型可能不是离散时间模型
DISCRETE_EIGENVALUE_WARNING = 2.0

# ============================================================================
# Filter Defaults / 滤波器默认参数
# ============================================================================

DEFAULT_SAMPLE_TIME = 1.0  # 默认采样周期 Ts / Default sampling period
DEFAULT_INFLATION = 1.0  # 默认协方差膨胀因子 α / Default covariance inflation
DEFAULT_SEED = 0  # 默认随机种子 / Default PRNG seed

# Central-difference step, ~cbrt(eps) balances truncation and round-off
# 中心差分步长
DEFAULT_FD_STEP = float(MACHINE_EPSILON) ** (1.0 / 3.0)

# ============================================================================
# Jacobian Backends / 雅可比后端
# ============================================================================

JAX_FORWARD_BACKEND = "jax"
JAX_REVERSE_BACKEND = "jax_reverse"
FINITE_DIFFERENCE_BACKEND = "finite_difference"

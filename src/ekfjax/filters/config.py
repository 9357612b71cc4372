"""
Filter Configuration / 滤波器配置
================================

Numerical tuning options that do not change the filtering model itself.
不改变滤波模型本身的数值调节选项。
"""

from dataclasses import dataclass
from typing import Optional

from ..constants import DEFAULT_FD_STEP, DEFAULT_SEED, SYMMETRY_TOLERANCE


@dataclass
class EKFConfig:
    """
    EKF配置参数 / EKF configuration parameters

    Attributes:
        jacobian_backend: 雅可比后端名称 / registered backend name; None picks
            "jax" for out-of-place models and "finite_difference" for in-place ones
        fd_step: 有限差分相对步长 / relative central-difference step
        seed: 采样随机种子 / seed of the filter's own PRNG key
        symmetry_tolerance: 构造检查的对称容差 / tolerance of the construction-time symmetry check
    """
    jacobian_backend: Optional[str] = None
    fd_step: float = DEFAULT_FD_STEP
    seed: int = DEFAULT_SEED
    symmetry_tolerance: float = SYMMETRY_TOLERANCE

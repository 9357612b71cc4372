"""
Numerical linear algebra helpers
数值线性代数工具
"""

from .stable_numerics import (
    symmetrize,
    checked_cholesky,
    cholesky_right_solve,
    right_solve,
    gaussian_logpdf_cholesky,
    evaluate_noise,
    is_symmetric,
)

__all__ = [
    "symmetrize",
    "checked_cholesky",
    "cholesky_right_solve",
    "right_solve",
    "gaussian_logpdf_cholesky",
    "evaluate_noise",
    "is_symmetric",
]

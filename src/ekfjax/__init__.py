"""
ekfjax: Extended Kalman Filtering and Smoothing in JAX
基于JAX的扩展卡尔曼滤波与平滑

Nonlinear state estimation by local linearization, with an RTS smoother
that re-linearizes at the smoothed states.
"""

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Enable double precision by default / 默认启用 64 位精度
import jax, os as _os
_os.environ.setdefault("JAX_ENABLE_X64", "True")
jax.config.update("jax_enable_x64", True)
# ---------------------------------------------------------------------------

from . import core
from . import numerics
from . import filters
from . import utils

from .core import (
    CallConvention,
    CorrectionResult,
    ForwardTrajectoryRecord,
    SmoothedTrajectory,
    MvNormal,
    InnovationCovarianceError,
)
from .filters import (
    EKFConfig,
    KalmanFilter,
    ExtendedKalmanFilter,
    forward_trajectory,
    loglik,
    simulate,
    smooth,
    forward_smooth,
)

__all__ = [
    "core",
    "numerics",
    "filters",
    "utils",
    "CallConvention",
    "CorrectionResult",
    "ForwardTrajectoryRecord",
    "SmoothedTrajectory",
    "MvNormal",
    "InnovationCovarianceError",
    "EKFConfig",
    "KalmanFilter",
    "ExtendedKalmanFilter",
    "forward_trajectory",
    "loglik",
    "simulate",
    "smooth",
    "forward_smooth",
]

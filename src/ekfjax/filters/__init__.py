"""
Filtering module for ekfjax
ekfjax滤波模块

Linear and extended Kalman filters, Jacobian backends, the forward
filtering driver and the RTS smoother.
线性与扩展卡尔曼滤波器、雅可比后端、前向滤波驱动与RTS平滑器。
"""

from .config import EKFConfig
from .jacobians import (
    detect_call_convention,
    ModelFunction,
    JaxJacobian,
    JaxReverseJacobian,
    FiniteDifferenceJacobian,
    make_jacobian,
)
from .kalman import KalmanFilter, kalman_correction
from .ekf import ExtendedKalmanFilter
from .trajectory import forward_trajectory, loglik, simulate
from .smoother import smooth, forward_smooth

__all__ = [
    "EKFConfig",
    "detect_call_convention",
    "ModelFunction",
    "JaxJacobian",
    "JaxReverseJacobian",
    "FiniteDifferenceJacobian",
    "make_jacobian",
    "KalmanFilter",
    "kalman_correction",
    "ExtendedKalmanFilter",
    "forward_trajectory",
    "loglik",
    "simulate",
    "smooth",
    "forward_smooth",
]

"""
Core module for ekfjax
ekfjax核心模块

This module provides core data structures, type definitions and the
Jacobian backend registry.
本模块提供核心数据结构、类型定义和雅可比后端注册表。
"""

from .types import (
    # Type aliases / 类型别名
    Scalar,
    Vector,
    Matrix,
    StateVector,
    InputVector,
    OutputVector,
    Covariance,
    Parameters,
    ModelFn,
    InplaceModelFn,
    JacobianFn,
    NoiseSpec,

    # Data structures / 数据结构
    CallConvention,
    CorrectionResult,
    ForwardTrajectoryRecord,
    SmoothedTrajectory,

    # Protocols / 协议
    JacobianProvider,
    Distribution,
)
from .distributions import MvNormal
from .exceptions import InnovationCovarianceError
from .registry import (
    register_jacobian_backend,
    get_jacobian_backend,
    create_jacobian_provider,
    list_jacobian_backends,
    unregister_jacobian_backend,
)

__all__ = [
    # Type aliases
    "Scalar",
    "Vector",
    "Matrix",
    "StateVector",
    "InputVector",
    "OutputVector",
    "Covariance",
    "Parameters",
    "ModelFn",
    "InplaceModelFn",
    "JacobianFn",
    "NoiseSpec",

    # Data structures
    "CallConvention",
    "CorrectionResult",
    "ForwardTrajectoryRecord",
    "SmoothedTrajectory",
    "MvNormal",
    "InnovationCovarianceError",

    # Protocols
    "JacobianProvider",
    "Distribution",

    # Registry
    "register_jacobian_backend",
    "get_jacobian_backend",
    "create_jacobian_provider",
    "list_jacobian_backends",
    "unregister_jacobian_backend",
]

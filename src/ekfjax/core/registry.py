"""
Jacobian Backend Registry
雅可比后端注册表

Lightweight registry of pluggable differentiation backends. A backend is a
factory ``(model_fn, n_out, n_in, **options) -> JacobianProvider``; predict
and correct only ever see the resulting provider.
可插拔微分后端的轻量级注册表。
"""

from typing import Callable, Dict
import inspect

from .types import JacobianProvider


# ============================================================================
# Global Registry / 全局注册表
# ============================================================================

JACOBIAN_BACKEND_REGISTRY: Dict[str, Callable[..., JacobianProvider]] = {}


# ============================================================================
# Registration Decorator / 注册装饰器
# ============================================================================

def register_jacobian_backend(name: str) -> Callable:
    """Decorator to register Jacobian backends"""
    def decorator(factory: Callable[..., JacobianProvider]) -> Callable[..., JacobianProvider]:
        if name in JACOBIAN_BACKEND_REGISTRY:
            raise ValueError(f"Jacobian backend '{name}' already registered")
        JACOBIAN_BACKEND_REGISTRY[name] = factory
        return factory
    return decorator


# ============================================================================
# Factory Functions / 工厂函数
# ============================================================================

def get_jacobian_backend(name: str) -> Callable[..., JacobianProvider]:
    """Get Jacobian backend factory by name."""
    if name not in JACOBIAN_BACKEND_REGISTRY:
        available = list(JACOBIAN_BACKEND_REGISTRY.keys())
        raise ValueError(
            f"Unknown Jacobian backend: '{name}'. Available: {available}"
        )
    return JACOBIAN_BACKEND_REGISTRY[name]


def create_jacobian_provider(name: str, model_fn, n_out: int, n_in: int, **kwargs) -> JacobianProvider:
    """
    Create a Jacobian provider by backend name
    按名称创建雅可比提供者

    Options not accepted by the backend's constructor are dropped.
    """
    factory = get_jacobian_backend(name)

    sig = inspect.signature(factory)
    accepted = {k: v for k, v in kwargs.items() if k in sig.parameters}
    return factory(model_fn, n_out, n_in, **accepted)


# ============================================================================
# Registry Information / 注册表信息
# ============================================================================

def list_jacobian_backends() -> Dict[str, Callable[..., JacobianProvider]]:
    """List all registered Jacobian backends"""
    return JACOBIAN_BACKEND_REGISTRY.copy()


def unregister_jacobian_backend(name: str) -> None:
    """Remove a backend (mainly for testing)"""
    JACOBIAN_BACKEND_REGISTRY.pop(name, None)

"""
Linearization of dynamics and measurement functions / 动力学与观测函数的线性化
============================================================================

Wraps user model functions behind a uniform calling convention and provides
the built-in Jacobian backends:

- ``"jax"``: forward-mode autodiff of the closure over x (jax.jacfwd)
- ``"jax_reverse"``: reverse-mode autodiff (jax.jacrev)
- ``"finite_difference"``: central differences with preallocated buffers,
  the only backend able to linearize functions that write into a buffer

只对状态 x 求导，u, p, t 保持固定。
"""

import inspect
from typing import Optional

import jax
import jax.numpy as jnp
import numpy as np
import chex

from ..constants import (
    DEFAULT_FD_STEP,
    FINITE_DIFFERENCE_BACKEND,
    JAX_FORWARD_BACKEND,
    JAX_REVERSE_BACKEND,
)
from ..core.registry import create_jacobian_provider, register_jacobian_backend
from ..core.types import (
    CallConvention,
    JacobianFn,
    JacobianProvider,
    Parameters,
    Scalar,
    Vector,
)

# Number of positional parameters of a buffer-writing function f(out, x, u, p, t)
_IN_PLACE_ARITY = 5


def detect_call_convention(fn) -> CallConvention:
    """
    Infer the calling convention from the function signature.
    根据函数签名推断调用约定。

    Five or more required positional parameters mean ``f(out, x, u, p, t)``.
    Functions taking ``*args`` or without an inspectable signature are
    treated as out-of-place.
    """
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return CallConvention.OUT_OF_PLACE

    n_required = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return CallConvention.OUT_OF_PLACE
        if (
            param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
            and param.default is inspect.Parameter.empty
        ):
            n_required += 1

    if n_required >= _IN_PLACE_ARITY:
        return CallConvention.IN_PLACE
    return CallConvention.OUT_OF_PLACE


class ModelFunction:
    """
    User dynamics/measurement function with its calling convention.
    带调用约定的用户模型函数。

    Calling the wrapper always returns a new array regardless of the
    convention of the wrapped function.

    Args:
        fn: 用户函数 / user function, ``f(x,u,p,t)`` or ``f(out,x,u,p,t)``
        n_out: 输出维度 / output dimension
        convention: 调用约定，None 表示自动检测 / None detects from the signature
    """

    def __init__(self, fn, n_out: int, convention: Optional[CallConvention] = None):
        self.fn = fn
        self.n_out = n_out
        self.convention = convention if convention is not None else detect_call_convention(fn)

    @property
    def in_place(self) -> bool:
        return self.convention is CallConvention.IN_PLACE

    def __call__(self, x: Vector, u: Vector, p: Parameters, t: Scalar) -> chex.Array:
        if self.in_place:
            out = np.zeros(self.n_out)
            self.fn(out, np.asarray(x, dtype=float), u, p, t)
            return jnp.asarray(out)
        return jnp.atleast_1d(jnp.asarray(self.fn(x, u, p, t)))

    def __repr__(self) -> str:
        name = getattr(self.fn, "__name__", repr(self.fn))
        return f"ModelFunction({name}, n_out={self.n_out}, {self.convention.value})"


# ============================================================================
# Automatic Differentiation Backends / 自动微分后端
# ============================================================================

@register_jacobian_backend(JAX_FORWARD_BACKEND)
class JaxJacobian:
    """
    Jacobian by forward-mode automatic differentiation.
    前向模式自动微分雅可比。

    The model must be written with jax.numpy and return a new array.
    """

    _transform = staticmethod(jax.jacfwd)

    def __init__(self, model_fn: ModelFunction, n_out: int, n_in: int):
        if model_fn.in_place:
            raise ValueError(
                f"{type(self).__name__} cannot differentiate the buffer-writing function "
                f"{model_fn!r}; use the '{FINITE_DIFFERENCE_BACKEND}' backend or supply a Jacobian"
            )
        self.model_fn = model_fn
        self.n_out = n_out
        self.n_in = n_in

    def __call__(self, x: Vector, u: Vector, p: Parameters, t: Scalar) -> chex.Array:
        x = jnp.asarray(x, dtype=float)
        jac = self._transform(lambda x_: self.model_fn(x_, u, p, t))(x)
        return jnp.reshape(jac, (self.n_out, self.n_in))


@register_jacobian_backend(JAX_REVERSE_BACKEND)
class JaxReverseJacobian(JaxJacobian):
    """反向模式自动微分雅可比 / Jacobian by reverse-mode automatic differentiation"""

    _transform = staticmethod(jax.jacrev)


# ============================================================================
# Finite Difference Backend / 有限差分后端
# ============================================================================

@register_jacobian_backend(FINITE_DIFFERENCE_BACKEND)
class FiniteDifferenceJacobian:
    """
    Central-difference Jacobian with buffers reused across calls.
    中心差分雅可比，跨调用复用预分配缓冲区。

    For buffer-writing functions the perturbed evaluations are written
    straight into preallocated output buffers. The buffers belong to this
    provider: one provider must not be shared between filters running
    concurrently.

    Args:
        model_fn: 模型函数 / wrapped model function
        n_out: 输出维度 / output dimension
        n_in: 状态维度 / state dimension
        step: 相对差分步长 / relative step, scaled by max(1, |x_j|)
    """

    def __init__(self, model_fn: ModelFunction, n_out: int, n_in: int, step: float = DEFAULT_FD_STEP):
        self.model_fn = model_fn
        self.n_out = n_out
        self.n_in = n_in
        self.step = step

        # 预分配缓冲区 / preallocated buffers
        self._x = np.zeros(n_in)
        self._x_pert = np.zeros(n_in)
        self._out_plus = np.zeros(n_out)
        self._out_minus = np.zeros(n_out)
        self._jac = np.zeros((n_out, n_in))

    def _evaluate_into(self, out: np.ndarray, x: np.ndarray, u, p, t) -> None:
        if self.model_fn.in_place:
            self.model_fn.fn(out, x, u, p, t)
        else:
            out[:] = np.asarray(self.model_fn.fn(x, u, p, t), dtype=float).reshape(self.n_out)

    def __call__(self, x: Vector, u: Vector, p: Parameters, t: Scalar) -> chex.Array:
        self._x[:] = np.asarray(x, dtype=float)
        for j in range(self.n_in):
            h = self.step * max(1.0, abs(self._x[j]))

            self._x_pert[:] = self._x
            self._x_pert[j] += h
            h_plus = self._x_pert[j] - self._x[j]
            self._evaluate_into(self._out_plus, self._x_pert, u, p, t)

            self._x_pert[j] = self._x[j] - h
            h_minus = self._x[j] - self._x_pert[j]
            self._evaluate_into(self._out_minus, self._x_pert, u, p, t)

            self._jac[:, j] = (self._out_plus - self._out_minus) / (h_plus + h_minus)
        return jnp.array(self._jac)


# ============================================================================
# Factory / 工厂函数
# ============================================================================

def default_backend(model_fn: ModelFunction) -> str:
    """默认后端：原地函数用有限差分 / finite differences for buffer-writing functions"""
    return FINITE_DIFFERENCE_BACKEND if model_fn.in_place else JAX_FORWARD_BACKEND


def make_jacobian(
    model_fn: ModelFunction,
    n_in: int,
    user_jacobian: Optional[JacobianFn] = None,
    backend: Optional[str] = None,
    **options,
) -> JacobianProvider:
    """
    Return the user's Jacobian if given, otherwise one from the named backend.
    返回用户雅可比，或由指定后端构造的雅可比提供者。

    Args:
        model_fn: 模型函数 / wrapped model function
        n_in: 状态维度 / state dimension
        user_jacobian: 用户提供的 (x,u,p,t) -> matrix / user-supplied Jacobian
        backend: 后端名称，None 表示按调用约定选择 / backend name, None picks by convention
        **options: 后端选项（如 step）/ backend options such as ``step``
    """
    if user_jacobian is not None:
        return user_jacobian
    if backend is None:
        backend = default_backend(model_fn)
    return create_jacobian_provider(backend, model_fn, model_fn.n_out, n_in, **options)

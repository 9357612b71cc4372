"""
Multivariate Gaussian primitive
多元高斯分布

Used for the initial-state prior and for process/measurement noise draws.
"""

from typing import Tuple

import jax
import jax.numpy as jnp
import chex

from ..constants import LOG_2PI


class MvNormal:
    """
    Multivariate normal N(mean, cov) / 多元正态分布

    Sampling uses an eigendecomposition square root so positive
    semi-definite (including all-zero) covariances are valid.
    采样使用特征分解平方根，允许半正定协方差。
    """

    def __init__(self, mean: chex.Array, cov: chex.Array):
        mean = jnp.atleast_1d(jnp.asarray(mean, dtype=float))
        cov = jnp.atleast_2d(jnp.asarray(cov, dtype=float))
        if cov.shape != (mean.shape[0], mean.shape[0]):
            raise ValueError(
                f"Covariance shape {cov.shape} does not match mean of length {mean.shape[0]}"
            )
        self._mean = mean
        self._cov = cov

    @classmethod
    def zero_mean(cls, cov: chex.Array) -> "MvNormal":
        """N(0, cov)"""
        cov = jnp.atleast_2d(jnp.asarray(cov, dtype=float))
        return cls(jnp.zeros(cov.shape[0]), cov)

    @property
    def mean(self) -> chex.Array:
        return self._mean

    @property
    def cov(self) -> chex.Array:
        return self._cov

    @property
    def dim(self) -> int:
        return self._mean.shape[0]

    def _sqrt_cov(self) -> chex.Array:
        eigenvals, eigenvecs = jnp.linalg.eigh(0.5 * (self._cov + self._cov.T))
        return eigenvecs * jnp.sqrt(jnp.maximum(eigenvals, 0.0))

    def sample(self, key: chex.PRNGKey, sample_shape: Tuple[int, ...] = ()) -> chex.Array:
        """
        Draw samples of shape ``sample_shape + (dim,)``.
        抽取样本
        """
        z = jax.random.normal(key, tuple(sample_shape) + (self.dim,))
        return self._mean + z @ self._sqrt_cov().T

    def logpdf(self, x: chex.Array) -> chex.Scalar:
        """对数概率密度 / log-density, requires a positive-definite covariance"""
        L = jnp.linalg.cholesky(self._cov)
        z = jax.scipy.linalg.solve_triangular(L, x - self._mean, lower=True)
        return -0.5 * (self.dim * LOG_2PI + jnp.sum(z ** 2)) - jnp.sum(jnp.log(jnp.diag(L)))

    def __repr__(self) -> str:
        return f"MvNormal(dim={self.dim})"

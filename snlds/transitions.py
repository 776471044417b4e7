"""Markov transition matrices and the simulator's dynamics and emission maps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

import numpy as np

from snlds.polynomial import expand_polynomial_row, sklearn_powers

__all__ = [
    "EMISSION_HIDDEN_DIM",
    "DEFAULT_CYCLIC_SELF_PROB",
    "TRANSITION_ROW_SUM_TOL",
    "CyclicTransition",
    "ProvidedTransition",
    "TransitionPattern",
    "LeakyParams",
    "CosineStateParams",
    "PolynomialStateParams",
    "get_trans_mat",
    "sample_adj_mat",
    "func_leaky_relu_batch",
    "func_cosine_with_sparsity",
]

EMISSION_HIDDEN_DIM = 8
"""Hidden width of the leaky-ReLU emission network and cosine feature maps."""

DEFAULT_CYCLIC_SELF_PROB = 0.9
TRANSITION_ROW_SUM_TOL = 1e-6


@dataclass(frozen=True)
class CyclicTransition:
    """Cyclic chain: diagonal ``self_prob``, forward edge (with wrap) ``1 - self_prob``."""

    self_prob: float = DEFAULT_CYCLIC_SELF_PROB


@dataclass(frozen=True, eq=False)
class ProvidedTransition:
    """Caller-supplied row-stochastic ``[size, size]`` matrix."""

    matrix: np.ndarray


TransitionPattern = Union[CyclicTransition, ProvidedTransition]


def get_trans_mat(pattern: TransitionPattern, size: int) -> np.ndarray:
    """Build the ``[size, size]`` transition matrix for ``pattern``.

    Raises ``ValueError`` for a non-positive size or an invalid pattern.
    """
    if size <= 0:
        raise ValueError(f"transition matrix size must be > 0 (num_states) (got {size})")

    if isinstance(pattern, CyclicTransition):
        self_prob = np.float32(pattern.self_prob)
        if not (np.isfinite(self_prob) and 0.0 <= self_prob <= 1.0):
            raise ValueError(
                "CyclicTransition.self_prob must be finite and in [0, 1] "
                f"(got {pattern.self_prob})"
            )
        if size == 1:
            return np.ones((1, 1), dtype=np.float32)
        trans_mat = np.zeros((size, size), dtype=np.float32)
        rows = np.arange(size)
        trans_mat[rows, rows] = self_prob
        trans_mat[rows, (rows + 1) % size] = np.float32(1.0) - self_prob
        return trans_mat

    if isinstance(pattern, ProvidedTransition):
        matrix = np.asarray(pattern.matrix, dtype=np.float32)
        if matrix.shape != (size, size):
            raise ValueError(
                f"ProvidedTransition expected shape [{size}, {size}], got {list(matrix.shape)}"
            )
        bad = np.argwhere(~(np.isfinite(matrix) & (matrix >= 0.0)))
        if bad.size:
            row_idx, col_idx = (int(v) for v in bad[0])
            raise ValueError(
                f"ProvidedTransition entry at ({row_idx}, {col_idx}) must be finite "
                f"and non-negative (got {matrix[row_idx, col_idx]})"
            )
        for row_idx, row in enumerate(matrix):
            row_sum = float(row.sum(dtype=np.float32))
            deviation = abs(row_sum - 1.0)
            if deviation > TRANSITION_ROW_SUM_TOL:
                raise ValueError(
                    f"ProvidedTransition row {row_idx} must sum to 1 within "
                    f"{TRANSITION_ROW_SUM_TOL} (got {row_sum}, deviation {deviation})"
                )
        return matrix.copy()

    raise TypeError(f"unsupported transition pattern: {pattern!r}")


def sample_adj_mat(rng: np.random.Generator, sparsity_prob: float, dim: int) -> np.ndarray:
    """Bernoulli off-diagonal edges with probability ``1 - sparsity_prob``; diagonal is 1."""
    p_edge = 1.0 - float(sparsity_prob)
    if not 0.0 <= p_edge <= 1.0:
        raise ValueError(f"sparsity_prob must be in [0, 1] (got {sparsity_prob})")
    adj = (rng.random((dim, dim)) < p_edge).astype(np.float32)
    np.fill_diagonal(adj, 1.0)
    return adj


@dataclass(eq=False)
class LeakyParams:
    """Emission weights: ``alphas [dim_obs, H]``, ``omegas [H, dim_latent]``, ``betas [H]``."""

    alphas: np.ndarray
    omegas: np.ndarray
    betas: np.ndarray


def func_leaky_relu_batch(z: np.ndarray, params: LeakyParams) -> np.ndarray:
    """Batched leaky-ReLU emission mapping ``[N, dim_latent]`` to ``[N, dim_obs]``."""
    z = np.asarray(z, dtype=np.float32)
    pre_act = z @ params.omegas.T + params.betas
    activated = np.maximum(pre_act, np.float32(0.2) * pre_act)
    return (activated @ params.alphas.T).astype(np.float32)


@dataclass(eq=False)
class CosineStateParams:
    """Cosine dynamics for one discrete state.

    Shapes: ``alphas (1, D, H)``, ``omegas (H, D, D)``, ``betas (D, H)``, ``adj (D, D)``.
    """

    alphas: np.ndarray
    omegas: np.ndarray
    betas: np.ndarray
    adj: np.ndarray


def func_cosine_with_sparsity(x: np.ndarray, feat: CosineStateParams) -> np.ndarray:
    """Cosine transition mean for one latent vector, masked by the adjacency matrix."""
    x = np.asarray(x, dtype=np.float32)
    hidden_dim = feat.alphas.shape[2]
    if feat.omegas.shape[0] != hidden_dim or feat.betas.shape[1] != hidden_dim:
        raise ValueError("CosineStateParams hidden dimension mismatch across weight tensors")
    masked = x[np.newaxis, :] * feat.adj
    pre_act = np.einsum("kij,ij->ik", feat.omegas, masked)
    features = np.cos(pre_act + feat.betas)
    return np.einsum("ik,ik->i", feat.alphas[0], features).astype(np.float32)


@dataclass(eq=False, init=False)
class PolynomialStateParams:
    """Per-state polynomial dynamics; ``coeffs`` is ``[num_states, dim_latent, num_params]``."""

    coeffs: np.ndarray
    _powers: list[tuple[int, ...]] = field(repr=False)

    def __init__(self, coeffs: np.ndarray, dim_latent: int, degree: int) -> None:
        self.coeffs = np.asarray(coeffs, dtype=np.float32)
        self._powers = sklearn_powers(dim_latent, degree)
        if self.coeffs.ndim != 3 or self.coeffs.shape[2] != len(self._powers):
            raise ValueError(
                f"coeffs must have shape [K, {dim_latent}, {len(self._powers)}] "
                f"(got {list(self.coeffs.shape)})"
            )

    def poly_mean_for_state(self, z: np.ndarray, state: int) -> np.ndarray:
        """Polynomial transition mean for one latent vector and discrete state."""
        features = expand_polynomial_row(z, self._powers)
        return (self.coeffs[state] @ features).astype(np.float32)

    def poly_means_rows(self, z_prev: np.ndarray, state_idx: np.ndarray) -> np.ndarray:
        """Transition means for a batch of latents ``[N, D]`` with per-row states ``[N]``."""
        z_prev = np.asarray(z_prev, dtype=np.float32)
        means = [self.poly_mean_for_state(row, int(state)) for row, state in zip(z_prev, state_idx)]
        if not means:
            return np.zeros((0, z_prev.shape[1]), dtype=np.float32)
        return np.stack(means)
"""Polynomial feature expansion compatible with scikit-learn ``PolynomialFeatures``.

The feature order matches ``PolynomialFeatures(degree, include_bias=True,
interaction_only=False)``: the bias term first, then for each degree the
exponent vectors produced by ``combinations_with_replacement``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from itertools import combinations_with_replacement

import numpy as np

__all__ = [
    "comb",
    "sklearn_poly_output_count",
    "sklearn_powers",
    "expand_polynomial_row",
]


def comb(n: int, k: int) -> int:
    """Binomial coefficient C(n, k); zero when ``k > n``."""
    return math.comb(n, k)


def sklearn_poly_output_count(dim_latent: int, degree: int) -> int:
    """Number of polynomial features: ``C(dim_latent + degree, degree)``."""
    return comb(dim_latent + degree, degree)


def sklearn_powers(n_features: int, max_degree: int) -> list[tuple[int, ...]]:
    """Exponent vectors in the same order as ``PolynomialFeatures.powers_``."""
    powers: list[tuple[int, ...]] = [(0,) * n_features]
    for degree in range(1, max_degree + 1):
        for indices in combinations_with_replacement(range(n_features), degree):
            powers.append(tuple(indices.count(feature) for feature in range(n_features)))
    return powers


def expand_polynomial_row(x: Sequence[float], powers: Sequence[Sequence[int]]) -> np.ndarray:
    """Expand one input row into its polynomial features (float32)."""
    row = np.asarray(x, dtype=np.float32)
    exponents = np.asarray(powers, dtype=np.int64).reshape(len(powers), row.shape[0])
    features = np.prod(np.power(row[np.newaxis, :].astype(np.float64), exponents), axis=1)
    return features.astype(np.float32)
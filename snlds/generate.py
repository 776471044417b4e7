"""Synthetic switching-dynamics sequence generation.

Each split is rolled from one seeded random stream in a fixed order:
train, then test, then eval. Adding an eval split therefore leaves the
train and test data for a given seed unchanged.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Union

import numpy as np

from snlds.polynomial import sklearn_poly_output_count
from snlds.render import draw_sequence
from snlds.transitions import (
    EMISSION_HIDDEN_DIM,
    CosineStateParams,
    CyclicTransition,
    LeakyParams,
    PolynomialStateParams,
    TransitionPattern,
    func_cosine_with_sparsity,
    func_leaky_relu_batch,
    get_trans_mat,
    sample_adj_mat,
)

__all__ = [
    "DEFAULT_INIT_NOISE_STD",
    "DEFAULT_INIT_MEAN_STD",
    "DEFAULT_TRANSITION_STEP_VAR",
    "SimulatorKind",
    "VectorObservation",
    "ImageObservation",
    "ObservationKind",
    "GenConfig",
    "TrainTest",
    "generate_train_test",
    "eval_count_for",
    "generate_shard",
]

DEFAULT_INIT_NOISE_STD = 0.1
"""Std-dev of the jitter added to ``z_0`` around each per-state init mean."""
DEFAULT_INIT_MEAN_STD = 0.7
"""Std-dev of the prior the per-state init means are drawn from."""
DEFAULT_TRANSITION_STEP_VAR = 0.05
"""Variance of the step noise added to ``z_t`` at every transition."""

_WEIGHT_STD = 0.5
_U64_MASK = (1 << 64) - 1


class SimulatorKind(Enum):
    """Family of the latent transition dynamics."""

    COSINE = "cosine"
    POLY = "poly"


@dataclass(frozen=True)
class VectorObservation:
    """Observations from the leaky-ReLU emission network."""


@dataclass(frozen=True)
class ImageObservation:
    """Observations are 2-D latents rendered as flat ``res * res * 3`` RGB frames."""

    res: int


ObservationKind = Union[VectorObservation, ImageObservation]


@dataclass
class GenConfig:
    """Simulator and dataset-size settings."""

    seed: int = 24
    num_states: int = 3
    dim_obs: int = 2
    dim_latent: int = 2
    seq_length: int = 200
    num_samples: int = 5000
    sparsity_prob: float = 0.0
    kind: SimulatorKind = SimulatorKind.COSINE
    poly_degree: int = 3
    init_noise_std: float = DEFAULT_INIT_NOISE_STD
    init_mean_std: float = DEFAULT_INIT_MEAN_STD
    transition_step_var: float = DEFAULT_TRANSITION_STEP_VAR
    emission_hidden_dim: int = EMISSION_HIDDEN_DIM
    initial_distribution: Optional[Sequence[float]] = None
    observation: ObservationKind = field(default_factory=VectorObservation)
    transition: TransitionPattern = field(default_factory=CyclicTransition)
    eval_fraction: float = 0.0


@dataclass(eq=False)
class TrainTest:
    """Generated splits plus the ground-truth Markov chain parameters."""

    latents_train: np.ndarray
    obs_train: np.ndarray
    states_train: np.ndarray
    latents_test: np.ndarray
    obs_test: np.ndarray
    states_test: np.ndarray
    latents_eval: np.ndarray
    obs_eval: np.ndarray
    states_eval: np.ndarray
    q_true: np.ndarray
    pi_true: np.ndarray


def generate_train_test(cfg: GenConfig) -> TrainTest:
    """Generate train (``num_samples``), test (``max(1, num_samples // 10)``) and eval splits.

    Raises ``ValueError`` when any simulator setting is invalid.
    """
    n_train = cfg.num_samples
    n_test = max(1, cfg.num_samples // 10)
    n_eval = eval_count_for(cfg)
    rng = np.random.default_rng(cfg.seed & _U64_MASK)
    return _generate_split(rng, cfg, n_train, n_test, n_eval)


def eval_count_for(cfg: GenConfig) -> int:
    """Size of the eval split: ``num_samples * eval_fraction`` rounded half away from zero."""
    value = float(np.float32(cfg.num_samples) * np.float32(cfg.eval_fraction))
    if not math.isfinite(value) or value <= 0.0:
        return 0
    return int(math.floor(value + 0.5))


def generate_shard(cfg: GenConfig, shard_idx: int, num_shards: int) -> TrainTest:
    """Generate shard ``shard_idx`` of ``num_shards``.

    Train samples are split evenly with the remainder spread over the first
    shards; the whole test and eval batches live in shard 0. Each shard is
    seeded with ``seed + shard_idx``.
    """
    if not 0 <= shard_idx < num_shards:
        raise ValueError(f"shard_idx {shard_idx} out of range for {num_shards} shards")
    base, remainder = divmod(cfg.num_samples, num_shards)
    n_train = base + 1 if shard_idx < remainder else base
    n_test = max(1, cfg.num_samples // 10) if shard_idx == 0 else 0
    n_eval = eval_count_for(cfg) if shard_idx == 0 else 0
    rng = np.random.default_rng((cfg.seed + shard_idx) & _U64_MASK)
    return _generate_split(rng, cfg, n_train, n_test, n_eval)


def _validate_simulator_scalars(cfg: GenConfig) -> None:
    if cfg.num_states <= 0:
        raise ValueError(f"num_states must be > 0 (got {cfg.num_states})")
    if not (math.isfinite(cfg.init_noise_std) and cfg.init_noise_std > 0.0):
        raise ValueError(f"init_noise_std must be finite and > 0 (got {cfg.init_noise_std})")
    if not (math.isfinite(cfg.init_mean_std) and cfg.init_mean_std > 0.0):
        raise ValueError(f"init_mean_std must be finite and > 0 (got {cfg.init_mean_std})")
    if not (math.isfinite(cfg.transition_step_var) and cfg.transition_step_var >= 0.0):
        raise ValueError(
            f"transition_step_var must be finite and >= 0 (got {cfg.transition_step_var})"
        )
    if not (math.isfinite(cfg.eval_fraction) and 0.0 <= cfg.eval_fraction <= 1.0):
        raise ValueError(f"eval_fraction must be finite and in [0, 1] (got {cfg.eval_fraction})")
    if isinstance(cfg.observation, ImageObservation):
        res = cfg.observation.res
        if res <= 0:
            raise ValueError("observation Image.res must be > 0")
        if cfg.dim_latent != 2:
            raise ValueError(
                f"observation Image requires dim_latent == 2 (got {cfg.dim_latent})"
            )
        expected = res * res * 3
        if cfg.dim_obs != expected:
            raise ValueError(
                f"observation Image {{ res: {res} }} requires dim_obs == {expected} "
                f"(got {cfg.dim_obs})"
            )


def _resolved_pi(cfg: GenConfig) -> np.ndarray:
    if cfg.initial_distribution is None:
        return np.full(cfg.num_states, np.float32(1.0) / np.float32(cfg.num_states), np.float32)
    probs = np.asarray(cfg.initial_distribution, dtype=np.float32)
    if probs.shape != (cfg.num_states,):
        raise ValueError(
            f"initial_distribution length {probs.size} != num_states {cfg.num_states}"
        )
    if not np.all(np.isfinite(probs) & (probs >= 0.0)):
        raise ValueError("initial_distribution must be all finite and non-negative")
    total = float(probs.sum(dtype=np.float32))
    if abs(total - 1.0) > 1e-6:
        raise ValueError(f"initial_distribution must sum to 1 (got {total})")
    return probs.copy()


def _generate_split(
    rng: np.random.Generator, cfg: GenConfig, n_train: int, n_test: int, n_eval: int
) -> TrainTest:
    _validate_simulator_scalars(cfg)
    q_true = get_trans_mat(cfg.transition, cfg.num_states)
    pi = _resolved_pi(cfg)
    is_image = isinstance(cfg.observation, ImageObservation)

    # The order train -> test -> eval keeps earlier splits stable for a seed.
    splits = [
        _roll_sequences(rng, cfg, n, pi, q_true, skip_obs=is_image)
        for n in (n_train, n_test, n_eval)
    ]
    if is_image:
        res = cfg.observation.res
        splits = [
            (latents, _render_obs_batch(latents, res), states)
            for latents, _, states in splits
        ]
    (lt, ot, st), (lte, ote, ste), (lev, oev, sev) = splits
    return TrainTest(
        latents_train=lt,
        obs_train=ot,
        states_train=st,
        latents_test=lte,
        obs_test=ote,
        states_test=ste,
        latents_eval=lev,
        obs_eval=oev,
        states_eval=sev,
        q_true=q_true,
        pi_true=pi,
    )


def _render_obs_batch(latents: np.ndarray, res: int) -> np.ndarray:
    num_samples, seq_len = latents.shape[:2]
    obs = np.zeros((num_samples, seq_len, res * res * 3), dtype=np.float32)
    for sample_idx, trajectory in enumerate(latents):
        obs[sample_idx] = draw_sequence(trajectory, res).reshape(seq_len, -1)
    return obs


def _normal(rng: np.random.Generator, std: float, shape) -> np.ndarray:
    return rng.normal(0.0, std, shape).astype(np.float32)


def _rand_leaky(
    rng: np.random.Generator, dim_obs: int, dim_latent: int, hidden_dim: int
) -> LeakyParams:
    return LeakyParams(
        alphas=_normal(rng, _WEIGHT_STD, (dim_obs, hidden_dim)),
        omegas=_normal(rng, _WEIGHT_STD, (hidden_dim, dim_latent)),
        betas=_normal(rng, _WEIGHT_STD, (hidden_dim,)),
    )


def _rand_cosine_state(
    rng: np.random.Generator, dim_latent: int, sparsity_prob: float, hidden_dim: int
) -> CosineStateParams:
    alphas = _normal(rng, _WEIGHT_STD, (1, dim_latent, hidden_dim))
    omegas = _normal(rng, _WEIGHT_STD, (hidden_dim, dim_latent, dim_latent))
    betas = _normal(rng, _WEIGHT_STD, (dim_latent, hidden_dim))
    adj = sample_adj_mat(rng, sparsity_prob, dim_latent)
    return CosineStateParams(alphas=alphas, omegas=omegas, betas=betas, adj=adj)


def _rand_poly(rng: np.random.Generator, cfg: GenConfig) -> PolynomialStateParams:
    num_params = sklearn_poly_output_count(cfg.dim_latent, cfg.poly_degree)
    coeffs = rng.random((cfg.num_states, cfg.dim_latent, num_params), dtype=np.float32)
    coeffs -= np.float32(0.5)
    coeffs[..., 1:] *= np.float32(0.05)
    return PolynomialStateParams(coeffs, cfg.dim_latent, cfg.poly_degree)


def _sample_indices(rng: np.random.Generator, cum_probs: np.ndarray) -> np.ndarray:
    """Draw one index per row of cumulative probabilities ``[N, K]``."""
    draws = rng.random(cum_probs.shape[0], dtype=np.float32)
    picks = np.count_nonzero(cum_probs <= draws[:, np.newaxis], axis=1)
    return np.minimum(picks, cum_probs.shape[1] - 1)


def _roll_sequences(
    rng: np.random.Generator,
    cfg: GenConfig,
    n: int,
    pi: np.ndarray,
    q: np.ndarray,
    skip_obs: bool,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    seq_len, k, dim_latent = cfg.seq_length, cfg.num_states, cfg.dim_latent
    hidden_dim = cfg.emission_hidden_dim
    leaky = _rand_leaky(rng, cfg.dim_obs, dim_latent, hidden_dim)

    if cfg.kind is SimulatorKind.COSINE:
        cosine_params = [
            _rand_cosine_state(rng, dim_latent, cfg.sparsity_prob, hidden_dim) for _ in range(k)
        ]
        poly = None
    else:
        cosine_params = []
        poly = _rand_poly(rng, cfg)

    latents = np.zeros((n, seq_len, dim_latent), dtype=np.float32)
    obs = np.zeros((n, seq_len, 0 if skip_obs else cfg.dim_obs), dtype=np.float32)
    states = np.zeros((n, seq_len), dtype=np.int32)

    init_means = _normal(rng, cfg.init_mean_std, (k, dim_latent))
    if seq_len == 0:
        return latents, obs, states

    cum_pi = np.broadcast_to(np.cumsum(pi, dtype=np.float32), (n, k))
    init_states = _sample_indices(rng, cum_pi)
    states[:, 0] = init_states
    latents[:, 0] = init_means[init_states] + _normal(rng, cfg.init_noise_std, (n, dim_latent))
    if not skip_obs:
        obs[:, 0] = func_leaky_relu_batch(latents[:, 0], leaky)

    cum_q = np.cumsum(q, axis=1, dtype=np.float32)
    step_std = math.sqrt(cfg.transition_step_var)
    for t in range(1, seq_len):
        next_states = _sample_indices(rng, cum_q[states[:, t - 1]])
        states[:, t] = next_states
        z_prev = latents[:, t - 1]
        if poly is not None:
            means = poly.poly_means_rows(z_prev, next_states)
        else:
            means = np.array(
                [
                    func_cosine_with_sparsity(z, cosine_params[state])
                    for z, state in zip(z_prev, next_states)
                ],
                dtype=np.float32,
            ).reshape(n, dim_latent)
        latents[:, t] = means + _normal(rng, step_std, (n, dim_latent))
        if not skip_obs:
            obs[:, t] = func_leaky_relu_batch(latents[:, t], leaky)

    return latents, obs, states
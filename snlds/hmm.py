"""Log-domain forward and backward passes for a hidden Markov model."""

from __future__ import annotations

import numpy as np

__all__ = ["logsumexp", "log_forward", "log_backward"]


def logsumexp(x: np.ndarray, axis: int) -> np.ndarray:
    """Numerically stable log-sum-exp along ``axis``, keeping that axis with size 1."""
    x = np.asarray(x)
    shift = np.max(x, axis=axis, keepdims=True)
    shift = np.where(np.isfinite(shift), shift, 0.0)
    with np.errstate(divide="ignore"):
        return np.log(np.sum(np.exp(x - shift), axis=axis, keepdims=True)) + shift


def _check_evidence(log_local_evidence: np.ndarray) -> tuple[int, int, int]:
    if log_local_evidence.ndim != 3:
        raise ValueError(
            f"log_local_evidence must be [N, T, K] (got shape {log_local_evidence.shape})"
        )
    n, t_len, k = log_local_evidence.shape
    if t_len == 0:
        raise ValueError("log_local_evidence must have at least one timestep")
    return n, t_len, k


def _check_trans(log_trans: np.ndarray, k: int) -> None:
    if log_trans.shape != (k, k):
        raise ValueError(f"log_trans must be [{k}, {k}] (got shape {log_trans.shape})")


def log_forward(
    log_local_evidence: np.ndarray,
    log_pi: np.ndarray,
    log_trans: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """Forward pass.

    ``log_local_evidence`` is ``[N, T, K]``, ``log_pi`` is ``[K]`` and
    ``log_trans[i, j]`` is ``log p(s_t = j | s_{t-1} = i)``. Returns the
    normalised ``log_alpha`` ``[N, T, K]`` and the per-step log normalisers
    ``log_z`` ``[N, T]``.
    """
    evidence = np.asarray(log_local_evidence, dtype=np.float64)
    log_pi = np.asarray(log_pi, dtype=np.float64)
    log_trans = np.asarray(log_trans, dtype=np.float64)
    n, t_len, k = _check_evidence(evidence)
    if log_pi.shape != (k,):
        raise ValueError(f"log_pi must be [{k}] (got shape {log_pi.shape})")
    _check_trans(log_trans, k)

    log_alpha = np.empty((n, t_len, k))
    log_z = np.empty((n, t_len))

    unnorm = log_pi[np.newaxis, :] + evidence[:, 0, :]
    for t in range(t_len):
        if t > 0:
            prev = log_alpha[:, t - 1, :, np.newaxis]  # [N, K_from, 1]
            log_pred = logsumexp(prev + log_trans[np.newaxis], axis=1)[:, 0, :]
            unnorm = log_pred + evidence[:, t, :]
        step_z = logsumexp(unnorm, axis=1)
        log_alpha[:, t, :] = unnorm - step_z
        log_z[:, t] = step_z[:, 0]
    return log_alpha, log_z


def log_backward(
    log_local_evidence: np.ndarray,
    log_trans: np.ndarray,
    log_z: np.ndarray,
) -> np.ndarray:
    """Backward pass returning the normalised ``log_beta`` ``[N, T, K]``.

    ``log_z`` are the normalisers returned by :func:`log_forward`.
    """
    evidence = np.asarray(log_local_evidence, dtype=np.float64)
    log_trans = np.asarray(log_trans, dtype=np.float64)
    log_z = np.asarray(log_z, dtype=np.float64)
    n, t_len, k = _check_evidence(evidence)
    _check_trans(log_trans, k)
    if log_z.shape != (n, t_len):
        raise ValueError(f"log_z must be [{n}, {t_len}] (got shape {log_z.shape})")

    log_beta = np.zeros((n, t_len, k))
    for t in reversed(range(t_len - 1)):
        combined = log_beta[:, t + 1, :] + evidence[:, t + 1, :] - log_z[:, t + 1, np.newaxis]
        scores = combined[:, np.newaxis, :] + log_trans[np.newaxis]  # [N, K_from, K_to]
        log_beta[:, t, :] = logsumexp(scores, axis=2)[:, :, 0]
    return log_beta
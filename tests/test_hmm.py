import math

import numpy as np
import pytest

from snlds.hmm import log_backward, log_forward, logsumexp


def uniform_log(k):
    return np.full(k, -math.log(k))


def uniform_log_trans(k):
    return np.full((k, k), -math.log(k))


def test_forward_shapes_and_finite():
    n, t, k = 2, 4, 3
    evidence = np.zeros((n, t, k))
    log_alpha, log_z = log_forward(evidence, uniform_log(k), uniform_log_trans(k))
    assert log_alpha.shape == (n, t, k)
    assert log_z.shape == (n, t)
    assert np.all(np.isfinite(log_alpha))
    assert np.all(np.isfinite(log_z))


def test_backward_shapes_and_finite():
    n, t, k = 2, 4, 3
    evidence = np.zeros((n, t, k))
    _, log_z = log_forward(evidence, uniform_log(k), uniform_log_trans(k))
    log_beta = log_backward(evidence, uniform_log_trans(k), log_z)
    assert log_beta.shape == (n, t, k)
    assert np.all(np.isfinite(log_beta))


def test_forward_uniform_alpha_rows_sum_to_one():
    n, t, k = 1, 3, 2
    evidence = np.zeros((n, t, k))
    log_alpha, _ = log_forward(evidence, uniform_log(k), uniform_log_trans(k))
    sums = np.exp(log_alpha).sum(axis=-1)
    np.testing.assert_allclose(sums, 1.0, atol=1e-5)


def test_alpha_beta_posterior_sums_to_one():
    n, t, k = 2, 5, 3
    evidence = np.zeros((n, t, k))
    log_trans = uniform_log_trans(k)
    log_alpha, log_z = log_forward(evidence, uniform_log(k), log_trans)
    log_beta = log_backward(evidence, log_trans, log_z)
    sums = np.exp(log_alpha + log_beta).sum(axis=-1)
    np.testing.assert_allclose(sums, 1.0, atol=1e-4)


def test_deterministic_spike_dominates():
    n, t, k = 1, 3, 3
    evidence = np.full((n, t, k), -1000.0)
    evidence[:, :, 0] = 0.0
    log_alpha, _ = log_forward(evidence, uniform_log(k), uniform_log_trans(k))
    assert log_alpha.shape == (n, t, k)
    for step in range(t):
        assert log_alpha[0, step, 0] > math.log(0.99)
        assert log_alpha[0, step, 1] < math.log(0.01)
        assert log_alpha[0, step, 2] < math.log(0.01)


def test_posterior_with_informative_evidence_sums_to_one():
    rng = np.random.default_rng(0)
    n, t, k = 3, 6, 4
    evidence = rng.normal(size=(n, t, k))
    trans = rng.random((k, k)) + 0.1
    log_trans = np.log(trans / trans.sum(axis=1, keepdims=True))
    log_alpha, log_z = log_forward(evidence, uniform_log(k), log_trans)
    log_beta = log_backward(evidence, log_trans, log_z)
    sums = np.exp(log_alpha + log_beta).sum(axis=-1)
    np.testing.assert_allclose(sums, 1.0, atol=1e-8)


def test_log_z_uniform_value():
    # Zero evidence with uniform prior: each normaliser is log(1) = 0.
    _, log_z = log_forward(np.zeros((1, 3, 2)), uniform_log(2), uniform_log_trans(2))
    np.testing.assert_allclose(log_z, 0.0, atol=1e-12)


def test_last_beta_is_zero():
    evidence = np.random.default_rng(1).normal(size=(2, 4, 3))
    _, log_z = log_forward(evidence, uniform_log(3), uniform_log_trans(3))
    log_beta = log_backward(evidence, uniform_log_trans(3), log_z)
    np.testing.assert_array_equal(log_beta[:, -1, :], 0.0)


def test_logsumexp_keeps_axis():
    x = np.log(np.array([[1.0, 2.0, 3.0]]))
    out = logsumexp(x, axis=1)
    assert out.shape == (1, 1)
    assert out[0, 0] == pytest.approx(math.log(6.0))


def test_logsumexp_large_values_stable():
    out = logsumexp(np.array([1000.0, 1000.0]), axis=0)
    assert out[0] == pytest.approx(1000.0 + math.log(2.0))


def test_forward_rejects_bad_pi_shape():
    with pytest.raises(ValueError, match="log_pi"):
        log_forward(np.zeros((1, 2, 3)), uniform_log(2), uniform_log_trans(3))


def test_backward_rejects_bad_log_z_shape():
    with pytest.raises(ValueError, match="log_z"):
        log_backward(np.zeros((1, 2, 3)), uniform_log_trans(3), np.zeros((1, 3)))
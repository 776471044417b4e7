import numpy as np
import pytest

from snlds.polynomial import (
    comb,
    expand_polynomial_row,
    sklearn_poly_output_count,
    sklearn_powers,
)


def test_comb_matches_scipy_math():
    assert comb(5, 3) == 10
    assert comb(6, 6) == 1
    assert comb(10, 2) == 45
    assert sklearn_poly_output_count(2, 3) == 10


def test_comb_k_greater_than_n_is_zero():
    assert comb(2, 5) == 0


def test_sklearn_example_degree2_two_features():
    powers = sklearn_powers(2, 2)
    assert len(powers) == 6

    a, b = 3.0, 4.0
    row = expand_polynomial_row([a, b], powers)

    assert row[0] == pytest.approx(1.0, abs=1e-6)
    assert row[1] == pytest.approx(a, abs=1e-6)
    assert row[2] == pytest.approx(b, abs=1e-6)
    assert row[3] == pytest.approx(a * a, abs=1e-6)
    assert row[4] == pytest.approx(a * b, abs=1e-6)
    assert row[5] == pytest.approx(b * b, abs=1e-6)


def test_powers_order_degree2_two_features():
    assert sklearn_powers(2, 2) == [(0, 0), (1, 0), (0, 1), (2, 0), (1, 1), (0, 2)]


@pytest.mark.parametrize("n_features,degree", [(1, 1), (2, 3), (3, 2), (4, 3)])
def test_powers_count_matches_output_count(n_features, degree):
    powers = sklearn_powers(n_features, degree)
    assert len(powers) == sklearn_poly_output_count(n_features, degree)
    assert all(sum(p) <= degree for p in powers)
    assert len(set(powers)) == len(powers)


def test_expand_zero_input_only_bias_nonzero():
    powers = sklearn_powers(3, 2)
    row = expand_polynomial_row([0.0, 0.0, 0.0], powers)
    assert row.dtype == np.float32
    assert row[0] == 1.0
    assert np.all(row[1:] == 0.0)
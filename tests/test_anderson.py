"""Tests for the Anderson accelerator."""

import numpy as np
import pytest

from scfsolve.anderson import AndersonAccelerator


def test_first_step_is_plain_update():
    """Without history the proposal is rho + R."""
    acc = AndersonAccelerator()
    rho = np.array([1.0, 2.0, 3.0])
    res = np.array([0.1, -0.2, 0.3])
    proposal = acc.extrapolate(rho, res)
    np.testing.assert_allclose(proposal, rho + res)
    assert len(acc) == 1


def test_second_step_solves_scalar_affine():
    """For F(x) = 0.9x + 0.1 the second proposal is the fixed point 1."""
    acc = AndersonAccelerator()
    F = lambda x: 0.9 * x + 0.1

    x0 = np.array([0.0])
    x1 = acc.extrapolate(x0, F(x0) - x0)
    np.testing.assert_allclose(x1, [0.1])

    x2 = acc.extrapolate(x1, F(x1) - x1)
    np.testing.assert_allclose(x2, [1.0], atol=1e-12)


def test_history_appended_after_proposal():
    """The current pair is stored after extrapolating, as independent copies."""
    acc = AndersonAccelerator()
    rho = np.array([1.0, 1.0])
    res = np.array([0.5, -0.5])
    acc.extrapolate(rho, res)

    rho[:] = 0.0
    res[:] = 0.0
    np.testing.assert_allclose(acc.rho_history[-1], [1.0, 1.0])
    np.testing.assert_allclose(acc.res_history[-1], [0.5, -0.5])


def test_history_window():
    acc = AndersonAccelerator(max_hist=2)
    for i in range(4):
        acc.extrapolate(np.array([float(i), 0.0]), np.array([1.0 / (i + 1), 1.0]))
    assert len(acc) == 2
    np.testing.assert_allclose(acc.rho_history[0], [2.0, 0.0])
    np.testing.assert_allclose(acc.rho_history[1], [3.0, 0.0])


def test_unbounded_history_grows():
    acc = AndersonAccelerator()
    for i in range(10):
        acc.extrapolate(np.array([float(i)]), np.array([1.0 / (i + 1)]))
    assert len(acc) == 10


def test_shape_preserved():
    acc = AndersonAccelerator()
    rho = np.ones((2, 3))
    res = np.full((2, 3), 0.1)
    assert acc.extrapolate(rho, res).shape == (2, 3)
    assert acc.extrapolate(rho + res, 0.5 * res).shape == (2, 3)


def test_reset():
    acc = AndersonAccelerator()
    acc.extrapolate(np.zeros(2), np.ones(2))
    acc.reset()
    assert len(acc) == 0
    np.testing.assert_allclose(acc.extrapolate(np.zeros(2), np.ones(2)), np.ones(2))


def test_invalid_window():
    with pytest.raises(ValueError, match="max_hist"):
        AndersonAccelerator(max_hist=0)

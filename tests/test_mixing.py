"""Tests for mixing and preconditioners."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest

jax.config.update("jax_enable_x64", True)

from scfsolve.mixing import (
    simple_mixing, reciprocal_g2, model_dielectric,
    KerkerPreconditioner, DielectricPreconditioner,
)
from scfsolve.constants import TWO_PI


def _cos_mode(n, k):
    x = np.arange(n) / n
    return np.cos(TWO_PI * k * x)


def test_simple_mixing():
    rho_in = jnp.array([1.0, 2.0])
    rho_out = jnp.array([3.0, 0.0])
    mixed = simple_mixing(rho_in, rho_out, alpha=0.25)
    np.testing.assert_allclose(mixed, [1.5, 1.5], atol=1e-14)
    # Same as a damped step on the residual
    np.testing.assert_allclose(mixed, rho_in + 0.25 * (rho_out - rho_in), atol=1e-14)


def test_reciprocal_g2_fft_order():
    """For L = 2 pi the wavevectors are the integer FFT frequencies."""
    g2 = reciprocal_g2((8,), (float(TWO_PI),))
    expected = np.array([0, 1, 2, 3, -4, -3, -2, -1], dtype=float)**2
    np.testing.assert_allclose(g2, expected, atol=1e-12)


def test_reciprocal_g2_3d():
    g2 = reciprocal_g2((4, 6, 8), (5.0, 6.0, 7.0))
    assert g2.shape == (4, 6, 8)
    assert float(g2[0, 0, 0]) == 0.0
    np.testing.assert_allclose(g2[1, 0, 0], (TWO_PI / 5.0)**2, rtol=1e-12)
    np.testing.assert_allclose(g2[0, 1, 1], (TWO_PI / 6.0)**2 + (TWO_PI / 7.0)**2, rtol=1e-12)


def test_reciprocal_g2_dimension_mismatch():
    with pytest.raises(ValueError, match="box lengths"):
        reciprocal_g2((4, 4), (1.0,))


def test_model_dielectric_metal():
    g2 = jnp.array([0.0, 0.25, 1.0, 4.0])
    eps = model_dielectric(g2, kappa=1.0)
    np.testing.assert_allclose(eps, [1.0, 5.0, 2.0, 1.25], rtol=1e-12)


def test_model_dielectric_insulator_bounded():
    g2 = reciprocal_g2((64,), (200.0,))
    eps = model_dielectric(g2, kappa=1.0, eps_r=12.0)
    assert float(jnp.max(eps)) < 12.0
    assert float(jnp.min(eps)) == 1.0
    # Large eps_r approaches the metal
    eps_metal = model_dielectric(g2, kappa=1.0)
    eps_big = model_dielectric(g2, kappa=1.0, eps_r=1e12)
    np.testing.assert_allclose(eps_big, eps_metal, rtol=1e-6)


@pytest.mark.parametrize("kwargs", [
    {"kappa": 0.0},
    {"kappa": 1.0, "eps_r": 1.0},
    {"kappa": 1.0, "eps_r": 0.5},
])
def test_model_dielectric_invalid(kwargs):
    with pytest.raises(ValueError):
        model_dielectric(jnp.ones(3), **kwargs)


def test_kerker_preserves_charge():
    """The G=0 component (mean) of the residual passes unchanged."""
    n, length = 32, 20.0
    kerker = KerkerPreconditioner(reciprocal_g2((n,), (length,)), q0=1.0)
    residual = 0.7 + _cos_mode(n, 1) + 0.3 * _cos_mode(n, 5)
    prec = kerker(residual)
    np.testing.assert_allclose(jnp.mean(prec), 0.7, atol=1e-12)

    constant = np.full(n, 2.5)
    np.testing.assert_allclose(kerker(constant), constant, atol=1e-12)


def test_kerker_damps_long_wavelengths():
    """Each Fourier mode is scaled by |G|^2 / (|G|^2 + q0^2)."""
    n, length, q0 = 32, 20.0, 1.0
    kerker = KerkerPreconditioner(reciprocal_g2((n,), (length,)), q0=q0)
    for k in (1, 3, 8):
        q2 = (TWO_PI * k / length)**2
        mode = _cos_mode(n, k)
        np.testing.assert_allclose(kerker(mode), q2 / (q2 + q0**2) * mode, atol=1e-12)


def test_kerker_real_and_complex():
    n = 16
    kerker = KerkerPreconditioner(reciprocal_g2((n,), (10.0,)))
    assert not jnp.iscomplexobj(kerker(_cos_mode(n, 2)))
    assert jnp.iscomplexobj(kerker(1j * _cos_mode(n, 2)))


def test_kerker_shape_mismatch():
    kerker = KerkerPreconditioner(reciprocal_g2((16,), (10.0,)))
    with pytest.raises(ValueError, match="grid shape"):
        kerker(np.ones(8))


def test_kerker_invalid_q0():
    with pytest.raises(ValueError, match="q0"):
        KerkerPreconditioner(jnp.ones(4), q0=0.0)


def test_dielectric_preconditioner_inverts_model():
    """K(G) * eps(G) = 1 for every G."""
    g2 = reciprocal_g2((8, 8), (15.0, 15.0))
    prec = DielectricPreconditioner(g2, kappa=1.2, eps_r=10.0)
    eps = model_dielectric(g2, kappa=1.2, eps_r=10.0)
    np.testing.assert_allclose(prec.kernel * eps, 1.0, rtol=1e-12)

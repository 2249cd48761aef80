"""Density mixing and residual preconditioners.

Implements:
1. Simple (linear) mixing
2. Kerker preconditioning (metals)
3. Model-dielectric preconditioning (insulators / semiconductors)

Preconditioners act on a real-space residual on a periodic grid: the
residual is Fourier transformed, each component G is scaled by a kernel
K(G), and the result is transformed back. K(G=0) = 1 in all cases, so the
total charge of the residual is preserved.
"""

import jax.numpy as jnp
import numpy as np

from scfsolve.constants import TWO_PI


def simple_mixing(rho_in, rho_out, alpha: float = 0.3):
    """Simple linear mixing.

    rho_new = (1 - alpha) * rho_in + alpha * rho_out

    This is the damped step rho_in + alpha * (rho_out - rho_in).

    Args:
        rho_in: Input density.
        rho_out: Output density of the SCF step.
        alpha: Mixing parameter.

    Returns:
        Mixed density.
    """
    return (1.0 - alpha) * rho_in + alpha * rho_out


def reciprocal_g2(shape: tuple[int, ...], lengths: tuple[float, ...]) -> jnp.ndarray:
    """|G|^2 on the FFT grid of an orthogonal periodic box.

    Returns values in standard FFT order, so that they line up with
    jnp.fft.fftn of an array of the given shape.

    Args:
        shape: Grid dimensions, one entry per axis.
        lengths: Box length along each axis (Bohr).

    Returns:
        Array of the given shape with |G|^2 in 1/Bohr^2.
    """
    if len(shape) != len(lengths):
        raise ValueError(f"Got {len(shape)} grid dimensions but {len(lengths)} box lengths")
    freqs = [jnp.fft.fftfreq(n, d=1.0) * n * TWO_PI / length
             for n, length in zip(shape, lengths)]
    grids = jnp.meshgrid(*freqs, indexing='ij')
    return sum(g**2 for g in grids)


def model_dielectric(g2: jnp.ndarray, kappa: float,
                     eps_r: float | None = None) -> jnp.ndarray:
    """Model dielectric function eps(G) of a screening medium.

    Metal (eps_r=None), Thomas-Fermi:
        eps(G) = 1 + kappa^2 / |G|^2
    Insulator with macroscopic dielectric constant eps_r:
        eps(G) = 1 + kappa^2 / (|G|^2 + kappa^2 / (eps_r - 1))

    eps(G=0) is set to 1: the G=0 component (total charge) is not screened.

    Args:
        g2: |G|^2 values.
        kappa: Screening wavevector in 1/Bohr.
        eps_r: Macroscopic dielectric constant (> 1), None for a metal.

    Returns:
        eps(G) with the shape of g2.
    """
    if kappa <= 0:
        raise ValueError(f"kappa must be positive, got {kappa}")
    if eps_r is not None and eps_r <= 1.0:
        raise ValueError(f"eps_r must be larger than 1, got {eps_r}")

    g2 = jnp.asarray(g2)
    q2_shift = 0.0 if eps_r is None else kappa**2 / (eps_r - 1.0)
    denom = g2 + q2_shift
    denom_safe = jnp.where(g2 == 0.0, 1.0, denom)
    return jnp.where(g2 == 0.0, 1.0, 1.0 + kappa**2 / denom_safe)


class _ReciprocalPreconditioner:
    """Multiplies the Fourier components of a residual by a fixed kernel."""

    def __init__(self, kernel: jnp.ndarray):
        self.kernel = kernel

    def __call__(self, residual) -> jnp.ndarray:
        if np.shape(residual) != self.kernel.shape:
            raise ValueError(
                f"Residual shape {np.shape(residual)} does not match "
                f"grid shape {self.kernel.shape}"
            )
        res_g = jnp.fft.fftn(jnp.asarray(residual))
        prec = jnp.fft.ifftn(res_g * self.kernel)
        if jnp.iscomplexobj(residual):
            return prec
        return jnp.real(prec)


class KerkerPreconditioner(_ReciprocalPreconditioner):
    """Kerker preconditioner for density mixing.

    Suppresses long-wavelength charge sloshing in metallic systems.
    K(G) = |G|^2 / (|G|^2 + q0^2)

    Reference: G. P. Kerker, Phys. Rev. B 23, 3082 (1981).
    """

    def __init__(self, g2: jnp.ndarray, q0: float = 1.5):
        """
        Args:
            g2: |G|^2 on the FFT grid (see reciprocal_g2).
            q0: Screening wavevector in 1/Bohr.
        """
        if q0 <= 0:
            raise ValueError(f"q0 must be positive, got {q0}")
        self.q0 = q0
        g2 = jnp.asarray(g2)
        kernel = jnp.where(g2 == 0.0, 1.0, g2 / (g2 + q0**2))
        super().__init__(kernel)


class DielectricPreconditioner(_ReciprocalPreconditioner):
    """Inverse model dielectric function as a preconditioner.

    K(G) = 1 / eps(G), with eps(G) from model_dielectric. Suited to
    insulators and semiconductors with known dielectric constant eps_r;
    for eps_r -> inf it turns into the Kerker preconditioner with q0 = kappa.
    """

    def __init__(self, g2: jnp.ndarray, kappa: float, eps_r: float):
        self.kappa = kappa
        self.eps_r = eps_r
        super().__init__(1.0 / model_dielectric(g2, kappa, eps_r))

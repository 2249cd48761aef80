"""Model SCF step functions.

Real SCF steps (build the Hamiltonian from rho, diagonalize, compute the
new density) are expensive and live in electronic-structure codes. The
models here reproduce the convergence behavior of such steps near the
fixed point, where F is well described by its linear response:

    F(rho) - rho = -eps (rho - rho*)

with eps the dielectric operator of the system.
"""

import jax.numpy as jnp
import numpy as np

from scfsolve.constants import TWO_PI
from scfsolve.mixing import (
    DielectricPreconditioner, KerkerPreconditioner, model_dielectric, reciprocal_g2,
)


def affine_map(slope, offset):
    """F(x) = slope * x + offset. Fixed point offset / (1 - slope)."""
    def F(x):
        return slope * x + offset
    return F


def linear_contraction(rho_fixed, C):
    """Linear map with fixed point rho_fixed.

    F(rho) = rho_fixed + C (rho - rho_fixed), applied to the flattened state.
    F is a contraction iff ||C|| < 1.

    Args:
        rho_fixed: Fixed point (any shape).
        C: (n, n) matrix with n = rho_fixed.size.

    Returns:
        Step function F.
    """
    rho_fixed = np.asarray(rho_fixed, dtype=np.float64)
    C = np.asarray(C)
    n = rho_fixed.size
    if C.shape != (n, n):
        raise ValueError(f"C must have shape {(n, n)}, got {C.shape}")

    def F(rho):
        delta = np.ravel(rho) - rho_fixed.ravel()
        return rho_fixed + (C @ delta).reshape(rho_fixed.shape)
    return F


class ScreenedResponseModel:
    """Linear-response SCF step of a screening medium on a periodic grid.

    In reciprocal space the residual of a density rho is
        R(G) = -eps(G) (rho(G) - rho_ref(G))
    with the model dielectric function of scfsolve.mixing.model_dielectric:
    Thomas-Fermi screening for a metal (eps_r=None), bounded screening for
    an insulator. The fixed point is rho_ref.

    For a metal eps grows like kappa^2 L^2 / (4 pi^2) with the box length L,
    so damped iteration needs alpha < 2 / max(eps): the charge-sloshing
    problem of large metallic cells.
    """

    def __init__(self, shape: tuple[int, ...], lengths: tuple[float, ...],
                 kappa: float = 1.0, eps_r: float | None = None,
                 rho_ref: jnp.ndarray | None = None):
        """
        Args:
            shape: Real-space grid dimensions.
            lengths: Box length per axis in Bohr.
            kappa: Screening wavevector in 1/Bohr.
            eps_r: Dielectric constant; None for a metal.
            rho_ref: Fixed-point density. Default: smooth cosine modulation
                of a unit background.
        """
        self.shape = tuple(shape)
        self.lengths = tuple(lengths)
        self.kappa = kappa
        self.eps_r = eps_r
        self.g2 = reciprocal_g2(self.shape, self.lengths)
        self.dielectric = model_dielectric(self.g2, kappa, eps_r)

        if rho_ref is None:
            rho_ref = self._default_density()
        rho_ref = jnp.asarray(rho_ref)
        if rho_ref.shape != self.shape:
            raise ValueError(f"rho_ref has shape {rho_ref.shape}, expected {self.shape}")
        self.rho_ref = rho_ref

    def _default_density(self) -> jnp.ndarray:
        # 1 + 0.3 * <cos(2 pi x_i / L_i)>, one lowest-G modulation per axis
        axes = [jnp.arange(n) / n for n in self.shape]
        grids = jnp.meshgrid(*axes, indexing='ij')
        modulation = sum(jnp.cos(TWO_PI * g) for g in grids) / len(grids)
        return 1.0 + 0.3 * modulation

    @property
    def max_dielectric(self) -> float:
        return float(jnp.max(self.dielectric))

    @property
    def is_metal(self) -> bool:
        return self.eps_r is None

    def optimal_alpha(self) -> float:
        """Damping minimizing the worst error contraction |1 - alpha * eps|."""
        eps_min = float(jnp.min(self.dielectric))
        return 2.0 / (eps_min + self.max_dielectric)

    def residual(self, rho) -> jnp.ndarray:
        """R = F(rho) - rho."""
        rho = jnp.asarray(rho)
        if rho.shape != self.shape:
            raise ValueError(f"Density has shape {rho.shape}, expected {self.shape}")
        delta_g = jnp.fft.fftn(rho - self.rho_ref)
        res = -jnp.fft.ifftn(self.dielectric * delta_g)
        if jnp.iscomplexobj(rho):
            return res
        return jnp.real(res)

    def __call__(self, rho) -> jnp.ndarray:
        return jnp.asarray(rho) + self.residual(rho)

    def kerker(self, q0: float | None = None) -> KerkerPreconditioner:
        """Kerker preconditioner on this grid (q0 defaults to kappa)."""
        return KerkerPreconditioner(self.g2, q0=self.kappa if q0 is None else q0)

    def dielectric_preconditioner(self) -> DielectricPreconditioner:
        """Exact inverse dielectric preconditioner (insulators only)."""
        if self.eps_r is None:
            raise ValueError("Metallic model has no finite eps_r; use kerker()")
        return DielectricPreconditioner(self.g2, self.kappa, self.eps_r)

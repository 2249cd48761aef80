"""Example: SCF convergence of a metal versus an insulator.

Uses the screened-response model of an SCF step on a periodic 1D grid.
Aluminium-like (metal, Thomas-Fermi screening) and silicon-like (insulator,
eps_r = 12) systems are solved with plain damping, Kerker preconditioning
and Anderson acceleration, for growing cell sizes.
"""

import jax
import jax.numpy as jnp

# Enable 64-bit precision
jax.config.update("jax_enable_x64", True)

from scfsolve import FixpointCalculator
from scfsolve.models import ScreenedResponseModel

kappa = 1.0      # Screening wavevector (1/Bohr)
eps_r = 12.0     # Silicon-like dielectric constant
alpha = 0.8


def fmt(result):
    return f"{result.n_iter:8d}" if result.converged else f"{'--':>8s}"


print(f"{'System':>10s}  {'L (Bohr)':>9s}  {'max eps':>9s}  "
      f"{'damped':>8s}  {'kerker':>8s}  {'anderson':>8s}")
print("-" * 62)

for length in (10.0, 20.0, 40.0, 80.0):
    n = int(4 * length)
    for label, eps in (("metal", None), ("insulator", eps_r)):
        model = ScreenedResponseModel((n,), (length,), kappa=kappa, eps_r=eps)
        rho0 = jnp.ones(n)

        damped = FixpointCalculator(method="damped", alpha=alpha, max_iter=100,
                                    tol=1e-8, verbose=False).run(model, rho0)
        kerker = FixpointCalculator(method="damped", alpha=alpha, max_iter=100,
                                    tol=1e-8, preconditioner=model.kerker(),
                                    verbose=False).run(model, rho0)
        anderson = FixpointCalculator(method="anderson", alpha=alpha, max_iter=100,
                                      tol=1e-8, verbose=False).run(model, rho0)

        print(f"{label:>10s}  {length:9.1f}  {model.max_dielectric:9.2f}  "
              f"{fmt(damped)}  {fmt(kerker)}  {fmt(anderson)}")

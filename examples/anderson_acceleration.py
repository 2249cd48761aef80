"""Example: Anderson acceleration on a linear contraction.

Compares damped fixed-point iteration with Anderson acceleration on
F(rho) = rho* + C (rho - rho*) with a random symmetric contraction C,
for a few damping parameters.
"""

import numpy as np

from scfsolve import FixpointCalculator
from scfsolve.models import linear_contraction

rng = np.random.default_rng(0)

n = 20
Q, _ = np.linalg.qr(rng.standard_normal((n, n)))
eigs = np.linspace(-0.5, 0.95, n)
C = Q @ np.diag(eigs) @ Q.T
rho_fixed = rng.standard_normal(n)

F = linear_contraction(rho_fixed, C)
rho0 = np.zeros(n)

print(f"Contraction with ||C|| = {np.max(np.abs(eigs)):.2f}, dimension {n}")
print()

for alpha in (0.5, 1.0, 1.5):
    for method in ("damped", "anderson"):
        calc = FixpointCalculator(method=method, alpha=alpha, max_iter=1000,
                                  tol=1e-10, verbose=False)
        result = calc.run(F, rho0)
        error = np.linalg.norm(result.fixpoint - rho_fixed)
        print(f"  alpha={alpha:.1f}  {method:>8s}: converged={result.converged}, "
              f"iterations={result.n_iter:4d}, error={error:.2e}")

# Full output for one run
calc = FixpointCalculator(method="anderson", alpha=1.0, tol=1e-10, verbose=True)
result = calc.run(F, rho0)
calc.print_summary(result)

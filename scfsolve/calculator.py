"""High-level fixed-point calculator interface."""

from dataclasses import dataclass

import numpy as np

from scfsolve.constants import DEFAULT_ALPHA, DEFAULT_MAX_ITER, DEFAULT_TOL
from scfsolve.solver import (
    FixpointResult, Preconditioner, StepFunction, solve, solve_anderson,
)

METHODS = ("damped", "anderson")


@dataclass
class FixpointCalculator:
    """Configured SCF fixed-point solve.

    Example usage:
        model = ScreenedResponseModel((64,), (40.0,), kappa=1.0)
        calc = FixpointCalculator(method="anderson", alpha=0.8,
                                  preconditioner=model.kerker())
        result = calc.run(model, jnp.ones(64))
        calc.print_summary(result)
    """
    method: str = "anderson"          # "damped" or "anderson"
    max_iter: int = DEFAULT_MAX_ITER  # Max SCF iterations
    tol: float = DEFAULT_TOL          # Residual norm tolerance
    alpha: float = DEFAULT_ALPHA      # Damping parameter
    history: int | None = None        # Anderson window (None for full history)
    preconditioner: Preconditioner | None = None
    verbose: bool = True              # Print info

    def run(self, F: StepFunction, rho0) -> FixpointResult:
        """Solve rho = F(rho) starting from rho0.

        Args:
            F: SCF step function.
            rho0: Initial guess.

        Returns:
            FixpointResult.
        """
        if self.method == "damped":
            return solve(
                F, rho0,
                max_iter=self.max_iter,
                tol=self.tol,
                alpha=self.alpha,
                preconditioner=self.preconditioner,
                verbose=self.verbose,
            )
        if self.method == "anderson":
            return solve_anderson(
                F, rho0,
                max_iter=self.max_iter,
                tol=self.tol,
                alpha=self.alpha,
                history=self.history,
                preconditioner=self.preconditioner,
                verbose=self.verbose,
            )
        raise ValueError(f"Unknown method '{self.method}'. Available: {', '.join(METHODS)}")

    @staticmethod
    def print_summary(result: FixpointResult):
        """Print a summary of the solve."""
        print("\n" + "=" * 50)
        print("  Calculation Summary")
        print("=" * 50)
        print(f"  Converged: {result.converged}")
        print(f"  Status: {result.status.value}")
        print(f"  SCF iterations: {result.n_iter}")
        if result.residual_norms:
            print(f"  Final residual norm: {result.residual_norms[-1]:.4e}")
        print(f"  Fixpoint norm: {float(np.linalg.norm(np.ravel(result.fixpoint))):.8f}")
        print("=" * 50)

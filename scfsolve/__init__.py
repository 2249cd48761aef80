"""
Fixed-point solvers for self-consistent field (SCF) iterations.

This package implements:
- Damped fixed-point iteration with optional residual preconditioning
- Anderson acceleration over the iterate history
- Kerker and model-dielectric preconditioners
- Linear-response model SCF steps for metals and insulators
"""

from scfsolve.solver import FixpointResult, SolverStatus, solve, solve_anderson
from scfsolve.anderson import AndersonAccelerator
from scfsolve.calculator import FixpointCalculator

__version__ = "0.1.0"
__all__ = [
    "FixpointResult", "SolverStatus", "solve", "solve_anderson",
    "AndersonAccelerator", "FixpointCalculator",
]

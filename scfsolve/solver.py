"""Fixed-point solvers for self-consistent field (SCF) problems.

An SCF step F maps a density-like state rho to an updated one. The
self-consistent solution is a fixed point rho = F(rho). Both solvers work
on the residual R = F(rho) - rho:

1. Damped iteration:   rho <- rho + alpha * P R
2. Anderson iteration: rho <- rho + alpha * (A(rho, P R) - rho)

where P is an optional preconditioner and A the Anderson extrapolation
(see scfsolve.anderson). F is a black box: it is only ever evaluated.
"""

import enum
import operator
from typing import Callable, NamedTuple

import numpy as np

from scfsolve.anderson import AndersonAccelerator
from scfsolve.constants import DEFAULT_ALPHA, DEFAULT_MAX_ITER, DEFAULT_TOL

StepFunction = Callable[[np.ndarray], np.ndarray]
Preconditioner = Callable[[np.ndarray], np.ndarray]


class SolverStatus(enum.Enum):
    """Solver state.

    RUNNING only holds while the loop is active. A returned FixpointResult
    always carries one of the terminal states, CONVERGED or EXHAUSTED.
    """
    RUNNING = "running"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


class FixpointResult(NamedTuple):
    """Results of a fixed-point solve."""
    fixpoint: np.ndarray  # final iterate, same shape as the initial guess
    converged: bool
    n_iter: int  # number of evaluations of F
    residual_norms: list[float]  # ||F(rho) - rho|| per iteration
    status: SolverStatus


def _as_state(x) -> np.ndarray:
    """Copy x into a numpy array of at least double precision."""
    arr = np.asarray(x)
    return arr.astype(np.result_type(arr.dtype, np.float64), copy=True)


def _check_parameters(max_iter: int, tol: float, alpha: float):
    try:
        operator.index(max_iter)
    except TypeError:
        raise ValueError(f"max_iter must be an integer, got {max_iter!r}") from None
    if max_iter < 0:
        raise ValueError(f"max_iter must be non-negative, got {max_iter}")
    # Also rejects nan
    if not tol >= 0:
        raise ValueError(f"tol must be non-negative, got {tol}")
    if alpha <= 0:
        raise ValueError(f"alpha must be positive, got {alpha}")


def _evaluate(F: StepFunction, rho: np.ndarray) -> np.ndarray:
    """Evaluate F and check that the state shape is preserved."""
    f_rho = _as_state(F(rho))
    if f_rho.shape != rho.shape:
        raise ValueError(
            f"Step function changed the state shape: {rho.shape} -> {f_rho.shape}"
        )
    return f_rho


def _precondition(preconditioner: Preconditioner | None,
                  residual: np.ndarray) -> np.ndarray:
    if preconditioner is None:
        return residual
    prec_res = _as_state(preconditioner(residual))
    if prec_res.shape != residual.shape:
        raise ValueError(
            f"Preconditioner changed the residual shape: "
            f"{residual.shape} -> {prec_res.shape}"
        )
    return prec_res


def _iterate(
    F: StepFunction,
    rho0,
    max_iter: int,
    tol: float,
    update: Callable[[np.ndarray, np.ndarray], np.ndarray],
    verbose: bool,
    title: str,
) -> FixpointResult:
    """Shared driver loop. `update(rho, R)` returns the next iterate."""
    rho = _as_state(rho0)
    residual_norms = []

    if verbose:
        print("=" * 48)
        print(f"  {title}")
        print("=" * 48)
        print(f"  State shape: {rho.shape}, dtype: {rho.dtype}")
        print(f"  max_iter: {max_iter}, tol: {tol:.1e}")
        print()
        print(f"  {'Iter':>4s}  {'Residual norm':>14s}  {'Step norm':>12s}")
        print("  " + "-" * 34)

    for n in range(1, max_iter + 1):
        residual = _evaluate(F, rho) - rho
        res_norm = float(np.linalg.norm(residual.ravel()))
        residual_norms.append(res_norm)

        # Check convergence
        if res_norm < tol:
            if verbose:
                print(f"  {n:4d}  {res_norm:14.6e}  {'-':>12s}")
                print()
                print(f"  Converged in {n} iterations!")
            return FixpointResult(
                fixpoint=rho,
                converged=True,
                n_iter=n,
                residual_norms=residual_norms,
                status=SolverStatus.CONVERGED,
            )

        # Keep 0-d states as arrays
        rho_next = np.asarray(update(rho, residual))
        if verbose:
            step = float(np.linalg.norm((rho_next - rho).ravel()))
            print(f"  {n:4d}  {res_norm:14.6e}  {step:12.4e}")
        rho = rho_next

    # Not converged
    if verbose:
        print(f"\n  WARNING: not converged after {max_iter} iterations")

    return FixpointResult(
        fixpoint=rho,
        converged=False,
        n_iter=max_iter,
        residual_norms=residual_norms,
        status=SolverStatus.EXHAUSTED,
    )


def solve(
    F: StepFunction,
    rho0,
    max_iter: int = DEFAULT_MAX_ITER,
    tol: float = DEFAULT_TOL,
    alpha: float = DEFAULT_ALPHA,
    preconditioner: Preconditioner | None = None,
    verbose: bool = False,
) -> FixpointResult:
    """Damped (preconditioned) fixed-point iteration.

    rho_{n+1} = rho_n + alpha * P (F(rho_n) - rho_n)

    With alpha = 1 and no preconditioner this is plain fixed-point
    iteration, which may well fail to converge for stiff problems (e.g.
    metals without Kerker preconditioning).

    Args:
        F: SCF step function, state -> state of identical shape.
        rho0: Initial guess.
        max_iter: Maximum number of evaluations of F. With max_iter=0,
            returns rho0 unconverged without evaluating F.
        tol: Convergence threshold on the Euclidean residual norm (strict <).
        alpha: Damping factor. Stable range is problem dependent, typically
            within (0, 2].
        preconditioner: Optional map applied to the residual before the
            update. The convergence check uses the raw residual.
        verbose: Print an iteration table.

    Returns:
        FixpointResult. Non-convergence is reported, not raised.

    Raises:
        ValueError: On negative max_iter or tol, non-positive alpha, or if F
            or the preconditioner change the state shape.
    """
    _check_parameters(max_iter, tol, alpha)

    def update(rho, residual):
        return rho + alpha * _precondition(preconditioner, residual)

    return _iterate(F, rho0, max_iter, tol, update, verbose,
                    title=f"Damped SCF (alpha={alpha})")


def solve_anderson(
    F: StepFunction,
    rho0,
    max_iter: int = DEFAULT_MAX_ITER,
    tol: float = DEFAULT_TOL,
    alpha: float = DEFAULT_ALPHA,
    history: int | None = None,
    preconditioner: Preconditioner | None = None,
    verbose: bool = False,
) -> FixpointResult:
    """Anderson-accelerated (preconditioned, damped) fixed-point iteration.

    The Anderson proposal is built from the current (rho, P R) pair and all
    earlier ones; damping scales the whole proposed step:

        rho_{n+1} = rho_n + alpha * (A(rho_n, P R_n) - rho_n)

    The first step has no history and reduces to a damped step.

    Args:
        F: SCF step function, state -> state of identical shape.
        rho0: Initial guess.
        max_iter: Maximum number of evaluations of F.
        tol: Convergence threshold on the Euclidean residual norm (strict <).
        alpha: Damping factor applied to the Anderson step.
        history: Sliding-window size for the Anderson history. None keeps
            every iterate of this solve.
        preconditioner: Optional map applied to the residual.
        verbose: Print an iteration table.

    Returns:
        FixpointResult.

    Raises:
        ValueError: On invalid parameters or shape changes.
        numpy.linalg.LinAlgError: If the Anderson least-squares solve fails.
    """
    _check_parameters(max_iter, tol, alpha)
    accelerator = AndersonAccelerator(max_hist=history)

    def update(rho, residual):
        proposal = accelerator.extrapolate(rho, _precondition(preconditioner, residual))
        return rho + alpha * (proposal - rho)

    return _iterate(F, rho0, max_iter, tol, update, verbose,
                    title=f"Anderson SCF (alpha={alpha}, history={history})")

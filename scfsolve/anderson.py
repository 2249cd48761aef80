"""Anderson acceleration for fixed-point problems.

Given the current iterate rho and its (possibly preconditioned) residual R,
the next iterate is extrapolated from all previously seen pairs (rho_i, R_i):

    beta = argmin || sum_i beta_i (R_i - R) + R ||^2
    rho_next = rho + R + sum_i beta_i [(rho_i - rho) + (R_i - R)]

Reference: D. G. Anderson, J. ACM 12, 547 (1965).
"""

import numpy as np


class AndersonAccelerator:
    """Anderson extrapolation over the full (or windowed) iterate history.

    The accelerator only proposes the undamped next iterate. Damping is left
    to the caller, so the same damping factor can be applied to Anderson and
    plain steps alike.
    """

    def __init__(self, max_hist: int | None = None):
        """Initialize accelerator.

        Args:
            max_hist: Maximum number of stored (rho, R) pairs. None keeps the
                full history of the solve.
        """
        if max_hist is not None and max_hist < 1:
            raise ValueError(f"max_hist must be positive or None, got {max_hist}")
        self.max_hist = max_hist
        self.rho_history: list[np.ndarray] = []
        self.res_history: list[np.ndarray] = []

    def __len__(self) -> int:
        return len(self.rho_history)

    def reset(self):
        """Clear history."""
        self.rho_history = []
        self.res_history = []

    def extrapolate(self, rho: np.ndarray, residual: np.ndarray) -> np.ndarray:
        """Propose the next iterate and record (rho, residual).

        The proposal only uses pairs from earlier calls; the current pair is
        appended afterwards.

        Args:
            rho: Current iterate.
            residual: Residual at rho (already preconditioned if applicable).

        Returns:
            Undamped proposal with the same shape as rho.

        Raises:
            numpy.linalg.LinAlgError: If the least-squares solve fails.
        """
        shape = np.shape(rho)
        rho_flat = np.ravel(rho)
        res_flat = np.ravel(residual)

        proposal = rho_flat + res_flat
        if self.rho_history:
            # Columns are R_i - R
            M = np.stack([r_i - res_flat for r_i in self.res_history], axis=1)
            beta, *_ = np.linalg.lstsq(M, -res_flat, rcond=None)
            for b_i, rho_i, r_i in zip(beta, self.rho_history, self.res_history):
                proposal = proposal + b_i * ((rho_i - rho_flat) + (r_i - res_flat))

        self.rho_history.append(rho_flat.copy())
        self.res_history.append(res_flat.copy())

        # Trim history
        if self.max_hist is not None and len(self.rho_history) > self.max_hist:
            self.rho_history.pop(0)
            self.res_history.pop(0)

        return proposal.reshape(shape)

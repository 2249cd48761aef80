"""Numerical constants and solver defaults."""

import jax.numpy as jnp

TWO_PI = 2.0 * jnp.pi

# Solver defaults
DEFAULT_MAX_ITER = 100
DEFAULT_TOL = 1e-6
DEFAULT_ALPHA = 0.8

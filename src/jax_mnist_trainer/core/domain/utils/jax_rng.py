from __future__ import annotations

import jax
import numpy as np


def run_keys(seed: int) -> tuple[jax.Array, jax.Array]:
    """Split one seed into (init_key, shuffle_key) so a run is reproducible."""

    init_key, shuffle_key = jax.random.split(jax.random.PRNGKey(seed))
    return init_key, shuffle_key


def fold_in_step(key: jax.Array, step: int) -> jax.Array:
    """Derive a deterministic per-step key."""

    return jax.random.fold_in(key, step)


def permutation(key: jax.Array, n: int) -> np.ndarray:
    """Uniform random permutation of range(n) as a NumPy index array."""

    return np.asarray(jax.random.permutation(key, n))

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Callable, Protocol

import jax
import jax.numpy as jnp

Params = Any  # JAX pytree: list of {"w": (m, n), "b": (n,)} layers


class ClassifierFns(Protocol):
    """Pure model functions a model gateway can drive.

    Implementations must be JAX-compatible (jit/vmap friendly).
    """

    def init(self, *, key: jax.Array, layer_sizes: Sequence[int]) -> Params: ...

    def apply(self, params: Params, x: jax.Array) -> jax.Array: ...


@dataclass(frozen=True)
class MlpClassifierFns:
    """Fully connected network, activation applied after every layer including the last.

    With the default sigmoid the outputs live in (0, 1), which matches one-hot targets
    under a quadratic cost.
    """

    activation: Callable[[jax.Array], jax.Array] = jax.nn.sigmoid

    def init(self, *, key: jax.Array, layer_sizes: Sequence[int]) -> Params:
        sizes = tuple(int(s) for s in layer_sizes)
        if len(sizes) < 2 or any(s < 1 for s in sizes):
            raise ValueError(f"layer_sizes needs >= 2 positive entries, got {sizes}")

        def init_layer(m: int, n: int, k: jax.Array):
            w_key, b_key = jax.random.split(k)
            w = jax.random.normal(w_key, (m, n)) / jnp.sqrt(m)
            b = jax.random.normal(b_key, (n,))
            return {"w": w, "b": b}

        keys = jax.random.split(key, len(sizes) - 1)
        return [init_layer(m, n, k) for (m, n), k in zip(zip(sizes[:-1], sizes[1:]), keys)]

    def apply(self, params: Params, x: jax.Array) -> jax.Array:
        # x: (batch, input_dim)
        h = x
        for layer in params:
            h = self.activation(jnp.dot(h, layer["w"]) + layer["b"])
        return h


def layer_sizes_of(params: Params) -> tuple[int, ...]:
    """Recover the (input, *hidden, output) topology from MLP params."""

    if not params:
        return ()
    sizes = [int(params[0]["w"].shape[0])]
    sizes.extend(int(layer["w"].shape[1]) for layer in params)
    return tuple(sizes)

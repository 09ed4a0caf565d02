from __future__ import annotations

from collections.abc import Sequence

import jax
import jax.numpy as jnp
import numpy as np
import optax

from jax_mnist_trainer.core.domain.entities.base import Dataset
from jax_mnist_trainer.core.domain.entities.model import ClassifierFns, MlpClassifierFns, Params
from jax_mnist_trainer.core.ports.model_gateway import ModelGatewayPort


class JaxMlpModelGateway(ModelGatewayPort):
    """Model gateway backed by a JAX MLP and plain SGD (optax).

    Cost is the quadratic cost: 0.5 * squared error summed over classes,
    averaged over samples. Inference and error run in chunks of `eval_chunk_size`
    so a 10k-sample test set never has to fit in one device buffer.
    """

    def __init__(self, *, model_fns: ClassifierFns | None = None, eval_chunk_size: int = 1000) -> None:
        self._fns = model_fns or MlpClassifierFns()
        self._chunk = int(eval_chunk_size)

        def _cost(p: Params, x: jax.Array, y: jax.Array) -> jax.Array:
            out = self._fns.apply(p, x)
            return optax.l2_loss(out, y).sum(axis=-1).mean()

        @jax.jit
        def train_step(p: Params, x: jax.Array, y: jax.Array, lr: jax.Array) -> Params:
            grads = jax.grad(_cost)(p, x, y)
            optimizer = optax.sgd(learning_rate=lr)
            updates, _ = optimizer.update(grads, optimizer.init(p), p)
            return optax.apply_updates(p, updates)

        @jax.jit
        def forward(p: Params, x: jax.Array) -> jax.Array:
            return self._fns.apply(p, x)

        @jax.jit
        def cost_sum(p: Params, x: jax.Array, y: jax.Array) -> jax.Array:
            out = self._fns.apply(p, x)
            return optax.l2_loss(out, y).sum()

        self._train_step = train_step
        self._forward = forward
        self._cost_sum = cost_sum

    def generate_random(self, layer_sizes: Sequence[int], key: jax.Array) -> Params:
        return self._fns.init(key=key, layer_sizes=layer_sizes)

    def feed_forward(self, params: Params, inputs: np.ndarray) -> np.ndarray:
        x = np.asarray(inputs, dtype=np.float32)
        single = x.ndim == 1
        if single:
            x = x[None, :]
        outs = [
            np.asarray(self._forward(params, jnp.asarray(x[start : start + self._chunk])))
            for start in range(0, len(x), self._chunk)
        ]
        out = np.concatenate(outs, axis=0) if outs else np.zeros((0, 0), dtype=np.float32)
        return out[0] if single else out

    def train_on_batch(self, params: Params, batch: Dataset, learning_rate: float) -> Params:
        x = jnp.asarray(batch.inputs, dtype=jnp.float32)
        y = jnp.asarray(batch.targets, dtype=jnp.float32)
        return self._train_step(params, x, y, jnp.asarray(learning_rate, dtype=jnp.float32))

    def measure_error(self, params: Params, dataset: Dataset) -> float:
        if len(dataset) == 0:
            return 0.0
        total = 0.0
        for start in range(0, len(dataset), self._chunk):
            x = jnp.asarray(dataset.inputs[start : start + self._chunk], dtype=jnp.float32)
            y = jnp.asarray(dataset.targets[start : start + self._chunk], dtype=jnp.float32)
            total += float(self._cost_sum(params, x, y))
        return total / len(dataset)

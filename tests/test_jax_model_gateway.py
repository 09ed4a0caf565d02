from __future__ import annotations

import os

os.environ.setdefault("JAX_PLATFORMS", "cpu")

import jax
import numpy as np

from jax_mnist_trainer.adapters.right.jax_model_gateway import JaxMlpModelGateway
from jax_mnist_trainer.core.domain.entities.base import Dataset
from jax_mnist_trainer.core.domain.entities.model import layer_sizes_of
from jax_mnist_trainer.core.domain.utils.encoding import one_hot


def _separable(n: int, seed: int = 0) -> Dataset:
    rng = np.random.default_rng(seed)
    y = rng.integers(0, 2, size=(n,))
    x = np.where(y[:, None] == 0, [1.0, 1.0, 0.0, 0.0], [0.0, 0.0, 1.0, 1.0])
    x = np.clip(x + rng.normal(scale=0.05, size=x.shape), 0.0, 1.0).astype(np.float32)
    return Dataset(inputs=x, targets=one_hot(y, 2))


def test_generate_random_builds_requested_topology() -> None:
    gateway = JaxMlpModelGateway()
    params = gateway.generate_random((784, 30, 10), jax.random.PRNGKey(0))

    assert layer_sizes_of(params) == (784, 30, 10)
    assert params[0]["w"].shape == (784, 30)
    assert params[1]["b"].shape == (10,)


def test_generate_random_is_reproducible_for_a_key() -> None:
    gateway = JaxMlpModelGateway()
    a = gateway.generate_random((4, 3, 2), jax.random.PRNGKey(7))
    b = gateway.generate_random((4, 3, 2), jax.random.PRNGKey(7))

    for la, lb in zip(a, b):
        np.testing.assert_array_equal(np.asarray(la["w"]), np.asarray(lb["w"]))


def test_feed_forward_shapes_and_range() -> None:
    gateway = JaxMlpModelGateway(eval_chunk_size=3)
    params = gateway.generate_random((4, 5, 2), jax.random.PRNGKey(0))
    ds = _separable(8)

    batch_out = gateway.feed_forward(params, ds.inputs)
    single_out = gateway.feed_forward(params, ds.inputs[0])

    assert batch_out.shape == (8, 2)
    assert single_out.shape == (2,)
    assert np.all((batch_out > 0.0) & (batch_out < 1.0))
    np.testing.assert_allclose(single_out, batch_out[0], rtol=1e-6)


def test_measure_error_does_not_depend_on_chunking() -> None:
    ds = _separable(10)
    params = JaxMlpModelGateway().generate_random((4, 5, 2), jax.random.PRNGKey(0))

    a = JaxMlpModelGateway(eval_chunk_size=3).measure_error(params, ds)
    b = JaxMlpModelGateway(eval_chunk_size=100).measure_error(params, ds)

    assert np.isfinite(a)
    assert a > 0.0
    np.testing.assert_allclose(a, b, rtol=1e-5)


def test_training_reduces_error_on_separable_data() -> None:
    gateway = JaxMlpModelGateway()
    params = gateway.generate_random((4, 6, 2), jax.random.PRNGKey(0))
    ds = _separable(64)
    before = gateway.measure_error(params, ds)

    for _ in range(30):
        for batch in ds.batches(8):
            params = gateway.train_on_batch(params, batch, 2.0)

    assert gateway.measure_error(params, ds) < before

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import jax
import numpy as np

from jax_mnist_trainer.core.domain.entities.base import Dataset
from jax_mnist_trainer.core.domain.entities.model import Params


class ModelGatewayPort(Protocol):
    """The trainable model as the core sees it.

    Params are opaque to the core. Everything except `generate_random` is
    deterministic for identical inputs and params.
    """

    def generate_random(self, layer_sizes: Sequence[int], key: jax.Array) -> Params: ...

    def feed_forward(self, params: Params, inputs: np.ndarray) -> np.ndarray:
        """Pure inference. `inputs` is (input_dim,) or (batch, input_dim)."""
        ...

    def train_on_batch(self, params: Params, batch: Dataset, learning_rate: float) -> Params:
        """One update over `batch`; returns the updated params."""
        ...

    def measure_error(self, params: Params, dataset: Dataset) -> float: ...

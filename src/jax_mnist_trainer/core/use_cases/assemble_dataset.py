from __future__ import annotations

import numpy as np

from jax_mnist_trainer.core.domain.entities.base import Dataset
from jax_mnist_trainer.core.domain.errors.training import ConfigurationError
from jax_mnist_trainer.core.domain.utils.encoding import normalize_pixels, one_hot


def assemble_dataset(
    images: np.ndarray,
    labels: np.ndarray,
    *,
    sample_size: int,
    num_classes: int,
) -> Dataset:
    """Pair raw image chunks with their labels, preserving index order.

    `images` may be a flat buffer or already stacked; it is cut into contiguous
    chunks of `sample_size` values, one chunk per sample.
    """

    if sample_size < 1:
        raise ConfigurationError(f"sample_size must be >= 1, got {sample_size}")

    flat = np.asarray(images).reshape(-1)
    labels = np.asarray(labels).reshape(-1)
    if flat.size % sample_size != 0:
        raise ConfigurationError(
            f"image buffer of {flat.size} values is not a whole number of {sample_size}-value samples"
        )
    n_chunks = flat.size // sample_size
    if n_chunks != len(labels):
        raise ConfigurationError(f"{n_chunks} image chunks but {len(labels)} labels")

    inputs = normalize_pixels(flat.reshape(n_chunks, sample_size))
    targets = one_hot(labels, num_classes)
    return Dataset(inputs=inputs, targets=targets)

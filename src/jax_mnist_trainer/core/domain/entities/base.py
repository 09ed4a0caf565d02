from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import numpy as np

from jax_mnist_trainer.core.domain.entities.dataset import DatasetInfo


@dataclass(frozen=True)
class Sample:
    """One (input, one-hot target) pair.

    `input` holds pixel intensities in [0, 1]; `target` has a single 1.0 at the true class.
    """

    input: np.ndarray
    target: np.ndarray


@dataclass(frozen=True)
class Dataset:
    """Ordered samples stored as two stacked arrays.

    `inputs` has shape (n, input_dim) and `targets` has shape (n, num_classes).
    Content is never modified in place; `permuted` returns a reordered copy.
    """

    inputs: np.ndarray
    targets: np.ndarray

    def __post_init__(self) -> None:
        if self.inputs.ndim != 2 or self.targets.ndim != 2:
            raise ValueError(
                f"inputs/targets must be 2-D, got {self.inputs.shape} and {self.targets.shape}"
            )
        if len(self.inputs) != len(self.targets):
            raise ValueError(f"{len(self.inputs)} inputs but {len(self.targets)} targets")

    def __len__(self) -> int:
        return len(self.inputs)

    def __getitem__(self, index: int) -> Sample:
        return Sample(input=self.inputs[index], target=self.targets[index])

    def __iter__(self) -> Iterator[Sample]:
        for i in range(len(self)):
            yield self[i]

    @property
    def input_dim(self) -> int:
        return int(self.inputs.shape[1])

    @property
    def num_classes(self) -> int:
        return int(self.targets.shape[1])

    def permuted(self, order: Sequence[int] | np.ndarray) -> Dataset:
        order = np.asarray(order)
        if not np.array_equal(np.sort(order), np.arange(len(self))):
            raise ValueError("order must be a permutation of the dataset indices")
        return Dataset(inputs=self.inputs[order], targets=self.targets[order])

    def batches(self, batch_size: int) -> Iterator[Dataset]:
        """Consecutive slices of `batch_size`; the final partial batch is kept."""

        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        for start in range(0, len(self), batch_size):
            stop = start + batch_size
            yield Dataset(inputs=self.inputs[start:stop], targets=self.targets[start:stop])


@dataclass(frozen=True)
class RawSplits:
    """Undecoded buffers as delivered by a dataset provider.

    Images are uint8 buffers of `n * rows * cols` values (flat or stacked);
    labels hold one byte per sample.
    """

    info: DatasetInfo
    train_images: np.ndarray
    train_labels: np.ndarray
    test_images: np.ndarray
    test_labels: np.ndarray

from __future__ import annotations

from typing import Protocol

from jax_mnist_trainer.core.domain.entities.base import RawSplits
from jax_mnist_trainer.core.domain.entities.dataset import DatasetInfo


class DatasetProviderPort(Protocol):
    """Port for providing raw image/label buffers to the core.

    Decoding the on-disk format is the adapter's job; the core does the encoding.
    """

    @property
    def info(self) -> DatasetInfo: ...

    def load(self) -> RawSplits: ...

from __future__ import annotations

from typing import Any, Protocol

from jax_mnist_trainer.core.domain.entities.model import Params


class CheckpointStorePort(Protocol):
    """Port for saving/loading model state at one well-known location.

    Keep I/O out of core; adapters implement this (filesystem, S3, etc.).
    `load` returns None when nothing was saved yet and raises CorruptCheckpointError
    when something was saved but cannot be read back.
    """

    @property
    def location(self) -> str: ...

    def save(self, *, params: Params, metadata: dict[str, Any] | None = None) -> None: ...

    def load(self) -> Params | None: ...

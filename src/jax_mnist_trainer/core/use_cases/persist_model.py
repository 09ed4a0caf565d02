from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import jax

from jax_mnist_trainer.core.domain.entities.model import Params, layer_sizes_of
from jax_mnist_trainer.core.domain.errors.training import ConfigurationError
from jax_mnist_trainer.core.ports.checkpoint_store import CheckpointStorePort
from jax_mnist_trainer.core.ports.model_gateway import ModelGatewayPort


class ModelPersistence:
    """Brackets a run: load-or-init before training, optional save after."""

    def __init__(
        self,
        *,
        model_gateway: ModelGatewayPort,
        checkpoint_store: CheckpointStorePort | None = None,
    ) -> None:
        self._model = model_gateway
        self._ckpt = checkpoint_store

    def _check_topology(self, params: Params, layer_sizes: tuple[int, ...]) -> None:
        loaded = layer_sizes_of(params)
        if loaded[0] != layer_sizes[0] or loaded[-1] != layer_sizes[-1]:
            raise ConfigurationError(
                f"checkpoint at {self._ckpt.location} has topology {loaded}, "
                f"incompatible with dataset topology {layer_sizes}"
            )

    def load(self, layer_sizes: Sequence[int]) -> Params:
        """Load a saved model that must exist and fit the dataset's input and output sizes.

        Only the first and last entries of layer_sizes are compared.
        """

        if self._ckpt is None:
            raise ConfigurationError("no checkpoint store configured")
        params = self._ckpt.load()
        if params is None:
            raise ConfigurationError(f"no model at {self._ckpt.location}")
        self._check_topology(params, tuple(int(s) for s in layer_sizes))
        return params

    def load_or_init(self, layer_sizes: Sequence[int], key: jax.Array) -> tuple[Params, bool]:
        """Return (params, loaded_from_checkpoint).

        A missing checkpoint falls back to random init; a corrupt one propagates
        CorruptCheckpointError from the store.
        """

        layer_sizes = tuple(int(s) for s in layer_sizes)
        if self._ckpt is not None:
            params = self._ckpt.load()
            if params is not None:
                self._check_topology(params, layer_sizes)
                return params, True
        return self._model.generate_random(layer_sizes, key), False

    def save(self, params: Params, metadata: dict[str, Any] | None = None) -> str:
        if self._ckpt is None:
            raise ConfigurationError("no checkpoint store configured")
        self._ckpt.save(params=params, metadata=metadata)
        return self._ckpt.location

from __future__ import annotations

import json
import os
from typing import Any

import jax.numpy as jnp
import numpy as np
from safetensors import SafetensorError, safe_open
from safetensors.numpy import save_file

from jax_mnist_trainer.core.domain.entities.model import Params, layer_sizes_of
from jax_mnist_trainer.core.domain.errors.training import CheckpointWriteError, CorruptCheckpointError
from jax_mnist_trainer.core.ports.checkpoint_store import CheckpointStorePort

CHECKPOINT_FORMAT = "jax-mnist-trainer/mlp-v1"
DEFAULT_CHECKPOINT_PATH = "network.safetensors"


class FilesystemCheckpointStore(CheckpointStorePort):
    """Single-file checkpoint at a fixed path.

    Params are stored as safetensors (`layer_{i}.w`, `layer_{i}.b`, float32) with
    self-describing metadata: format tag, layer sizes and caller metadata as JSON.
    """

    def __init__(self, *, path: str = DEFAULT_CHECKPOINT_PATH) -> None:
        self._path = path

    @property
    def location(self) -> str:
        return self._path

    def save(self, *, params: Params, metadata: dict[str, Any] | None = None) -> None:
        flat = {}
        for i, layer in enumerate(params):
            flat[f"layer_{i}.w"] = np.asarray(layer["w"], dtype=np.float32)
            flat[f"layer_{i}.b"] = np.asarray(layer["b"], dtype=np.float32)

        header = {
            "format": CHECKPOINT_FORMAT,
            "layer_sizes": json.dumps(list(layer_sizes_of(params))),
            "user": json.dumps(metadata or {}, default=str),
        }

        # Write next to the target then swap, so a failed save never truncates a good file.
        tmp_path = f"{self._path}.tmp"
        try:
            parent = os.path.dirname(self._path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            save_file(flat, tmp_path, metadata=header)
            os.replace(tmp_path, self._path)
        except (OSError, SafetensorError) as exc:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise CheckpointWriteError(f"could not write checkpoint to {self._path}: {exc}") from exc

    def load(self) -> Params | None:
        if not os.path.exists(self._path):
            return None

        try:
            with safe_open(self._path, framework="np") as f:
                header = f.metadata() or {}
                tensors = {k: f.get_tensor(k) for k in f.keys()}
        except (OSError, SafetensorError, ValueError) as exc:
            raise CorruptCheckpointError(f"checkpoint {self._path} is unreadable: {exc}") from exc

        if header.get("format") != CHECKPOINT_FORMAT:
            raise CorruptCheckpointError(
                f"checkpoint {self._path} has unknown format {header.get('format')!r}"
            )
        try:
            sizes = [int(s) for s in json.loads(header["layer_sizes"])]
        except (KeyError, TypeError, ValueError) as exc:
            raise CorruptCheckpointError(f"checkpoint {self._path} has no valid layer_sizes") from exc

        params = []
        for i, (m, n) in enumerate(zip(sizes[:-1], sizes[1:])):
            w = tensors.get(f"layer_{i}.w")
            b = tensors.get(f"layer_{i}.b")
            if w is None or b is None or w.shape != (m, n) or b.shape != (n,):
                raise CorruptCheckpointError(
                    f"checkpoint {self._path}: layer {i} does not match layer_sizes {sizes}"
                )
            params.append({"w": jnp.asarray(w), "b": jnp.asarray(b)})

        if len(tensors) != 2 * len(params) or not params:
            raise CorruptCheckpointError(f"checkpoint {self._path} has unexpected tensors")
        return params

    def load_metadata(self) -> dict[str, Any]:
        """Caller metadata stored with the last save ({} when absent)."""

        if not os.path.exists(self._path):
            return {}
        try:
            with safe_open(self._path, framework="np") as f:
                header = f.metadata() or {}
            return json.loads(header.get("user", "{}"))
        except (OSError, SafetensorError, ValueError) as exc:
            raise CorruptCheckpointError(f"checkpoint {self._path} is unreadable: {exc}") from exc

from __future__ import annotations

import os

os.environ.setdefault("JAX_PLATFORMS", "cpu")

import jax
import numpy as np
import pytest
from safetensors.numpy import save_file

from jax_mnist_trainer.adapters.right.checkpoints_filesystem import FilesystemCheckpointStore
from jax_mnist_trainer.core.domain.entities.model import MlpClassifierFns
from jax_mnist_trainer.core.domain.errors.training import CheckpointWriteError, CorruptCheckpointError


def _params(sizes=(6, 4, 3)):
    return MlpClassifierFns().init(key=jax.random.PRNGKey(0), layer_sizes=sizes)


def test_round_trip_is_exact(tmp_path) -> None:
    store = FilesystemCheckpointStore(path=str(tmp_path / "network.safetensors"))
    params = _params((6, 5, 4, 3))

    store.save(params=params, metadata={"epochs": 3, "lr": 0.5})
    loaded = store.load()

    assert loaded is not None
    assert len(loaded) == len(params)
    for a, b in zip(params, loaded):
        np.testing.assert_array_equal(np.asarray(a["w"]), np.asarray(b["w"]))
        np.testing.assert_array_equal(np.asarray(a["b"]), np.asarray(b["b"]))
    assert store.load_metadata() == {"epochs": 3, "lr": 0.5}
    assert not os.path.exists(store.location + ".tmp")


def test_missing_file_loads_as_none(tmp_path) -> None:
    store = FilesystemCheckpointStore(path=str(tmp_path / "absent.safetensors"))

    assert store.load() is None
    assert store.load_metadata() == {}


@pytest.mark.parametrize("payload", [b"", b"not a checkpoint", b"\xff" * 64])
def test_garbage_file_is_corrupt(tmp_path, payload: bytes) -> None:
    path = tmp_path / "network.safetensors"
    path.write_bytes(payload)

    with pytest.raises(CorruptCheckpointError):
        FilesystemCheckpointStore(path=str(path)).load()


def test_foreign_safetensors_file_is_corrupt(tmp_path) -> None:
    path = tmp_path / "network.safetensors"
    save_file({"weights": np.zeros((2, 2), dtype=np.float32)}, str(path), metadata={"format": "other"})

    with pytest.raises(CorruptCheckpointError, match="unknown format"):
        FilesystemCheckpointStore(path=str(path)).load()


def test_shapes_disagreeing_with_layer_sizes_are_corrupt(tmp_path) -> None:
    path = tmp_path / "network.safetensors"
    save_file(
        {"layer_0.w": np.zeros((3, 2), dtype=np.float32), "layer_0.b": np.zeros((2,), dtype=np.float32)},
        str(path),
        metadata={"format": "jax-mnist-trainer/mlp-v1", "layer_sizes": "[4, 2]", "user": "{}"},
    )

    with pytest.raises(CorruptCheckpointError, match="layer 0"):
        FilesystemCheckpointStore(path=str(path)).load()


def test_save_failure_is_surfaced(tmp_path) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    store = FilesystemCheckpointStore(path=str(blocker / "network.safetensors"))

    with pytest.raises(CheckpointWriteError):
        store.save(params=_params())


def test_failed_swap_leaves_no_temp_file(tmp_path) -> None:
    # A directory sitting at the target path makes the final rename fail.
    target = tmp_path / "network.safetensors"
    target.mkdir()
    store = FilesystemCheckpointStore(path=str(target))

    with pytest.raises(CheckpointWriteError):
        store.save(params=_params())

    assert not (tmp_path / "network.safetensors.tmp").exists()
    assert target.is_dir()


def test_save_overwrites_previous_checkpoint(tmp_path) -> None:
    store = FilesystemCheckpointStore(path=str(tmp_path / "network.safetensors"))
    store.save(params=_params((6, 4, 3)))
    store.save(params=_params((6, 2, 3)))

    loaded = store.load()
    assert loaded[0]["w"].shape == (6, 2)

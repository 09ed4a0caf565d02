from __future__ import annotations

import os

os.environ.setdefault("JAX_PLATFORMS", "cpu")

import jax
import numpy as np
import pytest

from jax_mnist_trainer.adapters.right.checkpoints_filesystem import FilesystemCheckpointStore
from jax_mnist_trainer.adapters.right.jax_model_gateway import JaxMlpModelGateway
from jax_mnist_trainer.core.domain.entities.model import layer_sizes_of
from jax_mnist_trainer.core.domain.errors.training import ConfigurationError, CorruptCheckpointError
from jax_mnist_trainer.core.use_cases.persist_model import ModelPersistence

KEY = jax.random.PRNGKey(0)


def test_missing_file_gives_fresh_model_with_requested_topology(tmp_path) -> None:
    store = FilesystemCheckpointStore(path=str(tmp_path / "network.safetensors"))
    persistence = ModelPersistence(model_gateway=JaxMlpModelGateway(), checkpoint_store=store)

    params, loaded = persistence.load_or_init((16, 8, 10), KEY)

    assert loaded is False
    assert layer_sizes_of(params) == (16, 8, 10)


def test_without_store_always_initialises() -> None:
    params, loaded = ModelPersistence(model_gateway=JaxMlpModelGateway()).load_or_init((4, 2), KEY)

    assert loaded is False
    assert layer_sizes_of(params) == (4, 2)


def test_saved_model_is_loaded_instead_of_initialised(tmp_path) -> None:
    gateway = JaxMlpModelGateway()
    store = FilesystemCheckpointStore(path=str(tmp_path / "network.safetensors"))
    persistence = ModelPersistence(model_gateway=gateway, checkpoint_store=store)
    original = gateway.generate_random((16, 12, 10), jax.random.PRNGKey(3))

    assert persistence.save(original) == store.location
    params, loaded = persistence.load_or_init((16, 8, 10), KEY)

    assert loaded is True
    # The checkpoint's hidden sizes win over the requested ones.
    assert layer_sizes_of(params) == (16, 12, 10)
    np.testing.assert_array_equal(np.asarray(params[0]["w"]), np.asarray(original[0]["w"]))


def test_incompatible_checkpoint_is_configuration_error(tmp_path) -> None:
    gateway = JaxMlpModelGateway()
    store = FilesystemCheckpointStore(path=str(tmp_path / "network.safetensors"))
    store.save(params=gateway.generate_random((9, 4, 3), KEY))

    with pytest.raises(ConfigurationError, match="incompatible"):
        ModelPersistence(model_gateway=gateway, checkpoint_store=store).load_or_init((16, 4, 10), KEY)


def test_strict_load_rejects_model_built_for_other_input_size(tmp_path) -> None:
    gateway = JaxMlpModelGateway()
    store = FilesystemCheckpointStore(path=str(tmp_path / "network.safetensors"))
    store.save(params=gateway.generate_random((9, 4, 10), KEY))
    persistence = ModelPersistence(model_gateway=gateway, checkpoint_store=store)

    with pytest.raises(ConfigurationError, match="incompatible"):
        persistence.load((16, 10))
    assert layer_sizes_of(persistence.load((9, 10))) == (9, 4, 10)


def test_strict_load_requires_an_existing_model(tmp_path) -> None:
    store = FilesystemCheckpointStore(path=str(tmp_path / "missing.safetensors"))

    with pytest.raises(ConfigurationError, match="no model at"):
        ModelPersistence(model_gateway=JaxMlpModelGateway(), checkpoint_store=store).load((9, 10))


def test_corrupt_checkpoint_never_falls_back_to_random(tmp_path) -> None:
    path = tmp_path / "network.safetensors"
    path.write_bytes(b"\x00" * 32)
    persistence = ModelPersistence(
        model_gateway=JaxMlpModelGateway(), checkpoint_store=FilesystemCheckpointStore(path=str(path))
    )

    with pytest.raises(CorruptCheckpointError):
        persistence.load_or_init((4, 2), KEY)


def test_save_without_store_is_configuration_error() -> None:
    persistence = ModelPersistence(model_gateway=JaxMlpModelGateway())

    with pytest.raises(ConfigurationError):
        persistence.save([])

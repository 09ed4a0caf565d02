from __future__ import annotations

import numpy as np
import tensorflow_datasets as tfds

from jax_mnist_trainer.core.domain.entities.base import RawSplits
from jax_mnist_trainer.core.domain.entities.dataset import DatasetInfo
from jax_mnist_trainer.core.ports.dataset_provider import DatasetProviderPort


class TfdsClassificationDatasetProvider(DatasetProviderPort):
    """TFDS-backed raw provider.

    Pulls whole splits as uint8 NumPy arrays; normalisation stays in the core.
    """

    def __init__(self, *, name: str = "mnist", data_dir: str = "/tmp/tfds") -> None:
        self._name = name
        self._data_dir = data_dir
        builder = tfds.builder(name, data_dir=data_dir)
        builder.download_and_prepare()
        features = builder.info.features

        self._num_classes = int(features["label"].num_classes)
        # (H, W, C) for images; a trailing channel of 1 is dropped
        shape = tuple(int(d) for d in features["image"].shape)
        if len(shape) == 3 and shape[-1] == 1:
            shape = shape[:-1]
        self._info = DatasetInfo(num_classes=self._num_classes, input_shape=shape)
        self._splits: RawSplits | None = None

    @property
    def info(self) -> DatasetInfo:
        return self._info

    def _split(self, split: str) -> tuple[np.ndarray, np.ndarray]:
        images, labels = tfds.as_numpy(
            tfds.load(
                self._name,
                split=split,
                data_dir=self._data_dir,
                as_supervised=True,
                batch_size=-1,
            )
        )
        return np.asarray(images, dtype=np.uint8), np.asarray(labels, dtype=np.uint8)

    def load(self) -> RawSplits:
        if self._splits is None:
            x_train, y_train = self._split("train")
            x_test, y_test = self._split("test")
            self._splits = RawSplits(
                info=self._info,
                train_images=x_train,
                train_labels=y_train,
                test_images=x_test,
                test_labels=y_test,
            )
        return self._splits

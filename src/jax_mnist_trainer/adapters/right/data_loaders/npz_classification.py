from __future__ import annotations

import numpy as np

from jax_mnist_trainer.core.domain.entities.base import RawSplits
from jax_mnist_trainer.core.domain.entities.dataset import DatasetInfo
from jax_mnist_trainer.core.domain.errors.training import ConfigurationError
from jax_mnist_trainer.core.ports.dataset_provider import DatasetProviderPort


class NpzClassificationDatasetProvider(DatasetProviderPort):
    """Loads raw uint8 images and labels from a .npz file.

    Expected keys:
      - x_train, y_train
      - x_test, y_test  (or x_valid, y_valid)

    Images may be (n, rows, cols) or (n, features). Handy for tests and for
    datasets converted once from another format.
    """

    def __init__(self, *, path: str, num_classes: int = 10) -> None:
        try:
            with np.load(path) as data:
                self._x_train = data["x_train"]
                self._y_train = data["y_train"]

                if "x_valid" in data and "y_valid" in data:
                    self._x_test = data["x_valid"]
                    self._y_test = data["y_valid"]
                else:
                    self._x_test = data["x_test"]
                    self._y_test = data["y_test"]
        except (OSError, KeyError, ValueError) as exc:
            raise ConfigurationError(f"cannot read dataset {path}: {exc}") from exc

        if self._x_train.shape[1:] != self._x_test.shape[1:]:
            raise ConfigurationError(
                f"train images are {self._x_train.shape[1:]} but test images are {self._x_test.shape[1:]}"
            )

        self._info = DatasetInfo(
            num_classes=num_classes,
            input_shape=tuple(int(d) for d in self._x_train.shape[1:]),
            train_size=len(self._x_train),
            test_size=len(self._x_test),
        )

    @property
    def info(self) -> DatasetInfo:
        return self._info

    def load(self) -> RawSplits:
        return RawSplits(
            info=self._info,
            train_images=self._x_train,
            train_labels=self._y_train,
            test_images=self._x_test,
            test_labels=self._y_test,
        )

from __future__ import annotations

import gzip
import os

import numpy as np

from jax_mnist_trainer.core.domain.entities.base import RawSplits
from jax_mnist_trainer.core.domain.entities.dataset import DatasetInfo
from jax_mnist_trainer.core.domain.errors.training import ConfigurationError
from jax_mnist_trainer.core.ports.dataset_provider import DatasetProviderPort

IMAGES_MAGIC = 2051
LABELS_MAGIC = 2049

TRAIN_IMAGES = "train-images-idx3-ubyte"
TRAIN_LABELS = "train-labels-idx1-ubyte"
TEST_IMAGES = "t10k-images-idx3-ubyte"
TEST_LABELS = "t10k-labels-idx1-ubyte"


def _read_bytes(data_dir: str, name: str) -> bytes:
    for candidate, opener in ((name, open), (f"{name}.gz", gzip.open)):
        path = os.path.join(data_dir, candidate)
        if os.path.exists(path):
            with opener(path, "rb") as f:
                return f.read()
    raise ConfigurationError(f"missing dataset file {name} (or {name}.gz) in {data_dir}")


def parse_idx_images(buf: bytes) -> np.ndarray:
    """Decode an IDX3 image file into a (n, rows, cols) uint8 array."""

    if len(buf) < 16:
        raise ConfigurationError("IDX image file is truncated")
    magic, n, rows, cols = np.frombuffer(buf[:16], dtype=">i4")
    if magic != IMAGES_MAGIC:
        raise ConfigurationError(f"bad IDX image magic {magic}, expected {IMAGES_MAGIC}")
    pixels = np.frombuffer(buf, dtype=np.uint8, offset=16)
    if pixels.size != n * rows * cols:
        raise ConfigurationError(f"IDX image file holds {pixels.size} bytes, header says {n}x{rows}x{cols}")
    return pixels.reshape(int(n), int(rows), int(cols))


def parse_idx_labels(buf: bytes) -> np.ndarray:
    """Decode an IDX1 label file into a (n,) uint8 array."""

    if len(buf) < 8:
        raise ConfigurationError("IDX label file is truncated")
    magic, n = np.frombuffer(buf[:8], dtype=">i4")
    if magic != LABELS_MAGIC:
        raise ConfigurationError(f"bad IDX label magic {magic}, expected {LABELS_MAGIC}")
    labels = np.frombuffer(buf, dtype=np.uint8, offset=8)
    if labels.size != n:
        raise ConfigurationError(f"IDX label file holds {labels.size} labels, header says {n}")
    return labels


class IdxMnistDatasetProvider(DatasetProviderPort):
    """Reads the four standard MNIST IDX files (plain or gzipped) from `data_dir`.

    The first `train_size` training images are used for training (the remainder is
    the conventional validation slice) and the first `test_size` test images for
    evaluation.
    """

    def __init__(
        self,
        *,
        data_dir: str = "data",
        train_size: int = 50_000,
        test_size: int = 10_000,
        num_classes: int = 10,
    ) -> None:
        self._data_dir = data_dir
        self._train_size = train_size
        self._test_size = test_size
        self._num_classes = num_classes
        self._splits: RawSplits | None = None

    @property
    def info(self) -> DatasetInfo:
        return self.load().info

    def load(self) -> RawSplits:
        if self._splits is not None:
            return self._splits

        x_train = parse_idx_images(_read_bytes(self._data_dir, TRAIN_IMAGES))
        y_train = parse_idx_labels(_read_bytes(self._data_dir, TRAIN_LABELS))
        x_test = parse_idx_images(_read_bytes(self._data_dir, TEST_IMAGES))
        y_test = parse_idx_labels(_read_bytes(self._data_dir, TEST_LABELS))

        if x_train.shape[1:] != x_test.shape[1:]:
            raise ConfigurationError(
                f"train images are {x_train.shape[1:]} but test images are {x_test.shape[1:]}"
            )
        for split, have, want in (("train", len(x_train), self._train_size), ("test", len(x_test), self._test_size)):
            if have < want:
                raise ConfigurationError(f"{split} split has {have} images, {want} requested")

        x_train, y_train = x_train[: self._train_size], y_train[: self._train_size]
        x_test, y_test = x_test[: self._test_size], y_test[: self._test_size]

        self._splits = RawSplits(
            info=DatasetInfo(
                num_classes=self._num_classes,
                input_shape=tuple(int(d) for d in x_train.shape[1:]),
                train_size=len(x_train),
                test_size=len(x_test),
            ),
            train_images=x_train,
            train_labels=y_train,
            test_images=x_test,
            test_labels=y_test,
        )
        return self._splits

from __future__ import annotations

import numpy as np

from jax_mnist_trainer.core.domain.entities.base import Sample
from jax_mnist_trainer.core.domain.errors.training import ConfigurationError

_PIXEL_MAX = np.float32(255.0)


def _require_integral(values: np.ndarray, what: str) -> None:
    if np.issubdtype(values.dtype, np.integer) or np.issubdtype(values.dtype, np.bool_):
        return
    # NaN fails the comparison too.
    fractional = ~(values == np.round(values))
    if fractional.any():
        first = int(np.flatnonzero(fractional.ravel())[0])
        raise ConfigurationError(
            f"{what} must be whole numbers, got {values.ravel()[first]!r} at index {first}"
        )


def normalize_pixels(raw: np.ndarray) -> np.ndarray:
    """Map raw bytes 0..255 to float32 intensities in [0, 1].

    0 maps to exactly 0.0 and 255 to exactly 1.0.
    """

    raw = np.asarray(raw)
    if raw.dtype != np.uint8:
        _require_integral(raw, "pixel values")
        if raw.size and (raw.min() < 0 or raw.max() > 255):
            raise ConfigurationError(
                f"pixel values must be bytes in [0, 255], got range [{raw.min()}, {raw.max()}]"
            )
        raw = raw.astype(np.uint8)
    return raw.astype(np.float32) / _PIXEL_MAX


def one_hot(labels: np.ndarray, num_classes: int) -> np.ndarray:
    """One-hot encode integer labels, shape (n,) -> (n, num_classes).

    Labels outside [0, num_classes) are a configuration error, never clamped.
    """

    if num_classes < 1:
        raise ConfigurationError(f"num_classes must be >= 1, got {num_classes}")
    labels = np.asarray(labels)
    _require_integral(labels, "labels")
    labels = labels.astype(np.int64)
    bad = (labels < 0) | (labels >= num_classes)
    if bad.any():
        first = int(np.flatnonzero(bad.ravel())[0])
        raise ConfigurationError(
            f"label {int(labels.ravel()[first])} at index {first} is outside [0, {num_classes})"
        )
    out = np.zeros((*labels.shape, num_classes), dtype=np.float32)
    np.put_along_axis(out, labels[..., None], 1.0, axis=-1)
    return out


def argmax_first(values: np.ndarray) -> np.ndarray | int:
    """Arg-max along the last axis; ties keep the lowest index.

    Scanning left to right, an entry replaces the best only when strictly greater,
    so NaN never wins against a number.
    """

    values = np.asarray(values, dtype=np.float64)
    if values.shape[-1] == 0:
        raise ValueError("argmax of an empty vector")
    cleaned = np.where(np.isnan(values), -np.inf, values)
    idx = np.argmax(cleaned, axis=-1)
    if np.ndim(idx) == 0:
        return int(idx)
    return idx


def encode_sample(raw_pixels: np.ndarray, label: int, num_classes: int) -> Sample:
    target = one_hot(np.asarray([label]), num_classes)[0]
    return Sample(input=normalize_pixels(np.asarray(raw_pixels).ravel()), target=target)

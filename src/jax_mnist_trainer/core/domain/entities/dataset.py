from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DatasetInfo:
    """Metadata required by the core training loop."""

    num_classes: int
    input_shape: tuple[int, ...]
    train_size: int | None = None
    test_size: int | None = None

    @property
    def sample_size(self) -> int:
        size = 1
        for d in self.input_shape:
            size *= d
        return size

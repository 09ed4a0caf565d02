from __future__ import annotations

from typing import Any, Protocol


class MetricsSinkPort(Protocol):
    """Port for run events and metrics (stdout, JSONL, TensorBoard, etc.)."""

    def log(self, *, step: int, metrics: dict[str, Any]) -> None:
        ...

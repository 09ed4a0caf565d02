from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np

from jax_mnist_trainer.core.ports.metrics_sink import MetricsSinkPort


def _to_jsonable(value: Any) -> Any:
    """Convert metric values to strict JSON types.

    Non-finite floats become null so every line parses with a strict JSON reader.
    """

    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if value is None or isinstance(value, (bool, int, str)):
        return value

    if isinstance(value, np.generic):
        return _to_jsonable(value.item())

    # numpy / jax arrays
    if hasattr(value, "shape") and hasattr(value, "dtype"):
        arr = np.asarray(value)
        if arr.shape == ():
            return _to_jsonable(arr.item())
        return [_to_jsonable(v) for v in arr.tolist()]

    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]

    return str(value)


class JsonlFileMetricsSink(MetricsSinkPort):
    """Append-only JSONL metrics sink.

    Each call writes one JSON object on a single line:
      {"ts": "...", "step": 123, "metrics": {...}}
    """

    def __init__(self, *, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def log(self, *, step: int, metrics: dict[str, Any]) -> None:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "step": int(step),
            "metrics": _to_jsonable(metrics),
        }
        with self._path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, allow_nan=False))
            f.write("\n")


class CompositeMetricsSink(MetricsSinkPort):
    """Tee metrics to multiple sinks."""

    def __init__(self, *sinks: MetricsSinkPort | None) -> None:
        self._sinks = [s for s in sinks if s is not None]

    def log(self, *, step: int, metrics: dict[str, Any]) -> None:
        for s in self._sinks:
            s.log(step=step, metrics=metrics)

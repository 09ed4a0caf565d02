from __future__ import annotations

import json

import numpy as np

from jax_mnist_trainer.adapters.right.metrics_jsonl import CompositeMetricsSink, JsonlFileMetricsSink


def test_jsonl_metrics_sink_writes_valid_lines(tmp_path) -> None:
    p = tmp_path / "logs" / "metrics.jsonl"
    sink = JsonlFileMetricsSink(path=p)

    sink.log(step=0, metrics={"event": "run_start", "lr": 0.5})
    sink.log(
        step=10,
        metrics={
            "event": "checkpoint",
            "test/error": np.float32(0.25),
            "test/error_delta_pct": None,
            "incorrect_by_true_class": np.array([1, 0, 2]),
        },
    )

    lines = [ln for ln in p.read_text(encoding="utf-8").splitlines() if ln.strip()]
    assert len(lines) == 2

    rec0 = json.loads(lines[0])
    assert rec0["step"] == 0
    assert rec0["metrics"]["event"] == "run_start"

    rec1 = json.loads(lines[1])
    assert rec1["step"] == 10
    assert rec1["metrics"]["test/error"] == 0.25
    assert rec1["metrics"]["test/error_delta_pct"] is None
    assert rec1["metrics"]["incorrect_by_true_class"] == [1, 0, 2]


def test_non_finite_values_are_written_as_null(tmp_path) -> None:
    p = tmp_path / "metrics.jsonl"
    JsonlFileMetricsSink(path=p).log(step=1, metrics={"a": float("nan"), "b": np.float64("inf")})

    rec = json.loads(p.read_text(encoding="utf-8"))
    assert rec["metrics"] == {"a": None, "b": None}


def test_composite_sink_tees_and_skips_missing_sinks(tmp_path) -> None:
    a = JsonlFileMetricsSink(path=tmp_path / "a.jsonl")
    b = JsonlFileMetricsSink(path=tmp_path / "b.jsonl")

    CompositeMetricsSink(a, None, b).log(step=3, metrics={"event": "x"})

    assert json.loads(a.path.read_text(encoding="utf-8"))["step"] == 3
    assert json.loads(b.path.read_text(encoding="utf-8"))["metrics"] == {"event": "x"}

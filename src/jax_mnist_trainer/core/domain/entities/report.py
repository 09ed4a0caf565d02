from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class EvaluationReport:
    """Scores of one model over one evaluation set.

    `incorrect_by_true_class[c]` counts misses whose ground truth was `c`;
    `incorrect_by_guessed_class[c]` counts misses where the model answered `c`.
    """

    error: float
    n_correct: int
    total: int
    incorrect_by_true_class: np.ndarray
    incorrect_by_guessed_class: np.ndarray
    predictions: np.ndarray

    @property
    def accuracy(self) -> float:
        return self.n_correct / self.total if self.total else 0.0

    @property
    def accuracy_percent(self) -> float:
        return 100.0 * self.accuracy

    def summary(self) -> dict:
        return {
            "error": self.error,
            "correct": self.n_correct,
            "total": self.total,
            "accuracy_pct": self.accuracy_percent,
            "incorrect_by_true_class": self.incorrect_by_true_class.tolist(),
            "incorrect_by_guessed_class": self.incorrect_by_guessed_class.tolist(),
        }


@dataclass(frozen=True)
class CheckpointRecord:
    """Error trend at one checkpoint epoch.

    `delta_percent` is None when the previous error was zero (percentage undefined).
    """

    epoch: int
    error: float
    delta: float
    delta_percent: float | None
    learning_rate: float
    accuracy_percent: float
    global_step: int

    def as_metrics(self) -> dict:
        return {
            "event": "checkpoint",
            "epoch": self.epoch,
            "test/error": self.error,
            "test/error_delta": self.delta,
            "test/error_delta_pct": self.delta_percent,
            "test/acc_pct": self.accuracy_percent,
            "lr": self.learning_rate,
            "global_step": self.global_step,
        }

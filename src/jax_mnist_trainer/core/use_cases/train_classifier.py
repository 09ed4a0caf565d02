from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import jax
import numpy as np

from jax_mnist_trainer.core.domain.commands.train import TrainCommand
from jax_mnist_trainer.core.domain.entities.base import Dataset
from jax_mnist_trainer.core.domain.entities.model import Params
from jax_mnist_trainer.core.domain.entities.report import CheckpointRecord
from jax_mnist_trainer.core.domain.errors.training import ConfigurationError
from jax_mnist_trainer.core.domain.utils.jax_rng import fold_in_step, permutation
from jax_mnist_trainer.core.domain.utils.metrics import percentage_change
from jax_mnist_trainer.core.domain.utils.schedule import adjust_learning_rate
from jax_mnist_trainer.core.ports.metrics_sink import MetricsSinkPort
from jax_mnist_trainer.core.ports.model_gateway import ModelGatewayPort
from jax_mnist_trainer.core.use_cases.evaluate_classifier import EvaluateClassifierUseCase


@dataclass(frozen=True)
class TrainResult:
    params: Params
    learning_rate: float
    history: list[CheckpointRecord]
    global_step: int


def validate_command(command: TrainCommand, *, train_size: int) -> None:
    if command.epochs < 1:
        raise ConfigurationError(f"epochs must be >= 1, got {command.epochs}")
    if command.batch_size < 1:
        raise ConfigurationError(f"batch_size must be >= 1, got {command.batch_size}")
    if train_size < 1:
        raise ConfigurationError("training set is empty")
    if command.batch_size > train_size:
        raise ConfigurationError(
            f"batch_size {command.batch_size} exceeds training set size {train_size}"
        )
    if not command.learning_rate > 0:
        raise ConfigurationError(f"learning_rate must be positive, got {command.learning_rate}")
    if command.eval_every_epochs < 1:
        raise ConfigurationError(
            f"eval_every_epochs must be >= 1, got {command.eval_every_epochs}"
        )
    if any(int(h) < 1 for h in command.hidden_sizes):
        raise ConfigurationError(f"hidden layer sizes must be >= 1, got {tuple(command.hidden_sizes)}")
    lo, hi = command.min_learning_rate, command.max_learning_rate
    if lo is not None and not lo > 0:
        raise ConfigurationError(f"min_learning_rate must be positive, got {lo}")
    if lo is not None and hi is not None and lo > hi:
        raise ConfigurationError(f"min_learning_rate {lo} is above max_learning_rate {hi}")


class TrainClassifierUseCase:
    """Epoch/batch scheduling with periodic evaluation and an optional adaptive rate."""

    def __init__(
        self,
        *,
        model_gateway: ModelGatewayPort,
        metrics_sink: MetricsSinkPort | None = None,
    ) -> None:
        self._model = model_gateway
        self._metrics = metrics_sink
        self._evaluator = EvaluateClassifierUseCase(model_gateway=model_gateway)

    def run(
        self,
        train_set: Dataset,
        *,
        command: TrainCommand,
        params: Params,
        key: jax.Array,
        eval_set: Dataset | None = None,
        eval_labels: np.ndarray | None = None,
        initial_error: float | None = None,
    ) -> TrainResult:
        validate_command(command, train_size=len(train_set))

        # Shuffle once before the epoch loop; the eval set keeps its order.
        shuffled = train_set.permuted(permutation(key, len(train_set)))

        last_error: float | None = None
        if eval_set is not None:
            last_error = (
                float(initial_error)
                if initial_error is not None
                else float(self._model.measure_error(params, eval_set))
            )

        learning_rate = float(command.learning_rate)
        history: list[CheckpointRecord] = []
        global_step = 0

        for epoch in range(command.epochs):
            if command.reshuffle_each_epoch and epoch > 0:
                shuffled = train_set.permuted(permutation(fold_in_step(key, epoch), len(train_set)))

            # Batches are applied strictly in sequence; each update sees the previous one.
            for batch in shuffled.batches(command.batch_size):
                params = self._model.train_on_batch(params, batch, learning_rate)
                global_step += 1

            if eval_set is None or epoch % command.eval_every_epochs != 0:
                continue

            report = self._evaluator.evaluate(params, eval_set, eval_labels)
            error = report.error
            delta = error - last_error
            record = CheckpointRecord(
                epoch=epoch,
                error=error,
                delta=delta,
                delta_percent=percentage_change(last_error, error),
                learning_rate=learning_rate,
                accuracy_percent=report.accuracy_percent,
                global_step=global_step,
            )
            history.append(record)
            if self._metrics:
                self._metrics.log(step=global_step, metrics=record.as_metrics())

            if command.adaptive_learning_rate:
                learning_rate = adjust_learning_rate(
                    learning_rate,
                    delta > 0,
                    min_rate=command.min_learning_rate,
                    max_rate=command.max_learning_rate,
                )
            last_error = error

        return TrainResult(
            params=params,
            learning_rate=learning_rate,
            history=history,
            global_step=global_step,
        )


def summarize_history(history: list[CheckpointRecord]) -> dict[str, Any]:
    if not history:
        return {"checkpoints": 0}
    best = min(history, key=lambda r: r.error)
    return {
        "checkpoints": len(history),
        "best/error": best.error,
        "best/epoch": best.epoch,
        "final/error": history[-1].error,
    }

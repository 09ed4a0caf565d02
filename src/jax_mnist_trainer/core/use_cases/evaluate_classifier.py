from __future__ import annotations

import numpy as np

from jax_mnist_trainer.core.domain.entities.base import Dataset
from jax_mnist_trainer.core.domain.entities.model import Params
from jax_mnist_trainer.core.domain.entities.report import EvaluationReport
from jax_mnist_trainer.core.domain.errors.training import ConfigurationError, DataIntegrityError
from jax_mnist_trainer.core.domain.utils.encoding import argmax_first
from jax_mnist_trainer.core.domain.utils.metrics import confusion_tallies
from jax_mnist_trainer.core.ports.model_gateway import ModelGatewayPort


class EvaluateClassifierUseCase:
    """Scores params on a held-out set. Never modifies the params."""

    def __init__(self, *, model_gateway: ModelGatewayPort) -> None:
        self._model = model_gateway

    def evaluate(
        self,
        params: Params,
        dataset: Dataset,
        labels: np.ndarray | None = None,
    ) -> EvaluationReport:
        """Run inference over `dataset` and tally the outcome.

        If `labels` (the raw label bytes) is given, every target's arg-max must match
        it position by position; a mismatch raises DataIntegrityError.
        """

        total = len(dataset)
        if total == 0:
            raise ConfigurationError("cannot evaluate on an empty dataset")

        y_true = np.asarray(argmax_first(dataset.targets)).reshape(-1)
        if labels is not None:
            labels = np.asarray(labels).astype(np.int64).reshape(-1)
            if len(labels) != total:
                raise DataIntegrityError(f"{total} samples but {len(labels)} raw labels")
            mismatch = np.flatnonzero(labels != y_true)
            if mismatch.size:
                i = int(mismatch[0])
                raise DataIntegrityError(
                    f"sample {i}: target encodes class {int(y_true[i])} but raw label is {int(labels[i])}"
                )

        outputs = np.asarray(self._model.feed_forward(params, dataset.inputs))
        if outputs.shape != (total, dataset.num_classes):
            raise DataIntegrityError(
                f"model output shape {outputs.shape} does not match {(total, dataset.num_classes)}"
            )
        y_pred = np.asarray(argmax_first(outputs)).reshape(-1)

        n_correct = int(np.sum(y_pred == y_true))
        by_true, by_guess = confusion_tallies(y_true, y_pred, dataset.num_classes)
        error = float(self._model.measure_error(params, dataset))

        return EvaluationReport(
            error=error,
            n_correct=n_correct,
            total=total,
            incorrect_by_true_class=by_true,
            incorrect_by_guessed_class=by_guess,
            predictions=y_pred,
        )

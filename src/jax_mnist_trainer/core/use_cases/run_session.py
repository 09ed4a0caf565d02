from __future__ import annotations

import time
from dataclasses import asdict, dataclass

import numpy as np

from jax_mnist_trainer.core.domain.commands.train import TrainCommand
from jax_mnist_trainer.core.domain.entities.model import layer_sizes_of
from jax_mnist_trainer.core.domain.entities.report import EvaluationReport
from jax_mnist_trainer.core.domain.errors.training import ConfigurationError
from jax_mnist_trainer.core.domain.utils.jax_rng import run_keys
from jax_mnist_trainer.core.ports.checkpoint_store import CheckpointStorePort
from jax_mnist_trainer.core.ports.dataset_provider import DatasetProviderPort
from jax_mnist_trainer.core.ports.metrics_sink import MetricsSinkPort
from jax_mnist_trainer.core.ports.model_gateway import ModelGatewayPort
from jax_mnist_trainer.core.use_cases.assemble_dataset import assemble_dataset
from jax_mnist_trainer.core.use_cases.evaluate_classifier import EvaluateClassifierUseCase
from jax_mnist_trainer.core.use_cases.persist_model import ModelPersistence
from jax_mnist_trainer.core.use_cases.train_classifier import (
    TrainClassifierUseCase,
    TrainResult,
    summarize_history,
    validate_command,
)


@dataclass(frozen=True)
class SessionResult:
    before: EvaluationReport
    after: EvaluationReport
    training: TrainResult
    loaded_from_checkpoint: bool
    train_seconds: float
    saved_to: str | None = None
    # Raw test labels, in the order of the per-sample predictions.
    test_labels: np.ndarray | None = None

    @property
    def improvement_percent(self) -> float:
        """Accuracy gain in percentage points."""

        return self.after.accuracy_percent - self.before.accuracy_percent


class RunTrainingSessionUseCase:
    """One full run: encode data, load or init the model, train, score, maybe save."""

    def __init__(
        self,
        *,
        dataset_provider: DatasetProviderPort,
        model_gateway: ModelGatewayPort,
        checkpoint_store: CheckpointStorePort | None = None,
        metrics_sink: MetricsSinkPort | None = None,
    ) -> None:
        self._dataset = dataset_provider
        self._ckpt = checkpoint_store
        self._metrics = metrics_sink
        self._persistence = ModelPersistence(model_gateway=model_gateway, checkpoint_store=checkpoint_store)
        self._evaluator = EvaluateClassifierUseCase(model_gateway=model_gateway)
        self._trainer = TrainClassifierUseCase(model_gateway=model_gateway, metrics_sink=metrics_sink)

    def _log(self, step: int, metrics: dict) -> None:
        if self._metrics:
            self._metrics.log(step=step, metrics=metrics)

    def run(self, command: TrainCommand) -> SessionResult:
        info = self._dataset.info
        if info.num_classes <= 1:
            raise ConfigurationError(f"num_classes must be >= 2, got {info.num_classes}")
        if command.save_on_exit and self._ckpt is None:
            raise ConfigurationError("save_on_exit requires a checkpoint store")

        raw = self._dataset.load()
        train_set = assemble_dataset(
            raw.train_images, raw.train_labels, sample_size=info.sample_size, num_classes=info.num_classes
        )
        test_set = assemble_dataset(
            raw.test_images, raw.test_labels, sample_size=info.sample_size, num_classes=info.num_classes
        )
        # All configuration errors surface here, before any model work.
        validate_command(command, train_size=len(train_set))

        init_key, shuffle_key = run_keys(command.seed)
        layer_sizes = (info.sample_size, *command.hidden_sizes, info.num_classes)
        params, loaded = self._persistence.load_or_init(layer_sizes, init_key)
        self._log(
            0,
            {
                "event": "model_loaded" if loaded else "model_initialized",
                "layer_sizes": list(layer_sizes_of(params)),
                "location": self._ckpt.location if self._ckpt else None,
                "train_size": len(train_set),
                "test_size": len(test_set),
            },
        )

        before = self._evaluator.evaluate(params, test_set, raw.test_labels)
        self._log(0, {"event": "evaluation", "stage": "before", **before.summary()})

        start = time.perf_counter()
        training = self._trainer.run(
            train_set,
            command=command,
            params=params,
            key=shuffle_key,
            eval_set=test_set,
            eval_labels=raw.test_labels,
            initial_error=before.error,
        )
        train_seconds = time.perf_counter() - start
        params = training.params
        self._log(
            training.global_step,
            {
                "event": "training_complete",
                "seconds": train_seconds,
                "final_lr": training.learning_rate,
                **summarize_history(training.history),
            },
        )

        after = self._evaluator.evaluate(params, test_set, raw.test_labels)
        self._log(
            training.global_step,
            {
                "event": "evaluation",
                "stage": "after",
                "improvement_pct": after.accuracy_percent - before.accuracy_percent,
                **after.summary(),
            },
        )

        saved_to = None
        if command.save_on_exit:
            saved_to = self._persistence.save(
                params,
                metadata={
                    "command": asdict(command),
                    "final_lr": training.learning_rate,
                    "accuracy_pct": after.accuracy_percent,
                },
            )
            self._log(training.global_step, {"event": "model_saved", "location": saved_to})

        return SessionResult(
            before=before,
            after=after,
            training=training,
            loaded_from_checkpoint=loaded,
            train_seconds=train_seconds,
            saved_to=saved_to,
            test_labels=np.asarray(raw.test_labels),
        )

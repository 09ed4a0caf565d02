from __future__ import annotations

from dataclasses import asdict
import os

import inject
import numpy as np
import typer

# Default to CPU unless explicitly overridden by the user.
# This avoids noisy CUDA plugin initialization errors on machines without CUDA libraries.
os.environ.setdefault("JAX_PLATFORMS", "cpu")

from jax_mnist_trainer.adapters.left.inject_config import configure_injections
from jax_mnist_trainer.adapters.right.checkpoints_filesystem import (
    DEFAULT_CHECKPOINT_PATH,
    FilesystemCheckpointStore,
)
from jax_mnist_trainer.adapters.right.data_loaders.idx_mnist import IdxMnistDatasetProvider
from jax_mnist_trainer.adapters.right.data_loaders.npz_classification import NpzClassificationDatasetProvider
from jax_mnist_trainer.adapters.right.jax_model_gateway import JaxMlpModelGateway
from jax_mnist_trainer.adapters.right.metrics_jsonl import CompositeMetricsSink, JsonlFileMetricsSink
from jax_mnist_trainer.adapters.right.metrics_stdout import StdoutMetricsSink
from jax_mnist_trainer.core.domain.commands.train import TrainCommand
from jax_mnist_trainer.core.domain.entities.report import EvaluationReport
from jax_mnist_trainer.core.domain.errors.training import TrainingError
from jax_mnist_trainer.core.ports.dataset_provider import DatasetProviderPort
from jax_mnist_trainer.core.ports.metrics_sink import MetricsSinkPort
from jax_mnist_trainer.core.use_cases.assemble_dataset import assemble_dataset
from jax_mnist_trainer.core.use_cases.evaluate_classifier import EvaluateClassifierUseCase
from jax_mnist_trainer.core.use_cases.persist_model import ModelPersistence
from jax_mnist_trainer.core.use_cases.run_session import RunTrainingSessionUseCase

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _build_dataset(
    *,
    dataset_kind: str,
    data_dir: str,
    npz_path: str,
    tfds_name: str,
    train_size: int,
    test_size: int,
) -> DatasetProviderPort:
    dataset_kind = dataset_kind.lower().strip()
    if dataset_kind == "idx":
        return IdxMnistDatasetProvider(data_dir=data_dir, train_size=train_size, test_size=test_size)
    if dataset_kind == "npz":
        if not npz_path:
            raise typer.BadParameter("--npz-path is required when dataset_kind=npz")
        return NpzClassificationDatasetProvider(path=npz_path)
    if dataset_kind == "tfds":
        # tensorflow-datasets is an optional extra; only import it when asked for.
        from jax_mnist_trainer.adapters.right.data_loaders.tfds_classification import (
            TfdsClassificationDatasetProvider,
        )

        return TfdsClassificationDatasetProvider(name=tfds_name, data_dir=data_dir)
    raise typer.BadParameter("dataset_kind must be one of: idx, npz, tfds")


def _build_metrics(*, verbose: bool, log_path: str) -> MetricsSinkPort | None:
    stdout_metrics = StdoutMetricsSink() if verbose else None
    jsonl_metrics = JsonlFileMetricsSink(path=log_path) if log_path else None
    if stdout_metrics and jsonl_metrics:
        return CompositeMetricsSink(stdout_metrics, jsonl_metrics)
    return stdout_metrics or jsonl_metrics


def _echo_report(label: str, report: EvaluationReport) -> None:
    typer.echo(
        f"{label}: correctly identified {report.n_correct}/{report.total} ({report.accuracy_percent:.2f}%)"
    )


def _echo_predictions(report: EvaluationReport, labels) -> None:
    for guess, expected in zip(report.predictions.tolist(), np.asarray(labels).tolist()):
        mark = "✅" if guess == expected else "❌"
        typer.echo(f"{mark}     Network gave: {guess}, expected: {expected}")


def _echo_class_counts(report: EvaluationReport) -> None:
    typer.echo("class  missed_as_true  wrongly_guessed")
    for c, (t, g) in enumerate(zip(report.incorrect_by_true_class, report.incorrect_by_guessed_class)):
        typer.echo(f"{c:>5}  {int(t):>14}  {int(g):>15}")


@app.command()
def train(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print the full report and every checkpoint"),
    save: bool = typer.Option(False, "--save", "-s", help="Save the model to --model-path when training ends"),
    adaptive_lr: bool = typer.Option(
        False, "--adaptive-lr", "-a", help="Scale the learning rate by 0.99/1.01 after each checkpoint"
    ),
    epochs: int = typer.Option(50, "--epochs", "-e", min=1),
    batch_size: int = typer.Option(10, "--batch-size", "-b", min=1),
    learn_rate: float = typer.Option(0.5, "--learn-rate", "-l", min=0.0),
    eval_every: int = typer.Option(1, min=1, help="Evaluate on the test split every N epochs"),
    hidden: list[int] = typer.Option([30], help="Repeatable hidden sizes: --hidden 30 --hidden 20"),
    seed: int = typer.Option(0),
    reshuffle_each_epoch: bool = typer.Option(
        False, "--reshuffle-each-epoch/--shuffle-once", help="Shuffle the training set every epoch"
    ),
    min_lr: float = typer.Option(1e-6, help="Lower clamp for the adaptive learning rate"),
    max_lr: float = typer.Option(10.0, help="Upper clamp for the adaptive learning rate"),
    no_lr_clamp: bool = typer.Option(False, "--no-lr-clamp", help="Disable both learning-rate clamps"),
    model_path: str = typer.Option(DEFAULT_CHECKPOINT_PATH, help="Checkpoint file, loaded if it exists"),
    dataset_kind: str = typer.Option("idx", help="Dataset adapter to use: idx | npz | tfds"),
    data_dir: str = typer.Option("data", help="IDX files folder, or TFDS cache directory"),
    npz_path: str = typer.Option("", help="Path to .npz (when dataset_kind=npz)"),
    tfds_name: str = typer.Option("mnist", help="TFDS dataset name (when dataset_kind=tfds)"),
    train_size: int = typer.Option(50_000, min=1, help="Training images taken from the IDX train file"),
    test_size: int = typer.Option(10_000, min=1, help="Test images taken from the IDX test file"),
    show_predictions: bool = typer.Option(
        False, "--show-predictions", help="Print one line per test sample before training"
    ),
    log_path: str = typer.Option(
        "",
        help="If set, append metrics/events as JSONL to this path (e.g. logs/train.jsonl)",
    ),
) -> None:
    """Train the classifier, reporting accuracy before and after."""

    cmd = TrainCommand(
        epochs=epochs,
        batch_size=batch_size,
        seed=seed,
        learning_rate=learn_rate,
        adaptive_learning_rate=adaptive_lr,
        min_learning_rate=None if no_lr_clamp else min_lr,
        max_learning_rate=None if no_lr_clamp else max_lr,
        hidden_sizes=tuple(hidden),
        eval_every_epochs=eval_every,
        reshuffle_each_epoch=reshuffle_each_epoch,
        verbose=verbose,
        save_on_exit=save,
    )

    try:
        dataset = _build_dataset(
            dataset_kind=dataset_kind,
            data_dir=data_dir,
            npz_path=npz_path,
            tfds_name=tfds_name,
            train_size=train_size,
            test_size=test_size,
        )
        metrics = _build_metrics(verbose=verbose, log_path=log_path)
        configure_injections(
            dataset_provider=dataset,
            model_gateway=JaxMlpModelGateway(),
            metrics_sink=metrics,
            checkpoint_store=FilesystemCheckpointStore(path=model_path),
        )
        use_case = inject.instance(RunTrainingSessionUseCase)

        if metrics:
            metrics.log(
                step=0,
                metrics={"event": "run_start", "command": "train", "dataset_kind": dataset_kind, **asdict(cmd)},
            )
        result = use_case.run(cmd)
    except TrainingError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if show_predictions:
        _echo_predictions(result.before, result.test_labels)
    if verbose:
        # Checkpoint lines were already printed live by the stdout metrics sink.
        _echo_report("Before training", result.before)
        typer.echo(f"Took {result.train_seconds:.1f}s to batch train")
    typer.echo(
        f"After training: correctly identified {result.after.n_correct}/{result.after.total} "
        f"({result.after.accuracy_percent:.2f}% - {result.improvement_percent:+.2f}%)"
    )
    if verbose:
        _echo_class_counts(result.after)
        typer.echo(f"Final learning rate: {result.training.learning_rate:.6g}")
    if result.saved_to:
        typer.echo(f"Saved model to: {result.saved_to}")


@app.command()
def evaluate(
    model_path: str = typer.Option(DEFAULT_CHECKPOINT_PATH, help="Checkpoint file to score"),
    dataset_kind: str = typer.Option("idx", help="Dataset adapter to use: idx | npz | tfds"),
    data_dir: str = typer.Option("data", help="IDX files folder, or TFDS cache directory"),
    npz_path: str = typer.Option("", help="Path to .npz (when dataset_kind=npz)"),
    tfds_name: str = typer.Option("mnist", help="TFDS dataset name (when dataset_kind=tfds)"),
    test_size: int = typer.Option(10_000, min=1, help="Test images taken from the IDX test file"),
    show_predictions: bool = typer.Option(False, "--show-predictions", help="Print one line per test sample"),
) -> None:
    """Score a saved model on the test split without training."""

    try:
        dataset = _build_dataset(
            dataset_kind=dataset_kind,
            data_dir=data_dir,
            npz_path=npz_path,
            tfds_name=tfds_name,
            train_size=1,
            test_size=test_size,
        )
        configure_injections(
            dataset_provider=dataset,
            model_gateway=JaxMlpModelGateway(),
            checkpoint_store=FilesystemCheckpointStore(path=model_path),
        )
        raw = dataset.load()
        info = dataset.info
        params = inject.instance(ModelPersistence).load((info.sample_size, info.num_classes))
        test_set = assemble_dataset(
            raw.test_images, raw.test_labels, sample_size=info.sample_size, num_classes=info.num_classes
        )
        report = inject.instance(EvaluateClassifierUseCase).evaluate(params, test_set, raw.test_labels)
    except TrainingError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if show_predictions:
        _echo_predictions(report, raw.test_labels)
    _echo_report("Evaluation", report)
    typer.echo(f"Error: {report.error:.6f}")
    _echo_class_counts(report)

from __future__ import annotations

from typing import Optional

import inject

from jax_mnist_trainer.core.ports.checkpoint_store import CheckpointStorePort
from jax_mnist_trainer.core.ports.dataset_provider import DatasetProviderPort
from jax_mnist_trainer.core.ports.metrics_sink import MetricsSinkPort
from jax_mnist_trainer.core.ports.model_gateway import ModelGatewayPort
from jax_mnist_trainer.core.use_cases.evaluate_classifier import \
    EvaluateClassifierUseCase
from jax_mnist_trainer.core.use_cases.persist_model import ModelPersistence
from jax_mnist_trainer.core.use_cases.run_session import \
    RunTrainingSessionUseCase


# pylint: disable=invalid-name
def get_dependencies_injection_config(
    *,
    dataset_provider: DatasetProviderPort,
    model_gateway: ModelGatewayPort,
    metrics_sink: Optional[MetricsSinkPort] = None,
    checkpoint_store: Optional[CheckpointStorePort] = None,
):
    """Return an inject binder function.

    No imports occur inside the returned function.
    """

    def configure_dependencies_injection(binder: inject.Binder) -> None:
        binder.bind(DatasetProviderPort, dataset_provider)
        binder.bind(ModelGatewayPort, model_gateway)
        if metrics_sink is not None:
            binder.bind(MetricsSinkPort, metrics_sink)
        if checkpoint_store is not None:
            binder.bind(CheckpointStorePort, checkpoint_store)

        # Use cases are bound as fully-wired objects.
        binder.bind(
            RunTrainingSessionUseCase,
            RunTrainingSessionUseCase(
                dataset_provider=dataset_provider,
                model_gateway=model_gateway,
                checkpoint_store=checkpoint_store,
                metrics_sink=metrics_sink,
            ),
        )
        binder.bind(EvaluateClassifierUseCase, EvaluateClassifierUseCase(model_gateway=model_gateway))
        binder.bind(
            ModelPersistence,
            ModelPersistence(model_gateway=model_gateway, checkpoint_store=checkpoint_store),
        )

    return configure_dependencies_injection


def configure_injections(
    *,
    dataset_provider: DatasetProviderPort,
    model_gateway: ModelGatewayPort,
    metrics_sink: Optional[MetricsSinkPort] = None,
    checkpoint_store: Optional[CheckpointStorePort] = None,
) -> None:
    """Configure inject with this app's runtime bindings.

    Safe to call multiple times (clears previous bindings).
    """

    config = get_dependencies_injection_config(
        dataset_provider=dataset_provider,
        model_gateway=model_gateway,
        metrics_sink=metrics_sink,
        checkpoint_store=checkpoint_store,
    )

    if inject.is_configured():
        inject.clear_and_configure(config)
    else:
        inject.configure(config)

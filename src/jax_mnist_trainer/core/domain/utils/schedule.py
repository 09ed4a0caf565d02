from __future__ import annotations

from jax_mnist_trainer.core.domain.errors.training import ConfigurationError

DECAY_FACTOR = 0.99
GROWTH_FACTOR = 1.01


def adjust_learning_rate(
    rate: float,
    error_worsened: bool,
    *,
    min_rate: float | None = None,
    max_rate: float | None = None,
) -> float:
    """Multiplicative adaptive schedule.

    x0.99 when the evaluation error went up, x1.01 otherwise, then clamp to the
    optional bounds.
    """

    if not rate > 0:
        raise ConfigurationError(f"learning rate must be positive, got {rate}")
    new_rate = rate * (DECAY_FACTOR if error_worsened else GROWTH_FACTOR)
    if min_rate is not None and new_rate < min_rate:
        new_rate = min_rate
    if max_rate is not None and new_rate > max_rate:
        new_rate = max_rate
    return new_rate

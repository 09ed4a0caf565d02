from __future__ import annotations

import pytest

from jax_mnist_trainer.core.domain.errors.training import ConfigurationError
from jax_mnist_trainer.core.domain.utils.schedule import adjust_learning_rate


@pytest.mark.parametrize("rate", [1e-9, 0.01, 0.5, 3.0, 1e6])
def test_multiplier_is_exact(rate: float) -> None:
    assert adjust_learning_rate(rate, True) == rate * 0.99
    assert adjust_learning_rate(rate, False) == rate * 1.01


def test_clamps_apply_after_multiplying() -> None:
    assert adjust_learning_rate(1e-6, True, min_rate=1e-6) == 1e-6
    assert adjust_learning_rate(10.0, False, max_rate=10.0) == 10.0
    assert adjust_learning_rate(0.5, False, min_rate=1e-6, max_rate=10.0) == 0.5 * 1.01


@pytest.mark.parametrize("rate", [0.0, -0.1])
def test_non_positive_rate_is_rejected(rate: float) -> None:
    with pytest.raises(ConfigurationError):
        adjust_learning_rate(rate, False)

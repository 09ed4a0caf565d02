from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TrainCommand:
    """Intent to train a classifier. Resolved once per run, never mutated."""

    epochs: int = 50
    batch_size: int = 10
    seed: int = 0

    learning_rate: float = 0.5

    # Adaptive learning rate: x0.99 when the eval error worsened, x1.01 otherwise.
    # Clamps keep long runs from collapsing/diverging; None disables a bound.
    adaptive_learning_rate: bool = False
    min_learning_rate: float | None = 1e-6
    max_learning_rate: float | None = 10.0

    # Default model: one hidden sigmoid layer over flattened 28x28 inputs
    hidden_sizes: tuple[int, ...] = (30,)

    # Checkpoint epochs are those with epoch % eval_every_epochs == 0
    eval_every_epochs: int = 1

    # The training set is shuffled once before the epoch loop unless this is set.
    reshuffle_each_epoch: bool = False

    # Reporting / persistence
    verbose: bool = False
    save_on_exit: bool = False

from __future__ import annotations

import math

import numpy as np


def percentage_change(previous: float, current: float) -> float | None:
    """Relative change `(current - previous) / previous` in percent.

    Returns None when undefined (previous is zero or either value is not finite),
    so reports show a sentinel instead of NaN/Inf.
    """

    if not (math.isfinite(previous) and math.isfinite(current)) or previous == 0:
        return None
    return 100.0 * (current - previous) / previous


def confusion_tallies(
    y_true: np.ndarray, y_pred: np.ndarray, num_classes: int
) -> tuple[np.ndarray, np.ndarray]:
    """Count misclassifications per true class and per guessed class.

    Args:
        y_true: shape (n,), ground-truth class indices
        y_pred: shape (n,), predicted class indices

    Returns:
        (incorrect_by_true_class, incorrect_by_guessed_class), each of shape (num_classes,).
    """

    y_true = np.asarray(y_true).astype(np.int64)
    y_pred = np.asarray(y_pred).astype(np.int64)
    wrong = y_true != y_pred
    by_true = np.bincount(y_true[wrong], minlength=num_classes).astype(np.int64)
    by_guess = np.bincount(y_pred[wrong], minlength=num_classes).astype(np.int64)
    return by_true, by_guess

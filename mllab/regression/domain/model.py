"""Gradient-descent arithmetic for a two-parameter linear model y = a*x + b."""

import math
from typing import Tuple
import numpy as np


def predict(slope: float, intercept: float, xs: np.ndarray) -> np.ndarray:
    """Model output for every x."""
    return slope * np.asarray(xs, dtype=float) + intercept


def residuals(predictions: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Prediction minus actual, per sample."""
    return np.asarray(predictions, dtype=float) - np.asarray(ys, dtype=float)


def mse(slope: float, intercept: float, xs: np.ndarray, ys: np.ndarray) -> float:
    """Mean squared error (1/n) * sum((a*x + b - y)^2). Zero for an empty sample set."""
    if len(xs) == 0:
        return 0.0
    errors = residuals(predict(slope, intercept, xs), ys)
    return float(np.mean(errors * errors))


def gradients(xs: np.ndarray, errors: np.ndarray) -> Tuple[float, float]:
    """
    Loss gradient from precomputed residuals.

    da = (2/n) * sum(err * x), db = (2/n) * sum(err). Zero for an empty sample set.
    """
    n = len(xs)
    if n == 0:
        return 0.0, 0.0
    errors = np.asarray(errors, dtype=float)
    da = (2.0 / n) * float(np.sum(errors * np.asarray(xs, dtype=float)))
    db = (2.0 / n) * float(np.sum(errors))
    return da, db


def gradient_magnitude(da: float, db: float) -> float:
    return math.sqrt(da * da + db * db)


def gradient_step(slope: float, intercept: float, grad: Tuple[float, float],
                  learning_rate: float) -> Tuple[float, float]:
    """a <- a - lr * da, b <- b - lr * db."""
    da, db = grad
    return slope - learning_rate * da, intercept - learning_rate * db

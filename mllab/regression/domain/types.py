"""Core type definitions for the linear regression trainer."""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class RegressionPhase(Enum):
    """Phases of the step-by-step training cycle."""
    IDLE = "idle"
    MAKING_PREDICTION = "making_prediction"
    CALCULATING_ERROR = "calculating_error"
    LEARNING_FROM_ERROR = "learning_from_error"


@dataclass(frozen=True)
class Scenario:
    """A named data-generating profile: y = slope * x + intercept + uniform noise."""
    name: str
    true_slope: float
    true_intercept: float
    noise: float


@dataclass
class RegressionConfig:
    """Configuration for the linear regression trainer."""
    learning_rate: float = 0.05
    epochs: int = 600
    speed: float = 0.1  # seconds per epoch in continuous mode
    sample_count: int = 56
    scenario: str = "weather"
    initial_slope: float = 0.0
    initial_intercept: float = 0.5
    loss_history_size: int = 600


@dataclass(frozen=True)
class RegressionSnapshot:
    """Immutable view of the trainer's observable state."""
    state: str
    phase: RegressionPhase
    scenario: str
    slope: float
    intercept: float
    loss: float
    epoch: int
    gradient: Tuple[float, float]
    gradient_magnitude: float
    xs: Tuple[float, ...]
    ys: Tuple[float, ...]
    predictions: Tuple[float, ...]
    residuals: Tuple[float, ...]
    loss_history: Tuple[float, ...]

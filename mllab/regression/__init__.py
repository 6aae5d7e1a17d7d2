"""Gradient-descent linear regression.

A two-parameter model is fitted to a synthetic scenario, either epoch by epoch on
a paced task or phase by phase (predict, measure the error, learn from it).
"""

from .app.controller import LinearRegressionTrainer
from .domain.scenarios import SCENARIOS
from .domain.types import RegressionConfig, RegressionPhase, Scenario

__all__ = ["LinearRegressionTrainer", "RegressionConfig", "RegressionPhase", "Scenario", "SCENARIOS"]

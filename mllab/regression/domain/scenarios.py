"""Synthetic sample sets for the regression scenarios."""

from typing import Dict, Optional, Tuple
import numpy as np

from .types import Scenario
from ...utils.rng import SeededRNG

SCENARIOS: Dict[str, Scenario] = {
    "weather": Scenario("weather", true_slope=2.2, true_intercept=0.6, noise=0.16),
    "housing": Scenario("housing", true_slope=2.8, true_intercept=0.3, noise=0.22),
    "sales": Scenario("sales", true_slope=1.5, true_intercept=1.0, noise=0.12),
}


def get_scenario(name: str) -> Scenario:
    """Look up a scenario by name.

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return SCENARIOS[name]
    except KeyError:
        raise ValueError(f"Unknown scenario {name!r}, expected one of {sorted(SCENARIOS)}") from None


def generate_samples(scenario: Scenario, n: int = 56,
                     rng: Optional[SeededRNG] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate n samples with x evenly spaced on [0, 1].

    Args:
        scenario: Generating profile
        n: Number of samples (0 gives empty arrays)
        rng: Noise source

    Returns:
        (xs, ys) as float arrays

    Raises:
        ValueError: If n is negative
    """
    if n < 0:
        raise ValueError(f"Sample count must not be negative, got {n}")

    rng = rng or SeededRNG()
    xs = np.linspace(0.0, 1.0, n)
    noise = rng.uniform(-scenario.noise, scenario.noise, size=n) if n else np.zeros(0)
    ys = scenario.true_slope * xs + scenario.true_intercept + noise
    return xs, ys

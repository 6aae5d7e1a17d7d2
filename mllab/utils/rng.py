"""Random number generation utilities for the learning engines."""

import numpy as np
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


class SeededRNG:
    """Seeded random number generator for reproducible results.
    
    Every engine owns its own instance so two engines never share a random
    stream, and replaying a session with the same seed replays the same choices.
    """
    
    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._generator = np.random.default_rng(seed)
    
    def reseed(self, seed: Optional[int] = None) -> None:
        """Restart the stream, keeping the original seed unless a new one is given."""
        if seed is not None:
            self.seed = seed
        self._generator = np.random.default_rng(self.seed)
    
    def random(self) -> float:
        """Generate random float in [0, 1)."""
        return float(self._generator.random())
    
    def randint(self, a: int, b: int) -> int:
        """Generate random integer in [a, b]."""
        return int(self._generator.integers(a, b + 1))
    
    def choice(self, seq: Sequence[T]) -> T:
        """Choose random element from sequence."""
        return seq[int(self._generator.integers(0, len(seq)))]
    
    def uniform(self, a: float, b: float, size: Optional[int] = None):
        """Generate random float(s) in [a, b)."""
        if size is None:
            return float(self._generator.uniform(a, b))
        return self._generator.uniform(a, b, size)

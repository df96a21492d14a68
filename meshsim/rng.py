import numpy as np

class DRNG:
    """Seeded source for tick jitter and resource-drift gating; same seed, same run."""

    def __init__(self, seed: int):
        self.g = np.random.Generator(np.random.PCG64(seed))

    def bernoulli(self, p: float) -> bool:
        """True with probability p."""
        return bool(self.g.random() < p)

    def uniform(self, a: float, b: float) -> float:
        return float(self.g.uniform(a, b))

    def jitter(self, magnitude: float) -> float:
        """Symmetric offset in [-magnitude, magnitude)."""
        return self.uniform(-magnitude, magnitude)

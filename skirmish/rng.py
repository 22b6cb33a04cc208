import math
from typing import Callable, Optional, Union

import numpy as np


class RandomSource:
    """Scalar random source threaded through every probabilistic step.

    Subclasses only provide random(); the helpers below each consume
    exactly one draw so that any source yielding the same sequence of
    scalars replays a battle identically.
    """

    def random(self) -> float:
        raise NotImplementedError

    def uniform(self, a: float, b: float) -> float:
        """Return a random float in [a, b)."""
        return a + (b - a) * self.random()

    def bernoulli(self, p: float) -> bool:
        """Return True with probability p."""
        return self.random() < p

    def index(self, n: int) -> int:
        """Return a random index in [0, n)."""
        return int(math.floor(self.random() * n))


class DRNG(RandomSource):
    """Deterministic Random Number Generator wrapper."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.g = np.random.Generator(np.random.PCG64(seed))

    def random(self) -> float:
        return float(self.g.random())


class CallableSource(RandomSource):
    """Adapts a plain () -> float callable, e.g. a scripted sequence in tests."""

    def __init__(self, fn: Callable[[], float]):
        self._fn = fn

    def random(self) -> float:
        return float(self._fn())


RandomLike = Union[RandomSource, Callable[[], float], None]


def as_random_source(random: RandomLike = None) -> RandomSource:
    if random is None:
        return DRNG()
    if isinstance(random, RandomSource):
        return random
    return CallableSource(random)

from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass

from playtree.contracts import RandomSource


class PythonRandomSource(RandomSource):
    """Injected randomness source for playback decisions and test determinism."""

    def __init__(self, seed: int | None = None) -> None:
        self._seed = seed
        self._rng = random.Random(seed)

    def rand(self) -> float:
        return self._rng.random()

    def spawn(self, substream_id: str) -> RandomSource:
        seed = self._seed
        if seed is None:
            return PythonRandomSource(seed=None)
        digest = hashlib.sha256(f"{seed}:{substream_id}".encode("ascii", "ignore")).hexdigest()
        return PythonRandomSource(seed=int(digest[:16], 16))


@dataclass(frozen=True, slots=True)
class RandomDraw:
    selector_rand: float
    edge_rand: float


class DecisionRandomness:
    """Pre-draws the two values every advance consumes, one substream per decision tier."""

    def __init__(self, source: RandomSource) -> None:
        self._selector = source.spawn("selector")
        self._edge = source.spawn("edge")

    def draw(self) -> RandomDraw:
        return RandomDraw(selector_rand=self._selector.rand(), edge_rand=self._edge.rand())


def playback_random() -> PythonRandomSource:
    return PythonRandomSource(seed=None)


def seeded_random(seed: int) -> PythonRandomSource:
    return PythonRandomSource(seed=seed)

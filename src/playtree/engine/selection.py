from __future__ import annotations

import math
from typing import Sequence


def weighted_pick(weights: Sequence[int], rand: float) -> int | None:
    """Index of the first entry whose cumulative weight exceeds ``floor(rand * total)``.

    ``rand`` is an externally drawn value in ``[0, 1)``; the same weights and value
    always give the same index. Returns ``None`` when no entry carries weight.
    """
    total = sum(weight for weight in weights if weight > 0)
    if total <= 0:
        return None
    draw = math.floor(rand * total)
    bound = 0
    last_weighted: int | None = None
    for index, weight in enumerate(weights):
        if weight <= 0:
            continue
        bound += weight
        last_weighted = index
        if draw < bound:
            return index
    return last_weighted
